import time

from imbue.simple_wait.clock import SystemClock
from imbue.simple_wait.testing import ManualClock


def test_system_clock_later_by_is_in_the_future() -> None:
    clock = SystemClock()

    deadline = clock.later_by(10.0)

    assert deadline > clock.now()
    assert clock.is_before(deadline) is True


def test_system_clock_is_not_before_a_past_deadline() -> None:
    clock = SystemClock()
    deadline = clock.later_by(0.0)
    time.sleep(0.001)

    assert clock.is_before(deadline) is False


def test_system_clock_now_is_monotonic() -> None:
    clock = SystemClock()

    first = clock.now()
    second = clock.now()

    assert second >= first


def test_manual_clock_only_moves_when_advanced() -> None:
    clock = ManualClock()
    deadline = clock.later_by(1.0)

    assert clock.now() == 0.0
    assert clock.is_before(deadline) is True
    clock.advance(1.0)
    assert clock.is_before(deadline) is False


def test_manual_clock_auto_advances_on_each_deadline_check() -> None:
    clock = ManualClock(auto_advance_seconds=0.5)
    deadline = clock.later_by(1.0)

    assert clock.is_before(deadline) is True
    assert clock.is_before(deadline) is False
    assert clock.now() == 1.0
