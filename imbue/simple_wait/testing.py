from collections.abc import Sequence
from typing import Any

from imbue.simple_wait.clock import ClockInterface


class ManualClock(ClockInterface):
    """Deterministic clock for tests.

    Time only moves when advance() is called, or by auto_advance_seconds right before each
    deadline check (which simulates each poll taking that long without actually sleeping).
    """

    current: float = 0.0
    auto_advance_seconds: float = 0.0

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def is_before(self, deadline: float) -> bool:
        self.current += self.auto_advance_seconds
        return self.current < deadline


class CountingCondition:
    """A condition that plays back a script of outcomes and counts how often it was called.

    Each call consumes the next outcome; the last one repeats forever. Exception instances in
    the script are raised instead of returned.
    """

    def __init__(self, outcomes: Sequence[Any]) -> None:
        if not outcomes:
            raise ValueError("CountingCondition needs at least one outcome")
        self.outcomes = list(outcomes)
        self.call_count = 0

    def __call__(self) -> Any:
        outcome = self.outcomes[min(self.call_count, len(self.outcomes) - 1)]
        self.call_count += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
