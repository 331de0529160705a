"""Tests for the fluent RetryPolicy facade."""

import asyncio

import pytest

from imbue.simple_wait.cancellation import CancellationToken
from imbue.simple_wait.errors import ErrorConstructionFailedError
from imbue.simple_wait.errors import InvalidWaitConfigurationError
from imbue.simple_wait.errors import WaitCancelledError
from imbue.simple_wait.errors import WaitTimeoutError
from imbue.simple_wait.results import NOT_YET
from imbue.simple_wait.results import Success
from imbue.simple_wait.retry_policy import RetryPolicy
from imbue.simple_wait.settings import WaitDefaults
from imbue.simple_wait.testing import CountingCondition
from imbue.simple_wait.testing import ManualClock
from imbue.simple_wait.translator import ErrorTarget


class ResourceNotReadyError(Exception):
    pass


class ParameterlessError(Exception):
    def __init__(self) -> None:
        super().__init__()


class MessageAndCauseError(Exception):
    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(message)
        self.cause = cause


class PrivateConstructorError(Exception):
    def __init__(self, *args: object) -> None:
        raise TypeError("no public constructor")


def _policy(auto_advance_seconds: float = 0.5) -> RetryPolicy:
    """A policy on a manual clock: each deadline check simulates auto_advance_seconds passing."""
    return (
        RetryPolicy.initialize(clock=ManualClock(auto_advance_seconds=auto_advance_seconds))
        .timeout(1.0)
        .polling_interval(0.0)
    )


def test_initialize_uses_five_second_facade_default() -> None:
    policy = RetryPolicy.initialize()

    assert policy.engine.config.timeout == 5.0
    assert policy.engine.config.polling_interval == 0.5
    assert policy.engine.config.message == ""
    assert policy.error_target.is_default


def test_initialize_applies_explicit_defaults() -> None:
    policy = RetryPolicy.initialize(defaults=WaitDefaults(timeout=2.0, polling_interval=0.1, message="svc"))

    assert policy.engine.config.timeout == 2.0
    assert policy.engine.config.polling_interval == 0.1
    assert policy.engine.config.message == "svc"


def test_initialize_reads_defaults_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIMPLE_WAIT_TIMEOUT", "250ms")

    assert RetryPolicy.initialize().engine.config.timeout == 0.25


def test_fluent_setters_return_the_policy() -> None:
    policy = RetryPolicy.initialize()

    assert policy.timeout(3) is policy
    assert policy.polling_interval(0.1) is policy
    assert policy.message("m") is policy
    assert policy.ignore_exception_types(ResourceNotReadyError) is policy
    assert policy.throw(ResourceNotReadyError) is policy
    assert policy.engine.config.timeout == 3.0
    assert policy.engine.config.ignored_exception_kinds == (ResourceNotReadyError,)


def test_timeout_none_keeps_the_current_timeout() -> None:
    policy = RetryPolicy.initialize().timeout(2.0).timeout(None)

    assert policy.engine.config.timeout == 2.0


def test_negative_timeout_is_rejected() -> None:
    with pytest.raises(InvalidWaitConfigurationError, match="timeout"):
        RetryPolicy.initialize().timeout(-1)


def test_ignoring_a_non_exception_type_is_rejected() -> None:
    with pytest.raises(InvalidWaitConfigurationError, match="must derive from Exception"):
        RetryPolicy.initialize().ignore_exception_types(str)  # type: ignore[arg-type]


def test_execute_returns_when_condition_becomes_true() -> None:
    condition = CountingCondition([False, True])

    _policy().execute(condition)

    assert condition.call_count == 2


def test_execute_raises_wait_timeout_error_by_default() -> None:
    with pytest.raises(WaitTimeoutError, match="^Timed out after 1 seconds: service$"):
        _policy().message("service").execute(lambda: False)


def test_execute_for_value_returns_the_value() -> None:
    producer = CountingCondition([None, None, "42"])

    assert _policy(auto_advance_seconds=0.25).execute_for_value(producer) == "42"
    assert producer.call_count == 3


def test_execute_result_returns_the_success_value() -> None:
    assert _policy().execute_result(CountingCondition([NOT_YET, Success(value=3)])) == 3


def test_ignored_errors_do_not_escape_the_facade() -> None:
    condition = CountingCondition([ResourceNotReadyError(), True])

    _policy().ignore_exception_types(ResourceNotReadyError).execute(condition)

    assert condition.call_count == 2


def test_configured_type_is_raised_with_timeout_as_cause() -> None:
    with pytest.raises(ResourceNotReadyError) as exc_info:
        _policy().throw(ResourceNotReadyError).execute_for_value(lambda: None)

    assert isinstance(exc_info.value.__cause__, WaitTimeoutError)
    assert str(exc_info.value) == "Timed out after 1 seconds"


def test_configured_parameterless_type_is_raised_without_cause() -> None:
    with pytest.raises(ParameterlessError) as exc_info:
        _policy().throw(ParameterlessError).execute(lambda: False)

    assert exc_info.value.__cause__ is None


def test_configured_type_requiring_message_and_cause_is_constructed() -> None:
    with pytest.raises(MessageAndCauseError) as exc_info:
        _policy().throw(MessageAndCauseError).execute(lambda: False)

    assert str(exc_info.value) == "Timed out after 1 seconds"
    assert isinstance(exc_info.value.cause, WaitTimeoutError)
    assert exc_info.value.__cause__ is exc_info.value.cause


def test_unconstructible_configured_type_fails_loudly() -> None:
    with pytest.raises(ErrorConstructionFailedError) as exc_info:
        _policy().throw(PrivateConstructorError).execute(lambda: False)

    assert isinstance(exc_info.value.__cause__, WaitTimeoutError)


def test_throw_target_uses_explicit_constructor_table() -> None:
    target = ErrorTarget.from_factories(ResourceNotReadyError, with_message=ResourceNotReadyError)

    with pytest.raises(ResourceNotReadyError) as exc_info:
        _policy().throw_target(target).execute(lambda: False)

    assert exc_info.value.__cause__ is None


def test_execute_with_diagnostics_appends_description_of_last_value() -> None:
    statuses = CountingCondition(["PENDING", "RUNNING"])

    with pytest.raises(WaitTimeoutError) as exc_info:
        _policy().execute_with_diagnostics(
            statuses,
            is_success=lambda status: status == "DONE",
            describe=lambda status: f"status was {status}",
        )

    assert str(exc_info.value) == "Timed out after 1 seconds | status was RUNNING"


def test_execute_with_diagnostics_returns_accepted_value() -> None:
    result = _policy().execute_with_diagnostics(
        CountingCondition([1, 2, 3]),
        is_success=lambda value: value >= 2,
        describe=str,
    )

    assert result == 2


def test_execute_with_diagnostics_uses_configured_type() -> None:
    with pytest.raises(ResourceNotReadyError, match="count was 0"):
        _policy().throw(ResourceNotReadyError).execute_with_diagnostics(
            lambda: 0,
            is_success=lambda value: value > 0,
            describe=lambda value: f"count was {value}",
        )


def test_success_returns_true_when_condition_holds() -> None:
    assert _policy().success(lambda: True) is True


def test_success_returns_false_on_timeout() -> None:
    assert _policy().success(lambda: False) is False


def test_success_returns_false_when_configured_type_is_raised() -> None:
    assert _policy().throw(ResourceNotReadyError).success(lambda: False) is False


def test_success_with_value_predicate() -> None:
    producer = CountingCondition([1, 5])

    assert _policy().success(producer, is_success=lambda value: value > 3) is True
    assert producer.call_count == 2


def test_success_propagates_fatal_condition_errors() -> None:
    with pytest.raises(KeyError):
        _policy().success(CountingCondition([KeyError("missing")]))


def test_success_propagates_construction_failures() -> None:
    with pytest.raises(ErrorConstructionFailedError):
        _policy().throw(PrivateConstructorError).success(lambda: False)


def test_execute_rejects_non_boolean_conditions() -> None:
    with pytest.raises(InvalidWaitConfigurationError, match="must return a bool, got str"):
        _policy().ignore_exception_types(ValueError).execute(lambda: "no")  # type: ignore[arg-type,return-value]


def test_success_observes_cancellation(cancel_token: CancellationToken) -> None:
    cancel_token.cancel()

    with pytest.raises(WaitCancelledError):
        _policy().success(lambda: True, cancel_token=cancel_token)


def test_execute_observes_cancellation(cancel_token: CancellationToken) -> None:
    cancel_token.cancel()

    with pytest.raises(WaitCancelledError):
        _policy().execute(lambda: True, cancel_token)


def test_execute_async_translates_timeouts() -> None:
    async def condition() -> bool:
        return False

    with pytest.raises(ResourceNotReadyError):
        asyncio.run(_policy().throw(ResourceNotReadyError).execute_async(condition))


def test_execute_for_value_async_returns_value() -> None:
    values = iter([None, "ready"])

    async def producer() -> str | None:
        return next(values)

    assert asyncio.run(_policy().execute_for_value_async(producer)) == "ready"


def test_execute_result_async_returns_value() -> None:
    async def condition() -> Success[int]:
        return Success(value=9)

    assert asyncio.run(_policy().execute_result_async(condition)) == 9


def test_success_async_reports_outcome() -> None:
    assert asyncio.run(_policy().success_async(lambda: True)) is True
    assert asyncio.run(_policy().success_async(lambda: False)) is False


def test_execute_async_observes_cancellation(cancel_token: CancellationToken) -> None:
    cancel_token.cancel()

    with pytest.raises(WaitCancelledError):
        asyncio.run(_policy().execute_async(lambda: True, cancel_token))
