from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any
from typing import TypeVar

from pydantic import Field
from pydantic import ValidationError

from imbue.simple_wait.cancellation import CancellationToken
from imbue.simple_wait.clock import ClockInterface
from imbue.simple_wait.clock import SystemClock
from imbue.simple_wait.config import WaitConfig
from imbue.simple_wait.engine import WaitEngine
from imbue.simple_wait.errors import InvalidWaitConfigurationError
from imbue.simple_wait.errors import WaitTimeoutError
from imbue.simple_wait.models import MutableModel
from imbue.simple_wait.results import NOT_YET
from imbue.simple_wait.results import NotYet
from imbue.simple_wait.results import Success
from imbue.simple_wait.settings import WaitDefaults
from imbue.simple_wait.translator import ErrorTarget
from imbue.simple_wait.translator import is_ignored_or_configured_timeout
from imbue.simple_wait.translator import translate_timeout

T = TypeVar("T")


class _LastObserved(MutableModel):
    """The most recent value a diagnostics producer returned."""

    has_value: bool = False
    value: Any = None


class RetryPolicy(MutableModel):
    """Fluent facade over WaitEngine.

    Usage:
        RetryPolicy.initialize().timeout(10).polling_interval(0.2).ignore_exception_types(
            ConnectionError
        ).throw(MyTimeoutError).execute(lambda: service.is_ready())

    Timeouts surface as WaitTimeoutError unless throw()/throw_target() picked another type,
    in which case they go through translate_timeout.
    """

    engine: WaitEngine = Field(description="The engine that runs the poll loop")
    error_target: ErrorTarget = Field(
        default_factory=ErrorTarget.default,
        description="The error type timeouts are translated into",
    )

    @classmethod
    def initialize(
        cls,
        defaults: WaitDefaults | None = None,
        clock: ClockInterface | None = None,
    ) -> "RetryPolicy":
        resolved = defaults if defaults is not None else WaitDefaults.load()
        config = WaitConfig(
            timeout=resolved.timeout,
            polling_interval=resolved.polling_interval,
            message=resolved.message,
        )
        return cls(engine=WaitEngine.build(config=config, clock=clock if clock is not None else SystemClock()))

    # === Configuration ===

    def timeout(self, seconds: float | None) -> "RetryPolicy":
        """Set the timeout in seconds. None leaves the current timeout in place."""
        if seconds is not None:
            self._update_config("timeout", seconds)
        return self

    def polling_interval(self, seconds: float) -> "RetryPolicy":
        self._update_config("polling_interval", seconds)
        return self

    def message(self, message: str) -> "RetryPolicy":
        self._update_config("message", message)
        return self

    def ignore_exception_types(self, *kinds: type[Exception]) -> "RetryPolicy":
        self.engine.config.ignore_exception_types(*kinds)
        return self

    def throw(self, kind: type[Exception]) -> "RetryPolicy":
        """Surface timeouts as kind instead of WaitTimeoutError."""
        self.error_target = ErrorTarget.of(kind)
        return self

    def throw_target(self, error_target: ErrorTarget) -> "RetryPolicy":
        """Surface timeouts using an explicit constructor table."""
        self.error_target = error_target
        return self

    def _update_config(self, field_name: str, value: object) -> None:
        try:
            setattr(self.engine.config, field_name, value)
        except ValidationError as e:
            raise InvalidWaitConfigurationError(f"Invalid value for {field_name}: {value!r}") from e

    # === Synchronous operations ===

    def execute(self, condition: Callable[[], bool], cancel_token: CancellationToken | None = None) -> None:
        """Wait until condition returns True."""
        try:
            self.engine.until_true(condition, cancel_token)
        except WaitTimeoutError as e:
            translate_timeout(self.error_target, e)

    def execute_for_value(
        self,
        producer: Callable[[], T | None],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Wait until producer returns something other than None, and return it."""
        try:
            return self.engine.until_value(producer, cancel_token)
        except WaitTimeoutError as e:
            translate_timeout(self.error_target, e)

    def execute_result(
        self,
        condition: Callable[[], Success[T] | NotYet],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Wait until condition returns Success, and return its value."""
        try:
            return self.engine.execute(condition, cancel_token)
        except WaitTimeoutError as e:
            translate_timeout(self.error_target, e)

    def execute_with_diagnostics(
        self,
        producer: Callable[[], T],
        is_success: Callable[[T], bool],
        describe: Callable[[T], str],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Poll producer until is_success accepts its value, and return that value.

        On timeout the message is extended with describe(last value), e.g.
        "Timed out after 5 seconds | status was PENDING".
        """
        if producer is None or is_success is None or describe is None:
            raise InvalidWaitConfigurationError("producer, is_success and describe cannot be None")
        last_observed = _LastObserved()

        def evaluate() -> Success[T] | NotYet:
            value = producer()
            last_observed.value = value
            last_observed.has_value = True
            return Success(value=value) if is_success(value) else NOT_YET

        try:
            return self.engine.execute(evaluate, cancel_token)
        except WaitTimeoutError as e:
            diagnostic = describe(last_observed.value) if last_observed.has_value else "no value was produced"
            translate_timeout(self.error_target, e, f"{e} | {diagnostic}")

    def success(
        self,
        condition: Callable[[], Any],
        is_success: Callable[[Any], bool] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        """Return whether the wait eventually succeeded instead of raising on timeout.

        Without is_success, condition is a boolean condition. With it, condition produces a
        value and is_success decides whether that value counts. Errors other than timeouts
        (and the configured timeout type) still propagate.
        """
        boolean_condition = condition if is_success is None else _combine(condition, is_success)
        try:
            self.execute(boolean_condition, cancel_token)
        except Exception as e:
            if is_ignored_or_configured_timeout(e, self.error_target):
                return False
            raise
        return True

    # === Asynchronous operations ===

    async def execute_async(
        self,
        condition: Callable[[], bool | Awaitable[bool]],
        cancel_token: CancellationToken | None = None,
    ) -> None:
        try:
            await self.engine.until_true_async(condition, cancel_token)
        except WaitTimeoutError as e:
            translate_timeout(self.error_target, e)

    async def execute_for_value_async(
        self,
        producer: Callable[[], T | None | Awaitable[T | None]],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        try:
            return await self.engine.until_value_async(producer, cancel_token)
        except WaitTimeoutError as e:
            translate_timeout(self.error_target, e)

    async def execute_result_async(
        self,
        condition: Callable[[], Success[T] | NotYet | Awaitable[Success[T] | NotYet]],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        try:
            return await self.engine.execute_async(condition, cancel_token)
        except WaitTimeoutError as e:
            translate_timeout(self.error_target, e)

    async def success_async(
        self,
        condition: Callable[[], bool | Awaitable[bool]],
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        try:
            await self.execute_async(condition, cancel_token)
        except Exception as e:
            if is_ignored_or_configured_timeout(e, self.error_target):
                return False
            raise
        return True


def _combine(producer: Callable[[], T], is_success: Callable[[T], bool]) -> Callable[[], bool]:
    if producer is None:
        raise InvalidWaitConfigurationError("condition cannot be None")

    def evaluate() -> bool:
        return bool(is_success(producer()))

    return evaluate
