import functools
import inspect
from collections.abc import Awaitable
from collections.abc import Callable
from typing import Any
from typing import TypeVar

from loguru import logger
from pydantic import Field

from imbue.simple_wait.cancellation import CancellationToken
from imbue.simple_wait.clock import ClockInterface
from imbue.simple_wait.clock import SystemClock
from imbue.simple_wait.config import WaitConfig
from imbue.simple_wait.errors import InvalidWaitConfigurationError
from imbue.simple_wait.errors import WaitTimeoutError
from imbue.simple_wait.logging import log_span
from imbue.simple_wait.models import MutableModel
from imbue.simple_wait.primitives import format_seconds
from imbue.simple_wait.results import NotYet
from imbue.simple_wait.results import Success
from imbue.simple_wait.results import from_bool
from imbue.simple_wait.results import from_optional

T = TypeVar("T")


def build_timeout_message(timeout_seconds: float, message: str) -> str:
    timeout_message = f"Timed out after {format_seconds(timeout_seconds)} seconds"
    if message:
        timeout_message += ": " + message
    return timeout_message


def _describe(condition: Callable[..., Any]) -> str:
    return getattr(condition, "__qualname__", None) or repr(condition)


def _require_condition(condition: Callable[..., Any] | None) -> None:
    if condition is None:
        raise InvalidWaitConfigurationError("condition cannot be None")


def _require_poll_result(result: object) -> Success[Any] | NotYet:
    if not isinstance(result, (Success, NotYet)):
        raise InvalidWaitConfigurationError(
            f"Condition must return Success or NotYet, got {type(result).__name__}"
        )
    return result


def _token_or_never(cancel_token: CancellationToken | None) -> CancellationToken:
    return cancel_token if cancel_token is not None else CancellationToken.never()


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class _Attempts:
    """Per-call loop state: the deadline, the attempt counter and the last ignored error."""

    def __init__(self, config: WaitConfig, clock: ClockInterface, cancel_token: CancellationToken) -> None:
        # Snapshot so that edits to the engine's config only affect the next call.
        self.config = config.model_copy()
        self.timeout = float(config.timeout)
        self.polling_interval = float(config.polling_interval)
        self.clock = clock
        self.cancel_token = cancel_token
        self.deadline = clock.later_by(self.timeout)
        self.count = 0
        self.last_error: Exception | None = None

    def start(self) -> None:
        self.cancel_token.raise_if_cancelled()
        self.count += 1

    def record_error(self, error: Exception) -> None:
        """Remember an ignored error, or re-raise it if it is not ignored."""
        if not self.config.is_ignored(error):
            logger.debug("Condition raised {} on attempt {}, giving up", type(error).__name__, self.count)
            raise error
        logger.debug("Ignoring {} raised on attempt {}: {}", type(error).__name__, self.count, error)
        self.last_error = error

    def raise_if_expired(self) -> None:
        if self.clock.is_before(self.deadline):
            logger.trace("Condition not met on attempt {}", self.count)
            return
        # A cancellation that raced with the deadline still wins over the timeout.
        self.cancel_token.raise_if_cancelled()
        timeout_message = build_timeout_message(self.timeout, self.config.message)
        logger.debug("{} ({} attempts)", timeout_message, self.count)
        raise WaitTimeoutError(
            timeout_message,
            timeout_seconds=self.timeout,
            last_error=self.last_error,
        ) from self.last_error


class WaitEngine(MutableModel):
    """Polls a condition until it succeeds, the timeout elapses, or the caller cancels.

    The condition returns Success(value) or NOT_YET: Success ends the wait and returns value,
    NotYet polls again after polling_interval. Exceptions whose type is in the config's
    ignored_exception_kinds are swallowed (the last one becomes the cause of the eventual
    WaitTimeoutError); any other exception propagates unchanged.

    The deadline is computed once per call and checked only after each evaluation, so a
    condition that already holds succeeds even with a zero timeout.
    """

    config: WaitConfig = Field(default_factory=WaitConfig, description="Polling configuration")
    clock: ClockInterface = Field(default_factory=SystemClock, description="Clock used to measure the deadline")

    @classmethod
    def build(cls, clock: ClockInterface, config: WaitConfig | None = None) -> "WaitEngine":
        """Build an engine on an explicit clock. WaitEngine() uses the SystemClock instead."""
        if clock is None:
            raise InvalidWaitConfigurationError("clock cannot be None")
        return cls(config=config if config is not None else WaitConfig(), clock=clock)

    def execute(
        self,
        condition: Callable[[], Success[T] | NotYet],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Evaluate condition repeatedly on the calling thread until it returns Success."""
        _require_condition(condition)
        attempts = _Attempts(self.config, self.clock, _token_or_never(cancel_token))
        with log_span(
            "Waiting for {}",
            _describe(condition),
            timeout=attempts.timeout,
            polling_interval=attempts.polling_interval,
        ):
            while True:
                attempts.start()
                try:
                    result = condition()
                except Exception as e:
                    attempts.record_error(e)
                else:
                    if isinstance(_require_poll_result(result), Success):
                        logger.trace("Condition met on attempt {}", attempts.count)
                        return result.value
                attempts.raise_if_expired()
                # Returns early when cancelled; the next iteration raises.
                attempts.cancel_token.wait(attempts.polling_interval)

    async def execute_async(
        self,
        condition: Callable[[], Success[T] | NotYet | Awaitable[Success[T] | NotYet]],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Like execute, but awaits async conditions and sleeps without blocking the event loop.

        Each evaluation is awaited to completion before the next one starts. Cancelling the
        token during the inter-poll delay raises WaitCancelledError from the delay itself.
        """
        _require_condition(condition)
        attempts = _Attempts(self.config, self.clock, _token_or_never(cancel_token))
        with log_span(
            "Waiting for {}",
            _describe(condition),
            timeout=attempts.timeout,
            polling_interval=attempts.polling_interval,
        ):
            while True:
                attempts.start()
                try:
                    result = await _resolve(condition())
                except Exception as e:
                    attempts.record_error(e)
                else:
                    if isinstance(_require_poll_result(result), Success):
                        logger.trace("Condition met on attempt {}", attempts.count)
                        return result.value
                attempts.raise_if_expired()
                await attempts.cancel_token.sleep(attempts.polling_interval)

    def until_true(
        self,
        condition: Callable[[], bool],
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        """Wait until condition returns True."""
        _require_condition(condition)

        @functools.wraps(condition)
        def evaluate() -> Success[bool] | NotYet:
            return from_bool(condition())

        return self.execute(evaluate, cancel_token)

    def until_value(
        self,
        producer: Callable[[], T | None],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        """Wait until producer returns something other than None, and return it."""
        _require_condition(producer)

        @functools.wraps(producer)
        def evaluate() -> Success[T] | NotYet:
            return from_optional(producer())

        return self.execute(evaluate, cancel_token)

    async def until_true_async(
        self,
        condition: Callable[[], bool | Awaitable[bool]],
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        _require_condition(condition)

        @functools.wraps(condition)
        async def evaluate() -> Success[bool] | NotYet:
            return from_bool(await _resolve(condition()))

        return await self.execute_async(evaluate, cancel_token)

    async def until_value_async(
        self,
        producer: Callable[[], T | None | Awaitable[T | None]],
        cancel_token: CancellationToken | None = None,
    ) -> T:
        _require_condition(producer)

        @functools.wraps(producer)
        async def evaluate() -> Success[T] | NotYet:
            return from_optional(await _resolve(producer()))

        return await self.execute_async(evaluate, cancel_token)
