class BaseSimpleWaitError(Exception):
    """Base exception for all simple_wait errors."""


class InvalidWaitConfigurationError(BaseSimpleWaitError, ValueError):
    """Raised when a wait is configured or invoked with invalid arguments.

    These are never retried: the wait fails before (or instead of) polling.
    """


class SettingsError(InvalidWaitConfigurationError):
    """Raised when wait defaults cannot be loaded from a config file or the environment."""


class WaitTimeoutError(BaseSimpleWaitError, TimeoutError):
    """Raised when the deadline passes before the condition succeeded.

    last_error is the most recent ignored exception raised by the condition (if any).
    It is also attached as __cause__ when the wait engine raises this error.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: float | None = None,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.timeout_seconds = timeout_seconds
        self.last_error = last_error


class WaitCancelledError(BaseSimpleWaitError):
    """Raised when the cancellation token fires while waiting.

    This is never reported as a timeout, no matter how close to the deadline it happens.
    """


class ErrorConstructionFailedError(BaseSimpleWaitError):
    """Raised when a configured error type could not be built by any of its constructor strategies."""

    def __init__(self, target_kind: type[BaseException]) -> None:
        self.target_kind = target_kind
        super().__init__(f"Failed to create exception of type {target_kind.__module__}.{target_kind.__qualname__}")
