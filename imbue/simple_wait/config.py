from typing import Final

from pydantic import ConfigDict
from pydantic import Field

from imbue.simple_wait.errors import InvalidWaitConfigurationError
from imbue.simple_wait.models import MutableModel
from imbue.simple_wait.primitives import NonNegativeSeconds

DEFAULT_ENGINE_TIMEOUT_SECONDS: Final[float] = 0.5
DEFAULT_POLLING_INTERVAL_SECONDS: Final[float] = 0.5


class WaitConfig(MutableModel):
    """How a single wait polls its condition.

    Changes take effect on the next call to execute; mutating a config while a call
    is in flight is not supported.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    timeout: NonNegativeSeconds = Field(
        default=NonNegativeSeconds(DEFAULT_ENGINE_TIMEOUT_SECONDS),
        description="How long to keep polling, in seconds",
    )
    polling_interval: NonNegativeSeconds = Field(
        default=NonNegativeSeconds(DEFAULT_POLLING_INTERVAL_SECONDS),
        description="How long to sleep between evaluations, in seconds",
    )
    message: str = Field(
        default="",
        description="Appended to the timeout message when non-empty",
    )
    ignored_exception_kinds: tuple[type[Exception], ...] = Field(
        default=(),
        description="Exceptions (including subclasses) raised by the condition that do not end the wait",
    )

    def ignore_exception_types(self, *kinds: type[Exception]) -> None:
        """Add exception types that should be swallowed while polling.

        Any exception not listed here (or a subclass of something listed) propagates
        immediately and terminates the wait.
        """
        for kind in kinds:
            if not isinstance(kind, type) or not issubclass(kind, Exception):
                raise InvalidWaitConfigurationError(
                    f"All types to be ignored must derive from Exception, got {kind!r}"
                )
        self.ignored_exception_kinds = (*self.ignored_exception_kinds, *kinds)

    def is_ignored(self, error: BaseException) -> bool:
        """Whether error should be swallowed. Misconfigured waits are never ignored, even when ValueError is."""
        if isinstance(error, InvalidWaitConfigurationError):
            return False
        return isinstance(error, self.ignored_exception_kinds)
