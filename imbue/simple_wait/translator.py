"""Turning a wait timeout into the error type the caller asked for.

A caller can ask for timeouts to surface as their own exception type instead of
WaitTimeoutError. The translator builds that exception from an explicit, ordered table of
constructor strategies rather than by inspecting the type at runtime:

1. with_message_and_cause(message, timeout_error): raised `from` the timeout so the
   original WaitTimeoutError stays reachable as __cause__
2. with_message(message): raised `from None`, the message survives but the cause does not
3. without_arguments(): raised `from None`, neither message nor cause survive

If no strategy produces an instance of the target type, ErrorConstructionFailedError is
raised (chained from the timeout) instead of quietly falling back to WaitTimeoutError.
"""

from collections.abc import Callable
from typing import NoReturn

from loguru import logger
from pydantic import ConfigDict
from pydantic import Field

from imbue.simple_wait.errors import ErrorConstructionFailedError
from imbue.simple_wait.errors import InvalidWaitConfigurationError
from imbue.simple_wait.errors import WaitTimeoutError
from imbue.simple_wait.models import FrozenModel
from imbue.simple_wait.primitives import ErrorTargetKind


class ErrorTarget(FrozenModel):
    """The exception type a timeout should surface as, plus the ways to construct it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: type[Exception] = Field(description="The exception type raised on timeout")
    kind_tag: ErrorTargetKind = Field(description="Whether kind is the built-in timeout type or a caller choice")
    with_message_and_cause: Callable[[str, WaitTimeoutError], Exception] | None = Field(default=None)
    with_message: Callable[[str], Exception] | None = Field(default=None)
    without_arguments: Callable[[], Exception] | None = Field(default=None)

    @classmethod
    def default(cls) -> "ErrorTarget":
        return cls(kind=WaitTimeoutError, kind_tag=ErrorTargetKind.DEFAULT)

    @classmethod
    def of(cls, kind: type[Exception]) -> "ErrorTarget":
        """Build the standard constructor table for an exception class.

        The first (message and cause) strategy calls kind(message), or kind(message, cause)
        for classes whose __init__ requires the cause too; either way the timeout is attached
        with `raise ... from`. Classes whose __init__ takes no arguments fall through to the
        last strategy.
        """
        _require_exception_class(kind)

        def with_message_and_cause(message: str, cause: WaitTimeoutError) -> Exception:
            try:
                return kind(message)
            except TypeError:
                return kind(message, cause)

        return cls(
            kind=kind,
            kind_tag=ErrorTargetKind.CONFIGURED,
            with_message_and_cause=with_message_and_cause,
            with_message=kind,
            without_arguments=kind,
        )

    @classmethod
    def from_factories(
        cls,
        kind: type[Exception],
        with_message_and_cause: Callable[[str, WaitTimeoutError], Exception] | None = None,
        with_message: Callable[[str], Exception] | None = None,
        without_arguments: Callable[[], Exception] | None = None,
    ) -> "ErrorTarget":
        _require_exception_class(kind)
        return cls(
            kind=kind,
            kind_tag=ErrorTargetKind.CONFIGURED,
            with_message_and_cause=with_message_and_cause,
            with_message=with_message,
            without_arguments=without_arguments,
        )

    @property
    def is_default(self) -> bool:
        return self.kind_tag == ErrorTargetKind.DEFAULT


def _require_exception_class(kind: object) -> None:
    if not isinstance(kind, type) or not issubclass(kind, Exception):
        raise InvalidWaitConfigurationError(f"Error target must be an Exception subclass, got {kind!r}")


def _try_construct(kind: type[Exception], strategy_name: str, build: Callable[[], object]) -> Exception | None:
    try:
        created = build()
    except Exception as e:
        logger.trace("Could not construct {} with {}: {!r}", kind.__name__, strategy_name, e)
        return None
    if not isinstance(created, kind):
        logger.trace("Constructing {} with {} produced a {}", kind.__name__, strategy_name, type(created).__name__)
        return None
    return created


def translate_timeout(
    target: ErrorTarget,
    timeout_error: WaitTimeoutError,
    override_message: str | None = None,
) -> NoReturn:
    """Raise the error a caller configured for timeouts. Never returns."""
    message = override_message if override_message is not None else str(timeout_error)

    if target.is_default:
        if override_message is None:
            raise timeout_error
        raise WaitTimeoutError(
            message,
            timeout_seconds=timeout_error.timeout_seconds,
            last_error=timeout_error.last_error,
        ) from timeout_error

    with_message_and_cause = target.with_message_and_cause
    if with_message_and_cause is not None:
        created = _try_construct(
            target.kind, "message and cause", lambda: with_message_and_cause(message, timeout_error)
        )
        if created is not None:
            raise created from timeout_error

    with_message = target.with_message
    if with_message is not None:
        created = _try_construct(target.kind, "message", lambda: with_message(message))
        if created is not None:
            raise created from None

    without_arguments = target.without_arguments
    if without_arguments is not None:
        created = _try_construct(target.kind, "no arguments", without_arguments)
        if created is not None:
            raise created from None

    logger.debug("No constructor strategy could build {}", target.kind.__name__)
    raise ErrorConstructionFailedError(target.kind) from timeout_error


def is_ignored_or_configured_timeout(error: BaseException, target: ErrorTarget) -> bool:
    """Whether error is timeout-shaped: a WaitTimeoutError, or an instance of a configured target kind."""
    if isinstance(error, WaitTimeoutError):
        return True
    if not target.is_default:
        return isinstance(error, target.kind)
    return False
