from typing import Generic
from typing import TypeVar

from imbue.simple_wait.errors import InvalidWaitConfigurationError
from imbue.simple_wait.models import FrozenModel

T = TypeVar("T")


class Success(FrozenModel, Generic[T]):
    """The condition holds; value is what the wait returns to its caller."""

    value: T


class NotYet(FrozenModel):
    """The condition does not hold yet; the wait should poll again."""


NOT_YET = NotYet()


def from_bool(flag: bool) -> "Success[bool] | NotYet":
    """Boolean discipline: True is success, False means keep polling. Anything else is a misuse."""
    if not isinstance(flag, bool):
        raise InvalidWaitConfigurationError(f"Condition must return a bool, got {type(flag).__name__}")
    if flag:
        return Success(value=True)
    return NOT_YET


def from_optional(value: T | None) -> "Success[T] | NotYet":
    """Value discipline: any non-None value is success, None means keep polling."""
    if value is None:
        return NOT_YET
    return Success(value=value)
