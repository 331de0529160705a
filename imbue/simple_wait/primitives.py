from enum import StrEnum
from enum import auto
from typing import Any
from typing import Self

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema
from pydantic_core import core_schema


class UpperCaseStrEnum(StrEnum):
    """A StrEnum that automatically converts enum member names to uppercase values."""

    @staticmethod
    def _generate_next_value_(
        name: str,
        start: int,
        count: int,
        last_values: list[str],
    ) -> str:
        return name.upper()


class ErrorTargetKind(UpperCaseStrEnum):
    """Whether a timeout surfaces as the built-in WaitTimeoutError or as a caller-chosen error type."""

    DEFAULT = auto()
    CONFIGURED = auto()


class NonNegativeSeconds(float):
    """A duration in seconds. Zero is allowed (a zero timeout still evaluates the condition once)."""

    def __new__(cls, value: float) -> Self:
        if value < 0:
            raise ValueError(f"{cls.__name__} must be >= 0, got {value}")
        return super().__new__(cls, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.float_schema(ge=0),
        )


def format_seconds(seconds: float) -> str:
    """Render a duration the way timeout messages show it: whole numbers without a trailing '.0'."""
    as_float = float(seconds)
    if as_float.is_integer():
        return str(int(as_float))
    return repr(as_float)
