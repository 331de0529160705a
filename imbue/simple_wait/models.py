from pydantic import BaseModel
from pydantic import ConfigDict


class FrozenModel(BaseModel):
    """Base class for immutable pydantic models that prevent attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=False,
    )


class MutableModel(BaseModel):
    """Base class for mutable pydantic models.

    Assignments are validated, so a field that was constrained at construction
    (e.g. a non-negative duration) stays constrained when a setter changes it later.
    """

    model_config = ConfigDict(
        frozen=False,
        extra="forbid",
        arbitrary_types_allowed=False,
        validate_assignment=True,
    )
