import time
from abc import ABC
from abc import abstractmethod

from imbue.simple_wait.models import MutableModel


class ClockInterface(MutableModel, ABC):
    """Source of time for measuring wait deadlines.

    Instants are plain floats in seconds. Only differences between instants from the
    same clock are meaningful.
    """

    @abstractmethod
    def now(self) -> float:
        """Return the current instant."""

    def later_by(self, delay: float) -> float:
        """Return the instant that is delay seconds after now."""
        return self.now() + delay

    def is_before(self, deadline: float) -> bool:
        """Return whether the current instant precedes deadline."""
        return self.now() < deadline


class SystemClock(ClockInterface):
    """Clock backed by time.monotonic, so wall-clock adjustments never shorten or extend a wait."""

    def now(self) -> float:
        return time.monotonic()
