import math
import re
from typing import Final

from imbue.simple_wait.errors import SettingsError

_DURATION_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?:(\d+(?:\.\d+)?)\s*h)?\s*(?:(\d+(?:\.\d+)?)\s*m(?!s))?\s*(?:(\d+(?:\.\d+)?)\s*s)?\s*(?:(\d+(?:\.\d+)?)\s*ms)?$",
    re.IGNORECASE,
)


def parse_duration_to_seconds(duration_str: str) -> float:
    """Parse a human-readable duration string into seconds.

    Plain numbers are seconds ('2', '0.5'). Otherwise any combination of hours (h),
    minutes (m), seconds (s) and milliseconds (ms), in that order: '1m30s', '500ms', '1.5s'.
    Zero is a valid duration (a zero timeout still evaluates the condition once).
    """
    stripped = duration_str.strip()
    if not stripped:
        raise SettingsError(f"Invalid duration: '{duration_str}' (empty string)")

    try:
        plain_seconds = float(stripped)
    except ValueError:
        pass
    else:
        if not math.isfinite(plain_seconds) or plain_seconds < 0:
            raise SettingsError(f"Invalid duration: '{duration_str}'. Duration must be a finite, non-negative number.")
        return plain_seconds

    match = _DURATION_PATTERN.match(stripped)
    if match is None or not any(match.groups()):
        raise SettingsError(
            f"Invalid duration: '{duration_str}'. Expected format like '5', '0.5', '500ms', '5s', '2m', '1m30s'."
        )

    hours, minutes, seconds, milliseconds = (float(group) if group else 0.0 for group in match.groups())
    return hours * 3600 + minutes * 60 + seconds + milliseconds / 1000
