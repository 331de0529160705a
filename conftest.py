"""Root conftest: registers shared fixtures and enforces a test suite time limit."""

import os
import time

import pytest

# Register fixture modules so pytest discovers fixtures defined in fixtures.py files.
pytest_plugins = [
    "imbue.simple_wait.fixtures",
]

# The whole suite runs against manual clocks or sub-second real waits, so anything slower
# than this means some wait is sleeping for real when it should not be.
_DEFAULT_MAX_DURATION_SECONDS = 60.0


@pytest.hookimpl(tryfirst=True)
def pytest_sessionstart(session: pytest.Session) -> None:
    setattr(session, "start_time", time.time())


@pytest.hookimpl(trylast=True)
def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    """Check that the total test session time is under the configured limit."""
    if not hasattr(session, "start_time"):
        return
    duration = time.time() - session.start_time

    # Allow explicit override via environment variable (useful when debugging slow machines)
    max_duration = float(os.environ.get("PYTEST_MAX_DURATION", _DEFAULT_MAX_DURATION_SECONDS))
    if duration > max_duration:
        pytest.exit(
            f"Test suite took {duration:.2f}s, exceeding the {max_duration}s limit",
            returncode=1,
        )
