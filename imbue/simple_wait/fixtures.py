from collections.abc import Generator
from typing import Any

import pytest
from loguru import logger

from imbue.simple_wait.cancellation import CancellationToken
from imbue.simple_wait.testing import ManualClock

# Environment variables read by WaitDefaults.load(); cleared for every test so a developer's
# shell settings never leak into assertions about defaults.
_SIMPLE_WAIT_ENV_VARS = (
    "SIMPLE_WAIT_CONFIG",
    "SIMPLE_WAIT_TIMEOUT",
    "SIMPLE_WAIT_POLLING_INTERVAL",
    "SIMPLE_WAIT_MESSAGE",
    "SIMPLE_WAIT_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_simple_wait_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for env_var in _SIMPLE_WAIT_ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cancel_token() -> CancellationToken:
    return CancellationToken.build()


@pytest.fixture
def log_messages() -> Generator[list[str], None, None]:
    """Capture every loguru message (TRACE and up) emitted during the test."""
    captured_messages: list[str] = []

    def sink(message: Any) -> None:
        captured_messages.append(message.record["message"])

    handler_id = logger.add(sink, level="TRACE", format="{message}")
    try:
        yield captured_messages
    finally:
        logger.remove(handler_id)
