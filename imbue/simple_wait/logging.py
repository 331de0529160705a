import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from typing import Final

from loguru import logger

_LOG_FORMAT: Final[str] = (
    "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging with the specified level.

    Library code never calls this; applications and test runs that want to see the
    wait engine's debug output do.
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_LOG_FORMAT)


@contextmanager
def log_span(message: str, *args: Any, **context: Any) -> Iterator[None]:
    """Context manager that logs a debug message on entry and a trace message with timing on exit.

    Keyword arguments are bound with logger.contextualize, so every message logged
    inside the span (e.g. one per poll attempt) carries them as extra fields.
    """
    with logger.contextualize(**context):
        logger.debug(message, *args)
        start_time = time.monotonic()
        try:
            yield
        except BaseException:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [failed after {:.5f} sec]", *args, elapsed)
            raise
        else:
            elapsed = time.monotonic() - start_time
            logger.trace(message + " [done in {:.5f} sec]", *args, elapsed)
