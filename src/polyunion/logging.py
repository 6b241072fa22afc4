"""
Logging for polyunion.

Everything goes to the ``polyunion`` logger, which writes to stdout unless
the application installs its own handlers. Faults confined to a single row
are logged at debug where they are raised: whether they abort the batch or
become a null row is decided by the caller, which reports the outcome.
"""

import logging
import sys
import time
from functools import wraps
from typing import Union

from .errors import ROW_ERRORS

logger = logging.getLogger("polyunion")
logger.setLevel(logging.INFO)

if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s: %(message)s"))
    logger.addHandler(_handler)


def _failure_level(error: BaseException) -> int:
    return logging.DEBUG if isinstance(error, ROW_ERRORS) else logging.ERROR


def log_errors(func):
    """Log a failure of ``func`` with its name, then re-raise it unchanged."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.log(_failure_level(e), f"{func.__qualname__} rejected its input: {e}")
            raise

    return wrapper


def log_timing(stage: str):
    """Decorator factory timing one pipeline stage at debug level."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.log(_failure_level(e), f"{stage} failed after {elapsed:.2f}ms: "
                                              f"{type(e).__name__}: {e}")
                raise
            logger.debug(f"{stage} took {(time.perf_counter() - start) * 1000:.2f}ms")
            return result

        return wrapper

    return decorator


def set_log_level(level: Union[str, int]) -> None:
    """Set the level of the ``polyunion`` logger by name or number."""
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        if not isinstance(value, int):
            raise ValueError(f"unknown log level {level!r}")
        level = value
    logger.setLevel(level)


def log_row_failure(function: str, row: int, error: Exception) -> None:
    """A row was replaced by null instead of aborting the batch."""
    logger.warning(f"{function}: row {row} produced null: {type(error).__name__}: {error}")


def log_batch_summary(function: str, rows: int, elapsed_ms: float, workers: int = 1) -> None:
    logger.debug(f"{function}: {rows} rows in {elapsed_ms:.2f}ms using {workers} worker(s)")
