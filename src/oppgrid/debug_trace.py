"""Logging and timing helpers shared by every oppgrid module.

Console output is switched on by the oppgrid-debug entry point. Timing lines
are only measured and emitted while the "oppgrid" logger is at DEBUG, so the
helpers cost nothing in a normal run.

Usage:
    from .debug_trace import logger, perf_timer

    with perf_timer("commit", row_count=12):
        store.commit(records)
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from contextlib import contextmanager
from functools import wraps

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

logger = logging.getLogger("oppgrid")


def setup_debug_logging(debug: bool = False) -> None:
    """Attach a console handler at DEBUG, or raise the threshold to WARNING.

    Calling it again after a handler exists is a no-op.
    """
    if logger.handlers:
        return
    if not debug or sys.stdout is None:
        logger.setLevel(logging.WARNING)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


@contextmanager
def perf_timer(operation: str, row_count: int | None = None):
    """Log how long the with-block took, in milliseconds."""
    if not logger.isEnabledFor(logging.DEBUG):
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        subject = operation if row_count is None else f"{operation} ({row_count} rows)"
        logger.debug(f"PERF: {subject} took {elapsed_ms:.2f}ms")


def log_perf(func: Callable) -> Callable:
    """Decorator form of perf_timer, named after the wrapped function."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        with perf_timer(func.__qualname__):
            return func(*args, **kwargs)

    return wrapper
