"""Debug tracing utilities for the grid cache layer.

Enable tracing by setting GRIDCACHE_DEBUG=1, which sends output to the console.
The DEBUG_PERF flag controls whether performance timing is logged.

Usage:
    from ..debug_trace import get_logger, perf_timer

    logger = get_logger(__name__)

    # Simple logging
    logger.debug("Applying changeset")

    # Performance timing (only logs if DEBUG_PERF is True)
    with perf_timer("apply_changeset", row_count=5000):
        apply()
"""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import contextmanager

# Global flag to enable/disable performance tracing
DEBUG_PERF = True

# Environment variable that switches console debug output on
DEBUG_ENV_VAR = "GRIDCACHE_DEBUG"

# Package logger; module loggers are its children
logger = logging.getLogger("gridcache")


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger for a module name."""
    if name == "gridcache" or name.startswith("gridcache."):
        return logging.getLogger(name)
    return logger.getChild(name)


def is_debug_enabled() -> bool:
    """True if the debug environment variable is set to a truthy value."""
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in ("1", "true", "yes", "on")


def setup_debug_logging(force: bool = False) -> None:
    """Configure logging for debug mode (console output).

    Call this once at startup. Does nothing if the package logger already
    has handlers, unless force is True.
    """
    if logger.handlers and not force:
        return

    if is_debug_enabled() and sys.stdout is not None:
        logger.setLevel(logging.DEBUG)
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(
            "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    else:
        # In non-debug mode, only log warnings and above
        logger.setLevel(logging.WARNING)


@contextmanager
def perf_timer(operation: str, row_count: int | None = None):
    """Context manager for timing operations.

    Args:
        operation: Name of the operation being timed
        row_count: Optional row count for context

    Example:
        with perf_timer("apply_changeset", row_count=len(rows)):
            cache.apply_changeset(changeset)
    """
    if not DEBUG_PERF:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if row_count is not None:
            logger.debug(f"PERF: {operation} ({row_count} rows) took {elapsed_ms:.2f}ms")
        else:
            logger.debug(f"PERF: {operation} took {elapsed_ms:.2f}ms")


# Initialize logging when module is imported
setup_debug_logging()
