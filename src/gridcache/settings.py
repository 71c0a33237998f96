import os
from dataclasses import dataclass

from .debug_trace import get_logger, is_debug_enabled

logger = get_logger(__name__)

# Debounce window before a triggered reload actually fetches (coalesces bursts)
LOAD_DEBOUNCE_MS = 10

# Debounce window for deduplicated saves (coalesces keystroke-level edits)
SAVE_DEBOUNCE_MS = 300


@dataclass(frozen=True)
class CacheSettings:
    """Cache and controller settings."""

    load_debounce_ms: int = LOAD_DEBOUNCE_MS
    save_debounce_ms: int = SAVE_DEBOUNCE_MS
    debug: bool = False

    @classmethod
    def from_env(cls) -> "CacheSettings":
        """Build settings from GRIDCACHE_* environment variables."""
        return cls(
            load_debounce_ms=_env_int("GRIDCACHE_LOAD_DEBOUNCE_MS", LOAD_DEBOUNCE_MS),
            save_debounce_ms=_env_int("GRIDCACHE_SAVE_DEBOUNCE_MS", SAVE_DEBOUNCE_MS),
            debug=is_debug_enabled(),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = -1
    if value < 0:
        logger.warning(f"Ignoring {name}={raw!r}: expected a non-negative integer, using {default}")
        return default
    return value
