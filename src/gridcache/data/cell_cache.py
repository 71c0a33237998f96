"""Keyed in-memory store of last-loaded cell values."""

from __future__ import annotations

from typing import Any

from ..models.row import CacheKey


class CellCache:
    """Maps (row id, field id) to the last loaded value of that cell.

    At most one value per key. Entries are overwritten on reload and never
    merged; there is no eviction because the cache lives only as long as
    the view that owns it.
    """

    def __init__(self, view_id: str) -> None:
        self.view_id = view_id
        self._values: dict[CacheKey, Any] = {}

    def get(self, key: CacheKey) -> Any | None:
        """Return the cached value, or None if the key was never loaded."""
        return self._values.get(key)

    def insert(self, key: CacheKey, value: Any) -> None:
        """Store a value, replacing whatever was cached under the key."""
        self._values[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def dispose(self) -> None:
        """Drop all entries (the owning view closed)."""
        self._values.clear()
