"""Fan-out from field definition changes to the cells of that field.

Cell controllers register under their cache key. When a field changeset
updates a field, every callback registered under a key with that field id
is called, so controllers whose display depends on field configuration
can reload.
"""

from __future__ import annotations

from collections.abc import Callable

from ..debug_trace import get_logger
from ..models.field import FieldChangeset
from ..models.row import CacheKey
from .field_cache import FieldCache

logger = get_logger(__name__)

FieldChangedCallback = Callable[[], None]


class FieldChangeNotifier:
    """Registry of field-changed callbacks keyed by field id, then cache key."""

    def __init__(self, field_cache: FieldCache) -> None:
        self._field_cache = field_cache
        # field_id -> cache_key -> callbacks
        self._callbacks: dict[str, dict[CacheKey, list[FieldChangedCallback]]] = {}
        self._token = field_cache.add_listener(self._on_changeset)

    def register(self, key: CacheKey, callback: FieldChangedCallback) -> None:
        by_key = self._callbacks.setdefault(key.field_id, {})
        by_key.setdefault(key, []).append(callback)

    def unregister(self, key: CacheKey, callback: FieldChangedCallback) -> None:
        by_key = self._callbacks.get(key.field_id)
        if not by_key or key not in by_key:
            return
        callbacks = by_key[key]
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            del by_key[key]
        if not by_key:
            del self._callbacks[key.field_id]

    def registered_count(self, field_id: str | None = None) -> int:
        """Number of registered callbacks, optionally for one field."""
        registries = (
            [self._callbacks.get(field_id, {})] if field_id is not None else self._callbacks.values()
        )
        return sum(len(callbacks) for by_key in registries for callbacks in by_key.values())

    def _on_changeset(self, changeset: FieldChangeset) -> None:
        for field in changeset.updated_fields:
            by_key = self._callbacks.get(field.id)
            if not by_key:
                continue
            # Snapshot: callbacks may unregister while we iterate
            for callbacks in list(by_key.values()):
                for callback in list(callbacks):
                    try:
                        callback()
                    except Exception:
                        logger.exception(f"Field changed callback for {field.id!r} failed")

    def dispose(self) -> None:
        self._field_cache.remove_listener(self._token)
        self._callbacks.clear()
