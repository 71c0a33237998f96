"""Client-side copy of a view's field definitions.

FieldCache keeps the ordered field list current under field changesets from
the remote source, and fans each changeset out to registered listeners.
Loaders read fresh field references here right before parsing, so a parse
always follows the latest field configuration.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..debug_trace import get_logger
from ..models.field import Field, FieldChangeset
from .remote_source import RemoteSource, Subscription

logger = get_logger(__name__)

FieldChangesetListener = Callable[[FieldChangeset], None]


class FieldCache:
    """Ordered field definitions for one view.

    Usage:
        cache = FieldCache("grid", remote)
        cache.set_fields(await remote.fetch_fields("grid"))
        cache.start()

        token = cache.add_listener(on_changeset)
        ...
        cache.remove_listener(token)
        cache.dispose()
    """

    def __init__(self, view_id: str, remote: RemoteSource) -> None:
        self.view_id = view_id
        self._remote = remote
        self._fields: list[Field] = []
        self._listeners: list[FieldChangesetListener] = []
        self._subscription: Subscription | None = None
        self._disposed = False

    @property
    def fields(self) -> tuple[Field, ...]:
        return tuple(self._fields)

    def field(self, field_id: str) -> Field | None:
        """Return the current definition of a field, or None if deleted."""
        for field in self._fields:
            if field.id == field_id:
                return field
        return None

    def set_fields(self, fields: Iterable[Field]) -> None:
        """Replace the field list wholesale (initial load, no notification)."""
        self._fields = list(fields)

    def start(self) -> None:
        """Subscribe to field changesets from the remote source."""
        if self._subscription is not None or self._disposed:
            return
        self._subscription = self._remote.subscribe_field_changes(self.view_id, self.apply_changeset)

    def apply_changeset(self, changeset: FieldChangeset) -> None:
        """Apply deletions, insertions and updates, then notify listeners."""
        if self._disposed or changeset.is_empty:
            return

        if changeset.deleted_field_ids:
            deleted = set(changeset.deleted_field_ids)
            self._fields = [field for field in self._fields if field.id not in deleted]

        for field in changeset.inserted_fields:
            if self.field(field.id) is None:
                self._fields.append(field)

        for field in changeset.updated_fields:
            for index, existing in enumerate(self._fields):
                if existing.id == field.id:
                    self._fields[index] = field
                    break
            else:
                logger.debug(f"Ignoring update for unknown field {field.id!r}")

        for listener in list(self._listeners):
            try:
                listener(changeset)
            except Exception:
                logger.exception("Field changeset listener failed")

    def add_listener(self, on_changeset: FieldChangesetListener) -> FieldChangesetListener:
        """Register a changeset listener. Returns the token for remove_listener()."""
        if on_changeset not in self._listeners:
            self._listeners.append(on_changeset)
        return on_changeset

    def remove_listener(self, token: FieldChangesetListener) -> None:
        if token in self._listeners:
            self._listeners.remove(token)

    def dispose(self) -> None:
        if self._disposed:
            logger.error(f"FieldCache({self.view_id!r}) should only dispose once")
            return
        self._disposed = True
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._listeners.clear()
