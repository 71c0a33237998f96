"""Row cache for one open grid view.

The cache owns the view's ordered row list and keeps it consistent under
row changesets pushed by the remote source. Every structural change is
published together with a change reason describing exactly what happened,
so a virtualized list can apply an incremental patch:

- deletions first, recording (index, row) against the pre-removal list
- insertions next, in ascending index order against the post-deletion list
- updates last, replacing rows in place by index

Row data fetched on demand is cached as frozen snapshots.

Usage:
    cache = RowCache("grid", remote)
    cache.set_rows_and_fields(await remote.fetch_all_rows("grid"), fields)
    cache.start()

    token = cache.add_listener(on_changed=lambda rows, reason: view.patch(rows, reason))
    row = await cache.get_row("r1")
    ...
    cache.dispose()
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..debug_trace import get_logger, perf_timer
from ..errors import GridCacheError, NotFoundError
from ..models.change_reason import (
    DeleteReason,
    InitialListState,
    InsertReason,
    RowChangeReason,
    UpdateReason,
)
from ..models.field import Field
from ..models.row import GridRow, InsertedRow, Row, RowOrder, RowsChangeset
from .remote_source import RemoteSource, Subscription

logger = get_logger(__name__)

RowsChangedListener = Callable[[list[GridRow], RowChangeReason], None]


class RowListNotifier:
    """Holds the current row order and the reason for the last change.

    Listeners are notified for insert/delete/update reasons only; the
    initial reason is a silent baseline.
    """

    def __init__(self) -> None:
        self._rows: list[GridRow] = []
        self._change_reason: RowChangeReason = InitialListState()
        self._listeners: list[Callable[[], None]] = []

    @property
    def rows(self) -> list[GridRow]:
        return self._rows

    @property
    def change_reason(self) -> RowChangeReason:
        return self._change_reason

    def update_rows(self, rows: list[GridRow], change_reason: RowChangeReason) -> None:
        self._rows = rows
        self._change_reason = change_reason
        if change_reason.notifies:
            self._notify_listeners()

    def add_listener(self, callback: Callable[[], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify_listeners(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Row list listener failed")

    def dispose(self) -> None:
        self._listeners.clear()


class RowCache:
    """Ordered rows of a view plus on-demand row data snapshots."""

    def __init__(self, view_id: str, remote: RemoteSource) -> None:
        self.view_id = view_id
        self._remote = remote

        # row_id -> frozen Row snapshot
        self._row_data: dict[str, Row] = {}

        self._fields: tuple[Field, ...] = ()
        self._notifier = RowListNotifier()
        self._subscription: Subscription | None = None
        self._disposed = False

    # --- Lifecycle ---

    def start(self) -> None:
        """Subscribe to the view's row changesets."""
        if self._subscription is not None or self._disposed:
            return
        self._subscription = self._remote.subscribe_row_changes(self.view_id, self.apply_changeset)

    def dispose(self) -> None:
        """Release the remote subscription and all listeners."""
        if self._disposed:
            logger.error(f"RowCache({self.view_id!r}) should only dispose once")
            return
        self._disposed = True
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._notifier.dispose()
        self._row_data.clear()

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # --- Observing ---

    def current_rows(self) -> list[GridRow]:
        """Return a copy of the current ordered row list."""
        return list(self._notifier.rows)

    @property
    def change_reason(self) -> RowChangeReason:
        return self._notifier.change_reason

    @property
    def fields(self) -> tuple[Field, ...]:
        return self._fields

    def add_listener(
        self,
        on_changed: RowsChangedListener,
        listen_when: Callable[[], bool] | None = None,
    ) -> Callable[[], None]:
        """Register for row list changes.

        Args:
            on_changed: Called with (rows copy, change reason) after each
                structural change.
            listen_when: Optional gate; the call is skipped when it returns False.

        Returns:
            Token to pass to remove_listener().
        """

        def listener() -> None:
            if listen_when is not None and not listen_when():
                return
            on_changed(self.current_rows(), self._notifier.change_reason)

        self._notifier.add_listener(listener)
        return listener

    def remove_listener(self, token: Callable[[], None]) -> None:
        self._notifier.remove_listener(token)

    # --- Row Data ---

    def get_cached_row(self, row_id: str) -> Row | None:
        return self._row_data.get(row_id)

    async def get_row(self, row_id: str) -> Row | None:
        """Return row data, fetching and caching it if not cached yet.

        Concurrent calls for the same id may each fetch. The cached snapshot
        is only replaced by one with an equal or newer revision.
        """
        cached = self._row_data.get(row_id)
        if cached is not None:
            return cached

        try:
            row = await self._remote.fetch_row(self.view_id, row_id)
        except NotFoundError:
            logger.info(f"Row {row_id!r} not found in view {self.view_id!r}")
            return None
        except GridCacheError as e:
            logger.warning(f"Failed to fetch row {row_id!r}: {e}")
            return None

        snapshot = row.freeze()
        if self._disposed:
            return snapshot
        return self._store_row(snapshot)

    def _store_row(self, snapshot: Row) -> Row:
        existing = self._row_data.get(snapshot.id)
        if existing is not None and existing.revision > snapshot.revision:
            return existing
        self._row_data[snapshot.id] = snapshot
        return snapshot

    # --- Wholesale Reset ---

    def set_rows_and_fields(self, row_orders: Iterable[RowOrder], fields: Iterable[Field]) -> None:
        """Replace row order and fields. Publishes the silent initial reason."""
        self._fields = tuple(fields)
        rows = [GridRow.from_row_order(self.view_id, row_order, self._fields) for row_order in row_orders]
        self._notifier.update_rows(rows, InitialListState())

    def set_fields(self, fields: Iterable[Field]) -> None:
        """Swap the field set; rows are rebuilt silently with the new fields."""
        self._fields = tuple(fields)
        rows = [
            GridRow(view_id=row.view_id, row_id=row.row_id, fields=self._fields, height=row.height)
            for row in self._notifier.rows
        ]
        self._notifier.update_rows(rows, InitialListState())

    # --- Changesets ---

    def apply_changeset(self, changeset: RowsChangeset) -> None:
        """Apply deletions, then insertions, then updates.

        Each kind that changes the list publishes one reason, so a batch
        produces up to three notifications in that order.
        """
        if self._disposed or changeset.is_empty:
            return
        if changeset.view_id != self.view_id:
            logger.warning(f"Ignoring changeset for view {changeset.view_id!r} in {self.view_id!r}")
            return

        with perf_timer("apply_changeset", row_count=len(self._notifier.rows)):
            self._delete_rows(changeset.deleted_rows)
            self._insert_rows(changeset.inserted_rows)
            self._update_rows(changeset.updated_rows)

    def _delete_rows(self, deleted_row_ids: Iterable[str]) -> None:
        deleted = set(deleted_row_ids)
        if not deleted:
            return

        new_rows: list[GridRow] = []
        deleted_index: list[tuple[int, GridRow]] = []
        for index, row in enumerate(self._notifier.rows):
            if row.row_id in deleted:
                deleted_index.append((index, row))
            else:
                new_rows.append(row)

        for row_id in deleted:
            self._row_data.pop(row_id, None)

        if not deleted_index:
            return
        self._notifier.update_rows(new_rows, DeleteReason(tuple(deleted_index)))

    def _insert_rows(self, inserted_rows: Iterable[InsertedRow]) -> None:
        # Ascending order keeps later indexes valid as earlier rows shift the list
        ordered = sorted(inserted_rows, key=lambda inserted: inserted.index)
        if not ordered:
            return

        new_rows = list(self._notifier.rows)
        insert_indexes: list[tuple[int, str]] = []
        for inserted in ordered:
            index = inserted.index
            if index < 0 or index > len(new_rows):
                clamped = max(0, min(index, len(new_rows)))
                logger.warning(
                    f"Insert index {index} out of range for {len(new_rows)} rows, using {clamped}"
                )
                index = clamped
            grid_row = GridRow.from_row_order(self.view_id, inserted.row_order, self._fields)
            new_rows.insert(index, grid_row)
            insert_indexes.append((index, grid_row.row_id))

        self._notifier.update_rows(new_rows, InsertReason(tuple(insert_indexes)))

    def _update_rows(self, updated_rows: Iterable[RowOrder]) -> None:
        new_rows = list(self._notifier.rows)
        updated_indexes: list[int] = []
        for row_order in updated_rows:
            index = next(
                (i for i, row in enumerate(new_rows) if row.row_id == row_order.row_id),
                -1,
            )
            if index == -1:
                # Already deleted
                continue
            new_rows[index] = GridRow.from_row_order(self.view_id, row_order, self._fields)
            updated_indexes.append(index)
            self._row_data.pop(row_order.row_id, None)

        if not updated_indexes:
            return
        self._notifier.update_rows(new_rows, UpdateReason(tuple(updated_indexes)))
