"""In-memory remote source implementation.

Holds fields, row order, and raw cell content per view, and pushes the same
notifications a real backend would: row changesets on row mutations,
cell-changed signals on cell writes, and field changesets on field edits.
Useful for tests and for embedding the caches without a server.

Usage:
    source = InMemoryRemoteSource()
    source.add_view("grid", fields=[Field("name", "Name", FieldType.RICH_TEXT)])
    source.insert_rows("grid", [(0, Row(id="r1"))])
    source.set_cell_raw("r1", "name", "Alice")
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from ..debug_trace import get_logger
from ..errors import NotFoundError
from ..models.constants import DEFAULT_ROW_HEIGHT
from ..models.field import Field, FieldChangeset
from ..models.row import Cell, InsertedRow, Row, RowOrder, RowsChangeset
from .remote_source import (
    CellChangedCallback,
    FieldChangesetCallback,
    RemoteSource,
    RowsChangesetCallback,
    Subscription,
)

logger = get_logger(__name__)


class InMemoryRemoteSource(RemoteSource):
    """Remote source that keeps everything in dicts.

    Row ids are unique across all views. Every query awaits once (or
    latency_ms) so callers see a real suspension point.
    """

    def __init__(self, latency_ms: int = 0) -> None:
        self._latency_ms = latency_ms

        # view_id -> ordered fields / ordered row ids
        self._fields: dict[str, list[Field]] = {}
        self._row_order: dict[str, list[str]] = {}

        # row_id -> owning view, height, revision
        self._row_view: dict[str, str] = {}
        self._heights: dict[str, int] = {}
        self._revisions: dict[str, int] = {}

        # (row_id, field_id) -> raw content
        self._cells: dict[tuple[str, str], str] = {}

        # Listener registries
        self._row_listeners: dict[str, list[RowsChangesetCallback]] = {}
        self._cell_listeners: dict[tuple[str, str], list[CellChangedCallback]] = {}
        self._field_listeners: dict[str, list[FieldChangesetCallback]] = {}

    # --- Setup ---

    def add_view(
        self,
        view_id: str,
        fields: Iterable[Field] = (),
        rows: Iterable[Row] = (),
    ) -> None:
        """Create a view with initial fields and rows (no notifications)."""
        self._fields[view_id] = list(fields)
        self._row_order[view_id] = []
        for row in rows:
            self._store_row(view_id, row)
            self._row_order[view_id].append(row.id)

    def _store_row(self, view_id: str, row: Row) -> None:
        self._row_view[row.id] = view_id
        self._heights[row.id] = row.height
        self._revisions[row.id] = max(row.revision, self._revisions.get(row.id, -1) + 1)
        for field_id, cell in row.cells.items():
            self._cells[(row.id, field_id)] = cell.content

    def row_ids(self, view_id: str) -> list[str]:
        return list(self._order(view_id))

    def _order(self, view_id: str) -> list[str]:
        if view_id not in self._row_order:
            raise NotFoundError(f"View {view_id!r} does not exist")
        return self._row_order[view_id]

    def _view_of(self, row_id: str) -> str:
        if row_id not in self._row_view:
            raise NotFoundError(f"Row {row_id!r} does not exist")
        return self._row_view[row_id]

    def _field_ids(self, view_id: str) -> list[str]:
        return [field.id for field in self._fields.get(view_id, [])]

    def _row_order_of(self, row_id: str) -> RowOrder:
        return RowOrder(row_id=row_id, height=self._heights.get(row_id, DEFAULT_ROW_HEIGHT))

    def _build_row(self, row_id: str) -> Row:
        view_id = self._view_of(row_id)
        cells = {
            field_id: Cell(field_id=field_id, content=self._cells[(row_id, field_id)])
            for field_id in self._field_ids(view_id)
            if (row_id, field_id) in self._cells
        }
        return Row(
            id=row_id,
            cells=cells,
            height=self._heights.get(row_id, DEFAULT_ROW_HEIGHT),
            revision=self._revisions.get(row_id, 0),
        )

    async def _io(self) -> None:
        await asyncio.sleep(self._latency_ms / 1000)

    # --- Server-side Mutations (push notifications) ---

    def insert_rows(self, view_id: str, rows: Iterable[tuple[int, Row]]) -> RowsChangeset:
        """Insert rows at indexes (applied in ascending index order)."""
        order = self._order(view_id)
        inserted: list[InsertedRow] = []
        for index, row in sorted(rows, key=lambda item: item[0]):
            self._store_row(view_id, row)
            index = max(0, min(index, len(order)))
            order.insert(index, row.id)
            inserted.append(InsertedRow(index=index, row_order=self._row_order_of(row.id)))
        changeset = RowsChangeset(view_id=view_id, inserted_rows=tuple(inserted))
        self.emit_rows_changeset(changeset)
        return changeset

    def update_row(self, view_id: str, row: Row) -> RowsChangeset:
        """Replace a row's height and cells and bump its revision."""
        if row.id not in self._order(view_id):
            raise NotFoundError(f"Row {row.id!r} is not in view {view_id!r}")
        self._store_row(view_id, row)
        changeset = RowsChangeset(view_id=view_id, updated_rows=(self._row_order_of(row.id),))
        self.emit_rows_changeset(changeset)
        return changeset

    def remove_rows(self, view_id: str, row_ids: Iterable[str]) -> RowsChangeset:
        order = self._order(view_id)
        removed = [row_id for row_id in row_ids if row_id in order]
        for row_id in removed:
            order.remove(row_id)
            self._forget_row(row_id)
        changeset = RowsChangeset(view_id=view_id, deleted_rows=tuple(removed))
        self.emit_rows_changeset(changeset)
        return changeset

    def _forget_row(self, row_id: str) -> None:
        self._row_view.pop(row_id, None)
        self._heights.pop(row_id, None)
        self._revisions.pop(row_id, None)
        for key in [key for key in self._cells if key[0] == row_id]:
            del self._cells[key]

    def set_cell_raw(self, row_id: str, field_id: str, raw: str) -> None:
        """Write a cell's raw content and signal the cell's listeners."""
        self._view_of(row_id)
        self._cells[(row_id, field_id)] = raw
        self._revisions[row_id] = self._revisions.get(row_id, 0) + 1
        self._notify(self._cell_listeners.get((row_id, field_id), []))

    def update_field(self, view_id: str, field: Field) -> FieldChangeset:
        """Replace a field definition and push a field changeset."""
        fields = self._fields.get(view_id)
        if fields is None:
            raise NotFoundError(f"View {view_id!r} does not exist")
        for index, existing in enumerate(fields):
            if existing.id == field.id:
                fields[index] = field
                break
        else:
            raise NotFoundError(f"Field {field.id!r} is not in view {view_id!r}")

        changeset = FieldChangeset(view_id=view_id, updated_fields=(field,))
        self.emit_field_changeset(changeset)
        return changeset

    def emit_rows_changeset(self, changeset: RowsChangeset) -> None:
        self._notify(self._row_listeners.get(changeset.view_id, []), changeset)

    def emit_field_changeset(self, changeset: FieldChangeset) -> None:
        self._notify(self._field_listeners.get(changeset.view_id, []), changeset)

    def _notify(self, callbacks: list[Callable[..., None]], *args: Any) -> None:
        # Copy: callbacks may unsubscribe while being notified
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Remote source listener failed")

    # --- Point Queries ---

    async def fetch_row(self, view_id: str, row_id: str) -> Row:
        await self._io()
        if row_id not in self._order(view_id):
            raise NotFoundError(f"Row {row_id!r} is not in view {view_id!r}")
        return self._build_row(row_id)

    async def fetch_all_rows(self, view_id: str) -> list[RowOrder]:
        await self._io()
        return [self._row_order_of(row_id) for row_id in self._order(view_id)]

    async def fetch_fields(self, view_id: str) -> list[Field]:
        await self._io()
        if view_id not in self._fields:
            raise NotFoundError(f"View {view_id!r} does not exist")
        return list(self._fields[view_id])

    async def fetch_cell_raw(self, row_id: str, field_id: str) -> str | None:
        await self._io()
        self._view_of(row_id)
        return self._cells.get((row_id, field_id))

    async def persist_cell(self, row_id: str, field_id: str, value: str) -> None:
        await self._io()
        self.set_cell_raw(row_id, field_id, value)

    # --- Row Operations ---

    async def create_row(self, view_id: str, start_row_id: str | None = None) -> Row:
        await self._io()
        order = self._order(view_id)
        index = len(order)
        if start_row_id is not None and start_row_id in order:
            index = order.index(start_row_id) + 1
        row = Row(id=uuid.uuid4().hex)
        self.insert_rows(view_id, [(index, row)])
        return self._build_row(row.id)

    async def move_row(self, view_id: str, row_id: str, from_index: int, to_index: int) -> None:
        await self._io()
        order = self._order(view_id)
        if row_id not in order:
            raise NotFoundError(f"Row {row_id!r} is not in view {view_id!r}")
        order.remove(row_id)
        to_index = max(0, min(to_index, len(order)))
        order.insert(to_index, row_id)
        # Insertion index is relative to the post-deletion list
        self.emit_rows_changeset(
            RowsChangeset(
                view_id=view_id,
                inserted_rows=(InsertedRow(index=to_index, row_order=self._row_order_of(row_id)),),
                deleted_rows=(row_id,),
            )
        )

    async def delete_row(self, view_id: str, row_id: str) -> None:
        await self._io()
        if row_id not in self._order(view_id):
            raise NotFoundError(f"Row {row_id!r} is not in view {view_id!r}")
        self.remove_rows(view_id, [row_id])

    async def duplicate_row(self, view_id: str, row_id: str) -> None:
        await self._io()
        order = self._order(view_id)
        if row_id not in order:
            raise NotFoundError(f"Row {row_id!r} is not in view {view_id!r}")
        source = self._build_row(row_id)
        copy = Row(id=uuid.uuid4().hex, cells=dict(source.cells), height=source.height)
        self.insert_rows(view_id, [(order.index(row_id) + 1, copy)])

    # --- Subscriptions ---

    def subscribe_row_changes(self, view_id: str, callback: RowsChangesetCallback) -> Subscription:
        listeners = self._row_listeners.setdefault(view_id, [])
        listeners.append(callback)
        return Subscription(f"rows:{view_id}", lambda: _discard(listeners, callback))

    def subscribe_cell_changed(
        self, row_id: str, field_id: str, callback: CellChangedCallback
    ) -> Subscription:
        listeners = self._cell_listeners.setdefault((row_id, field_id), [])
        listeners.append(callback)
        return Subscription(f"cell:{row_id}/{field_id}", lambda: _discard(listeners, callback))

    def subscribe_field_changes(self, view_id: str, callback: FieldChangesetCallback) -> Subscription:
        listeners = self._field_listeners.setdefault(view_id, [])
        listeners.append(callback)
        return Subscription(f"fields:{view_id}", lambda: _discard(listeners, callback))

    def listener_count(self) -> int:
        """Total number of live subscriptions."""
        return sum(
            len(listeners)
            for registry in (self._row_listeners, self._cell_listeners, self._field_listeners)
            for listeners in registry.values()
        )


def _discard(listeners: list, callback: Callable) -> None:
    if callback in listeners:
        listeners.remove(callback)
