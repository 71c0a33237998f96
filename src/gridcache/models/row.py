"""Row models for the grid cache.

Contains the remote Row snapshot, the RowOrder change-detection descriptor,
the GridRow view held in the row cache's ordered list, and the identity
types used to key cell data.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .constants import DEFAULT_ROW_HEIGHT
from .field import Field

# ==============================================================================
# Identity
# ==============================================================================


@dataclass(frozen=True)
class CacheKey:
    """Composite (row id, field id) key of one cell's cached value slot."""

    row_id: str
    field_id: str


@dataclass(frozen=True)
class CellIdentifier:
    """Identifies one cell of a view: the row plus the field it sits in."""

    view_id: str
    row_id: str
    field: Field

    @property
    def field_id(self) -> str:
        return self.field.id

    @property
    def cache_key(self) -> CacheKey:
        return CacheKey(row_id=self.row_id, field_id=self.field.id)

    @property
    def cell_id(self) -> str:
        """Unique id of the cell within the view."""
        return self.row_id + self.field.id


# ==============================================================================
# Remote Row Data
# ==============================================================================


@dataclass(frozen=True)
class Cell:
    """Raw content of one cell as delivered with a row."""

    field_id: str
    content: str = ""


@dataclass(frozen=True)
class Row:
    """Immutable snapshot of a row fetched from the remote source.

    Rows are replaced wholesale, never mutated. Call freeze() before
    caching so the cells mapping is a private read-only copy.

    Attributes:
        id: Row id, unique within a view.
        cells: field_id -> Cell, in field order.
        height: Display height.
        revision: Monotonic version used for last-write-wins caching.
    """

    id: str
    cells: Mapping[str, Cell] = field(default_factory=dict, hash=False)
    height: int = DEFAULT_ROW_HEIGHT
    revision: int = 0

    def freeze(self) -> Row:
        """Return a snapshot that later mutation of the source data can't alter."""
        if isinstance(self.cells, MappingProxyType):
            return self
        return Row(
            id=self.id,
            cells=MappingProxyType(dict(self.cells)),
            height=self.height,
            revision=self.revision,
        )

    def cell(self, field_id: str) -> Cell | None:
        return self.cells.get(field_id)

    @property
    def row_order(self) -> RowOrder:
        return RowOrder(row_id=self.id, height=self.height)


# ==============================================================================
# Row List Entries
# ==============================================================================


@dataclass(frozen=True)
class RowOrder:
    """Minimal descriptor used for change detection: id and height only."""

    row_id: str
    height: int = DEFAULT_ROW_HEIGHT


@dataclass(frozen=True)
class InsertedRow:
    """A row inserted at a position in the view's ordered list."""

    index: int
    row_order: RowOrder


@dataclass(frozen=True)
class GridRow:
    """Entry in the row cache's ordered list.

    Built from a RowOrder plus the view's current fields. Carries no cell
    content; cell values live in the cell cache.
    """

    view_id: str
    row_id: str
    fields: tuple[Field, ...]
    height: float

    @classmethod
    def from_row_order(cls, view_id: str, row_order: RowOrder, fields: tuple[Field, ...]) -> GridRow:
        return cls(
            view_id=view_id,
            row_id=row_order.row_id,
            fields=fields,
            height=float(row_order.height),
        )


@dataclass(frozen=True)
class RowsChangeset:
    """Batch of inserted/updated/deleted rows delivered together.

    Attributes:
        view_id: View the changeset belongs to.
        inserted_rows: Insertions, ascending by index.
        updated_rows: Replacement descriptors for existing rows.
        deleted_rows: Ids of removed rows.
    """

    view_id: str
    inserted_rows: tuple[InsertedRow, ...] = ()
    updated_rows: tuple[RowOrder, ...] = ()
    deleted_rows: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.inserted_rows or self.updated_rows or self.deleted_rows)
