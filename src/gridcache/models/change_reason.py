"""Change reasons describing the most recent mutation of a row list.

A reason is consumed by observers once and then superseded by the next one.
Observers use it to patch a virtualized list instead of re-rendering:

    def on_rows_changed(rows, reason):
        if isinstance(reason, InsertReason):
            for index, row_id in reason.items:
                view.insert_row(index)
        elif isinstance(reason, DeleteReason):
            for index, _row in reversed(reason.items):
                view.remove_row(index)
        elif isinstance(reason, UpdateReason):
            for index in reason.indexes:
                view.refresh_row(index)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .row import GridRow

# (index, row_id) pairs recorded for insertions
InsertedIndexes = tuple[tuple[int, str], ...]

# (index, row) pairs recorded for deletions, indexes refer to the pre-removal list
DeletedIndexes = tuple[tuple[int, "GridRow"], ...]


@dataclass(frozen=True)
class RowChangeReason:
    """Base of the change reason variants."""

    @property
    def notifies(self) -> bool:
        """Whether observers should be told about this change."""
        return True


@dataclass(frozen=True)
class InitialListState(RowChangeReason):
    """Silent baseline set by a wholesale reset."""

    @property
    def notifies(self) -> bool:
        return False


@dataclass(frozen=True)
class InsertReason(RowChangeReason):
    items: InsertedIndexes = ()


@dataclass(frozen=True)
class DeleteReason(RowChangeReason):
    items: DeletedIndexes = ()


@dataclass(frozen=True)
class UpdateReason(RowChangeReason):
    indexes: tuple[int, ...] = ()
