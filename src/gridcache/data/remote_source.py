"""Remote source abstraction for grid views.

The remote source is the source of truth for rows, cells and fields. The
caches only talk to it through this interface: async point queries that
raise errors from gridcache.errors, and subscriptions that push change
notifications and return a Subscription handle.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..debug_trace import get_logger

if TYPE_CHECKING:
    from ..models.field import Field, FieldChangeset
    from ..models.row import Row, RowOrder, RowsChangeset

logger = get_logger(__name__)

RowsChangesetCallback = Callable[["RowsChangeset"], None]
FieldChangesetCallback = Callable[["FieldChangeset"], None]
CellChangedCallback = Callable[[], None]


class Subscription:
    """Handle for a registered notification callback.

    Must be cancelled exactly once to stop delivery. A second cancel is
    logged and otherwise ignored.
    """

    def __init__(self, description: str, on_cancel: Callable[[], None]) -> None:
        self._description = description
        self._on_cancel: Callable[[], None] | None = on_cancel

    @property
    def is_active(self) -> bool:
        return self._on_cancel is not None

    def cancel(self) -> None:
        if self._on_cancel is None:
            logger.error(f"{self!r} should only be cancelled once")
            return
        on_cancel, self._on_cancel = self._on_cancel, None
        on_cancel()

    def __repr__(self) -> str:
        state = "active" if self.is_active else "cancelled"
        return f"Subscription({self._description!r}, {state})"


class RemoteSource(ABC):
    """Abstract remote source for one or more grid views.

    Query methods raise NotFoundError when the row/cell/field is absent and
    TransportError when the call fails.
    """

    # --- Point Queries ---

    @abstractmethod
    async def fetch_row(self, view_id: str, row_id: str) -> Row:
        """Fetch one row's full data."""

    @abstractmethod
    async def fetch_all_rows(self, view_id: str) -> list[RowOrder]:
        """Fetch the ordered row descriptors of a view."""

    @abstractmethod
    async def fetch_fields(self, view_id: str) -> list[Field]:
        """Fetch the ordered field definitions of a view."""

    @abstractmethod
    async def fetch_cell_raw(self, row_id: str, field_id: str) -> str | None:
        """Fetch one cell's raw content. None means the cell is empty."""

    @abstractmethod
    async def persist_cell(self, row_id: str, field_id: str, value: str) -> None:
        """Store one cell's raw content."""

    # --- Row Operations ---

    @abstractmethod
    async def create_row(self, view_id: str, start_row_id: str | None = None) -> Row:
        """Create a row after start_row_id (or at the end) and return it."""

    @abstractmethod
    async def move_row(self, view_id: str, row_id: str, from_index: int, to_index: int) -> None:
        """Move a row to a new position."""

    @abstractmethod
    async def delete_row(self, view_id: str, row_id: str) -> None:
        """Delete a row."""

    @abstractmethod
    async def duplicate_row(self, view_id: str, row_id: str) -> None:
        """Insert a copy of a row directly after it."""

    # --- Subscriptions ---

    @abstractmethod
    def subscribe_row_changes(self, view_id: str, callback: RowsChangesetCallback) -> Subscription:
        """Deliver row changesets for a view."""

    @abstractmethod
    def subscribe_cell_changed(
        self, row_id: str, field_id: str, callback: CellChangedCallback
    ) -> Subscription:
        """Signal whenever one cell is edited remotely."""

    @abstractmethod
    def subscribe_field_changes(self, view_id: str, callback: FieldChangesetCallback) -> Subscription:
        """Deliver field changesets for a view."""
