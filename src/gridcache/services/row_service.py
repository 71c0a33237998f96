"""Row service for single-row operations against the remote source.

The remote source answers each operation by pushing a row changeset, which
the view's RowCache applies. These calls therefore return only success or
failure; failures are logged here and never raised to the UI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..debug_trace import get_logger
from ..errors import GridCacheError

if TYPE_CHECKING:
    from ..data.remote_source import RemoteSource
    from ..models.row import Row

logger = get_logger(__name__)


class RowService:
    """Create, move, fetch, delete and duplicate one row of a view."""

    def __init__(self, view_id: str, row_id: str, remote: RemoteSource) -> None:
        self.view_id = view_id
        self.row_id = row_id
        self._remote = remote

    async def create_row(self) -> Row | None:
        """Create a new row directly after this one."""
        try:
            return await self._remote.create_row(self.view_id, start_row_id=self.row_id)
        except GridCacheError as e:
            logger.warning(f"Failed to create row after {self.row_id!r}: {e}")
            return None

    async def move_row(self, from_index: int, to_index: int) -> bool:
        try:
            await self._remote.move_row(self.view_id, self.row_id, from_index, to_index)
        except GridCacheError as e:
            logger.warning(f"Failed to move row {self.row_id!r} {from_index}->{to_index}: {e}")
            return False
        return True

    async def get_row(self) -> Row | None:
        try:
            row = await self._remote.fetch_row(self.view_id, self.row_id)
        except GridCacheError as e:
            logger.warning(f"Failed to get row {self.row_id!r}: {e}")
            return None
        return row.freeze()

    async def delete_row(self) -> bool:
        try:
            await self._remote.delete_row(self.view_id, self.row_id)
        except GridCacheError as e:
            logger.warning(f"Failed to delete row {self.row_id!r}: {e}")
            return False
        return True

    async def duplicate_row(self) -> bool:
        try:
            await self._remote.duplicate_row(self.view_id, self.row_id)
        except GridCacheError as e:
            logger.warning(f"Failed to duplicate row {self.row_id!r}: {e}")
            return False
        return True
