"""Grid session: everything one open view owns.

A GridSession creates and wires the field cache, cell cache, field change
notifier and row cache for a view, loads the initial state, and tears it
all down when the view closes. Cell controllers are built through it so
they share the session's caches.
"""

from __future__ import annotations

from ..debug_trace import get_logger
from ..errors import GridCacheError, NotFoundError
from ..models.field import FieldChangeset
from ..models.row import CellIdentifier
from ..services.controller_builder import CellControllerBuilder
from ..services.row_service import RowService
from ..settings import CacheSettings
from .cell_cache import CellCache
from .cell_controller import CellController
from .field_cache import FieldCache
from .field_notifier import FieldChangeNotifier
from .remote_source import RemoteSource
from .row_cache import RowCache
from .scheduler import AsyncioScheduler, Scheduler

logger = get_logger(__name__)


class GridSession:
    """Owns the caches of one open grid view.

    Usage:
        session = GridSession("grid", remote)
        await session.open()

        rows = session.row_cache.current_rows()
        controller = session.controller_for(rows[0].row_id, "name")
        ...
        session.dispose()
    """

    def __init__(
        self,
        view_id: str,
        remote: RemoteSource,
        scheduler: Scheduler | None = None,
        settings: CacheSettings | None = None,
    ) -> None:
        self.view_id = view_id
        self._remote = remote
        self._scheduler = scheduler or AsyncioScheduler()
        self._settings = settings or CacheSettings()

        self.field_cache = FieldCache(view_id, remote)
        self.cell_cache = CellCache(view_id)
        self.field_notifier = FieldChangeNotifier(self.field_cache)
        self.row_cache = RowCache(view_id, remote)

        self._field_token = self.field_cache.add_listener(self._on_fields_changed)
        self._opened = False
        self._disposed = False

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def is_open(self) -> bool:
        return self._opened and not self._disposed

    async def open(self) -> bool:
        """Load fields and rows, then start listening for changes.

        Returns:
            True if the initial load succeeded. On failure the session stays
            empty but still listens, so later changesets are applied.
        """
        if self._disposed:
            logger.error(f"GridSession({self.view_id!r}) is disposed and can't open")
            return False
        if self._opened:
            return True
        self._opened = True

        loaded = True
        try:
            fields = await self._remote.fetch_fields(self.view_id)
            row_orders = await self._remote.fetch_all_rows(self.view_id)
        except NotFoundError:
            logger.warning(f"View {self.view_id!r} not found")
            loaded = False
        except GridCacheError as e:
            logger.warning(f"Failed to load view {self.view_id!r}: {e}")
            loaded = False

        if self._disposed:
            return False
        if loaded:
            self.field_cache.set_fields(fields)
            self.row_cache.set_rows_and_fields(row_orders, fields)
            logger.info(f"Opened view {self.view_id!r} with {len(row_orders)} rows")

        self.field_cache.start()
        self.row_cache.start()
        return loaded

    def _on_fields_changed(self, changeset: FieldChangeset) -> None:
        self.row_cache.set_fields(self.field_cache.fields)

    def cell_identifier(self, row_id: str, field_id: str) -> CellIdentifier | None:
        field = self.field_cache.field(field_id)
        if field is None:
            logger.warning(f"Field {field_id!r} not found in view {self.view_id!r}")
            return None
        return CellIdentifier(view_id=self.view_id, row_id=row_id, field=field)

    def controller_builder(self, cell_id: CellIdentifier) -> CellControllerBuilder:
        return CellControllerBuilder(
            cell_id=cell_id,
            cell_cache=self.cell_cache,
            field_cache=self.field_cache,
            field_notifier=self.field_notifier,
            remote=self._remote,
            scheduler=self._scheduler,
            settings=self._settings,
        )

    def controller_for(self, row_id: str, field_id: str) -> CellController | None:
        """Build a controller for a cell, or None if the field is unknown."""
        cell_id = self.cell_identifier(row_id, field_id)
        if cell_id is None:
            return None
        return self.controller_builder(cell_id).build()

    def row_service(self, row_id: str) -> RowService:
        return RowService(self.view_id, row_id, self._remote)

    def dispose(self) -> None:
        if self._disposed:
            logger.error(f"GridSession({self.view_id!r}) should only dispose once")
            return
        self._disposed = True
        self.field_cache.remove_listener(self._field_token)
        self.row_cache.dispose()
        self.field_notifier.dispose()
        self.field_cache.dispose()
        self.cell_cache.dispose()
