"""Client-side row and cell caching for spreadsheet-like grid views.

Mirrors server-held rows, cells and fields into observable caches so a
presentation layer can render and edit a grid incrementally.
"""

from .data.cell_cache import CellCache
from .data.cell_controller import CellController, ControllerState
from .data.field_cache import FieldCache
from .data.field_notifier import FieldChangeNotifier
from .data.grid_session import GridSession
from .data.memory_source import InMemoryRemoteSource
from .data.remote_source import RemoteSource, Subscription
from .data.row_cache import RowCache, RowListNotifier
from .data.scheduler import AsyncioScheduler, DeferredOperation, Scheduler
from .errors import (
    GridCacheError,
    NotFoundError,
    ProgrammingError,
    TransportError,
    UnsupportedFieldTypeError,
)
from .models.change_reason import (
    DeleteReason,
    InitialListState,
    InsertReason,
    RowChangeReason,
    UpdateReason,
)
from .models.constants import FieldType
from .models.field import Field, FieldChangeset
from .models.row import (
    CacheKey,
    Cell,
    CellIdentifier,
    GridRow,
    InsertedRow,
    Row,
    RowOrder,
    RowsChangeset,
)
from .services import CellControllerBuilder, RowService
from .settings import CacheSettings

__all__ = [
    # Caches
    "CellCache",
    "FieldCache",
    "RowCache",
    "RowListNotifier",
    "FieldChangeNotifier",
    "GridSession",
    # Controllers
    "CellController",
    "CellControllerBuilder",
    "ControllerState",
    "RowService",
    # Remote
    "RemoteSource",
    "InMemoryRemoteSource",
    "Subscription",
    # Scheduling
    "Scheduler",
    "AsyncioScheduler",
    "DeferredOperation",
    # Models
    "CacheKey",
    "Cell",
    "CellIdentifier",
    "Field",
    "FieldChangeset",
    "FieldType",
    "GridRow",
    "InsertedRow",
    "Row",
    "RowOrder",
    "RowsChangeset",
    # Change reasons
    "RowChangeReason",
    "InitialListState",
    "InsertReason",
    "DeleteReason",
    "UpdateReason",
    # Errors
    "GridCacheError",
    "NotFoundError",
    "TransportError",
    "ProgrammingError",
    "UnsupportedFieldTypeError",
    # Settings
    "CacheSettings",
]
