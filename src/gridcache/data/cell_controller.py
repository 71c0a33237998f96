"""Per-cell controller: load, debounce, save, and republish one cell's value.

A CellController is created lazily when a cell is first displayed and
disposed when it leaves the view. Its value changes for two reasons:

1. The cell was edited (remotely or by this client), so it reloads.
2. The cell's field was edited. Cells whose display depends on field
   configuration reload (e.g. a number cell storing 12 shows $12 once the
   field's format becomes USD); others just forward the signal.

State machine: IDLE -> LISTENING -> DISPOSED (IDLE -> DISPOSED also allowed).
Misuse (double start, double dispose) is logged, never raised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Generic, TypeVar

from ..debug_trace import get_logger
from ..errors import GridCacheError, NotFoundError
from ..models.cell_data import CalendarData, CellDataParser
from ..models.constants import FieldType
from ..models.field import Field
from ..models.row import CellIdentifier
from ..settings import CacheSettings
from .cell_cache import CellCache
from .field_cache import FieldCache
from .field_notifier import FieldChangeNotifier
from .remote_source import RemoteSource, Subscription
from .scheduler import DeferredOperation, Scheduler

logger = get_logger(__name__)

T = TypeVar("T")
D = TypeVar("D")

SaveResultCallback = Callable[[GridCacheError | None], None]


class ControllerState(Enum):
    IDLE = "idle"
    LISTENING = "listening"
    DISPOSED = "disposed"


# ==============================================================================
# Load / Persist Strategies
# ==============================================================================


class CellDataLoader(Generic[T]):
    """Fetches a cell's raw content and parses it with the field's current config.

    Raises GridCacheError subclasses from the remote source unchanged.
    """

    def __init__(
        self,
        cell_id: CellIdentifier,
        parser: CellDataParser[T],
        remote: RemoteSource,
        field_cache: FieldCache,
        reload_on_field_changed: bool = False,
    ) -> None:
        self.cell_id = cell_id
        self.parser = parser
        self.reload_on_field_changed = reload_on_field_changed
        self._remote = remote
        self._field_cache = field_cache

    async def load_data(self) -> T:
        raw = await self._remote.fetch_cell_raw(self.cell_id.row_id, self.cell_id.field_id)
        # Field config may have changed while we waited; parse with the fresh one
        field = self._field_cache.field(self.cell_id.field_id) or self.cell_id.field
        return self.parser.parse(raw, field)


class CellDataPersistence(ABC, Generic[D]):
    """Serializes an edited value and sends it to the remote source."""

    def __init__(self, cell_id: CellIdentifier, remote: RemoteSource) -> None:
        self.cell_id = cell_id
        self._remote = remote

    @abstractmethod
    def serialize(self, data: D) -> str:
        """Convert the edited value to the raw string stored remotely."""

    async def save(self, data: D) -> GridCacheError | None:
        """Persist the value. Returns the error, or None on success."""
        try:
            raw = self.serialize(data)
        except (AttributeError, TypeError, ValueError) as e:
            error = GridCacheError(f"Can't serialize {data!r} for cell {self.cell_id.cell_id!r}: {e}")
            logger.warning(str(error))
            return error

        try:
            await self._remote.persist_cell(self.cell_id.row_id, self.cell_id.field_id, raw)
        except GridCacheError as e:
            logger.warning(f"Failed to save cell {self.cell_id.cell_id!r}: {e}")
            return e
        return None


class StringCellDataPersistence(CellDataPersistence[str]):
    def serialize(self, data: str) -> str:
        if not isinstance(data, str):
            raise TypeError(f"expected str, got {type(data).__name__}")
        return data


class DateCellDataPersistence(CellDataPersistence[CalendarData]):
    """Stores dates as UTC epoch seconds. A malformed time raises ValueError."""

    def serialize(self, data: CalendarData) -> str:
        return str(data.to_timestamp())


# ==============================================================================
# Observer Slot
# ==============================================================================


class CellValueNotifier(Generic[T]):
    """Holds the controller's current value and notifies when it changes."""

    def __init__(self, value: T | None) -> None:
        self._value = value
        self._listeners: list[Callable[[], None]] = []

    @property
    def value(self) -> T | None:
        return self._value

    @value.setter
    def value(self, new_value: T | None) -> None:
        if new_value == self._value:
            return
        self._value = new_value
        for callback in list(self._listeners):
            callback()

    def add_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def dispose(self) -> None:
        self._listeners.clear()


# ==============================================================================
# Controller
# ==============================================================================


class CellController(Generic[T, D]):
    """Reads, writes and observes one cell.

    T is the parsed type of the cell data, D the type of data saved back.

    Usage:
        controller = builder.build()
        token = controller.start_listening(on_cell_changed=render)
        render(controller.get_cell_data())  # kicks off a load if not cached

        controller.save_cell_data("new text", deduplicate=True)
        ...
        controller.dispose()
    """

    def __init__(
        self,
        cell_id: CellIdentifier,
        cell_cache: CellCache,
        field_cache: FieldCache,
        field_notifier: FieldChangeNotifier,
        cell_data_loader: CellDataLoader[T],
        cell_data_persistence: CellDataPersistence[D],
        remote: RemoteSource,
        scheduler: Scheduler,
        settings: CacheSettings | None = None,
    ) -> None:
        self.cell_id = cell_id
        self._cell_cache = cell_cache
        self._field_cache = field_cache
        self._field_notifier = field_notifier
        self._cell_data_loader = cell_data_loader
        self._cell_data_persistence = cell_data_persistence
        self._remote = remote
        self._scheduler = scheduler
        self._settings = settings or CacheSettings()
        self._cache_key = cell_id.cache_key

        self._state = ControllerState.IDLE
        self._cell_listener: Subscription | None = None
        self._value_notifier: CellValueNotifier[T] | None = None
        self._on_field_changed_fn: Callable[[], None] | None = None
        # Bumped per issued load; only the latest load may write its result
        self._load_generation = 0

        self._load_data_operation = DeferredOperation(scheduler, f"load:{cell_id.cell_id}")
        self._save_data_operation = DeferredOperation(scheduler, f"save:{cell_id.cell_id}")

    def clone(self) -> CellController[T, D]:
        """Fresh IDLE controller for the same cell, cache and strategies."""
        return CellController(
            cell_id=self.cell_id,
            cell_cache=self._cell_cache,
            field_cache=self._field_cache,
            field_notifier=self._field_notifier,
            cell_data_loader=self._cell_data_loader,
            cell_data_persistence=self._cell_data_persistence,
            remote=self._remote,
            scheduler=self._scheduler,
            settings=self._settings,
        )

    # --- Identity ---

    @property
    def view_id(self) -> str:
        return self.cell_id.view_id

    @property
    def row_id(self) -> str:
        return self.cell_id.row_id

    @property
    def field_id(self) -> str:
        return self.cell_id.field_id

    @property
    def field(self) -> Field:
        """Current field definition (falls back to the one built with)."""
        return self._field_cache.field(self.field_id) or self.cell_id.field

    @property
    def field_type(self) -> FieldType:
        return self.cell_id.field.field_type

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is ControllerState.LISTENING

    @property
    def cell_data_loader(self) -> CellDataLoader[T]:
        return self._cell_data_loader

    @property
    def cell_data_persistence(self) -> CellDataPersistence[D]:
        return self._cell_data_persistence

    # --- Listening ---

    def start_listening(
        self,
        on_cell_changed: Callable[[T | None], None],
        on_cell_field_changed: Callable[[], None] | None = None,
    ) -> Callable[[], None] | None:
        """Start observing the cell. Allowed once per controller.

        Returns:
            Token for remove_listener(), or None if the controller was
            already listening or disposed.
        """
        if self._state is ControllerState.LISTENING:
            logger.error("Already started. It seems like you should call clone first")
            return None
        if self._state is ControllerState.DISPOSED:
            logger.error(f"{self!r} is disposed and can't start listening")
            return None
        self._state = ControllerState.LISTENING

        self._value_notifier = CellValueNotifier(self._cell_cache.get(self._cache_key))

        # 1. Cell edited: reload
        self._cell_listener = self._remote.subscribe_cell_changed(
            self.row_id, self.field_id, self._load_data
        )

        # 2. Field edited: forward, and reload if the display depends on the field
        def on_field_changed() -> None:
            if on_cell_field_changed is not None:
                on_cell_field_changed()
            if self._cell_data_loader.reload_on_field_changed:
                self._load_data()

        self._on_field_changed_fn = on_field_changed
        self._field_notifier.register(self._cache_key, on_field_changed)

        value_notifier = self._value_notifier

        def on_cell_changed_fn() -> None:
            on_cell_changed(value_notifier.value)

        value_notifier.add_listener(on_cell_changed_fn)
        return on_cell_changed_fn

    def remove_listener(self, token: Callable[[], None]) -> None:
        if self._value_notifier is not None:
            self._value_notifier.remove_listener(token)

    # --- Reading ---

    def get_cell_data(self, load_if_absent: bool = True) -> T | None:
        """Return the cached value.

        If absent and load_if_absent is True, a load starts; its result
        arrives through the change notification, not this return value.
        """
        data = self._cell_cache.get(self._cache_key)
        if data is None and load_if_absent:
            self._load_data()
        return data

    def get_type_option(self) -> Mapping[str, Any]:
        """The field's current type-specific configuration."""
        return self.field.type_option

    # --- Writing ---

    def save_cell_data(
        self,
        data: D,
        deduplicate: bool = False,
        on_result: SaveResultCallback | None = None,
    ) -> None:
        """Persist an edited value.

        Args:
            data: The value to save.
            deduplicate: Debounce the save (useful while the user types);
                only the last call within the save window is persisted.
            on_result: Called with the error, or None on success.
        """
        if self._state is ControllerState.DISPOSED:
            logger.error(f"{self!r} is disposed and can't save")
            return

        if deduplicate:
            self._load_data_operation.cancel()
            self._save_data_operation.schedule(
                self._settings.save_debounce_ms,
                lambda: self._scheduler.spawn(self._save(data, on_result)),
            )
        else:
            self._scheduler.spawn(self._save(data, on_result))

    async def _save(self, data: D, on_result: SaveResultCallback | None) -> None:
        error = await self._cell_data_persistence.save(data)
        if self._state is ControllerState.DISPOSED:
            return
        if on_result is not None:
            on_result(error)

    # --- Loading ---

    def _load_data(self) -> None:
        if self._state is ControllerState.DISPOSED:
            return
        # A load supersedes a pending save that would clobber the refreshed value
        self._save_data_operation.cancel()
        self._load_generation += 1
        generation = self._load_generation
        self._load_data_operation.schedule(
            self._settings.load_debounce_ms,
            lambda: self._scheduler.spawn(self._load(generation)),
        )

    async def _load(self, generation: int) -> None:
        try:
            data = await self._cell_data_loader.load_data()
        except NotFoundError:
            logger.debug(f"Cell {self.cell_id.cell_id!r} not found")
            return
        except GridCacheError as e:
            logger.warning(f"Failed to load cell {self.cell_id.cell_id!r}: {e}")
            return

        if self._state is ControllerState.DISPOSED:
            return
        if generation != self._load_generation:
            logger.debug(f"Discarding stale load of cell {self.cell_id.cell_id!r}")
            return
        self._cell_cache.insert(self._cache_key, data)
        if self._value_notifier is not None:
            self._value_notifier.value = data

    # --- Teardown ---

    def dispose(self) -> None:
        if self._state is ControllerState.DISPOSED:
            logger.error(f"{self!r} should only dispose once")
            return
        self._state = ControllerState.DISPOSED

        if self._cell_listener is not None:
            self._cell_listener.cancel()
            self._cell_listener = None
        self._load_data_operation.cancel()
        self._save_data_operation.cancel()

        if self._value_notifier is not None:
            self._value_notifier.dispose()
            self._value_notifier = None

        if self._on_field_changed_fn is not None:
            self._field_notifier.unregister(self._cache_key, self._on_field_changed_fn)
            self._on_field_changed_fn = None

    def __repr__(self) -> str:
        return f"CellController({self.cell_id.cell_id!r}, {self._state.value})"
