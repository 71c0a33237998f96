"""Builds cell controllers with the load/parse/persist strategy for a field type.

The set of field types is closed. CELL_STRATEGIES maps every FieldType to
its strategy, and a missing entry fails at import time rather than when a
cell of that type is first displayed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..data.cell_controller import (
    CellController,
    CellDataLoader,
    CellDataPersistence,
    DateCellDataPersistence,
    StringCellDataPersistence,
)
from ..debug_trace import get_logger
from ..errors import UnsupportedFieldTypeError
from ..models.cell_data import (
    CellDataParser,
    DateCellDataParser,
    NumberCellDataParser,
    SelectOptionCellDataParser,
    StringCellDataParser,
    URLCellDataParser,
)
from ..models.constants import RELOAD_ON_FIELD_CHANGED_TYPES, FieldType
from ..settings import CacheSettings

if TYPE_CHECKING:
    from ..data.cell_cache import CellCache
    from ..data.field_cache import FieldCache
    from ..data.field_notifier import FieldChangeNotifier
    from ..data.remote_source import RemoteSource
    from ..data.scheduler import Scheduler
    from ..models.row import CellIdentifier

logger = get_logger(__name__)


@dataclass(frozen=True)
class CellStrategy:
    """Parser and persistence classes for one field type."""

    parser: type[CellDataParser]
    persistence: type[CellDataPersistence]
    reload_on_field_changed: bool


def _strategy(
    field_type: FieldType,
    parser: type[CellDataParser],
    persistence: type[CellDataPersistence] = StringCellDataPersistence,
) -> CellStrategy:
    return CellStrategy(
        parser=parser,
        persistence=persistence,
        reload_on_field_changed=field_type in RELOAD_ON_FIELD_CHANGED_TYPES,
    )


CELL_STRATEGIES: dict[FieldType, CellStrategy] = {
    FieldType.CHECKBOX: _strategy(FieldType.CHECKBOX, StringCellDataParser),
    FieldType.RICH_TEXT: _strategy(FieldType.RICH_TEXT, StringCellDataParser),
    FieldType.NUMBER: _strategy(FieldType.NUMBER, NumberCellDataParser),
    FieldType.DATE_TIME: _strategy(FieldType.DATE_TIME, DateCellDataParser, DateCellDataPersistence),
    FieldType.SINGLE_SELECT: _strategy(FieldType.SINGLE_SELECT, SelectOptionCellDataParser),
    FieldType.MULTI_SELECT: _strategy(FieldType.MULTI_SELECT, SelectOptionCellDataParser),
    FieldType.URL: _strategy(FieldType.URL, URLCellDataParser),
}

_missing = set(FieldType) - set(CELL_STRATEGIES)
if _missing:
    raise UnsupportedFieldTypeError(sorted(_missing))


def strategy_for(field_type: FieldType) -> CellStrategy:
    """Look up the strategy for a field type.

    Raises:
        UnsupportedFieldTypeError: If field_type is not a known FieldType.
    """
    try:
        return CELL_STRATEGIES[FieldType(field_type)]
    except (KeyError, ValueError):
        logger.error(f"Unsupported field type {field_type!r}")
        raise UnsupportedFieldTypeError(field_type) from None


class CellControllerBuilder:
    """Creates a CellController for one cell, wired for its field type.

    Usage:
        builder = CellControllerBuilder(
            cell_id=cell_id,
            cell_cache=session.cell_cache,
            field_cache=session.field_cache,
            field_notifier=session.field_notifier,
            remote=remote,
            scheduler=scheduler,
        )
        controller = builder.build()
    """

    def __init__(
        self,
        cell_id: CellIdentifier,
        cell_cache: CellCache,
        field_cache: FieldCache,
        field_notifier: FieldChangeNotifier,
        remote: RemoteSource,
        scheduler: Scheduler,
        settings: CacheSettings | None = None,
    ) -> None:
        self._cell_id = cell_id
        self._cell_cache = cell_cache
        self._field_cache = field_cache
        self._field_notifier = field_notifier
        self._remote = remote
        self._scheduler = scheduler
        self._settings = settings or CacheSettings()

    def build(self) -> CellController:
        strategy = strategy_for(self._cell_id.field.field_type)

        loader = CellDataLoader(
            cell_id=self._cell_id,
            parser=strategy.parser(),
            remote=self._remote,
            field_cache=self._field_cache,
            reload_on_field_changed=strategy.reload_on_field_changed,
        )
        return CellController(
            cell_id=self._cell_id,
            cell_cache=self._cell_cache,
            field_cache=self._field_cache,
            field_notifier=self._field_notifier,
            cell_data_loader=loader,
            cell_data_persistence=strategy.persistence(self._cell_id, self._remote),
            remote=self._remote,
            scheduler=self._scheduler,
            settings=self._settings,
        )
