"""Tests for CellControllerBuilder and the field type strategy table."""

import logging

import pytest

from gridcache.data.cell_controller import (
    DateCellDataPersistence,
    StringCellDataPersistence,
)
from gridcache.errors import ProgrammingError, UnsupportedFieldTypeError
from gridcache.models.cell_data import (
    DateCellDataParser,
    NumberCellDataParser,
    SelectOptionCellDataParser,
    StringCellDataParser,
    URLCellDataParser,
)
from gridcache.models.constants import FieldType
from gridcache.services.controller_builder import CELL_STRATEGIES, strategy_for


class TestStrategyTable:
    """Tests for CELL_STRATEGIES."""

    def test_every_field_type_has_a_strategy(self):
        assert set(CELL_STRATEGIES) == set(FieldType)

    @pytest.mark.parametrize(
        "field_type,parser,persistence,reload",
        [
            (FieldType.CHECKBOX, StringCellDataParser, StringCellDataPersistence, False),
            (FieldType.RICH_TEXT, StringCellDataParser, StringCellDataPersistence, False),
            (FieldType.URL, URLCellDataParser, StringCellDataPersistence, False),
            (FieldType.NUMBER, NumberCellDataParser, StringCellDataPersistence, True),
            (FieldType.DATE_TIME, DateCellDataParser, DateCellDataPersistence, True),
            (FieldType.SINGLE_SELECT, SelectOptionCellDataParser, StringCellDataPersistence, True),
            (FieldType.MULTI_SELECT, SelectOptionCellDataParser, StringCellDataPersistence, True),
        ],
    )
    def test_strategy_for(self, field_type, parser, persistence, reload):
        strategy = strategy_for(field_type)

        assert strategy.parser is parser
        assert strategy.persistence is persistence
        assert strategy.reload_on_field_changed is reload

    def test_plain_int_is_accepted(self):
        assert strategy_for(1) is CELL_STRATEGIES[FieldType.NUMBER]

    def test_unknown_type_raises_and_logs(self, caplog):
        with caplog.at_level(logging.ERROR, logger="gridcache"):
            with pytest.raises(UnsupportedFieldTypeError) as exc_info:
                strategy_for(99)

        assert exc_info.value.field_type == 99
        assert isinstance(exc_info.value, ProgrammingError)
        assert "Unsupported field type 99" in caplog.text


class TestBuilder:
    """Tests for building controllers."""

    @pytest.mark.parametrize("field_id", ["name", "price", "due", "status", "done", "link"])
    def test_builds_idle_controller(self, build_controller, field_id):
        controller = build_controller("A", field_id)

        assert controller.field_id == field_id
        assert controller.row_id == "A"
        assert controller.view_id == "grid"
        assert not controller.is_listening

    def test_loader_carries_reload_flag(self, build_controller):
        assert build_controller("A", "price").cell_data_loader.reload_on_field_changed
        assert not build_controller("A", "name").cell_data_loader.reload_on_field_changed

    def test_date_field_gets_date_persistence(self, build_controller):
        controller = build_controller("B", "due")

        assert isinstance(controller.cell_data_persistence, DateCellDataPersistence)
        assert isinstance(controller.cell_data_loader.parser, DateCellDataParser)
