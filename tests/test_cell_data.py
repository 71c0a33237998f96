"""Tests for cell data parsers and the field/row models."""

from datetime import date

import pytest

from gridcache.models.cell_data import (
    CalendarData,
    DateCellData,
    DateCellDataParser,
    NumberCellDataParser,
    SelectOptionCellDataParser,
    StringCellDataParser,
    URLCellData,
    URLCellDataParser,
    normalize_url,
)
from gridcache.models.constants import FieldType
from gridcache.models.field import Field, FieldChangeset
from gridcache.models.row import CacheKey, Cell, CellIdentifier, GridRow, Row


def number_field(**type_option):
    return Field("price", "Price", FieldType.NUMBER, type_option)


class TestStringParser:
    def test_returns_raw(self):
        field = Field("name", "Name", FieldType.RICH_TEXT)
        assert StringCellDataParser().parse("hello", field) == "hello"

    def test_empty_cell_is_empty_string(self):
        field = Field("name", "Name", FieldType.RICH_TEXT)
        assert StringCellDataParser().parse(None, field) == ""


class TestNumberParser:
    """Tests for number formatting."""

    @pytest.mark.parametrize(
        "fmt,raw,expected",
        [
            ("number", "12", "12"),
            ("usd", "12", "$12"),
            ("eur", "3.5", "€3.5"),
            ("percent", "40", "40%"),
            ("usd", "-5", "-$5"),
        ],
    )
    def test_format_affixes(self, fmt, raw, expected):
        assert NumberCellDataParser().parse(raw, number_field(format=fmt)) == expected

    def test_decimals(self):
        field = number_field(format="usd", decimals=2)
        assert NumberCellDataParser().parse("7.5", field) == "$7.50"

    def test_non_numeric_returned_unchanged(self):
        assert NumberCellDataParser().parse("n/a", number_field()) == "n/a"

    def test_empty(self):
        assert NumberCellDataParser().parse("", number_field()) == ""

    def test_unknown_format_has_no_affix(self):
        assert NumberCellDataParser().parse("1", number_field(format="doubloons")) == "1"


class TestDateParser:
    """Tests for epoch-seconds date parsing."""

    def test_formats_date(self):
        field = Field("due", "Due", FieldType.DATE_TIME, {"date_format": "%Y-%m-%d"})

        data = DateCellDataParser().parse("1700000000", field)

        assert data == DateCellData(date="2023-11-14", time="", timestamp=1700000000)

    def test_includes_time_when_configured(self):
        field = Field("due", "Due", FieldType.DATE_TIME, {"include_time": True})

        data = DateCellDataParser().parse("1700000000", field)

        assert data.date == "2023/11/14"
        assert data.time == "22:13"
        assert data.include_time

    @pytest.mark.parametrize("raw", [None, "", "  ", "tomorrow", "99999999999999999", "-99999999999999999"])
    def test_unparseable_is_empty(self, raw):
        field = Field("due", "Due", FieldType.DATE_TIME)
        assert DateCellDataParser().parse(raw, field) == DateCellData()

    def test_calendar_data_round_trips_through_parser(self):
        field = Field("due", "Due", FieldType.DATE_TIME, {"include_time": True})
        timestamp = CalendarData(date(2023, 11, 14), "22:13").to_timestamp()

        data = DateCellDataParser().parse(str(timestamp), field)

        assert (data.date, data.time) == ("2023/11/14", "22:13")

    def test_calendar_data_without_time_is_midnight(self):
        assert CalendarData(date(1970, 1, 2)).to_timestamp() == 86400

    def test_calendar_data_bad_time_raises(self):
        with pytest.raises(ValueError):
            CalendarData(date(2024, 1, 1), "noon").to_timestamp()


class TestSelectOptionParser:
    """Tests for select option resolution."""

    @pytest.fixture
    def field(self):
        return Field(
            "status",
            "Status",
            FieldType.MULTI_SELECT,
            {
                "options": [
                    {"id": "o1", "name": "Todo", "color": "blue"},
                    {"id": "o2", "name": "Done"},
                ]
            },
        )

    def test_resolves_ids(self, field):
        data = SelectOptionCellDataParser().parse("o2, o1", field)

        assert [option.name for option in data.select_options] == ["Done", "Todo"]
        assert len(data.options) == 2
        assert data.options[0].color == "blue"

    def test_drops_unknown_and_duplicate_ids(self, field):
        data = SelectOptionCellDataParser().parse("o1,deleted,o1", field)

        assert [option.id for option in data.select_options] == ["o1"]

    def test_empty_cell_still_lists_options(self, field):
        data = SelectOptionCellDataParser().parse(None, field)

        assert data.select_options == ()
        assert len(data.options) == 2


class TestURLParser:
    """Tests for URL cell parsing."""

    def test_bare_link_gets_scheme(self):
        field = Field("link", "Link", FieldType.URL)

        assert URLCellDataParser().parse("example.com", field) == URLCellData(
            url="https://example.com", content="example.com"
        )

    def test_json_payload(self):
        field = Field("link", "Link", FieldType.URL)
        raw = '{"url": "https://a.io/x", "content": "docs"}'

        assert URLCellDataParser().parse(raw, field) == URLCellData(url="https://a.io/x", content="docs")

    def test_malformed_json_treated_as_text(self):
        field = Field("link", "Link", FieldType.URL)

        data = URLCellDataParser().parse("{oops", field)

        assert data.content == "{oops"

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("http://a.io", "http://a.io"),
            ("mailto:me@a.io", "mailto:me@a.io"),
            ("a.io", "https://a.io"),
            ("  ", ""),
        ],
    )
    def test_normalize_url(self, text, expected):
        assert normalize_url(text) == expected


class TestModels:
    """Tests for Field, Row and identity types."""

    def test_field_type_option_is_read_only(self):
        options = {"format": "usd"}
        field = Field("price", "Price", FieldType.NUMBER, options)
        options["format"] = "eur"

        assert field.type_option["format"] == "usd"
        with pytest.raises(TypeError):
            field.type_option["format"] = "gbp"

    def test_with_type_option_returns_new_field(self):
        field = Field("price", "Price", FieldType.NUMBER, {"format": "usd"})

        updated = field.with_type_option({"format": "eur"})

        assert updated is not field
        assert updated.type_option["format"] == "eur"
        assert field.type_option["format"] == "usd"
        assert updated.field_type_display == "Number"

    def test_field_changeset_is_empty(self):
        assert FieldChangeset(view_id="grid").is_empty
        assert not FieldChangeset(view_id="grid", deleted_field_ids=("x",)).is_empty

    def test_cell_identifier_keys(self):
        field = Field("name", "Name", FieldType.RICH_TEXT)
        cell_id = CellIdentifier(view_id="grid", row_id="r1", field=field)

        assert cell_id.cache_key == CacheKey("r1", "name")
        assert cell_id.cell_id == "r1name"
        assert {cell_id.cache_key: 1}[CacheKey("r1", "name")] == 1

    def test_row_freeze_detaches_from_source_dict(self):
        cells = {"name": Cell("name", "Alpha")}
        frozen = Row(id="r1", cells=cells).freeze()
        cells["name"] = Cell("name", "changed")

        assert frozen.cell("name").content == "Alpha"
        assert frozen.freeze() is frozen
        assert frozen.row_order.row_id == "r1"

    def test_frozen_models_are_hashable(self):
        """Fields, cell identifiers and grid rows can be used as dict keys."""
        field = Field("price", "Price", FieldType.NUMBER, {"format": "usd"})
        same = Field("price", "Price", FieldType.NUMBER, {"format": "usd"})
        cell_id = CellIdentifier(view_id="grid", row_id="r1", field=field)
        grid_row = GridRow(view_id="grid", row_id="r1", fields=(field,), height=36.0)

        assert field == same
        assert hash(field) == hash(same)
        assert len({field, same}) == 1
        assert {cell_id: 1}[CellIdentifier(view_id="grid", row_id="r1", field=same)] == 1
        assert grid_row in {grid_row}
        assert hash(Row(id="r1", cells={"name": Cell("name", "Alpha")}).freeze()) is not None

    def test_type_option_still_part_of_equality(self):
        usd = Field("price", "Price", FieldType.NUMBER, {"format": "usd"})

        assert usd != usd.with_type_option({"format": "eur"})


class TestParserLimits:
    """Tests for out-of-range raw content."""

    @pytest.mark.parametrize("raw", ["1e999999", "Infinity", "NaN", "9" * 80])
    def test_unformattable_number_returned_unchanged(self, raw):
        field = Field("price", "Price", FieldType.NUMBER, {"format": "usd", "decimals": 2})

        assert NumberCellDataParser().parse(raw, field) == raw

    def test_large_but_plausible_number_is_formatted(self):
        field = Field("price", "Price", FieldType.NUMBER, {"format": "usd"})

        assert NumberCellDataParser().parse("1" + "0" * 20, field) == "$1" + "0" * 20

    def test_out_of_range_timestamp_keeps_include_time(self):
        field = Field("due", "Due", FieldType.DATE_TIME, {"include_time": True})

        assert DateCellDataParser().parse("99999999999999999", field) == DateCellData(include_time=True)
