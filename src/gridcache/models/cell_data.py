"""Parsed cell data types and the parsers that build them from raw content.

Each parser turns the raw string stored remotely into the value a cell
renders. Parsers receive the field so the result can follow the field's
current configuration (number format, date format, option labels).
Parsers never return None: an empty cell parses to an empty value.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Generic, TypeVar

from .constants import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_TIME_FORMAT,
    MAX_NUMBER_DIGITS,
    NUMBER_FORMAT_AFFIXES,
)
from .field import Field

T = TypeVar("T")


# ==============================================================================
# Parsed Values
# ==============================================================================


@dataclass(frozen=True)
class SelectOption:
    id: str
    name: str
    color: str = ""


@dataclass(frozen=True)
class SelectOptionCellData:
    """All options configured on the field plus the ones selected in the cell."""

    options: tuple[SelectOption, ...] = ()
    select_options: tuple[SelectOption, ...] = ()


@dataclass(frozen=True)
class DateCellData:
    date: str = ""
    time: str = ""
    timestamp: int | None = None
    include_time: bool = False


@dataclass(frozen=True)
class CalendarData:
    """Date edit sent back to the remote source."""

    date: date
    time: str | None = None

    def to_timestamp(self) -> int:
        """Seconds since epoch (UTC) for the date and optional HH:MM time."""
        clock = time(0, 0)
        if self.time:
            clock = datetime.strptime(self.time.strip(), "%H:%M").time()
        moment = datetime.combine(self.date, clock, tzinfo=timezone.utc)
        return int(moment.timestamp())


@dataclass(frozen=True)
class URLCellData:
    url: str = ""
    content: str = ""


# ==============================================================================
# Parsers
# ==============================================================================


class CellDataParser(ABC, Generic[T]):
    """Turns raw remote content into a typed cell value."""

    @abstractmethod
    def parse(self, raw: str | None, field: Field) -> T:
        """Parse raw content using the field's current configuration."""


class StringCellDataParser(CellDataParser[str]):
    def parse(self, raw: str | None, field: Field) -> str:
        return raw or ""


class NumberCellDataParser(CellDataParser[str]):
    """Formats a numeric string with the field's format and decimal places.

    Non-numeric, infinite or implausibly large content is returned unchanged.
    """

    def parse(self, raw: str | None, field: Field) -> str:
        if not raw:
            return ""
        try:
            number = Decimal(raw.strip())
        except InvalidOperation:
            return raw
        if not number.is_finite() or number.adjusted() >= MAX_NUMBER_DIGITS:
            return raw

        decimals = field.type_option.get("decimals")
        if isinstance(decimals, int) and decimals >= 0:
            text = f"{number:.{decimals}f}"
        else:
            text = str(number)

        prefix, suffix = NUMBER_FORMAT_AFFIXES.get(field.type_option.get("format", "number"), ("", ""))
        if text.startswith("-"):
            return f"-{prefix}{text[1:]}{suffix}"
        return f"{prefix}{text}{suffix}"


class DateCellDataParser(CellDataParser[DateCellData]):
    """Parses a UTC epoch-seconds string into formatted date/time text.

    Non-integer or out-of-range timestamps parse to an empty value.
    """

    def parse(self, raw: str | None, field: Field) -> DateCellData:
        include_time = bool(field.type_option.get("include_time", False))
        if not raw or not raw.strip():
            return DateCellData(include_time=include_time)
        try:
            timestamp = int(raw.strip())
            moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return DateCellData(include_time=include_time)

        date_format = field.type_option.get("date_format", DEFAULT_DATE_FORMAT)
        time_format = field.type_option.get("time_format", DEFAULT_TIME_FORMAT)
        return DateCellData(
            date=moment.strftime(date_format),
            time=moment.strftime(time_format) if include_time else "",
            timestamp=timestamp,
            include_time=include_time,
        )


class SelectOptionCellDataParser(CellDataParser[SelectOptionCellData]):
    """Resolves comma-separated option ids against the field's option list.

    Ids with no matching option (e.g. deleted options) are dropped.
    """

    def parse(self, raw: str | None, field: Field) -> SelectOptionCellData:
        options = tuple(
            SelectOption(
                id=str(option.get("id", "")),
                name=str(option.get("name", "")),
                color=str(option.get("color", "")),
            )
            for option in field.type_option.get("options", ())
        )
        by_id = {option.id: option for option in options}

        selected: list[SelectOption] = []
        for option_id in (raw or "").split(","):
            option_id = option_id.strip()
            if option_id in by_id and by_id[option_id] not in selected:
                selected.append(by_id[option_id])

        return SelectOptionCellData(options=options, select_options=tuple(selected))


class URLCellDataParser(CellDataParser[URLCellData]):
    """Parses {"url": ..., "content": ...} or a bare link."""

    def parse(self, raw: str | None, field: Field) -> URLCellData:
        if not raw:
            return URLCellData()

        text = raw.strip()
        if text.startswith("{"):
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                payload = None
            if isinstance(payload, dict):
                content = str(payload.get("content", ""))
                url = str(payload.get("url", "")) or normalize_url(content)
                return URLCellData(url=url, content=content)

        return URLCellData(url=normalize_url(text), content=text)


def normalize_url(text: str) -> str:
    """Add an https scheme to a link that has none."""
    text = text.strip()
    if not text:
        return ""
    if "://" in text or text.startswith("mailto:"):
        return text
    return f"https://{text}"
