# ==============================================================================
# Field Type Configuration
# ==============================================================================

from enum import IntEnum


class FieldType(IntEnum):
    """Closed set of field types a grid column can have."""

    RICH_TEXT = 0
    NUMBER = 1
    DATE_TIME = 2
    SINGLE_SELECT = 3
    MULTI_SELECT = 4
    CHECKBOX = 5
    URL = 6


# Display names for FieldType values
FIELD_TYPE_DISPLAY: dict[int, str] = {
    FieldType.RICH_TEXT: "Text",
    FieldType.NUMBER: "Number",
    FieldType.DATE_TIME: "Date",
    FieldType.SINGLE_SELECT: "Single Select",
    FieldType.MULTI_SELECT: "Multi Select",
    FieldType.CHECKBOX: "Checkbox",
    FieldType.URL: "URL",
}

# Types whose displayed value depends on the field's type option
# (number format, date format, select option labels)
RELOAD_ON_FIELD_CHANGED_TYPES: frozenset[FieldType] = frozenset(
    {
        FieldType.NUMBER,
        FieldType.DATE_TIME,
        FieldType.SINGLE_SELECT,
        FieldType.MULTI_SELECT,
    }
)


# ==============================================================================
# Row Configuration
# ==============================================================================

DEFAULT_ROW_HEIGHT = 36
DEFAULT_FIELD_WIDTH = 150

# Checkbox cells store one of these raw strings
CHECKBOX_CHECKED = "Yes"
CHECKBOX_UNCHECKED = "No"


# ==============================================================================
# Number Formats
# ==============================================================================

# format name -> (prefix, suffix)
NUMBER_FORMAT_AFFIXES: dict[str, tuple[str, str]] = {
    "number": ("", ""),
    "usd": ("$", ""),
    "eur": ("€", ""),
    "gbp": ("£", ""),
    "yen": ("¥", ""),
    "percent": ("", "%"),
}

DEFAULT_DATE_FORMAT = "%Y/%m/%d"
DEFAULT_TIME_FORMAT = "%H:%M"

# Numbers with more integer digits than this are shown as stored
MAX_NUMBER_DIGITS = 64
