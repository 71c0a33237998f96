"""Field (column) model for grid views.

Fields are owned by the remote source. The client holds read-only snapshots
that are replaced wholesale whenever a field changeset arrives.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .constants import DEFAULT_FIELD_WIDTH, FIELD_TYPE_DISPLAY, FieldType


def _freeze_mapping(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class Field:
    """Immutable column definition.

    Hashable. type_option takes part in equality but not in the hash.

    Usage:
        field = Field(id="f1", name="Price", field_type=FieldType.NUMBER,
                      type_option={"format": "usd"})

        # Modify by creating new instance
        updated = field.with_type_option({"format": "eur"})
    """

    id: str
    name: str
    field_type: FieldType
    # Excluded from the hash: the frozen mapping proxy is unhashable
    type_option: Mapping[str, Any] = field(default_factory=dict, hash=False)
    width: int = DEFAULT_FIELD_WIDTH
    visibility: bool = True

    def __post_init__(self) -> None:
        # Snapshot the config blob so callers can't mutate it afterwards
        object.__setattr__(self, "type_option", _freeze_mapping(self.type_option))

    @property
    def field_type_display(self) -> str:
        """Human-readable field type name."""
        return FIELD_TYPE_DISPLAY.get(self.field_type, "")

    def with_type_option(self, type_option: Mapping[str, Any]) -> Field:
        """Return a copy with a replaced type option blob."""
        return Field(
            id=self.id,
            name=self.name,
            field_type=self.field_type,
            type_option=type_option,
            width=self.width,
            visibility=self.visibility,
        )


@dataclass(frozen=True)
class FieldChangeset:
    """Batch of field definition changes for one view."""

    view_id: str
    inserted_fields: tuple[Field, ...] = ()
    deleted_field_ids: tuple[str, ...] = ()
    updated_fields: tuple[Field, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.inserted_fields or self.deleted_field_ids or self.updated_fields)
