"""Data model for opportunity records.

Contains the frozen Record dataclass (server state), the mutable EditableFields
working copy, and helpers for converting to and from wire dicts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any

from .constants import (
    FIELD_ACCOUNT_ID,
    FIELD_ATTRS,
    FIELD_CLOSE_DATE,
    FIELD_IS_PRIVATE,
    TRACKED_FIELDS,
)

# ==============================================================================
# Helper Functions
# ==============================================================================


def parse_close_date(value: date | str | None) -> date | None:
    """Coerce a close date from the grid or the wire into a date.

    Args:
        value: A date, an ISO 'YYYY-MM-DD' string, or empty/None

    Returns:
        The parsed date, or None for empty input

    Raises:
        ValueError: If a non-empty string is not a valid ISO date
    """
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text)


def parse_bool(value: Any) -> bool:
    """Coerce checkbox and CSV values ('1', 'true', True) to bool."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def _attr_for(field_name: str) -> str:
    """Map a wire field name to its attribute name.

    Raises:
        KeyError: If field_name is not a known record field
    """
    try:
        return FIELD_ATTRS[field_name]
    except KeyError:
        raise KeyError(f"Unknown record field: {field_name!r}") from None


def _coerce(field_name: str, value: Any) -> Any:
    if field_name == FIELD_CLOSE_DATE:
        return parse_close_date(value)
    if field_name == FIELD_IS_PRIVATE:
        return parse_bool(value)
    if field_name == FIELD_ACCOUNT_ID:
        return value or None
    if value is None:
        return ""
    return str(value)


# ==============================================================================
# Record Types
# ==============================================================================


@dataclass(frozen=True)
class Record:
    """One opportunity as last returned by the backend.

    Attributes use snake_case; the wire names (Id, Name, AccountId, ...) are
    used by from_dict()/to_dict().
    """

    id: str
    name: str = ""
    account_id: str | None = None
    account_name: str = ""
    stage_name: str = ""
    close_date: date | None = None
    is_private: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Record:
        """Build a Record from a wire dict, ignoring unknown keys."""
        values = {
            attr: _coerce(wire, data[wire]) for wire, attr in FIELD_ATTRS.items() if wire in data
        }
        if "id" not in values or not values["id"]:
            raise ValueError("Record payload is missing 'Id'")
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire dict for this record."""
        return {wire: getattr(self, attr) for wire, attr in FIELD_ATTRS.items()}


@dataclass
class EditableFields:
    """Mutable working copy of a record's fields.

    This is the only surface user edits touch. Every field holds an immutable
    scalar, so copy() yields a fully independent value copy.
    """

    id: str
    name: str = ""
    account_id: str | None = None
    account_name: str = ""
    stage_name: str = ""
    close_date: date | None = None
    is_private: bool = False

    @classmethod
    def from_record(cls, record: Record) -> EditableFields:
        """Create a working copy holding the record's values."""
        return cls(**{f.name: getattr(record, f.name) for f in fields(cls)})

    def copy(self) -> EditableFields:
        """Return an independent copy of these fields."""
        return replace(self)

    def get_field(self, field_name: str) -> Any:
        """Get a field value by wire name.

        Raises:
            KeyError: If field_name is not a record field.
        """
        return getattr(self, _attr_for(field_name))

    def set_field(self, field_name: str, value: Any) -> None:
        """Set a field value by wire name, coercing to the field's type.

        Raises:
            KeyError: If field_name is not a record field.
            ValueError: If a CloseDate string is not an ISO date.
        """
        attr = _attr_for(field_name)
        if attr == "id":
            raise KeyError("Record 'Id' is not editable")
        setattr(self, attr, _coerce(field_name, value))

    def changed_fields(self, other: EditableFields) -> list[str]:
        """Return tracked wire field names whose values differ from other."""
        return [f for f in TRACKED_FIELDS if self.get_field(f) != other.get_field(f)]

    def differs_from(self, other: EditableFields) -> bool:
        """Check if any tracked field differs from other."""
        return any(self.get_field(f) != other.get_field(f) for f in TRACKED_FIELDS)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire payload submitted to the batch update."""
        return {wire: getattr(self, attr) for wire, attr in FIELD_ATTRS.items()}


@dataclass(frozen=True)
class LookupOption:
    """A candidate (or chosen) related record: value is the Id, label the name."""

    value: str | None
    label: str | None

    @classmethod
    def from_search_result(cls, item: Mapping[str, Any]) -> LookupOption:
        """Map a backend {Id, Name} search item to an option."""
        return cls(value=item.get("Id"), label=item.get("Name"))


# A selection event carries the same pair; (None, None) means "cleared"
Selection = LookupOption

CLEARED_SELECTION = Selection(value=None, label=None)
