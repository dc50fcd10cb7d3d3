"""Grid row: a Record, its working copy, edit-mode flags and visibility."""

from __future__ import annotations

from dataclasses import dataclass, field

from .edit_mode import EditModeTracker
from .record import EditableFields, Record


@dataclass(eq=False)
class GridRow:
    """One row of the opportunity grid.

    Attributes:
        record: Base values as last loaded or saved (never edited by the user).
        editable: Working copy; the single mutable source of field values.
        edit_mode: Per field group Viewing/Editing flags.
        hidden: Set by the search filter; display only.
    """

    record: Record
    editable: EditableFields
    edit_mode: EditModeTracker = field(default_factory=EditModeTracker)
    hidden: bool = False

    @classmethod
    def from_record(cls, record: Record) -> GridRow:
        return cls(record=record, editable=EditableFields.from_record(record))

    @property
    def id(self) -> str:
        return self.record.id

    def __repr__(self) -> str:
        return f"GridRow({self.id!r}, {self.editable.name!r}, hidden={self.hidden})"
