"""Record store with working-copy/snapshot architecture.

The store maintains two layers per row:
- snapshot: Value copy of the editable fields at the last sync point
  (initial load or last successful save)
- editable: The live working copy that user edits touch

Key behaviors:
- Dirtiness is a field-by-field comparison over the tracked fields
- Snapshots never alias the working copy (explicit value copies)
- Edit-mode flags per field group, with a grace-delayed blur transition
  that loses to any later explicit transition
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from ..debug_trace import log_perf, logger, perf_timer
from ..models.constants import EDIT_GRACE_MS
from ..models.edit_mode import EditModeTracker, field_group_for
from ..models.grid_row import GridRow
from ..models.record import EditableFields, Record

if TYPE_CHECKING:
    import tkinter as tk

Observer = Callable[[object, "set[str] | None"], None]


class RecordStore:
    """Central row store for the opportunity grid.

    Usage:
        store = RecordStore(tk_root)
        store.initialize(records)

        store.set_field(record_id, "Name", "Renewal 2025")
        store.dirty_rows()   # -> [row]

        store.commit(saved_records)   # advances working copy + snapshot
        store.revert_all()            # working copies back to snapshot
    """

    def __init__(self, tk_root: tk.Misc, edit_grace_ms: int = EDIT_GRACE_MS):
        """Initialize the record store.

        Args:
            tk_root: Tk widget used for after() scheduling of blur timers
            edit_grace_ms: Delay before a blur closes edit mode
        """
        self._tk_root = tk_root
        self._edit_grace_ms = edit_grace_ms

        self._rows: list[GridRow] = []
        self._index: dict[str, GridRow] = {}
        self._snapshots: dict[str, EditableFields] = {}

        # Observer callbacks - called with set of affected ids (None = all)
        self._observers: list[Observer] = []

    # --- Data Loading ---

    def initialize(self, records: Iterable[Record]) -> None:
        """Replace the entire row collection and snapshot map.

        Args:
            records: Records in display order
        """
        rows = [GridRow.from_record(record) for record in records]
        self._rows = rows
        self._index = {row.id: row for row in rows}
        self._snapshots = {row.id: row.editable.copy() for row in rows}
        logger.debug(f"Store initialized with {len(rows)} rows")
        self._notify_observers(None)

    # --- Row Access ---

    @property
    def rows(self) -> list[GridRow]:
        """All rows in display order."""
        return self._rows

    def get_row(self, record_id: str) -> GridRow | None:
        """Get row by record Id."""
        return self._index.get(record_id)

    def snapshot(self, record_id: str) -> EditableFields | None:
        """Get a copy of the snapshot for a record Id."""
        snap = self._snapshots.get(record_id)
        return snap.copy() if snap is not None else None

    def visible_rows(self) -> list[GridRow]:
        """Rows not hidden by the search filter, in original order."""
        return [row for row in self._rows if not row.hidden]

    # --- Editing ---

    def set_field(self, record_id: str, field: str, value: Any) -> bool:
        """Write a value into a row's working copy.

        Args:
            record_id: Id of the row to edit
            field: Wire field name (e.g. 'Name', 'AccountId')
            value: New value (coerced to the field type)

        Returns:
            False if no row has this Id (nothing changed)

        Raises:
            KeyError: If field is not a record field
        """
        row = self._index.get(record_id)
        if row is None:
            logger.debug(f"set_field: no row with Id {record_id!r}")
            return False
        row.editable.set_field(field, value)
        self._notify_observers({record_id})
        return True

    # --- Dirty State Queries ---

    @log_perf
    def dirty_rows(self) -> list[GridRow]:
        """Rows whose working copy differs from the snapshot, in row order."""
        dirty = []
        for row in self._rows:
            snap = self._snapshots.get(row.id)
            if snap is None:
                continue
            if row.editable.differs_from(snap):
                dirty.append(row)
        return dirty

    def is_dirty(self) -> bool:
        """Check if there are any unsaved changes."""
        return len(self.dirty_rows()) > 0

    def is_row_dirty(self, record_id: str) -> bool:
        """Check if a single row has unsaved changes."""
        row = self._index.get(record_id)
        snap = self._snapshots.get(record_id)
        if row is None or snap is None:
            return False
        return row.editable.differs_from(snap)

    def dirty_fields(self, record_id: str) -> list[str]:
        """Tracked field names that differ from the snapshot for one row."""
        row = self._index.get(record_id)
        snap = self._snapshots.get(record_id)
        if row is None or snap is None:
            return []
        return row.editable.changed_fields(snap)

    # --- Save/Discard ---

    def commit(self, updated_records: Iterable[Record]) -> set[str]:
        """Merge saved records back and re-baseline their snapshots.

        Rows whose Id is not in updated_records are left untouched.

        Returns:
            Set of ids that were updated
        """
        affected: set[str] = set()
        updated_records = list(updated_records)
        with perf_timer("commit", row_count=len(updated_records)):
            for record in updated_records:
                row = self._index.get(record.id)
                if row is None:
                    logger.debug(f"commit: ignoring unknown Id {record.id!r}")
                    continue
                row.record = record
                row.editable = EditableFields.from_record(record)
                self._snapshots[record.id] = row.editable.copy()
                affected.add(record.id)

        if affected:
            self._notify_observers(affected)
        return affected

    def revert_all(self) -> None:
        """Reset every working copy to its snapshot and every edit flag to Viewing."""
        for row in self._rows:
            snap = self._snapshots.get(row.id)
            if snap is not None:
                row.editable = snap.copy()
            row.edit_mode.reset()
        self._notify_observers(None)

    # --- Edit Mode ---

    def _require_row(self, record_id: str) -> GridRow | None:
        row = self._index.get(record_id)
        if row is None:
            logger.debug(f"edit mode: no row with Id {record_id!r}")
        return row

    def is_editing(self, record_id: str, field: str) -> bool:
        """Check if the field's group is in Editing state for a row."""
        row = self._index.get(record_id)
        return row is not None and row.edit_mode.is_editing(field_group_for(field))

    def start_edit(self, record_id: str, field: str) -> None:
        """Viewing -> Editing for the field's group."""
        row = self._require_row(record_id)
        if row is None:
            return
        row.edit_mode.start(field_group_for(field))
        self._notify_observers({record_id})

    def end_edit(self, record_id: str, field: str) -> None:
        """Blur: schedule Editing -> Viewing after the grace delay.

        The timer is bound to the row's tracker and the group's current
        generation, so a later start_edit/complete_edit (or a reload that
        replaces the row) makes it a no-op.
        """
        row = self._require_row(record_id)
        if row is None:
            return
        group = field_group_for(field)
        tracker = row.edit_mode
        generation = tracker.generation(group)

        def _on_grace_elapsed() -> None:
            if tracker.finish_if_current(group, generation):
                self._notify_observers({record_id})

        self._tk_root.after(self._edit_grace_ms, _on_grace_elapsed)

    def complete_edit(self, record_id: str, field: str) -> None:
        """Explicit completion: Editing -> Viewing immediately."""
        row = self._require_row(record_id)
        if row is None:
            return
        row.edit_mode.finish(field_group_for(field))
        self._notify_observers({record_id})

    # --- Observers ---

    def _notify_observers(self, affected_ids: set[str] | None = None) -> None:
        """Notify all observers of data changes."""
        for callback in self._observers:
            try:
                callback(self, affected_ids)
            except Exception:
                # Don't let one observer's error break others
                logger.exception("Store observer failed")

    def add_observer(self, callback: Observer) -> None:
        """Add observer callback."""
        if callback not in self._observers:
            self._observers.append(callback)

    def remove_observer(self, callback: Observer) -> None:
        """Remove observer callback."""
        if callback in self._observers:
            self._observers.remove(callback)
