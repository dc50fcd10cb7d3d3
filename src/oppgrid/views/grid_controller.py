"""Event handlers wiring grid interactions into the RecordStore.

The controller is what the Tk panel calls; it holds no widget references,
so every handler can be exercised without a display.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..debug_trace import logger
from ..filters import RowSearchFilter
from ..models.constants import FIELD_ACCOUNT_ID, FIELD_ACCOUNT_NAME
from ..models.record import LookupOption, Selection, parse_bool

if TYPE_CHECKING:
    from ..data.record_store import RecordStore
    from ..models.grid_row import GridRow
    from ..services.save_reconciler import SaveReconciler


class GridController:
    """Grid-level handlers: field edits, account selection, search, save/cancel."""

    def __init__(self, store: RecordStore, reconciler: SaveReconciler):
        self._store = store
        self._reconciler = reconciler
        self._search_filter = RowSearchFilter()
        store.add_observer(self._on_store_changed)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def search_term(self) -> str:
        return self._search_filter.term

    @property
    def stage_options(self) -> list[LookupOption]:
        return self._reconciler.stage_options

    @property
    def save_disabled(self) -> bool:
        return self._reconciler.save_disabled

    def filtered_rows(self) -> list[GridRow]:
        """Rows to display: unhidden, in original order."""
        return self._store.visible_rows()

    # --- Field Edits ---

    def handle_field_change(self, record_id: str, field: str, value: Any) -> bool:
        """Write a text/picklist/date edit into the working copy."""
        return self._store.set_field(record_id, field, value)

    def handle_checkbox_change(self, record_id: str, field: str, checked: Any) -> bool:
        """Write a checkbox state into the working copy."""
        return self._store.set_field(record_id, field, parse_bool(checked))

    def handle_account_select(self, record_id: str, selection: Selection) -> bool:
        """Apply a lookup selection to AccountId/AccountName and close edit mode.

        The Account group's edit mode is completed immediately, so a pending
        blur timer from the same interaction cannot reopen or race it.
        """
        if not self._store.set_field(record_id, FIELD_ACCOUNT_ID, selection.value):
            return False
        self._store.set_field(record_id, FIELD_ACCOUNT_NAME, selection.label)
        self._store.complete_edit(record_id, FIELD_ACCOUNT_ID)
        logger.debug(f"Account for {record_id!r} set to {selection.value!r}")
        return True

    # --- Edit Mode ---

    def handle_start_edit(self, record_id: str, field: str) -> None:
        self._store.start_edit(record_id, field)

    def handle_blur(self, record_id: str, field: str) -> None:
        self._store.end_edit(record_id, field)

    # --- Search ---

    def handle_search(self, term: str) -> None:
        """Hide rows that do not match term; see filtered_rows()."""
        self._search_filter.apply_filter(self._store.rows, term)

    def _on_store_changed(self, _store, affected_ids) -> None:
        # A full reload or revert brings new rows in; keep the active filter applied
        if affected_ids is None and self._search_filter.term:
            self._search_filter.apply_filter(self._store.rows, self._search_filter.term)

    # --- Save/Cancel/Refresh ---

    def save(self) -> bool:
        return self._reconciler.save_all()

    def cancel(self) -> bool:
        return self._reconciler.cancel_all()

    def refresh(self) -> None:
        self._reconciler.refresh()
