"""Panel widget for the editable opportunity grid.

Uses tksheet for the table. The Account column is read-only in the sheet
and edited through a LookupCombobox popup placed over the cell.
"""

from __future__ import annotations

import tkinter as tk
from collections.abc import Callable
from tkinter import ttk
from typing import TYPE_CHECKING

from tksheet import Sheet, num2alpha

from ..debug_trace import logger
from ..models.constants import (
    FIELD_ACCOUNT_ID,
    FIELD_CLOSE_DATE,
    FIELD_IS_PRIVATE,
    FIELD_NAME,
    FIELD_STAGE_NAME,
)
from ..widgets.lookup_combobox import LookupCombobox
from ..widgets.lookup_state import LookupState
from .edit_watcher import CellEditWatcher

if TYPE_CHECKING:
    from ..models.grid_row import GridRow
    from ..services.save_reconciler import TaskRunner
    from ..settings import GridSettings
    from .grid_controller import GridController

# Column indices
COL_NAME = 0
COL_ACCOUNT = 1
COL_STAGE = 2
COL_CLOSE_DATE = 3
COL_PRIVATE = 4

# Column -> field written by edits in that column
COLUMN_FIELDS = {
    COL_NAME: FIELD_NAME,
    COL_ACCOUNT: FIELD_ACCOUNT_ID,
    COL_STAGE: FIELD_STAGE_NAME,
    COL_CLOSE_DATE: FIELD_CLOSE_DATE,
    COL_PRIVATE: FIELD_IS_PRIVATE,
}

# Background for cells that differ from the last saved values
COLOR_DIRTY_BG = "#fff2cc"


class GridPanel(ttk.Frame):
    """Toolbar (search, Save, Cancel, Refresh), the sheet and a status line."""

    def _build_row_display_data(self, row: GridRow) -> list:
        fields = row.editable
        return [
            fields.name,
            fields.account_name,
            fields.stage_name,
            fields.close_date.isoformat() if fields.close_date else "",
            fields.is_private,
        ]

    def _populate_sheet(self) -> None:
        """Rebuild the sheet from the currently visible rows."""
        self._suppress_notifications = True
        try:
            self._displayed = self._controller.filtered_rows()
            data = [self._build_row_display_data(row) for row in self._displayed]
            self.sheet.set_sheet_data(data, reset_col_positions=False)

            stage_values = [option.value for option in self._controller.stage_options]
            for data_idx, row in enumerate(self._displayed):
                self.sheet.delete_checkbox(data_idx, COL_PRIVATE)
                self.sheet.create_checkbox(
                    r=data_idx,
                    c=COL_PRIVATE,
                    checked=row.editable.is_private,
                    text="",
                )
                if stage_values:
                    self.sheet.dropdown(
                        self.sheet.span(f"{num2alpha(COL_STAGE)}{data_idx + 1}"),
                        values=stage_values,
                        set_value=row.editable.stage_name,
                    )
            self._apply_dirty_styling()
        finally:
            self._suppress_notifications = False
        self.update_status()

    def _apply_dirty_styling(self) -> None:
        store = self._controller.store
        self.sheet.dehighlight_all(redraw=False)
        for data_idx, row in enumerate(self._displayed):
            for field in store.dirty_fields(row.id):
                col = next(c for c, f in COLUMN_FIELDS.items() if f == field)
                self.sheet.highlight_cells(row=data_idx, column=col, bg=COLOR_DIRTY_BG)
        self.sheet.redraw()

    def update_status(self) -> None:
        """Refresh the row counts and the Save/Cancel button states."""
        store = self._controller.store
        dirty_count = len(store.dirty_rows())
        shown = len(self._displayed)
        total = len(store.rows)
        self.status_label.config(text=f"Rows: {shown}/{total} | Modified: {dirty_count}")
        self.save_button.state(["disabled"] if self._controller.save_disabled else ["!disabled"])
        self.cancel_button.state(["!disabled"] if dirty_count else ["disabled"])

    def _row_id_at(self, data_idx: int | None) -> str | None:
        if data_idx is None or data_idx >= len(self._displayed):
            return None
        return self._displayed[data_idx].id

    # --- Sheet Events ---

    def _on_begin_edit(self, event):
        record_id = self._row_id_at(event.row)
        field = COLUMN_FIELDS.get(event.column)
        if record_id and field:
            self._controller.handle_start_edit(record_id, field)
            self._edit_watcher.watch(record_id, field)
        return event.value

    def _cell_editor_open(self) -> bool:
        table = self.sheet.MT
        return bool(table.text_editor.open or table.dropdown.open)

    def _on_sheet_modified(self, event) -> None:
        """Push edited cells into the working copies (runs after tksheet applied them)."""
        if self._suppress_notifications:
            return

        cells = getattr(event, "cells", None)
        if not cells:
            return
        table_cells = cells.get("table", {})

        for (data_idx, col), _old_value in table_cells.items():
            record_id = self._row_id_at(data_idx)
            field = COLUMN_FIELDS.get(col)
            if record_id is None or field is None or col == COL_ACCOUNT:
                continue

            new_value = self.sheet.get_cell_data(data_idx, col)
            try:
                if col == COL_PRIVATE:
                    self._controller.handle_checkbox_change(record_id, field, new_value)
                else:
                    self._controller.handle_field_change(record_id, field, new_value)
            except ValueError as e:
                logger.debug(f"Rejected edit {field}={new_value!r}: {e}")
                row = self._controller.store.get_row(record_id)
                if row is not None:
                    self.sheet.set_cell_data(
                        data_idx, col, self._build_row_display_data(row)[col], redraw=True
                    )

    def _on_cell_double_click(self, event) -> None:
        selected = self.sheet.get_currently_selected()
        if not selected or selected.column != COL_ACCOUNT:
            return
        record_id = self._row_id_at(selected.row)
        if record_id:
            self._open_account_lookup(selected.row, record_id)

    # --- Account Lookup Popup ---

    def _open_account_lookup(self, data_idx: int, record_id: str) -> None:
        self._close_account_lookup()
        row = self._controller.store.get_row(record_id)
        if row is None:
            return

        self._controller.handle_start_edit(record_id, FIELD_ACCOUNT_ID)

        state = LookupState(
            self,
            self._task_runner,
            self._search_func,
            value=row.editable.account_id,
            label=row.editable.account_name,
            debounce_ms=self._settings.search_debounce_ms,
            blur_grace_ms=self._settings.lookup_blur_grace_ms,
            min_search_length=self._settings.min_search_length,
        )
        combobox = LookupCombobox(self.sheet, state)

        def _on_select(selection) -> None:
            self._controller.handle_account_select(record_id, selection)
            if selection.value is not None:
                self.after_idle(self._close_account_lookup)

        def _on_focus_out(_event) -> None:
            self._controller.handle_blur(record_id, FIELD_ACCOUNT_ID)
            self.after(self._settings.lookup_blur_grace_ms + 50, self._close_if_idle)

        combobox.set_selection_callback(_on_select)
        combobox.bind("<FocusOut>", _on_focus_out, add="+")

        x, y, w, h = self._cell_geometry(data_idx, COL_ACCOUNT)
        combobox.place(x=x, y=y, width=max(w, 180), height=h)
        combobox.focus_set()
        self._lookup_widget = combobox

    def _cell_geometry(self, data_idx: int, col: int) -> tuple[int, int, int, int]:
        """Approximate on-screen position of a cell, relative to the sheet."""
        x1 = self.sheet.MT.col_positions[col] - self.sheet.MT.canvasx(0)
        x2 = self.sheet.MT.col_positions[col + 1] - self.sheet.MT.canvasx(0)
        y1 = self.sheet.MT.row_positions[data_idx] - self.sheet.MT.canvasy(0)
        y2 = self.sheet.MT.row_positions[data_idx + 1] - self.sheet.MT.canvasy(0)
        offset_x = self.sheet.MT.winfo_x()
        offset_y = self.sheet.MT.winfo_y()
        return int(x1 + offset_x), int(y1 + offset_y), int(x2 - x1), int(y2 - y1)

    def _close_if_idle(self) -> None:
        widget = self._lookup_widget
        if widget is None or widget.lookup.is_open:
            return
        if self.focus_get() is widget:
            return
        self._close_account_lookup()

    def _close_account_lookup(self) -> None:
        if self._lookup_widget is not None:
            self._lookup_widget.destroy()
        self._lookup_widget = None

    # --- Store Events ---

    def _on_store_changed(self, _store, affected_ids) -> None:
        if affected_ids is None:
            self._populate_sheet()
            return

        displayed_idx = {row.id: idx for idx, row in enumerate(self._displayed)}
        self._suppress_notifications = True
        try:
            for record_id in affected_ids:
                data_idx = displayed_idx.get(record_id)
                if data_idx is None:
                    continue
                row = self._displayed[data_idx]
                for col, value in enumerate(self._build_row_display_data(row)):
                    if col == COL_PRIVATE:
                        continue
                    self.sheet.set_cell_data(data_idx, col, value)
            self._apply_dirty_styling()
        finally:
            self._suppress_notifications = False
        self.update_status()

    # --- Toolbar ---

    def _on_search_changed(self, *_args) -> None:
        self._controller.handle_search(self.search_var.get())
        self._populate_sheet()

    def _create_widgets(self) -> None:
        toolbar = ttk.Frame(self)
        toolbar.pack(fill=tk.X, padx=5, pady=(5, 2))

        ttk.Label(toolbar, text="Search:").pack(side=tk.LEFT)
        self.search_var = tk.StringVar()
        self.search_var.trace_add("write", self._on_search_changed)
        ttk.Entry(toolbar, textvariable=self.search_var, width=30).pack(side=tk.LEFT, padx=(5, 10))

        self.refresh_button = ttk.Button(toolbar, text="Refresh", command=self._controller.refresh)
        self.refresh_button.pack(side=tk.RIGHT)
        self.cancel_button = ttk.Button(toolbar, text="Cancel", command=self._controller.cancel)
        self.cancel_button.pack(side=tk.RIGHT, padx=(0, 5))
        self.save_button = ttk.Button(toolbar, text="Save", command=self._on_save)
        self.save_button.pack(side=tk.RIGHT, padx=(0, 5))

        self.sheet = Sheet(
            self,
            headers=["Name", "Account", "Stage", "Close Date", "Private"],
            show_row_index=True,
            height=400,
            width=800,
        )
        self.sheet.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)

        self.sheet.enable_bindings()
        self.sheet.disable_bindings(
            "column_drag_and_drop",
            "row_drag_and_drop",
            "rc_select_column",
            "rc_insert_column",
            "rc_delete_column",
            "rc_insert_row",
            "rc_delete_row",
            "sort_cells",
            "sort_row",
            "sort_column",
            "sort_rows",
            "sort_columns",
            "undo",
        )
        self.sheet.set_column_widths([220, 200, 160, 100, 60])
        self.sheet.readonly_columns([COL_ACCOUNT])

        self.sheet.extra_bindings("begin_edit_cell", self._on_begin_edit)
        self.sheet.bind("<<SheetModified>>", self._on_sheet_modified)
        self.sheet.bind("<Double-Button-1>", self._on_cell_double_click, add="+")

        footer = ttk.Frame(self)
        footer.pack(fill=tk.X, padx=5, pady=(2, 5))
        self.status_label = ttk.Label(footer, text="")
        self.status_label.pack(side=tk.LEFT)

    def _on_save(self) -> None:
        self._controller.save()
        self.update_status()

    def _on_destroy(self, event) -> None:
        if event.widget == self:
            self._edit_watcher.cancel()
            self._controller.store.remove_observer(self._on_store_changed)

    def __init__(
        self,
        parent: tk.Widget,
        controller: GridController,
        task_runner: TaskRunner,
        search_func: Callable[[str], list[dict]],
        settings: GridSettings,
    ):
        """Initialize the grid panel.

        Args:
            parent: Parent widget
            controller: Grid handlers bound to the record store
            task_runner: Runner used by the account lookup searches
            search_func: Backend account search
            settings: Timing configuration
        """
        super().__init__(parent)
        self._controller = controller
        self._task_runner = task_runner
        self._search_func = search_func
        self._settings = settings

        self._displayed: list[GridRow] = []
        self._suppress_notifications = False
        self._lookup_widget: LookupCombobox | None = None
        self._edit_watcher = CellEditWatcher(self, self._cell_editor_open, controller.handle_blur)

        self._create_widgets()
        controller.store.add_observer(self._on_store_changed)
        self.bind("<Destroy>", self._on_destroy)
        self._populate_sheet()

    def refresh_stage_options(self) -> None:
        """Redraw after the stage picklist arrives."""
        self._populate_sheet()
