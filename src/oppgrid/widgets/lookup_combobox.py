"""ttk.Combobox front end for LookupState.

The combobox forwards keystrokes, focus changes and list picks to a
LookupState and redraws itself from the state's change callback. The
dropdown is posted while the entry keeps keyboard focus so typing can
continue while results arrive.
"""

import tkinter as tk
from collections.abc import Callable
from tkinter import ttk

from ..models.record import Selection
from .lookup_state import LookupState


_KEEP_FOCUS_POST_TCL = """
namespace eval ::oppgrid {}
if {[info commands ::oppgrid::ComboboxPost] eq ""} {
    rename ::ttk::combobox::Post ::oppgrid::ComboboxPost
    proc ::ttk::combobox::Post {cb {keepFocus 0}} {
        set ::oppgrid::keepEntryFocus $keepFocus
        ::oppgrid::ComboboxPost $cb
    }
    set ::oppgrid::keepEntryFocus 0
    bind ComboboxListbox <Map> {
        if {$::oppgrid::keepEntryFocus} {
            set ::oppgrid::keepEntryFocus 0
            focus [ttk::combobox::LBMaster %W]
        } else {
            focus %W
        }
    }
}
"""


def install_keep_focus_post(widget: tk.Misc) -> None:
    """Let ttk::combobox::Post take a flag that leaves focus in the entry.

    Idempotent per Tcl interpreter.
    """
    widget.tk.eval(_KEEP_FOCUS_POST_TCL)


class LookupCombobox(ttk.Combobox):
    """Search-as-you-type combobox for picking a related account."""

    # Keys that never change the search text
    _IGNORED_KEYS = {
        "Shift_L",
        "Shift_R",
        "Control_L",
        "Control_R",
        "Alt_L",
        "Alt_R",
        "Up",
        "Down",
        "Left",
        "Right",
        "Tab",
    }

    def __init__(self, parent, state: LookupState, **kwargs):
        install_keep_focus_post(parent)
        super().__init__(parent, **kwargs)

        self.lookup = state
        self.lookup.set_change_callback(self._on_state_changed)

        if state.selection is not None and state.selection.label:
            self.set(state.selection.label)

        self.bind("<KeyRelease>", self._on_keyrelease)
        self.bind("<FocusIn>", lambda _e: self.lookup.handle_focus())
        self.bind("<FocusOut>", lambda _e: self.lookup.handle_blur())
        self.bind("<<ComboboxSelected>>", self._on_selected)
        self.bind("<Destroy>", self._on_destroy)

    # Public API methods

    def set_selection_callback(self, callback: Callable[[Selection], None]) -> None:
        """Set the callback function for when a selection is made or cleared."""
        self.lookup.set_selection_callback(callback)

    # Event handlers

    def _on_keyrelease(self, event):
        if event.keysym in self._IGNORED_KEYS:
            return
        if event.keysym == "Escape":
            self._hide_dropdown()
            return
        if event.keysym == "Return":
            self._finalize_entry()
            return

        text = self.get()
        if not text and self.lookup.has_selection:
            self.lookup.clear_selection()
        self.lookup.handle_input(text)

    def _on_selected(self, _event):
        index = self.current()
        if 0 <= index < len(self.lookup.results):
            self.lookup.select_index(index)

    def _finalize_entry(self):
        """Return picks the highlighted result, or the only result."""
        results = self.lookup.results
        index = self.current()
        if 0 <= index < len(results):
            self.lookup.select_index(index)
        elif len(results) == 1:
            self.lookup.select_index(0)

    def _on_destroy(self, event):
        if event.widget == self:
            self.lookup.close()

    # Rendering

    def _on_state_changed(self):
        labels = [option.label or "" for option in self.lookup.results]
        self["values"] = labels

        if self.lookup.selection is not None and not self.lookup.is_open:
            self.set(self.lookup.selection.label or "")

        if self.lookup.is_open and labels:
            self._show_dropdown()
        else:
            self._hide_dropdown()

    def _is_dropdown_open(self):
        try:
            popdown = f"{self._w}.popdown"
            if self.tk.eval(f"winfo exists {popdown}") == "1":
                return self.tk.eval(f"winfo viewable {popdown}") == "1"
            return False
        except tk.TclError:
            return False

    def _show_dropdown(self):
        if not self._is_dropdown_open():
            try:
                self.tk.call("ttk::combobox::Post", self._w, 1)
            except tk.TclError:
                pass

    def _hide_dropdown(self):
        if self._is_dropdown_open():
            try:
                self.tk.call("ttk::combobox::Unpost", self._w)
            except tk.TclError:
                pass
