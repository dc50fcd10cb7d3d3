"""State and timing logic for the account lookup (autocomplete) widget.

LookupState is toolkit-free apart from needing an object with Tk's
after()/after_cancel() scheduling API; LookupCombobox binds it to a
ttk.Combobox.

Timing rules:
- typing reschedules a single debounced search
- focus searches immediately if the term already qualifies
- blur closes the dropdown only after a grace delay so a click on a
  result still registers
- every search carries a sequence number and only the latest one
  issued may update the results
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..debug_trace import logger
from ..models.constants import LOOKUP_BLUR_GRACE_MS, MIN_SEARCH_LENGTH, SEARCH_DEBOUNCE_MS
from ..models.record import CLEARED_SELECTION, LookupOption, Selection

if TYPE_CHECKING:
    import tkinter as tk

    from ..services.save_reconciler import TaskRunner

SearchFunc = Callable[[str], list[dict[str, Any]]]


class LookupState:
    """Debounced search-as-you-type state for one lookup field."""

    def __init__(
        self,
        tk_root: tk.Misc,
        task_runner: TaskRunner,
        search_func: SearchFunc,
        *,
        value: str | None = None,
        label: str | None = None,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
        blur_grace_ms: int = LOOKUP_BLUR_GRACE_MS,
        min_search_length: int = MIN_SEARCH_LENGTH,
    ):
        self._tk_root = tk_root
        self._runner = task_runner
        self._search_func = search_func
        self._debounce_ms = debounce_ms
        self._blur_grace_ms = blur_grace_ms
        self._min_search_length = min_search_length

        self.search_term = ""
        self.results: list[LookupOption] = []
        self.is_open = False
        self.selection: Selection | None = None
        if value and label:
            # The entry shows the label, so focusing it searches for that text
            self.selection = Selection(value=value, label=label)
            self.search_term = label

        self._debounce_id: str | None = None
        self._blur_id: str | None = None
        self._request_seq = 0

        self.selection_callback: Callable[[Selection], None] | None = None
        self.change_callback: Callable[[], None] | None = None

    # Public API methods

    @property
    def has_selection(self) -> bool:
        return self.selection is not None

    def set_selection_callback(self, callback: Callable[[Selection], None]) -> None:
        """Set the callback function for when a selection is made or cleared."""
        self.selection_callback = callback

    def set_change_callback(self, callback: Callable[[], None]) -> None:
        """Set the callback function for results/open-state changes."""
        self.change_callback = callback

    def handle_input(self, text: str) -> None:
        """Record the term and (re)schedule the debounced search."""
        self.search_term = text or ""
        self._cancel_debounce()
        self._debounce_id = self._tk_root.after(self._debounce_ms, self._on_debounce_elapsed)

    def handle_focus(self) -> None:
        """Open the dropdown; search right away if the term already qualifies."""
        self._cancel_blur()
        self.is_open = True
        if self._term_qualifies():
            self._cancel_debounce()
            self._perform_search()
        self._changed()

    def handle_blur(self) -> None:
        """Close the dropdown after the grace delay."""
        self._cancel_blur()
        self._blur_id = self._tk_root.after(self._blur_grace_ms, self._on_blur_elapsed)

    def select(self, value: str | None, label: str | None) -> None:
        """Choose a candidate, emit it, and close the dropdown."""
        self.selection = Selection(value=value, label=label)
        self._invalidate_searches()
        self._cancel_blur()
        self._emit(self.selection)
        self.is_open = False
        self.results = []
        self._changed()

    def select_index(self, index: int) -> None:
        """Choose results[index]."""
        option = self.results[index]
        self.select(option.value, option.label)

    def clear_selection(self) -> None:
        """Drop the current selection and emit a cleared selection."""
        self.selection = None
        self._emit(CLEARED_SELECTION)
        self._changed()

    def close(self) -> None:
        """Cancel pending timers and ignore in-flight searches."""
        self._cancel_debounce()
        self._cancel_blur()
        self._invalidate_searches()

    # Internal

    def _term_qualifies(self) -> bool:
        return len(self.search_term) >= self._min_search_length

    def _on_debounce_elapsed(self) -> None:
        self._debounce_id = None
        if self._term_qualifies():
            self._perform_search()
        else:
            self._invalidate_searches()
            self.results = []
            self._changed()

    def _on_blur_elapsed(self) -> None:
        self._blur_id = None
        self.is_open = False
        self._changed()

    def _perform_search(self) -> None:
        self._request_seq += 1
        seq = self._request_seq
        term = self.search_term
        logger.debug(f"Lookup search #{seq} for {term!r}")
        self._runner.run(
            lambda: self._search_func(term),
            lambda result, err: self._on_search_done(seq, result, err),
        )

    def _on_search_done(self, seq: int, result, err: Exception | None) -> None:
        if seq != self._request_seq:
            logger.debug(f"Discarding stale lookup result #{seq} (latest is #{self._request_seq})")
            return

        if err is not None:
            logger.warning(f"Lookup search error: {err!r}")
            self.results = []
        else:
            self.results = [LookupOption.from_search_result(item) for item in result or []]
        self._changed()

    def _invalidate_searches(self) -> None:
        self._request_seq += 1

    def _cancel_debounce(self) -> None:
        if self._debounce_id is not None:
            self._tk_root.after_cancel(self._debounce_id)
            self._debounce_id = None

    def _cancel_blur(self) -> None:
        if self._blur_id is not None:
            self._tk_root.after_cancel(self._blur_id)
            self._blur_id = None

    def _emit(self, selection: Selection) -> None:
        if self.selection_callback:
            self.selection_callback(selection)

    def _changed(self) -> None:
        if self.change_callback:
            self.change_callback()
