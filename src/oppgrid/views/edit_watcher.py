"""Detects the end of an in-cell edit session.

tksheet reports committed changes only. An edit cancelled with Escape, or
closed with an unchanged value, emits no event, so the editor's open state
is polled with after() until it closes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from ..debug_trace import logger
from ..models.constants import EDITOR_POLL_MS

if TYPE_CHECKING:
    import tkinter as tk


class CellEditWatcher:
    """Calls on_closed(record_id, field) once the cell editor is gone."""

    def __init__(
        self,
        tk_root: tk.Misc,
        editor_open: Callable[[], bool],
        on_closed: Callable[[str, str], None],
        poll_ms: int = EDITOR_POLL_MS,
    ):
        self._tk_root = tk_root
        self._editor_open = editor_open
        self._on_closed = on_closed
        self._poll_ms = poll_ms
        self._active: tuple[str, str] | None = None
        self._after_id: str | None = None

    @property
    def active(self) -> tuple[str, str] | None:
        """(record_id, field) of the edit being watched, if any."""
        return self._active

    def watch(self, record_id: str, field: str) -> None:
        """Track a newly opened editor; an unfinished different edit is closed first."""
        if self._active is not None and self._active != (record_id, field):
            self._finish()
        self._active = (record_id, field)
        if self._after_id is None:
            self._after_id = self._tk_root.after(self._poll_ms, self._poll)

    def cancel(self) -> None:
        """Stop polling without reporting (widget teardown)."""
        if self._after_id is not None:
            self._tk_root.after_cancel(self._after_id)
            self._after_id = None
        self._active = None

    def _poll(self) -> None:
        self._after_id = None
        if self._active is None:
            return
        if self._editor_open():
            self._after_id = self._tk_root.after(self._poll_ms, self._poll)
            return
        self._finish()

    def _finish(self) -> None:
        record_id, field = self._active
        self._active = None
        logger.debug(f"Cell editor closed for {record_id!r} {field}")
        self._on_closed(record_id, field)
