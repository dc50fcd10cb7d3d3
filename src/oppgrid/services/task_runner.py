"""Background task runner bound to the Tk event loop.

Backend calls block (file or network I/O), so they run on worker threads.
Results are handed back through a queue that the Tk thread drains with
after(), so completion callbacks always run on the Tk thread and may
touch widgets and the record store.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..debug_trace import logger
from ..models.constants import TASK_POLL_INTERVAL_MS

if TYPE_CHECKING:
    import tkinter as tk

ResultHandler = Callable[[Any, "Exception | None"], None]


class TkTaskRunner:
    """Run work on a thread; deliver (result, error) on the Tk thread.

    - never touches widgets from worker threads
    - completion callbacks run in submission-independent arrival order
    - callback exceptions are logged, never propagated into the Tk loop
    """

    def __init__(self, tk_root: tk.Misc, poll_interval_ms: int = TASK_POLL_INTERVAL_MS):
        self._tk_root = tk_root
        self._poll_interval_ms = poll_interval_ms
        self._results: queue.SimpleQueue = queue.SimpleQueue()
        self._pending = 0
        self._after_id: str | None = None
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of tasks whose completion has not been delivered yet."""
        return self._pending

    def run(self, work: Callable[[], Any], on_done: ResultHandler) -> None:
        """Run work() on a worker thread and call on_done(result, error) on Tk."""
        if self._closed:
            return

        def worker() -> None:
            result = None
            err: Exception | None = None
            try:
                result = work()
            except Exception as exc:  # noqa: BLE001
                err = exc
            self._results.put((on_done, result, err))

        self._pending += 1
        threading.Thread(target=worker, daemon=True).start()
        self._schedule_poll()

    def _schedule_poll(self) -> None:
        if self._after_id is None and not self._closed:
            self._after_id = self._tk_root.after(self._poll_interval_ms, self._drain)

    def _drain(self) -> None:
        """Deliver every finished task; reschedule while tasks are outstanding."""
        self._after_id = None
        if self._closed:
            return

        while True:
            try:
                on_done, result, err = self._results.get_nowait()
            except queue.Empty:
                break
            self._pending -= 1
            try:
                on_done(result, err)
            except Exception:
                logger.exception("Task completion handler failed")

        if self._pending > 0:
            self._schedule_poll()

    def close(self) -> None:
        """Stop delivering completions (window is closing)."""
        self._closed = True
        if self._after_id is not None:
            try:
                self._tk_root.after_cancel(self._after_id)
            except Exception:
                pass  # Widget may be destroyed
        self._after_id = None
