"""Load / save orchestration between the RecordStore and a DataSource.

SaveReconciler owns the reconciliation cycle:
    dirty rows -> update_batch() -> store.commit() -> snapshot re-baselined

Every backend call runs through the task runner; completions arrive on the
Tk thread. Failures never escape: they are normalized into messages and
surfaced through the notify callback.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from ..debug_trace import logger
from ..models.constants import Severity
from ..models.notification import Notification
from ..models.record import LookupOption
from .error_normalizer import format_errors

if TYPE_CHECKING:
    from ..data.data_source import DataSource
    from ..data.record_store import RecordStore


class TaskRunner(Protocol):
    def run(self, work: Callable[[], Any], on_done: Callable[[Any, Any], None]) -> None: ...


NotifyCallback = Callable[[Notification], None]


class SaveReconciler:
    """Diff, batch-submit and merge-back for the opportunity grid.

    Usage:
        reconciler = SaveReconciler(store, data_source, runner, notify=show_toast)
        reconciler.load()
        ...
        reconciler.save_all()    # only dirty rows are submitted
        reconciler.cancel_all()  # local revert, no backend call
    """

    def __init__(
        self,
        store: RecordStore,
        data_source: DataSource,
        task_runner: TaskRunner,
        notify: NotifyCallback | None = None,
    ):
        self._store = store
        self._data_source = data_source
        self._runner = task_runner
        self._notify_callback = notify

        self.stage_options: list[LookupOption] = []
        self.stage_options_callback: Callable[[], None] | None = None

        # Only the most recently issued load is applied
        self._load_seq = 0
        self._saving = False

    @property
    def is_saving(self) -> bool:
        """True while a batch update is in flight."""
        return self._saving

    @property
    def save_disabled(self) -> bool:
        """Save is disabled while saving or when nothing is dirty."""
        return self._saving or not self._store.is_dirty()

    def set_stage_options_callback(self, callback: Callable[[], None]) -> None:
        """Set the callback function for when the stage picklist arrives."""
        self.stage_options_callback = callback

    def _notify(self, title: str, message: str, severity: Severity) -> None:
        if self._notify_callback is None:
            return
        self._notify_callback(Notification(title=title, message=message, severity=severity))

    # --- Loading ---

    def load(self) -> None:
        """Fetch every record and replace the store contents wholesale."""
        self._load_seq += 1
        seq = self._load_seq
        self._runner.run(
            self._data_source.list_records,
            lambda result, err: self._on_load_done(seq, result, err),
        )

    def refresh(self) -> None:
        """Re-issue the full load, discarding in-memory edits."""
        logger.debug("Refreshing records")
        self.load()

    def _on_load_done(self, seq: int, records, err: Exception | None) -> None:
        if seq != self._load_seq:
            logger.debug(f"Ignoring stale load #{seq} (latest is #{self._load_seq})")
            return

        if err is not None:
            logger.warning(f"Load failed: {err!r}")
            self._store.initialize([])
            self._notify("Error loading", format_errors(err), Severity.ERROR)
            return

        self._store.initialize(records)

    def load_stage_options(self) -> None:
        """Fetch the stage picklist for the stage column dropdown."""
        self._runner.run(self._data_source.list_stage_options, self._on_stage_options_done)

    def _on_stage_options_done(self, stages, err: Exception | None) -> None:
        if err is not None:
            logger.warning(f"Stage options failed: {err!r}")
            self._notify("Error loading stages", format_errors(err), Severity.ERROR)
            return
        self.stage_options = [LookupOption(value=stage, label=stage) for stage in stages]
        if self.stage_options_callback:
            self.stage_options_callback()

    # --- Save/Cancel ---

    def save_all(self) -> bool:
        """Submit the working copies of every dirty row in one batch.

        Returns:
            True if a batch was submitted
        """
        if self._saving:
            logger.debug("save_all: save already in flight")
            return False

        dirty = self._store.dirty_rows()
        if not dirty:
            return False

        payload = [row.editable.to_dict() for row in dirty]
        logger.debug(f"Submitting {len(payload)} dirty rows")

        self._saving = True
        self._runner.run(
            lambda: self._data_source.update_batch(payload),
            self._on_save_done,
        )
        return True

    def _on_save_done(self, records, err: Exception | None) -> None:
        self._saving = False

        if err is not None:
            # Nothing is committed; the store keeps every unsaved edit
            logger.warning(f"Save failed: {err!r}")
            self._notify("Error saving", format_errors(err), Severity.ERROR)
            return

        self._store.commit(records)
        self._notify("Success", "Changes saved", Severity.SUCCESS)

    def cancel_all(self) -> bool:
        """Revert every working copy to its snapshot (no backend call).

        Returns:
            True if there was anything to revert
        """
        if not self._store.is_dirty():
            return False
        self._store.revert_all()
        self._notify("Cancelled", "Changes discarded", Severity.INFO)
        return True
