"""Application window: wires data source, store, services and the grid panel."""

import sys
import tkinter as tk
from tkinter import messagebox, ttk

from .data.data_source import CsvDataSource, DataSource
from .data.record_store import RecordStore
from .debug_trace import logger, setup_debug_logging
from .models.notification import Notification
from .services import SaveReconciler, TkTaskRunner
from .settings import GridSettings
from .views.grid_controller import GridController
from .views.grid_panel import GridPanel


class OppGridApp:
    """Main application for editing opportunities."""

    def _show_notification(self, notification: Notification) -> None:
        """Errors get a dialog; everything else goes to the status bar."""
        logger.info(f"{notification.severity.value}: {notification.title}: {notification.message}")
        if notification.is_error:
            messagebox.showerror(notification.title, notification.message, parent=self.root)
        self.message_var.set(f"{notification.title}: {notification.message}")
        self.panel.update_status()

    def _on_close(self) -> None:
        if self.store.is_dirty():
            result = messagebox.askyesnocancel(
                "Unsaved Changes",
                "You have unsaved changes. Discard them and quit?",
                parent=self.root,
            )
            if not result:
                return
        self.task_runner.close()
        self.root.destroy()

    def _create_widgets(self) -> None:
        self.message_var = tk.StringVar(value="")
        ttk.Label(self.root, textvariable=self.message_var, anchor="w").pack(
            side=tk.BOTTOM, fill=tk.X, padx=5, pady=(0, 5)
        )

        self.panel = GridPanel(
            self.root,
            self.controller,
            self.task_runner,
            self.data_source.search_related,
            self.settings,
        )
        self.panel.pack(fill=tk.BOTH, expand=True)
        self.reconciler.set_stage_options_callback(self.panel.refresh_stage_options)

    def __init__(self, settings: GridSettings | None = None, data_source: DataSource | None = None):
        self.settings = settings or GridSettings()
        setup_debug_logging(self.settings.debug)

        self.root = tk.Tk()
        self.root.title("Opportunities")
        self.root.geometry("900x550")
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self.data_source = data_source or CsvDataSource(self.settings.data_dir)
        self.task_runner = TkTaskRunner(self.root, self.settings.task_poll_interval_ms)
        self.store = RecordStore(self.root, edit_grace_ms=self.settings.edit_grace_ms)
        self.reconciler = SaveReconciler(
            self.store,
            self.data_source,
            self.task_runner,
            notify=self._show_notification,
        )
        self.controller = GridController(self.store, self.reconciler)

        self._create_widgets()

    def run(self):
        """Load data and enter the Tk main loop."""
        self.reconciler.load_stage_options()
        self.reconciler.load()
        self.root.mainloop()


def main() -> None:
    """Entry point for the application."""
    app = OppGridApp(GridSettings.from_argv(sys.argv[1:]))
    app.run()


def main_dev() -> None:
    """Entry point with console debug logging enabled.

    Args (via sys.argv):
        -data <dir>: Directory with opportunities.csv and accounts.csv
    """
    settings = GridSettings.from_argv(sys.argv[1:])
    settings.debug = True
    app = OppGridApp(settings)
    app.run()


if __name__ == "__main__":
    main()
