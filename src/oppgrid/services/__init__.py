"""Service layer for business logic.

This package contains services that coordinate work between the
RecordStore, the DataSource and the Tk event loop. Services separate
backend orchestration from UI concerns.

Services:
- SaveReconciler: load, batch save with merge-back, cancel
- TkTaskRunner: worker-thread backend calls delivered on the Tk thread
- reduce_errors/format_errors: flatten backend failures into messages
"""

from .error_normalizer import format_errors, reduce_errors
from .save_reconciler import SaveReconciler
from .task_runner import TkTaskRunner

__all__ = [
    "SaveReconciler",
    "TkTaskRunner",
    "format_errors",
    "reduce_errors",
]
