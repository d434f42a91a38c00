"""
Controllers for WorkerSet Reconciliation

This package holds the pieces of the WorkerSet reconciliation loop: active-set
filtering, selector resolution, diff computation, batch execution, status
calculation and writing, and owner-reference routing.
"""

from .workerset import WorkerSetReconciler, ReconcileResult
from .router import OwnerRouter

__all__ = [
    'WorkerSetReconciler', 'ReconcileResult',
    'OwnerRouter',
]
