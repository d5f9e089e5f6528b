# backend/pulse/deps.py
import threading

from .db import SessionLocal
from .reconcile import RiskReconciler
from .repository import ResidentRepository, SqlResidentRepository

_repository = SqlResidentRepository(SessionLocal)
_reconciler: RiskReconciler | None = None
# sync routes run in a threadpool; only one reconciler (and pool) may be created
_reconciler_lock = threading.Lock()


def get_repository() -> ResidentRepository:
    return _repository


def get_reconciler() -> RiskReconciler:
    global _reconciler
    with _reconciler_lock:
        if _reconciler is None:
            _reconciler = RiskReconciler(_repository)
        return _reconciler


def shutdown_reconciler() -> None:
    global _reconciler
    with _reconciler_lock:
        reconciler, _reconciler = _reconciler, None
    if reconciler is not None:
        reconciler.shutdown(wait=True)
