# backend/pulse/reconcile.py
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import date
from typing import Any, Optional

from .config import Config
from .repository import ResidentRepository
from .risk_engine import ResidentSnapshot, RiskResult, RiskWeights, coerce_level, compute_risk

logger = logging.getLogger(__name__)


def is_stale(resident: Any, result: RiskResult) -> bool:
    """True when the stored score/level differ from a freshly computed result."""
    return resident.risk_score != result.score or coerce_level(resident.risk_level) != result.level


class RiskReconciler:
    """
    Fire-and-forget write-back of drifted risk scores.

    ``reconcile`` never blocks on the write and never raises because of it:
    the update runs on ``executor`` and a done-callback logs any failure.
    The returned Future is for callers (and tests) that want to observe the
    write; request handlers drop it.
    """

    def __init__(self, repository: ResidentRepository, executor: Optional[Executor] = None):
        self.repository = repository
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max(1, Config.RECONCILE_WORKERS),
            thread_name_prefix="risk-reconcile",
        )

    def reconcile(self, resident: Any, result: RiskResult) -> Optional[Future]:
        if not is_stale(resident, result):
            return None

        resident_id = resident.id
        fields = {"risk_score": result.score, "risk_level": result.level.value}
        logger.info(
            "Reconciling resident %s: %s/%s -> %s/%s",
            resident_id, resident.risk_score, resident.risk_level, result.score, result.level.value,
        )
        try:
            future = self.executor.submit(self.repository.update_resident, resident_id, fields)
        except RuntimeError:
            # executor already shut down (application is stopping)
            logger.warning("Reconcile skipped for resident %s: executor is shut down", resident_id)
            return None
        future.add_done_callback(lambda f: self._log_outcome(resident_id, f))
        return future

    @staticmethod
    def _log_outcome(resident_id: int, future: Future) -> None:
        if future.cancelled():
            logger.warning("Reconcile write for resident %s was cancelled", resident_id)
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Reconcile write failed for resident %s: %s", resident_id, exc)

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=wait)

    def rescore(self, resident: Any, today: Optional[date] = None) -> RiskResult:
        """Score a resident against the current weights and reconcile the stored copy."""
        weights = RiskWeights.from_settings(self.repository.get_weight_configuration())
        result = compute_risk(ResidentSnapshot.from_resident(resident), weights, today)
        self.reconcile(resident, result)
        return result
