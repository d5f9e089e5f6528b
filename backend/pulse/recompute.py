# backend/pulse/recompute.py
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .reconcile import is_stale
from .repository import ResidentRepository
from .risk_engine import ResidentSnapshot, RiskWeights, settle_risk

logger = logging.getLogger(__name__)


@dataclass
class RecomputeReport:
    total: int = 0
    updated: int = 0
    failed: int = 0


def batch_recompute(
    repository: ResidentRepository,
    weights: Optional[RiskWeights] = None,
    today: Optional[date] = None,
) -> RecomputeReport:
    """
    Recompute and persist risk for every resident with the given weights.

    Only changed residents are written. A failed write is logged and the batch
    moves on; a failure to read the residents propagates to the caller.
    Running it twice in a row updates nobody the second time.
    """
    if weights is None:
        weights = RiskWeights.from_settings(repository.get_weight_configuration())
    today = today or date.today()

    residents = repository.get_residents()
    report = RecomputeReport(total=len(residents))

    for r in residents:
        result = settle_risk(ResidentSnapshot.from_resident(r), weights, today)
        if not is_stale(r, result):
            continue
        try:
            repository.update_resident(r.id, {"risk_score": result.score, "risk_level": result.level.value})
        except Exception as e:
            report.failed += 1
            logger.error("Recompute: skipping resident %s, write failed: %s", r.id, e)
            continue
        report.updated += 1

    logger.info(
        "Recompute finished: %d residents, %d updated, %d failed",
        report.total, report.updated, report.failed,
    )
    return report
