# backend/pulse/prioritization.py
"""Resident orderings used by the dashboard queue and the prioritization page.

``attention_queue`` works on the stored level and follow-up flag and puts
follow-ups first. ``ranked_list`` orders everyone by the live score.
The resident list filters and the report aggregates also live here.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from .reconcile import RiskReconciler
from .repository import ResidentRepository
from .risk_engine import (
    ResidentSnapshot,
    RiskLevel,
    RiskResult,
    RiskWeights,
    coerce_level,
    compute_risk,
)

ATTENTION_QUEUE_SIZE = 3

# Resident list categories and the flag each one reads
RESIDENT_CATEGORIES = {
    "Senior": "is_senior",
    "PWD": "is_pwd",
    "Pregnant": "is_pregnant",
    "Child": "is_child",
}

LEVEL_RANK = {RiskLevel.HIGH: 0, RiskLevel.MEDIUM: 1, RiskLevel.LOW: 2}


@dataclass(frozen=True)
class RankedResident:
    resident: Any
    snapshot: ResidentSnapshot
    result: RiskResult


@dataclass
class PriorityList:
    weights: RiskWeights
    today: date
    entries: List[RankedResident]

    def find(self, resident_id: int) -> Optional[RankedResident]:
        for entry in self.entries:
            if entry.resident.id == resident_id:
                return entry
        return None

    def explain(self, resident_id: int) -> Optional[RiskResult]:
        entry = self.find(resident_id)
        if entry is None:
            return None
        return explain(entry, self.weights, self.today)


def attention_queue(residents: Sequence[Any], limit: int = ATTENTION_QUEUE_SIZE) -> List[Any]:
    """High-risk or follow-up residents, follow-ups first, at most ``limit``.

    Follow-ups that are also High risk lead the follow-ups; otherwise the
    collection order is kept.
    """
    def is_high(r) -> bool:
        return coerce_level(r.risk_level) == RiskLevel.HIGH

    flagged = [r for r in residents if is_high(r) or bool(r.follow_up_required)]
    flagged.sort(key=lambda r: (not bool(r.follow_up_required), not is_high(r)))
    return flagged[:limit]


def ranked_list(
    residents: Sequence[Any],
    weights: Optional[RiskWeights] = None,
    today: Optional[date] = None,
) -> List[RankedResident]:
    today = today or date.today()
    entries = []
    for r in residents:
        snap = ResidentSnapshot.from_resident(r)
        entries.append(RankedResident(resident=r, snapshot=snap, result=compute_risk(snap, weights, today)))
    # sort is stable: equal scores keep collection order
    entries.sort(key=lambda e: -e.result.score)
    return entries


def explain(entry: RankedResident, weights: Optional[RiskWeights] = None, today: Optional[date] = None) -> RiskResult:
    """Recompute the breakdown for one ranked entry from the snapshot it was ranked with."""
    return compute_risk(entry.snapshot, weights, today)


def load_priority_list(
    repository: ResidentRepository,
    reconciler: RiskReconciler,
    today: Optional[date] = None,
) -> PriorityList:
    today = today or date.today()
    weights = RiskWeights.from_settings(repository.get_weight_configuration())
    entries = ranked_list(repository.get_residents(), weights, today)
    for entry in entries:
        reconciler.reconcile(entry.resident, entry.result)
    return PriorityList(weights=weights, today=today, entries=entries)


def risk_distribution(
    residents: Sequence[Any],
    visits: Optional[Sequence[Any]] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Dashboard counts over stored levels, plus visits logged in the current month."""
    today = today or date.today()
    total = len(residents)
    counts = {level.value: 0 for level in RiskLevel}
    for r in residents:
        counts[coerce_level(r.risk_level).value] += 1
    follow_up = sum(1 for r in residents if r.follow_up_required)

    def pct(n: int) -> float:
        return round(n * 100.0 / total, 1) if total else 0.0

    return {
        "total": total,
        "counts": counts,
        "percentages": {k: pct(v) for k, v in counts.items()},
        "follow_up_required": follow_up,
        "visits_this_month": visits_in_month(visits or (), today),
    }


def visits_in_month(visits: Sequence[Any], today: date) -> int:
    return sum(
        1 for v in visits
        if v.visit_date.year == today.year and v.visit_date.month == today.month
    )


def high_risk_report(
    residents: Sequence[Any],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Any]:
    rows = []
    for r in residents:
        if coerce_level(r.risk_level) != RiskLevel.HIGH:
            continue
        if start or end:
            # date window applies to the last visit; never-visited residents drop out
            if r.last_visit is None:
                continue
            if start and r.last_visit < start:
                continue
            if end and r.last_visit > end:
                continue
        rows.append(r)
    return rows


def filter_residents(
    residents: Sequence[Any],
    search: Optional[str] = None,
    risk_level: Optional[Any] = None,
    category: Optional[str] = None,
) -> List[Any]:
    """Resident list search and filters, sorted High, Medium, Low on the stored level.

    ``search`` matches "first last", the id or the address, ignoring case.
    Raises ``ValueError`` for an unknown level or category.
    """
    term = (search or "").strip().lower()
    level = RiskLevel(risk_level) if risk_level else None
    flag = None
    if category:
        if category not in RESIDENT_CATEGORIES:
            raise ValueError(f"Unknown category: {category}")
        flag = RESIDENT_CATEGORIES[category]

    rows = []
    for r in residents:
        if term:
            name = f"{r.first_name} {r.last_name}".lower()
            if term not in name and term not in str(r.id) and term not in (r.address or "").lower():
                continue
        if level is not None and coerce_level(r.risk_level) != level:
            continue
        if flag is not None and not getattr(r, flag):
            continue
        rows.append(r)
    rows.sort(key=lambda r: LEVEL_RANK[coerce_level(r.risk_level)])
    return rows


def demographics_report(
    residents: Sequence[Any],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[str, int]:
    """Population counts for residents registered in the optional window."""
    picked = []
    for r in residents:
        if start or end:
            if r.created_at is None:
                continue
            registered = r.created_at.date() if isinstance(r.created_at, datetime) else r.created_at
            if start and registered < start:
                continue
            if end and registered > end:
                continue
        picked.append(r)

    return {
        "total": len(picked),
        "senior": sum(1 for r in picked if r.is_senior),
        "pwd": sum(1 for r in picked if r.is_pwd),
        "pregnant": sum(1 for r in picked if r.is_pregnant),
        "child": sum(1 for r in picked if r.is_child),
    }
