# backend/pulse/risk.py
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from .deps import get_reconciler, get_repository
from .prioritization import (
    attention_queue,
    demographics_report,
    high_risk_report,
    load_priority_list,
    risk_distribution,
)
from .reconcile import RiskReconciler
from .repository import ResidentRepository
from .risk_engine import RiskLevel, RiskWeights, recommendation_for

router = APIRouter(prefix="/risk", tags=["risk"])

# ---------- Schemas ----------
class QueueItem(BaseModel):
    id: int
    name: str
    age: int
    risk_score: int
    risk_level: RiskLevel
    follow_up_required: bool

class RankedItem(BaseModel):
    rank: int
    id: int
    name: str
    age: int
    score: int
    level: RiskLevel
    factors: List[str] = []
    recommendation: str
    follow_up_required: bool

class PrioritizationOut(BaseModel):
    weights: Dict[str, float]
    counts: Dict[str, int]
    residents: List[RankedItem]
    selected: Optional[RankedItem] = None

class SummaryOut(BaseModel):
    total: int
    counts: Dict[str, int]
    percentages: Dict[str, float]
    follow_up_required: int
    visits_this_month: int = 0

class DemographicsOut(BaseModel):
    total: int
    senior: int
    pwd: int
    pregnant: int
    child: int

class HighRiskRow(BaseModel):
    id: int
    name: str
    age: int
    sex: str
    risk_score: int
    conditions: List[str] = []
    last_visit: Optional[date] = None


def _name(r) -> str:
    return f"{r.last_name}, {r.first_name}"


def _weights_out(w: RiskWeights) -> Dict[str, float]:
    return {
        "age_over_60": w.age_over_60,
        "pregnancy": w.pregnancy,
        "chronic_condition": w.chronic_condition,
        "missed_visit": w.missed_visit,
    }

# ---------- Endpoints ----------
@router.get("/attention-queue", response_model=List[QueueItem])
def get_attention_queue(repo: ResidentRepository = Depends(get_repository)):
    """Dashboard 'Priority Follow-Ups': follow-ups first, then High risk, max 3."""
    return [
        QueueItem(
            id=r.id,
            name=_name(r),
            age=r.age,
            risk_score=r.risk_score,
            risk_level=r.risk_level,
            follow_up_required=bool(r.follow_up_required),
        )
        for r in attention_queue(repo.get_residents())
    ]


@router.get("/prioritization", response_model=PrioritizationOut)
def get_prioritization(
    selected: Optional[int] = Query(None, gt=0, description="Resident to expand"),
    repo: ResidentRepository = Depends(get_repository),
    reconciler: RiskReconciler = Depends(get_reconciler),
):
    """
    Full ranked list by live score (current weights).
    Loading it also writes back any drifted stored scores in the background.
    """
    plist = load_priority_list(repo, reconciler)

    items = []
    counts = {level.value: 0 for level in RiskLevel}
    for i, e in enumerate(plist.entries, start=1):
        counts[e.result.level.value] += 1
        items.append(RankedItem(
            rank=i,
            id=e.resident.id,
            name=_name(e.resident),
            age=e.resident.age,
            score=e.result.score,
            level=e.result.level,
            factors=e.result.factors,
            recommendation=recommendation_for(e.result.level),
            follow_up_required=bool(e.resident.follow_up_required),
        ))

    selected_item = None
    if selected is not None:
        entry = plist.find(selected)
        if entry is None:
            raise HTTPException(status_code=404, detail="Resident not found")
        detail = plist.explain(selected)
        rank = plist.entries.index(entry) + 1
        selected_item = RankedItem(
            rank=rank,
            id=entry.resident.id,
            name=_name(entry.resident),
            age=entry.resident.age,
            score=detail.score,
            level=detail.level,
            factors=detail.factors,
            recommendation=recommendation_for(detail.level),
            follow_up_required=bool(entry.resident.follow_up_required),
        )

    return PrioritizationOut(
        weights=_weights_out(plist.weights),
        counts=counts,
        residents=items,
        selected=selected_item,
    )


@router.get("/summary", response_model=SummaryOut)
def get_summary(repo: ResidentRepository = Depends(get_repository)):
    return SummaryOut(**risk_distribution(repo.get_residents(), repo.get_visits()))


@router.get("/reports/high-risk", response_model=List[HighRiskRow])
def get_high_risk_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    repo: ResidentRepository = Depends(get_repository),
):
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must be on or before end")
    return [
        HighRiskRow(
            id=r.id,
            name=_name(r),
            age=r.age,
            sex=r.sex,
            risk_score=r.risk_score,
            conditions=list(r.conditions or []),
            last_visit=r.last_visit,
        )
        for r in high_risk_report(repo.get_residents(), start, end)
    ]


@router.get("/reports/demographics", response_model=DemographicsOut)
def get_demographics_report(
    start: Optional[date] = None,
    end: Optional[date] = None,
    repo: ResidentRepository = Depends(get_repository),
):
    """Population counts for residents registered between start and end."""
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must be on or before end")
    return DemographicsOut(**demographics_report(repo.get_residents(), start, end))
