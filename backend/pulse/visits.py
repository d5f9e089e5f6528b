from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
import logging

from .deps import get_reconciler, get_repository
from .reconcile import RiskReconciler
from .repository import ResidentNotFound, ResidentRepository
from .risk_engine import RiskLevel

router = APIRouter(prefix="/visits", tags=["visits"])
log = logging.getLogger("uvicorn.error")

# ----------------- Schemas -----------------

class VisitIn(BaseModel):
    resident_id: int = Field(..., gt=0)
    visit_date: date
    provider_name: Optional[str] = None
    follow_up_required: bool = False
    notes: Optional[str] = Field(None, max_length=5000)
    symptoms: List[str] = []

class VisitOut(BaseModel):
    id: int
    resident_id: int
    resident_name: Optional[str] = None
    visit_date: date
    provider_name: Optional[str] = None
    follow_up_required: bool
    notes: Optional[str] = None
    symptoms: List[str] = []
    created_at: Optional[datetime] = None

class LoggedVisitOut(BaseModel):
    visit: VisitOut
    risk_score: Optional[int] = None
    risk_level: Optional[RiskLevel] = None
    factors: List[str] = []

# ----------------- Helpers -----------------

def to_out(v, resident_name: Optional[str] = None) -> VisitOut:
    return VisitOut(
        id=v.id,
        resident_id=v.resident_id,
        resident_name=resident_name,
        visit_date=v.visit_date,
        provider_name=v.provider_name,
        follow_up_required=bool(v.follow_up_required),
        notes=v.notes,
        symptoms=[s.symptom for s in v.symptoms],
        created_at=v.created_at,
    )

# ----------------- Endpoints -----------------

@router.post("", response_model=LoggedVisitOut, status_code=201)
def log_visit(
    payload: VisitIn,
    repo: ResidentRepository = Depends(get_repository),
    reconciler: RiskReconciler = Depends(get_reconciler),
):
    """
    Records a home visit.
    - The resident's last visit, follow-up flag and recent symptoms are refreshed.
    - The resident is then re-scored; a failed score write does not undo the visit.
    """
    visit_fields = payload.model_dump(exclude={"symptoms"})
    try:
        visit = repo.create_visit(visit_fields, payload.symptoms)
    except ResidentNotFound:
        raise HTTPException(status_code=404, detail="Resident not found")

    out = LoggedVisitOut(visit=to_out(visit))
    try:
        resident = repo.get_resident(payload.resident_id)
        result = reconciler.rescore(resident)
    except Exception:
        log.exception("Visit %s saved but re-scoring resident %s failed", visit.id, payload.resident_id)
        return out

    out.visit.resident_name = f"{resident.last_name}, {resident.first_name}"
    out.risk_score = result.score
    out.risk_level = result.level
    out.factors = result.factors
    return out

@router.get("", response_model=List[VisitOut])
def list_visits(
    resident_id: Optional[int] = Query(None, gt=0),
    start: Optional[date] = None,
    end: Optional[date] = None,
    repo: ResidentRepository = Depends(get_repository),
):
    """
    Visit feed, newest first.
    - Filter by resident for the profile history.
    - start/end bound visit_date (inclusive) for the visit log report.
    """
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must be on or before end")
    rows = repo.get_visits(resident_id=resident_id, start=start, end=end)
    return [
        to_out(v, f"{v.resident.last_name}, {v.resident.first_name}" if v.resident else None)
        for v in rows
    ]
