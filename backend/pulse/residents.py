# backend/pulse/residents.py
from datetime import date, datetime
from typing import List, Literal, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from .deps import get_reconciler, get_repository
from .prioritization import filter_residents
from .reconcile import RiskReconciler
from .repository import ResidentNotFound, ResidentRepository
from .risk_engine import ResidentSnapshot, RiskLevel, RiskWeights, compute_risk, recommendation_for

router = APIRouter(prefix="/residents", tags=["residents"])
log = logging.getLogger("uvicorn.error")

NULLABLE_FIELDS = {"middle_name", "birthdate", "barangay_zone"}

# ---------- Schemas ----------
class ResidentIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    middle_name: Optional[str] = None
    last_name: str = Field(..., min_length=1, max_length=120)
    birthdate: Optional[date] = None
    age: Optional[int] = Field(None, ge=0, le=130)
    sex: Literal["Male", "Female"]
    address: str = ""
    barangay_zone: Optional[str] = None
    is_senior: bool = False
    is_pwd: bool = False
    is_pregnant: bool = False
    is_child: bool = False
    conditions: List[str] = []


class ResidentPatch(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=120)
    middle_name: Optional[str] = None
    last_name: Optional[str] = Field(None, min_length=1, max_length=120)
    birthdate: Optional[date] = None
    age: Optional[int] = Field(None, ge=0, le=130)
    sex: Optional[Literal["Male", "Female"]] = None
    address: Optional[str] = None
    barangay_zone: Optional[str] = None
    is_senior: Optional[bool] = None
    is_pwd: Optional[bool] = None
    is_pregnant: Optional[bool] = None
    is_child: Optional[bool] = None
    conditions: Optional[List[str]] = None
    follow_up_required: Optional[bool] = None


class ResidentOut(BaseModel):
    id: int
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    birthdate: Optional[date] = None
    age: int
    sex: str
    address: str
    barangay_zone: Optional[str] = None
    is_senior: bool
    is_pwd: bool
    is_pregnant: bool
    is_child: bool
    conditions: List[str] = []
    recent_symptoms: List[str] = []
    last_visit: Optional[date] = None
    follow_up_required: bool
    risk_score: int
    risk_level: RiskLevel
    created_at: Optional[datetime] = None


class RiskExplanationOut(BaseModel):
    resident_id: int
    score: int
    level: RiskLevel
    factors: List[str]
    recommendation: str
    stored_score: int
    stored_level: RiskLevel


# ---------- Helpers ----------
def age_from_birthdate(birthdate: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return max(years, 0)


def to_out(r, score: Optional[int] = None, level: Optional[RiskLevel] = None) -> ResidentOut:
    return ResidentOut(
        id=r.id,
        first_name=r.first_name,
        middle_name=r.middle_name,
        last_name=r.last_name,
        birthdate=r.birthdate,
        age=r.age,
        sex=r.sex,
        address=r.address or "",
        barangay_zone=r.barangay_zone,
        is_senior=bool(r.is_senior),
        is_pwd=bool(r.is_pwd),
        is_pregnant=bool(r.is_pregnant),
        is_child=bool(r.is_child),
        conditions=list(r.conditions or []),
        recent_symptoms=list(r.recent_symptoms or []),
        last_visit=r.last_visit,
        follow_up_required=bool(r.follow_up_required),
        risk_score=r.risk_score if score is None else score,
        risk_level=r.risk_level if level is None else level,
        created_at=r.created_at,
    )


def load_resident(repo: ResidentRepository, resident_id: int):
    try:
        return repo.get_resident(resident_id)
    except ResidentNotFound:
        raise HTTPException(status_code=404, detail="Resident not found")


# ---------- Endpoints ----------
@router.post("", response_model=ResidentOut, status_code=201)
def register_resident(
    payload: ResidentIn,
    repo: ResidentRepository = Depends(get_repository),
    reconciler: RiskReconciler = Depends(get_reconciler),
):
    """
    Registers a resident and scores them straight away.
    The score is written back through reconciliation; the response carries
    the computed values without waiting for that write.
    """
    fields = payload.model_dump()
    if fields["age"] is None:
        if fields["birthdate"] is None:
            raise HTTPException(status_code=422, detail="Either age or birthdate is required")
        fields["age"] = age_from_birthdate(fields["birthdate"])

    resident = repo.create_resident({**fields, "risk_score": 0, "risk_level": RiskLevel.LOW.value})
    try:
        result = reconciler.rescore(resident)
    except Exception:
        log.exception("Resident %s saved but scoring failed", resident.id)
        return to_out(resident)
    return to_out(resident, result.score, result.level)


@router.get("", response_model=List[ResidentOut])
def list_residents(
    search: Optional[str] = Query(None, max_length=120, description="Name, id or address"),
    risk_level: Optional[RiskLevel] = None,
    category: Optional[Literal["Senior", "PWD", "Pregnant", "Child"]] = None,
    repo: ResidentRepository = Depends(get_repository),
):
    """Resident list, High risk first. Filters combine."""
    rows = filter_residents(repo.get_residents(), search, risk_level, category)
    return [to_out(r) for r in rows]


@router.get("/{resident_id}", response_model=ResidentOut)
def get_resident(resident_id: int, repo: ResidentRepository = Depends(get_repository)):
    return to_out(load_resident(repo, resident_id))


@router.patch("/{resident_id}", response_model=ResidentOut)
def edit_resident(
    resident_id: int,
    payload: ResidentPatch,
    repo: ResidentRepository = Depends(get_repository),
    reconciler: RiskReconciler = Depends(get_reconciler),
):
    fields = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_FIELDS
    }
    if "birthdate" in fields and fields["birthdate"] and "age" not in fields:
        fields["age"] = age_from_birthdate(fields["birthdate"])
    try:
        resident = repo.update_resident(resident_id, fields)
    except ResidentNotFound:
        raise HTTPException(status_code=404, detail="Resident not found")

    # scored with the level stored before this edit
    try:
        result = reconciler.rescore(resident)
    except Exception:
        log.exception("Resident %s updated but re-scoring failed", resident_id)
        return to_out(resident)
    return to_out(resident, result.score, result.level)


@router.get("/{resident_id}/risk", response_model=RiskExplanationOut)
def resident_risk(resident_id: int, repo: ResidentRepository = Depends(get_repository)):
    """Live breakdown for the profile page. Read-only: nothing is written here."""
    r = load_resident(repo, resident_id)
    weights = RiskWeights.from_settings(repo.get_weight_configuration())
    result = compute_risk(ResidentSnapshot.from_resident(r), weights)
    return RiskExplanationOut(
        resident_id=r.id,
        score=result.score,
        level=result.level,
        factors=result.factors,
        recommendation=recommendation_for(result.level),
        stored_score=r.risk_score,
        stored_level=r.risk_level,
    )
