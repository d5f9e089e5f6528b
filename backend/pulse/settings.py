# backend/pulse/settings.py
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Optional

from .auth import current_role, require_admin
from .deps import get_repository
from .models import UserRole
from .recompute import batch_recompute
from .repository import ResidentRepository
from .risk_engine import RiskWeights

router = APIRouter(prefix="/settings", tags=["settings"])
log = logging.getLogger("uvicorn.error")

# ---------- Schemas ----------
class SettingsOut(BaseModel):
    id: int
    barangay_name: str
    municipality: str
    health_station_id: str
    weight_age_over_60: int
    weight_pregnancy: int
    weight_chronic_condition: int
    weight_missed_visit: int
    can_edit: bool = False

class SettingsIn(BaseModel):
    barangay_name: Optional[str] = Field(None, max_length=255)
    municipality: Optional[str] = Field(None, max_length=255)
    health_station_id: Optional[str] = Field(None, max_length=64)
    weight_age_over_60: Optional[int] = Field(None, ge=0, le=50)
    weight_pregnancy: Optional[int] = Field(None, ge=0, le=50)
    weight_chronic_condition: Optional[int] = Field(None, ge=0, le=50)
    weight_missed_visit: Optional[int] = Field(None, ge=0, le=50)

class RecomputeOut(BaseModel):
    ok: bool
    total: int
    updated: int
    failed: int


def to_out(s, can_edit: bool) -> SettingsOut:
    return SettingsOut(
        id=s.id,
        barangay_name=s.barangay_name,
        municipality=s.municipality,
        health_station_id=s.health_station_id,
        weight_age_over_60=s.weight_age_over_60,
        weight_pregnancy=s.weight_pregnancy,
        weight_chronic_condition=s.weight_chronic_condition,
        weight_missed_visit=s.weight_missed_visit,
        can_edit=can_edit,
    )

# ---------- Endpoints ----------
@router.get("", response_model=SettingsOut)
def get_settings(
    role: UserRole = Depends(current_role),
    repo: ResidentRepository = Depends(get_repository),
):
    """Organization profile and risk weights. Creates the default record on first use."""
    s = repo.get_weight_configuration()
    if s is None:
        log.info("No organization settings found, creating defaults")
        s = repo.initialize_weight_configuration()
    return to_out(s, role == UserRole.admin)


@router.put("", response_model=SettingsOut)
def update_settings(
    payload: SettingsIn,
    _: UserRole = Depends(require_admin),
    repo: ResidentRepository = Depends(get_repository),
):
    fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    s = repo.update_weight_configuration(fields)
    log.info("Organization settings updated: %s", sorted(fields))
    return to_out(s, True)


@router.post("/recompute", response_model=RecomputeOut)
def recompute_scores(
    _: UserRole = Depends(require_admin),
    repo: ResidentRepository = Depends(get_repository),
):
    """Re-scores every resident with the saved weights. Per-resident write failures are skipped."""
    weights = RiskWeights.from_settings(repo.get_weight_configuration())
    report = batch_recompute(repo, weights)
    return RecomputeOut(ok=True, total=report.total, updated=report.updated, failed=report.failed)
