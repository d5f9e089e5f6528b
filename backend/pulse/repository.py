# backend/pulse/repository.py
"""Data access used by the scoring, reconciliation and recompute code.

Every call opens and closes its own session, so one repository instance can
be shared by request handlers and the reconciliation worker threads.
"""
from __future__ import annotations

import abc
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .config import Config
from .models import OrganizationSettings, Resident, Visit, VisitSymptom

RESIDENT_FIELDS = {
    "first_name", "middle_name", "last_name", "birthdate", "age", "sex",
    "address", "barangay_zone", "is_senior", "is_pwd", "is_pregnant", "is_child",
    "conditions", "recent_symptoms", "last_visit", "follow_up_required",
    "risk_score", "risk_level",
}

SETTINGS_FIELDS = {
    "barangay_name", "municipality", "health_station_id",
    "weight_age_over_60", "weight_pregnancy", "weight_chronic_condition", "weight_missed_visit",
}


class ResidentNotFound(LookupError):
    def __init__(self, resident_id: int):
        super().__init__(f"Resident {resident_id} not found")
        self.resident_id = resident_id


def normalize_conditions(conditions: Optional[Iterable[str]]) -> List[str]:
    """Strip blanks and duplicates, keeping first-seen order."""
    seen: Dict[str, None] = {}
    for c in conditions or ():
        c = (c or "").strip()
        if c:
            seen.setdefault(c, None)
    return list(seen)


def _clean_resident_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - RESIDENT_FIELDS
    if unknown:
        raise ValueError(f"Unknown resident fields: {sorted(unknown)}")
    clean = dict(fields)
    if "conditions" in clean:
        clean["conditions"] = normalize_conditions(clean["conditions"])
    if "recent_symptoms" in clean:
        clean["recent_symptoms"] = list(clean["recent_symptoms"] or [])
    if "risk_level" in clean and clean["risk_level"] is not None:
        clean["risk_level"] = str(getattr(clean["risk_level"], "value", clean["risk_level"]))
    return clean


class ResidentRepository(abc.ABC):
    @abc.abstractmethod
    def get_residents(self) -> List[Resident]: ...

    @abc.abstractmethod
    def get_resident(self, resident_id: int) -> Resident: ...

    @abc.abstractmethod
    def create_resident(self, fields: Dict[str, Any]) -> Resident: ...

    @abc.abstractmethod
    def update_resident(self, resident_id: int, fields: Dict[str, Any]) -> Resident: ...

    @abc.abstractmethod
    def get_weight_configuration(self) -> Optional[OrganizationSettings]: ...

    @abc.abstractmethod
    def initialize_weight_configuration(self) -> OrganizationSettings: ...

    @abc.abstractmethod
    def update_weight_configuration(self, fields: Dict[str, Any]) -> OrganizationSettings: ...

    @abc.abstractmethod
    def create_visit(self, visit: Dict[str, Any], symptoms: List[str]) -> Visit: ...

    @abc.abstractmethod
    def get_visits(
        self,
        resident_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Visit]: ...


class SqlResidentRepository(ResidentRepository):
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    # ---------- Residents ----------
    def get_residents(self) -> List[Resident]:
        with self._session_factory() as db:
            stmt = select(Resident).order_by(Resident.last_name, Resident.first_name, Resident.id)
            return list(db.execute(stmt).scalars())

    def get_resident(self, resident_id: int) -> Resident:
        with self._session_factory() as db:
            row = db.get(Resident, resident_id)
            if row is None:
                raise ResidentNotFound(resident_id)
            return row

    def create_resident(self, fields: Dict[str, Any]) -> Resident:
        clean = _clean_resident_fields(fields)
        with self._session_factory() as db:
            row = Resident(**clean)
            db.add(row)
            db.commit()
            db.refresh(row)
            return row

    def update_resident(self, resident_id: int, fields: Dict[str, Any]) -> Resident:
        """Partial update: only the given columns are written."""
        clean = _clean_resident_fields(fields)
        with self._session_factory() as db:
            row = db.get(Resident, resident_id)
            if row is None:
                raise ResidentNotFound(resident_id)
            for k, v in clean.items():
                setattr(row, k, v)
            db.commit()
            db.refresh(row)
            return row

    # ---------- Weight configuration ----------
    def get_weight_configuration(self) -> Optional[OrganizationSettings]:
        with self._session_factory() as db:
            stmt = select(OrganizationSettings).order_by(OrganizationSettings.id).limit(1)
            return db.execute(stmt).scalars().first()

    def initialize_weight_configuration(self) -> OrganizationSettings:
        with self._session_factory() as db:
            existing = db.execute(
                select(OrganizationSettings).order_by(OrganizationSettings.id).limit(1)
            ).scalars().first()
            if existing:
                return existing
            row = OrganizationSettings(
                barangay_name=Config.BARANGAY_NAME,
                municipality=Config.MUNICIPALITY,
                health_station_id=Config.HEALTH_STATION_ID,
                weight_age_over_60=30,
                weight_pregnancy=30,
                weight_chronic_condition=10,
                weight_missed_visit=25,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return row

    def update_weight_configuration(self, fields: Dict[str, Any]) -> OrganizationSettings:
        unknown = set(fields) - SETTINGS_FIELDS
        if unknown:
            raise ValueError(f"Unknown settings fields: {sorted(unknown)}")
        current = self.initialize_weight_configuration()
        with self._session_factory() as db:
            row = db.get(OrganizationSettings, current.id)
            for k, v in fields.items():
                setattr(row, k, v)
            db.commit()
            db.refresh(row)
            return row

    # ---------- Visits ----------
    def create_visit(self, visit: Dict[str, Any], symptoms: List[str]) -> Visit:
        """Insert a visit and carry its outcome onto the resident in one transaction."""
        resident_id = visit["resident_id"]
        visit_date: date = visit["visit_date"]
        follow_up = bool(visit.get("follow_up_required", False))
        reported = [s.strip() for s in symptoms if s and s.strip()]

        with self._session_factory() as db:
            resident = db.get(Resident, resident_id)
            if resident is None:
                raise ResidentNotFound(resident_id)

            row = Visit(
                resident_id=resident_id,
                visit_date=visit_date,
                provider_name=visit.get("provider_name"),
                follow_up_required=follow_up,
                notes=visit.get("notes"),
            )
            row.symptoms = [VisitSymptom(symptom=s) for s in reported]
            db.add(row)

            resident.last_visit = visit_date
            resident.follow_up_required = follow_up
            if reported:
                carried = list(resident.recent_symptoms or []) + reported
                if Config.RECENT_SYMPTOM_LIMIT > 0:
                    carried = carried[-Config.RECENT_SYMPTOM_LIMIT:]
                resident.recent_symptoms = carried

            db.commit()
            db.refresh(row)
            # load symptoms while the session is still open
            _ = row.symptoms
            return row

    def get_visits(
        self,
        resident_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Visit]:
        """Visits newest first, optionally for one resident and an inclusive visit_date window."""
        with self._session_factory() as db:
            stmt = (
                select(Visit)
                .options(selectinload(Visit.symptoms), selectinload(Visit.resident))
                .order_by(Visit.visit_date.desc(), Visit.id.desc())
            )
            if resident_id is not None:
                stmt = stmt.where(Visit.resident_id == resident_id)
            if start is not None:
                stmt = stmt.where(Visit.visit_date >= start)
            if end is not None:
                stmt = stmt.where(Visit.visit_date <= end)
            return list(db.execute(stmt).scalars())
