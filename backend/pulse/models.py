from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    Date,
    JSON,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .db import Base


# -------------------------
# Roles
# -------------------------
class UserRole(PyEnum):
    bhw = "bhw"
    admin = "admin"


# -------------------------
# Residents
# -------------------------
class Resident(Base):
    __tablename__ = "residents"

    id = Column(Integer, primary_key=True, index=True)

    first_name = Column(String(120), nullable=False)
    middle_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=False, index=True)
    birthdate = Column(Date, nullable=True)
    age = Column(Integer, nullable=False, default=0)
    sex = Column(String(8), nullable=False)  # "Male" / "Female"

    address = Column(String(255), nullable=False, default="")
    barangay_zone = Column(String(64), nullable=True)

    # Vulnerability flags
    is_senior = Column(Boolean, default=False, nullable=False)
    is_pwd = Column(Boolean, default=False, nullable=False)
    is_pregnant = Column(Boolean, default=False, nullable=False)
    is_child = Column(Boolean, default=False, nullable=False)

    # Chronic condition labels (set semantics, stored de-duplicated)
    conditions = Column(JSON, nullable=False, default=list)
    # Reported symptoms, newest last, repeats kept
    recent_symptoms = Column(JSON, nullable=False, default=list)

    last_visit = Column(Date, nullable=True)
    follow_up_required = Column(Boolean, default=False, nullable=False)

    # Persisted copy of the scorer output; reconciled against live values
    risk_score = Column(Integer, nullable=False, default=0)
    risk_level = Column(String(16), nullable=False, default="Low")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    visits = relationship("Visit", back_populates="resident")

    __table_args__ = (
        Index("ix_residents_risk", "risk_level", "follow_up_required"),
    )


# -------------------------
# Home visits
# -------------------------
class Visit(Base):
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    resident_id = Column(Integer, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False, index=True)
    visit_date = Column(Date, nullable=False)
    provider_name = Column(String(255), nullable=True)
    follow_up_required = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    resident = relationship("Resident", back_populates="visits")
    symptoms = relationship("VisitSymptom", back_populates="visit", cascade="all, delete-orphan")


class VisitSymptom(Base):
    __tablename__ = "visit_symptoms"

    id = Column(Integer, primary_key=True, index=True)
    visit_id = Column(Integer, ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True)
    symptom = Column(String(120), nullable=False)
    severity = Column(String(16), nullable=True)  # Mild / Moderate / Severe

    visit = relationship("Visit", back_populates="symptoms")


# -------------------------
# Organization settings (weight singleton)
# -------------------------
class OrganizationSettings(Base):
    __tablename__ = "organization_settings"

    id = Column(Integer, primary_key=True, index=True)
    barangay_name = Column(String(255), nullable=False, default="")
    municipality = Column(String(255), nullable=False, default="")
    health_station_id = Column(String(64), nullable=False, default="")

    weight_age_over_60 = Column(Integer, nullable=False, default=30)
    weight_pregnancy = Column(Integer, nullable=False, default=30)
    weight_chronic_condition = Column(Integer, nullable=False, default=10)
    weight_missed_visit = Column(Integer, nullable=False, default=25)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
