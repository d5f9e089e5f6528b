# backend/pulse/risk_engine.py
"""Rule-based vulnerability scoring for home-visit triage.

The score is the unclamped sum of independent rule contributions. Each rule
that fires appends one human-readable factor carrying the exact points it
added, so callers can show the breakdown verbatim.

The overdue follow-up rule depends on the level currently stored for the
resident, which is why ``ResidentSnapshot`` carries ``prior_level``.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, List, Optional, Tuple

MEDIUM_THRESHOLD = 30
HIGH_THRESHOLD = 70

# Fixed contributions, not part of the organization weights
CHILD_UNDER_5_POINTS = 20
PWD_POINTS = 15
REPEATED_SYMPTOM_POINTS = 20
NO_VISIT_POINTS = 10
OVERDUE_POINTS = 10

OVERDUE_AFTER_DAYS = 30
MISSED_AFTER_DAYS = 90


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


RECOMMENDATIONS = {
    RiskLevel.HIGH: "Immediate follow-up required. Prioritize home visit this week.",
    RiskLevel.MEDIUM: "Schedule check-up within 14 days. Monitor symptoms.",
    RiskLevel.LOW: "Routine monitoring. Maintain regular wellness checks.",
}


@dataclass(frozen=True)
class RiskWeights:
    age_over_60: float = 30
    pregnancy: float = 40
    chronic_condition: float = 10
    missed_visit: float = 25

    @classmethod
    def from_settings(cls, settings: Any) -> "RiskWeights":
        """Build weights from an organization settings row; ``None`` gives the defaults."""
        if settings is None:
            return DEFAULT_WEIGHTS
        return cls(
            age_over_60=settings.weight_age_over_60,
            pregnancy=settings.weight_pregnancy,
            chronic_condition=settings.weight_chronic_condition,
            missed_visit=settings.weight_missed_visit,
        )


DEFAULT_WEIGHTS = RiskWeights()


@dataclass(frozen=True)
class ResidentSnapshot:
    age: int
    is_pregnant: bool = False
    is_pwd: bool = False
    conditions: Tuple[str, ...] = ()
    recent_symptoms: Tuple[str, ...] = ()
    last_visit: Optional[date] = None
    prior_level: RiskLevel = RiskLevel.LOW

    @classmethod
    def from_resident(cls, resident: Any) -> "ResidentSnapshot":
        """Capture the scoring inputs of a resident row, including its stored level."""
        return cls(
            age=resident.age or 0,
            is_pregnant=bool(resident.is_pregnant),
            is_pwd=bool(resident.is_pwd),
            conditions=tuple(dict.fromkeys(resident.conditions or ())),
            recent_symptoms=tuple(resident.recent_symptoms or ()),
            last_visit=resident.last_visit,
            prior_level=coerce_level(resident.risk_level),
        )

    def with_prior_level(self, level: RiskLevel) -> "ResidentSnapshot":
        return replace(self, prior_level=level)


@dataclass(frozen=True)
class RiskResult:
    score: int
    level: RiskLevel
    factors: List[str] = field(default_factory=list)


def coerce_level(value: Any) -> RiskLevel:
    if isinstance(value, RiskLevel):
        return value
    try:
        return RiskLevel(value)
    except ValueError:
        return RiskLevel.LOW


def risk_level_for(score: float) -> RiskLevel:
    if score >= HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def recommendation_for(level: RiskLevel) -> str:
    return RECOMMENDATIONS[coerce_level(level)]


def _points(value: float) -> str:
    # Weights are configured as integers; keep "+40" rather than "+40.0"
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _as_score(total: float) -> int:
    return int(total) if float(total).is_integer() else int(round(total))


def compute_risk(
    resident: ResidentSnapshot,
    weights: Optional[RiskWeights] = None,
    today: Optional[date] = None,
) -> RiskResult:
    w = weights or DEFAULT_WEIGHTS
    today = today or date.today()
    score: float = 0
    factors: List[str] = []

    if resident.age >= 60:
        score += w.age_over_60
        factors.append(f"Age is {resident.age} (+{_points(w.age_over_60)})")
    elif resident.age < 5:
        score += CHILD_UNDER_5_POINTS
        factors.append(f"Child under 5 years old (+{CHILD_UNDER_5_POINTS})")

    if resident.is_pregnant:
        score += w.pregnancy
        factors.append(f"Pregnant (+{_points(w.pregnancy)})")

    if resident.is_pwd:
        score += PWD_POINTS
        factors.append(f"PWD Status (+{PWD_POINTS})")

    n_conditions = len(set(resident.conditions))
    if n_conditions > 0:
        condition_score = n_conditions * w.chronic_condition
        score += condition_score
        factors.append(f"{n_conditions} Chronic Condition(s) (+{_points(condition_score)})")

    symptoms = resident.recent_symptoms
    if len(symptoms) > 1 and len(set(symptoms)) < len(symptoms):
        score += REPEATED_SYMPTOM_POINTS
        factors.append(f"Repeated symptoms reported (+{REPEATED_SYMPTOM_POINTS})")

    if resident.last_visit is None:
        score += NO_VISIT_POINTS
        factors.append(f"No visits recorded (+{NO_VISIT_POINTS})")
    else:
        days = abs((today - resident.last_visit).days)
        if days > MISSED_AFTER_DAYS:
            score += w.missed_visit
            factors.append(f"No visit in >3 months ({days} days) (+{_points(w.missed_visit)})")
        elif days > OVERDUE_AFTER_DAYS and resident.prior_level != RiskLevel.LOW:
            score += OVERDUE_POINTS
            factors.append(f"Overdue follow-up ({days} days) (+{OVERDUE_POINTS})")

    total = _as_score(score)
    return RiskResult(score=total, level=risk_level_for(total), factors=factors)


def settle_risk(
    resident: ResidentSnapshot,
    weights: Optional[RiskWeights] = None,
    today: Optional[date] = None,
    max_passes: int = 3,
) -> RiskResult:
    """Re-score with the computed level as the prior level until the level stops moving.

    A single ``compute_risk`` call can move a resident across the Low boundary,
    which then toggles the overdue rule on the next call. Two passes are always
    enough to reach a level that reproduces itself.
    """
    result = compute_risk(resident, weights, today)
    for _ in range(max_passes - 1):
        if result.level == resident.prior_level:
            break
        resident = resident.with_prior_level(result.level)
        result = compute_risk(resident, weights, today)
    return result
