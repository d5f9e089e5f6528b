"""
Tests for the rule-based scorer.

Covers:
- each rule's contribution and factor text
- level thresholds on the unclamped score
- dependence of the overdue rule on the stored level
- settle_risk convergence
"""
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from pulse.risk_engine import (
    DEFAULT_WEIGHTS,
    RECOMMENDATIONS,
    ResidentSnapshot,
    RiskLevel,
    RiskWeights,
    compute_risk,
    recommendation_for,
    risk_level_for,
    settle_risk,
)

TODAY = date(2025, 6, 30)


def days_ago(n):
    return TODAY - timedelta(days=n)


def snap(**kw):
    kw.setdefault("age", 30)
    kw.setdefault("last_visit", TODAY)
    return ResidentSnapshot(**kw)


# =============================================================================
# Individual rules
# =============================================================================


class TestRules:
    def test_baseline_adult_visited_today_scores_zero(self):
        result = compute_risk(snap(), today=TODAY)
        assert result.score == 0
        assert result.level == RiskLevel.LOW
        assert result.factors == []

    def test_senior_gets_age_weight(self):
        result = compute_risk(snap(age=72), today=TODAY)
        assert result.score == 30
        assert result.factors == ["Age is 72 (+30)"]

    def test_child_under_five_is_fixed_regardless_of_weights(self):
        weights = RiskWeights(age_over_60=5, pregnancy=5, chronic_condition=5, missed_visit=5)
        result = compute_risk(snap(age=3), weights, today=TODAY)
        assert result.score == 20
        assert result.factors == ["Child under 5 years old (+20)"]

    def test_age_five_gets_nothing(self):
        assert compute_risk(snap(age=5), today=TODAY).score == 0

    def test_pregnancy_uses_weight(self):
        result = compute_risk(snap(is_pregnant=True), today=TODAY)
        assert result.score == 40
        assert result.factors == ["Pregnant (+40)"]

    def test_pwd_is_fixed(self):
        weights = RiskWeights(age_over_60=0, pregnancy=0, chronic_condition=0, missed_visit=0)
        result = compute_risk(snap(is_pwd=True), weights, today=TODAY)
        assert result.score == 15
        assert result.factors == ["PWD Status (+15)"]

    def test_conditions_multiply_weight(self):
        result = compute_risk(snap(conditions=("Hypertension", "Diabetes", "Asthma")), today=TODAY)
        assert result.score == 30
        assert result.factors == ["3 Chronic Condition(s) (+30)"]

    def test_duplicate_condition_labels_count_once(self):
        result = compute_risk(snap(conditions=("Diabetes", "Diabetes")), today=TODAY)
        assert result.score == 10

    def test_no_conditions_contributes_nothing(self):
        assert compute_risk(snap(conditions=()), today=TODAY).factors == []


class TestRepeatedSymptoms:
    def test_two_distinct_symptoms_do_not_fire(self):
        assert compute_risk(snap(recent_symptoms=("Cough", "Fever")), today=TODAY).score == 0

    def test_single_symptom_does_not_fire(self):
        assert compute_risk(snap(recent_symptoms=("Cough",)), today=TODAY).score == 0

    def test_repeated_symptom_fires_once(self):
        result = compute_risk(snap(recent_symptoms=("Cough", "Fever", "Cough", "Cough")), today=TODAY)
        assert result.score == 20
        assert result.factors == ["Repeated symptoms reported (+20)"]


class TestVisitRecency:
    def test_never_visited_adds_ten(self):
        result = compute_risk(snap(last_visit=None), today=TODAY)
        assert result.score == 10
        assert result.factors == ["No visits recorded (+10)"]

    @pytest.mark.parametrize("prior", list(RiskLevel))
    def test_never_visited_ignores_stored_level(self, prior):
        assert compute_risk(snap(last_visit=None, prior_level=prior), today=TODAY).score == 10

    def test_missed_visit_after_ninety_days(self):
        result = compute_risk(snap(last_visit=days_ago(91)), today=TODAY)
        assert result.score == 25
        assert result.factors == ["No visit in >3 months (91 days) (+25)"]

    def test_ninety_days_is_overdue_not_missed(self):
        result = compute_risk(snap(last_visit=days_ago(90), prior_level=RiskLevel.MEDIUM), today=TODAY)
        assert result.factors == ["Overdue follow-up (90 days) (+10)"]

    def test_thirty_days_is_not_overdue(self):
        result = compute_risk(snap(last_visit=days_ago(30), prior_level=RiskLevel.HIGH), today=TODAY)
        assert result.score == 0

    def test_overdue_depends_on_stored_level(self):
        low = compute_risk(snap(last_visit=days_ago(45), prior_level=RiskLevel.LOW), today=TODAY)
        medium = compute_risk(snap(last_visit=days_ago(45), prior_level=RiskLevel.MEDIUM), today=TODAY)
        high = compute_risk(snap(last_visit=days_ago(45), prior_level=RiskLevel.HIGH), today=TODAY)
        assert medium.score - low.score == 10
        assert high.score == medium.score
        assert "Overdue follow-up (45 days) (+10)" in medium.factors
        assert low.factors == []


# =============================================================================
# Totals and levels
# =============================================================================


class TestTotals:
    @pytest.mark.parametrize("prior", list(RiskLevel))
    def test_worked_example_is_not_clamped(self, prior):
        resident = snap(
            age=65,
            is_pregnant=True,
            conditions=("Hypertension", "Diabetes"),
            last_visit=days_ago(100),
            prior_level=prior,
        )
        result = compute_risk(resident, today=TODAY)
        assert result.score == 115
        assert result.level == RiskLevel.HIGH
        assert result.factors == [
            "Age is 65 (+30)",
            "Pregnant (+40)",
            "2 Chronic Condition(s) (+20)",
            "No visit in >3 months (100 days) (+25)",
        ]

    @pytest.mark.parametrize("extra", [
        {},
        {"is_pregnant": True},
        {"is_pwd": True, "conditions": ("Asthma",)},
        {"last_visit": None, "recent_symptoms": ("Cough", "Cough")},
    ])
    def test_age_weight_is_additive(self, extra):
        weights = RiskWeights(age_over_60=17)
        young = compute_risk(snap(age=40, **extra), weights, today=TODAY)
        old = compute_risk(snap(age=60, **extra), weights, today=TODAY)
        assert old.score - young.score == 17

    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.LOW),
        (29, RiskLevel.LOW),
        (30, RiskLevel.MEDIUM),
        (69, RiskLevel.MEDIUM),
        (70, RiskLevel.HIGH),
        (180, RiskLevel.HIGH),
    ])
    def test_thresholds(self, score, level):
        assert risk_level_for(score) == level

    def test_zero_and_negative_weights_are_accepted(self):
        weights = RiskWeights(age_over_60=0, pregnancy=-5, chronic_condition=0, missed_visit=-10)
        result = compute_risk(
            snap(age=80, is_pregnant=True, conditions=("Asthma",), last_visit=days_ago(120)),
            weights,
            today=TODAY,
        )
        assert result.score == -15
        assert result.level == RiskLevel.LOW
        assert "Pregnant (+-5)" in result.factors

    def test_factor_order_follows_rules(self):
        result = compute_risk(
            snap(age=2, is_pwd=True, conditions=("Asthma",), recent_symptoms=("Fever", "Fever"), last_visit=None),
            today=TODAY,
        )
        assert [f.split(" (")[0] for f in result.factors] == [
            "Child under 5 years old",
            "PWD Status",
            "1 Chronic Condition(s)",
            "Repeated symptoms reported",
            "No visits recorded",
        ]


# =============================================================================
# Inputs and helpers
# =============================================================================


class TestInputs:
    def test_weights_default_when_settings_missing(self):
        assert RiskWeights.from_settings(None) == DEFAULT_WEIGHTS
        assert DEFAULT_WEIGHTS == RiskWeights(30, 40, 10, 25)

    def test_weights_from_settings_row(self):
        row = SimpleNamespace(
            weight_age_over_60=35, weight_pregnancy=30, weight_chronic_condition=5, weight_missed_visit=20,
        )
        assert RiskWeights.from_settings(row) == RiskWeights(35, 30, 5, 20)

    def test_snapshot_reads_stored_level_and_tolerates_missing_lists(self):
        row = SimpleNamespace(
            age=50, is_pregnant=None, is_pwd=False, conditions=None, recent_symptoms=None,
            last_visit=None, risk_level="Medium",
        )
        s = ResidentSnapshot.from_resident(row)
        assert s.prior_level == RiskLevel.MEDIUM
        assert s.conditions == ()
        assert s.recent_symptoms == ()
        assert compute_risk(s, today=TODAY).score == 10

    def test_recommendations_cover_every_level(self):
        assert set(RECOMMENDATIONS) == set(RiskLevel)
        assert recommendation_for("High").startswith("Immediate follow-up required")


class TestSettle:
    def test_crossing_out_of_low_picks_up_overdue_points(self):
        s = snap(age=65, last_visit=days_ago(45), prior_level=RiskLevel.LOW)
        assert compute_risk(s, today=TODAY).score == 30
        settled = settle_risk(s, today=TODAY)
        assert settled.score == 40
        assert settled.level == RiskLevel.MEDIUM

    def test_dropping_to_low_loses_overdue_points(self):
        s = snap(age=40, last_visit=days_ago(45), prior_level=RiskLevel.MEDIUM, conditions=("Asthma",))
        assert compute_risk(s, today=TODAY).score == 20
        settled = settle_risk(s, today=TODAY)
        assert settled.score == 10
        assert settled.level == RiskLevel.LOW

    def test_settled_result_reproduces_itself(self):
        s = snap(age=65, last_visit=days_ago(45), prior_level=RiskLevel.LOW)
        settled = settle_risk(s, today=TODAY)
        again = compute_risk(s.with_prior_level(settled.level), today=TODAY)
        assert again == settled
