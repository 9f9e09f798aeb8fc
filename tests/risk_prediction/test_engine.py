"""
Tests for the Risk Prediction Engine.

============================================================
PURPOSE
============================================================
End-to-end scoring behavior:
- Reference scenarios with default weights
- Score and confidence bounds
- Insufficient-data result
- Determinism
- Convenience helpers

============================================================
"""

from datetime import datetime

import pytest

from risk_prediction.config import ConfidenceConfig, RiskPredictionConfig
from risk_prediction.engine import (
    INSUFFICIENT_DATA_REASON,
    NO_RISK_REASON,
    RiskPredictionEngine,
    format_prediction_summary,
    format_reason,
    get_risk_level_from_score,
    predict_risk,
    should_notify,
)
from risk_prediction.types import EmotionalState, PastEvent, RiskLevel, UserStateSnapshot
from risk_prediction.weights import FactorWeights


TUESDAY_AFTERNOON = datetime(2024, 6, 4, 14, 0)
SATURDAY_NIGHT = datetime(2024, 6, 8, 22, 0)


@pytest.fixture
def engine():
    return RiskPredictionEngine()


@pytest.fixture
def worst_case(snapshot_factory):
    """Every factor fires."""
    return snapshot_factory(
        streak=20,
        energies=[9, 6, 5],
        at=SATURDAY_NIGHT,
        emotional=EmotionalState(anxiety=9, mood_stability=2),
        events=[PastEvent(19)],
    )


# ============================================================
# REFERENCE SCENARIOS
# ============================================================


class TestReferenceScenarios:

    def test_purge_phase_only(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(streak=20, energies=[8, 8, 8], at=TUESDAY_AFTERNOON))

        assert result.risk_score == 15
        assert result.reason == "In emotional purging phase"
        assert result.factors == {"purgePhase": 15.0}
        assert result.matched_past_event is None

    def test_saturday_evening_in_purge_phase(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(streak=20, energies=[8, 8, 8], at=SATURDAY_NIGHT))

        assert result.risk_score == 45
        assert result.factors == {"eveningHours": 20.0, "weekend": 10.0, "purgePhase": 15.0}
        assert result.reason == (
            "Evening hours (22:00) - high risk period"
            " + Weekend - less structure and routine"
            " + In emotional purging phase"
        )

    def test_energy_drop_only(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(streak=5, energies=[9, 6, 5], at=TUESDAY_AFTERNOON))

        assert result.risk_score == 25
        assert result.factors == {"energyDrop": 25.0}
        assert "Energy dropped 4 points in last 3 days" in result.reason

    def test_historical_pattern_references_event(self, engine, snapshot_factory):
        event = PastEvent(days_since_start=18, was_adverse_event=True)
        result = engine.score(snapshot_factory(streak=20, events=[event]))

        assert "historicalPattern" in result.factors
        assert result.matched_past_event == event
        assert "Similar to your Day 18 setback" in result.reason

    def test_completed_streak_is_not_a_pattern(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(streak=20, events=[PastEvent(18, was_adverse_event=False)]))

        assert result.factors == {"purgePhase": 15.0}
        assert result.risk_score == 15
        assert result.matched_past_event is None

    def test_empty_snapshot_is_insufficient_data(self, engine):
        result = engine.score(UserStateSnapshot(evaluation_time=TUESDAY_AFTERNOON))

        assert result.risk_score == 0
        assert result.confidence == 0
        assert result.reason == INSUFFICIENT_DATA_REASON
        assert result.factors == {}
        assert result.data_points == 0
        assert result.recommendations == ()

    def test_nothing_fires(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(streak=5, energies=[8, 8, 8]))

        assert result.risk_score == 0
        assert result.reason == NO_RISK_REASON
        assert result.factors == {}
        assert not result.has_risk_factors


# ============================================================
# BOUNDS
# ============================================================


class TestBounds:

    def test_score_clamped_to_100(self, engine, worst_case):
        result = engine.score(worst_case)

        # 25 + 20 + 10 + 15 + 20 + 15 = 105
        assert len(result.factors) == 6
        assert result.risk_score == 100
        assert result.risk_level == RiskLevel.CRITICAL

    def test_score_clamped_with_maximum_weights(self, engine, worst_case):
        weights = FactorWeights({name: 35 for name in FactorWeights().to_dict()})
        assert engine.score(worst_case, weights).risk_score == 100

    def test_minimum_weights_stay_positive(self, engine, snapshot_factory):
        weights = FactorWeights({name: 0 for name in FactorWeights().to_dict()})
        result = engine.score(snapshot_factory(streak=20), weights)
        assert result.risk_score == 5

    def test_confidence_capped_at_95(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(energies=[5] * 40))
        assert result.data_points == 40
        assert result.confidence == 95

    def test_fractional_weights_round_half_up(self, engine, snapshot_factory):
        weights = FactorWeights({"purgePhase": 15.5})
        assert engine.score(snapshot_factory(streak=20), weights).risk_score == 16


# ============================================================
# CONFIDENCE
# ============================================================


class TestConfidence:

    def test_data_points_formula(self, engine, snapshot_factory):
        snapshot = snapshot_factory(
            energies=[5] * 10,
            emotional=EmotionalState(anxiety=3, mood_stability=7),
            emotional_count=5,
            events=[PastEvent(2), PastEvent(60)],
        )
        result = engine.score(snapshot)

        # 10 log entries + 5 emotional entries + 2 * 2 events
        assert result.data_points == 19
        assert result.confidence == 63

    def test_latest_emotional_report_counts_once(self, engine, snapshot_factory):
        snapshot = snapshot_factory(
            energies=[5, 5, 5],
            emotional=EmotionalState(anxiety=3, mood_stability=7),
            emotional_count=0,
        )
        assert engine.score(snapshot).data_points == 4

    def test_three_entries_give_ten_percent(self, engine, snapshot_factory):
        assert engine.score(snapshot_factory(energies=[8, 8, 8])).confidence == 10

    def test_custom_confidence_config(self, snapshot_factory):
        config = RiskPredictionConfig(confidence=ConfidenceConfig(full_information_points=10, max_confidence=80))
        result = RiskPredictionEngine(config).score(snapshot_factory(energies=[5] * 9))
        assert result.confidence == 80


# ============================================================
# DETERMINISM
# ============================================================


class TestDeterminism:

    def test_same_input_same_result(self, engine, worst_case):
        first = engine.score(worst_case)
        second = engine.score(worst_case)

        assert first == second
        assert first.prediction_id != second.prediction_id

    def test_scoring_does_not_mutate_weights(self, engine, worst_case):
        weights = FactorWeights()
        before = weights.to_dict()
        engine.score(worst_case, weights)
        assert weights.to_dict() == before

    def test_predict_risk_matches_engine(self, engine, worst_case):
        assert predict_risk(worst_case) == engine.score(worst_case)

    def test_result_carries_evaluation_time(self, engine, snapshot_factory):
        result = engine.score(snapshot_factory(at=SATURDAY_NIGHT))
        assert result.evaluated_at == SATURDAY_NIGHT


# ============================================================
# HELPERS
# ============================================================


class TestHelpers:

    @pytest.mark.parametrize(
        "score,level",
        [
            (0, RiskLevel.LOW),
            (49, RiskLevel.LOW),
            (50, RiskLevel.MODERATE),
            (69, RiskLevel.MODERATE),
            (70, RiskLevel.HIGH),
            (79, RiskLevel.HIGH),
            (80, RiskLevel.CRITICAL),
            (100, RiskLevel.CRITICAL),
        ],
    )
    def test_risk_level_from_score(self, score, level):
        assert get_risk_level_from_score(score) == level

    def test_should_notify_threshold(self, engine, snapshot_factory, worst_case):
        assert should_notify(engine.score(worst_case))
        assert not should_notify(engine.score(snapshot_factory(at=SATURDAY_NIGHT)))

    def test_format_reason_truncates(self):
        reason = "x" * 150
        formatted = format_reason(reason)
        assert len(formatted) == 100
        assert formatted.endswith("...")

    def test_format_reason_passes_short_text(self):
        assert format_reason("In emotional purging phase") == "In emotional purging phase"

    def test_format_reason_fallback(self):
        assert format_reason(None) == "Risk factors detected"

    def test_summary_lists_factors(self, engine, snapshot_factory):
        summary = format_prediction_summary(engine.score(snapshot_factory(streak=20)))
        assert "Risk Score: 15/100" in summary
        assert "purgePhase" in summary
