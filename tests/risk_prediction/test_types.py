"""
Tests for data contracts, weights and recommendations.
"""

from datetime import datetime, timezone

import pytest

from risk_prediction.engine import RiskPredictionEngine
from risk_prediction.recommendations import build_recommendations, get_recommended_interventions
from risk_prediction.types import (
    FeedbackOutcome,
    FeedbackRecord,
    InvalidSnapshotError,
    PastEvent,
    PredictionResult,
    RiskFactor,
    UserStateSnapshot,
)
from risk_prediction.weights import FactorWeights, round_half_up


# ============================================================
# SNAPSHOT PARSING
# ============================================================


class TestSnapshotFromDict:

    def test_parses_client_payload(self):
        snapshot = UserStateSnapshot.from_dict({
            "evaluationTime": "2024-06-08T22:00:00",
            "currentStreakDays": 20,
            "recentBehaviorLog": [
                {"timestamp": "2024-06-06T09:00:00Z", "energyLevel": 8},
                {"timestamp": "2024-06-07T09:00:00Z", "energyLevel": 6},
            ],
            "emotionalState": {"anxiety": 8, "moodStability": 3},
            "emotionalHistory": [{}, {}, {}],
            "eventHistory": [{"daysSinceStart": 18, "wasAdverseEvent": True}],
        })

        assert snapshot.current_streak_days == 20
        assert snapshot.evaluation_time.hour == 22
        assert [e.energy_level for e in snapshot.recent_behavior_log] == [8, 6]
        assert snapshot.emotional_state.mood_stability == 3
        assert snapshot.emotional_entries == 3
        assert snapshot.event_history == (PastEvent(18, True),)

    def test_optional_fields_default(self):
        snapshot = UserStateSnapshot.from_dict({"evaluationTime": "2024-06-08T22:00:00"})
        assert not snapshot.has_baseline
        assert snapshot.recent_behavior_log == ()
        assert snapshot.emotional_state is None

    def test_missing_evaluation_time(self):
        with pytest.raises(InvalidSnapshotError):
            UserStateSnapshot.from_dict({"currentStreakDays": 3})

    @pytest.mark.parametrize(
        "payload",
        [
            {"currentStreakDays": "twenty"},
            {"currentStreakDays": -1},
            {"recentBehaviorLog": [{"timestamp": "2024-06-06T09:00:00", "energyLevel": 7.5}]},
            {"emotionalState": {"anxiety": 8}},
            {"eventHistory": [{"wasAdverseEvent": True}]},
        ],
    )
    def test_malformed_payloads(self, payload):
        with pytest.raises(InvalidSnapshotError):
            UserStateSnapshot.from_dict({"evaluationTime": "2024-06-08T22:00:00", **payload})

    def test_sequences_become_tuples(self):
        snapshot = UserStateSnapshot(
            evaluation_time=datetime(2024, 6, 8),
            current_streak_days=1,
            event_history=[PastEvent(3)],
        )
        assert isinstance(snapshot.event_history, tuple)


# ============================================================
# RESULT SERIALIZATION
# ============================================================


class TestPredictionResultSerialization:

    def test_dict_restores_equal_result(self, snapshot_factory):
        snapshot = snapshot_factory(
            streak=20,
            at=datetime(2024, 6, 8, 22, 0, tzinfo=timezone.utc),
            events=[PastEvent(18)],
        )
        result = RiskPredictionEngine().score(snapshot)
        restored = PredictionResult.from_dict(result.to_dict())

        assert restored == result
        assert restored.prediction_id == result.prediction_id
        assert restored.matched_past_event == PastEvent(18)

    def test_to_dict_without_id(self, snapshot_factory):
        data = RiskPredictionEngine().score(snapshot_factory()).to_dict(include_id=False)
        assert "prediction_id" not in data
        assert data["risk_level"] == "low"


class TestFeedbackRecord:

    def test_outcome_parsed_from_string(self):
        record = FeedbackRecord({"weekend": 10}, "false_alarm", datetime(2024, 6, 8))
        assert record.outcome == FeedbackOutcome.FALSE_ALARM
        assert not record.is_helpful

    def test_dict_round_trip(self):
        record = FeedbackRecord(
            {"weekend": 10.0},
            FeedbackOutcome.HELPFUL,
            datetime(2024, 6, 8, tzinfo=timezone.utc),
            predicted_risk=72,
            notes="right on time",
        )
        assert FeedbackRecord.from_dict(record.to_dict()) == record


# ============================================================
# WEIGHTS
# ============================================================


class TestFactorWeights:

    def test_defaults(self):
        weights = FactorWeights()
        assert weights.to_dict() == {
            "energyDrop": 25.0,
            "eveningHours": 20.0,
            "weekend": 10.0,
            "emotionalVulnerability": 15.0,
            "historicalPattern": 20.0,
            "purgePhase": 15.0,
        }
        assert len(weights) == 6

    def test_values_clamped_on_construction(self):
        weights = FactorWeights({"energyDrop": 80, "weekend": 1})
        assert weights["energyDrop"] == 35.0
        assert weights["weekend"] == 5.0

    def test_lookup_by_enum_or_name(self):
        weights = FactorWeights()
        assert weights[RiskFactor.WEEKEND] == weights["weekend"]

    def test_unknown_lookup_raises(self):
        with pytest.raises(KeyError):
            FactorWeights()["moonPhase"]

    def test_from_dict_fills_missing_and_drops_unknown(self):
        weights = FactorWeights.from_dict({"weekend": 12, "moonPhase": 3})
        assert weights["weekend"] == 12.0
        assert weights["energyDrop"] == 25.0
        assert "moonPhase" not in weights.to_dict()

    def test_with_weight_returns_copy(self):
        weights = FactorWeights()
        updated = weights.with_weight("weekend", 30)
        assert updated["weekend"] == 30.0
        assert weights["weekend"] == 10.0

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.49, 1), (2.5, 3), (44.5, 45), (45.0, 45)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


# ============================================================
# RECOMMENDATIONS
# ============================================================


class TestRecommendations:

    def test_low_risk_monitor(self):
        recs = build_recommendations({"weekend": 10}, 10)
        assert [r.action for r in recs] == ["monitor"]

    def test_moderate_risk_preventive(self):
        recs = build_recommendations({"purgePhase": 15, "eveningHours": 20, "weekend": 10}, 45)
        assert [r.action for r in recs] == ["preventive"]
        assert recs[0].tool == "physical_reset"

    def test_high_risk_with_energy_drop_includes_breathing(self):
        recs = build_recommendations({"energyDrop": 25, "eveningHours": 20, "historicalPattern": 20}, 75)
        assert [r.action for r in recs] == ["breathing", "physical", "emergency"]
        assert recs[-1].priority == "critical"

    def test_high_risk_without_emotional_factors(self):
        recs = build_recommendations({"eveningHours": 20, "historicalPattern": 20, "purgePhase": 35}, 75)
        assert [r.action for r in recs] == ["physical", "emergency"]

    @pytest.mark.parametrize(
        "score,expected",
        [
            (85, ["coldshower", "exercise", "breathing", "meditation"]),
            (72, ["coldshower", "exercise", "breathing"]),
            (55, ["breathing", "meditation"]),
            (20, []),
        ],
    )
    def test_interventions(self, score, expected):
        assert get_recommended_interventions(score) == expected
