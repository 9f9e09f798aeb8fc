"""
Risk Prediction Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Risk Prediction Engine.

This module defines all enums, dataclasses and exceptions
used by the extractors, the aggregator and the weight
adapter.

============================================================
DESIGN PRINCIPLES
============================================================
- Inputs and outputs are immutable
- Enums for factor names and feedback outcomes
- Sequences are normalised to tuples
- Missing data is a value (None / empty), never an error

============================================================
RISK FACTORS
============================================================
1. ENERGY_DROP - Falling energy over recent entries
2. EVENING_HOURS - Evaluation inside the evening window
3. WEEKEND - Evaluation on a weekend day
4. EMOTIONAL_VULNERABILITY - High anxiety with low mood
5. HISTORICAL_PATTERN - Streak length near a past setback
6. PURGE_PHASE - Streak inside the purge-phase window

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from uuid import UUID, uuid4

from core.clock import from_iso8601, to_iso8601


# ============================================================
# ENUMS
# ============================================================


class RiskFactor(str, Enum):
    """
    The behavioral signals evaluated by the engine.

    The value is the key used in factor maps and in
    persisted weights.
    """

    ENERGY_DROP = "energyDrop"
    EVENING_HOURS = "eveningHours"
    WEEKEND = "weekend"
    EMOTIONAL_VULNERABILITY = "emotionalVulnerability"
    HISTORICAL_PATTERN = "historicalPattern"
    PURGE_PHASE = "purgePhase"

    @classmethod
    def all_factors(cls) -> List["RiskFactor"]:
        """Return all factors in evaluation order."""
        return [
            cls.ENERGY_DROP,
            cls.EVENING_HOURS,
            cls.WEEKEND,
            cls.EMOTIONAL_VULNERABILITY,
            cls.HISTORICAL_PATTERN,
            cls.PURGE_PHASE,
        ]

    @classmethod
    def from_name(cls, name: Union[str, "RiskFactor"]) -> Optional["RiskFactor"]:
        """Look up a factor by its key, returning None if unknown."""
        if isinstance(name, RiskFactor):
            return name
        try:
            return cls(name)
        except ValueError:
            return None


class FeedbackOutcome(str, Enum):
    """
    Post-hoc judgment of a prediction.

    - HELPFUL: the alert was accurate
    - FALSE_ALARM: the alert was not warranted
    """

    HELPFUL = "helpful"
    FALSE_ALARM = "false_alarm"

    @classmethod
    def parse(cls, value: Union[str, "FeedbackOutcome"]) -> "FeedbackOutcome":
        """
        Convert a raw outcome to a FeedbackOutcome.

        Raises:
            InvalidFeedbackOutcomeError: For anything other than
                "helpful" or "false_alarm"
        """
        if isinstance(value, FeedbackOutcome):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidFeedbackOutcomeError(
                f"Unrecognized feedback outcome {value!r}; "
                f"expected one of {[o.value for o in cls]}"
            ) from None


class RiskLevel(str, Enum):
    """
    Display classification of a risk score.

    Score Range:
    - LOW: 0-49
    - MODERATE: 50-69
    - HIGH: 70-79
    - CRITICAL: 80-100
    """

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_score(cls, score: int) -> "RiskLevel":
        if score >= 80:
            return cls.CRITICAL
        elif score >= 70:
            return cls.HIGH
        elif score >= 50:
            return cls.MODERATE
        return cls.LOW

    @property
    def severity_order(self) -> int:
        """Numeric ordering for severity comparison."""
        return {"low": 0, "moderate": 1, "high": 2, "critical": 3}[self.value]


# ============================================================
# INPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class BehaviorEntry:
    """One daily behavior log entry."""

    timestamp: datetime
    energy_level: int  # 1-10


@dataclass(frozen=True)
class EmotionalState:
    """Latest emotional self-report."""

    anxiety: int          # 1-10
    mood_stability: int   # 1-10


@dataclass(frozen=True)
class PastEvent:
    """A past streak-ending event and the streak length it ended."""

    days_since_start: int
    was_adverse_event: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days_since_start": self.days_since_start,
            "was_adverse_event": self.was_adverse_event,
        }


@dataclass(frozen=True)
class UserStateSnapshot:
    """
    Immutable bundle of a user's recent behavioral facts.

    `current_streak_days` of None means the caller has no
    baseline at all; the engine answers with the
    insufficient-data result.

    `evaluation_time` is the instant the prediction is made at.
    Its hour and weekday are read as-is, so callers pass it in
    the user's local zone.
    """

    evaluation_time: datetime
    current_streak_days: Optional[int] = None
    recent_behavior_log: Tuple[BehaviorEntry, ...] = ()    # oldest first
    emotional_state: Optional[EmotionalState] = None
    emotional_history_count: int = 0
    event_history: Tuple[PastEvent, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "recent_behavior_log", tuple(self.recent_behavior_log))
        object.__setattr__(self, "event_history", tuple(self.event_history))

    @property
    def has_baseline(self) -> bool:
        return self.current_streak_days is not None

    @property
    def emotional_entries(self) -> int:
        """Emotional tracking entries, counting the latest report."""
        if self.emotional_state is not None:
            return max(self.emotional_history_count, 1)
        return self.emotional_history_count

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserStateSnapshot":
        """
        Build a snapshot from the JSON shape used by the web client.

        Expected keys (all but evaluationTime optional):
            currentStreakDays, recentBehaviorLog[{timestamp, energyLevel}],
            emotionalState{anxiety, moodStability}, emotionalHistory /
            emotionalHistoryCount, eventHistory[{daysSinceStart,
            wasAdverseEvent}], evaluationTime

        Raises:
            InvalidSnapshotError: If a present field has the wrong shape
        """
        try:
            evaluation_time = _parse_datetime(data["evaluationTime"])

            streak = data.get("currentStreakDays")
            if streak is not None:
                streak = _require_int(streak, "currentStreakDays")
                if streak < 0:
                    raise InvalidSnapshotError(f"currentStreakDays must be >= 0, got {streak}")

            behavior_log = tuple(
                BehaviorEntry(
                    timestamp=_parse_datetime(entry["timestamp"]),
                    energy_level=_require_int(entry["energyLevel"], "energyLevel"),
                )
                for entry in data.get("recentBehaviorLog") or ()
            )

            raw_emotional = data.get("emotionalState")
            emotional_state = None
            if raw_emotional:
                emotional_state = EmotionalState(
                    anxiety=_require_int(raw_emotional["anxiety"], "anxiety"),
                    mood_stability=_require_int(raw_emotional["moodStability"], "moodStability"),
                )

            if "emotionalHistoryCount" in data:
                emotional_count = _require_int(data["emotionalHistoryCount"], "emotionalHistoryCount")
            else:
                emotional_count = len(data.get("emotionalHistory") or ())

            events = tuple(
                PastEvent(
                    days_since_start=_require_int(event["daysSinceStart"], "daysSinceStart"),
                    was_adverse_event=bool(event.get("wasAdverseEvent", True)),
                )
                for event in data.get("eventHistory") or ()
            )
        except KeyError as e:
            raise InvalidSnapshotError(f"Missing required field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise InvalidSnapshotError(f"Malformed snapshot: {e}") from e

        return cls(
            evaluation_time=evaluation_time,
            current_streak_days=streak,
            recent_behavior_log=behavior_log,
            emotional_state=emotional_state,
            emotional_history_count=emotional_count,
            event_history=events,
        )


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return from_iso8601(value)
    raise InvalidSnapshotError(f"Expected ISO 8601 string or datetime, got {type(value).__name__}")


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSnapshotError(f"{name} must be an integer, got {value!r}")
    return value


# ============================================================
# EXTRACTOR OUTPUT
# ============================================================


@dataclass(frozen=True)
class FactorSignal:
    """
    Output of a single signal extractor.

    `score` is the unit contribution (1.0 when fired, 0.0
    otherwise); the aggregator scales it by the factor weight.
    """

    factor: RiskFactor
    is_risk: bool
    score: float
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)
    matched_event: Optional[PastEvent] = None

    @classmethod
    def not_risk(cls, factor: RiskFactor, reason: str, **details: Any) -> "FactorSignal":
        return cls(factor=factor, is_risk=False, score=0.0, reason=reason, details=details)


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class Recommendation:
    """A suggested intervention for the current risk level."""

    action: str
    message: str
    tool: Optional[str] = None
    priority: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "message": self.message,
            "tool": self.tool,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class PredictionResult:
    """
    Complete output of one scoring call.

    ============================================================
    OUTPUT GUARANTEES
    ============================================================
    - risk_score: Always 0-100
    - confidence: Always 0-95
    - factors: Only factors that fired, mapped to their weight
    - reason: Fired reasons joined with " + ", or a sentinel

    ============================================================
    """

    risk_score: int
    confidence: int
    reason: str
    factors: Dict[str, float] = field(default_factory=dict)
    data_points: int = 0
    matched_past_event: Optional[PastEvent] = None

    risk_level: RiskLevel = RiskLevel.LOW
    recommendations: Tuple[Recommendation, ...] = ()

    evaluated_at: Optional[datetime] = None
    engine_version: str = "1.0.0"

    prediction_id: UUID = field(default_factory=uuid4, compare=False)

    @property
    def has_risk_factors(self) -> bool:
        return bool(self.factors)

    @property
    def factor_names(self) -> List[str]:
        return list(self.factors)

    def to_dict(self, include_id: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: Dict[str, Any] = {
            "risk_score": self.risk_score,
            "confidence": self.confidence,
            "reason": self.reason,
            "factors": dict(self.factors),
            "data_points": self.data_points,
            "matched_past_event": (
                self.matched_past_event.to_dict() if self.matched_past_event else None
            ),
            "risk_level": self.risk_level.value,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "evaluated_at": to_iso8601(self.evaluated_at) if self.evaluated_at else None,
            "engine_version": self.engine_version,
        }
        if include_id:
            data["prediction_id"] = str(self.prediction_id)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PredictionResult":
        """Rebuild a result from `to_dict()` output."""
        matched = data.get("matched_past_event")
        evaluated_at = data.get("evaluated_at")
        kwargs: Dict[str, Any] = {}
        if data.get("prediction_id"):
            kwargs["prediction_id"] = UUID(str(data["prediction_id"]))
        return cls(
            risk_score=int(data["risk_score"]),
            confidence=int(data["confidence"]),
            reason=data["reason"],
            factors={k: float(v) for k, v in (data.get("factors") or {}).items()},
            data_points=int(data.get("data_points", 0)),
            matched_past_event=PastEvent(**matched) if matched else None,
            risk_level=RiskLevel(data.get("risk_level", RiskLevel.LOW.value)),
            recommendations=tuple(Recommendation(**r) for r in data.get("recommendations") or ()),
            evaluated_at=from_iso8601(evaluated_at) if evaluated_at else None,
            engine_version=data.get("engine_version", "1.0.0"),
            **kwargs,
        )


# ============================================================
# FEEDBACK TYPES
# ============================================================


@dataclass(frozen=True)
class FeedbackRecord:
    """
    Append-only log entry judging one prediction.

    The outcome is validated on construction, so a record
    with an unrecognized outcome can never exist.
    """

    prediction_factors: Dict[str, float]
    outcome: FeedbackOutcome
    timestamp: datetime
    predicted_risk: Optional[int] = None
    notes: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "outcome", FeedbackOutcome.parse(self.outcome))
        object.__setattr__(self, "prediction_factors", dict(self.prediction_factors))

    @property
    def is_helpful(self) -> bool:
        return self.outcome == FeedbackOutcome.HELPFUL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prediction_factors": dict(self.prediction_factors),
            "outcome": self.outcome.value,
            "timestamp": to_iso8601(self.timestamp),
            "predicted_risk": self.predicted_risk,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeedbackRecord":
        timestamp = data["timestamp"]
        return cls(
            prediction_factors=data.get("prediction_factors") or {},
            outcome=data["outcome"],
            timestamp=timestamp if isinstance(timestamp, datetime) else from_iso8601(timestamp),
            predicted_risk=data.get("predicted_risk"),
            notes=data.get("notes") or "",
        )


@dataclass(frozen=True)
class AccuracyReport:
    """Rolling accuracy of predictions judged by feedback."""

    accuracy: int
    total_predictions: int
    helpful: int = 0
    false_alarms: int = 0
    window_days: int = 30

    @classmethod
    def empty(cls, window_days: int) -> "AccuracyReport":
        return cls(accuracy=0, total_predictions=0, window_days=window_days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "total_predictions": self.total_predictions,
            "helpful": self.helpful,
            "false_alarms": self.false_alarms,
            "window_days": self.window_days,
        }


# ============================================================
# ERROR TYPES
# ============================================================


class RiskPredictionError(Exception):
    """Base exception for risk prediction errors."""

    def __init__(self, message: str, factor: Optional[RiskFactor] = None) -> None:
        super().__init__(message)
        self.factor = factor


class InvalidFeedbackOutcomeError(RiskPredictionError):
    """
    Raised when feedback carries an outcome other than
    "helpful" or "false_alarm".
    """
    pass


class InvalidSnapshotError(RiskPredictionError):
    """Raised when a raw snapshot payload cannot be parsed."""
    pass
