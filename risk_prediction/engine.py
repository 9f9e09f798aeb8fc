"""
Risk Prediction Engine - Aggregator.

============================================================
PURPOSE
============================================================
The RiskPredictionEngine is the main entry point for scoring.

It orchestrates:
1. Baseline check
2. Signal extraction
3. Weighted aggregation
4. Confidence calculation
5. Result packaging

============================================================
DESIGN PRINCIPLES
============================================================
- Stateless per call: weights are an input, not engine state
- Delegates detection to the extractors
- Deterministic given snapshot and weights
- Never raises for absent data

============================================================
USAGE
============================================================
    from risk_prediction import RiskPredictionEngine, UserStateSnapshot, FactorWeights

    engine = RiskPredictionEngine()
    snapshot = UserStateSnapshot(
        evaluation_time=datetime(2024, 6, 8, 22, 0),
        current_streak_days=20,
    )

    result = engine.score(snapshot, FactorWeights.defaults())

    print(f"Risk: {result.risk_score}/100 ({result.risk_level.name})")
    print(result.reason)

============================================================
"""

from typing import Dict, List, Optional

from .config import RiskPredictionConfig
from .extractors import BaseSignalExtractor, build_extractors
from .recommendations import build_recommendations
from .types import (
    FactorSignal,
    PastEvent,
    PredictionResult,
    RiskLevel,
    UserStateSnapshot,
)
from .weights import FactorWeights, clamp, round_half_up


INSUFFICIENT_DATA_REASON = "Insufficient data for prediction"
NO_RISK_REASON = "No significant risk factors detected"
REASON_SEPARATOR = " + "

MIN_RISK_SCORE = 0
MAX_RISK_SCORE = 100


class RiskPredictionEngine:
    """
    Combines extractor signals into a bounded risk score.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    1. Short-circuit snapshots with no baseline
    2. Run every extractor
    3. Sum the weights of fired factors, clamp to 0-100
    4. Derive confidence from evidence volume
    5. Build reason, level and recommendations

    ============================================================
    """

    def __init__(
        self,
        config: Optional[RiskPredictionConfig] = None,
        extractors: Optional[List[BaseSignalExtractor]] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration. Uses defaults if not provided.
            extractors: Override the extractor set (defaults to one
                        per factor built from config.extractors).
        """
        self.config = config or RiskPredictionConfig()
        self._extractors = extractors if extractors is not None else build_extractors(self.config.extractors)

    @property
    def extractors(self) -> List[BaseSignalExtractor]:
        return list(self._extractors)

    def default_weights(self) -> FactorWeights:
        """Weights for a user with no adaptation history."""
        return FactorWeights(
            min_weight=self.config.adaptation.min_weight,
            max_weight=self.config.adaptation.max_weight,
            defaults=self.config.default_weights,
        )

    def score(
        self,
        snapshot: UserStateSnapshot,
        weights: Optional[FactorWeights] = None,
    ) -> PredictionResult:
        """
        Score a snapshot.

        Args:
            snapshot: User state at evaluation time
            weights: Per-factor weights (defaults if not provided)

        Returns:
            PredictionResult
        """
        # --------------------------------------------------
        # Step 1: Baseline check
        # --------------------------------------------------
        if not snapshot.has_baseline:
            return self._insufficient_data_result(snapshot)

        weights = weights if weights is not None else self.default_weights()

        # --------------------------------------------------
        # Step 2: Run extractors
        # --------------------------------------------------
        signals = self.extract_signals(snapshot)

        # --------------------------------------------------
        # Step 3: Aggregate fired factors
        # --------------------------------------------------
        total = 0.0
        factors: Dict[str, float] = {}
        reasons: List[str] = []
        matched_event: Optional[PastEvent] = None

        for signal in signals:
            if not signal.is_risk:
                continue
            weight = weights[signal.factor] * signal.score
            total += weight
            factors[signal.factor.value] = weight
            reasons.append(signal.reason)
            if signal.matched_event is not None and matched_event is None:
                matched_event = signal.matched_event

        risk_score = round_half_up(clamp(total, MIN_RISK_SCORE, MAX_RISK_SCORE))

        # --------------------------------------------------
        # Step 4: Confidence
        # --------------------------------------------------
        data_points = self.count_data_points(snapshot)
        confidence = self.calculate_confidence(data_points)

        # --------------------------------------------------
        # Step 5: Package
        # --------------------------------------------------
        reason = REASON_SEPARATOR.join(reasons) if reasons else NO_RISK_REASON

        return PredictionResult(
            risk_score=risk_score,
            confidence=confidence,
            reason=reason,
            factors=factors,
            data_points=data_points,
            matched_past_event=matched_event,
            risk_level=RiskLevel.from_score(risk_score),
            recommendations=build_recommendations(factors, risk_score),
            evaluated_at=snapshot.evaluation_time,
            engine_version=self.config.engine_version,
        )

    def extract_signals(self, snapshot: UserStateSnapshot) -> List[FactorSignal]:
        """Run every extractor against the snapshot."""
        return [extractor.extract(snapshot) for extractor in self._extractors]

    def count_data_points(self, snapshot: UserStateSnapshot) -> int:
        """
        Evidence volume behind a prediction.

        behavior entries + emotional entries + history_weight * past events
        """
        return (
            len(snapshot.recent_behavior_log)
            + snapshot.emotional_entries
            + self.config.confidence.history_weight * len(snapshot.event_history)
        )

    def calculate_confidence(self, data_points: int) -> int:
        """Confidence 0..max_confidence from evidence volume."""
        cfg = self.config.confidence
        raw = round_half_up(data_points / cfg.full_information_points * 100)
        return max(0, min(raw, cfg.max_confidence))

    def _insufficient_data_result(self, snapshot: UserStateSnapshot) -> PredictionResult:
        return PredictionResult(
            risk_score=0,
            confidence=0,
            reason=INSUFFICIENT_DATA_REASON,
            factors={},
            data_points=0,
            risk_level=RiskLevel.LOW,
            recommendations=(),
            evaluated_at=snapshot.evaluation_time,
            engine_version=self.config.engine_version,
        )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def predict_risk(
    snapshot: UserStateSnapshot,
    weights: Optional[FactorWeights] = None,
    config: Optional[RiskPredictionConfig] = None,
) -> PredictionResult:
    """
    Score a snapshot in one call.

    For repeated scoring, prefer a persistent RiskPredictionEngine.
    """
    return RiskPredictionEngine(config=config).score(snapshot, weights)


def get_risk_level_from_score(risk_score: int) -> RiskLevel:
    return RiskLevel.from_score(risk_score)


def should_notify(result: PredictionResult, threshold: int = 70) -> bool:
    """
    Whether a prediction warrants alerting the user.

    The engine never sends anything itself; this is a helper
    for the notification layer.
    """
    return result.risk_score >= threshold


def format_reason(reason: Optional[str], max_length: int = 100) -> str:
    """Truncate a reason for compact display."""
    if not reason:
        return "Risk factors detected"
    if len(reason) <= max_length:
        return reason
    return reason[: max_length - 3] + "..."


def format_prediction_summary(result: PredictionResult) -> str:
    """
    Format a human-readable prediction summary.

    Useful for logging, alerts, and dashboards.
    """
    lines = [
        "=" * 50,
        "RISK PREDICTION SUMMARY",
        "=" * 50,
        f"Risk Score: {result.risk_score}/100",
        f"Risk Level: {result.risk_level.name}",
        f"Confidence: {result.confidence}% ({result.data_points} data points)",
        f"Evaluated At: {result.evaluated_at.isoformat() if result.evaluated_at else 'N/A'}",
        "",
        "Factors:",
    ]

    if result.factors:
        for name, weight in result.factors.items():
            lines.append(f"  {name:<24}{weight:g}")
    else:
        lines.append("  (none)")

    lines.extend([
        "",
        f"Reason: {result.reason}",
        "=" * 50,
    ])

    return "\n".join(lines)
