"""
Risk Prediction Engine - Service.

============================================================
PURPOSE
============================================================
Per-user orchestration around the pure engine.

    predict:          load weights -> score -> keep history
    record_feedback:  validate -> append log -> adapt -> save weights
    get_accuracy:     rolling accuracy from the feedback log

All state lives in the injected PredictionStore, and all
timestamps come from the injected clock.

============================================================
USAGE
============================================================
    from risk_prediction import (
        RiskPredictionService,
        InMemoryPredictionStore,
        FeedbackOutcome,
    )

    service = RiskPredictionService(InMemoryPredictionStore())

    snapshot = service.build_snapshot(current_streak_days=20)
    prediction = service.predict("user-1", snapshot)

    # later, once the user judged the alert
    service.record_feedback("user-1", prediction, FeedbackOutcome.HELPFUL)

============================================================
"""

import logging
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from core.clock import ClockProtocol, SystemClock

from .adapter import WeightAdapter, compute_accuracy
from .config import RiskPredictionConfig
from .engine import RiskPredictionEngine
from .repository import PredictionStore
from .types import (
    AccuracyReport,
    BehaviorEntry,
    EmotionalState,
    FeedbackOutcome,
    FeedbackRecord,
    PastEvent,
    PredictionResult,
    UserStateSnapshot,
)
from .weights import FactorWeights


logger = logging.getLogger(__name__)


class RiskPredictionService:
    """
    Scores, records feedback and adapts weights for many users.

    Each user's weights are independent; the service itself
    holds no per-user state.
    """

    def __init__(
        self,
        store: PredictionStore,
        config: Optional[RiskPredictionConfig] = None,
        clock: Optional[ClockProtocol] = None,
        engine: Optional[RiskPredictionEngine] = None,
        adapter: Optional[WeightAdapter] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Persistence collaborator
            config: Engine configuration (defaults if not provided)
            clock: Time source for snapshots and feedback stamps
            engine: Scoring engine (built from config if not provided)
            adapter: Weight adapter (built from config if not provided)
        """
        self.config = config or RiskPredictionConfig()
        self._store = store
        self._clock = clock or SystemClock()
        self._engine = engine or RiskPredictionEngine(self.config)
        self._adapter = adapter or WeightAdapter(self.config.adaptation)

    @property
    def engine(self) -> RiskPredictionEngine:
        return self._engine

    # --------------------------------------------------------
    # WEIGHTS
    # --------------------------------------------------------

    def get_weights(self, user_id: str) -> FactorWeights:
        """Current weights for a user, defaults if none stored."""
        weights = self._store.load_weights(user_id)
        if weights is None:
            return self._engine.default_weights()
        return weights

    def reset_weights(self, user_id: str) -> FactorWeights:
        """Restore a user's weights to the defaults."""
        weights = self._engine.default_weights()
        self._store.save_weights(user_id, weights)
        logger.info(f"Reset weights for user {user_id}")
        return weights

    # --------------------------------------------------------
    # PREDICTION
    # --------------------------------------------------------

    def build_snapshot(
        self,
        current_streak_days: Optional[int] = None,
        recent_behavior_log: Iterable[BehaviorEntry] = (),
        emotional_state: Optional[EmotionalState] = None,
        emotional_history_count: int = 0,
        event_history: Iterable[PastEvent] = (),
        evaluation_time=None,
    ) -> UserStateSnapshot:
        """Assemble a snapshot, stamping evaluation time from the clock if absent."""
        return UserStateSnapshot(
            evaluation_time=evaluation_time or self._clock.now(),
            current_streak_days=current_streak_days,
            recent_behavior_log=tuple(recent_behavior_log),
            emotional_state=emotional_state,
            emotional_history_count=emotional_history_count,
            event_history=tuple(event_history),
        )

    def predict(self, user_id: str, snapshot: UserStateSnapshot) -> PredictionResult:
        """
        Score a snapshot with the user's current weights.

        The result is appended to the user's prediction history.
        """
        weights = self.get_weights(user_id)
        result = self._engine.score(snapshot, weights)
        self._store.save_prediction(user_id, result)

        logger.debug(
            f"Prediction for user {user_id}: risk={result.risk_score} "
            f"confidence={result.confidence} factors={list(result.factors)}"
        )
        return result

    def get_history(self, user_id: str, limit: int = 50) -> List[PredictionResult]:
        """Most recent predictions for a user, newest first."""
        return self._store.list_predictions(user_id, limit)

    # --------------------------------------------------------
    # FEEDBACK
    # --------------------------------------------------------

    def record_feedback(
        self,
        user_id: str,
        prediction: Union[PredictionResult, Mapping[str, float]],
        outcome: Union[FeedbackOutcome, str],
        notes: str = "",
    ) -> Tuple[FeedbackRecord, FactorWeights]:
        """
        Record feedback on a prediction and adapt the user's weights.

        Args:
            user_id: User the prediction belongs to
            prediction: The judged prediction, or its factor map
            outcome: "helpful" or "false_alarm"
            notes: Free-text comment from the user

        Returns:
            (stored feedback record, new weights)

        Raises:
            InvalidFeedbackOutcomeError: Before anything is written,
                if the outcome is unrecognized
        """
        outcome = FeedbackOutcome.parse(outcome)

        if isinstance(prediction, PredictionResult):
            factors = dict(prediction.factors)
            predicted_risk: Optional[int] = prediction.risk_score
        else:
            factors = dict(prediction)
            predicted_risk = None

        record = FeedbackRecord(
            prediction_factors=factors,
            outcome=outcome,
            timestamp=self._clock.now(),
            predicted_risk=predicted_risk,
            notes=notes,
        )

        current = self.get_weights(user_id)
        updated = self._adapter.adapt(current, record)

        self._store.append_feedback(user_id, record)
        self._store.save_weights(user_id, updated)

        logger.info(
            f"Recorded {outcome.value} feedback for user {user_id} "
            f"on factors {sorted(factors)}"
        )
        return record, updated

    def get_feedback(self, user_id: str) -> List[FeedbackRecord]:
        return self._store.list_feedback(user_id)

    def get_accuracy(self, user_id: str, window_days: int = 30) -> AccuracyReport:
        """Rolling accuracy over the trailing `window_days`."""
        now = self._clock.now()
        return compute_accuracy(
            self._store.list_feedback(user_id, since=self._clock.days_ago(window_days)),
            window_days,
            now,
        )
