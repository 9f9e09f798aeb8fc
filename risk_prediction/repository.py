"""
Risk Prediction Engine - Repository.

============================================================
PURPOSE
============================================================
Persistence collaborators for per-user engine state.

The engine itself never performs I/O. The service talks to a
PredictionStore, of which two implementations ship:

- InMemoryPredictionStore: dict-backed, for tests and for
  embedding in a process that persists elsewhere
- RiskPredictionRepository: SQLAlchemy session-backed

============================================================
STORE CONTRACT
============================================================
- load_weights / save_weights: current weights per user
- append_feedback / list_feedback: append-only log, oldest first
- save_prediction / list_predictions: history, newest first

Timestamps are written in UTC, so offsets survive databases
that store DateTime without a zone.

Concurrent writers to the same user's weights are resolved
last-write-wins.

============================================================
"""

import logging
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Protocol

from sqlalchemy import delete, desc, func, select
from sqlalchemy.orm import Session

from core.clock import ensure_aware, to_utc

from .config import AdaptationConfig, StoreConfig
from .models import FactorWeightRecord, PredictionFeedbackRecord, PredictionHistoryRecord
from .types import FeedbackRecord, PredictionResult
from .weights import FactorWeights


logger = logging.getLogger(__name__)


# ============================================================
# STORE PROTOCOL
# ============================================================


class PredictionStore(Protocol):
    """Storage interface consumed by RiskPredictionService."""

    def load_weights(self, user_id: str) -> Optional[FactorWeights]:
        ...

    def save_weights(self, user_id: str, weights: FactorWeights) -> None:
        ...

    def append_feedback(self, user_id: str, record: FeedbackRecord) -> None:
        ...

    def list_feedback(self, user_id: str, since: Optional[datetime] = None) -> List[FeedbackRecord]:
        ...

    def save_prediction(self, user_id: str, result: PredictionResult) -> None:
        ...

    def list_predictions(self, user_id: str, limit: int = 50) -> List[PredictionResult]:
        ...


# ============================================================
# IN-MEMORY STORE
# ============================================================


class InMemoryPredictionStore:
    """
    Dict-backed PredictionStore.

    Bounded per user by StoreConfig: the oldest predictions and
    feedback entries are dropped first.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        adaptation: Optional[AdaptationConfig] = None,
    ):
        self._config = config or StoreConfig()
        self._adaptation = adaptation or AdaptationConfig()
        self._weights: Dict[str, Dict[str, float]] = {}
        self._feedback: Dict[str, Deque[FeedbackRecord]] = defaultdict(
            lambda: deque(maxlen=self._config.max_feedback)
        )
        self._predictions: Dict[str, Deque[PredictionResult]] = defaultdict(
            lambda: deque(maxlen=self._config.max_history)
        )

    def load_weights(self, user_id: str) -> Optional[FactorWeights]:
        stored = self._weights.get(user_id)
        if stored is None:
            return None
        return FactorWeights.from_dict(stored, self._adaptation)

    def save_weights(self, user_id: str, weights: FactorWeights) -> None:
        self._weights[user_id] = weights.to_dict()

    def delete_weights(self, user_id: str) -> None:
        self._weights.pop(user_id, None)

    def append_feedback(self, user_id: str, record: FeedbackRecord) -> None:
        self._feedback[user_id].append(record)

    def list_feedback(self, user_id: str, since: Optional[datetime] = None) -> List[FeedbackRecord]:
        records = list(self._feedback.get(user_id, ()))
        if since is not None:
            cutoff = ensure_aware(since)
            records = [r for r in records if ensure_aware(r.timestamp) >= cutoff]
        return records

    def save_prediction(self, user_id: str, result: PredictionResult) -> None:
        self._predictions[user_id].append(result)

    def list_predictions(self, user_id: str, limit: int = 50) -> List[PredictionResult]:
        history = list(self._predictions.get(user_id, ()))
        return list(reversed(history[-limit:])) if limit > 0 else []

    def clear(self, user_id: Optional[str] = None) -> None:
        """Drop all state, or one user's state."""
        if user_id is None:
            self._weights.clear()
            self._feedback.clear()
            self._predictions.clear()
            return
        self._weights.pop(user_id, None)
        self._feedback.pop(user_id, None)
        self._predictions.pop(user_id, None)


# ============================================================
# SQLALCHEMY REPOSITORY
# ============================================================


class RiskPredictionRepository:
    """
    SQLAlchemy-backed PredictionStore.

    ============================================================
    METHODS
    ============================================================
    - load_weights / save_weights: upsert one row per user
    - append_feedback / list_feedback: feedback log
    - save_prediction / list_predictions: prediction history
    - count_feedback / prune_feedback: retention helpers

    Writes flush but do not commit; wrap calls in
    database.transaction_scope() or commit the session.

    ============================================================
    """

    def __init__(self, session: Session, adaptation: Optional[AdaptationConfig] = None):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
            adaptation: Bounds applied when weights are loaded
        """
        self._session = session
        self._adaptation = adaptation or AdaptationConfig()

    # --------------------------------------------------------
    # WEIGHTS
    # --------------------------------------------------------

    def load_weights(self, user_id: str) -> Optional[FactorWeights]:
        record = self._session.get(FactorWeightRecord, user_id)
        if record is None:
            return None
        return FactorWeights.from_dict(record.weights, self._adaptation)

    def save_weights(self, user_id: str, weights: FactorWeights) -> None:
        record = self._session.get(FactorWeightRecord, user_id)
        now = datetime.now(timezone.utc)

        if record is None:
            record = FactorWeightRecord(
                user_id=user_id,
                weights=weights.to_dict(),
                feedback_count=self.count_feedback(user_id),
                updated_at=now,
            )
            self._session.add(record)
        else:
            # JSON columns do not track in-place mutation
            record.weights = weights.to_dict()
            record.updated_at = now
            record.feedback_count = self.count_feedback(user_id)

        self._session.flush()
        logger.debug(f"Saved weights for user {user_id}: {record.weights}")

    def delete_weights(self, user_id: str) -> None:
        self._session.execute(delete(FactorWeightRecord).where(FactorWeightRecord.user_id == user_id))
        self._session.flush()

    # --------------------------------------------------------
    # FEEDBACK
    # --------------------------------------------------------

    def append_feedback(self, user_id: str, record: FeedbackRecord) -> None:
        row = PredictionFeedbackRecord(
            user_id=user_id,
            prediction_factors=dict(record.prediction_factors),
            outcome=record.outcome.value,
            predicted_risk=record.predicted_risk,
            notes=record.notes,
            submitted_at=to_utc(record.timestamp),
        )
        self._session.add(row)

        self._session.flush()
        logger.debug(f"Appended {record.outcome.value} feedback for user {user_id}")

    def list_feedback(self, user_id: str, since: Optional[datetime] = None) -> List[FeedbackRecord]:
        stmt = select(PredictionFeedbackRecord).where(PredictionFeedbackRecord.user_id == user_id)
        if since is not None:
            stmt = stmt.where(PredictionFeedbackRecord.submitted_at >= to_utc(since))
        stmt = stmt.order_by(PredictionFeedbackRecord.id)

        return [
            FeedbackRecord(
                prediction_factors=row.prediction_factors or {},
                outcome=row.outcome,
                timestamp=ensure_aware(row.submitted_at),
                predicted_risk=row.predicted_risk,
                notes=row.notes or "",
            )
            for row in self._session.scalars(stmt)
        ]

    def count_feedback(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(PredictionFeedbackRecord).where(
            PredictionFeedbackRecord.user_id == user_id
        )
        return self._session.scalar(stmt) or 0

    def prune_feedback(self, user_id: str, keep: int) -> int:
        """
        Keep only the newest `keep` feedback rows for a user.

        Returns:
            Number of rows deleted
        """
        newest_ids = select(PredictionFeedbackRecord.id).where(
            PredictionFeedbackRecord.user_id == user_id
        ).order_by(desc(PredictionFeedbackRecord.id)).limit(keep)

        result = self._session.execute(
            delete(PredictionFeedbackRecord)
            .where(PredictionFeedbackRecord.user_id == user_id)
            .where(PredictionFeedbackRecord.id.not_in(newest_ids.scalar_subquery()))
        )
        self._session.flush()

        deleted = result.rowcount or 0
        if deleted:
            logger.info(f"Pruned {deleted} feedback rows for user {user_id}")
        return deleted

    # --------------------------------------------------------
    # PREDICTION HISTORY
    # --------------------------------------------------------

    def save_prediction(self, user_id: str, result: PredictionResult) -> None:
        row = PredictionHistoryRecord(
            prediction_id=result.prediction_id,
            user_id=user_id,
            risk_score=result.risk_score,
            confidence=result.confidence,
            risk_level=result.risk_level.value,
            reason=result.reason,
            factors=dict(result.factors),
            data_points=result.data_points,
            evaluated_at=to_utc(result.evaluated_at) if result.evaluated_at else None,
            raw_output_json=result.to_dict(),
        )
        self._session.add(row)
        self._session.flush()

    def list_predictions(self, user_id: str, limit: int = 50) -> List[PredictionResult]:
        stmt = (
            select(PredictionHistoryRecord)
            .where(PredictionHistoryRecord.user_id == user_id)
            .order_by(desc(PredictionHistoryRecord.id))
            .limit(limit)
        )
        return [PredictionResult.from_dict(row.raw_output_json) for row in self._session.scalars(stmt)]
