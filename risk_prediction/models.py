"""
Risk Prediction Engine - Persistence Models.

============================================================
PURPOSE
============================================================
ORM models for the state the engine needs across restarts.

Enables:
- Per-user adapted weights
- Append-only feedback log for accuracy and adaptation
- Prediction history for display and audit

============================================================
MODELS
============================================================
1. FactorWeightRecord: Current weights, one row per user
2. PredictionFeedbackRecord: One row per feedback submission
3. PredictionHistoryRecord: One row per scored prediction

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Text,
    Index,
    JSON,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# FACTOR WEIGHTS MODEL
# ============================================================


class FactorWeightRecord(Base):
    """
    Adapted factor weights for one user.

    Stored as a JSON object keyed by factor name so that adding
    a factor does not require a migration.
    """

    __tablename__ = "factor_weights"

    user_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    weights: Mapped[Dict[str, float]] = mapped_column(
        JSON,
        nullable=False,
        comment="Factor name -> weight",
    )

    feedback_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Feedback submissions applied to these weights",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<FactorWeightRecord(user_id={self.user_id}, feedback_count={self.feedback_count})>"


# ============================================================
# FEEDBACK MODEL
# ============================================================


class PredictionFeedbackRecord(Base):
    """
    One feedback submission.

    Rows are never updated. Pruning is a retention policy of
    the deployment, not of the engine.
    """

    __tablename__ = "prediction_feedback"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    prediction_factors: Mapped[Dict[str, float]] = mapped_column(
        JSON,
        nullable=False,
        comment="Factors that fired in the judged prediction",
    )

    outcome: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="helpful or false_alarm",
    )

    predicted_risk: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    notes: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_prediction_feedback_user_submitted", "user_id", "submitted_at"),
    )

    def __repr__(self) -> str:
        return f"<PredictionFeedbackRecord(user_id={self.user_id}, outcome={self.outcome})>"


# ============================================================
# PREDICTION HISTORY MODEL
# ============================================================


class PredictionHistoryRecord(Base):
    """A scored prediction, kept for display and audit."""

    __tablename__ = "prediction_history"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    prediction_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
        default=uuid4,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    risk_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Risk score (0-100)",
    )

    confidence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Confidence (0-95)",
    )

    risk_level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    reason: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    factors: Mapped[Dict[str, float]] = mapped_column(
        JSON,
        nullable=False,
    )

    data_points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    evaluated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    raw_output_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Full PredictionResult as JSON",
    )

    __table_args__ = (
        Index("ix_prediction_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PredictionHistoryRecord(user_id={self.user_id}, risk_score={self.risk_score})>"
