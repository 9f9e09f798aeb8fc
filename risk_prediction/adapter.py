"""
Risk Prediction Engine - Weight Adapter.

============================================================
PURPOSE
============================================================
Turns outcome feedback into weight nudges, and reports
rolling prediction accuracy from the feedback log.

============================================================
ADAPTATION RULE
============================================================
For every factor that contributed to the judged prediction:
    helpful      -> weight * (1 + rate)
    false_alarm  -> weight * (1 - rate)
then clamp to [min_weight, max_weight].

Factors that did not fire are left untouched.
This is a multiplicative nudge, not a learning algorithm.

============================================================
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from core.clock import ensure_aware

from .config import AdaptationConfig
from .types import (
    AccuracyReport,
    FeedbackOutcome,
    FeedbackRecord,
    RiskFactor,
)
from .weights import FactorWeights, clamp, round_half_up


logger = logging.getLogger(__name__)


class WeightAdapter:
    """Applies feedback to factor weights."""

    def __init__(self, config: Optional[AdaptationConfig] = None):
        self.config = config or AdaptationConfig()

    def multiplier_for(self, outcome: FeedbackOutcome) -> float:
        outcome = FeedbackOutcome.parse(outcome)
        if outcome == FeedbackOutcome.HELPFUL:
            return 1 + self.config.adjustment_rate
        return 1 - self.config.adjustment_rate

    def adapt(self, weights: FactorWeights, feedback: FeedbackRecord) -> FactorWeights:
        """
        Return new weights reflecting one piece of feedback.

        Args:
            weights: Current weights
            feedback: Feedback on a prediction made with those weights

        Returns:
            New FactorWeights; `weights` is not modified

        Raises:
            InvalidFeedbackOutcomeError: If the outcome is unrecognized
        """
        multiplier = self.multiplier_for(feedback.outcome)

        updated = weights.to_dict()
        for name in feedback.prediction_factors:
            factor = RiskFactor.from_name(name)
            if factor is None:
                logger.debug(f"Ignoring unknown factor in feedback: {name!r}")
                continue
            updated[factor.value] = clamp(
                weights[factor] * multiplier,
                self.config.min_weight,
                self.config.max_weight,
            )

        return FactorWeights(
            updated,
            min_weight=self.config.min_weight,
            max_weight=self.config.max_weight,
        )

    def adapt_many(self, weights: FactorWeights, feedback_log: Iterable[FeedbackRecord]) -> FactorWeights:
        """Replay a feedback log in order."""
        for record in feedback_log:
            weights = self.adapt(weights, record)
        return weights


def compute_accuracy(
    feedback_log: Iterable[FeedbackRecord],
    window_days: int,
    now: datetime,
) -> AccuracyReport:
    """
    Rolling accuracy over the trailing window.

    Args:
        feedback_log: All feedback for a user
        window_days: Trailing window length in days
        now: End of the window

    Returns:
        AccuracyReport; all zeros when the window is empty
    """
    cutoff = ensure_aware(now) - timedelta(days=window_days)
    recent = [record for record in feedback_log if ensure_aware(record.timestamp) >= cutoff]

    if not recent:
        return AccuracyReport.empty(window_days)

    helpful = sum(1 for record in recent if record.is_helpful)
    total = len(recent)

    return AccuracyReport(
        accuracy=round_half_up(helpful / total * 100),
        total_predictions=total,
        helpful=helpful,
        false_alarms=total - helpful,
        window_days=window_days,
    )
