"""
Risk Prediction Engine - Package.

============================================================
PURPOSE
============================================================
Adaptive, rule-based relapse-risk prediction for a habit
recovery companion.

Given a snapshot of a user's recent state, the engine scores
how likely a setback is in the near term (0-100), explains
why, reports how much data the score rests on, and learns
per-user factor weights from "helpful" / "false alarm"
feedback.

============================================================
WHAT IT IS
============================================================
- Deterministic: same snapshot and weights, same result
- Explainable: every fired factor contributes a reason
- Adaptive: weights move 5% per feedback, clamped to [5, 35]

============================================================
WHAT IT IS NOT
============================================================
- NOT a machine-learning model
- NOT a notifier: alerting.py is a caller-side helper
- NOT a clinical diagnosis

============================================================
SIX RISK FACTORS (default weight)
============================================================
1. energyDrop (25): energy fell >= 3 over last 3 entries
2. eveningHours (20): evaluated between 20:00 and 23:59
3. weekend (10): evaluated on Saturday or Sunday
4. emotionalVulnerability (15): anxiety > 7 and mood < 4
5. historicalPattern (20): within 3 days of a past setback day
6. purgePhase (15): streak day 15-45

============================================================
USAGE
============================================================
    from datetime import datetime
    from risk_prediction import (
        RiskPredictionService,
        InMemoryPredictionStore,
        BehaviorEntry,
        FeedbackOutcome,
    )

    service = RiskPredictionService(InMemoryPredictionStore())

    snapshot = service.build_snapshot(
        current_streak_days=20,
        recent_behavior_log=[
            BehaviorEntry(datetime(2024, 6, 6), energy_level=8),
            BehaviorEntry(datetime(2024, 6, 7), energy_level=6),
            BehaviorEntry(datetime(2024, 6, 8), energy_level=4),
        ],
        evaluation_time=datetime(2024, 6, 8, 21, 0),
    )

    result = service.predict("user-1", snapshot)
    print(f"Risk: {result.risk_score}/100 ({result.confidence}% confidence)")
    print(f"Why: {result.reason}")

    service.record_feedback("user-1", result, FeedbackOutcome.HELPFUL)

============================================================
"""

# Types
from .types import (
    # Enums
    RiskFactor,
    FeedbackOutcome,
    RiskLevel,
    # Input types
    BehaviorEntry,
    EmotionalState,
    PastEvent,
    UserStateSnapshot,
    # Output types
    FactorSignal,
    Recommendation,
    PredictionResult,
    FeedbackRecord,
    AccuracyReport,
    # Exceptions
    RiskPredictionError,
    InvalidFeedbackOutcomeError,
    InvalidSnapshotError,
)

# Configuration
from .config import (
    ExtractorConfig,
    ConfidenceConfig,
    AdaptationConfig,
    AlertingConfig,
    StoreConfig,
    RiskPredictionConfig,
    DEFAULT_WEIGHTS,
    get_default_config,
    get_sensitive_config,
    get_relaxed_config,
    load_config_from_env,
)

# Weights
from .weights import FactorWeights

# Extractors
from .extractors import (
    BaseSignalExtractor,
    EnergyDropExtractor,
    EveningHoursExtractor,
    WeekendExtractor,
    EmotionalVulnerabilityExtractor,
    HistoricalPatternExtractor,
    PurgePhaseExtractor,
    build_extractors,
)

# Engine
from .engine import (
    RiskPredictionEngine,
    INSUFFICIENT_DATA_REASON,
    NO_RISK_REASON,
    predict_risk,
    get_risk_level_from_score,
    should_notify,
    format_reason,
    format_prediction_summary,
)

# Adaptation
from .adapter import WeightAdapter, compute_accuracy

# Recommendations
from .recommendations import build_recommendations, get_recommended_interventions

# Alerting
from .alerting import (
    RiskAlert,
    AlertSender,
    WebhookAlertSender,
    ConsoleAlertSender,
    AlertRateLimiter,
    RiskAlertingService,
    create_webhook_alerting_service,
    create_console_alerting_service,
)

# Persistence
from .models import (
    FactorWeightRecord,
    PredictionFeedbackRecord,
    PredictionHistoryRecord,
)
from .repository import (
    PredictionStore,
    InMemoryPredictionStore,
    RiskPredictionRepository,
)

# Service
from .service import RiskPredictionService


__version__ = "1.0.0"

__all__ = [
    # Types
    "RiskFactor",
    "FeedbackOutcome",
    "RiskLevel",
    "BehaviorEntry",
    "EmotionalState",
    "PastEvent",
    "UserStateSnapshot",
    "FactorSignal",
    "Recommendation",
    "PredictionResult",
    "FeedbackRecord",
    "AccuracyReport",
    "RiskPredictionError",
    "InvalidFeedbackOutcomeError",
    "InvalidSnapshotError",
    # Config
    "ExtractorConfig",
    "ConfidenceConfig",
    "AdaptationConfig",
    "AlertingConfig",
    "StoreConfig",
    "RiskPredictionConfig",
    "DEFAULT_WEIGHTS",
    "get_default_config",
    "get_sensitive_config",
    "get_relaxed_config",
    "load_config_from_env",
    # Weights
    "FactorWeights",
    # Extractors
    "BaseSignalExtractor",
    "EnergyDropExtractor",
    "EveningHoursExtractor",
    "WeekendExtractor",
    "EmotionalVulnerabilityExtractor",
    "HistoricalPatternExtractor",
    "PurgePhaseExtractor",
    "build_extractors",
    # Engine
    "RiskPredictionEngine",
    "INSUFFICIENT_DATA_REASON",
    "NO_RISK_REASON",
    "predict_risk",
    "get_risk_level_from_score",
    "should_notify",
    "format_reason",
    "format_prediction_summary",
    # Adaptation
    "WeightAdapter",
    "compute_accuracy",
    # Recommendations
    "build_recommendations",
    "get_recommended_interventions",
    # Alerting
    "RiskAlert",
    "AlertSender",
    "WebhookAlertSender",
    "ConsoleAlertSender",
    "AlertRateLimiter",
    "RiskAlertingService",
    "create_webhook_alerting_service",
    "create_console_alerting_service",
    # Persistence
    "FactorWeightRecord",
    "PredictionFeedbackRecord",
    "PredictionHistoryRecord",
    "PredictionStore",
    "InMemoryPredictionStore",
    "RiskPredictionRepository",
    # Service
    "RiskPredictionService",
]
