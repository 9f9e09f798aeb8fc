"""
Risk Prediction Engine - Configuration.

============================================================
PURPOSE
============================================================
Defines all configuration dataclasses and policy values
for the Risk Prediction Engine.

Every window, threshold and adaptation constant used by the
extractors, the aggregator and the weight adapter lives here
so that a deployment for a different adverse-event domain can
recalibrate without touching the scoring code.

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable configurations
- Defaults reproduce the production habit-tracker calibration
- Each threshold is documented
- Environment overrides via RISK_* variables

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv


# ============================================================
# EXTRACTOR CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class ExtractorConfig:
    """
    Configuration for the signal extractors.

    ============================================================
    WHAT WE MEASURE
    ============================================================
    - Energy trend over the last few behavior entries
    - Time of day and day of week of the evaluation
    - Latest emotional self-report
    - Streak lengths at which past setbacks happened
    - Lifecycle phase of the current streak

    ============================================================
    THRESHOLD RATIONALE
    ============================================================
    Energy drop:
    - Compare first and last of the last 3 entries
    - A drop of 3+ points on a 1-10 scale is significant

    Evening hours:
    - 20:00 to 23:59 is the highest-risk window

    Emotional vulnerability:
    - Anxiety above 7 AND mood stability below 4
    - Either alone is a weak signal

    Purge phase:
    - Days 15-45 of a streak

    ============================================================
    """

    # Energy drop
    energy_window: int = 3                    # entries inspected (minimum required)
    energy_drop_threshold: int = 3            # fires if first - last >= 3

    # Evening hours (inclusive, local hour of evaluation time)
    evening_start_hour: int = 20
    evening_end_hour: int = 23

    # Weekend (datetime.weekday(): Monday=0 ... Sunday=6)
    weekend_days: Tuple[int, ...] = (5, 6)

    # Emotional vulnerability (strict comparisons)
    anxiety_threshold: int = 7                # fires if anxiety > 7
    mood_stability_threshold: int = 4         # ... and mood stability < 4

    # Historical pattern
    historical_tolerance_days: int = 3        # |past - current| <= 3

    # Purge phase (inclusive)
    purge_phase_start_day: int = 15
    purge_phase_end_day: int = 45

    def to_dict(self) -> Dict[str, Any]:
        return {
            "energy_window": self.energy_window,
            "energy_drop_threshold": self.energy_drop_threshold,
            "evening_start_hour": self.evening_start_hour,
            "evening_end_hour": self.evening_end_hour,
            "weekend_days": list(self.weekend_days),
            "anxiety_threshold": self.anxiety_threshold,
            "mood_stability_threshold": self.mood_stability_threshold,
            "historical_tolerance_days": self.historical_tolerance_days,
            "purge_phase_start_day": self.purge_phase_start_day,
            "purge_phase_end_day": self.purge_phase_end_day,
        }


# ============================================================
# CONFIDENCE CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class ConfidenceConfig:
    """
    Configuration for the confidence measure.

    confidence = min(round(data_points / full_information_points * 100), max_confidence)

    Historical events count `history_weight` times because
    they carry more signal than a single daily log.
    The cap stays below 100: the heuristic is never certain.
    """

    full_information_points: int = 30
    max_confidence: int = 95
    history_weight: int = 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "full_information_points": self.full_information_points,
            "max_confidence": self.max_confidence,
            "history_weight": self.history_weight,
        }


# ============================================================
# ADAPTATION CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class AdaptationConfig:
    """
    Configuration for feedback-driven weight adaptation.

    Helpful feedback multiplies each contributing weight by
    (1 + adjustment_rate); a false alarm by (1 - adjustment_rate).
    Results are clamped to [min_weight, max_weight].
    """

    adjustment_rate: float = 0.05
    min_weight: float = 5.0
    max_weight: float = 35.0

    def __post_init__(self) -> None:
        if not 0 < self.adjustment_rate < 1:
            raise ValueError(f"adjustment_rate must be in (0, 1), got {self.adjustment_rate}")
        if self.min_weight <= 0 or self.min_weight > self.max_weight:
            raise ValueError(
                f"weight bounds must satisfy 0 < min <= max, got [{self.min_weight}, {self.max_weight}]"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adjustment_rate": self.adjustment_rate,
            "min_weight": self.min_weight,
            "max_weight": self.max_weight,
        }


# ============================================================
# ALERTING CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class AlertingConfig:
    """Configuration for high-risk alert dispatch."""

    notify_threshold: int = 70                # alert when risk_score >= 70
    critical_threshold: int = 80              # bypasses rate limiting

    # Rate limiting
    min_seconds_between_alerts: float = 1800.0   # 30 minutes per user

    # Optional webhook destination
    webhook_url: Optional[str] = None
    webhook_timeout_seconds: float = 10.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notify_threshold": self.notify_threshold,
            "critical_threshold": self.critical_threshold,
            "min_seconds_between_alerts": self.min_seconds_between_alerts,
            "webhook_url": self.webhook_url,
            "webhook_timeout_seconds": self.webhook_timeout_seconds,
        }


# ============================================================
# STORE CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class StoreConfig:
    """
    Retention for the in-memory store.

    None disables pruning for that collection.
    """

    max_history: Optional[int] = 1000
    max_feedback: Optional[int] = 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_history": self.max_history,
            "max_feedback": self.max_feedback,
        }


# ============================================================
# DEFAULT WEIGHTS
# ============================================================


DEFAULT_WEIGHTS: Dict[str, float] = {
    "energyDrop": 25.0,
    "eveningHours": 20.0,
    "weekend": 10.0,
    "emotionalVulnerability": 15.0,
    "historicalPattern": 20.0,
    "purgePhase": 15.0,
}


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class RiskPredictionConfig:
    """
    Master configuration for the Risk Prediction Engine.

    Aggregates all component configs and engine settings.
    """

    extractors: ExtractorConfig = field(default_factory=ExtractorConfig)
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)
    adaptation: AdaptationConfig = field(default_factory=AdaptationConfig)
    alerting: AlertingConfig = field(default_factory=AlertingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    # Compared but not hashed; the other fields identify the config
    default_weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS), hash=False)

    # Engine settings
    engine_version: str = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extractors": self.extractors.to_dict(),
            "confidence": self.confidence.to_dict(),
            "adaptation": self.adaptation.to_dict(),
            "alerting": self.alerting.to_dict(),
            "store": self.store.to_dict(),
            "default_weights": dict(self.default_weights),
            "engine_version": self.engine_version,
        }


# ============================================================
# DEFAULT CONFIGURATION
# ============================================================


def get_default_config() -> RiskPredictionConfig:
    """Return the default configuration."""
    return RiskPredictionConfig()


def get_sensitive_config() -> RiskPredictionConfig:
    """
    Return a more sensitive configuration.

    Smaller drops and a wider evening window trigger earlier.
    """
    return RiskPredictionConfig(
        extractors=ExtractorConfig(
            energy_drop_threshold=2,
            evening_start_hour=18,
            anxiety_threshold=6,
            mood_stability_threshold=5,
            historical_tolerance_days=5,
        ),
        alerting=AlertingConfig(notify_threshold=60),
    )


def get_relaxed_config() -> RiskPredictionConfig:
    """
    Return a less sensitive configuration.

    Fewer alerts for users who reported alert fatigue.
    """
    return RiskPredictionConfig(
        extractors=ExtractorConfig(
            energy_drop_threshold=4,
            evening_start_hour=21,
            historical_tolerance_days=2,
        ),
        alerting=AlertingConfig(notify_threshold=80),
    )


# ============================================================
# ENVIRONMENT OVERRIDES
# ============================================================


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def load_config_from_env() -> RiskPredictionConfig:
    """
    Build a configuration from RISK_* environment variables.

    Reads a .env file first if one is present. Unset variables
    keep their defaults.
    """
    load_dotenv()

    base_extractors = ExtractorConfig()
    base_adaptation = AdaptationConfig()
    base_alerting = AlertingConfig()

    extractors = ExtractorConfig(
        energy_window=_env_int("RISK_ENERGY_WINDOW", base_extractors.energy_window),
        energy_drop_threshold=_env_int("RISK_ENERGY_DROP_THRESHOLD", base_extractors.energy_drop_threshold),
        evening_start_hour=_env_int("RISK_EVENING_START_HOUR", base_extractors.evening_start_hour),
        evening_end_hour=_env_int("RISK_EVENING_END_HOUR", base_extractors.evening_end_hour),
        anxiety_threshold=_env_int("RISK_ANXIETY_THRESHOLD", base_extractors.anxiety_threshold),
        mood_stability_threshold=_env_int(
            "RISK_MOOD_STABILITY_THRESHOLD", base_extractors.mood_stability_threshold
        ),
        historical_tolerance_days=_env_int(
            "RISK_HISTORICAL_TOLERANCE_DAYS", base_extractors.historical_tolerance_days
        ),
        purge_phase_start_day=_env_int("RISK_PURGE_PHASE_START_DAY", base_extractors.purge_phase_start_day),
        purge_phase_end_day=_env_int("RISK_PURGE_PHASE_END_DAY", base_extractors.purge_phase_end_day),
    )

    adaptation = AdaptationConfig(
        adjustment_rate=_env_float("RISK_ADJUSTMENT_RATE", base_adaptation.adjustment_rate),
        min_weight=_env_float("RISK_MIN_WEIGHT", base_adaptation.min_weight),
        max_weight=_env_float("RISK_MAX_WEIGHT", base_adaptation.max_weight),
    )

    alerting = AlertingConfig(
        notify_threshold=_env_int("RISK_NOTIFY_THRESHOLD", base_alerting.notify_threshold),
        critical_threshold=_env_int("RISK_CRITICAL_THRESHOLD", base_alerting.critical_threshold),
        min_seconds_between_alerts=_env_float(
            "RISK_MIN_SECONDS_BETWEEN_ALERTS", base_alerting.min_seconds_between_alerts
        ),
        webhook_url=os.getenv("RISK_ALERT_WEBHOOK_URL") or None,
    )

    return RiskPredictionConfig(
        extractors=extractors,
        adaptation=adaptation,
        alerting=alerting,
    )
