"""
Risk Prediction Engine - Signal Extractors.

============================================================
PURPOSE
============================================================
One extractor per risk factor.

Each extractor:
1. Takes a UserStateSnapshot
2. Inspects one slice of it
3. Returns a FactorSignal with flag, unit score and reason

============================================================
DESIGN PRINCIPLES
============================================================
- Pure functions: same snapshot = same signal
- No wall-clock reads; time comes from the snapshot
- Never raise for missing data: absence is a negative signal
- Thresholds come from ExtractorConfig

============================================================
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .config import ExtractorConfig
from .types import (
    FactorSignal,
    RiskFactor,
    UserStateSnapshot,
)


# ============================================================
# BASE EXTRACTOR
# ============================================================


class BaseSignalExtractor(ABC):
    """
    Abstract base class for signal extractors.

    Subclasses implement `_extract` for snapshots that have the
    data they need; `extract` is the total entry point.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()

    @property
    @abstractmethod
    def factor(self) -> RiskFactor:
        """Return the risk factor this extractor detects."""
        pass

    @abstractmethod
    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        """Evaluate the snapshot for this factor."""
        pass

    def _fired(self, reason: str, **details) -> FactorSignal:
        return FactorSignal(
            factor=self.factor,
            is_risk=True,
            score=1.0,
            reason=reason,
            details=details,
        )

    def _not_fired(self, reason: str, **details) -> FactorSignal:
        return FactorSignal.not_risk(self.factor, reason, **details)


# ============================================================
# ENERGY DROP
# ============================================================


class EnergyDropExtractor(BaseSignalExtractor):
    """
    Detect a falling energy trend.

    Needs at least `energy_window` log entries. Compares the
    first and last energy level of the most recent window.
    """

    @property
    def factor(self) -> RiskFactor:
        return RiskFactor.ENERGY_DROP

    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        window = self.config.energy_window
        log = snapshot.recent_behavior_log

        if len(log) < window:
            return self._not_fired(
                f"Not enough behavior entries ({len(log)}/{window})",
                entries=len(log),
            )

        recent = log[-window:]
        first_energy = recent[0].energy_level
        last_energy = recent[-1].energy_level
        drop = first_energy - last_energy

        if drop >= self.config.energy_drop_threshold:
            return self._fired(
                f"Energy dropped {drop} points in last {window} days",
                drop=drop,
                first_energy=first_energy,
                last_energy=last_energy,
            )

        return self._not_fired("Energy stable", drop=drop)


# ============================================================
# EVENING HOURS
# ============================================================


class EveningHoursExtractor(BaseSignalExtractor):
    """Flag evaluations inside the evening window."""

    @property
    def factor(self) -> RiskFactor:
        return RiskFactor.EVENING_HOURS

    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        hour = snapshot.evaluation_time.hour

        if self.config.evening_start_hour <= hour <= self.config.evening_end_hour:
            return self._fired(f"Evening hours ({hour}:00) - high risk period", hour=hour)

        return self._not_fired(f"Outside evening window ({hour}:00)", hour=hour)


# ============================================================
# WEEKEND
# ============================================================


class WeekendExtractor(BaseSignalExtractor):
    """Flag evaluations on weekend days."""

    @property
    def factor(self) -> RiskFactor:
        return RiskFactor.WEEKEND

    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        weekday = snapshot.evaluation_time.weekday()

        if weekday in self.config.weekend_days:
            return self._fired("Weekend - less structure and routine", weekday=weekday)

        return self._not_fired("Weekday", weekday=weekday)


# ============================================================
# EMOTIONAL VULNERABILITY
# ============================================================


class EmotionalVulnerabilityExtractor(BaseSignalExtractor):
    """
    Flag high anxiety combined with low mood stability.

    Both conditions must hold; either alone is a weak signal.
    """

    @property
    def factor(self) -> RiskFactor:
        return RiskFactor.EMOTIONAL_VULNERABILITY

    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        state = snapshot.emotional_state
        if state is None:
            return self._not_fired("No emotional self-report")

        anxiety = state.anxiety
        mood = state.mood_stability

        if anxiety > self.config.anxiety_threshold and mood < self.config.mood_stability_threshold:
            return self._fired(
                f"High anxiety ({anxiety}/10) + Low mood ({mood}/10)",
                anxiety=anxiety,
                mood_stability=mood,
            )

        return self._not_fired("Emotional state within range", anxiety=anxiety, mood_stability=mood)


# ============================================================
# HISTORICAL PATTERN
# ============================================================


class HistoricalPatternExtractor(BaseSignalExtractor):
    """
    Match the current streak length against past setbacks.

    Only adverse events count. The first one (in log order)
    within the tolerance wins and is carried on the signal.
    """

    @property
    def factor(self) -> RiskFactor:
        return RiskFactor.HISTORICAL_PATTERN

    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        if not snapshot.event_history:
            return self._not_fired("No event history")

        current = snapshot.current_streak_days
        if current is None:
            return self._not_fired("No current streak")

        tolerance = self.config.historical_tolerance_days
        for event in snapshot.event_history:
            if not event.was_adverse_event:
                continue
            if abs(event.days_since_start - current) <= tolerance:
                return FactorSignal(
                    factor=self.factor,
                    is_risk=True,
                    score=1.0,
                    reason=f"Similar to your Day {event.days_since_start} setback",
                    details={"days_apart": abs(event.days_since_start - current)},
                    matched_event=event,
                )

        return self._not_fired("No similar past event", events=len(snapshot.event_history))


# ============================================================
# PURGE PHASE
# ============================================================


class PurgePhaseExtractor(BaseSignalExtractor):
    """Flag streaks inside the purge-phase window."""

    @property
    def factor(self) -> RiskFactor:
        return RiskFactor.PURGE_PHASE

    def extract(self, snapshot: UserStateSnapshot) -> FactorSignal:
        current = snapshot.current_streak_days
        if current is None:
            return self._not_fired("No current streak")

        if self.config.purge_phase_start_day <= current <= self.config.purge_phase_end_day:
            return self._fired("In emotional purging phase", day=current)

        return self._not_fired("Outside purge phase", day=current)


# ============================================================
# REGISTRY
# ============================================================


def build_extractors(config: Optional[ExtractorConfig] = None) -> List[BaseSignalExtractor]:
    """Create one extractor per factor, in evaluation order."""
    config = config or ExtractorConfig()
    return [
        EnergyDropExtractor(config),
        EveningHoursExtractor(config),
        WeekendExtractor(config),
        EmotionalVulnerabilityExtractor(config),
        HistoricalPatternExtractor(config),
        PurgePhaseExtractor(config),
    ]
