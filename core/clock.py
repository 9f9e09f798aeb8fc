"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Injectable time source for the prediction service.

- Scoring never reads the wall clock; the evaluation time is
  part of the snapshot
- The service stamps feedback and fills missing evaluation
  times through a clock passed in at construction
- Tests use MockClock for deterministic timestamps

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Generator, Optional
import threading


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for a time source."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current datetime."""
        pass

    def today(self) -> date:
        """Get current date."""
        return self.now().date()

    def days_ago(self, days: int) -> datetime:
        """Get the instant `days` days before now."""
        return self.now() - timedelta(days=days)


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """
    Production clock.

    Returns timezone-aware UTC unless a local zone is supplied,
    in which case hour-of-day and weekday reflect that zone.
    """

    def __init__(self, tz: Optional[timezone] = None):
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current UTC)
        """
        self._time = ensure_aware(initial_time or datetime.now(timezone.utc))
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        """Set the current time."""
        with self._lock:
            self._time = ensure_aware(new_time)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)

    @contextmanager
    def freeze(self, at_time: datetime) -> Generator[None, None, None]:
        """Temporarily pin the clock to `at_time`."""
        with self._lock:
            original_time = self._time
            self._time = ensure_aware(at_time)

        try:
            yield
        finally:
            with self._lock:
                self._time = original_time


# ============================================================
# TIMESTAMP UTILITIES
# ============================================================

def ensure_aware(dt: datetime) -> datetime:
    """Tag naive datetimes as UTC; aware values pass through."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc(dt: datetime) -> datetime:
    """Convert to UTC; naive values are taken to already be UTC."""
    return ensure_aware(dt).astimezone(timezone.utc)


def to_iso8601(dt: datetime) -> str:
    """Convert datetime to ISO 8601 string."""
    return ensure_aware(dt).isoformat()


def from_iso8601(iso_string: str) -> datetime:
    """
    Parse ISO 8601 string to datetime.

    Accepts the trailing "Z" that JavaScript clients emit.
    Naive values keep their wall-clock reading and are tagged UTC.
    """
    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_aware(dt)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_aware",
    "to_utc",
    "to_iso8601",
    "from_iso8601",
]
