"""
Shared fixtures for the risk prediction test suites.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import pytest

from core.clock import MockClock
from database.engine import create_all_tables, create_database_engine, get_session, reset_engine
from risk_prediction.types import (
    BehaviorEntry,
    EmotionalState,
    PastEvent,
    UserStateSnapshot,
)


# 2024-06-04 is a Tuesday, 2024-06-08 a Saturday
TUESDAY_AFTERNOON = datetime(2024, 6, 4, 14, 0)
SATURDAY_NIGHT = datetime(2024, 6, 8, 22, 0)


def make_behavior_log(energies: Sequence[int], end: datetime = TUESDAY_AFTERNOON):
    """Daily entries ending on `end`, oldest first."""
    start = end - timedelta(days=len(energies) - 1)
    return tuple(
        BehaviorEntry(timestamp=start + timedelta(days=i), energy_level=energy)
        for i, energy in enumerate(energies)
    )


def make_snapshot(
    streak: Optional[int] = 20,
    energies: Sequence[int] = (8, 8, 8),
    at: datetime = TUESDAY_AFTERNOON,
    emotional: Optional[EmotionalState] = None,
    emotional_count: int = 0,
    events: Sequence[PastEvent] = (),
) -> UserStateSnapshot:
    return UserStateSnapshot(
        evaluation_time=at,
        current_streak_days=streak,
        recent_behavior_log=make_behavior_log(energies, at),
        emotional_state=emotional,
        emotional_history_count=emotional_count,
        event_history=tuple(events),
    )


@pytest.fixture
def snapshot_factory():
    """Builds snapshots; see make_snapshot for the defaults."""
    return make_snapshot


@pytest.fixture
def clock():
    return MockClock(datetime(2024, 6, 8, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_session():
    """Session on a fresh in-memory SQLite database."""
    create_database_engine("sqlite:///:memory:")
    create_all_tables()
    session = get_session()
    try:
        yield session
    finally:
        session.close()
        reset_engine()
