"""
Core Module Package.

Shared infrastructure used by the prediction engine.

Components:
- clock: Injectable time source
"""

from .clock import (
    ClockProtocol,
    SystemClock,
    MockClock,
    ensure_aware,
    to_utc,
    to_iso8601,
    from_iso8601,
)

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_aware",
    "to_utc",
    "to_iso8601",
    "from_iso8601",
]
