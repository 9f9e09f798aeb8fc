"""
Tests for the injectable clock.
"""

from datetime import datetime, timedelta, timezone

from core.clock import MockClock, SystemClock, ensure_aware, from_iso8601, to_iso8601, to_utc


START = datetime(2024, 6, 8, 12, 0, tzinfo=timezone.utc)


class TestMockClock:

    def test_now_is_fixed(self):
        clock = MockClock(START)
        assert clock.now() == START
        assert clock.now() == START

    def test_advance(self):
        clock = MockClock(START)
        clock.advance(days=2, hours=3)
        assert clock.now() == START + timedelta(days=2, hours=3)

    def test_days_ago_and_today(self):
        clock = MockClock(START)
        assert clock.days_ago(30) == START - timedelta(days=30)
        assert clock.today() == START.date()

    def test_freeze_restores(self):
        clock = MockClock(START)
        frozen_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        with clock.freeze(frozen_at):
            assert clock.now() == frozen_at
        assert clock.now() == START

    def test_naive_initial_time_tagged_utc(self):
        clock = MockClock(datetime(2024, 6, 8, 12, 0))
        assert clock.now() == START


class TestSystemClock:

    def test_returns_aware_time(self):
        assert SystemClock().now().tzinfo is not None


class TestIso8601:

    def test_trailing_z(self):
        assert from_iso8601("2024-06-08T12:00:00Z") == START

    def test_naive_string_tagged_utc(self):
        assert from_iso8601("2024-06-08T12:00:00") == START

    def test_to_iso8601(self):
        assert to_iso8601(START) == "2024-06-08T12:00:00+00:00"

    def test_ensure_aware_keeps_offset(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2024, 6, 8, 14, 0, tzinfo=plus_two)
        assert ensure_aware(value).tzinfo is plus_two

    def test_to_utc_converts_offset(self):
        value = datetime(2024, 6, 8, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        converted = to_utc(value)
        assert converted.tzinfo is timezone.utc
        assert converted.hour == 12

    def test_to_utc_tags_naive(self):
        assert to_utc(datetime(2024, 6, 8, 12, 0)) == START
