"""Tests for multiplier resolution."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from loyaltyman import multipliers

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@dataclass
class Event:
    multiplier: int
    start_at: datetime = NOW - timedelta(hours=1)
    end_at: datetime = NOW + timedelta(hours=1)
    is_active: bool = True


class TestResolve:
    """resolve() picks the best running multiplier, never stacking."""

    def test_no_events(self):
        assert multipliers.resolve(NOW, []) == 1

    def test_inactive_ignored(self):
        events = [Event(2), Event(3, is_active=False)]
        assert multipliers.resolve(NOW, events) == 2

    def test_max_wins(self):
        assert multipliers.resolve(NOW, [Event(2), Event(3)]) == 3

    def test_only_inactive(self):
        assert multipliers.resolve(NOW, [Event(5, is_active=False)]) == 1

    def test_outside_window(self):
        past = Event(4, start_at=NOW - timedelta(days=2), end_at=NOW - timedelta(days=1))
        future = Event(5, start_at=NOW + timedelta(minutes=1), end_at=NOW + timedelta(days=1))
        assert multipliers.resolve(NOW, [past, future]) == 1

    def test_window_bounds_inclusive(self):
        starts_now = Event(2, start_at=NOW, end_at=NOW + timedelta(hours=1))
        ends_now = Event(3, start_at=NOW - timedelta(hours=1), end_at=NOW)
        assert multipliers.resolve(NOW, [starts_now]) == 2
        assert multipliers.resolve(NOW, [ends_now]) == 3

    def test_accepts_generator(self):
        assert multipliers.resolve(NOW, (Event(m) for m in (2, 4, 3))) == 4


class TestApply:
    def test_positive(self):
        assert multipliers.apply(1000, 2) == 2000

    def test_negative(self):
        assert multipliers.apply(-500, 3) == -1500
