"""Tests for the fallback merge layer."""
from __future__ import annotations

from datetime import datetime, timedelta

from conftest import MIDNIGHT, at
from usage_tracker.merge import merge_fallback, should_use_fallback
from usage_tracker.models import AppUsageRecord, UsageQuery
from usage_tracker.windows import UsageWindow, resolve_window


class TestMergeFallback:
    def test_event_value_wins(self):
        """Event-derived time is kept even when the fallback reports more."""
        events = {"E": AppUsageRecord("E", timedelta(minutes=5), at(minutes=5), 1)}
        merged = merge_fallback(events, {"E": timedelta(minutes=40)})
        assert merged["E"].total_foreground == timedelta(minutes=5)
        assert merged["E"].launch_count == 1

    def test_fallback_only_app_added(self):
        merged = merge_fallback({}, {"F": timedelta(minutes=12)})
        record = merged["F"]
        assert record.total_foreground == timedelta(minutes=12)
        assert record.launch_count == 0
        assert record.last_used_at is None

    def test_non_positive_fallback_ignored(self):
        merged = merge_fallback({}, {"F": timedelta(0)})
        assert merged == {}

    def test_missing_fallback(self):
        events = {"E": AppUsageRecord("E", timedelta(minutes=5))}
        assert merge_fallback(events, None) == events

    def test_does_not_mutate_input(self):
        events = {"E": AppUsageRecord("E", timedelta(minutes=5))}
        merge_fallback(events, {"F": timedelta(minutes=1)})
        assert list(events) == ["E"]


class TestShouldUseFallback:
    def test_calendar_day_skips_fallback(self):
        query = UsageQuery(MIDNIGHT, MIDNIGHT + timedelta(days=1))
        assert should_use_fallback(query) is False

    def test_midnight_to_now_skips_fallback(self):
        assert should_use_fallback(UsageQuery(MIDNIGHT, at(hours=14))) is False

    def test_rolling_window_uses_fallback(self):
        query = UsageQuery(datetime(2024, 3, 9, 14, 10), datetime(2024, 3, 10, 14, 10))
        assert should_use_fallback(query) is True

    def test_multi_day_window_uses_fallback(self):
        assert should_use_fallback(UsageQuery(MIDNIGHT, MIDNIGHT + timedelta(days=7))) is True

    def test_rolling_preset_at_midnight_uses_fallback(self):
        """A rolling window that happens to align with midnight is not a calendar day."""
        query = resolve_window(UsageWindow.ROLLING_24H, MIDNIGHT)
        assert query.window_start == MIDNIGHT - timedelta(days=1)
        assert should_use_fallback(query) is True

    def test_today_preset_skips_fallback(self):
        assert should_use_fallback(resolve_window(UsageWindow.TODAY, at(hours=9))) is False
