"""Tests for classification and presentation."""
from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from conftest import StaticResolver, at
from usage_tracker.classification import (
    classify,
    format_duration,
    present_usage,
    split_duration,
)
from usage_tracker.models import AppMetadata, AppUsageRecord, Category


def record(app_id: str, duration: timedelta, launches: int = 0) -> AppUsageRecord:
    return AppUsageRecord(app_id, duration, at(minutes=1), launches)


class TestClassify:
    def test_social_has_priority_over_game(self):
        assert classify("game-chat") is Category.SOCIAL

    @pytest.mark.parametrize(
        "app_id, name, expected",
        [
            ("com.instagram.android", "Instagram", Category.SOCIAL),
            ("OUTLOOK.EXE", "Outlook Mail", Category.PRODUCTIVITY),
            ("com.supercell.clashofclans", "Clash of Clans", Category.GAME),
            ("calc.exe", "Calculator", Category.OTHER),
        ],
    )
    def test_categories(self, app_id: str, name: str, expected: Category):
        assert classify(app_id, name) is expected

    def test_display_name_is_considered(self):
        assert classify("com.example.x", "Slack") is Category.PRODUCTIVITY


class TestFormatting:
    def test_hours_and_minutes(self):
        assert format_duration(timedelta(hours=1, minutes=30, seconds=59)) == "1h 30m"

    def test_minutes_and_seconds(self):
        assert format_duration(timedelta(minutes=45, seconds=10, milliseconds=999)) == "45m 10s"

    def test_seconds_only(self):
        assert format_duration(timedelta(seconds=12, milliseconds=700)) == "12s"

    def test_split_truncates(self):
        assert split_duration(timedelta(hours=2, minutes=59, seconds=59, milliseconds=999)) == (2, 59, 59)


class TestPresentUsage:
    def test_noise_floor(self, resolver: StaticResolver):
        usage = {
            "tiny": record("tiny", timedelta(milliseconds=999)),
            "ok": record("ok", timedelta(seconds=1)),
        }
        entries = present_usage(usage, resolver)
        assert [entry.app_id for entry in entries] == ["ok"]

    def test_sorted_descending_and_stable(self, resolver: StaticResolver):
        usage = {
            "a": record("a", timedelta(minutes=5)),
            "b": record("b", timedelta(minutes=20)),
            "c": record("c", timedelta(minutes=5)),
        }
        entries = present_usage(usage, resolver)
        assert [entry.app_id for entry in entries] == ["b", "a", "c"]

    def test_lookup_miss_dropped(self):
        resolver = StaticResolver(
            {"kept": AppMetadata("kept", "Kept")}, default=False
        )
        usage = {
            "gone": record("gone", timedelta(minutes=9)),
            "kept": record("kept", timedelta(minutes=3)),
        }
        entries = present_usage(usage, resolver)
        assert [entry.app_id for entry in entries] == ["kept"]

    def test_lookup_miss_is_logged_at_info(self, caplog: pytest.LogCaptureFixture):
        resolver = StaticResolver({}, default=False)
        with caplog.at_level(logging.INFO, logger="usage_tracker.classification"):
            present_usage({"gone": record("gone", timedelta(minutes=9))}, resolver)
        assert any(
            rec.levelno == logging.INFO and "gone" in rec.getMessage() for rec in caplog.records
        )

    def test_true_system_requires_no_launcher(self):
        resolver = StaticResolver(
            {
                "browser": AppMetadata("browser", "Browser", is_system=True, launchable=True),
                "daemon": AppMetadata("daemon", "Daemon", is_system=True, launchable=False),
            }
        )
        usage = {
            "browser": record("browser", timedelta(minutes=2)),
            "daemon": record("daemon", timedelta(minutes=1)),
        }
        entries = {entry.app_id: entry for entry in present_usage(usage, resolver)}
        assert entries["browser"].is_system_app is False
        assert entries["daemon"].is_system_app is True

    def test_entry_fields(self, resolver: StaticResolver):
        usage = {"youtube": record("youtube", timedelta(hours=1, minutes=2, seconds=3), 4)}
        (entry,) = present_usage(usage, resolver)
        assert (entry.hours, entry.minutes, entry.seconds) == (1, 2, 3)
        assert entry.formatted_time == "1h 2m"
        assert entry.launch_count == 4
        assert entry.category is Category.SOCIAL
        assert entry.total_milliseconds == 3_723_000
        assert entry.usage_percentage(timedelta(hours=2, minutes=4, seconds=6)) == pytest.approx(50.0)
        assert entry.usage_percentage(timedelta(0)) == 0.0
