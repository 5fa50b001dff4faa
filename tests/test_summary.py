"""Tests for mood and category summaries."""
from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import StaticResolver, at
from usage_tracker.classification import present_usage
from usage_tracker.models import AppMetadata, AppUsageRecord, Category, Mood
from usage_tracker.summary import category_breakdown, mood_for, summarize


@pytest.mark.parametrize(
    "minutes, mood",
    [(0, Mood.HAPPY), (29, Mood.HAPPY), (30, Mood.NEUTRAL), (119, Mood.NEUTRAL), (120, Mood.SAD)],
)
def test_mood_thresholds(minutes: int, mood: Mood):
    assert mood_for(minutes) is mood


def _entries(usage: dict[str, timedelta], resolver=None):
    records = {app: AppUsageRecord(app, duration, at(minutes=1), 1) for app, duration in usage.items()}
    return present_usage(records, resolver or StaticResolver())


def test_summary_uses_whole_social_minutes():
    entries = _entries(
        {
            "instagram": timedelta(minutes=20, seconds=59),
            "whatsapp": timedelta(minutes=9, seconds=30),
            "notion": timedelta(hours=2),
        }
    )
    summary = summarize(entries)
    assert summary.social_minutes == 30
    assert summary.mood is Mood.NEUTRAL
    assert summary.total_minutes == 150


def test_system_apps_excluded():
    resolver = StaticResolver(
        {"chat-daemon": AppMetadata("chat-daemon", "Chat Daemon", is_system=True, launchable=False)}
    )
    entries = _entries({"chat-daemon": timedelta(hours=3)}, resolver)
    summary = summarize(entries)
    assert summary.social_minutes == 0
    assert summary.mood is Mood.HAPPY
    assert summary.categories[Category.SOCIAL] == timedelta(0)


def test_breakdown_has_every_category_in_order():
    entries = _entries({"minecraft": timedelta(minutes=10), "calc": timedelta(minutes=5)})
    breakdown = category_breakdown(entries)
    assert list(breakdown) == [Category.SOCIAL, Category.PRODUCTIVITY, Category.GAME, Category.OTHER]
    assert breakdown[Category.GAME] == timedelta(minutes=10)
    assert breakdown[Category.OTHER] == timedelta(minutes=5)
