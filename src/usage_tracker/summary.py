"""Mood and category summaries over presented usage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable

from .models import AppUsageInfo, Category, Mood

HAPPY_LIMIT_MINUTES = 30
NEUTRAL_LIMIT_MINUTES = 120


@dataclass(slots=True)
class UsageSummary:
    mood: Mood
    social_minutes: int
    total_minutes: int
    categories: dict[Category, timedelta] = field(default_factory=dict)


def social_time(entries: Iterable[AppUsageInfo]) -> timedelta:
    return sum(
        (
            entry.total_foreground
            for entry in entries
            if entry.category is Category.SOCIAL and not entry.is_system_app
        ),
        timedelta(0),
    )


def screen_time(entries: Iterable[AppUsageInfo]) -> timedelta:
    return sum(
        (entry.total_foreground for entry in entries if not entry.is_system_app),
        timedelta(0),
    )


def whole_minutes(duration: timedelta) -> int:
    return duration // timedelta(minutes=1)


def mood_for(social_minutes: int) -> Mood:
    if social_minutes < HAPPY_LIMIT_MINUTES:
        return Mood.HAPPY
    if social_minutes < NEUTRAL_LIMIT_MINUTES:
        return Mood.NEUTRAL
    return Mood.SAD


def category_breakdown(entries: Iterable[AppUsageInfo]) -> dict[Category, timedelta]:
    """Total non-system time per category, in fixed category order."""
    totals = {category: timedelta(0) for category in Category}
    for entry in entries:
        if entry.is_system_app:
            continue
        totals[entry.category] += entry.total_foreground
    return totals


def summarize(entries: Iterable[AppUsageInfo]) -> UsageSummary:
    items = list(entries)
    social_minutes = whole_minutes(social_time(items))
    return UsageSummary(
        mood=mood_for(social_minutes),
        social_minutes=social_minutes,
        total_minutes=whole_minutes(screen_time(items)),
        categories=category_breakdown(items),
    )
