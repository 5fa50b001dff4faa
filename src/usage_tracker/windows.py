"""Preset query windows."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from .models import UsageQuery


class UsageWindow(str, Enum):
    TODAY = "today"
    ROLLING_24H = "rolling24h"
    WEEK = "week"


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_window(mode: UsageWindow, now: datetime) -> UsageQuery:
    """Build the query window for a preset as of ``now``.

    ``today`` spans the whole calendar day; the aggregator stops counting at
    ``now`` so the result covers midnight to now.
    """
    if mode is UsageWindow.ROLLING_24H:
        return UsageQuery(
            window_start=now - timedelta(hours=24), window_end=now, calendar_day=False
        )
    if mode is UsageWindow.WEEK:
        return UsageQuery(
            window_start=now - timedelta(days=7), window_end=now, calendar_day=False
        )
    midnight = start_of_day(now)
    return UsageQuery(
        window_start=midnight, window_end=midnight + timedelta(days=1), calendar_day=True
    )


def day_window(day: datetime) -> UsageQuery:
    midnight = start_of_day(day)
    return UsageQuery(
        window_start=midnight, window_end=midnight + timedelta(days=1), calendar_day=True
    )
