"""Combine event-derived usage with the coarse aggregated source."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Mapping, Optional

from .models import AppUsageRecord, UsageQuery

logger = logging.getLogger(__name__)


def should_use_fallback(query: UsageQuery) -> bool:
    """Aggregated buckets are too coarse for midnight-anchored day queries."""
    return not query.is_calendar_day


def merge_fallback(
    event_usage: Mapping[str, AppUsageRecord],
    fallback: Optional[Mapping[str, timedelta]],
) -> dict[str, AppUsageRecord]:
    """Add fallback-only apps to the event-derived usage.

    Apps present in ``event_usage`` keep their event-derived totals even
    when the fallback reports more time; the two sources are never blended.
    """
    merged = dict(event_usage)
    if not fallback:
        return merged

    added = 0
    for app_id, duration in fallback.items():
        if app_id in merged or duration <= timedelta(0):
            continue
        merged[app_id] = AppUsageRecord(
            app_id=app_id,
            total_foreground=duration,
            last_used_at=None,
            launch_count=0,
        )
        added += 1
    logger.debug("Fallback source added %d apps without event data", added)
    return merged
