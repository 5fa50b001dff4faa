"""Turn an ordered transition-event log into per-app foreground totals."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from .errors import MalformedEvent
from .models import AppUsageRecord, EventKind, TransitionEvent, UsageQuery
from .normalization import normalize_event

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)


def aggregate_usage(
    events: Iterable[TransitionEvent],
    query: UsageQuery,
    now: datetime,
) -> dict[str, AppUsageRecord]:
    """Compute window-clipped foreground time, launches and last use per app.

    ``events`` should cover ``[window_start - guard_buffer, window_end)`` so
    that apps already in the foreground at ``window_start`` are found. Such
    sessions are clipped to the window start and do not count as launches.
    Sessions still open after the last event are closed at
    ``min(now, window_end)``.

    The function keeps no state between calls; identical inputs always give
    identical output.
    """
    window_start = query.window_start
    query_end = query.query_end(now)

    usage: dict[str, AppUsageRecord] = {}
    active: dict[str, datetime] = {}
    pre_window_active: dict[str, datetime] = {}
    clipped = 0

    def record_for(app_id: str) -> AppUsageRecord:
        record = usage.get(app_id)
        if record is None:
            record = usage[app_id] = AppUsageRecord(app_id=app_id)
        return record

    for event in _well_formed(events):
        app_id, timestamp = event.app_id, event.timestamp
        if timestamp >= query.window_end:
            continue

        if event.kind is EventKind.RESUMED:
            if timestamp < window_start:
                pre_window_active[app_id] = timestamp
            elif app_id in active:
                # Repeated resume without a pause; the earliest start stands.
                logger.debug("Ignoring duplicate resume for %s at %s", app_id, timestamp)
            else:
                # A fresh launch supersedes any session carried over from
                # before the window, so it is never swept twice.
                pre_window_active.pop(app_id, None)
                active[app_id] = timestamp
                record = record_for(app_id)
                record.launch_count += 1
                record.touch(timestamp)
            continue

        resumed_at = active.pop(app_id, None)
        resumed_before_window = pre_window_active.pop(app_id, None)
        if timestamp < window_start:
            continue

        effective_start: Optional[datetime]
        if resumed_at is not None:
            effective_start = resumed_at
        elif resumed_before_window is not None:
            effective_start = window_start
            clipped += 1
        else:
            logger.debug("Orphan pause for %s at %s", app_id, timestamp)
            continue

        duration = timestamp - effective_start
        if duration > _ZERO:
            record_for(app_id).add_session(duration, timestamp)

    for app_id, resumed_at in active.items():
        duration = query_end - resumed_at
        if duration > _ZERO:
            record_for(app_id).add_session(duration, query_end)

    for app_id in pre_window_active:
        duration = query_end - window_start
        if duration > _ZERO:
            clipped += 1
            record_for(app_id).add_session(duration, query_end)

    logger.debug(
        "Aggregated %d apps for %s -> %s (%d clipped sessions)",
        len(usage),
        window_start,
        query_end,
        clipped,
    )
    return usage


def _well_formed(events: Iterable[TransitionEvent]) -> list[TransitionEvent]:
    """Normalize events, drop malformed ones and order by timestamp.

    The sort is stable so events sharing an instant keep their log order.
    """
    valid: list[TransitionEvent] = []
    for event in events:
        try:
            valid.append(normalize_event(event.app_id, event.kind, event.timestamp))
        except MalformedEvent as exc:
            logger.warning("Skipping malformed event: %s", exc)
    valid.sort(key=lambda item: item.timestamp)
    return valid
