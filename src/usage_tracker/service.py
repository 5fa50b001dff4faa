"""Usage statistics pipeline: event log to ordered, classified results."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from .aggregator import aggregate_usage
from .classification import present_usage, total_duration
from .config import AggregatorSettings
from .merge import merge_fallback, should_use_fallback
from .models import AppUsageInfo, UsageQuery
from .provider import UsageProvider
from .windows import UsageWindow, resolve_window

logger = logging.getLogger(__name__)


class UsageStatsService:
    """Query the provider and run aggregation, fallback merge and presentation.

    Provider errors such as ``AuthorizationDenied`` propagate before any
    aggregation happens.
    """

    def __init__(
        self, provider: UsageProvider, settings: Optional[AggregatorSettings] = None
    ) -> None:
        self.provider = provider
        self.settings = settings or AggregatorSettings()

    def get_usage_stats(
        self, mode: UsageWindow = UsageWindow.TODAY, now: Optional[datetime] = None
    ) -> list[AppUsageInfo]:
        now = now or datetime.now()
        return self.run_query(resolve_window(mode, now), now)

    def get_usage_stats_for_range(
        self, start: datetime, end: datetime, now: Optional[datetime] = None
    ) -> list[AppUsageInfo]:
        return self.run_query(UsageQuery(window_start=start, window_end=end), now or datetime.now())

    def get_total_screen_time(
        self, mode: UsageWindow = UsageWindow.TODAY, now: Optional[datetime] = None
    ) -> timedelta:
        return total_duration(self.get_usage_stats(mode, now))

    def get_total_screen_time_for_range(
        self, start: datetime, end: datetime, now: Optional[datetime] = None
    ) -> timedelta:
        return total_duration(self.get_usage_stats_for_range(start, end, now))

    def run_query(self, query: UsageQuery, now: datetime) -> list[AppUsageInfo]:
        started = time.perf_counter()
        events = self.provider.query_events(
            query.window_start - self.settings.guard_buffer, query.window_end
        )
        usage = aggregate_usage(events, query, now)

        if should_use_fallback(query):
            fallback = self.provider.query_aggregated(query.window_start, query.window_end)
            usage = merge_fallback(usage, fallback)
        else:
            logger.debug("Calendar-day window; skipping aggregated fallback")

        entries = present_usage(
            usage, self.provider.lookup_app, noise_floor=self.settings.noise_floor
        )
        logger.info(
            "Usage for %s -> %s: %d apps from %d events in %.1f ms",
            query.window_start,
            query.query_end(now),
            len(entries),
            len(events),
            (time.perf_counter() - started) * 1000,
        )
        return entries
