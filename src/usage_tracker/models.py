"""Domain models for transition events and per-app usage."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class EventKind(str, Enum):
    """Lifecycle transitions reported by the event log."""

    RESUMED = "resumed"
    PAUSED = "paused"


class Category(str, Enum):
    SOCIAL = "social"
    PRODUCTIVITY = "productivity"
    GAME = "game"
    OTHER = "other"


class Mood(str, Enum):
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SAD = "sad"


@dataclass(frozen=True, slots=True)
class TransitionEvent:
    """A single foreground/background transition for one app."""

    app_id: str
    kind: EventKind
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class UsageQuery:
    """A half-open query window ``[window_start, window_end)``.

    ``calendar_day`` is set by preset windows that know their own kind;
    custom ranges leave it unset and are judged by their bounds.
    """

    window_start: datetime
    window_end: datetime
    calendar_day: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.window_start >= self.window_end:
            raise ValueError("window_start must be before window_end")

    def query_end(self, now: datetime) -> datetime:
        return min(now, self.window_end)

    @property
    def is_calendar_day(self) -> bool:
        """True for a window starting at local midnight and spanning at most one day."""
        if self.calendar_day is not None:
            return self.calendar_day
        start = self.window_start
        midnight = start.replace(hour=0, minute=0, second=0, microsecond=0)
        return start == midnight and self.window_end <= midnight + timedelta(days=1)


@dataclass(slots=True)
class AppUsageRecord:
    """Foreground time accumulated for one app inside a query window."""

    app_id: str
    total_foreground: timedelta = timedelta(0)
    last_used_at: Optional[datetime] = None
    launch_count: int = 0

    def add_session(self, duration: timedelta, ended_at: datetime) -> None:
        self.total_foreground += duration
        self.touch(ended_at)

    def touch(self, at: datetime) -> None:
        if self.last_used_at is None or at > self.last_used_at:
            self.last_used_at = at


@dataclass(frozen=True, slots=True)
class AppMetadata:
    """Display information resolved for an app identifier."""

    app_id: str
    display_name: str
    is_system: bool = False
    launchable: bool = True

    @property
    def is_true_system(self) -> bool:
        return self.is_system and not self.launchable


@dataclass(frozen=True, slots=True)
class AppUsageInfo:
    """A usage record decorated for presentation."""

    app_id: str
    display_name: str
    total_foreground: timedelta
    last_used_at: Optional[datetime]
    launch_count: int
    hours: int
    minutes: int
    seconds: int
    formatted_time: str
    is_system_app: bool
    category: Category

    @property
    def total_milliseconds(self) -> int:
        return self.total_foreground // timedelta(milliseconds=1)

    def usage_percentage(self, total: timedelta) -> float:
        """Share of ``total`` taken by this app, clamped to 0-100."""
        if total <= timedelta(0):
            return 0.0
        share = self.total_foreground / total * 100
        return max(0.0, min(100.0, share))
