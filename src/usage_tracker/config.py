"""Configuration models and helpers for the usage tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(slots=True)
class AggregatorSettings:
    """Tunables for turning the event log into usage totals.

    ``guard_buffer`` is how far before the window start events are read to
    find apps that were already in the foreground. A longer buffer finds
    longer pre-window sessions at the cost of reading more events.
    """

    guard_buffer: timedelta = timedelta(hours=1)
    noise_floor: timedelta = timedelta(seconds=1)

    @classmethod
    def from_minutes(
        cls, guard_minutes: float, noise_floor_seconds: float = 1.0
    ) -> "AggregatorSettings":
        return cls(
            guard_buffer=timedelta(minutes=guard_minutes),
            noise_floor=timedelta(seconds=noise_floor_seconds),
        )


@dataclass(slots=True)
class CollectorSettings:
    """Runtime configuration for the activity collector."""

    sample_interval: timedelta = timedelta(seconds=5)
    idle_threshold: timedelta = timedelta(minutes=5)
    flush_interval: timedelta = timedelta(seconds=30)
    launch_queue_size: int = 256

    @classmethod
    def from_intervals(
        cls,
        sample_seconds: float,
        idle_minutes: float,
        flush_seconds: float | None = None,
    ) -> "CollectorSettings":
        flush = flush_seconds if flush_seconds is not None else max(sample_seconds * 6, 30.0)
        return cls(
            sample_interval=timedelta(seconds=sample_seconds),
            idle_threshold=timedelta(minutes=idle_minutes),
            flush_interval=timedelta(seconds=flush),
        )


@dataclass(slots=True)
class StreakSettings:
    """When a day's usage is considered complete enough to evaluate."""

    cutoff_hour: int = 23

    def __post_init__(self) -> None:
        if not 0 <= self.cutoff_hour <= 23:
            raise ValueError("cutoff_hour must be between 0 and 23")
