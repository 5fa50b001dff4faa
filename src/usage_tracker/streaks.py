"""Daily streak and achievement evaluation.

Everything here is a pure function of the previous ``DailyEvaluationState``
and one day's usage summary. The caller is responsible for persisting the
returned state between days.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Optional

from .config import StreakSettings
from .summary import HAPPY_LIMIT_MINUTES, NEUTRAL_LIMIT_MINUTES, UsageSummary

WEEK_LENGTH = 7
MINIMALIST_LIMIT_MINUTES = 15
FOCUS_LIMIT_MINUTES = 60

STREAK_THRESHOLDS: dict[str, tuple[str, int]] = {
    "consistency_champion": ("happy_streak", 3),
    "week_warrior": ("happy_streak", 7),
    "month_master": ("happy_streak", 30),
    "perfect_week": ("zero_streak", 7),
    "social_sabbatical": ("sabbatical_streak", 14),
    "balance_achiever": ("neutral_streak", 5),
    "first_step": ("total_happy_days", 1),
    "half_hour_hero": ("total_happy_days", 10),
    "century_club": ("total_happy_days", 100),
}


@dataclass(frozen=True, slots=True)
class DailyEvaluationState:
    last_evaluated: Optional[date] = None
    happy_streak: int = 0
    zero_streak: int = 0
    sabbatical_streak: int = 0
    neutral_streak: int = 0
    total_happy_days: int = 0
    recent_social_minutes: tuple[int, ...] = ()
    unlocked: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict:
        return {
            "last_evaluated": self.last_evaluated.isoformat() if self.last_evaluated else None,
            "happy_streak": self.happy_streak,
            "zero_streak": self.zero_streak,
            "sabbatical_streak": self.sabbatical_streak,
            "neutral_streak": self.neutral_streak,
            "total_happy_days": self.total_happy_days,
            "recent_social_minutes": list(self.recent_social_minutes),
            "unlocked": sorted(self.unlocked),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailyEvaluationState":
        last = data.get("last_evaluated")
        return cls(
            last_evaluated=date.fromisoformat(last) if last else None,
            happy_streak=int(data.get("happy_streak", 0)),
            zero_streak=int(data.get("zero_streak", 0)),
            sabbatical_streak=int(data.get("sabbatical_streak", 0)),
            neutral_streak=int(data.get("neutral_streak", 0)),
            total_happy_days=int(data.get("total_happy_days", 0)),
            recent_social_minutes=tuple(int(m) for m in data.get("recent_social_minutes", ())),
            unlocked=frozenset(data.get("unlocked", ())),
        )


@dataclass(frozen=True, slots=True)
class DailyEvaluation:
    state: DailyEvaluationState
    evaluated: bool
    newly_unlocked: tuple[str, ...] = ()


def is_day_complete(day: date, evaluated_at: datetime, cutoff_hour: int) -> bool:
    today = evaluated_at.date()
    if day < today:
        return True
    return day == today and evaluated_at.hour >= cutoff_hour


def evaluate_day(
    state: DailyEvaluationState,
    day: date,
    summary: UsageSummary,
    evaluated_at: datetime,
    settings: Optional[StreakSettings] = None,
) -> DailyEvaluation:
    """Fold one day's usage into the streak counters.

    A day is evaluated at most once, and only after the cutoff hour (or on a
    later date) so that the usage totals are final.
    """
    settings = settings or StreakSettings()
    if state.last_evaluated is not None and day <= state.last_evaluated:
        return DailyEvaluation(state=state, evaluated=False)
    if not is_day_complete(day, evaluated_at, settings.cutoff_hour):
        return DailyEvaluation(state=state, evaluated=False)

    social = summary.social_minutes
    happy = social < HAPPY_LIMIT_MINUTES
    zero = social == 0
    neutral = HAPPY_LIMIT_MINUTES <= social < NEUTRAL_LIMIT_MINUTES
    consecutive = state.last_evaluated is None or state.last_evaluated == day - timedelta(days=1)

    def advance(current: int, qualifies: bool) -> int:
        if not qualifies:
            return 0
        return current + 1 if consecutive else 1

    recent = (state.recent_social_minutes + (social,))[-WEEK_LENGTH:]
    updated = replace(
        state,
        last_evaluated=day,
        happy_streak=advance(state.happy_streak, happy),
        zero_streak=advance(state.zero_streak, zero),
        sabbatical_streak=advance(state.sabbatical_streak, happy),
        neutral_streak=advance(state.neutral_streak, neutral),
        total_happy_days=state.total_happy_days + (1 if happy else 0),
        recent_social_minutes=recent,
    )

    earned = set()
    if zero:
        earned.add("zero_hero")
    if happy:
        earned.add("happy_hour")
    if summary.total_minutes < FOCUS_LIMIT_MINUTES:
        earned.add("focus_master")
    if len(recent) == WEEK_LENGTH and all(m < MINIMALIST_LIMIT_MINUTES for m in recent):
        earned.add("social_minimalist")
    for achievement, (counter, threshold) in STREAK_THRESHOLDS.items():
        if getattr(updated, counter) >= threshold:
            earned.add(achievement)

    newly_unlocked = tuple(sorted(earned - state.unlocked))
    if newly_unlocked:
        updated = replace(updated, unlocked=state.unlocked | frozenset(newly_unlocked))
    return DailyEvaluation(state=updated, evaluated=True, newly_unlocked=newly_unlocked)
