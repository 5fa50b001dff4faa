"""Categorize usage records and shape them for presentation."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Iterable, Mapping

from .errors import LookupMiss
from .models import AppMetadata, AppUsageInfo, AppUsageRecord, Category

logger = logging.getLogger(__name__)

NOISE_FLOOR = timedelta(seconds=1)

SOCIAL_KEYWORDS: tuple[str, ...] = (
    "facebook",
    "instagram",
    "whatsapp",
    "telegram",
    "snapchat",
    "tiktok",
    "twitter",
    "linkedin",
    "messenger",
    "reddit",
    "discord",
    "pinterest",
    "youtube",
    "chat",
)

PRODUCTIVITY_KEYWORDS: tuple[str, ...] = (
    "calendar",
    "mail",
    "email",
    "office",
    "docs",
    "sheets",
    "drive",
    "notes",
    "notion",
    "slack",
    "teams",
    "zoom",
    "meet",
)

GAME_KEYWORDS: tuple[str, ...] = (
    "game",
    "games",
    "play",
    "candy",
    "clash",
    "pubg",
    "minecraft",
    "roblox",
    "fortnite",
)

# Checked in order; the first matching category wins.
_CATEGORY_RULES: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.SOCIAL, SOCIAL_KEYWORDS),
    (Category.PRODUCTIVITY, PRODUCTIVITY_KEYWORDS),
    (Category.GAME, GAME_KEYWORDS),
)

MetadataResolver = Callable[[str], AppMetadata]


def classify(app_id: str, display_name: str = "") -> Category:
    """Return the first category whose keywords appear in the id or name."""
    haystacks = (app_id.lower(), display_name.lower())
    for category, keywords in _CATEGORY_RULES:
        if any(keyword in text for keyword in keywords for text in haystacks):
            return category
    return Category.OTHER


def split_duration(duration: timedelta) -> tuple[int, int, int]:
    """Break a duration into whole hours, minutes and seconds (truncating)."""
    total_ms = max(duration // timedelta(milliseconds=1), 0)
    hours = total_ms // 3_600_000
    minutes = (total_ms % 3_600_000) // 60_000
    seconds = (total_ms % 60_000) // 1000
    return hours, minutes, seconds


def format_duration(duration: timedelta) -> str:
    """Short form such as ``1h 30m``, ``45m 10s`` or ``12s``."""
    hours, minutes, seconds = split_duration(duration)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def present_usage(
    usage: Mapping[str, AppUsageRecord],
    resolve: MetadataResolver,
    *,
    noise_floor: timedelta = NOISE_FLOOR,
) -> list[AppUsageInfo]:
    """Filter, decorate and sort usage records, longest first."""
    entries: list[AppUsageInfo] = []
    for record in usage.values():
        if record.total_foreground < noise_floor:
            continue
        try:
            metadata = resolve(record.app_id)
        except LookupMiss:
            logger.info("Dropping %s: no metadata (uninstalled?)", record.app_id)
            continue
        entries.append(_decorate(record, metadata))

    entries.sort(key=lambda entry: entry.total_foreground, reverse=True)
    return entries


def _decorate(record: AppUsageRecord, metadata: AppMetadata) -> AppUsageInfo:
    hours, minutes, seconds = split_duration(record.total_foreground)
    return AppUsageInfo(
        app_id=record.app_id,
        display_name=metadata.display_name,
        total_foreground=record.total_foreground,
        last_used_at=record.last_used_at,
        launch_count=record.launch_count,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        formatted_time=format_duration(record.total_foreground),
        is_system_app=metadata.is_true_system,
        category=classify(record.app_id, metadata.display_name),
    )


def total_duration(entries: Iterable[AppUsageInfo]) -> timedelta:
    return sum((entry.total_foreground for entry in entries), timedelta(0))
