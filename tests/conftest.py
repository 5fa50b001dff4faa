"""Shared pytest fixtures."""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from usage_tracker.errors import LookupMiss
from usage_tracker.models import AppMetadata, EventKind, TransitionEvent
from usage_tracker.provider import UsageProvider

MIDNIGHT = datetime(2024, 3, 10)


def at(hours: int = 0, minutes: int = 0, seconds: int = 0) -> datetime:
    """Offset from the fixture day's midnight (negative values reach the day before)."""
    return MIDNIGHT + timedelta(hours=hours, minutes=minutes, seconds=seconds)


def resumed(app_id: str, when: datetime) -> TransitionEvent:
    return TransitionEvent(app_id, EventKind.RESUMED, when)


def paused(app_id: str, when: datetime) -> TransitionEvent:
    return TransitionEvent(app_id, EventKind.PAUSED, when)


class StaticResolver:
    """Metadata resolver backed by a dict; unknown apps raise LookupMiss."""

    def __init__(self, known: dict[str, AppMetadata] | None = None, default: bool = True) -> None:
        self.known = known or {}
        self.default = default

    def __call__(self, app_id: str) -> AppMetadata:
        if app_id in self.known:
            return self.known[app_id]
        if self.default:
            return AppMetadata(app_id=app_id, display_name=app_id)
        raise LookupMiss(app_id)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "usage.sqlite3"


@pytest.fixture
def provider(db_path: Path) -> UsageProvider:
    """A provider with usage access already granted."""
    usage_provider = UsageProvider(db_path)
    usage_provider.grant_access()
    return usage_provider


@pytest.fixture
def resolver() -> StaticResolver:
    return StaticResolver()
