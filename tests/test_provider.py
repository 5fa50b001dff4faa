"""Tests for the SQLite-backed event-log provider."""
from __future__ import annotations

import io
import json
from datetime import date, timedelta
from pathlib import Path

import pytest

from conftest import at, paused, resumed
from usage_tracker.db import add_daily_usage, database_connection
from usage_tracker.errors import AuthorizationDenied, LookupMiss
from usage_tracker.models import AppMetadata, EventKind
from usage_tracker.provider import UsageProvider


class TestAuthorization:
    def test_events_require_access(self, db_path: Path):
        provider = UsageProvider(db_path)
        assert provider.has_access() is False
        with pytest.raises(AuthorizationDenied):
            provider.query_events(at(), at(hours=1))

    def test_aggregated_requires_access(self, db_path: Path):
        with pytest.raises(AuthorizationDenied):
            UsageProvider(db_path).query_aggregated(at(), at(hours=1))

    def test_revoke(self, provider: UsageProvider):
        provider.revoke_access()
        with pytest.raises(AuthorizationDenied):
            provider.query_events(at(), at(hours=1))


class TestQueries:
    def test_query_events_half_open_and_ordered(self, provider: UsageProvider):
        provider.record_events(
            [
                resumed("A", at(minutes=5)),
                paused("A", at(minutes=10)),
                resumed("B", at(minutes=1)),
                resumed("C", at(hours=1)),
            ]
        )
        events = provider.query_events(at(), at(hours=1))
        assert [(e.app_id, e.timestamp) for e in events] == [
            ("B", at(minutes=1)),
            ("A", at(minutes=5)),
            ("A", at(minutes=10)),
        ]
        assert events[-1].kind is EventKind.PAUSED

    def test_stored_legacy_and_bad_kinds(self, provider: UsageProvider, db_path: Path):
        with database_connection(db_path) as conn:
            conn.executemany(
                "INSERT INTO transition_events (app_id, kind, timestamp) VALUES (?, ?, ?)",
                [
                    ("A", "move_to_foreground", "2024-03-10 00:01:00.000000"),
                    ("A", "bogus", "2024-03-10 00:02:00.000000"),
                ],
            )
        events = provider.query_events(at(), at(hours=1))
        assert len(events) == 1
        assert events[0].kind is EventKind.RESUMED

    def test_aggregated_buckets_bleed_outside_range(self, provider: UsageProvider, db_path: Path):
        with database_connection(db_path) as conn:
            add_daily_usage(conn, date(2024, 3, 9), "A", 600)
            add_daily_usage(conn, date(2024, 3, 10), "A", 300)
            add_daily_usage(conn, date(2024, 3, 10), "B", 60)
            add_daily_usage(conn, date(2024, 3, 11), "A", 999)
        totals = provider.query_aggregated(at(hours=-2), at(hours=12))
        assert totals == {"A": timedelta(seconds=900), "B": timedelta(seconds=60)}

    def test_lookup(self, provider: UsageProvider):
        provider.record_metadata(AppMetadata("A", "App A", is_system=True, launchable=False))
        metadata = provider.lookup_app("A")
        assert metadata.display_name == "App A"
        assert metadata.is_true_system is True
        with pytest.raises(LookupMiss):
            provider.lookup_app("missing")


class TestImport:
    def test_import_events(self, provider: UsageProvider):
        lines = [
            json.dumps({"app_id": "com.whatsapp", "kind": "ACTIVITY_RESUMED", "timestamp": "2024-03-10T00:05:00", "display_name": "WhatsApp"}),
            json.dumps({"app_id": "com.whatsapp", "kind": 2, "timestamp": "2024-03-10T00:20:00"}),
            json.dumps({"kind": "resumed", "timestamp": "2024-03-10T00:21:00"}),
            "not json",
            "",
        ]
        imported, skipped = provider.import_events(io.StringIO("\n".join(lines)))
        assert (imported, skipped) == (2, 2)
        assert provider.lookup_app("com.whatsapp").display_name == "WhatsApp"
        kinds = [event.kind for event in provider.query_events(at(), at(hours=1))]
        assert kinds == [EventKind.RESUMED, EventKind.PAUSED]
