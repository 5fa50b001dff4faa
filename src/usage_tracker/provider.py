"""SQLite-backed event-log provider."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, TextIO

from .db import (
    DATETIME_FMT,
    database_connection,
    fetch_app_metadata,
    fetch_daily_totals,
    fetch_events,
    insert_events,
    set_usage_access,
    usage_access_granted,
    upsert_app_metadata,
)
from .errors import AuthorizationDenied, LookupMiss, MalformedEvent
from .models import AppMetadata, TransitionEvent
from .normalization import display_name_from_process, event_from_mapping, normalize_event

logger = logging.getLogger(__name__)


class UsageProvider:
    """Read and write access to the recorded transition-event log.

    Reads require a recorded usage-access grant and raise
    ``AuthorizationDenied`` otherwise.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def has_access(self) -> bool:
        with database_connection(self.db_path) as conn:
            return usage_access_granted(conn)

    def grant_access(self) -> None:
        with database_connection(self.db_path) as conn:
            set_usage_access(conn, True)
        logger.info("Usage access granted for %s", self.db_path)

    def revoke_access(self) -> None:
        with database_connection(self.db_path) as conn:
            set_usage_access(conn, False)
        logger.info("Usage access revoked for %s", self.db_path)

    def query_events(self, start: datetime, end: datetime) -> list[TransitionEvent]:
        """Return the ordered events recorded in ``[start, end)``."""
        with database_connection(self.db_path) as conn:
            self._require_access(conn)
            rows = fetch_events(conn, start, end)

        events: list[TransitionEvent] = []
        for row in rows:
            try:
                timestamp = datetime.strptime(row["timestamp"], DATETIME_FMT)
                events.append(normalize_event(row["app_id"], row["kind"], timestamp))
            except (ValueError, MalformedEvent) as exc:
                logger.warning("Skipping stored event id=%s: %s", row["id"], exc)
        return events

    def query_aggregated(self, start: datetime, end: datetime) -> dict[str, timedelta]:
        """Per-app totals of every daily bucket touching ``[start, end)``.

        Buckets cover whole days, so the totals can include time outside the
        requested range.
        """
        last_instant = end - timedelta(microseconds=1)
        with database_connection(self.db_path) as conn:
            self._require_access(conn)
            rows = fetch_daily_totals(conn, start.date(), last_instant.date())
        return {
            row["app_id"]: timedelta(seconds=row["seconds"])
            for row in rows
            if row["seconds"] and row["seconds"] > 0
        }

    def lookup_app(self, app_id: str) -> AppMetadata:
        with database_connection(self.db_path) as conn:
            row = fetch_app_metadata(conn, app_id)
        if row is None:
            raise LookupMiss(app_id)
        return AppMetadata(
            app_id=row["app_id"],
            display_name=row["display_name"],
            is_system=bool(row["is_system"]),
            launchable=bool(row["launchable"]),
        )

    def record_events(self, events: Iterable[TransitionEvent]) -> int:
        with database_connection(self.db_path) as conn:
            return insert_events(conn, events)

    def record_metadata(self, metadata: AppMetadata) -> None:
        with database_connection(self.db_path) as conn:
            upsert_app_metadata(conn, metadata)

    def import_events(self, stream: TextIO) -> tuple[int, int]:
        """Load a JSON-lines export of events.

        Each line holds ``app_id``, ``kind``, ``timestamp`` and optionally
        ``display_name``, ``is_system`` and ``launchable``. Returns the number
        of imported and skipped lines.
        """
        events: list[TransitionEvent] = []
        metadata: dict[str, AppMetadata] = {}
        skipped = 0
        for line_no, line in enumerate(stream, start=1):
            if not line.strip():
                continue
            try:
                row = json.loads(line)
                if not isinstance(row, dict):
                    raise MalformedEvent("Event line is not an object", line)
                event = event_from_mapping(row)
            except (json.JSONDecodeError, MalformedEvent) as exc:
                skipped += 1
                logger.warning("Skipping line %d: %s", line_no, exc)
                continue
            events.append(event)
            if event.app_id not in metadata:
                metadata[event.app_id] = AppMetadata(
                    app_id=event.app_id,
                    display_name=row.get("display_name")
                    or display_name_from_process(event.app_id),
                    is_system=bool(row.get("is_system", False)),
                    launchable=bool(row.get("launchable", True)),
                )

        with database_connection(self.db_path) as conn:
            insert_events(conn, events)
            for item in metadata.values():
                upsert_app_metadata(conn, item)
        logger.info("Imported %d events (%d skipped)", len(events), skipped)
        return len(events), skipped

    @staticmethod
    def _require_access(conn) -> None:
        if not usage_access_granted(conn):
            raise AuthorizationDenied(
                "Usage access has not been granted; run `usage-tracker grant-access`."
            )
