"""SQLite database layer for transition events and usage bookkeeping."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from .models import AppMetadata, TransitionEvent


DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"
DATE_FMT = "%Y-%m-%d"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Group statements on an autocommit connection into one atomic write."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS transition_events (
            id INTEGER PRIMARY KEY,
            app_id TEXT NOT NULL,
            kind TEXT NOT NULL,
            timestamp TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_transition_events_timestamp
            ON transition_events(timestamp);

        CREATE TABLE IF NOT EXISTS app_metadata (
            app_id TEXT PRIMARY KEY,
            display_name TEXT NOT NULL,
            is_system INTEGER NOT NULL DEFAULT 0,
            launchable INTEGER NOT NULL DEFAULT 1
        );

        CREATE TABLE IF NOT EXISTS daily_usage (
            day TEXT NOT NULL,
            app_id TEXT NOT NULL,
            seconds REAL NOT NULL DEFAULT 0,
            PRIMARY KEY (day, app_id)
        );

        CREATE TABLE IF NOT EXISTS usage_access (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            granted INTEGER NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS evaluation_state (
            name TEXT PRIMARY KEY,
            payload TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS launch_counters (
            day TEXT NOT NULL,
            app_id TEXT NOT NULL,
            launches INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (day, app_id)
        );
        """
    )


def insert_events(conn: sqlite3.Connection, events: Iterable[TransitionEvent]) -> int:
    rows = [
        (event.app_id, event.kind.value, event.timestamp.strftime(DATETIME_FMT))
        for event in events
    ]
    conn.executemany(
        "INSERT INTO transition_events (app_id, kind, timestamp) VALUES (?, ?, ?)",
        rows,
    )
    return len(rows)


def fetch_events(
    conn: sqlite3.Connection, start: datetime, end: datetime
) -> list[sqlite3.Row]:
    """Fetch raw event rows in ``[start, end)`` ordered by time, then insertion."""
    return list(
        conn.execute(
            """
            SELECT id, app_id, kind, timestamp
            FROM transition_events
            WHERE timestamp >= ? AND timestamp < ?
            ORDER BY timestamp, id;
            """,
            (start.strftime(DATETIME_FMT), end.strftime(DATETIME_FMT)),
        )
    )


def upsert_app_metadata(conn: sqlite3.Connection, metadata: AppMetadata) -> None:
    conn.execute(
        """
        INSERT INTO app_metadata (app_id, display_name, is_system, launchable)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(app_id) DO UPDATE SET
            display_name = excluded.display_name,
            is_system = excluded.is_system,
            launchable = excluded.launchable
        """,
        (
            metadata.app_id,
            metadata.display_name,
            1 if metadata.is_system else 0,
            1 if metadata.launchable else 0,
        ),
    )


def fetch_app_metadata(conn: sqlite3.Connection, app_id: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT app_id, display_name, is_system, launchable FROM app_metadata WHERE app_id = ?",
        (app_id,),
    ).fetchone()


def add_daily_usage(
    conn: sqlite3.Connection, day: date, app_id: str, seconds: float
) -> None:
    conn.execute(
        """
        INSERT INTO daily_usage (day, app_id, seconds) VALUES (?, ?, ?)
        ON CONFLICT(day, app_id) DO UPDATE SET seconds = seconds + excluded.seconds
        """,
        (day.strftime(DATE_FMT), app_id, seconds),
    )


def fetch_daily_totals(
    conn: sqlite3.Connection, first_day: date, last_day: date
) -> list[sqlite3.Row]:
    """Sum bucket seconds per app for days in ``[first_day, last_day]``."""
    return list(
        conn.execute(
            """
            SELECT app_id, SUM(seconds) AS seconds
            FROM daily_usage
            WHERE day >= ? AND day <= ?
            GROUP BY app_id
            ORDER BY seconds DESC;
            """,
            (first_day.strftime(DATE_FMT), last_day.strftime(DATE_FMT)),
        )
    )


def set_usage_access(conn: sqlite3.Connection, granted: bool) -> None:
    conn.execute(
        """
        INSERT INTO usage_access (id, granted, updated_at) VALUES (1, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            granted = excluded.granted,
            updated_at = excluded.updated_at
        """,
        (1 if granted else 0, datetime.now().strftime(DATETIME_FMT)),
    )


def usage_access_granted(conn: sqlite3.Connection) -> bool:
    row = conn.execute("SELECT granted FROM usage_access WHERE id = 1").fetchone()
    return bool(row and row["granted"])


def save_state(conn: sqlite3.Connection, name: str, payload: dict[str, Any]) -> None:
    conn.execute(
        """
        INSERT INTO evaluation_state (name, payload) VALUES (?, ?)
        ON CONFLICT(name) DO UPDATE SET payload = excluded.payload
        """,
        (name, json.dumps(payload)),
    )


def load_state(conn: sqlite3.Connection, name: str) -> Optional[dict[str, Any]]:
    row = conn.execute(
        "SELECT payload FROM evaluation_state WHERE name = ?", (name,)
    ).fetchone()
    if row is None:
        return None
    return json.loads(row["payload"])


def increment_launch_count(conn: sqlite3.Connection, day: date, app_id: str) -> None:
    conn.execute(
        """
        INSERT INTO launch_counters (day, app_id, launches) VALUES (?, ?, 1)
        ON CONFLICT(day, app_id) DO UPDATE SET launches = launches + 1
        """,
        (day.strftime(DATE_FMT), app_id),
    )


def fetch_launch_counts(conn: sqlite3.Connection, day: date) -> list[sqlite3.Row]:
    return list(
        conn.execute(
            """
            SELECT app_id, launches
            FROM launch_counters
            WHERE day = ?
            ORDER BY launches DESC, app_id;
            """,
            (day.strftime(DATE_FMT),),
        )
    )
