"""Launch notifications from the collector to interested consumers."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from .db import database_connection, fetch_launch_counts

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LaunchNotice:
    app_id: str
    at: datetime


class LaunchChannel:
    """Bounded queue of launch notices; the oldest notice gives way when full."""

    def __init__(self, maxsize: int = 256) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._queue: queue.Queue[LaunchNotice] = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self.dropped = 0

    def publish(self, notice: LaunchNotice) -> None:
        with self._lock:
            while True:
                try:
                    self._queue.put_nowait(notice)
                    return
                except queue.Full:
                    try:
                        stale = self._queue.get_nowait()
                    except queue.Empty:
                        continue
                    self.dropped += 1
                    logger.debug("Launch channel full; dropped notice for %s", stale.app_id)

    def get(self, timeout: Optional[float] = None) -> Optional[LaunchNotice]:
        """Wait up to ``timeout`` seconds for the next notice."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[LaunchNotice]:
        notices: list[LaunchNotice] = []
        while True:
            try:
                notices.append(self._queue.get_nowait())
            except queue.Empty:
                return notices


class LaunchCounterStore:
    """Per-day launch counters; the polling side of launch detection."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def counts_for(self, day: date) -> dict[str, int]:
        with database_connection(self.db_path) as conn:
            rows = fetch_launch_counts(conn, day)
        return {row["app_id"]: int(row["launches"]) for row in rows}
