"""Foreground-app collector for Windows that records transition events."""

from __future__ import annotations

import ctypes
import logging
import os
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional, Protocol

import psutil

from .config import CollectorSettings
from .db import (
    add_daily_usage,
    increment_launch_count,
    insert_events,
    open_database,
    transaction,
    upsert_app_metadata,
)
from .launches import LaunchChannel, LaunchNotice
from .models import AppMetadata, EventKind, TransitionEvent
from .normalization import display_name_from_process, normalize_app_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ForegroundApp:
    process_name: str
    exe_path: Optional[str] = None
    window_title: Optional[str] = None


class ForegroundProbe(Protocol):
    def get_foreground_app(self) -> Optional[ForegroundApp]: ...


class IdleDetector(Protocol):
    def is_idle(self, threshold_ms: int) -> bool: ...


class WindowsIdleDetector:
    """Detects idle state using Win32 APIs."""

    class LASTINPUTINFO(ctypes.Structure):
        _fields_ = [("cbSize", ctypes.c_uint), ("dwTime", ctypes.c_ulong)]

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        self._kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]

    def milliseconds_since_input(self) -> int:
        last_input = self.LASTINPUTINFO()
        last_input.cbSize = ctypes.sizeof(last_input)
        if not self._user32.GetLastInputInfo(ctypes.byref(last_input)):
            raise ctypes.WinError()
        return int(self._kernel32.GetTickCount64() - last_input.dwTime)

    def is_idle(self, threshold_ms: int) -> bool:
        try:
            return self.milliseconds_since_input() >= threshold_ms
        except OSError:  # pragma: no cover - Win32 failure path
            logger.exception("Failed to query idle state; assuming not idle.")
            return False


class WindowsForegroundProbe:
    """Resolves the process that owns the foreground window."""

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def get_foreground_app(self) -> Optional[ForegroundApp]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None

        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)
        window_title = buffer.value.strip() or None

        pid = ctypes.c_ulong()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        if not pid.value:
            return None
        try:
            process = psutil.Process(pid.value)
            return ForegroundApp(
                process_name=process.name(),
                exe_path=process.exe(),
                window_title=window_title,
            )
        except (psutil.Error, ProcessLookupError):
            return None


def describe_app(app: ForegroundApp, app_id: str) -> AppMetadata:
    """System apps live under the OS directory; titled windows are launchable."""
    system_root = os.environ.get("SystemRoot", r"C:\Windows").lower()
    exe_path = (app.exe_path or "").lower()
    return AppMetadata(
        app_id=app_id,
        display_name=display_name_from_process(app.process_name),
        is_system=bool(exe_path) and exe_path.startswith(system_root),
        launchable=app.window_title is not None,
    )


@dataclass(slots=True)
class CollectorState:
    current_app: Optional[str] = None
    last_sample_time: Optional[datetime] = None
    last_flush_time: datetime = field(default_factory=datetime.now)
    known_apps: set[str] = field(default_factory=set)


class ActivityCollector:
    """Samples the foreground app at a fixed interval and logs transitions to SQLite."""

    def __init__(
        self,
        db_path: Path,
        settings: CollectorSettings,
        *,
        probe: Optional[ForegroundProbe] = None,
        idle_detector: Optional[IdleDetector] = None,
        channel: Optional[LaunchChannel] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.db_path = Path(db_path)
        self.settings = settings
        self._probe = probe or WindowsForegroundProbe()
        self._idle_detector = idle_detector or WindowsIdleDetector()
        self._channel = channel
        self._clock = clock
        self._conn = open_database(self.db_path, check_same_thread=False)
        self._state = CollectorState(last_flush_time=clock())
        self._pending_events: list[TransitionEvent] = []
        self._pending_metadata: dict[str, AppMetadata] = {}
        self._pending_seconds: defaultdict[tuple[date, str], float] = defaultdict(float)
        self._pending_launches: list[LaunchNotice] = []
        self._lock = threading.Lock()

    def run_forever(self) -> None:
        stop_event = threading.Event()
        try:
            self._run_loop(stop_event)
        except KeyboardInterrupt:
            logger.info("Collector interrupted; flushing remaining events.")
        finally:
            self._shutdown()

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Run the collector until the provided event is set."""
        try:
            self._run_loop(stop_event)
        finally:
            self._shutdown()

    def sample_once(self) -> None:
        now = self._clock()
        idle = self._idle_detector.is_idle(
            int(self.settings.idle_threshold.total_seconds() * 1000)
        )
        app = None if idle else self._probe.get_foreground_app()
        app_id = normalize_app_id(app.process_name) if app else None
        with self._lock:
            self._credit_elapsed(now)
            if app is not None and app_id is not None and app_id not in self._state.known_apps:
                self._state.known_apps.add(app_id)
                self._pending_metadata[app_id] = describe_app(app, app_id)
            self._transition_to(app_id, now)
        logger.debug("Sampled foreground app=%s idle=%s", app_id, idle)

    def _credit_elapsed(self, now: datetime) -> None:
        previous = self._state.last_sample_time
        current = self._state.current_app
        if previous is not None and current is not None and now > previous:
            self._pending_seconds[(previous.date(), current)] += (now - previous).total_seconds()
        self._state.last_sample_time = now

    def _transition_to(self, app_id: Optional[str], now: datetime) -> None:
        current = self._state.current_app
        if app_id == current:
            return
        if current is not None:
            self._pending_events.append(TransitionEvent(current, EventKind.PAUSED, now))
        if app_id is not None:
            self._pending_events.append(TransitionEvent(app_id, EventKind.RESUMED, now))
            notice = LaunchNotice(app_id=app_id, at=now)
            self._pending_launches.append(notice)
            if self._channel is not None:
                self._channel.publish(notice)
        self._state.current_app = app_id

    def flush_if_needed(self) -> None:
        with self._lock:
            elapsed = self._clock() - self._state.last_flush_time
            if elapsed >= self.settings.flush_interval and self._has_pending():
                self._flush_locked()

    def flush(self, force: bool = False) -> None:
        """Write pending data; ``force`` also closes the open session."""
        with self._lock:
            if force:
                now = self._clock()
                self._credit_elapsed(now)
                self._transition_to(None, now)
            if self._has_pending():
                self._flush_locked()

    def _has_pending(self) -> bool:
        return bool(
            self._pending_events
            or self._pending_metadata
            or self._pending_seconds
            or self._pending_launches
        )

    def _flush_locked(self) -> None:
        # All or nothing; pending buffers are kept for a retry on failure.
        with transaction(self._conn):
            for metadata in self._pending_metadata.values():
                upsert_app_metadata(self._conn, metadata)
            insert_events(self._conn, self._pending_events)
            for (day, app_id), seconds in self._pending_seconds.items():
                add_daily_usage(self._conn, day, app_id, seconds)
            for notice in self._pending_launches:
                increment_launch_count(self._conn, notice.at.date(), notice.app_id)
        logger.debug("Flushed %d events.", len(self._pending_events))
        self._pending_events.clear()
        self._pending_metadata.clear()
        self._pending_seconds.clear()
        self._pending_launches.clear()
        self._state.last_flush_time = self._clock()

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Starting collector; writing to %s", self.db_path)
        interval = self.settings.sample_interval.total_seconds()
        while not stop_event.is_set():
            self.sample_once()
            self.flush_if_needed()
            # Sleep in an interruptible manner.
            stop_event.wait(interval)

    def _shutdown(self) -> None:
        try:
            self.flush(force=True)
        finally:
            self._conn.close()
            logger.info("Collector stopped.")
