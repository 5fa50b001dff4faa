"""FastAPI application that exposes the usage tracker's local API."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .collector import ActivityCollector
from .config import AggregatorSettings, CollectorSettings
from .errors import AuthorizationDenied
from .launches import LaunchChannel, LaunchCounterStore
from .models import AppUsageInfo
from .normalization import to_local_naive
from .paths import get_db_path
from .provider import UsageProvider
from .service import UsageStatsService
from .summary import summarize
from .windows import UsageWindow, resolve_window

logger = logging.getLogger(__name__)


class CollectorRunner:
    """Manage the activity collector in a background thread."""

    def __init__(
        self, db_path: Path, settings: CollectorSettings, channel: LaunchChannel
    ) -> None:
        self._db_path = Path(db_path)
        self._settings = settings
        self._channel = channel
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            collector = ActivityCollector(
                db_path=self._db_path, settings=self._settings, channel=self._channel
            )
            thread = threading.Thread(
                target=collector.run_until_stopped,
                args=(stop_event,),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Collector background thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Collector background thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())


class AccessPayload(BaseModel):
    granted: bool

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[CollectorSettings] = None,
    aggregator_settings: Optional[AggregatorSettings] = None,
    start_collector: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or CollectorSettings()
    provider = UsageProvider(resolved_db_path)
    service = UsageStatsService(provider, aggregator_settings)
    channel = LaunchChannel(maxsize=resolved_settings.launch_queue_size)
    launch_store = LaunchCounterStore(resolved_db_path)
    runner = CollectorRunner(resolved_db_path, resolved_settings, channel)

    app = FastAPI(title="Usage Tracker", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.collector_runner = runner
    app.state.launch_channel = channel

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        if start_collector:
            runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runner.stop()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "collector_running": request.app.state.collector_runner.is_running(),
            "database_path": str(request.app.state.db_path),
            "usage_access": provider.has_access(),
            "sample_seconds": resolved_settings.sample_interval.total_seconds(),
            "guard_buffer_minutes": service.settings.guard_buffer.total_seconds() / 60.0,
        }

    @app.post("/api/access")
    def set_access(payload: AccessPayload) -> Dict[str, Any]:
        if payload.granted:
            provider.grant_access()
        else:
            provider.revoke_access()
        return {"usage_access": provider.has_access()}

    @app.get("/api/usage")
    def usage(
        mode: UsageWindow = Query(
            default=UsageWindow.TODAY,
            description="Preset window: today, rolling24h or week.",
        ),
    ) -> Dict[str, Any]:
        now = datetime.now()
        query = resolve_window(mode, now)
        entries = _guarded(lambda: service.get_usage_stats(mode, now))
        return {
            "mode": mode.value,
            "window_start": query.window_start.isoformat(),
            "window_end": query.query_end(now).isoformat(),
            **_usage_payload(entries),
        }

    @app.get("/api/usage/range")
    def usage_for_range(
        start: str = Query(..., description="Range start, ISO-8601 (inclusive)."),
        end: str = Query(..., description="Range end, ISO-8601 (exclusive)."),
    ) -> Dict[str, Any]:
        start_at = _parse_datetime(start)
        end_at = _parse_datetime(end)
        if end_at <= start_at:
            raise HTTPException(status_code=400, detail="end must be after start")
        entries = _guarded(lambda: service.get_usage_stats_for_range(start_at, end_at))
        return {
            "window_start": start_at.isoformat(),
            "window_end": end_at.isoformat(),
            **_usage_payload(entries),
        }

    @app.get("/api/summary")
    def summary(
        mode: UsageWindow = Query(default=UsageWindow.TODAY),
    ) -> Dict[str, Any]:
        entries = _guarded(lambda: service.get_usage_stats(mode))
        result = summarize(entries)
        return {
            "mode": mode.value,
            "mood": result.mood.value,
            "social_minutes": result.social_minutes,
            "total_minutes": result.total_minutes,
            "categories": {
                category.value: int(duration.total_seconds() * 1000)
                for category, duration in result.categories.items()
            },
        }

    @app.get("/api/launches")
    def launches(
        day: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        target = _parse_date(day)
        return {
            "date": target.isoformat(),
            "launches": launch_store.counts_for(target),
        }

    @app.get("/api/launches/recent")
    def recent_launches(request: Request) -> Dict[str, Any]:
        notices = request.app.state.launch_channel.drain()
        return {
            "launches": [
                {"app_id": notice.app_id, "at": notice.at.isoformat()} for notice in notices
            ]
        }

    return app


def _guarded(load: Callable[[], list[AppUsageInfo]]) -> list[AppUsageInfo]:
    try:
        return load()
    except AuthorizationDenied as exc:
        raise HTTPException(
            status_code=403,
            detail=f"{exc} Grant access with POST /api/access.",
        ) from exc


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc


def _parse_datetime(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid datetime format") from exc
    return to_local_naive(parsed)


def _usage_payload(entries: list[AppUsageInfo]) -> Dict[str, Any]:
    total_ms = sum(entry.total_milliseconds for entry in entries)
    return {
        "total_ms": total_ms,
        "apps": [_entry_to_payload(entry) for entry in entries],
    }


def _entry_to_payload(entry: AppUsageInfo) -> Dict[str, Any]:
    return {
        "app_id": entry.app_id,
        "app_name": entry.display_name,
        "total_ms": entry.total_milliseconds,
        "last_used_at": entry.last_used_at.isoformat() if entry.last_used_at else None,
        "launch_count": entry.launch_count,
        "hours": entry.hours,
        "minutes": entry.minutes,
        "seconds": entry.seconds,
        "formatted_time": entry.formatted_time,
        "is_system_app": entry.is_system_app,
        "category": entry.category.value,
    }
