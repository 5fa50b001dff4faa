"""Command-line interface for the usage tracker."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from .config import AggregatorSettings, CollectorSettings, StreakSettings
from .errors import AuthorizationDenied
from .normalization import to_local_naive
from .paths import get_db_path
from .provider import UsageProvider
from .server_runner import run_dashboard
from .windows import UsageWindow

app = typer.Typer(help="Local-first app usage tracker.")

STREAK_STATE_NAME = "daily_evaluation"


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _db_option():
    return typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the usage SQLite database.",
    )


@app.command()
def collect(
    db_path: Optional[Path] = _db_option(),
    sample_seconds: float = typer.Option(
        5.0,
        "--interval",
        min=1.0,
        help="Sampling interval in seconds.",
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-threshold",
        min=0.5,
        help="Minutes of inactivity before the foreground app counts as paused.",
    ),
) -> None:
    """Run the background collector until interrupted."""
    from .collector import ActivityCollector

    settings = CollectorSettings.from_intervals(
        sample_seconds=sample_seconds, idle_minutes=idle_minutes
    )
    collector = ActivityCollector(db_path=db_path or get_db_path(), settings=settings)
    collector.run_forever()


@app.command("grant-access")
def grant_access(db_path: Optional[Path] = _db_option()) -> None:
    """Allow reports and the dashboard to read recorded usage."""
    UsageProvider(db_path or get_db_path()).grant_access()
    typer.echo("Usage access granted.")


@app.command("revoke-access")
def revoke_access(db_path: Optional[Path] = _db_option()) -> None:
    """Withdraw read access to recorded usage."""
    UsageProvider(db_path or get_db_path()).revoke_access()
    typer.echo("Usage access revoked.")


@app.command("import-events")
def import_events(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines event export."),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Load transition events exported from another device."""
    provider = UsageProvider(db_path or get_db_path())
    with source.open("r", encoding="utf-8") as stream:
        imported, skipped = provider.import_events(stream)
    typer.echo(f"Imported {imported} events ({skipped} skipped).")


@app.command()
def summary(
    mode: UsageWindow = typer.Option(
        UsageWindow.TODAY,
        "--mode",
        help="Preset window when no explicit range is given.",
    ),
    start: Optional[str] = typer.Option(
        None, "--start", help="Range start (ISO-8601). Requires --end."
    ),
    end: Optional[str] = typer.Option(
        None, "--end", help="Range end (ISO-8601, exclusive). Requires --start."
    ),
    guard_minutes: float = typer.Option(
        60.0,
        "--guard-minutes",
        min=0.0,
        help="Look-back before the window for apps already in the foreground.",
    ),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Print app usage for a preset window or a custom range."""
    from .reporting import SummaryPrinter
    from .service import UsageStatsService

    service = UsageStatsService(
        UsageProvider(db_path or get_db_path()),
        AggregatorSettings.from_minutes(guard_minutes),
    )
    try:
        if start or end:
            if not (start and end):
                raise typer.BadParameter("--start and --end must be given together")
            start_at = _parse_datetime(start, "--start")
            end_at = _parse_datetime(end, "--end")
            if end_at <= start_at:
                raise typer.BadParameter("--end must be after --start")
            entries = service.get_usage_stats_for_range(start_at, end_at)
            title = f"Usage {start_at:%Y-%m-%d %H:%M} -> {end_at:%Y-%m-%d %H:%M}"
        else:
            entries = service.get_usage_stats(mode)
            title = f"Usage ({mode.value})"
    except AuthorizationDenied as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    SummaryPrinter().print_usage(title, entries)


@app.command("evaluate-day")
def evaluate_day_command(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Day (YYYY-MM-DD) to evaluate. Defaults to today.",
    ),
    cutoff_hour: int = typer.Option(
        23, "--cutoff-hour", min=0, max=23, help="Hour after which today counts as complete."
    ),
    db_path: Optional[Path] = _db_option(),
) -> None:
    """Update usage streaks and achievements for a completed day."""
    from .db import database_connection, load_state, save_state
    from .service import UsageStatsService
    from .streaks import DailyEvaluationState, evaluate_day
    from .summary import summarize
    from .windows import day_window

    resolved_db = db_path or get_db_path()
    now = datetime.now()
    target = datetime.strptime(date, "%Y-%m-%d") if date else now
    query = day_window(target)
    service = UsageStatsService(UsageProvider(resolved_db))
    try:
        entries = service.run_query(query, now)
    except AuthorizationDenied as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    with database_connection(resolved_db) as conn:
        stored = load_state(conn, STREAK_STATE_NAME)
        state = DailyEvaluationState.from_dict(stored) if stored else DailyEvaluationState()
        result = evaluate_day(
            state, target.date(), summarize(entries), now, StreakSettings(cutoff_hour)
        )
        if result.evaluated:
            save_state(conn, STREAK_STATE_NAME, result.state.to_dict())

    if not result.evaluated:
        typer.echo(f"{target:%Y-%m-%d} is not ready for evaluation or was already evaluated.")
        return
    typer.echo(
        f"Happy streak: {result.state.happy_streak} days, "
        f"zero streak: {result.state.zero_streak} days."
    )
    for achievement in result.newly_unlocked:
        typer.echo(f"Unlocked: {achievement}")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    db_path: Optional[Path] = _db_option(),
    sample_seconds: float = typer.Option(
        5.0,
        "--interval",
        min=1.0,
        help="Sampling interval in seconds.",
    ),
    idle_minutes: float = typer.Option(
        5.0,
        "--idle-threshold",
        min=0.5,
        help="Minutes of inactivity before the foreground app counts as paused.",
    ),
    flush_seconds: Optional[float] = typer.Option(
        None,
        "--flush-interval",
        min=10.0,
        help="Collector flush interval in seconds (defaults to 6x sampling interval).",
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the API docs in your default browser.",
    ),
) -> None:
    """Start the local API with the background collector."""
    settings = CollectorSettings.from_intervals(
        sample_seconds=sample_seconds,
        idle_minutes=idle_minutes,
        flush_seconds=flush_seconds,
    )
    run_dashboard(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        open_browser=open_browser,
    )


def _parse_datetime(value: str, option: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{option} must be an ISO-8601 date or datetime") from exc
    return to_local_naive(parsed)
