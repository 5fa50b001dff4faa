"""Tests for the typer command-line interface."""
from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from usage_tracker.cli import app
from usage_tracker.provider import UsageProvider

runner = CliRunner()


def test_summary_requires_access(db_path: Path):
    result = runner.invoke(app, ["summary", "--db", str(db_path)])
    assert result.exit_code == 1


def test_grant_then_range_summary(db_path: Path, tmp_path: Path):
    export = tmp_path / "events.jsonl"
    export.write_text(
        "\n".join(
            json.dumps(row)
            for row in [
                {"app_id": "com.discord", "kind": "resumed", "timestamp": "2024-03-10T08:00:00", "display_name": "Discord"},
                {"app_id": "com.discord", "kind": "paused", "timestamp": "2024-03-10T09:30:00"},
                {"app_id": "", "kind": "paused", "timestamp": "2024-03-10T09:31:00"},
            ]
        ),
        encoding="utf-8",
    )

    assert runner.invoke(app, ["grant-access", "--db", str(db_path)]).exit_code == 0
    imported = runner.invoke(app, ["import-events", str(export), "--db", str(db_path)])
    assert imported.exit_code == 0
    assert "Imported 2 events (1 skipped)" in imported.output

    result = runner.invoke(
        app,
        [
            "summary",
            "--db",
            str(db_path),
            "--start",
            "2024-03-10T00:00:00",
            "--end",
            "2024-03-11T00:00:00",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Discord" in result.output
    assert "1h 30m" in result.output


def test_range_needs_both_ends(db_path: Path):
    UsageProvider(db_path).grant_access()
    result = runner.invoke(app, ["summary", "--db", str(db_path), "--start", "2024-03-10"])
    assert result.exit_code != 0


def test_revoke_access(db_path: Path):
    runner.invoke(app, ["grant-access", "--db", str(db_path)])
    assert runner.invoke(app, ["revoke-access", "--db", str(db_path)]).exit_code == 0
    assert UsageProvider(db_path).has_access() is False


def test_evaluate_past_day(db_path: Path):
    UsageProvider(db_path).grant_access()
    result = runner.invoke(app, ["evaluate-day", "--db", str(db_path), "--date", "2024-03-10"])
    assert result.exit_code == 0, result.output
    assert "Happy streak: 1 days" in result.output
    again = runner.invoke(app, ["evaluate-day", "--db", str(db_path), "--date", "2024-03-10"])
    assert "already evaluated" in again.output


def test_range_summary_accepts_utc_offset(db_path: Path):
    UsageProvider(db_path).grant_access()
    result = runner.invoke(
        app,
        [
            "summary",
            "--db",
            str(db_path),
            "--start",
            "2024-03-10T00:00:00+00:00",
            "--end",
            "2024-03-11T00:00:00+00:00",
        ],
    )
    assert result.exit_code == 0, result.output
