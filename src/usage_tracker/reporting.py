"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Sequence

from .classification import format_duration, total_duration
from .models import AppUsageInfo
from .summary import summarize


class SummaryPrinter:
    """Render human-readable usage summaries in the console."""

    def __init__(self, limit: int = 10) -> None:
        self.limit = limit

    def print_usage(self, title: str, entries: Sequence[AppUsageInfo]) -> None:
        if not entries:
            print("No app usage recorded for the selected window.")
            return

        summary = summarize(entries)
        print(title)
        print("-" * 40)
        print(f"Screen time: {format_duration(total_duration(entries))}")
        print(f"Social:      {summary.social_minutes}m ({summary.mood.value})")
        print()

        print("Top apps:")
        for entry in entries[: self.limit]:
            launches = f"{entry.launch_count} opens" if entry.launch_count else ""
            print(
                f"  {entry.display_name[:28]:<28} {entry.category.value:<12} "
                f"{entry.formatted_time:>8} {launches}"
            )

        print()
        print("By category:")
        for category, duration in summary.categories.items():
            print(f"  {category.value:<12} {format_duration(duration)}")
