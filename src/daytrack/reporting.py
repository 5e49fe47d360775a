"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from .config import TrackerSettings
from .repository import ActivityRepository
from .views import calendar_levels, day_total_seconds, sort_activities


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(
        self, repository: ActivityRepository, settings: Optional[TrackerSettings] = None
    ) -> None:
        self.repository = repository
        self.settings = settings or TrackerSettings()

    def print_daily_summary(self, day: date) -> None:
        records = self.repository.get_by_date(day)
        if not records:
            print("No activity recorded for the selected day.")
            return

        print(f"Summary for {day.isoformat()}")
        print("-" * 40)
        print(f"Tracked time: {format_duration(day_total_seconds(records))}")
        print(f"Activities:   {len(records)}")
        print()

        top_entries = aggregate_by_title(records)
        print("Top activities:")
        for title, seconds in top_entries[:5]:
            print(f"  {title[:30]:<30} {format_duration(seconds)}")

    def print_activity_list(self, day: date) -> None:
        records = sort_activities(self.repository.get_by_date(day))
        if not records:
            print("No activity recorded for the selected day.")
            return
        for record in records:
            start = record.start.astimezone().strftime("%H:%M")
            end = record.end.astimezone().strftime("%H:%M") if record.end else "--:--"
            print(
                f"{start}-{end}  {format_duration(record.duration or 0)}  "
                f"{record.title[:40]:<40} {record.id}"
            )

    def print_month_calendar(self, year: int, month: int) -> None:
        levels = calendar_levels(
            self.repository.all_activities(),
            year,
            month,
            self.settings.calendar_thresholds,
        )
        print(f"Activity levels for {date(year, month, 1).strftime('%B %Y')}")
        print("-" * 40)
        active_days = [(day, level) for day, level in levels.items() if level]
        if not active_days:
            print("No activity recorded for the selected month.")
            return
        for day, level in active_days:
            print(f"  {day.isoformat()} {day.strftime('%a')}  {'#' * level}")


def aggregate_by_title(records) -> list[tuple[str, int]]:
    totals: dict[str, int] = {}
    for record in records:
        totals[record.title] = totals.get(record.title, 0) + (record.duration or 0)
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def format_duration(seconds: float) -> str:
    total_seconds = int(seconds)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_elapsed(delta: timedelta) -> str:
    return format_duration(delta.total_seconds())
