"""Derived, presentation-neutral views over stored activities."""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from .models import ActivityRecord, local_day

MINUTES_PER_DAY = 24 * 60


@dataclass(slots=True)
class TimelineBlock:
    record: ActivityRecord
    top: float
    height: float


def sort_activities(
    records: Iterable[ActivityRecord], newest_first: bool = True
) -> list[ActivityRecord]:
    return sorted(records, key=lambda record: record.start, reverse=newest_first)


def day_total_seconds(records: Iterable[ActivityRecord]) -> int:
    return sum(record.duration or 0 for record in records)


def minutes_since_midnight(value: datetime) -> float:
    local = value.astimezone()
    return local.hour * 60 + local.minute + local.second / 60


def build_timeline(
    records: Iterable[ActivityRecord], hour_height: float = 60.0
) -> list[TimelineBlock]:
    """Place finished activities on a 24-hour vertical axis.

    Offsets are proportional to the local time of day. An activity running
    past midnight is clipped at the bottom of its start day.
    """
    pixels_per_minute = hour_height / 60
    blocks: list[TimelineBlock] = []
    for record in sort_activities(records, newest_first=False):
        if record.end is None:
            continue
        start_minutes = minutes_since_midnight(record.start)
        if local_day(record.end) > record.day:
            end_minutes = float(MINUTES_PER_DAY)
        else:
            end_minutes = minutes_since_midnight(record.end)
        blocks.append(
            TimelineBlock(
                record=record,
                top=start_minutes * pixels_per_minute,
                height=max(end_minutes - start_minutes, 0.0) * pixels_per_minute,
            )
        )
    return blocks


def activity_level(total: timedelta, thresholds: Sequence[timedelta]) -> int:
    """Number of thresholds reached by ``total``; 0 means nothing tracked."""
    if total <= timedelta(0):
        return 0
    level = 0
    for threshold in thresholds:
        if total >= threshold:
            level += 1
    return max(level, 1)


def calendar_levels(
    records: Iterable[ActivityRecord],
    year: int,
    month: int,
    thresholds: Sequence[timedelta],
) -> dict[date, int]:
    """Map every day of the month to its activity density level."""
    totals: defaultdict[date, int] = defaultdict(int)
    for record in records:
        day = record.day
        if (day.year, day.month) == (year, month):
            totals[day] += record.duration or 0

    days_in_month = calendar.monthrange(year, month)[1]
    return {
        day: activity_level(timedelta(seconds=totals.get(day, 0)), thresholds)
        for day in (date(year, month, number) for number in range(1, days_in_month + 1))
    }
