"""Configuration models and helpers for the tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

PLACEHOLDER_TITLE = "Unnamed Activity"


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the tracking controller and derived views."""

    tick_interval: timedelta = timedelta(seconds=1)
    placeholder_title: str = PLACEHOLDER_TITLE
    hour_height: float = 60.0
    calendar_thresholds: tuple[timedelta, ...] = field(
        default_factory=lambda: (
            timedelta(minutes=1),
            timedelta(hours=1),
            timedelta(hours=3),
            timedelta(hours=6),
        )
    )

    @classmethod
    def from_options(
        cls,
        tick_seconds: float = 1.0,
        placeholder_title: str | None = None,
        hour_height: float | None = None,
        calendar_hours: tuple[float, ...] | None = None,
    ) -> "TrackerSettings":
        defaults = cls()
        thresholds = (
            tuple(timedelta(hours=hours) for hours in sorted(calendar_hours))
            if calendar_hours
            else defaults.calendar_thresholds
        )
        return cls(
            tick_interval=timedelta(seconds=tick_seconds),
            placeholder_title=(placeholder_title or "").strip() or PLACEHOLDER_TITLE,
            hour_height=hour_height if hour_height is not None else defaults.hour_height,
            calendar_thresholds=thresholds,
        )
