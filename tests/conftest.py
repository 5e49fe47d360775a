from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

import pytest

from daytrack.config import TrackerSettings
from daytrack.controller import TrackingController
from daytrack.repository import ActivityRepository
from daytrack.store import JsonDocumentStore


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """An aware datetime in the machine's local time zone."""
    return datetime(year, month, day, hour, minute, second).astimezone()


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeTicker:
    """Ticker that only fires when the test says so."""

    instances: list["FakeTicker"] = []

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False
        FakeTicker.instances.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.callback()


@pytest.fixture(autouse=True)
def _reset_tickers():
    FakeTicker.instances = []
    yield
    FakeTicker.instances = []


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "activities.json"


@pytest.fixture
def store(data_path):
    return JsonDocumentStore(data_path)


@pytest.fixture
def repository(store):
    return ActivityRepository(store)


@pytest.fixture
def clock():
    return FakeClock(local(2024, 3, 5, 9, 0, 0))


@pytest.fixture
def make_controller(repository, clock):
    def factory(**kwargs) -> TrackingController:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("ticker_factory", FakeTicker)
        return TrackingController(repository, TrackerSettings(), **kwargs)

    return factory
