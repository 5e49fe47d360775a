"""Start/stop state machine for the activity being timed."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Protocol

from .config import TrackerSettings
from .models import ActivityRecord
from .repository import ActivityRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TickCallback = Callable[[timedelta], None]


def local_now() -> datetime:
    return datetime.now().astimezone()


class TrackingState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class Ticker(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TickerFactory = Callable[[float, Callable[[], None]], Ticker]


class ElapsedTicker:
    """Invokes a callback at a fixed interval on a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        # Not joined: a tick already in flight is dropped by the controller's id guard.
        self._stop_event.set()
        self._thread = None

    def _run_loop(self) -> None:
        # wait() returns True once cancelled.
        while not self._stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Elapsed-time callback failed; stopping ticker.")
                return


class TrackingController:
    """Owns the single open activity and moves it between idle and tracking.

    Ticks only notify ``on_tick`` with the elapsed time; they never write to
    storage. Elapsed time is always recomputed from the record's start.
    """

    def __init__(
        self,
        repository: ActivityRepository,
        settings: Optional[TrackerSettings] = None,
        *,
        clock: Optional[Clock] = None,
        ticker_factory: Optional[TickerFactory] = None,
        on_tick: Optional[TickCallback] = None,
    ) -> None:
        self._repository = repository
        self.settings = settings or TrackerSettings()
        self._clock = clock or local_now
        self._ticker_factory: TickerFactory = ticker_factory or ElapsedTicker
        self.on_tick = on_tick
        self._current: Optional[ActivityRecord] = None
        self._ticker: Optional[Ticker] = None
        # The repository lock: a stop is one uninterrupted write cycle.
        self._lock = repository.lock

    @property
    def state(self) -> TrackingState:
        with self._lock:
            return TrackingState.TRACKING if self._current else TrackingState.IDLE

    @property
    def current(self) -> Optional[ActivityRecord]:
        with self._lock:
            return self._current

    def restore(self) -> Optional[ActivityRecord]:
        """Pick up an activity left running by a previous process."""
        with self._lock:
            if self._current is not None:
                return self._current
            record = self._repository.get_current()
            if record is None:
                return None
            self._current = record
            self._start_ticker(record)
            logger.info("Resumed activity %s started at %s", record.id, record.start)
            return record

    def start(self, title: str = "") -> ActivityRecord:
        return self.try_start(title)[0]

    def try_start(self, title: str = "") -> tuple[ActivityRecord, bool]:
        """Start tracking; the flag is False when an activity was already running."""
        with self._lock:
            if self._current is not None:
                logger.debug("Start ignored; activity %s is running.", self._current.id)
                return self._current, False
            record = ActivityRecord.begin(self._clock(), title=title.strip())
            self._repository.set_current(record)
            self._current = record
            self._start_ticker(record)
            logger.info("Started activity %s", record.id)
            return record, True

    def rename(self, title: str) -> Optional[ActivityRecord]:
        with self._lock:
            if self._current is None:
                return None
            record = self._current.with_title(title.strip())
            self._repository.set_current(record)
            self._current = record
            return record

    def stop(self, title: Optional[str] = None) -> Optional[ActivityRecord]:
        with self._lock:
            current = self._current
            if current is None:
                return None
            self._cancel_ticker()

            if title is not None:
                current = current.with_title(title)
            end = self._clock()
            if end <= current.start:
                logger.warning(
                    "Clock is behind the start of activity %s; clipping its end.",
                    current.id,
                )
                end = current.start + timedelta(seconds=1)
            finished = current.finalized(end, self.settings.placeholder_title)

            self._repository.upsert(finished)
            self._repository.set_current(None)
            self._current = None
            logger.info(
                "Stopped activity %s after %d seconds", finished.id, finished.duration
            )
            return finished

    def elapsed(self) -> Optional[timedelta]:
        with self._lock:
            if self._current is None:
                return None
            return max(self._clock() - self._current.start, timedelta(0))

    def close(self) -> None:
        """Cancel the ticker; the open activity stays persisted."""
        with self._lock:
            self._cancel_ticker()

    def _start_ticker(self, record: ActivityRecord) -> None:
        self._cancel_ticker()
        ticker = self._ticker_factory(
            self.settings.tick_interval.total_seconds(),
            lambda: self._tick(record.id),
        )
        self._ticker = ticker
        ticker.start()

    def _cancel_ticker(self) -> None:
        ticker = self._ticker
        self._ticker = None
        if ticker is not None:
            ticker.cancel()

    def _tick(self, activity_id: str) -> None:
        with self._lock:
            current = self._current
            if current is None or current.id != activity_id:
                return
            elapsed = max(self._clock() - current.start, timedelta(0))
        logger.debug("Activity %s elapsed %s", activity_id, elapsed)
        if self.on_tick:
            self.on_tick(elapsed)
