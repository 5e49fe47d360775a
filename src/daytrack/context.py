"""Process-wide wiring of store, repository and controller."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .config import TrackerSettings
from .controller import TickCallback, TickerFactory, TrackingController
from .paths import resolve_data_path
from .repository import ActivityRepository, DocumentStore
from .store import JsonDocumentStore


@dataclass(slots=True)
class TrackerContext:
    settings: TrackerSettings
    store: DocumentStore
    repository: ActivityRepository
    controller: TrackingController


def build_context(
    *,
    store: Optional[DocumentStore] = None,
    data_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    ticker_factory: Optional[TickerFactory] = None,
    on_tick: Optional[TickCallback] = None,
) -> TrackerContext:
    resolved_settings = settings or TrackerSettings()
    resolved_store = store or JsonDocumentStore(resolve_data_path(data_path))
    repository = ActivityRepository(
        resolved_store, placeholder_title=resolved_settings.placeholder_title
    )
    controller = TrackingController(
        repository,
        resolved_settings,
        ticker_factory=ticker_factory,
        on_tick=on_tick,
    )
    return TrackerContext(
        settings=resolved_settings,
        store=resolved_store,
        repository=repository,
        controller=controller,
    )


@contextmanager
def open_context(
    data_path: Optional[Path] = None,
    *,
    settings: Optional[TrackerSettings] = None,
    store: Optional[DocumentStore] = None,
    ticker_factory: Optional[TickerFactory] = None,
    on_tick: Optional[TickCallback] = None,
) -> Iterator[TrackerContext]:
    """Yield a restored context and cancel its ticker on exit."""
    context = build_context(
        store=store,
        data_path=data_path,
        settings=settings,
        ticker_factory=ticker_factory,
        on_tick=on_tick,
    )
    context.controller.restore()
    try:
        yield context
    finally:
        context.controller.close()
