"""FastAPI application exposing the tracker commands over a local HTTP API."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .context import TrackerContext, build_context
from .controller import TickerFactory
from .export import EXPORT_FORMATS, export_filename, render_export
from .models import ActivityRecord
from .paths import resolve_data_path
from .repository import ActivityImportError, DocumentStore
from .views import build_timeline, calendar_levels, day_total_seconds, sort_activities

logger = logging.getLogger(__name__)

_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv; charset=utf-8"}


class StartPayload(BaseModel):
    title: str = ""

    model_config = ConfigDict(extra="forbid")


class StopPayload(BaseModel):
    title: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class TitlePayload(BaseModel):
    title: str

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    data_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    store: Optional[DocumentStore] = None,
    ticker_factory: Optional[TickerFactory] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_data_path = resolve_data_path(data_path) if store is None else None
    context = build_context(
        store=store,
        data_path=resolved_data_path,
        settings=settings,
        ticker_factory=ticker_factory,
    )

    app = FastAPI(title="daytrack", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.data_path = resolved_data_path
    app.state.tracker = context

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        context.controller.restore()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        context.controller.close()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        tracker = _tracker(request)
        elapsed = tracker.controller.elapsed()
        current = tracker.controller.current
        return {
            "state": tracker.controller.state.value,
            "current": _record_payload(current) if current else None,
            "elapsed_seconds": int(elapsed.total_seconds()) if elapsed is not None else None,
            "data_path": str(request.app.state.data_path) if request.app.state.data_path else None,
        }

    @app.post("/api/start")
    def start(request: Request, payload: Optional[StartPayload] = None) -> Dict[str, Any]:
        record, started = _tracker(request).controller.try_start(payload.title if payload else "")
        return {"started": started, "current": _record_payload(record)}

    @app.post("/api/stop")
    def stop(request: Request, payload: Optional[StopPayload] = None) -> Dict[str, Any]:
        record = _tracker(request).controller.stop(payload.title if payload else None)
        return {"activity": _record_payload(record) if record else None}

    @app.post("/api/rename")
    def rename(payload: TitlePayload, request: Request) -> Dict[str, Any]:
        record = _tracker(request).controller.rename(payload.title)
        if record is None:
            raise HTTPException(status_code=409, detail="No activity is being tracked")
        return {"current": _record_payload(record)}

    @app.get("/api/activities")
    def activities(
        request: Request,
        day: Optional[str] = Query(
            default=None,
            alias="date",
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        target_day = _parse_date(day)
        records = _tracker(request).repository.get_by_date(target_day)
        return {
            "date": target_day.isoformat(),
            "is_today": target_day == date.today(),
            "total_seconds": day_total_seconds(records),
            "activities": [_record_payload(record) for record in sort_activities(records)],
        }

    @app.patch("/api/activities/{activity_id}")
    def update_activity(
        activity_id: str, payload: TitlePayload, request: Request
    ) -> Dict[str, Any]:
        record = _tracker(request).repository.rename(activity_id, payload.title)
        if record is None:
            raise HTTPException(status_code=404, detail="Activity not found")
        return _record_payload(record)

    @app.delete("/api/activities/{activity_id}")
    def delete_activity(activity_id: str, request: Request) -> Dict[str, Any]:
        if not _tracker(request).repository.delete(activity_id):
            raise HTTPException(status_code=404, detail="Activity not found")
        return {"deleted": activity_id}

    @app.post("/api/import")
    def import_activities(request: Request, payload: Any = Body(...)) -> Dict[str, Any]:
        try:
            added = _tracker(request).repository.import_activities(payload)
        except ActivityImportError as exc:
            raise HTTPException(status_code=400, detail=f"Import failed: {exc}") from exc
        return {"imported": added}

    @app.get("/api/export")
    def export(
        request: Request,
        fmt: str = Query(default="json", alias="format", description="json or csv"),
    ) -> Response:
        fmt = fmt.lower()
        if fmt not in EXPORT_FORMATS:
            raise HTTPException(status_code=400, detail="format must be json or csv")
        content = render_export(fmt, _tracker(request).repository.all_activities())
        filename = export_filename(fmt, date.today())
        return Response(
            content=content,
            media_type=_MEDIA_TYPES[fmt],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/api/timeline")
    def timeline(
        request: Request,
        day: Optional[str] = Query(
            default=None,
            alias="date",
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        tracker = _tracker(request)
        target_day = _parse_date(day)
        blocks = build_timeline(
            tracker.repository.get_by_date(target_day), tracker.settings.hour_height
        )
        return {
            "date": target_day.isoformat(),
            "hour_height": tracker.settings.hour_height,
            "blocks": [
                {
                    "activity": _record_payload(block.record),
                    "top": round(block.top, 2),
                    "height": round(block.height, 2),
                }
                for block in blocks
            ],
        }

    @app.get("/api/calendar")
    def calendar_view(
        request: Request,
        month: Optional[str] = Query(
            default=None,
            description="Target month in YYYY-MM format.",
        ),
    ) -> Dict[str, Any]:
        tracker = _tracker(request)
        target = _parse_month(month)
        levels = calendar_levels(
            tracker.repository.all_activities(),
            target.year,
            target.month,
            tracker.settings.calendar_thresholds,
        )
        return {
            "month": target.strftime("%Y-%m"),
            "days": [
                {"date": day.isoformat(), "level": level} for day, level in levels.items()
            ],
        }

    return app


def _tracker(request: Request) -> TrackerContext:
    return request.app.state.tracker


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc


def _parse_month(value: Optional[str]) -> date:
    if not value:
        return date.today().replace(day=1)
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid month format") from exc


def _record_payload(record: ActivityRecord) -> Dict[str, Any]:
    payload = record.to_dict()
    payload["day"] = record.day.isoformat()
    return payload
