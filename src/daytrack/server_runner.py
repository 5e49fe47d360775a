"""Helpers to launch the local HTTP API."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .config import TrackerSettings
from .paths import resolve_data_path
from .webapp import create_app

logger = logging.getLogger(__name__)


def run_dashboard(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    data_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    open_browser: bool = True,
    log_level: str = "info",
) -> None:
    """Serve the tracker API; optionally open the running activity's status page."""
    resolved_path = resolve_data_path(data_path)
    resolved_settings = settings or TrackerSettings()
    app = create_app(data_path=resolved_path, settings=resolved_settings)
    logger.info(
        "Serving %s on http://%s:%d (tick every %.1fs)",
        resolved_path,
        host,
        port,
        resolved_settings.tick_interval.total_seconds(),
    )

    if open_browser:
        threading.Thread(
            target=_launch_browser_after_delay,
            args=(status_url(host, port),),
            daemon=True,
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def status_url(host: str, port: int) -> str:
    # A wildcard bind address is not something a browser can open.
    browser_host = "127.0.0.1" if host in ("0.0.0.0", "::", "") else host
    if ":" in browser_host:
        browser_host = f"[{browser_host}]"
    return f"http://{browser_host}:{port}/api/status"


def _launch_browser_after_delay(url: str) -> None:
    time.sleep(1.0)
    try:
        webbrowser.open(url)
    except Exception:
        logger.exception("Failed to launch browser for %s", url)
