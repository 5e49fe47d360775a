"""Command-line interface for the tracker."""

from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import typer

from .config import TrackerSettings
from .context import open_context
from .export import EXPORT_FORMATS, export_filename, render_export
from .reporting import SummaryPrinter, format_duration, format_elapsed
from .repository import ActivityImportError
from .server_runner import run_dashboard

app = typer.Typer(help="Local-first personal time tracker.")

DATA_HELP = "Location of the activity JSON file."


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@app.command()
def start(
    title: str = typer.Argument("", help="What you are working on."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Start timing a new activity."""
    with open_context(data_path) as context:
        record, started = context.controller.try_start(title)
        if not started:
            typer.echo(f"Already tracking: {_title_or_placeholder(record.title, context.settings)}")
            return
        typer.echo(f"Started {_title_or_placeholder(record.title, context.settings)} at {_clock(record.start)}")


@app.command()
def stop(
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Final title for the activity."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Stop the running activity and store it."""
    with open_context(data_path) as context:
        record = context.controller.stop(title)
    if record is None:
        typer.echo("No active tracking.")
        return
    typer.echo(f"Stopped {record.title} after {format_duration(record.duration or 0)}")


@app.command()
def rename(
    title: str = typer.Argument(..., help="New title for the running activity."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Rename the running activity."""
    with open_context(data_path) as context:
        record = context.controller.rename(title)
    if record is None:
        typer.echo("No active tracking.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Currently tracking: {record.title or '(untitled)'}")


@app.command()
def status(
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Show the running activity, if any."""
    with open_context(data_path) as context:
        record = context.controller.current
        elapsed = context.controller.elapsed()
        if record is None or elapsed is None:
            typer.echo("No active tracking.")
            return
        typer.echo(
            f"Currently tracking: {_title_or_placeholder(record.title, context.settings)} "
            f"(started {_clock(record.start)}, {format_elapsed(elapsed)} elapsed)"
        )


@app.command()
def watch(
    tick_seconds: float = typer.Option(1.0, "--interval", min=0.1, help="Refresh interval in seconds."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Show a live elapsed-time counter for the running activity."""

    def show(elapsed: timedelta) -> None:
        typer.echo(f"\r{format_elapsed(elapsed)}", nl=False)

    settings = TrackerSettings.from_options(tick_seconds=tick_seconds)
    with open_context(data_path, settings=settings, on_tick=show) as context:
        record = context.controller.current
        if record is None:
            typer.echo("No active tracking.")
            return
        typer.echo(f"Tracking {_title_or_placeholder(record.title, settings)}; Ctrl+C to detach.")
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            typer.echo("")


@app.command("list")
def list_activities(
    day: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD). Defaults to today."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """List the activities of one day, newest first."""
    with open_context(data_path) as context:
        SummaryPrinter(context.repository, context.settings).print_activity_list(_parse_day(day))


@app.command()
def edit(
    activity_id: str = typer.Argument(..., help="Id of a stored activity."),
    title: str = typer.Argument(..., help="New title."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Rename a stored activity."""
    with open_context(data_path) as context:
        record = context.repository.rename(activity_id, title)
    if record is None:
        typer.echo(f"No activity found for id={activity_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Renamed {record.id} to {record.title}")


@app.command()
def delete(
    activity_id: str = typer.Argument(..., help="Id of a stored activity."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Permanently delete a stored activity."""
    with open_context(data_path) as context:
        deleted = context.repository.delete(activity_id)
    if not deleted:
        typer.echo(f"No activity found for id={activity_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted {activity_id}")


@app.command("import")
def import_file(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file to import."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Merge activities from a JSON export."""
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        typer.echo(f"Import failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    with open_context(data_path) as context:
        try:
            added = context.repository.import_activities(payload)
        except ActivityImportError as exc:
            typer.echo(f"Import failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    typer.echo(f"Successfully imported {added} activities")


@app.command()
def export(
    fmt: str = typer.Option("json", "--format", "-f", help="Export format: json or csv."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", path_type=Path, help="Target file or directory."
    ),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Write all activities to a date-stamped file."""
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise typer.BadParameter(f"expected one of {', '.join(EXPORT_FORMATS)}", param_hint="--format")

    with open_context(data_path) as context:
        content = render_export(fmt, context.repository.all_activities())

    filename = export_filename(fmt, date.today())
    if output is None:
        target = Path.cwd() / filename
    elif output.is_dir():
        target = output / filename
    else:
        target = output
    target.write_text(content, encoding="utf-8")
    typer.echo(f"Exported to {target}")


@app.command()
def summary(
    day: Optional[str] = typer.Option(None, "--date", help="Date (YYYY-MM-DD) to summarize. Defaults to today."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Print a high-level summary for a specific day."""
    with open_context(data_path) as context:
        SummaryPrinter(context.repository, context.settings).print_daily_summary(_parse_day(day))


@app.command()
def calendar(
    month: Optional[str] = typer.Option(None, "--month", help="Month (YYYY-MM). Defaults to this month."),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
) -> None:
    """Show how busy each day of a month was."""
    if month:
        try:
            target = datetime.strptime(month, "%Y-%m")
        except ValueError as exc:
            raise typer.BadParameter("expected YYYY-MM", param_hint="--month") from exc
    else:
        target = datetime.now()
    with open_context(data_path) as context:
        SummaryPrinter(context.repository, context.settings).print_month_calendar(
            target.year, target.month
        )


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    data_path: Optional[Path] = typer.Option(None, "--data", path_type=Path, help=DATA_HELP),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Open the tracker status page in your default browser.",
    ),
    tick_seconds: float = typer.Option(
        1.0, "--interval", min=0.1, help="Elapsed-time refresh interval in seconds."
    ),
    placeholder: Optional[str] = typer.Option(
        None, "--placeholder", help="Title given to activities stopped without one."
    ),
    hour_height: Optional[float] = typer.Option(
        None, "--hour-height", min=1.0, help="Timeline pixels per hour."
    ),
) -> None:
    """Serve the local HTTP API."""
    settings = TrackerSettings.from_options(
        tick_seconds=tick_seconds,
        placeholder_title=placeholder,
        hour_height=hour_height,
    )
    run_dashboard(
        host=host,
        port=port,
        data_path=data_path,
        settings=settings,
        open_browser=open_browser,
    )


def _parse_day(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise typer.BadParameter("expected YYYY-MM-DD", param_hint="--date") from exc


def _clock(value: datetime) -> str:
    return value.astimezone().strftime("%H:%M:%S")


def _title_or_placeholder(title: str, settings: TrackerSettings) -> str:
    return title or settings.placeholder_title
