"""Command-line interface for mapty.

Each invocation runs one session: persisted activities are restored, the
position source is asked for the map center, and the command drives the
session controller the way map clicks and form input would.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from mapty import __version__
from mapty.config import DEFAULT_CONFIG_PATH, ensure_data_dir, load_config
from mapty.lib.logging import setup_logging
from mapty.lib.storage import JsonFileStore, StorageError, get_storage_path
from mapty.models.activity import ActivityKind, Coordinates, InvalidActivityInput
from mapty.services.controller import ActivityController, Phase
from mapty.services.geolocation import (
    DeferredPositionSource,
    PositionSource,
    create_position_source,
)
from mapty.views.listing import ListCollector, entry_to_dict
from mapty.views.map import LeafletMapView, generate_map_html

if TYPE_CHECKING:
    from collections.abc import Callable

    from mapty.config import Config


class JSONOutput:
    """Helper for JSON output formatting."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value in the output."""
        self._data[key] = value

    def update(self, data: dict[str, Any]) -> None:
        """Update with multiple values."""
        self._data.update(data)

    def output(self) -> None:
        """Print JSON output if enabled."""
        if self.enabled:
            click.echo(json.dumps(self._data, indent=2, default=str, ensure_ascii=False))


# Custom context class to hold shared state
class Context:
    """CLI context holding shared configuration and state."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: int = 0
        self.quiet: bool = False
        self.json_output: bool = False
        self.output: JSONOutput = JSONOutput()

    def log(self, message: str, level: int = 0) -> None:
        """Log a message if verbosity allows.

        Args:
            message: Message to log.
            level: Required verbosity level (0=normal, 1=-v, 2=-vv).
        """
        if self.json_output:
            return
        if self.quiet and level == 0:
            return
        if level <= self.verbose or level == 0:
            click.echo(message)

    def warn(self, message: str) -> None:
        """Log a warning message."""
        if self.json_output:
            self.output.set("warning", message)
        else:
            click.echo(f"Warning: {message}", err=True)

    def error(self, message: str) -> None:
        """Log an error message."""
        if self.json_output:
            self.output.set("error", message)
            self.output.set("status", "error")
        else:
            click.echo(f"Error: {message}", err=True)

    def notify(self, message: str, category: str) -> None:
        """Surface a session notification."""
        if category == "error":
            self.error(message)
        else:
            self.warn(message)

    def fail(self, message: str, code: int = 1) -> None:
        """Report an error and exit."""
        self.error(message)
        if self.json_output:
            self.output.output()
        sys.exit(code)


pass_context = click.make_pass_decorator(Context, ensure=True)


class Session:
    """One controller session wired to the Leaflet map and list collector."""

    def __init__(
        self,
        config: Config,
        notify: Callable[[str, str], None],
        position_source: PositionSource | None = None,
    ) -> None:
        data_dir = ensure_data_dir(config)

        self.map_view = LeafletMapView()
        self.collector = ListCollector()
        self.controller = ActivityController(
            self.map_view,
            position_source or create_position_source(config),
            JsonFileStore(get_storage_path(data_dir)),
            renderer=self.collector,
            notify=notify,
            storage_key=config.storage.key,
            zoom=config.map.zoom,
        )

    @property
    def handle(self) -> Any:
        return self.controller.session.map_handle


def _open_session(ctx: Context, position_source: PositionSource | None = None) -> Session:
    """Create a session from the loaded configuration, exiting on bad config."""
    config = ctx.config
    if config is None:
        ctx.fail("Configuration not loaded")

    try:
        return Session(config, ctx.notify, position_source)
    except ValueError as e:
        ctx.fail(f"Invalid configuration: {e}", code=2)
        raise


def _parse_latlng(_click_ctx: click.Context, _param: click.Parameter, value: str | None) -> Coordinates | None:
    """Parse a ``LAT,LNG`` option value."""
    if value is None:
        return None
    parts = value.split(",")
    if len(parts) != 2:
        raise click.BadParameter("expected LAT,LNG")
    try:
        return Coordinates.coerce((float(parts[0]), float(parts[1])))
    except (ValueError, InvalidActivityInput) as e:
        raise click.BadParameter(str(e)) from e


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
)
@click.option(
    "--data-dir",
    "-d",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Data directory path (default: ./data)",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-error output",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output in JSON format",
)
@click.version_option(version=__version__, prog_name="mapty")
@pass_context
def main(
    ctx: Context,
    config_path: Path | None,
    data_dir: Path | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
) -> None:
    """Map-based running and cycling log.

    Log runs and rides at a point on the map, list them with pace and
    speed, and render them on an interactive map.
    """
    ctx.verbose = verbose
    ctx.quiet = quiet
    ctx.json_output = json_output
    ctx.output = JSONOutput(json_output)

    try:
        ctx.config = load_config(config_path)
    except (OSError, ValueError) as e:
        ctx.fail(f"Invalid configuration: {e}", code=2)

    # Override data directory if specified
    if data_dir is not None:
        ctx.config.data.directory = data_dir

    setup_logging(
        ctx.config,
        console_level=logging.DEBUG if verbose >= 2 else logging.INFO,
        quiet=quiet or json_output,
    )


def _add_activity(ctx: Context, kind: ActivityKind, at: Coordinates, **values: str) -> None:
    """Log one activity through a full session."""
    session = _open_session(ctx)

    controller = session.controller
    controller.start()
    if controller.phase is not Phase.MAP_READY:
        ctx.fail("Map is unavailable without a position; configure a home position or location source")

    session.map_view.click(session.handle, at)
    controller.set_kind(kind)
    controller.fill(**values)
    record = controller.submit()
    if record is None:
        # The controller already surfaced the validation error
        if ctx.json_output:
            ctx.output.output()
        sys.exit(2)

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "activity": entry_to_dict(record.list_entry()),
            "total": len(controller.log),
        })
        ctx.output.output()
    else:
        ctx.log(f"Logged {record.description} ({record.id})")
        ctx.log(f"{len(controller.log)} activities in log", level=1)


@main.group()
def add() -> None:
    """Log a new activity at a point on the map."""
    pass


@add.command(name="running")
@click.option("--at", "at", required=True, callback=_parse_latlng, help="Map point as LAT,LNG")
@click.option("--distance", required=True, help="Distance in km")
@click.option("--duration", required=True, help="Duration in minutes")
@click.option("--cadence", required=True, help="Cadence in steps per minute")
@pass_context
def add_running(ctx: Context, at: Coordinates, distance: str, duration: str, cadence: str) -> None:
    """Log a run."""
    _add_activity(ctx, ActivityKind.RUNNING, at, distance=distance, duration=duration, cadence=cadence)


@add.command(name="cycling")
@click.option("--at", "at", required=True, callback=_parse_latlng, help="Map point as LAT,LNG")
@click.option("--distance", required=True, help="Distance in km")
@click.option("--duration", required=True, help="Duration in minutes")
@click.option("--elevation", required=True, help="Elevation gain in meters")
@pass_context
def add_cycling(ctx: Context, at: Coordinates, distance: str, duration: str, elevation: str) -> None:
    """Log a ride."""
    _add_activity(ctx, ActivityKind.CYCLING, at, distance=distance, duration=duration, elevation=elevation)


@main.command(name="list")
@pass_context
def list_cmd(ctx: Context) -> None:
    """List logged activities, newest first.

    Does not need a position; the list is restored from storage only.
    """
    session = _open_session(ctx, DeferredPositionSource())
    session.controller.start()
    entries = session.collector.entries

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "count": len(entries),
            "activities": [entry_to_dict(e) for e in reversed(entries)],
        })
        ctx.output.output()
    elif entries:
        click.echo(session.collector.render_text())
    else:
        ctx.log("No activities logged yet")


@main.command(name="map")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output HTML file (default: stdout or ./map.html)",
)
@click.option(
    "--focus",
    "focus_id",
    help="Center the map on this activity id",
)
@click.option(
    "--serve",
    is_flag=True,
    help="Start local HTTP server to view map",
)
@click.option(
    "--port",
    default=8080,
    help="Server port (default: 8080)",
)
@pass_context
def map_cmd(
    ctx: Context,
    output: Path | None,
    focus_id: str | None,
    serve: bool,
    port: int,
) -> None:
    """Generate interactive map with the activity list."""
    from mapty.views.map import serve_map

    session = _open_session(ctx)

    controller = session.controller
    controller.start()
    if controller.phase is not Phase.MAP_READY:
        ctx.fail("Map is unavailable without a position")

    if focus_id is not None and controller.select(focus_id) is None:
        ctx.warn(f"No activity with id {focus_id}")

    html = generate_map_html(
        session.handle,
        list_html=session.collector.render_html(),
        activities=[
            {"id": r.id, "coords": [r.coordinates.lat, r.coordinates.lng]} for r in controller.log
        ],
    )

    if serve:
        output_path = output or Path("./map.html")
        output_path.write_text(html, encoding="utf-8")
        ctx.log(f"Map saved to {output_path}")
        ctx.log(f"Starting server at http://127.0.0.1:{port}")
        serve_map(output_path, port=port)
    elif output:
        output.write_text(html, encoding="utf-8")
        if ctx.json_output:
            ctx.output.update({
                "status": "success",
                "output": str(output),
                "center": [session.handle.center.lat, session.handle.center.lng],
                "markers": len(session.handle.markers),
            })
            ctx.output.output()
        else:
            ctx.log(f"Map saved to {output}")
    else:
        click.echo(html)


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@pass_context
def reset(ctx: Context, yes: bool) -> None:
    """Delete all logged activities."""
    if not yes and not click.confirm("Delete all logged activities?"):
        ctx.log("Aborted")
        return

    session = _open_session(ctx, DeferredPositionSource())
    try:
        session.controller.reset()
    except StorageError as e:
        ctx.fail(f"Reset failed: {e}")

    if ctx.json_output:
        ctx.output.set("status", "success")
        ctx.output.output()
    else:
        ctx.log("All activities deleted")


if __name__ == "__main__":
    main()
