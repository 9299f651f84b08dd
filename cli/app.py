from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_catalog, render_history_summary, render_readings, render_status


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the environmental monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show observer count, uptime and history mode."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List locations and sensor types with their thresholds."""
    state = _get_state(ctx)
    render_catalog(state.client.get_catalog())


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Only show this location id."),
    sensor: Optional[str] = typer.Option(None, "--sensor", "-s", help="Only show this sensor type."),
) -> None:
    """Fetch a freshly generated reading for every location and sensor."""
    state = _get_state(ctx)
    readings = state.client.get_latest()
    if location:
        readings = [r for r in readings if r.get("location_id") == location]
    if sensor:
        readings = [r for r in readings if r.get("sensor_type") == sensor.upper()]
    render_readings(readings)


@app.command("history")
def history_command(
    ctx: typer.Context,
    hours: Optional[int] = typer.Option(None, "--hours", min=1, help="Trailing window in hours."),
    show: bool = typer.Option(False, "--show/--summary", help="Print every reading instead of a summary."),
) -> None:
    """Summarize readings from the trailing window."""
    state = _get_state(ctx)
    readings = state.client.get_history(hours)
    if show:
        render_readings(readings)
        return
    render_history_summary(readings, hours)
