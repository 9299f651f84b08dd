from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List

import typer

_STATUS_COLORS = {
    "normal": typer.colors.GREEN,
    "warning": typer.colors.YELLOW,
    "critical": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Monitor Status")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("connections", payload.get("connections")),
            ("uptime", f"{float(payload.get('uptime') or 0.0):.1f}s"),
            ("timestamp", payload.get("timestamp")),
            ("history_mode", payload.get("history_mode")),
        ]
    )


def render_catalog(payload: Dict[str, Any]) -> None:
    echo_heading("Locations")
    for location in payload.get("locations") or []:
        typer.echo(
            f"  - {location.get('id')}: {location.get('name')} "
            f"(zone={location.get('zone')}, intensity={location.get('intensity')})"
        )

    typer.echo()
    echo_heading("Sensor Types")
    for sensor in payload.get("sensor_types") or []:
        limits = sensor.get("thresholds") or {}
        typer.echo(
            f"  - {sensor.get('type')} [{sensor.get('unit')}]: "
            f"normal<={limits.get('normal')} warning<={limits.get('warning')} "
            f"critical>{limits.get('critical')}"
        )


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading("Readings")
    if not readings:
        typer.echo("No readings available.")
        return
    for reading in readings:
        status = reading.get("status") or "normal"
        line = (
            f"  {reading.get('timestamp')} {reading.get('location_id')} "
            f"{reading.get('sensor_type')}={reading.get('value')}{reading.get('unit')} "
            f"score={reading.get('quality_score')} "
        )
        typer.echo(line, nl=False)
        typer.secho(status, fg=_STATUS_COLORS.get(status))


def render_history_summary(readings: List[Dict[str, Any]], hours: int | None) -> None:
    echo_heading("History")
    window = f"{hours}h" if hours is not None else "default window"
    echo_key_values([("window", window), ("readings", len(readings))])
    if not readings:
        return
    echo_key_values(
        [
            ("newest", readings[0].get("timestamp")),
            ("oldest", readings[-1].get("timestamp")),
        ]
    )
    counts = Counter(reading.get("status") for reading in readings)
    typer.echo("per_status_count:")
    for status in ("normal", "warning", "critical"):
        typer.echo(f"  - {status}: {counts.get(status, 0)}")
