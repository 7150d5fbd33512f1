from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

SENSOR_UNITS = (
    ("temperature", "°C"),
    ("humidity", "%"),
    ("co2", "ppm"),
    ("co", "ppm"),
    ("h2", "ppm"),
)

RISK_COLORS = {
    "safe": typer.colors.GREEN,
    "warning": typer.colors.YELLOW,
    "danger": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_value(value: Optional[float], unit: str) -> str:
    if value is None:
        return "n/a"
    return f"{value:.1f} {unit}"


def echo_risk(level: Optional[str]) -> None:
    if level is None:
        typer.echo("risk: unknown")
        return
    typer.secho(f"risk: {level}", fg=RISK_COLORS.get(level), bold=level == "danger")


def render_latest(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Reading")
    if payload.get("using_simulated_data"):
        typer.secho("Using simulated data (live feed unavailable)", fg=typer.colors.YELLOW)
    echo_key_values(
        [
            ("source", payload.get("source")),
            ("last_updated", payload.get("last_updated")),
        ]
    )
    reading = payload.get("reading")
    if not reading:
        typer.echo("No reading available.")
        return
    typer.echo(f"timestamp: {reading.get('timestamp')}")
    for kind, unit in SENSOR_UNITS:
        typer.echo(f"  - {kind}: {format_value(reading.get(kind), unit)}")
    risk = payload.get("risk") or {}
    echo_risk(risk.get("level"))
    for reason in risk.get("reasons") or []:
        typer.echo(f"  * {reason}")


def render_history(payload: Dict[str, Any], summary: Optional[Dict[str, Any]] = None) -> None:
    readings = payload.get("readings") or []
    echo_heading(f"History ({payload.get('source')}, {len(readings)} readings)")
    if not readings:
        typer.echo("No readings available.")
    for reading in readings:
        values = " ".join(
            f"{kind}={format_value(reading.get(kind), unit)}" for kind, unit in SENSOR_UNITS
        )
        typer.echo(f"  {reading.get('timestamp')} {values}")
    echo_risk(payload.get("risk_level"))

    if not summary:
        return
    typer.echo()
    echo_heading("Summary")
    per_kind = summary.get("per_kind") or {}
    for kind, unit in SENSOR_UNITS:
        stats = per_kind.get(kind) or {}
        typer.echo(
            f"  - {kind}: count={stats.get('count', 0)} "
            f"min={format_value(stats.get('min_value'), unit)} "
            f"max={format_value(stats.get('max_value'), unit)} "
            f"mean={format_value(stats.get('mean_value'), unit)}"
        )


def render_risk(payload: Dict[str, Any]) -> None:
    echo_heading("Risk")
    echo_key_values(
        [
            ("source", payload.get("source")),
            ("timestamp", payload.get("timestamp")),
        ]
    )
    risk = payload.get("risk") or {}
    echo_risk(risk.get("level"))
    over = risk.get("over_threshold") or []
    if over:
        typer.echo(f"over threshold: {', '.join(over)}")
    typer.echo(f"history: {payload.get('history_level')}")


def render_mapping(payload: Dict[str, Any]) -> None:
    echo_heading(f"Channel Mapping ({payload.get('version')})")
    slots = payload.get("slots") or {}
    for kind, slot in sorted(slots.items(), key=lambda item: item[1]):
        typer.echo(f"  - {slot}: {kind}")
