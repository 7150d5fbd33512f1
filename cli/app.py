from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_latest, render_mapping, render_risk


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting the sensor feed service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between requests when watching.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to keep watching.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the latest reading and its risk level."""
    state = _get_state(ctx)
    render_latest(state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    summary: bool = typer.Option(
        False,
        "--summary/--no-summary",
        help="Also print per-sensor aggregates.",
    ),
) -> None:
    """List the reading history of the active source."""
    state = _get_state(ctx)
    payload = state.client.get_history()
    aggregates = state.client.get_summary() if summary else None
    render_history(payload, aggregates)


@app.command("risk")
def risk_command(ctx: typer.Context) -> None:
    """Show the current risk assessment."""
    state = _get_state(ctx)
    render_risk(state.client.get_risk())


@app.command("refresh")
def refresh_command(ctx: typer.Context) -> None:
    """Ask the service to poll the telemetry feed now."""
    state = _get_state(ctx)
    typer.echo(f"Refreshing {state.config.base_url} ...")
    render_latest(state.client.refresh())


@app.command("mapping")
def mapping_command(ctx: typer.Context) -> None:
    """Show which feed field carries each sensor."""
    state = _get_state(ctx)
    render_mapping(state.client.get_mapping())


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Override poll interval while watching.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Override how long to watch.",
    ),
) -> None:
    """Print each new reading until the timeout elapses."""
    state = _get_state(ctx)
    interval = poll_interval if poll_interval is not None else state.config.poll_interval
    watch_timeout = timeout if timeout is not None else state.config.poll_timeout
    typer.echo(f"Watching (interval={interval}s, timeout={watch_timeout}s)...")

    def on_update(payload: dict) -> None:
        typer.echo()
        render_latest(payload)

    updates = state.client.watch(interval=interval, timeout=watch_timeout, on_update=on_update)
    typer.echo()
    typer.echo(f"{len(updates)} update(s) received.")
