from __future__ import annotations

import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_ledger, render_ledger_entry, render_reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the sensor energy ledger service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
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
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, http_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("write")
def write_command(
    ctx: typer.Context,
    pwm: float = typer.Option(..., "--pwm", help="PWM duty value (0-255)."),
    rpm: float = typer.Option(0.0, "--rpm", help="Motor speed."),
    load_weight: float = typer.Option(0.0, "--load-weight", "-w", help="Load cell weight."),
) -> None:
    """Write a single raw reading."""
    state = _get_state(ctx)
    message = state.client.write_reading(pwm=pwm, rpm=rpm, load_weight=load_weight)
    typer.secho(message, fg=typer.colors.GREEN)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recently written reading."""
    state = _get_state(ctx)
    payload = state.client.latest_reading()
    if payload is None:
        typer.echo("No sensor data written yet.")
        return
    render_reading(payload)


@app.command("history")
def history_command(ctx: typer.Context) -> None:
    """Show recent readings with running daily totals."""
    state = _get_state(ctx)
    render_history(state.client.history())


@app.command("ledger")
def ledger_command(
    ctx: typer.Context,
    day: Optional[datetime] = typer.Argument(
        None, formats=["%Y-%m-%d"], help="Calendar date; omit to list every entry."
    ),
) -> None:
    """Show daily energy and cost totals."""
    state = _get_state(ctx)
    if day is None:
        render_ledger(state.client.ledger_entries())
        return
    render_ledger_entry(state.client.ledger_entry(day.date()))


@app.command("simulate")
def simulate_command(
    ctx: typer.Context,
    count: int = typer.Option(10, "--count", "-n", min=1, help="Number of readings to send."),
    interval: Optional[float] = typer.Option(
        None, "--interval", help="Seconds between readings."
    ),
    pwm_min: float = typer.Option(0.0, "--pwm-min"),
    pwm_max: float = typer.Option(255.0, "--pwm-max"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible runs."),
) -> None:
    """Send a stream of synthetic readings, as a bench producer would."""
    state = _get_state(ctx)
    if pwm_max < pwm_min:
        raise typer.BadParameter("--pwm-max must not be below --pwm-min.")
    delay = interval if interval is not None else state.config.simulate_interval
    rng = random.Random(seed)
    for index in range(count):
        pwm = round(rng.uniform(pwm_min, pwm_max))
        rpm = round(pwm * 12 + rng.uniform(-50, 50), 1)
        load_weight = round(rng.uniform(0.0, 5.0), 2)
        state.client.write_reading(pwm=pwm, rpm=rpm, load_weight=load_weight)
        typer.echo(f"[{index + 1}/{count}] pwm={pwm} rpm={rpm} load={load_weight}")
        if index + 1 < count:
            time.sleep(delay)
    typer.secho(f"Sent {count} readings.", fg=typer.colors.GREEN)
