from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_millis(value: Any) -> str:
    if not isinstance(value, (int, float)):
        return "-"
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Reading")
    echo_key_values(
        [
            ("pwm", payload.get("pwm")),
            ("rpm", payload.get("rpm")),
            ("load_weight", payload.get("load_weight")),
            ("timestamp", _format_millis(payload.get("timestamp"))),
        ]
    )


def render_history(payload: Dict[str, Any]) -> None:
    records = payload.get("data") or []
    echo_heading(f"History ({payload.get('count', len(records))} records)")
    if not records:
        typer.echo("No readings processed yet.")
        return
    for record in records:
        typer.echo(
            f"  {_format_millis(record.get('timestamp'))}"
            f"  pwm={record.get('pwm')} rpm={record.get('rpm')}"
            f" load={record.get('load_weight')}"
            f"  kwh={record.get('total_kwh', 0.0):.6f}"
            f" cost={record.get('total_cost', 0.0):.2f}"
        )


def render_ledger_entry(payload: Dict[str, Any]) -> None:
    echo_heading(f"Ledger {payload.get('date')}")
    echo_key_values(
        [
            ("total_kwh", payload.get("total_kwh")),
            ("total_cost", payload.get("total_cost")),
            ("updated_at", payload.get("updated_at")),
        ]
    )


def render_ledger(entries: List[Dict[str, Any]]) -> None:
    echo_heading("Daily Ledger")
    if not entries:
        typer.echo("No ledger entries recorded.")
        return
    for entry in entries:
        typer.echo(
            f"  - {entry.get('date')}: kwh={entry.get('total_kwh')} cost={entry.get('total_cost')}"
        )
