from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_value(result: Dict[str, Any]) -> str:
    if result.get("status") != "ok" or result.get("value") is None:
        return "no data"
    return f"{result['value']:.6f}"


def render_report(payload: Dict[str, Any]) -> None:
    echo_heading("Aggregation Report")
    echo_key_values(
        [
            ("source", payload.get("source")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )

    results = payload.get("results") or []
    typer.echo()
    echo_heading("Instruments")
    if results:
        for result in results:
            typer.echo(
                f"  - {result.get('name')} [{result.get('strategy')}]: {_format_value(result)}"
            )
    else:
        typer.echo("No instruments recorded.")

    stats = payload.get("stats") or {}
    typer.echo()
    echo_heading("Input")
    echo_key_values(
        [
            ("lines_read", stats.get("lines_read")),
            ("accepted", stats.get("accepted")),
            ("rejected", stats.get("rejected")),
            ("parse_failures", stats.get("parse_failures")),
        ]
    )
    breakdown = [
        (key, stats.get(key))
        for key in ("malformed_line", "invalid_date", "invalid_value", "future_date", "weekend_rejected")
        if stats.get(key)
    ]
    for key, count in breakdown:
        typer.echo(f"  - {key}: {count}")
