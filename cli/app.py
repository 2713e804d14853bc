from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import typer

from app.schemas import ReportResponse
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_report
from logging_config import configure_logging
from services.parser import parse_date
from services.processor import ReportService, build_default_service


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Aggregate NAME,DATE,VALUE instrument records locally or through the API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _emit(payload: dict, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(payload, indent=2))
    else:
        render_report(payload)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Aggregator API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the API to respond.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("run")
def run_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to record file."),
    window_size: Optional[int] = typer.Option(
        None,
        "--window-size",
        "-w",
        min=1,
        help="Observations kept per instrument by the default window sum.",
    ),
    as_of: Optional[str] = typer.Option(
        None,
        "--as-of",
        help="Latest accepted observation date, e.g. 19-Dec-2014.",
    ),
    max_lines: Optional[int] = typer.Option(
        None,
        "--max-lines",
        min=1,
        help="Stop after reading this many lines.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Emit diagnostics to stderr at this level (e.g. INFO, DEBUG).",
    ),
) -> None:
    """Aggregate a local record file."""
    if log_level:
        configure_logging(log_level.upper())

    config = build_default_service().config
    if window_size is not None:
        config = replace(config, window_size=window_size)
    if as_of is not None:
        try:
            config = replace(config, as_of=parse_date(as_of))
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--as-of") from exc

    processed = ReportService(config).process_path(file, max_lines=max_lines)
    response = ReportResponse.from_processed(processed)
    _emit(response.model_dump(mode="json"), as_json)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to record file."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Send a record file to the aggregator API and display the report."""
    state = _get_state(ctx)
    if not as_json:
        typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    payload = state.client.create_report(file)
    _emit(payload, as_json)
