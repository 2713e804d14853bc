from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import pytest
from typer.testing import CliRunner

from cli.app import app

RECORDS = (
    "INSTRUMENT1,15-Dec-2014,2.0\n"
    "INSTRUMENT1,16-Dec-2014,4.0\n"
    "Z,01-Dec-2014,1.0\n"
    "Z,02-Dec-2014,2.0\n"
    "Z,03-Dec-2014,4.0\n"
    "Z,06-Dec-2014,8.0\n"
    "Z,22-Dec-2014,16.0\n"
)


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.uploaded_path: Path | None = None
        self.payload: Dict[str, Any] = {
            "source": "records.txt",
            "processing_ms": 3,
            "results": [
                {
                    "name": "INSTRUMENT1",
                    "strategy": "simple_mean",
                    "status": "ok",
                    "value": 3.0,
                    "observation_count": 2,
                },
                {
                    "name": "INSTRUMENT2",
                    "strategy": "month_filtered_mean",
                    "status": "no_data",
                    "value": None,
                    "observation_count": 0,
                },
            ],
            "stats": {"lines_read": 2, "accepted": 2, "rejected": 0, "parse_failures": 0},
        }
        self.closed = False

    def create_report(self, path: Path) -> Dict[str, Any]:
        self.uploaded_path = path
        return self.payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def records_path(tmp_path) -> Path:
    path = tmp_path / "records.txt"
    path.write_text(RECORDS)
    return path


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_run_renders_report(runner: CliRunner, records_path: Path) -> None:
    result = runner.invoke(app, ["run", str(records_path)])

    assert result.exit_code == 0, result.output
    assert "Aggregation Report" in result.stdout
    assert "INSTRUMENT1 [simple_mean]: 3.000000" in result.stdout
    assert "INSTRUMENT3 [population_variance]: no data" in result.stdout
    assert "Z [bounded_window_sum]: 7.000000" in result.stdout
    assert "weekend_rejected: 1" in result.stdout
    assert "future_date: 1" in result.stdout
    assert "parse_failures: 1" in result.stdout


def test_run_json_with_overrides(runner: CliRunner, records_path: Path) -> None:
    result = runner.invoke(
        app,
        ["run", str(records_path), "--json", "--window-size", "2", "--as-of", "31-Dec-2014"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    results = {item["name"]: item for item in payload["results"]}
    assert results["Z"]["value"] == 20.0
    assert results["Z"]["observation_count"] == 2
    assert payload["stats"]["future_date"] == 0


def test_run_max_lines(runner: CliRunner, records_path: Path) -> None:
    result = runner.invoke(app, ["run", str(records_path), "--json", "--max-lines", "3"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["stats"]["lines_read"] == 3


def test_run_rejects_invalid_as_of(runner: CliRunner, records_path: Path) -> None:
    result = runner.invoke(app, ["run", str(records_path), "--as-of", "2014-12-31"])

    assert result.exit_code != 0


def test_upload_renders_remote_report(monkeypatch, runner: CliRunner, records_path: Path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--base-url", "http://aggregator:9000/", "upload", str(records_path)])

    assert result.exit_code == 0, result.output
    assert stub.uploaded_path == records_path
    assert stub.config.base_url == "http://aggregator:9000"
    assert "INSTRUMENT2 [month_filtered_mean]: no data" in result.stdout
    assert stub.closed is True


def test_upload_json(monkeypatch, runner: CliRunner, records_path: Path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["upload", str(records_path), "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == stub.payload
