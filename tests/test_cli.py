"""Tests for the command-line interface."""

import json

from click.testing import CliRunner

from archscan.analyzer import CodeAnalyzer
from archscan.cli import build_exclusions, cli


def test_analyze_writes_json_report(sample_project, temp_dir):
    output = temp_dir / "report.json"
    runner = CliRunner()

    result = runner.invoke(cli, ["analyze", str(sample_project), "--output", str(output)])

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["summary"]["endpoints"] == 6
    assert "Analysis Summary" in result.output


def test_analyze_json_to_stdout(sample_project):
    runner = CliRunner()

    result = runner.invoke(cli, ["analyze", str(sample_project), "-o", "-"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert [f["path"] for f in data["files"]] == sorted(f["path"] for f in data["files"])


def test_analyze_parquet_dir(sample_project, temp_dir):
    runner = CliRunner()
    parquet_dir = temp_dir / "facts"

    result = runner.invoke(cli, ["analyze", str(sample_project), "--parquet-dir", str(parquet_dir)])

    assert result.exit_code == 0, result.output
    assert (parquet_dir / "client_calls.parquet").exists()


def test_endpoints_command_lists_routes_and_clients(sample_project):
    runner = CliRunner()

    result = runner.invoke(cli, ["endpoints", str(sample_project)])

    assert result.exit_code == 0, result.output
    assert "HTTP Endpoints" in result.output
    assert "GET" in result.output
    assert "HTTP Client Calls" in result.output


def test_build_exclusions():
    exclusions = build_exclusions(("migrations",), ("build",))

    assert "build" not in exclusions
    assert "migrations" in exclusions
    assert "__pycache__" in exclusions


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_interrupted_analysis_exits_130(sample_project, monkeypatch):
    def interrupt(self, file_path, display_path=None):
        raise KeyboardInterrupt

    monkeypatch.setattr(CodeAnalyzer, "analyze_path", interrupt)

    result = CliRunner().invoke(cli, ["analyze", str(sample_project), "-w", "1"])

    assert result.exit_code == 130
    assert "interrupted" in result.output
