"""Smoke tests for the verify-gate CLI."""

import json
from pathlib import Path

from typer.testing import CliRunner

from vgate.cli.main import app

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0-dev" in result.output


def test_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "verify-gate" in result.output.lower()
    for option in ("--command", "--timeout", "--policy", "--format"):
        assert option in result.output


def test_history_listed_in_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "history" in result.output


def test_allowed_run(python_project: Path) -> None:
    result = runner.invoke(
        app, ["-p", str(python_project), "--command", "echo 'Tests: 5 passed, 5 total'"]
    )
    assert result.exit_code == 0
    assert "ALLOWED" in result.output


def test_blocked_run_json(python_project: Path) -> None:
    result = runner.invoke(
        app,
        [
            "-p",
            str(python_project),
            "--command",
            "echo 'Tests: 3 passed, 2 failed, 5 total'",
            "--format",
            "json",
        ],
    )
    assert result.exit_code == 1
    assert json.loads(result.output)["allowed"] is False


def test_warn_policy(python_project: Path) -> None:
    result = runner.invoke(
        app,
        [
            "-p",
            str(python_project),
            "-c",
            "echo 'Tests: 3 passed, 2 failed, 5 total'",
            "--policy",
            "warn",
        ],
    )
    assert result.exit_code == 0


def test_timeout_exit_code(python_project: Path) -> None:
    result = runner.invoke(app, ["-p", str(python_project), "-c", "sleep 5", "-t", "1"])
    assert result.exit_code == 2
    assert "timed out" in result.output


def test_invalid_policy_rejected() -> None:
    result = runner.invoke(app, ["--policy", "maybe"])
    assert result.exit_code != 0


def test_history_subcommand(python_project: Path) -> None:
    """A recorded run shows up in `verify-gate history`."""
    history = str(python_project / "runs.jsonl")
    runner.invoke(
        app,
        ["-p", str(python_project), "-c", "echo 'Tests: 5 passed, 5 total'", "--history", history],
    )

    result = runner.invoke(app, ["history", "--history", history, "--format", "json"])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["summary"]["runs"] == 1
    assert data["runs"][0]["allowed"] is True


def test_history_empty(tmp_path: Path) -> None:
    result = runner.invoke(app, ["history", "-p", str(tmp_path)])
    assert result.exit_code == 0
    assert "No gate runs recorded" in result.output
