"""verify-gate CLI application."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated

import typer
from rich import print as rprint

import vgate as vgate_pkg
from vgate.gate.models import Policy
from vgate.gate.parser import ParserFormat


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    text = "text"
    json = "json"


app = typer.Typer(
    name="verify-gate",
    help="Run tests, verify what they claim, and block on critical failures.",
)


def version_callback(value: bool) -> None:
    if value:
        rprint(f"verify-gate {vgate_pkg.__version__}")
        raise typer.Exit()


def _load_env(project_root: str | None) -> None:
    """Load .env from the project root so the test command inherits it."""
    from pathlib import Path

    from dotenv import load_dotenv

    root = Path(project_root) if project_root else Path.cwd()
    load_dotenv(root / ".env")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    command: Annotated[
        str | None,
        typer.Option("--command", "-c", help="Test command (detected if not specified)"),
    ] = None,
    timeout: Annotated[
        int | None,
        typer.Option("--timeout", "-t", min=1, help="Command timeout in seconds"),
    ] = None,
    policy: Annotated[
        Policy | None,
        typer.Option("--policy", help="block: critical failures block; warn: never block"),
    ] = None,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.text,
    parser: Annotated[
        ParserFormat | None,
        typer.Option("--parser", help="Only parse output as this format"),
    ] = None,
    config: Annotated[
        str | None,
        typer.Option("--config", help="Config file (default: .verify-gate.toml or pyproject)"),
    ] = None,
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
    history: Annotated[
        str | None,
        typer.Option("--history", help="Append the outcome to this JSONL file"),
    ] = None,
    parallel: Annotated[
        bool,
        typer.Option("--parallel", help="Run quality checks in parallel"),
    ] = False,
) -> None:
    """Run the verification gate.

    Exit codes: 0 allowed, 1 blocked, 2 configuration or runner error.
    """
    if ctx.invoked_subcommand is not None:
        return

    from pathlib import Path

    from vgate.gate.cli import verify_command

    _load_env(project_root)
    root = Path(project_root) if project_root else Path.cwd()

    exit_code = verify_command(
        project_root=root,
        command=command,
        timeout=timeout,
        policy=policy.value if policy else None,
        format=format.value,
        parser=parser.value if parser else None,
        config_path=Path(config) if config else None,
        history_path=Path(history) if history else None,
        parallel=parallel,
    )
    raise typer.Exit(exit_code)


@app.command("history")
def history(
    history_file: Annotated[
        str | None,
        typer.Option("--history", help="History JSONL file"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=0, help="Number of recent runs to show"),
    ] = 20,
    format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = OutputFormat.text,
    project_root: Annotated[
        str | None,
        typer.Option("--project-root", "-p", help="Project root directory"),
    ] = None,
) -> None:
    """Show recorded gate runs."""
    from pathlib import Path

    from vgate.history.cli import history_command

    root = Path(project_root) if project_root else Path.cwd()
    exit_code = history_command(
        project_root=root,
        history_path=Path(history_file) if history_file else None,
        limit=limit,
        format=format.value,
    )
    raise typer.Exit(exit_code)
