"""CLI commands for the verification gate."""

import json
from pathlib import Path

from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.text import Text

from vgate.gate.command import RunnerError
from vgate.gate.config import ConfigError, GateConfig, load_config
from vgate.gate.models import GateDecision, GateRun, ReportFormat
from vgate.gate.pipeline import GatePipeline
from vgate.gate.reporter import exit_code, render

# Exit code for configuration and runner errors (0/1 come from the decision)
EXIT_ERROR = 2

err_console = Console(stderr=True)

_LINE_STYLES = {
    "✓": "green",
    "✗": "red",
    "⚠": "yellow",
    "ℹ": "blue",
}


def verify_command(
    project_root: Path,
    command: str | None = None,
    timeout: int | None = None,
    policy: str | None = None,
    format: str = "text",
    parser: str | None = None,
    config_path: Path | None = None,
    history_path: Path | None = None,
    parallel: bool = False,
) -> int:
    """Run the verification gate on a project.

    Args:
        project_root: Root directory of the project
        command: Test command (overrides config and detection)
        timeout: Timeout in seconds (overrides config)
        policy: "block" or "warn" (overrides config)
        format: Output format: "text" or "json"
        parser: Format hint restricting the output parser
        config_path: Explicit config file
        history_path: If set, append the outcome to this JSONL file
        parallel: Run quality checks in parallel

    Returns:
        Exit code (0 = allowed, 1 = blocked, 2 = config/runner error)
    """
    try:
        if not project_root.exists():
            raise ConfigError(f"Project root does not exist: {project_root}")

        config = load_config(
            project_root,
            config_path=config_path,
            overrides={
                "command": command,
                "timeout_seconds": timeout,
                "policy": policy,
                "format_hint": parser,
                "parallel_checks": parallel or None,
            },
        )
        run = GatePipeline(config=config, project_root=project_root).run()

    except ConfigError as e:
        _output_error(e.message, "config", format)
        return EXIT_ERROR
    except RunnerError as e:
        _output_error(e.message, e.kind, format)
        return EXIT_ERROR
    except Exception as e:
        _output_error(str(e), "internal", format)
        return EXIT_ERROR

    _output_decision(run.decision, format)

    if history_path is not None:
        _record(run, config, history_path, project_root)

    return exit_code(run.decision)


def _record(run: GateRun, config: GateConfig, history_path: Path, project_root: Path) -> None:
    """Append the run to the history log."""
    from vgate.history import GateHistory, GateRunRecord

    path = history_path if history_path.is_absolute() else project_root / history_path
    try:
        GateHistory(path).append(GateRunRecord.from_run(run, config))
    except OSError as e:
        # Exit code still comes from the decision
        err_console.print(f"[yellow]Warning:[/yellow] could not write history: {escape(str(e))}")


def _output_decision(decision: GateDecision, format: str) -> None:
    """Output the gate decision in the specified format.

    Args:
        decision: Decision to output
        format: Output format ("text" or "json")
    """
    if format == ReportFormat.JSON:
        print(render(decision, ReportFormat.JSON))
        return

    lines = render(decision, ReportFormat.TEXT).splitlines()
    for line in lines[:-1]:
        style = _LINE_STYLES.get(line[:1])
        rprint(Text(line, style=style) if style else Text(line))

    rprint(Text(lines[-1], style="bold green" if decision.allowed else "bold red"))


def _output_error(message: str, kind: str, format: str) -> None:
    """Output a configuration or runner error."""
    if format == ReportFormat.JSON:
        print(json.dumps({"error": message, "kind": str(kind)}))
    else:
        rprint(f"[red]Error:[/red] {escape(message)}")
