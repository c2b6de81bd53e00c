"""History CLI command: show recorded gate runs."""

from __future__ import annotations

import json
from pathlib import Path

from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from vgate.history.models import GateRunRecord, HistorySummary
from vgate.history.storage import DEFAULT_HISTORY_PATH, GateHistory


def history_command(
    project_root: Path,
    history_path: Path | None = None,
    limit: int = 20,
    format: str = "text",
) -> int:
    """Show recorded gate runs.

    Args:
        project_root: Root directory of the project
        history_path: JSONL history file (default: .verify-gate/history.jsonl)
        limit: Number of most recent runs to show
        format: Output format: "text" or "json"

    Returns:
        Exit code (always 0; an absent history is empty)
    """
    path = history_path or DEFAULT_HISTORY_PATH
    if not path.is_absolute():
        path = project_root / path

    history = GateHistory(path)
    records = history.read(limit=limit)
    summary = history.summary()

    if format == "json":
        print(json.dumps(_history_to_dict(records, summary), indent=2))
    elif not records:
        rprint(f"[dim]No gate runs recorded in {escape(str(path))}[/dim]")
    else:
        _render_table(records, summary)
    return 0


def _history_to_dict(records: list[GateRunRecord], summary: HistorySummary) -> dict[str, object]:
    """Convert records and summary to a JSON-serializable dict."""
    return {
        "runs": [json.loads(r.model_dump_json()) for r in records],
        "summary": {**summary.model_dump(), "block_rate": summary.block_rate},
    }


def _render_table(records: list[GateRunRecord], summary: HistorySummary) -> None:
    """Render Rich history table to terminal."""
    table = Table(title="Gate History")
    table.add_column("When", style="cyan")
    table.add_column("Result")
    table.add_column("Passed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Failed checks")
    table.add_column("Duration", justify="right")

    for record in records:
        result = "[green]allowed[/green]" if record.allowed else "[red]blocked[/red]"
        if record.parse_succeeded:
            counts = (str(record.passed), str(record.failed), str(record.total))
        else:
            # Unparsed runs have no trustworthy counts
            counts = ("?", "?", "?")
        table.add_row(
            record.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            result,
            *counts,
            escape(", ".join(record.failed_checks)),
            f"{record.duration_ms:,}ms",
        )

    rprint(table)
    rprint(
        f"[dim]{summary.runs} runs, {summary.blocked} blocked "
        f"({summary.block_rate:.0%}), {summary.unparsed} unparsed[/dim]"
    )
