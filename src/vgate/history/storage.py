"""JSONL storage for gate run history."""

import json
from pathlib import Path

from vgate.history.models import GateRunRecord, HistorySummary

DEFAULT_HISTORY_PATH = Path(".verify-gate") / "history.jsonl"


class GateHistory:
    """JSONL storage backend for gate run records.

    Append-only storage with one record per line. Written by the caller after
    a run; the gate pipeline never reads it.
    """

    def __init__(self, storage_path: Path) -> None:
        """Initialize storage with path to JSONL file.

        Args:
            storage_path: Path to JSONL file (will be created if doesn't exist)
        """
        self.storage_path = storage_path

    def append(self, record: GateRunRecord) -> None:
        """Append a single record to the JSONL file.

        Args:
            record: Record to write
        """
        # Create parent directories if they don't exist
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.storage_path, "a", encoding="utf-8") as f:
            f.write(record.model_dump_json() + "\n")

    def read(self, limit: int | None = None) -> list[GateRunRecord]:
        """Read records, oldest first.

        Args:
            limit: If set, return only the most recent `limit` records

        Returns:
            List of records
        """
        if not self.storage_path.exists():
            return []

        records = []
        with open(self.storage_path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    records.append(GateRunRecord.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValueError):
                    # Skip corrupted lines
                    continue

        if limit is not None:
            return records[-limit:] if limit > 0 else []
        return records

    def summary(self) -> HistorySummary:
        """Summarize all recorded runs."""
        records = self.read()
        return HistorySummary(
            runs=len(records),
            blocked=sum(1 for r in records if not r.allowed),
            unparsed=sum(1 for r in records if not r.parse_succeeded),
        )
