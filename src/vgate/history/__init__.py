"""Gate run history: append-only record of past gate outcomes."""

from vgate.history.cli import history_command
from vgate.history.models import GateRunRecord, HistorySummary
from vgate.history.storage import DEFAULT_HISTORY_PATH, GateHistory

__all__ = [
    "DEFAULT_HISTORY_PATH",
    "GateHistory",
    "GateRunRecord",
    "HistorySummary",
    "history_command",
]
