"""Run history data models."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from vgate.gate.config import GateConfig
from vgate.gate.models import GateRun, Policy


class GateRunRecord(BaseModel):
    """One gate outcome, as appended to the history log.

    Records what was run and how it was judged; raw output is not kept.
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    command: str
    policy: Policy
    allowed: bool
    total: int
    passed: int
    failed: int
    parse_succeeded: bool
    failed_checks: list[str] = Field(default_factory=list)
    duration_ms: int = 0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_run(cls, run: GateRun, config: GateConfig) -> "GateRunRecord":
        """Build a record from a finished pipeline run."""
        return cls(
            command=config.command,
            policy=config.policy,
            allowed=run.decision.allowed,
            total=run.report.total,
            passed=run.report.passed,
            failed=run.report.failed,
            parse_succeeded=run.report.parse_succeeded,
            failed_checks=[v.check_name for v in run.decision.failed_verdicts],
            duration_ms=run.result.duration_ms,
        )


class HistorySummary(BaseModel):
    """Aggregate view over recorded runs."""

    runs: int
    blocked: int
    unparsed: int

    @property
    def block_rate(self) -> float:
        """Share of runs that were blocked (0.0 when there are none)."""
        return self.blocked / self.runs if self.runs else 0.0
