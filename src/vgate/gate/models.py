"""Gate data models.

Everything here is created fresh per gate run and never mutated afterwards.
"""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator


class Severity(StrEnum):
    """Verdict severity levels.

    Only CRITICAL failures can block under the block policy.
    """

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Policy(StrEnum):
    """How critical failures affect the decision."""

    BLOCK = "block"
    WARN = "warn"


class ReportFormat(StrEnum):
    """Reporter output formats."""

    JSON = "json"
    TEXT = "text"


class CommandResult(BaseModel):
    """Captured outcome of running the test command.

    A timed-out run carries exit_code -1, which no real process returns.
    """

    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False
    duration_ms: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def output(self) -> str:
        """Combined stdout and stderr (Jest prints its summary to stderr)."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


class FailureDetail(BaseModel):
    """A single failing test isolated from runner output."""

    test_name: str
    file: str | None = None
    line: int | None = None
    message: str = ""

    model_config = ConfigDict(frozen=True)


class TestReport(BaseModel):
    """Structured view of one test run's output.

    parse_succeeded=False means no summary line was recognized. In that case
    every count is 0, which is NOT the same as a run with zero tests.
    """

    __test__ = False  # keep pytest from collecting this class

    total: NonNegativeInt = 0
    passed: NonNegativeInt = 0
    failed: NonNegativeInt = 0
    skipped: NonNegativeInt = 0
    failures: list[FailureDetail] = Field(default_factory=list)
    raw_output: str = ""
    parse_succeeded: bool = False
    format: str | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_counts(self) -> "TestReport":
        if self.passed + self.failed > self.total:
            msg = (
                f"passed ({self.passed}) + failed ({self.failed}) "
                f"exceeds total ({self.total})"
            )
            raise ValueError(msg)
        if not self.parse_succeeded and (
            self.total or self.passed or self.failed or self.skipped
        ):
            raise ValueError("unparsed reports must carry zero counts")
        return self

    @classmethod
    def unparsed(cls, raw_output: str) -> "TestReport":
        """Report for output that no adapter recognized."""
        return cls(raw_output=raw_output, parse_succeeded=False)


class CheckVerdict(BaseModel):
    """Pass/fail judgment of one quality check."""

    check_name: str
    passed: bool
    severity: Severity
    message: str

    model_config = ConfigDict(frozen=True)

    @property
    def is_blocking_failure(self) -> bool:
        """True for a failed critical verdict."""
        return not self.passed and self.severity == Severity.CRITICAL


class GateDecision(BaseModel):
    """Combined outcome of all verdicts under a policy.

    Field names are a stable contract for hook scripts reading the JSON report.
    """

    allowed: bool
    verdicts: list[CheckVerdict]
    summary: str

    model_config = ConfigDict(frozen=True)

    @property
    def failed_verdicts(self) -> list[CheckVerdict]:
        """Get verdicts that did not pass."""
        return [v for v in self.verdicts if not v.passed]

    @property
    def critical_failures(self) -> list[CheckVerdict]:
        """Get failed verdicts with critical severity."""
        return [v for v in self.verdicts if v.is_blocking_failure]


class RepoContext(BaseModel):
    """Repository facts the quality checks read.

    Collected once per run. Problems gathering a fact are recorded in
    `errors` (keyed by field name) instead of raised, so the check that
    depends on the fact can degrade on its own.
    """

    project_root: Path
    # Exit code of the test command; None when judging a report without a run
    exit_code: int | None = None
    test_files: list[str] = Field(default_factory=list)
    assertion_count: int = 0
    test_declaration_count: int = 0
    current_coverage: float | None = None
    baseline_coverage: float | None = None
    complexity: dict[str, int] | None = None
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class GateRun(BaseModel):
    """Everything one pipeline invocation produced."""

    result: CommandResult
    report: TestReport
    decision: GateDecision

    model_config = ConfigDict(frozen=True)
