"""Tests for gate history storage."""

from datetime import UTC, datetime
from pathlib import Path

from vgate.gate.config import GateConfig
from vgate.gate.evaluator import evaluate
from vgate.gate.models import CommandResult, GateRun, Policy, TestReport
from vgate.history.models import GateRunRecord, HistorySummary
from vgate.history.storage import GateHistory


def _record(allowed: bool = True, parse_succeeded: bool = True) -> GateRunRecord:
    return GateRunRecord(
        command="pytest",
        policy=Policy.BLOCK,
        allowed=allowed,
        total=5 if parse_succeeded else 0,
        passed=5 if parse_succeeded else 0,
        failed=0,
        parse_succeeded=parse_succeeded,
        failed_checks=[] if allowed else ["parse-succeeded"],
        duration_ms=1200,
    )


class TestGateRunRecord:
    """Test GateRunRecord model."""

    def test_from_run(self, passing_report: TestReport, make_verdict) -> None:
        """from_run copies counts, outcome, and failed check names."""
        decision = evaluate(
            [make_verdict("tests-exist"), make_verdict("complexity-cap", passed=False)],
            Policy.BLOCK,
        )
        run = GateRun(
            result=CommandResult(stdout="", stderr="", exit_code=0, duration_ms=850),
            report=passing_report,
            decision=decision,
        )

        record = GateRunRecord.from_run(run, GateConfig(command="npm test"))

        assert record.command == "npm test"
        assert record.policy == Policy.BLOCK
        assert record.allowed is False
        assert (record.total, record.passed, record.failed) == (5, 5, 0)
        assert record.failed_checks == ["complexity-cap"]
        assert record.duration_ms == 850

    def test_timestamp_defaults_to_now(self) -> None:
        """Records are timestamped in UTC."""
        before = datetime.now(UTC)
        record = _record()
        assert record.timestamp >= before
        assert record.timestamp.tzinfo is not None


class TestHistorySummary:
    """Test HistorySummary model."""

    def test_block_rate(self) -> None:
        """block_rate is blocked over runs."""
        assert HistorySummary(runs=4, blocked=1, unparsed=0).block_rate == 0.25

    def test_block_rate_empty(self) -> None:
        """No runs means a zero block rate."""
        assert HistorySummary(runs=0, blocked=0, unparsed=0).block_rate == 0.0


class TestGateHistory:
    """Test GateHistory JSONL storage."""

    def test_append_creates_file(self, tmp_path: Path) -> None:
        """append creates parent directories and the file."""
        path = tmp_path / ".verify-gate" / "history.jsonl"
        history = GateHistory(path)

        history.append(_record())

        assert path.exists()
        assert len(path.read_text().splitlines()) == 1

    def test_read_round_trip(self, tmp_path: Path) -> None:
        """Records read back in append order."""
        history = GateHistory(tmp_path / "history.jsonl")
        first, second = _record(), _record(allowed=False)
        history.append(first)
        history.append(second)

        assert history.read() == [first, second]

    def test_read_missing_file(self, tmp_path: Path) -> None:
        """A missing history is empty."""
        assert GateHistory(tmp_path / "history.jsonl").read() == []

    def test_read_limit(self, tmp_path: Path) -> None:
        """limit returns the most recent records."""
        history = GateHistory(tmp_path / "history.jsonl")
        for allowed in (True, True, False):
            history.append(_record(allowed=allowed))

        assert [r.allowed for r in history.read(limit=2)] == [True, False]
        assert history.read(limit=0) == []

    def test_corrupt_lines_skipped(self, tmp_path: Path) -> None:
        """Corrupt and blank lines are skipped."""
        path = tmp_path / "history.jsonl"
        history = GateHistory(path)
        history.append(_record())
        with open(path, "a") as f:
            f.write("{not json\n\n")
            f.write('{"command": "pytest"}\n')
        history.append(_record(allowed=False))

        assert [r.allowed for r in history.read()] == [True, False]

    def test_summary(self, tmp_path: Path) -> None:
        """summary counts runs, blocks, and unparsed runs."""
        history = GateHistory(tmp_path / "history.jsonl")
        history.append(_record())
        history.append(_record(allowed=False, parse_succeeded=False))
        history.append(_record(allowed=False))

        summary = history.summary()

        assert summary == HistorySummary(runs=3, blocked=2, unparsed=1)
