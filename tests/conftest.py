"""Shared test fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from vgate.gate.models import CheckVerdict, RepoContext, Severity, TestReport


@pytest.fixture
def passing_report() -> TestReport:
    """Report for a clean run: 5 passed, 5 total."""
    return TestReport(
        total=5,
        passed=5,
        failed=0,
        raw_output="Tests: 5 passed, 5 total",
        parse_succeeded=True,
        format="jest",
    )


@pytest.fixture
def repo_context(tmp_path: Path) -> RepoContext:
    """Context for a repo with one test file and healthy metrics."""
    return RepoContext(
        project_root=tmp_path,
        test_files=["tests/test_app.py"],
        assertion_count=10,
        test_declaration_count=5,
        current_coverage=90.0,
        baseline_coverage=89.5,
        complexity={"app.py": 4},
    )


@pytest.fixture
def python_project(tmp_path: Path) -> Path:
    """Minimal Python project with one passing test file."""
    (tmp_path / "app.py").write_text("def add(a, b):\n    return a + b\n")
    tests = tmp_path / "tests"
    tests.mkdir()
    (tests / "test_app.py").write_text(
        "from app import add\n\n\ndef test_add():\n    assert add(1, 2) == 3\n"
    )
    return tmp_path


VerdictFactory = Callable[..., CheckVerdict]


@pytest.fixture
def make_verdict() -> VerdictFactory:
    """Factory for CheckVerdicts with terse defaults."""

    def _make(
        name: str = "all-passed",
        passed: bool = True,
        severity: Severity = Severity.CRITICAL,
        message: str = "",
    ) -> CheckVerdict:
        return CheckVerdict(check_name=name, passed=passed, severity=severity, message=message)

    return _make
