"""Quality checks.

Each check is a pure judgment over a TestReport and a RepoContext that yields
one CheckVerdict. Checks are looked up by their config ``type`` in
CHECK_REGISTRY, so adding a check never touches the evaluator.
"""

from __future__ import annotations

import concurrent.futures
from abc import ABC, abstractmethod
from typing import ClassVar, TypeVar

from vgate.gate.config import (
    AllPassedConfig,
    AssertionRatioConfig,
    CheckConfig,
    CheckType,
    ComplexityCapConfig,
    CoverageDeltaConfig,
    ParseSucceededConfig,
    TestsExistConfig,
)
from vgate.gate.models import CheckVerdict, RepoContext, Severity, TestReport

# How many failing test names to spell out before summarizing
_MAX_NAMED_FAILURES = 5


class CheckEvaluationError(Exception):
    """A check could not compute its verdict from the available context."""

    def __init__(self, message: str) -> None:
        """Initialize CheckEvaluationError with a message."""
        self.message = message
        super().__init__(message)


class QualityCheck(ABC):
    """Base class for quality checks."""

    name: ClassVar[CheckType]
    severity: ClassVar[Severity]

    def __init__(self, config: CheckConfig) -> None:
        self.config = config

    @abstractmethod
    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        """Judge one run.

        Raises:
            CheckEvaluationError: If the context lacks what this check needs
        """
        ...

    def _verdict(
        self, passed: bool, message: str, severity: Severity | None = None
    ) -> CheckVerdict:
        return CheckVerdict(
            check_name=str(self.name),
            passed=passed,
            severity=severity or self.severity,
            message=message,
        )


CHECK_REGISTRY: dict[str, type[QualityCheck]] = {}

C = TypeVar("C", bound="type[QualityCheck]")


def register(cls: C) -> C:
    """Class decorator adding a check to CHECK_REGISTRY."""
    CHECK_REGISTRY[str(cls.name)] = cls
    return cls


@register
class TestsExistCheck(QualityCheck):
    """A project with no test files cannot produce a meaningful report."""

    __test__ = False

    name = CheckType.TESTS_EXIST
    severity = Severity.CRITICAL
    config: TestsExistConfig

    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        count = len(context.test_files)
        if count == 0:
            return self._verdict(False, "No test files found in the repository")
        return self._verdict(True, f"{count} test file(s) found")


@register
class ParseSucceededCheck(QualityCheck):
    """Unparsed output is 'cannot verify', never a pass."""

    name = CheckType.PARSE_SUCCEEDED
    severity = Severity.CRITICAL
    config: ParseSucceededConfig

    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        if not report.parse_succeeded:
            if not report.raw_output.strip():
                reason = "the test command produced no output"
            else:
                reason = "test output did not match any known format"
            return self._verdict(False, f"Cannot verify: {reason}")

        # A build error or a coverage threshold can fail the run outside any test
        exit_code = context.exit_code
        if exit_code is not None and exit_code != 0 and report.failed == 0:
            return self._verdict(
                False,
                f"Cannot verify: exit {exit_code} but no failures parsed "
                f"from {report.format} output ({report.passed} passed)",
            )
        return self._verdict(
            True,
            f"Parsed {report.format} output: {report.passed} passed, "
            f"{report.failed} failed, {report.total} total",
        )


@register
class AllPassedCheck(QualityCheck):
    """Any failing test fails the gate."""

    name = CheckType.ALL_PASSED
    severity = Severity.CRITICAL
    config: AllPassedConfig

    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        if report.failed > 0:
            message = f"{report.failed} of {report.total} tests failed"
            names = [f.test_name for f in report.failures]
            if names:
                shown = ", ".join(names[:_MAX_NAMED_FAILURES])
                extra = len(names) - _MAX_NAMED_FAILURES
                message += f": {shown}" + (f" (+{extra} more)" if extra > 0 else "")
            return self._verdict(False, message)

        if not report.parse_succeeded:
            return self._verdict(True, "No failures reported (output was not parsed)")
        if report.total == 0:
            return self._verdict(True, "No tests ran")
        return self._verdict(True, f"All {report.passed} tests passed")


@register
class AssertionRatioCheck(QualityCheck):
    """Flags test suites that declare tests without asserting anything."""

    name = CheckType.ASSERTION_RATIO
    severity = Severity.WARNING
    config: AssertionRatioConfig

    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        if "assertion_count" in context.errors:
            raise CheckEvaluationError(context.errors["assertion_count"])

        declared = context.test_declaration_count
        assertions = context.assertion_count
        if declared == 0:
            return self._verdict(
                False, "No test declarations found; assertion ratio cannot be computed"
            )

        ratio = assertions / declared
        minimum = self.config.min_ratio
        detail = f"{assertions} assertions / {declared} tests"
        if ratio < minimum:
            return self._verdict(
                False, f"Assertion ratio {ratio:.2f} below minimum {minimum:.2f} ({detail})"
            )
        return self._verdict(True, f"Assertion ratio {ratio:.2f} ({detail})")


@register
class CoverageDeltaCheck(QualityCheck):
    """Flags coverage regressions against the recorded baseline."""

    name = CheckType.COVERAGE_DELTA
    severity = Severity.WARNING
    config: CoverageDeltaConfig

    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        if "baseline_coverage" in context.errors:
            raise CheckEvaluationError(context.errors["baseline_coverage"])

        baseline = context.baseline_coverage
        if baseline is None:
            return self._verdict(
                True, "No coverage baseline recorded; nothing to compare", Severity.INFO
            )

        current = context.current_coverage
        if current is None:
            raise CheckEvaluationError(
                context.errors.get(
                    "current_coverage",
                    "Current coverage unavailable: no coverage report configured "
                    "and none found in test output",
                )
            )

        floor = baseline - self.config.slack
        if current < floor:
            return self._verdict(
                False,
                f"Coverage {current:.1f}% dropped below baseline {baseline:.1f}% "
                f"(allowed slack {self.config.slack:.1f} points)",
            )
        return self._verdict(True, f"Coverage {current:.1f}% (baseline {baseline:.1f}%)")


@register
class ComplexityCapCheck(QualityCheck):
    """Hard cap on per-file complexity; every offender is listed."""

    name = CheckType.COMPLEXITY_CAP
    severity = Severity.CRITICAL
    config: ComplexityCapConfig

    def check(self, report: TestReport, context: RepoContext) -> CheckVerdict:
        if "complexity" in context.errors:
            raise CheckEvaluationError(context.errors["complexity"])
        if context.complexity is None:
            raise CheckEvaluationError("No complexity data collected")
        if not context.complexity:
            raise CheckEvaluationError(
                "No source files were scored; configure complexity_report "
                "for non-Python projects"
            )

        cap = self.config.max_complexity
        offenders = sorted(
            ((file, score) for file, score in context.complexity.items() if score > cap),
            key=lambda item: (-item[1], item[0]),
        )
        if offenders:
            listed = ", ".join(f"{file} ({score})" for file, score in offenders)
            return self._verdict(
                False, f"{len(offenders)} file(s) exceed complexity {cap}: {listed}"
            )
        return self._verdict(
            True, f"{len(context.complexity)} file(s) within complexity cap {cap}"
        )


def build_checks(configs: list[CheckConfig]) -> list[QualityCheck]:
    """Instantiate checks from their configs, preserving order.

    Raises:
        ValueError: If a config names an unregistered check type
    """
    checks: list[QualityCheck] = []
    for config in configs:
        check_cls = CHECK_REGISTRY.get(str(config.type))
        if check_cls is None:
            raise ValueError(f"Unknown check type: {config.type}")
        checks.append(check_cls(config))
    return checks


def run_check(check: QualityCheck, report: TestReport, context: RepoContext) -> CheckVerdict:
    """Run one check; a check that cannot compute degrades to a warning.

    Args:
        check: Check to run
        report: Parsed test report
        context: Repository context

    Returns:
        The check's verdict, or a failed warning verdict explaining the error
    """
    try:
        return check.check(report, context)
    except CheckEvaluationError as e:
        message = f"Check could not run: {e.message}"
    except Exception as e:
        # One broken check must not hide the others' verdicts
        message = f"Check errored: {type(e).__name__}: {e}"

    return CheckVerdict(
        check_name=str(check.name),
        passed=False,
        severity=Severity.WARNING,
        message=message,
    )


def run_checks(
    checks: list[QualityCheck],
    report: TestReport,
    context: RepoContext,
    parallel: bool = False,
) -> list[CheckVerdict]:
    """Run all checks and return verdicts in configured order.

    Args:
        checks: Checks to run
        report: Parsed test report
        context: Repository context
        parallel: If True, run checks in a thread pool

    Returns:
        One verdict per check
    """
    if not parallel or len(checks) < 2:
        return [run_check(check, report, context) for check in checks]

    with concurrent.futures.ThreadPoolExecutor() as executor:
        return list(executor.map(lambda c: run_check(c, report, context), checks))
