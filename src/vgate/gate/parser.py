"""Test output parser: maps raw runner text to a TestReport.

Each supported runner gets a FormatAdapter. Adapters are tried in priority
order and the first one whose summary pattern matches decides the parse.
Supporting a new tool means adding an adapter to ADAPTERS, nothing else.

Output that no adapter recognizes yields parse_succeeded=False. That report
must never be read as "zero failures".
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from enum import StrEnum

from vgate.gate.models import FailureDetail, TestReport

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


class ParserFormat(StrEnum):
    """Names accepted as a format hint."""

    JEST = "jest"
    VITEST = "vitest"
    PYTEST = "pytest"
    UNITTEST = "unittest"
    CARGO = "cargo"
    GO = "go"
    TAP = "tap"
    GENERIC = "generic"


def strip_ansi(text: str) -> str:
    """Remove terminal colour escape sequences."""
    return _ANSI_RE.sub("", text)


def _count(pattern: re.Pattern[str], text: str) -> int | None:
    """Sum every numeric capture of pattern in text, or None if absent."""
    matches = pattern.findall(text)
    if not matches:
        return None
    return sum(int(m) for m in matches)


class FormatAdapter(ABC):
    """Recognizes one test runner's output format."""

    name: ParserFormat

    @abstractmethod
    def try_parse(self, text: str) -> TestReport | None:
        """Parse text, or return None if this format's summary is absent."""
        ...

    def _report(
        self,
        text: str,
        passed: int,
        failed: int,
        skipped: int = 0,
        total: int | None = None,
        failures: list[FailureDetail] | None = None,
    ) -> TestReport:
        """Build a report, reconciling counts the tool did not print."""
        if total is None:
            # Counted independently (or only "N passed" was printed)
            total = passed + failed + skipped
        total = max(total, passed + failed)
        return TestReport(
            total=total,
            passed=passed,
            failed=failed,
            skipped=skipped,
            failures=failures or [],
            raw_output=text,
            parse_succeeded=True,
            format=self.name,
        )


class JestAdapter(FormatAdapter):
    """Jest summary: ``Tests: 2 failed, 1 skipped, 5 passed, 8 total``."""

    name = ParserFormat.JEST

    _summary = re.compile(
        r"^\s*Tests?:\s+(?P<body>.*\d+\s+(?:passed|failed|total).*)$", re.MULTILINE
    )
    _passed = re.compile(r"(\d+)\s+passed")
    _failed = re.compile(r"(\d+)\s+failed")
    _skipped = re.compile(r"(\d+)\s+(?:skipped|pending|todo)")
    _total = re.compile(r"(\d+)\s+total")
    _file = re.compile(r"^\s*FAIL\s+(\S+)")
    _cross = re.compile(r"^\s*[✕✗×]\s+(.+?)(?:\s+\(\d+(?:\.\d+)?\s*m?s\))?\s*$")
    _bullet = re.compile(r"^\s*●\s+(?!Console\b)(.+?)\s*$")

    def try_parse(self, text: str) -> TestReport | None:
        matches = list(self._summary.finditer(text))
        if not matches:
            return None
        body = matches[-1].group("body")

        return self._report(
            text,
            passed=_count(self._passed, body) or 0,
            failed=_count(self._failed, body) or 0,
            skipped=_count(self._skipped, body) or 0,
            total=_count(self._total, body),
            failures=self._failures(text),
        )

    def _failures(self, text: str) -> list[FailureDetail]:
        crosses: list[FailureDetail] = []
        bullets: list[FailureDetail] = []
        current_file: str | None = None

        for line in text.splitlines():
            if m := self._file.match(line):
                current_file = m.group(1)
            elif m := self._cross.match(line):
                crosses.append(FailureDetail(test_name=m.group(1), file=current_file))
            elif m := self._bullet.match(line):
                bullets.append(FailureDetail(test_name=m.group(1), file=current_file))

        # ● headers repeat the ✕ lines with more context; use them only as fallback
        return crosses or bullets


class VitestAdapter(FormatAdapter):
    """Vitest summary: ``Tests  2 failed | 5 passed (7)``."""

    name = ParserFormat.VITEST

    _summary = re.compile(
        r"^\s*Tests\s+(?P<body>.*\d+\s+(?:passed|failed).*)$", re.MULTILINE
    )
    _passed = re.compile(r"(\d+)\s+passed")
    _failed = re.compile(r"(\d+)\s+failed")
    _skipped = re.compile(r"(\d+)\s+(?:skipped|todo)")
    _total = re.compile(r"\((\d+)\)")
    _failure = re.compile(r"^\s*(?:FAIL|×)\s+(\S+)\s+>\s+(.+?)\s*$", re.MULTILINE)

    def try_parse(self, text: str) -> TestReport | None:
        matches = list(self._summary.finditer(text))
        if not matches:
            return None
        body = matches[-1].group("body")

        failures: list[FailureDetail] = []
        seen: set[tuple[str, str]] = set()
        for m in self._failure.finditer(text):
            key = (m.group(1), m.group(2))
            if key in seen:
                continue
            seen.add(key)
            failures.append(FailureDetail(test_name=m.group(2), file=m.group(1)))

        return self._report(
            text,
            passed=_count(self._passed, body) or 0,
            failed=_count(self._failed, body) or 0,
            skipped=_count(self._skipped, body) or 0,
            total=_count(self._total, body),
            failures=failures,
        )


class PytestAdapter(FormatAdapter):
    """Pytest summary: ``==== 3 failed, 5 passed, 1 skipped in 0.12s ====``."""

    name = ParserFormat.PYTEST

    _summary = re.compile(
        r"^=*\s*(?P<body>(?:no tests ran|\d+ [a-z]+)(?:, \d+ [a-z]+)*)\s+in\s+[\d.]+\s*s\b",
        re.MULTILINE,
    )
    _outcome = re.compile(r"(\d+) ([a-z]+)")
    _test_outcome = re.compile(r"\d+ (?:passed|failed|errors?|skipped|xfailed|xpassed)\b")
    _failure = re.compile(
        r"^(?:FAILED|ERROR) (?P<path>[^\s:]+)(?:::(?P<name>\S+))?(?: - (?P<msg>.*))?$",
        re.MULTILINE,
    )

    def try_parse(self, text: str) -> TestReport | None:
        summaries = [
            m
            for m in self._summary.finditer(text)
            if m.group("body").startswith("no tests ran")
            or self._test_outcome.search(m.group("body"))
        ]
        if not summaries:
            return None

        counts: dict[str, int] = {}
        for number, outcome in self._outcome.findall(summaries[-1].group("body")):
            counts[outcome] = counts.get(outcome, 0) + int(number)

        failures = [
            FailureDetail(
                test_name=m.group("name") or m.group("path"),
                file=m.group("path"),
                message=(m.group("msg") or "").strip(),
            )
            for m in self._failure.finditer(text)
        ]

        return self._report(
            text,
            passed=counts.get("passed", 0) + counts.get("xpassed", 0),
            failed=counts.get("failed", 0) + counts.get("error", 0) + counts.get("errors", 0),
            skipped=counts.get("skipped", 0) + counts.get("xfailed", 0),
            failures=failures,
        )


class UnittestAdapter(FormatAdapter):
    """unittest summary: ``Ran 5 tests in 0.01s`` then ``OK`` or ``FAILED (failures=1)``."""

    name = ParserFormat.UNITTEST

    _ran = re.compile(r"^Ran (\d+) tests? in [\d.]+s", re.MULTILINE)
    _status = re.compile(r"^(OK|FAILED)(?: \((?P<detail>[^)]*)\))?\s*$", re.MULTILINE)
    _detail = re.compile(r"([a-z ]+)=(\d+)")
    _failure = re.compile(r"^(FAIL|ERROR): (\S+) \(([^)]+)\)", re.MULTILINE)

    def try_parse(self, text: str) -> TestReport | None:
        ran = list(self._ran.finditer(text))
        if not ran:
            return None
        status = None
        for m in self._status.finditer(text, ran[-1].end()):
            status = m
            break
        if status is None:
            return None

        detail: dict[str, int] = {}
        for key, value in self._detail.findall(status.group("detail") or ""):
            detail[key.strip()] = int(value)

        total = int(ran[-1].group(1))
        failed = detail.get("failures", 0) + detail.get("errors", 0)
        skipped = detail.get("skipped", 0) + detail.get("expected failures", 0)
        passed = max(total - failed - skipped, 0)

        failures: list[FailureDetail] = []
        for m in self._failure.finditer(text):
            kind, method, where = m.groups()
            # 3.11+ prints the qualified name in parentheses, older versions only the class
            name = where if where.endswith(f".{method}") else f"{where}.{method}"
            failures.append(FailureDetail(test_name=name, message=kind))

        return self._report(
            text, passed=passed, failed=failed, skipped=skipped, total=total, failures=failures
        )


class CargoAdapter(FormatAdapter):
    """cargo test: ``test result: FAILED. 3 passed; 1 failed; 0 ignored; ...``.

    One result line is printed per test binary, so counts are summed.
    """

    name = ParserFormat.CARGO

    _result = re.compile(
        r"test result: (?:ok|FAILED)\. (\d+) passed; (\d+) failed; (\d+) ignored"
    )
    _stdout_header = re.compile(r"^---- (\S+) stdout ----$", re.MULTILINE)
    _panic = re.compile(
        r"thread '(?P<name>[^']+)' panicked at "
        r"(?P<file>[^\s:]+):(?P<line>\d+):\d+:?\s*(?P<msg>.*)$",
        re.MULTILINE,
    )

    def try_parse(self, text: str) -> TestReport | None:
        results = self._result.findall(text)
        if not results:
            return None

        passed = sum(int(r[0]) for r in results)
        failed = sum(int(r[1]) for r in results)
        ignored = sum(int(r[2]) for r in results)

        panics = {m.group("name"): m for m in self._panic.finditer(text)}
        failures: list[FailureDetail] = []
        for m in self._stdout_header.finditer(text):
            name = m.group(1)
            panic = panics.get(name)
            if panic:
                failures.append(
                    FailureDetail(
                        test_name=name,
                        file=panic.group("file"),
                        line=int(panic.group("line")),
                        message=panic.group("msg").strip(),
                    )
                )
            else:
                failures.append(FailureDetail(test_name=name))

        return self._report(text, passed=passed, failed=failed, skipped=ignored, failures=failures)


class GoAdapter(FormatAdapter):
    """go test -v: counts top-level ``--- PASS:`` / ``--- FAIL:`` lines."""

    name = ParserFormat.GO

    _outcome = re.compile(r"^--- (PASS|FAIL|SKIP): (\S+)")
    _run = re.compile(r"^=== RUN\s+")
    _location = re.compile(r"^\s+(\S+\.go):(\d+): (.*)$")

    def try_parse(self, text: str) -> TestReport | None:
        passed = failed = skipped = 0
        failures: list[FailureDetail] = []
        pending: re.Match[str] | None = None
        # Older Go prints t.Error output after the FAIL line instead of before
        trailing_location = False

        for line in text.splitlines():
            if self._run.match(line):
                pending = None
                trailing_location = False
            elif m := self._location.match(line):
                if trailing_location:
                    failures[-1] = self._failure(failures[-1].test_name, m)
                    trailing_location = False
                elif pending is None:
                    pending = m
            elif m := self._outcome.match(line):
                outcome, name = m.groups()
                trailing_location = False
                if outcome == "PASS":
                    passed += 1
                elif outcome == "SKIP":
                    skipped += 1
                else:
                    failed += 1
                    if pending:
                        failures.append(self._failure(name, pending))
                    else:
                        failures.append(FailureDetail(test_name=name))
                        trailing_location = True
                pending = None

        if passed == 0 and failed == 0:
            return None
        return self._report(text, passed=passed, failed=failed, skipped=skipped, failures=failures)

    @staticmethod
    def _failure(name: str, location: re.Match[str]) -> FailureDetail:
        return FailureDetail(
            test_name=name,
            file=location.group(1),
            line=int(location.group(2)),
            message=location.group(3).strip(),
        )


class TapAdapter(FormatAdapter):
    """TAP trailer as printed by node --test: ``# pass 4`` / ``# fail 1``."""

    name = ParserFormat.TAP

    _pass = re.compile(r"^# pass\s+(\d+)\s*$", re.MULTILINE)
    _fail = re.compile(r"^# fail\s+(\d+)\s*$", re.MULTILINE)
    _skip = re.compile(r"^# (?:skip|todo)\s+(\d+)\s*$", re.MULTILINE)
    _tests = re.compile(r"^# tests\s+(\d+)\s*$", re.MULTILINE)
    _not_ok = re.compile(r"^\s*not ok \d+ - (.+?)(?:\s+#.*)?$", re.MULTILINE)

    def try_parse(self, text: str) -> TestReport | None:
        passed = _count(self._pass, text)
        failed = _count(self._fail, text)
        if passed is None and failed is None:
            return None

        failures = [FailureDetail(test_name=m.group(1)) for m in self._not_ok.finditer(text)]
        return self._report(
            text,
            passed=passed or 0,
            failed=failed or 0,
            skipped=_count(self._skip, text) or 0,
            total=_count(self._tests, text),
            failures=failures,
        )


class GenericAdapter(FormatAdapter):
    """Last resort: ``N passed`` / ``N failed`` / ``N total`` anywhere in the output."""

    name = ParserFormat.GENERIC

    _passed = re.compile(r"(\d+)\s+passed\b", re.IGNORECASE)
    _failed = re.compile(r"(\d+)\s+failed\b", re.IGNORECASE)
    _total = re.compile(r"(\d+)\s+total\b", re.IGNORECASE)
    _failure = re.compile(r"^\s*(?:[✗✕×]|FAIL:)\s*(.+?)\s*$", re.MULTILINE)

    def try_parse(self, text: str) -> TestReport | None:
        passed = self._passed.findall(text)
        failed = self._failed.findall(text)
        if not passed and not failed:
            return None

        totals = self._total.findall(text)
        failures = [FailureDetail(test_name=m.group(1)) for m in self._failure.finditer(text)]
        return self._report(
            text,
            passed=int(passed[-1]) if passed else 0,
            failed=int(failed[-1]) if failed else 0,
            total=int(totals[-1]) if totals else None,
            failures=failures,
        )


ADAPTERS: tuple[FormatAdapter, ...] = (
    JestAdapter(),
    VitestAdapter(),
    PytestAdapter(),
    UnittestAdapter(),
    CargoAdapter(),
    GoAdapter(),
    TapAdapter(),
    GenericAdapter(),
)


def get_adapter(name: str | ParserFormat) -> FormatAdapter:
    """Look up an adapter by format name.

    Raises:
        ValueError: If no adapter has that name
    """
    fmt = ParserFormat(name)
    for adapter in ADAPTERS:
        if adapter.name == fmt:
            return adapter
    raise ValueError(f"No adapter registered for format {name!r}")  # pragma: no cover


def parse(raw_output: str, format_hint: str | ParserFormat | None = None) -> TestReport:
    """Parse raw test runner output into a TestReport.

    Args:
        raw_output: Combined stdout/stderr of the test command
        format_hint: Restrict parsing to a single adapter (auto-detect if None)

    Returns:
        TestReport; parse_succeeded is False when nothing matched

    Raises:
        ValueError: If format_hint is not a known format
    """
    adapters = (get_adapter(format_hint),) if format_hint else ADAPTERS
    text = strip_ansi(raw_output)

    for adapter in adapters:
        report = adapter.try_parse(text)
        if report is not None:
            return report.model_copy(update={"raw_output": raw_output})

    return TestReport.unparsed(raw_output)
