"""Repository context collection for quality checks.

Gathers the repository facts checks need: test files, assertion density,
coverage and its baseline, per-file complexity. Only facts some configured
check uses are collected.

Nothing here raises for bad repository content. Unreadable or malformed
inputs are recorded in RepoContext.errors and the dependent check degrades.
"""

import ast
import json
import os
import re
from collections.abc import Iterator
from fnmatch import fnmatch
from pathlib import Path

from vgate.gate.config import CheckType, GateConfig
from vgate.gate.models import RepoContext, TestReport

# Directories never searched for tests or sources
IGNORE_DIRS = {
    "__pycache__",
    "node_modules",
    ".git",
    ".hg",
    ".venv",
    "venv",
    ".tox",
    ".nox",
    "dist",
    "build",
    "target",
    "vendor",
    ".verify-gate",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    "__pypackages__",
    "coverage",
    "htmlcov",
}

# (assertion patterns, test declaration patterns) per file suffix
_PY_PATTERNS = (
    re.compile(
        r"^\s*assert\b|\bself\.assert[A-Z]\w*\(|\bpytest\.raises\(|\.assert_\w+\(",
        re.MULTILINE,
    ),
    re.compile(r"^\s*(?:async\s+)?def\s+test\w*\s*\(", re.MULTILINE),
)
_JS_PATTERNS = (
    re.compile(r"\bexpect\s*\(|\bassert(?:\.\w+)?\s*\("),
    re.compile(r"\b(?:it|test)(?:\.(?:only|each|concurrent))?\s*\("),
)
_GO_PATTERNS = (
    re.compile(r"\bt\.(?:Errorf?|Fatalf?|Fail|FailNow)\b|\b(?:assert|require)\.\w+\("),
    re.compile(r"^func\s+Test\w*\s*\(", re.MULTILINE),
)
_RUST_PATTERNS = (
    re.compile(r"\b(?:debug_)?assert(?:_eq|_ne)?!\s*\("),
    re.compile(r"#\[(?:tokio::)?test\]"),
)

_PATTERNS_BY_SUFFIX = {
    ".py": _PY_PATTERNS,
    ".js": _JS_PATTERNS,
    ".jsx": _JS_PATTERNS,
    ".mjs": _JS_PATTERNS,
    ".cjs": _JS_PATTERNS,
    ".ts": _JS_PATTERNS,
    ".tsx": _JS_PATTERNS,
    ".go": _GO_PATTERNS,
    ".rs": _RUST_PATTERNS,
}

# pytest-cov: "TOTAL    120    6    95%"; Istanbul text: "All files |   85.3 | ..."
_PYTEST_COV_TOTAL = re.compile(r"^TOTAL\s+.*?(\d+(?:\.\d+)?)%\s*$", re.MULTILINE)
_ISTANBUL_TOTAL = re.compile(r"^\s*All files\s*\|\s*(\d+(?:\.\d+)?)\s*\|", re.MULTILINE)

_BRANCH_NODES = (
    ast.If,
    ast.IfExp,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.ExceptHandler,
    ast.Assert,
    ast.match_case,
)


def _walk_files(root: Path) -> Iterator[Path]:
    """Yield files under root, skipping ignored directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in IGNORE_DIRS and not d.endswith(".egg-info")
        )
        for filename in sorted(filenames):
            yield Path(dirpath) / filename


def discover_test_files(root: Path, globs: list[str]) -> list[str]:
    """Find test files by glob.

    Globs match the file name or the root-relative path.

    Args:
        root: Project root directory
        globs: fnmatch patterns

    Returns:
        Sorted root-relative POSIX paths
    """
    found: list[str] = []
    for path in _walk_files(root):
        rel = path.relative_to(root).as_posix()
        if any(fnmatch(path.name, g) or fnmatch(rel, g) for g in globs):
            found.append(rel)
    return sorted(found)


def scan_test_files(root: Path, test_files: list[str]) -> tuple[int, int]:
    """Count assertion calls and test declarations in test files.

    Files in languages without known patterns are ignored.

    Returns:
        (assertion_count, test_declaration_count)
    """
    assertions = 0
    declarations = 0
    for rel in test_files:
        patterns = _PATTERNS_BY_SUFFIX.get(Path(rel).suffix)
        if patterns is None:
            continue
        source = (root / rel).read_text(encoding="utf-8", errors="ignore")
        assertion_re, declaration_re = patterns
        assertions += len(assertion_re.findall(source))
        declarations += len(declaration_re.findall(source))
    return assertions, declarations


def extract_coverage(output: str) -> float | None:
    """Find a total coverage percentage in test output, if printed."""
    for pattern in (_PYTEST_COV_TOTAL, _ISTANBUL_TOTAL):
        matches = pattern.findall(output)
        if matches:
            return float(matches[-1])
    return None


def read_coverage_report(path: Path) -> float:
    """Read total coverage from a JSON coverage report.

    Understands coverage.py ``coverage json`` output (totals.percent_covered)
    and Istanbul ``coverage-summary.json`` (total.lines.pct).

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not a recognized report
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    try:
        if "totals" in data:
            return float(data["totals"]["percent_covered"])
        if "total" in data:
            return float(data["total"]["lines"]["pct"])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Unrecognized coverage report {path}: missing {e}") from e
    raise ValueError(f"Unrecognized coverage report {path}")


def read_baseline(path: Path) -> float | None:
    """Read a coverage baseline file holding one percentage.

    Returns:
        The baseline, or None if the file does not exist

    Raises:
        OSError: If the file exists but cannot be read
        ValueError: If the content is not a percentage
    """
    if not path.exists():
        return None
    text = path.read_text(encoding="utf-8").strip().rstrip("%").strip()
    try:
        return float(text)
    except ValueError as e:
        raise ValueError(f"Baseline file {path} does not hold a percentage: {text!r}") from e


def read_complexity_report(path: Path) -> dict[str, int]:
    """Read per-file complexity from a JSON report.

    Accepts ``{"path": score}`` or radon ``cc -j`` output
    (``{"path": [{"complexity": n, ...}, ...]}``, max block per file).

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not a recognized report
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Complexity report {path} must be a JSON object")

    scores: dict[str, int] = {}
    for file, value in data.items():
        if isinstance(value, (int, float)):
            scores[file] = int(value)
        elif isinstance(value, list):
            blocks = [b["complexity"] for b in value if isinstance(b, dict) and "complexity" in b]
            scores[file] = int(max(blocks, default=0))
        else:
            raise ValueError(f"Complexity report {path}: unexpected entry for {file}")
    return scores


def python_complexity(source: str) -> int:
    """Highest cyclomatic complexity of any function (or module body) in source.

    Raises:
        SyntaxError: If source is not valid Python
    """
    tree = ast.parse(source)
    scores = [_block_complexity(tree)]
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            scores.append(_block_complexity(node))
    return max(scores)


def _block_complexity(node: ast.AST) -> int:
    score = 1
    stack = list(ast.iter_child_nodes(node))
    while stack:
        child = stack.pop()
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            # Scored separately
            continue
        if isinstance(child, _BRANCH_NODES):
            score += 1
        elif isinstance(child, ast.BoolOp):
            score += len(child.values) - 1
        elif isinstance(child, ast.comprehension):
            score += 1 + len(child.ifs)
        stack.extend(ast.iter_child_nodes(child))
    return score


def compute_complexity(root: Path, exclude: set[str]) -> dict[str, int]:
    """Score every non-test Python file under root.

    Files that do not parse are skipped; the test run reports those.
    """
    scores: dict[str, int] = {}
    for path in _walk_files(root):
        if path.suffix != ".py":
            continue
        rel = path.relative_to(root).as_posix()
        if rel in exclude:
            continue
        try:
            scores[rel] = python_complexity(path.read_text(encoding="utf-8", errors="ignore"))
        except (SyntaxError, ValueError):
            continue
    return scores


def build_repo_context(
    project_root: Path,
    config: GateConfig,
    report: TestReport,
    exit_code: int | None = None,
) -> RepoContext:
    """Collect the repository facts the configured checks need.

    Args:
        project_root: Root directory of the project
        config: Gate configuration (decides what is collected)
        report: Parsed test report (coverage may be printed in its output)
        exit_code: Exit code of the test command, if it was run

    Returns:
        RepoContext; collection problems are listed in its errors
    """
    errors: dict[str, str] = {}

    test_files = discover_test_files(project_root, config.test_globs)

    assertion_count = 0
    declaration_count = 0
    if config.has_check(CheckType.ASSERTION_RATIO):
        try:
            assertion_count, declaration_count = scan_test_files(project_root, test_files)
        except OSError as e:
            errors["assertion_count"] = f"Could not scan test files: {e}"

    current_coverage = None
    baseline_coverage = None
    if config.has_check(CheckType.COVERAGE_DELTA):
        try:
            if config.coverage_report:
                current_coverage = read_coverage_report(project_root / config.coverage_report)
            else:
                current_coverage = extract_coverage(report.raw_output)
        except (OSError, ValueError) as e:
            errors["current_coverage"] = f"Could not read current coverage: {e}"

        if config.baseline_file:
            try:
                baseline_coverage = read_baseline(project_root / config.baseline_file)
            except (OSError, ValueError) as e:
                errors["baseline_coverage"] = f"Could not read coverage baseline: {e}"

    complexity = None
    if config.has_check(CheckType.COMPLEXITY_CAP):
        try:
            if config.complexity_report:
                complexity = read_complexity_report(project_root / config.complexity_report)
            else:
                complexity = compute_complexity(project_root, exclude=set(test_files))
        except (OSError, ValueError) as e:
            errors["complexity"] = f"Could not read complexity report: {e}"

    return RepoContext(
        project_root=project_root,
        exit_code=exit_code,
        test_files=test_files,
        assertion_count=assertion_count,
        test_declaration_count=declaration_count,
        current_coverage=current_coverage,
        baseline_coverage=baseline_coverage,
        complexity=complexity,
        errors=errors,
    )
