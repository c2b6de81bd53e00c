"""Gate configuration.

Configuration is read once per run and never changes afterwards. Sources,
lowest precedence first:

1. Built-in defaults (all six checks, block policy, 300s timeout)
2. Toolchain detection (test command only, when none is configured)
3. ``[tool.verify-gate]`` in pyproject.toml, or a ``.verify-gate.toml`` file
4. CLI flags

Checks are tagged variants, e.g. ``{type = "coverage-delta", slack = 0.5}``.
"""

from __future__ import annotations

import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from vgate.gate.detector import detect_toolchain
from vgate.gate.models import Policy
from vgate.gate.parser import ParserFormat

CONFIG_FILENAME = ".verify-gate.toml"
PYPROJECT_TABLE = "verify-gate"

DEFAULT_TEST_GLOBS = (
    "test_*.py",
    "*_test.py",
    "*.test.js",
    "*.test.jsx",
    "*.test.ts",
    "*.test.tsx",
    "*.spec.js",
    "*.spec.jsx",
    "*.spec.ts",
    "*.spec.tsx",
    "*_test.go",
    "*_test.rs",
)


class ConfigError(Exception):
    """Configuration is missing, unreadable, or invalid."""

    def __init__(self, message: str) -> None:
        """Initialize ConfigError with a message."""
        self.message = message
        super().__init__(message)


class CheckType(StrEnum):
    """Registered quality check types."""

    TESTS_EXIST = "tests-exist"
    PARSE_SUCCEEDED = "parse-succeeded"
    ALL_PASSED = "all-passed"
    ASSERTION_RATIO = "assertion-ratio"
    COVERAGE_DELTA = "coverage-delta"
    COMPLEXITY_CAP = "complexity-cap"


class _CheckConfigBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TestsExistConfig(_CheckConfigBase):
    """Fail when the repository has no test files."""

    __test__ = False

    type: Literal["tests-exist"] = "tests-exist"


class ParseSucceededConfig(_CheckConfigBase):
    """Fail when the test output could not be parsed."""

    type: Literal["parse-succeeded"] = "parse-succeeded"


class AllPassedConfig(_CheckConfigBase):
    """Fail when any test failed."""

    type: Literal["all-passed"] = "all-passed"


class AssertionRatioConfig(_CheckConfigBase):
    """Warn when test files assert less than min_ratio times per test."""

    type: Literal["assertion-ratio"] = "assertion-ratio"
    min_ratio: float = Field(default=1.0, ge=0)


class CoverageDeltaConfig(_CheckConfigBase):
    """Warn when coverage drops more than `slack` points below the baseline."""

    type: Literal["coverage-delta"] = "coverage-delta"
    slack: float = Field(default=1.0, ge=0, validation_alias=AliasChoices("slack", "floor"))


class ComplexityCapConfig(_CheckConfigBase):
    """Fail when any file's complexity exceeds max_complexity."""

    type: Literal["complexity-cap"] = "complexity-cap"
    max_complexity: int = Field(default=10, gt=0)


CheckConfig = Annotated[
    TestsExistConfig
    | ParseSucceededConfig
    | AllPassedConfig
    | AssertionRatioConfig
    | CoverageDeltaConfig
    | ComplexityCapConfig,
    Field(discriminator="type"),
]


def default_checks() -> list[CheckConfig]:
    """All checks with default parameters, in evaluation order."""
    return [
        TestsExistConfig(),
        ParseSucceededConfig(),
        AllPassedConfig(),
        AssertionRatioConfig(),
        CoverageDeltaConfig(),
        ComplexityCapConfig(),
    ]


class GateConfig(BaseModel):
    """Everything one gate run needs to know.

    Relative paths are resolved against the project root.
    """

    command: str = Field(min_length=1)
    timeout_seconds: int = Field(default=300, gt=0)
    policy: Policy = Policy.BLOCK
    checks: list[CheckConfig] = Field(default_factory=default_checks)
    format_hint: ParserFormat | None = None
    test_globs: list[str] = Field(default_factory=lambda: list(DEFAULT_TEST_GLOBS))
    baseline_file: Path | None = Path(".verify-gate/coverage-baseline")
    coverage_report: Path | None = None
    complexity_report: Path | None = None
    env: dict[str, str] = Field(default_factory=dict)
    parallel_checks: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    def has_check(self, check_type: CheckType) -> bool:
        """True if a check of this type is configured."""
        return any(c.type == check_type for c in self.checks)


def find_config_file(project_root: Path) -> Path | None:
    """Locate the config file for a project.

    Prefers .verify-gate.toml; falls back to pyproject.toml if it carries
    a [tool.verify-gate] table.
    """
    dedicated = project_root / CONFIG_FILENAME
    if dedicated.exists():
        return dedicated

    pyproject = project_root / "pyproject.toml"
    if pyproject.exists():
        try:
            data = _read_toml(pyproject)
        except ConfigError:
            return None
        if PYPROJECT_TABLE in data.get("tool", {}):
            return pyproject
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read raw gate settings from a TOML file.

    Raises:
        ConfigError: If the file is unreadable or not valid TOML
    """
    data = _read_toml(path)
    if path.name == "pyproject.toml":
        section = data.get("tool", {}).get(PYPROJECT_TABLE, {})
        if not isinstance(section, dict):
            raise ConfigError(f"[tool.{PYPROJECT_TABLE}] in {path} must be a table")
        return section
    return data


def load_config(
    project_root: Path,
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> GateConfig:
    """Build the GateConfig for a run.

    Args:
        project_root: Root directory of the project
        config_path: Explicit config file (auto-discovered if None)
        overrides: CLI values; None entries are ignored

    Returns:
        Validated GateConfig

    Raises:
        ConfigError: If config is invalid or no test command can be found
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    data: dict[str, Any] = {}
    if config_path is not None:
        data.update(read_config_file(config_path))

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    if not data.get("command"):
        toolchain = detect_toolchain(project_root)
        if not toolchain.test_command:
            raise ConfigError(
                "No test command configured and none could be detected. "
                "Pass --command or set `command` in "
                f"{CONFIG_FILENAME} / [tool.{PYPROJECT_TABLE}]."
            )
        data["command"] = toolchain.test_command
        if toolchain.format_hint and not data.get("format_hint"):
            data["format_hint"] = toolchain.format_hint

    try:
        return GateConfig.model_validate(data)
    except ValidationError as e:
        source = f" in {config_path}" if config_path else ""
        raise ConfigError(f"Invalid configuration{source}: {e}") from e


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {path}: {e}") from e
