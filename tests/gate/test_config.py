"""Tests for gate configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from vgate.gate.config import (
    CONFIG_FILENAME,
    CheckType,
    ConfigError,
    CoverageDeltaConfig,
    GateConfig,
    find_config_file,
    load_config,
    read_config_file,
)
from vgate.gate.models import Policy
from vgate.gate.parser import ParserFormat


class TestGateConfig:
    """Test GateConfig model."""

    def test_defaults(self) -> None:
        """Defaults: all six checks, block policy, 300s timeout."""
        config = GateConfig(command="pytest")

        assert config.timeout_seconds == 300
        assert config.policy == Policy.BLOCK
        assert [c.type for c in config.checks] == [str(t) for t in CheckType]
        assert config.format_hint is None
        assert config.parallel_checks is False

    def test_empty_command_rejected(self) -> None:
        """command must be non-empty."""
        with pytest.raises(ValidationError):
            GateConfig(command="")

    def test_timeout_must_be_positive(self) -> None:
        """timeout_seconds must be > 0."""
        with pytest.raises(ValidationError):
            GateConfig(command="pytest", timeout_seconds=0)

    def test_checks_are_tagged_variants(self) -> None:
        """Checks are selected by their type tag."""
        config = GateConfig.model_validate(
            {
                "command": "pytest",
                "checks": [
                    {"type": "all-passed"},
                    {"type": "coverage-delta", "slack": 0.5},
                ],
            }
        )

        assert len(config.checks) == 2
        coverage = config.checks[1]
        assert isinstance(coverage, CoverageDeltaConfig)
        assert coverage.slack == 0.5

    def test_unknown_check_type_rejected(self) -> None:
        """An unknown check tag is a validation error."""
        with pytest.raises(ValidationError):
            GateConfig.model_validate({"command": "pytest", "checks": [{"type": "lint-clean"}]})

    def test_unknown_check_parameter_rejected(self) -> None:
        """Misspelled check parameters are caught."""
        with pytest.raises(ValidationError):
            GateConfig.model_validate(
                {"command": "pytest", "checks": [{"type": "complexity-cap", "max": 5}]}
            )

    def test_has_check(self) -> None:
        """has_check reports configured check types."""
        config = GateConfig.model_validate(
            {"command": "pytest", "checks": [{"type": "all-passed"}]}
        )
        assert config.has_check(CheckType.ALL_PASSED) is True
        assert config.has_check(CheckType.COMPLEXITY_CAP) is False

    def test_immutable(self) -> None:
        """Config cannot change after loading."""
        config = GateConfig(command="pytest")
        with pytest.raises(ValidationError):
            config.command = "other"  # type: ignore[misc]


class TestConfigFiles:
    """Test config file discovery and reading."""

    def test_dedicated_file_preferred(self, tmp_path: Path) -> None:
        """.verify-gate.toml wins over pyproject.toml."""
        (tmp_path / CONFIG_FILENAME).write_text('command = "make test"\n')
        (tmp_path / "pyproject.toml").write_text('[tool.verify-gate]\ncommand = "pytest"\n')

        assert find_config_file(tmp_path) == tmp_path / CONFIG_FILENAME

    def test_pyproject_table(self, tmp_path: Path) -> None:
        """pyproject.toml is used when it has a [tool.verify-gate] table."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[tool.verify-gate]\ncommand = "pytest -q"\ntimeout_seconds = 60\n')

        assert find_config_file(tmp_path) == pyproject
        assert read_config_file(pyproject) == {"command": "pytest -q", "timeout_seconds": 60}

    def test_pyproject_without_table_ignored(self, tmp_path: Path) -> None:
        """pyproject.toml without the table is not a config file."""
        (tmp_path / "pyproject.toml").write_text("[project]\nname = 'x'\n")
        assert find_config_file(tmp_path) is None

    def test_malformed_toml(self, tmp_path: Path) -> None:
        """Malformed TOML raises ConfigError."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("command = [unclosed\n")

        with pytest.raises(ConfigError, match="Malformed TOML"):
            read_config_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """An explicit config path that does not exist raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read"):
            read_config_file(tmp_path / "nope.toml")


class TestLoadConfig:
    """Test load_config precedence."""

    def test_file_values(self, tmp_path: Path) -> None:
        """Values come from the config file."""
        (tmp_path / CONFIG_FILENAME).write_text(
            'command = "npm test"\n'
            'policy = "warn"\n'
            'format_hint = "jest"\n'
            "\n"
            "[[checks]]\n"
            'type = "all-passed"\n'
        )

        config = load_config(tmp_path)

        assert config.command == "npm test"
        assert config.policy == Policy.WARN
        assert config.format_hint == ParserFormat.JEST
        assert len(config.checks) == 1

    def test_overrides_win(self, tmp_path: Path) -> None:
        """CLI overrides beat file values; None overrides are ignored."""
        (tmp_path / CONFIG_FILENAME).write_text('command = "npm test"\ntimeout_seconds = 60\n')

        config = load_config(
            tmp_path,
            overrides={"command": "pytest", "timeout_seconds": None, "policy": "warn"},
        )

        assert config.command == "pytest"
        assert config.timeout_seconds == 60
        assert config.policy == Policy.WARN

    def test_detected_command(self, tmp_path: Path) -> None:
        """Without a configured command the toolchain is detected."""
        (tmp_path / "go.mod").write_text("module example.com/x\n")

        config = load_config(tmp_path)

        assert config.command == "go test -v ./..."
        assert config.format_hint == ParserFormat.GO

    def test_detected_hint_does_not_override_configured(self, tmp_path: Path) -> None:
        """A configured format_hint survives detection."""
        (tmp_path / "go.mod").write_text("module example.com/x\n")

        config = load_config(tmp_path, overrides={"format_hint": "generic"})

        assert config.format_hint == ParserFormat.GENERIC

    def test_no_command_anywhere(self, tmp_path: Path) -> None:
        """Nothing configured and nothing detected is a ConfigError."""
        with pytest.raises(ConfigError, match="No test command"):
            load_config(tmp_path)

    def test_invalid_values(self, tmp_path: Path) -> None:
        """Invalid values become ConfigError naming the file."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text('command = "pytest"\npolicy = "maybe"\n')

        with pytest.raises(ConfigError, match="Invalid configuration in"):
            load_config(tmp_path)

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Unknown top-level keys are rejected."""
        (tmp_path / CONFIG_FILENAME).write_text('command = "pytest"\ntimout = 5\n')

        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        """An explicit config path is used instead of discovery."""
        custom = tmp_path / "ci-gate.toml"
        custom.write_text('command = "make check"\n')

        config = load_config(tmp_path, config_path=custom)

        assert config.command == "make check"
