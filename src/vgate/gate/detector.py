"""Toolchain detection for projects."""

import json
import tomllib
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel

from vgate.gate.parser import ParserFormat


class ProjectType(StrEnum):
    """Supported project types."""

    PYTHON = "python"
    TYPESCRIPT = "typescript"
    GO = "go"
    RUST = "rust"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class Toolchain(BaseModel):
    """Detected test toolchain.

    Used only when no test command is configured explicitly.
    """

    project_type: ProjectType
    test_command: str | None = None
    format_hint: ParserFormat | None = None


def detect_toolchain(project_root: Path) -> Toolchain:
    """Auto-detect the project's test command from config files.

    Args:
        project_root: Root directory of the project

    Returns:
        Toolchain with detected command (None if nothing recognizable)
    """
    if not project_root.exists():
        return Toolchain(project_type=ProjectType.UNKNOWN)

    pyproject_path = project_root / "pyproject.toml"
    package_json_path = project_root / "package.json"

    has_python = pyproject_path.exists() or (project_root / "pytest.ini").exists()
    has_typescript = package_json_path.exists()
    has_go = (project_root / "go.mod").exists()
    has_rust = (project_root / "Cargo.toml").exists()

    detected = [has_python, has_typescript, has_go, has_rust]
    if sum(detected) > 1:
        project_type = ProjectType.MIXED
    elif has_python:
        project_type = ProjectType.PYTHON
    elif has_typescript:
        project_type = ProjectType.TYPESCRIPT
    elif has_go:
        project_type = ProjectType.GO
    elif has_rust:
        project_type = ProjectType.RUST
    else:
        return Toolchain(project_type=ProjectType.UNKNOWN)

    # Precedence in mixed projects: Python, then TypeScript, Go, Rust
    if has_python:
        command = _detect_python(project_root, pyproject_path)
        if command:
            return Toolchain(
                project_type=project_type,
                test_command=command,
                format_hint=ParserFormat.PYTEST,
            )

    if has_typescript:
        toolchain = _detect_node(project_type, package_json_path)
        if toolchain.test_command:
            return toolchain

    if has_go:
        return Toolchain(
            project_type=project_type,
            test_command="go test -v ./...",
            format_hint=ParserFormat.GO,
        )

    if has_rust:
        return Toolchain(
            project_type=project_type,
            test_command="cargo test",
            format_hint=ParserFormat.CARGO,
        )

    return Toolchain(project_type=project_type)


def _detect_python(project_root: Path, pyproject_path: Path) -> str | None:
    """Return the pytest command if pytest is configured."""
    # Build command prefix for Python (uv run if uv project)
    prefix = "uv run " if (project_root / "uv.lock").exists() else ""

    if (project_root / "pytest.ini").exists():
        return f"{prefix}pytest"

    try:
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        # Malformed TOML - nothing to detect
        return None

    if "pytest" in pyproject.get("tool", {}):
        return f"{prefix}pytest"
    return None


def _detect_node(project_type: ProjectType, package_json_path: Path) -> Toolchain:
    """Detect `npm test` and which runner it drives."""
    try:
        with open(package_json_path) as f:
            package_json = json.load(f)
    except (OSError, json.JSONDecodeError):
        # Malformed JSON - nothing to detect
        return Toolchain(project_type=project_type)

    scripts = package_json.get("scripts", {})
    dev_deps = {**package_json.get("dependencies", {}), **package_json.get("devDependencies", {})}

    if "test" not in scripts:
        return Toolchain(project_type=project_type)

    hint = None
    if "vitest" in dev_deps:
        hint = ParserFormat.VITEST
    elif "jest" in dev_deps:
        hint = ParserFormat.JEST

    return Toolchain(project_type=project_type, test_command="npm test", format_hint=hint)
