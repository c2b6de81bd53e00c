"""Verification gate: run tests, verify their claims, decide allow/block.

Public API for the gate module.
"""

from vgate.gate.checks import (
    CHECK_REGISTRY,
    CheckEvaluationError,
    QualityCheck,
    build_checks,
    run_checks,
)
from vgate.gate.cli import verify_command
from vgate.gate.command import CommandRunner, RunnerError, RunnerErrorKind, run_command
from vgate.gate.config import CheckType, ConfigError, GateConfig, load_config
from vgate.gate.context import build_repo_context
from vgate.gate.detector import ProjectType, Toolchain, detect_toolchain
from vgate.gate.evaluator import evaluate
from vgate.gate.models import (
    CheckVerdict,
    CommandResult,
    FailureDetail,
    GateDecision,
    GateRun,
    Policy,
    ReportFormat,
    RepoContext,
    Severity,
    TestReport,
)
from vgate.gate.parser import ParserFormat, parse
from vgate.gate.pipeline import GatePipeline, run_gate
from vgate.gate.reporter import exit_code, render

__all__ = [
    "CHECK_REGISTRY",
    "CheckEvaluationError",
    "CheckType",
    "CheckVerdict",
    "CommandResult",
    "CommandRunner",
    "ConfigError",
    "FailureDetail",
    "GateConfig",
    "GateDecision",
    "GatePipeline",
    "GateRun",
    "ParserFormat",
    "Policy",
    "ProjectType",
    "QualityCheck",
    "ReportFormat",
    "RepoContext",
    "RunnerError",
    "RunnerErrorKind",
    "Severity",
    "TestReport",
    "Toolchain",
    "build_checks",
    "build_repo_context",
    "detect_toolchain",
    "evaluate",
    "exit_code",
    "load_config",
    "parse",
    "render",
    "run_checks",
    "run_command",
    "run_gate",
    "verify_command",
]
