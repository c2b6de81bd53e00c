"""Gate pipeline: run → parse → collect context → check → evaluate."""

from pathlib import Path

from vgate.gate.checks import QualityCheck, build_checks, run_checks
from vgate.gate.command import CommandRunner, RunnerError, RunnerErrorKind
from vgate.gate.config import GateConfig
from vgate.gate.context import build_repo_context
from vgate.gate.evaluator import evaluate
from vgate.gate.models import CommandResult, GateRun, TestReport
from vgate.gate.parser import parse


class GatePipeline:
    """Orchestrates one verification gate run.

    Holds no state between runs; calling run() twice runs the command twice.
    """

    def __init__(self, config: GateConfig, project_root: Path) -> None:
        """Initialize gate pipeline.

        Args:
            config: Validated gate configuration
            project_root: Directory the command runs in and checks inspect
        """
        self.config = config
        self.project_root = project_root
        self.checks: list[QualityCheck] = build_checks(config.checks)

    def run(self) -> GateRun:
        """Run the test command and judge the result.

        Returns:
            GateRun with command result, parsed report, and decision

        Raises:
            RunnerError: If the command could not start or timed out
        """
        result = self.run_command()
        report = parse(result.output, self.config.format_hint)
        return self.judge(result, report)

    def run_command(self) -> CommandResult:
        """Run the configured command, turning a timeout into RunnerError.

        Raises:
            RunnerError: If the command could not start or timed out
        """
        runner = CommandRunner(
            command=self.config.command,
            cwd=self.project_root,
            timeout_seconds=self.config.timeout_seconds,
            env=self.config.env or None,
        )
        result = runner.run()

        if result.timed_out:
            # Partial output from a killed run cannot be trusted
            raise RunnerError(
                RunnerErrorKind.TIMEOUT,
                f"Command timed out after {self.config.timeout_seconds}s: {self.config.command!r}",
            )
        return result

    def judge(self, result: CommandResult, report: TestReport) -> GateRun:
        """Run checks on an already-parsed report and decide.

        Args:
            result: Command result the report was parsed from
            report: Parsed test report

        Returns:
            GateRun with the decision
        """
        context = build_repo_context(
            self.project_root, self.config, report, exit_code=result.exit_code
        )
        verdicts = run_checks(
            self.checks, report, context, parallel=self.config.parallel_checks
        )
        decision = evaluate(verdicts, self.config.policy)
        return GateRun(result=result, report=report, decision=decision)


def run_gate(config: GateConfig, project_root: Path) -> GateRun:
    """Helper function to run the gate once.

    Args:
        config: Validated gate configuration
        project_root: Project root directory

    Returns:
        GateRun from the pipeline

    Raises:
        RunnerError: If the command could not start or timed out
    """
    return GatePipeline(config=config, project_root=project_root).run()
