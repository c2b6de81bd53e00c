"""Command runner for executing the test command under a timeout."""

import os
import signal
import subprocess
import time
from enum import StrEnum
from pathlib import Path

from vgate.gate.models import CommandResult

# Exit codes POSIX shells use when they cannot start the command
_SHELL_NOT_FOUND = 127
_SHELL_NOT_EXECUTABLE = 126

# Seconds between SIGTERM and SIGKILL when tearing down a timed-out run
_KILL_GRACE_SECONDS = 2


class RunnerErrorKind(StrEnum):
    """Why the runner could not produce usable output."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    SPAWN_FAILED = "spawn_failed"
    TIMEOUT = "timeout"


class RunnerError(Exception):
    """The test command could not be run to completion.

    Distinct from failing tests: a RunnerError means there is nothing to parse.
    Shell exit 127/126 is only treated as not_found/permission_denied when
    the command printed nothing on stdout; otherwise it is an ordinary
    non-zero exit.
    """

    def __init__(self, kind: RunnerErrorKind, message: str) -> None:
        """Initialize RunnerError with a kind and message."""
        self.kind = kind
        self.message = message
        super().__init__(message)


class CommandRunner:
    """Runs a shell command and captures its output."""

    def __init__(
        self,
        command: str,
        cwd: Path,
        timeout_seconds: int = 300,
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize command runner.

        Args:
            command: Shell command to execute
            cwd: Working directory for command execution
            timeout_seconds: Command timeout in seconds (default: 300)
            env: Optional environment variables layered over os.environ

        Raises:
            ValueError: If command is empty or timeout is not positive
        """
        if not command.strip():
            raise ValueError("command must be non-empty")
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")

        self.command = command
        self.cwd = cwd
        self.timeout_seconds = timeout_seconds
        self.env = env

    def run(self) -> CommandResult:
        """Execute the command and return its result.

        A non-zero exit code is returned as data. A timeout is returned with
        timed_out=True and exit_code=-1.

        Returns:
            CommandResult with captured output

        Raises:
            RunnerError: If the command cannot be started
        """
        start_time = time.time()

        run_env = os.environ.copy()
        if self.env:
            run_env.update(self.env)

        try:
            # Own session so a timeout can take down everything the shell spawned
            process = subprocess.Popen(
                self.command,
                shell=True,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                env=run_env,
                start_new_session=True,
            )
        except OSError as e:
            raise RunnerError(
                RunnerErrorKind.SPAWN_FAILED,
                f"Could not start command {self.command!r}: {e}",
            ) from e

        try:
            stdout, stderr = process.communicate(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired:
            stdout, stderr = self._terminate(process)
            duration_ms = max(
                int((time.time() - start_time) * 1000), int(self.timeout_seconds * 1000)
            )
            return CommandResult(
                stdout=stdout,
                stderr=stderr,
                exit_code=-1,
                timed_out=True,
                duration_ms=duration_ms,
            )
        finally:
            # Reap the group even if communicate() raised something unexpected
            if process.poll() is None:
                self._kill_group(process, signal.SIGKILL)
                process.wait()

        duration_ms = max(1, int((time.time() - start_time) * 1000))

        # 126/127 only mean "could not start" when nothing was printed; a test
        # script may itself end with such a code after producing output
        nothing_printed = not stdout.strip()
        if process.returncode == _SHELL_NOT_FOUND and nothing_printed:
            raise RunnerError(
                RunnerErrorKind.NOT_FOUND,
                f"Command not found: {self.command!r} ({stderr.strip() or 'exit 127'})",
            )
        if process.returncode == _SHELL_NOT_EXECUTABLE and nothing_printed:
            raise RunnerError(
                RunnerErrorKind.PERMISSION_DENIED,
                f"Permission denied: {self.command!r} ({stderr.strip() or 'exit 126'})",
            )

        return CommandResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=process.returncode,
            timed_out=False,
            duration_ms=duration_ms,
        )

    def _terminate(self, process: subprocess.Popen[str]) -> tuple[str, str]:
        """Stop a timed-out process group and collect what it printed."""
        self._kill_group(process, signal.SIGTERM)
        try:
            stdout, stderr = process.communicate(timeout=_KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            self._kill_group(process, signal.SIGKILL)
            stdout, stderr = process.communicate()
        return stdout or "", stderr or ""

    @staticmethod
    def _kill_group(process: subprocess.Popen[str], sig: signal.Signals) -> None:
        """Signal the process group, falling back to the process itself."""
        try:
            os.killpg(process.pid, sig)
        except (ProcessLookupError, PermissionError):
            # Group already gone, or not ours to signal
            try:
                process.send_signal(sig)
            except ProcessLookupError:
                pass


def run_command(
    command: str,
    cwd: Path,
    timeout_seconds: int = 300,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Helper function to run a command.

    Args:
        command: Shell command to execute
        cwd: Working directory
        timeout_seconds: Command timeout in seconds
        env: Optional environment variables

    Returns:
        CommandResult from execution
    """
    runner = CommandRunner(
        command=command,
        cwd=cwd,
        timeout_seconds=timeout_seconds,
        env=env,
    )
    return runner.run()
