"""Subprocess execution helpers for git commands.

Three calling conventions are used by the git layer:

- run_subprocess_with_context: the command must succeed; failures raise
  RuntimeError with the command, exit code and captured output attached.
- run_subprocess_for_result: the command may legitimately fail; the outcome
  is returned as a CommandResult for the caller to inspect.
- run_passthrough: network operations (fetch, push, p4) that may prompt for
  credentials; stdio is inherited from the terminal and only the exit code
  is returned.
"""

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a git command that is allowed to fail."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    input: str | None = None,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Execute subprocess with enriched error reporting.

    Wraps subprocess.run() to catch CalledProcessError and re-raise as RuntimeError
    with operation context, stderr output, and command details.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description of operation
        cwd: Working directory for command execution
        input: Text written to the command's stdin
        **kwargs: Additional arguments passed to subprocess.run()

    Returns:
        CompletedProcess instance from subprocess.run()

    Raises:
        RuntimeError: If command fails with enriched error context
    """
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            input=input,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=True,
            **kwargs,
        )

    except subprocess.CalledProcessError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Failed to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        error_msg += f"\nExit code: {e.returncode}"

        if e.stdout and e.stdout.strip():
            error_msg += f"\nstdout: {e.stdout.strip()}"

        if e.stderr and e.stderr.strip():
            error_msg += f"\nstderr: {e.stderr.strip()}"

        raise RuntimeError(error_msg) from e

    except FileNotFoundError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
        error_msg += f"\nFull command: {cmd_str}"
        raise RuntimeError(error_msg) from e


def run_subprocess_for_result(cmd: Sequence[str], cwd: Path | None = None) -> CommandResult:
    """Execute a command whose failure the caller handles."""
    logger.debug("Running %s (cwd=%s, failure allowed)", " ".join(cmd), cwd)
    result = subprocess.run(
        cmd,
        cwd=cwd,
        capture_output=True,
        text=True,
        encoding="utf-8",
        check=False,
    )
    return CommandResult(returncode=result.returncode, stdout=result.stdout, stderr=result.stderr)


def run_passthrough(cmd: Sequence[str], cwd: Path | None = None) -> int:
    """Execute a command attached to the user's terminal and return its exit code."""
    logger.debug("Running %s (cwd=%s, passthrough)", " ".join(cmd), cwd)
    return subprocess.run(cmd, cwd=cwd, check=False).returncode
