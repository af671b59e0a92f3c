"""Command runner: one git subprocess per call, with a timeout."""

import os
import time
from dataclasses import dataclass
from typing import Optional, Sequence

import git

from branch_atlas.exceptions import (
    CommandFailedError,
    CommandTimeoutError,
    NotARepositoryError,
    VcsError,
)
from branch_atlas.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_BUFFER = 64 * 1024 * 1024


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one git call: stdout on success, the typed failure otherwise."""

    args: tuple
    stdout: str = ""
    error: Optional[VcsError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return stdout or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.stdout

    @classmethod
    def success(cls, args: Sequence[str], stdout: str) -> "CommandResult":
        return cls(args=tuple(args), stdout=stdout)

    @classmethod
    def failure(cls, args: Sequence[str], error: VcsError) -> "CommandResult":
        return cls(args=tuple(args), error=error)


def _operation_name(args: Sequence[str]) -> str:
    return f"git {args[0]}" if args else "git"


class GitCommandRunner:
    """Runs git subcommands through GitPython without raising on non-zero exit."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_buffer: int = DEFAULT_MAX_BUFFER):
        """Initialize the runner.

        Args:
            timeout: Default per-call timeout in seconds
            max_buffer: Default upper bound on stdout size in bytes
        """
        self.timeout = timeout
        self.max_buffer = max_buffer

    def run(
        self,
        working_dir: str,
        args: Sequence[str],
        timeout: Optional[float] = None,
        max_buffer: Optional[int] = None,
    ) -> CommandResult:
        """Run ``git <args>`` in ``working_dir``.

        Returns:
            CommandResult carrying stdout, or NotARepositoryError,
            CommandTimeoutError or CommandFailedError
        """
        timeout = timeout if timeout is not None else self.timeout
        max_buffer = max_buffer if max_buffer is not None else self.max_buffer
        operation = _operation_name(args)

        if not os.path.isdir(working_dir):
            return CommandResult.failure(args, NotARepositoryError(working_dir, operation))

        command = [git.Git.GIT_PYTHON_GIT_EXECUTABLE or "git", *args]
        started = time.monotonic()
        try:
            status, stdout, stderr = git.Git(working_dir).execute(
                command,
                with_extended_output=True,
                with_exceptions=False,
                kill_after_timeout=timeout,
                strip_newline_in_stdout=False,
            )
        except git.exc.GitCommandNotFound as e:
            return CommandResult.failure(args, CommandFailedError(operation, 127, str(e)))
        elapsed = time.monotonic() - started

        if status != 0:
            error = self._classify_failure(working_dir, operation, status, stderr, timeout, elapsed)
            logger.debug(f"{operation} failed in {working_dir}: {error}")
            return CommandResult.failure(args, error)

        if len(stdout.encode("utf-8", errors="replace")) > max_buffer:
            return CommandResult.failure(
                args,
                CommandFailedError(operation, status, f"maxBuffer exceeded ({max_buffer} bytes)"),
            )

        logger.debug(f"{operation} completed in {elapsed:.3f}s")
        return CommandResult.success(args, stdout)

    @staticmethod
    def _classify_failure(
        working_dir: str,
        operation: str,
        status: int,
        stderr: str,
        timeout: float,
        elapsed: float,
    ) -> VcsError:
        # GitPython replaces stderr with a "Timeout: ..." notice when its watchdog kills the process
        if stderr.startswith("Timeout:") or elapsed >= timeout:
            return CommandTimeoutError(operation, timeout)
        if "not a git repository" in stderr.lower():
            return NotARepositoryError(working_dir, operation)
        return CommandFailedError(operation, status, stderr)
