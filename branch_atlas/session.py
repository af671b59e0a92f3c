"""Repository session: the explicit handle every core operation receives."""

import os
from typing import Optional

from branch_atlas.config import Config
from branch_atlas.logging_config import get_logger
from branch_atlas.services.git.runner import CommandResult, GitCommandRunner
from branch_atlas.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)


class RepositorySession:
    """A repository path bound to its configuration and command runner.

    Holds no mutable state about the repository itself; every read goes to git.
    Creating a session does not spawn a process.
    """

    def __init__(
        self,
        repo_path: str,
        config: Optional[Config] = None,
        runner: Optional[GitCommandRunner] = None,
    ):
        """Initialize the session.

        Args:
            repo_path: Path to the git working directory
            config: Config object (defaults to Config())
            runner: Command runner (defaults to a GitCommandRunner built from config)
        """
        self.path = os.path.abspath(repo_path)
        self.config = config if config is not None else Config()
        self.runner = runner if runner is not None else GitCommandRunner(
            timeout=self.config.command_timeout,
            max_buffer=self.config.max_buffer,
        )
        self.max_workers = get_optimal_worker_count(self.config.workers)

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep))

    def run(self, *args: str, timeout: Optional[float] = None) -> CommandResult:
        """Run a git subcommand in this repository, returning the tagged result."""
        return self.runner.run(self.path, list(args), timeout=timeout)

    def run_checked(self, *args: str, timeout: Optional[float] = None) -> str:
        """Run a git subcommand and return stdout, raising its VcsError on failure."""
        return self.run(*args, timeout=timeout).unwrap()

    def __repr__(self) -> str:
        return f"RepositorySession({self.path!r})"
