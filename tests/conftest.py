"""Pytest fixtures for branch-atlas tests"""
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
import pytest
import git

from branch_atlas.config import Config
from branch_atlas.services.git.runner import CommandResult, GitCommandRunner
from branch_atlas.session import RepositorySession

# Fixed clock for history built by the fixtures
BASE_TIME = datetime(2024, 3, 4, 12, 0, 0, tzinfo=timezone.utc)  # a Monday
ONE_DAY = timedelta(days=1)

TEST_USER = git.Actor("Test User", "test@example.com")


def git_date(when: datetime) -> str:
    """Raw git date format GitPython accepts for author_date/commit_date."""
    return f"{int(when.timestamp())} +0000"


def commit_file(repo, filename, content, message, when=None, author=None):
    """Write a file, stage it and commit it, returning the new commit."""
    path = Path(repo.working_dir) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([filename])
    date = git_date(when or BASE_TIME)
    author = author or TEST_USER
    return repo.index.commit(
        message,
        author=author,
        committer=author,
        author_date=date,
        commit_date=date,
    )


def merge_no_ff(repo, branch, message, when=None):
    """Merge ``branch`` into the checked out branch with a merge commit at ``when``."""
    date = git_date(when or BASE_TIME)
    with repo.git.custom_environment(GIT_AUTHOR_DATE=date, GIT_COMMITTER_DATE=date):
        repo.git.merge(branch, "--no-ff", "-m", message)
    return repo.head.commit


class RecordingRunner(GitCommandRunner):
    """GitCommandRunner that records the arguments of every call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def run(self, working_dir, args, timeout=None, max_buffer=None):
        self.calls.append(list(args))
        return super().run(working_dir, args, timeout=timeout, max_buffer=max_buffer)


class FailingRunner(GitCommandRunner):
    """GitCommandRunner that fails every call ``failure_for`` returns an error for."""

    def __init__(self, failure_for, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failure_for = failure_for

    def run(self, working_dir, args, timeout=None, max_buffer=None):
        error = self.failure_for(list(args))
        if error is not None:
            return CommandResult.failure(args, error)
        return super().run(working_dir, args, timeout=timeout, max_buffer=max_buffer)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config():
    """Configuration without a GitHub token so tests never hit the network."""
    return Config(github_token="", workers=4)


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on main."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits and merges
    with repo.config_writer() as writer:
        writer.set_value("user", "name", TEST_USER.name)
        writer.set_value("user", "email", TEST_USER.email)
        writer.set_value("commit", "gpgsign", "false")

    commit_file(repo, "README.md", "# Test Repository\n", "Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """main with 5 commits and an unmerged feature/x with 3 commits of its own."""
    repo = git_repo
    for i in range(1, 5):
        commit_file(repo, f"main{i}.txt", f"main {i}\n", f"Main commit {i}", BASE_TIME.replace(day=4 + i))

    repo.git.checkout("-b", "feature/x")
    for i in range(1, 4):
        commit_file(repo, f"x{i}.txt", f"x {i}\n", f"Feature commit {i}", BASE_TIME.replace(day=10 + i))

    repo.git.checkout("main")
    yield repo


@pytest.fixture
def git_repo_with_merge(git_repo):
    """main with fix/login-bug merged through a merge commit (+12/-3 over 2 files)."""
    repo = git_repo
    original = "".join(f"line {i}\n" for i in range(10))
    commit_file(repo, "login.py", original, "Add login", BASE_TIME + 1 * ONE_DAY)

    repo.git.checkout("-b", "fix/login-bug")
    changed = "".join(f"line {i}\n" for i in range(3, 10))  # drops 3 lines
    commit_file(repo, "login.py", changed, "Drop broken checks", BASE_TIME + 2 * ONE_DAY)
    commit_file(
        repo,
        "session.py",
        "".join(f"session {i}\n" for i in range(12)),
        "Add session handling",
        BASE_TIME + 3 * ONE_DAY,
    )

    repo.git.checkout("main")
    merge_no_ff(repo, "fix/login-bug", "Merge branch 'fix/login-bug'", BASE_TIME + 4 * ONE_DAY)
    yield repo


@pytest.fixture
def session(git_repo_with_branches, config):
    """Session over the repository with main and feature/x."""
    return RepositorySession(git_repo_with_branches.working_dir, config)


@pytest.fixture
def recording_session(git_repo_with_branches, config):
    """Session whose runner records every git call."""
    runner = RecordingRunner(timeout=config.command_timeout)
    return RepositorySession(git_repo_with_branches.working_dir, config, runner=runner)
