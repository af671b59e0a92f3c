"""Git-related services for branch-atlas."""

from .runner import CommandResult, GitCommandRunner
from .branch_queries import BranchQueries
from .commit_graph import CommitGraphBuilder, assign_lanes
from .merge_tree import MergeTreeBuilder
from .worktrees import WorktreeService
from .github import GitHubService

__all__ = [
    "CommandResult",
    "GitCommandRunner",
    "BranchQueries",
    "CommitGraphBuilder",
    "assign_lanes",
    "MergeTreeBuilder",
    "WorktreeService",
    "GitHubService",
]
