"""Worktree data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class WorktreeInfo:
    """Information about a git worktree."""

    path: str
    branch_name: Optional[str]  # None when the worktree has a detached HEAD
    head: str
    is_main: bool  # Is this the main working tree?
    is_orphaned: bool  # Directory missing?
    is_locked: bool = False
    is_prunable: bool = False

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else "active"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch_name or '(detached)'} @ {self.path}{main_marker} [{status}]"

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "branch": self.branch_name,
            "head": self.head,
            "isMain": self.is_main,
            "isOrphaned": self.is_orphaned,
            "isLocked": self.is_locked,
            "isPrunable": self.is_prunable,
        }
