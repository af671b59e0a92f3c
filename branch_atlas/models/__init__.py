"""Data models for branch-atlas."""

from .branch import Branch
from .commit import Commit, CommitStats, GraphCommit
from .tech_tree import (
    BranchType,
    DiffStats,
    SizeTier,
    TechTreeBadges,
    TechTreeData,
    TechTreeNode,
    TechTreeNodeStats,
    TechTreeStats,
)
from .identity import (
    AuthorIdentity,
    BucketSize,
    ContributorStats,
    ContributorStatsResult,
    MailmapEntry,
    RawAuthor,
    TimeSeriesPoint,
)
from .worktree import WorktreeInfo
from .pull_request import PullRequest

__all__ = [
    "Branch",
    "Commit",
    "CommitStats",
    "GraphCommit",
    "BranchType",
    "DiffStats",
    "SizeTier",
    "TechTreeBadges",
    "TechTreeData",
    "TechTreeNode",
    "TechTreeNodeStats",
    "TechTreeStats",
    "AuthorIdentity",
    "BucketSize",
    "ContributorStats",
    "ContributorStatsResult",
    "MailmapEntry",
    "RawAuthor",
    "TimeSeriesPoint",
    "WorktreeInfo",
    "PullRequest",
]
