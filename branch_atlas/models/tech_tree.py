"""Merge tree ("tech tree") models and enums"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional


class SizeTier(Enum):
    """Size class of a merged branch by total changed lines."""
    XS = "xs"
    SM = "sm"
    MD = "md"
    LG = "lg"
    XL = "xl"


class BranchType(Enum):
    """Kind of work a branch carried, derived from its name."""
    FEATURE = "feature"
    FIX = "fix"
    CHORE = "chore"
    REFACTOR = "refactor"
    DOCS = "docs"
    TEST = "test"
    RELEASE = "release"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DiffStats:
    """Line and file counts of a diff between two commits."""
    lines_added: int = 0
    lines_removed: int = 0
    files_changed: int = 0
    files_added: int = 0
    files_removed: int = 0

    @property
    def total_lines(self) -> int:
        return self.lines_added + self.lines_removed


@dataclass(frozen=True)
class TechTreeNodeStats:
    lines_added: int
    lines_removed: int
    files_changed: int
    files_added: int
    files_removed: int
    commit_count: int
    days_since_merge: int

    @property
    def total_lines(self) -> int:
        return self.lines_added + self.lines_removed

    def to_dict(self) -> dict:
        return {
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "filesChanged": self.files_changed,
            "filesAdded": self.files_added,
            "filesRemoved": self.files_removed,
            "commitCount": self.commit_count,
            "daysSinceMerge": self.days_since_merge,
        }


@dataclass(frozen=True)
class TechTreeBadges:
    massive: bool = False
    destructive: bool = False
    additive: bool = False
    multi_file: bool = False
    surgical: bool = False
    ancient: bool = False
    fresh: bool = False

    def to_dict(self) -> dict:
        return {
            "massive": self.massive,
            "destructive": self.destructive,
            "additive": self.additive,
            "multiFile": self.multi_file,
            "surgical": self.surgical,
            "ancient": self.ancient,
            "fresh": self.fresh,
        }


@dataclass(frozen=True)
class TechTreeNode:
    """One branch merged into the main line."""
    branch_name: str
    merge_commit_hash: str
    commit_hash: str  # tip of the merged branch (second parent)
    author: str
    merge_date: datetime
    message: str
    stats: TechTreeNodeStats
    size_tier: SizeTier
    branch_type: BranchType
    badges: TechTreeBadges
    pr_number: Optional[int] = None

    @property
    def id(self) -> str:
        return self.merge_commit_hash

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "branchName": self.branch_name,
            "commitHash": self.commit_hash,
            "mergeCommitHash": self.merge_commit_hash,
            "author": self.author,
            "mergeDate": self.merge_date.isoformat(),
            "message": self.message,
            "stats": self.stats.to_dict(),
            "sizeTier": self.size_tier.value,
            "branchType": self.branch_type.value,
            "badges": self.badges.to_dict(),
        }
        if self.pr_number is not None:
            data["prNumber"] = self.pr_number
        return data


@dataclass(frozen=True)
class TechTreeStats:
    """Extremes over a node set, used to normalize a visualization."""
    min_loc: int = 0
    max_loc: int = 1
    min_files: int = 0
    max_files: int = 1
    min_age: int = 0
    max_age: int = 1

    def to_dict(self) -> dict:
        return {
            "minLoc": self.min_loc,
            "maxLoc": self.max_loc,
            "minFiles": self.min_files,
            "maxFiles": self.max_files,
            "minAge": self.min_age,
            "maxAge": self.max_age,
        }


@dataclass(frozen=True)
class TechTreeData:
    master_branch: str
    nodes: List[TechTreeNode]
    stats: TechTreeStats

    def to_dict(self) -> dict:
        return {
            "masterBranch": self.master_branch,
            "nodes": [node.to_dict() for node in self.nodes],
            "stats": self.stats.to_dict(),
        }
