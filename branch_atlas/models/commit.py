"""Commit and commit-graph models"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class CommitStats:
    """Line and file counts of a commit against its first parent."""
    lines_added: int
    lines_removed: int
    files_changed: int

    def to_dict(self) -> dict:
        return {
            "additions": self.lines_added,
            "deletions": self.lines_removed,
            "filesChanged": self.files_changed,
        }


@dataclass(frozen=True)
class Commit:
    """One commit as read from ``git log``."""
    hash: str
    parent_hashes: List[str]
    author_name: str
    author_email: str
    author_date: datetime
    committer_date: datetime
    message: str
    refs: List[str] = field(default_factory=list)
    stats: Optional[CommitStats] = None

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def is_merge(self) -> bool:
        return len(self.parent_hashes) > 1

    @property
    def first_parent(self) -> Optional[str]:
        return self.parent_hashes[0] if self.parent_hashes else None


@dataclass(frozen=True)
class GraphCommit:
    """A commit plus the layout the renderer draws it with."""
    commit: Commit
    lane: int
    color_key: str
    row: int

    @property
    def hash(self) -> str:
        return self.commit.hash

    def to_dict(self) -> dict:
        commit = self.commit
        data = {
            "hash": commit.hash,
            "shortHash": commit.short_hash,
            "parents": list(commit.parent_hashes),
            "author": commit.author_name,
            "email": commit.author_email,
            "date": commit.author_date.isoformat(),
            "message": commit.message,
            "refs": list(commit.refs),
            "isMerge": commit.is_merge,
            "lane": self.lane,
            "colorKey": self.color_key,
            "row": self.row,
        }
        if commit.stats is not None:
            data.update(commit.stats.to_dict())
        return data
