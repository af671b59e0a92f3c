"""Pull request model"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from branch_atlas.utils.dates import to_iso


@dataclass(frozen=True)
class PullRequest:
    """A pull request as reported by the hosting service."""
    number: int
    title: str
    author: str
    branch: str
    base_branch: str
    state: str
    is_draft: bool
    url: str
    updated_at: Optional[datetime] = None
    merged: bool = False

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "title": self.title,
            "author": self.author,
            "branch": self.branch,
            "baseBranch": self.base_branch,
            "state": self.state,
            "isDraft": self.is_draft,
            "url": self.url,
            "updatedAt": to_iso(self.updated_at),
            "merged": self.merged,
        }
