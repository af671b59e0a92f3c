"""Branch model"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from branch_atlas.utils.dates import to_iso


@dataclass(frozen=True)
class Branch:
    """One local or remote branch.

    The basic listing fills the identity fields and ``is_merged``; the
    full-metadata listing adds the optional fields. ``None`` means "not
    computed or not computable", which is different from zero.
    """
    name: str
    is_remote: bool
    is_local_only: bool
    is_merged: bool
    current: bool
    commit_hash: str
    upstream: Optional[str] = None
    last_commit_date: Optional[datetime] = None
    first_commit_date: Optional[datetime] = None
    commit_count: Optional[int] = None
    ahead_count: Optional[int] = None
    behind_count: Optional[int] = None

    @property
    def ref(self) -> str:
        """Fully qualified ref name, unambiguous when local and remote names collide."""
        if self.is_remote:
            return f"refs/remotes/{self.name}"
        return f"refs/heads/{self.name}"

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "isRemote": self.is_remote,
            "isLocalOnly": self.is_local_only,
            "isMerged": self.is_merged,
            "current": self.current,
            "commit": self.commit_hash,
        }
        optional = {
            "upstream": self.upstream,
            "lastCommitDate": to_iso(self.last_commit_date),
            "firstCommitDate": to_iso(self.first_commit_date),
            "commitCount": self.commit_count,
            "aheadCount": self.ahead_count,
            "behindCount": self.behind_count,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data
