"""Author identity, mailmap and contributor statistics models"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class BucketSize(Enum):
    """Width of one contributor time-series bucket."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class MailmapEntry:
    """One alias rule: commits by the alias are attributed to the canonical identity.

    ``alias_name`` is None for email-only rules, which match any name.
    """
    canonical_name: Optional[str]
    canonical_email: str
    alias_email: str
    alias_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "canonicalName": self.canonical_name,
            "canonicalEmail": self.canonical_email,
            "aliasName": self.alias_name,
            "aliasEmail": self.alias_email,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MailmapEntry":
        canonical_email = data.get("canonicalEmail")
        alias_email = data.get("aliasEmail")
        if not canonical_email or not alias_email:
            raise ValueError("mailmap entry needs canonicalEmail and aliasEmail")
        return cls(
            canonical_name=data.get("canonicalName") or None,
            canonical_email=canonical_email,
            alias_email=alias_email,
            alias_name=data.get("aliasName") or None,
        )


@dataclass(frozen=True)
class RawAuthor:
    """An author exactly as recorded in commits, with how often it appears."""
    name: str
    email: str
    commit_count: int = 0

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.email.lower())


@dataclass(frozen=True)
class AuthorIdentity:
    """A canonical contributor and the raw (name, email) pairs known to map to it."""
    name: str
    email: str
    aliases: FrozenSet[Tuple[str, str]] = field(default_factory=frozenset)
    commit_count: int = 0

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.email.lower())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "aliases": [{"name": n, "email": e} for n, e in sorted(self.aliases)],
            "commitCount": self.commit_count,
        }


@dataclass(frozen=True)
class TimeSeriesPoint:
    bucket_start: date
    count: int

    def to_dict(self) -> dict:
        return {"date": self.bucket_start.isoformat(), "count": self.count}


@dataclass(frozen=True)
class ContributorStats:
    author: str
    email: str
    total_commits: int
    time_series: List[TimeSeriesPoint]

    def to_dict(self) -> dict:
        return {
            "author": self.author,
            "email": self.email,
            "totalCommits": self.total_commits,
            "timeSeries": [point.to_dict() for point in self.time_series],
        }


@dataclass(frozen=True)
class ContributorStatsResult:
    contributors: List[ContributorStats]
    start_date: Optional[date]
    end_date: Optional[date]
    bucket_size: BucketSize

    def to_dict(self) -> dict:
        return {
            "contributors": [c.to_dict() for c in self.contributors],
            "startDate": self.start_date.isoformat() if self.start_date else "",
            "endDate": self.end_date.isoformat() if self.end_date else "",
            "bucketSize": self.bucket_size.value,
        }
