"""Contributor statistics: commits per resolved author, bucketed over time."""

from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union, TYPE_CHECKING

from branch_atlas.models.identity import (
    BucketSize,
    ContributorStats,
    ContributorStatsResult,
    TimeSeriesPoint,
)
from branch_atlas.services.git.branch_queries import BranchQueries
from branch_atlas.services.git.parsers import AUTHOR_FORMAT, AuthorRecord, parse_author_records
from branch_atlas.services.identity_service import Mailmap, resolve
from branch_atlas.services.mailmap_store import MailmapStore
from branch_atlas.logging_config import get_logger

if TYPE_CHECKING:
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)


def bucket_start(moment: datetime, bucket_size: BucketSize) -> date:
    """First day of the bucket holding ``moment`` (UTC calendar)."""
    day = moment.astimezone(timezone.utc).date()
    if bucket_size is BucketSize.DAY:
        return day
    if bucket_size is BucketSize.WEEK:
        return day - timedelta(days=day.weekday())  # ISO weeks start on Monday
    return day.replace(day=1)


def next_bucket(start: date, bucket_size: BucketSize) -> date:
    if bucket_size is BucketSize.DAY:
        return start + timedelta(days=1)
    if bucket_size is BucketSize.WEEK:
        return start + timedelta(days=7)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def bucket_range(first: date, last: date, bucket_size: BucketSize) -> List[date]:
    """Every bucket start from ``first`` through ``last`` inclusive."""
    buckets = []
    current = first
    while current <= last:
        buckets.append(current)
        current = next_bucket(current, bucket_size)
    return buckets


def aggregate(
    commits: Iterable[AuthorRecord],
    mailmap: Mailmap,
    top_n: Optional[int] = 10,
    bucket_size: Union[BucketSize, str] = BucketSize.WEEK,
) -> ContributorStatsResult:
    """Bucket commit activity per resolved author.

    Every contributor's series covers the same buckets, from the first to the
    last commit of the whole input, so series can be compared directly.
    ``top_n`` drops whole contributors; the date range still covers everyone.

    Args:
        commits: Author records, one per commit
        mailmap: Alias table used to resolve authors
        top_n: Maximum contributors to return (None for all)
        bucket_size: day, week or month

    Returns:
        ContributorStatsResult sorted by total commits, descending
    """
    bucket_size = BucketSize(bucket_size)
    if top_n is not None and top_n <= 0:
        raise ValueError(f"top_n must be positive, got {top_n}")

    counts: Dict[Tuple[str, str], Dict[date, int]] = {}
    names: Dict[Tuple[str, str], Tuple[str, str]] = {}
    first: Optional[datetime] = None
    last: Optional[datetime] = None

    for record in commits:
        identity = resolve(record.name, record.email, mailmap)
        per_bucket = counts.setdefault(identity.key, {})
        names.setdefault(identity.key, (identity.name, identity.email))
        bucket = bucket_start(record.date, bucket_size)
        per_bucket[bucket] = per_bucket.get(bucket, 0) + 1
        if first is None or record.date < first:
            first = record.date
        if last is None or record.date > last:
            last = record.date

    if first is None or last is None:
        return ContributorStatsResult(contributors=[], start_date=None, end_date=None, bucket_size=bucket_size)

    buckets = bucket_range(bucket_start(first, bucket_size), bucket_start(last, bucket_size), bucket_size)
    contributors = []
    for key, per_bucket in counts.items():
        name, email = names[key]
        contributors.append(
            ContributorStats(
                author=name,
                email=email,
                total_commits=sum(per_bucket.values()),
                time_series=[TimeSeriesPoint(b, per_bucket.get(b, 0)) for b in buckets],
            )
        )

    contributors.sort(key=lambda c: (-c.total_commits, c.author, c.email))
    if top_n is not None:
        contributors = contributors[:top_n]

    return ContributorStatsResult(
        contributors=contributors,
        start_date=first.astimezone(timezone.utc).date(),
        end_date=last.astimezone(timezone.utc).date(),
        bucket_size=bucket_size,
    )


class ContributorStatsService:
    """Reads commit authors from the main branch and aggregates them."""

    def __init__(self, session: "RepositorySession"):
        """Initialize the service.

        Args:
            session: Repository session to read from
        """
        self.session = session
        self.config = session.config
        self.branch_queries = BranchQueries(session)
        self.mailmap_store = MailmapStore(session.path)

    def read_author_records(self, since: Optional[datetime] = None) -> List[AuthorRecord]:
        """Author of every non-merge commit on the main branch (HEAD when there is none)."""
        main_ref = self.branch_queries.resolve_main_branch(self.branch_queries.list_refs())
        revision = main_ref.refname if main_ref is not None else "HEAD"
        args = ["log", "--no-merges", f"--format={AUTHOR_FORMAT}"]
        if since is not None:
            args.append(f"--since={since.isoformat()}")
        output = self.session.run_checked(*args, revision, "--")
        return parse_author_records(output)

    def get_stats(
        self,
        top_n: Optional[int] = None,
        bucket_size: Union[BucketSize, str, None] = None,
        since: Optional[datetime] = None,
    ) -> ContributorStatsResult:
        records = self.read_author_records(since)
        mailmap = Mailmap(self.mailmap_store.read())
        logger.debug(f"Aggregating {len(records)} commits with {len(mailmap)} mailmap entries")
        return aggregate(
            records,
            mailmap,
            top_n=top_n or self.config.top_n,
            bucket_size=bucket_size or self.config.bucket_size,
        )
