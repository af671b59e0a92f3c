"""Commit graph service: flat history plus lane layout."""

import heapq
from dataclasses import replace
from typing import AbstractSet, Dict, List, Optional, Sequence, Set, TYPE_CHECKING

from branch_atlas.exceptions import MalformedOutputError, PartialMetadataFailure, VcsError
from branch_atlas.models.commit import Commit, CommitStats, GraphCommit
from branch_atlas.services.git.branch_queries import BranchQueries
from branch_atlas.services.git.parsers import COMMIT_FORMAT, parse_commit_records, parse_numstat
from branch_atlas.logging_config import get_logger
from branch_atlas.utils.threading import CancellationToken, bounded_map

if TYPE_CHECKING:
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)


def read_commits(
    session: "RepositorySession",
    revisions: Sequence[str],
    limit: int,
    extra_args: Sequence[str] = (),
) -> List[Commit]:
    """Read up to ``limit`` commits newest first with a single ``git log`` call."""
    output = session.run_checked(
        "log",
        f"--max-count={limit}",
        f"--format={COMMIT_FORMAT}",
        *extra_args,
        *revisions,
        "--",
    )
    return parse_commit_records(output)


def _color_key(commit: Commit, lane: int, local_branches: Optional[AbstractSet[str]]) -> str:
    for ref in commit.refs:
        if ref.startswith("tag: "):
            continue
        if local_branches is None or ref in local_branches:
            return ref
    return f"lane-{lane}"


def assign_lanes(
    commits: Sequence[Commit],
    local_branches: Optional[AbstractSet[str]] = None,
) -> List[GraphCommit]:
    """Assign each commit a lane so parent chains can be drawn without re-layout.

    Commits are processed in the given (newest first) order. Each lane holds
    the hash it is waiting for. A commit takes the lowest lane waiting for it
    and that lane moves on to the commit's first parent; further parents get
    new lanes appended after the existing ones. A commit nobody waits for
    takes the first free lane. Free lanes at the end are dropped after every
    commit, so the lane count tracks the actual branching width.

    A lane is keyed by the first local branch decorating the commit that opened
    it, else ``lane-<n>``. With ``local_branches`` None every non-tag ref counts
    as a local branch.

    The result depends only on the input order and runs in time linear in
    commits plus parent edges.
    """
    lanes: List[Optional[str]] = []
    lane_keys: List[Optional[str]] = []
    waiting: Dict[str, List[int]] = {}
    free_heap: List[int] = []

    def free(index: int) -> None:
        lanes[index] = None
        lane_keys[index] = None
        heapq.heappush(free_heap, index)

    def take_free_lane() -> int:
        while free_heap:
            index = heapq.heappop(free_heap)
            if index < len(lanes) and lanes[index] is None:
                return index
        lanes.append(None)
        lane_keys.append(None)
        return len(lanes) - 1

    def wait_for(index: int, commit_hash: str) -> None:
        lanes[index] = commit_hash
        waiting.setdefault(commit_hash, []).append(index)

    graph = []
    for row, commit in enumerate(commits):
        claimed = waiting.pop(commit.hash, [])
        if claimed:
            lane = min(claimed)
            for other in claimed:
                if other != lane:
                    free(other)
        else:
            lane = take_free_lane()

        if lane_keys[lane] is None:
            lane_keys[lane] = _color_key(commit, lane, local_branches)
        color_key = lane_keys[lane]

        if commit.parent_hashes:
            wait_for(lane, commit.parent_hashes[0])
        else:
            free(lane)

        for parent in commit.parent_hashes[1:]:
            if parent in waiting:
                continue
            lanes.append(None)
            lane_keys.append(None)
            wait_for(len(lanes) - 1, parent)

        while lanes and lanes[-1] is None:
            lanes.pop()
            lane_keys.pop()

        graph.append(GraphCommit(commit=commit, lane=lane, color_key=color_key, row=row))

    return graph


class CommitGraphBuilder:
    """Service building the lane-assigned commit graph."""

    def __init__(self, session: "RepositorySession"):
        """Initialize the builder.

        Args:
            session: Repository session the history is read from
        """
        self.session = session
        self.config = session.config

    def read_history(self, limit: int, ref: Optional[str] = None) -> List[Commit]:
        """Read the flat topologically ordered history of ``ref`` (all refs when None)."""
        revisions = [ref] if ref else ["--all"]
        return read_commits(self.session, revisions, limit, extra_args=["--topo-order"])

    def read_local_branches(self) -> Set[str]:
        """Short names of local branches, used to key lanes (one git call)."""
        return {ref.name for ref in BranchQueries(self.session).list_refs() if not ref.is_remote}

    def build(
        self,
        limit: Optional[int] = None,
        skip_stats: bool = True,
        ref: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[GraphCommit]:
        """Build the commit graph.

        Args:
            limit: Maximum number of commits (defaults to config.graph_limit)
            skip_stats: If False, fetch per-commit line stats (one git call per commit)
            ref: Branch, commit or range to walk; None walks every ref
            cancel_token: Checked while per-commit stats are being fetched

        Returns:
            List of GraphCommit, newest first
        """
        limit = limit or self.config.graph_limit
        commits = self.read_history(limit, ref)
        logger.debug(f"Read {len(commits)} commits for graph (skip_stats={skip_stats})")

        if not skip_stats:
            stats = bounded_map(
                self._fetch_stats,
                commits,
                self.session.max_workers,
                cancel_token=cancel_token,
                operation="commit stats",
            )
            commits = [replace(commit, stats=s) for commit, s in zip(commits, stats)]

        return assign_lanes(commits, self.read_local_branches())

    def _fetch_stats(self, commit: Commit) -> Optional[CommitStats]:
        """Line stats of a commit against its first parent; None if git could not provide them."""
        try:
            if commit.first_parent:
                output = self.session.run_checked(
                    "diff", "--numstat", commit.first_parent, commit.hash, "--"
                )
            else:
                output = self.session.run_checked("show", "--numstat", "--format=", commit.hash, "--")
            diff = parse_numstat(output)
        except (VcsError, MalformedOutputError) as e:
            logger.warning(str(PartialMetadataFailure(commit.short_hash, e)))
            return None

        return CommitStats(
            lines_added=diff.lines_added,
            lines_removed=diff.lines_removed,
            files_changed=diff.files_changed,
        )
