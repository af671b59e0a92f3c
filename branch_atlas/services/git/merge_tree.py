"""Merge tree service: one node per branch merged into the main line."""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

from branch_atlas.constants import (
    ADDITIVE_RATIO,
    ANCIENT_DAYS,
    BRANCH_TYPE_RULES,
    DESTRUCTIVE_RATIO,
    FRESH_DAYS,
    MERGE_MESSAGE_PATTERNS,
    MULTI_FILE_THRESHOLD,
    PR_NUMBER_PATTERN,
    SIZE_TIER_MAX,
    SIZE_TIER_THRESHOLDS,
    SM_LINES_THRESHOLD,
    SURGICAL_MAX_FILES,
    XL_LINES_THRESHOLD,
)
from branch_atlas.exceptions import MalformedOutputError, PartialMetadataFailure, VcsError
from branch_atlas.models.commit import Commit
from branch_atlas.models.tech_tree import (
    BranchType,
    DiffStats,
    SizeTier,
    TechTreeBadges,
    TechTreeData,
    TechTreeNode,
    TechTreeNodeStats,
    TechTreeStats,
)
from branch_atlas.services.git.branch_queries import BranchQueries
from branch_atlas.services.git.commit_graph import read_commits
from branch_atlas.services.git.parsers import RefRecord, parse_count, parse_numstat
from branch_atlas.logging_config import get_logger
from branch_atlas.utils.dates import days_between, utc_now
from branch_atlas.utils.threading import CancellationToken, bounded_map

if TYPE_CHECKING:
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)


def classify_branch_type(branch_name: str) -> BranchType:
    """Classify a branch by the first matching prefix rule."""
    name = branch_name.lower()
    for prefixes, branch_type in BRANCH_TYPE_RULES:
        if name.startswith(prefixes):
            return branch_type
    return BranchType.UNKNOWN


def classify_size_tier(total_lines: int) -> SizeTier:
    """Size tier for a number of changed lines; non-decreasing in ``total_lines``."""
    for tier, upper_bound in SIZE_TIER_THRESHOLDS:
        if total_lines < upper_bound:
            return tier
    return SIZE_TIER_MAX


def compute_badges(stats: TechTreeNodeStats) -> TechTreeBadges:
    total = stats.total_lines
    return TechTreeBadges(
        massive=total >= XL_LINES_THRESHOLD,
        destructive=stats.lines_removed > stats.lines_added * DESTRUCTIVE_RATIO,
        additive=stats.lines_added > stats.lines_removed * ADDITIVE_RATIO,
        multi_file=stats.files_changed > MULTI_FILE_THRESHOLD,
        surgical=stats.files_changed <= SURGICAL_MAX_FILES and total < SM_LINES_THRESHOLD,
        ancient=stats.days_since_merge > ANCIENT_DAYS,
        fresh=stats.days_since_merge < FRESH_DAYS,
    )


def compute_tree_stats(nodes: Sequence[TechTreeNode]) -> TechTreeStats:
    """Min/max of lines, files and age over the node set."""
    if not nodes:
        return TechTreeStats()
    locs = [node.stats.total_lines for node in nodes]
    files = [node.stats.files_changed for node in nodes]
    ages = [node.stats.days_since_merge for node in nodes]
    return TechTreeStats(
        min_loc=min(locs),
        max_loc=max(locs),
        min_files=min(files),
        max_files=max(files),
        min_age=min(ages),
        max_age=max(ages),
    )


def branch_name_from_message(message: str) -> Optional[str]:
    """Recover the merged branch name from a merge commit subject, if it has a known shape."""
    for pattern in MERGE_MESSAGE_PATTERNS:
        match = pattern.match(message.strip())
        if match:
            return match.group("branch").rstrip("'\".,")
    return None


def pr_number_from_message(message: str) -> Optional[int]:
    match = PR_NUMBER_PATTERN.search(message)
    return int(match.group("number")) if match else None


def build_node(
    merge: Commit,
    branch_name: str,
    diff: DiffStats,
    commit_count: int,
    now: datetime,
) -> TechTreeNode:
    """Derive a node from a merge commit and the diff it brought into the main line."""
    stats = TechTreeNodeStats(
        lines_added=diff.lines_added,
        lines_removed=diff.lines_removed,
        files_changed=diff.files_changed,
        files_added=diff.files_added,
        files_removed=diff.files_removed,
        commit_count=commit_count,
        days_since_merge=days_between(merge.committer_date, now),
    )
    return TechTreeNode(
        branch_name=branch_name,
        merge_commit_hash=merge.hash,
        commit_hash=merge.parent_hashes[1],
        author=merge.author_name,
        merge_date=merge.committer_date,
        message=merge.message,
        stats=stats,
        size_tier=classify_size_tier(stats.total_lines),
        branch_type=classify_branch_type(branch_name),
        badges=compute_badges(stats),
        pr_number=pr_number_from_message(merge.message),
    )


class MergeTreeBuilder:
    """Service deriving the merge tree of the main branch."""

    def __init__(
        self,
        session: "RepositorySession",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the builder.

        Args:
            session: Repository session to read from
            clock: Returns "now" for merge ages (defaults to the current UTC time)
        """
        self.session = session
        self.config = session.config
        self.clock = clock or utc_now
        self.branch_queries = BranchQueries(session)

    def build(
        self,
        limit: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TechTreeData:
        """Walk merge commits on the main branch, newest first, up to ``limit``."""
        limit = limit or self.config.tech_tree_limit
        refs = self.branch_queries.list_refs()
        main_ref = self.branch_queries.resolve_main_branch(refs)
        if main_ref is None:
            master = self.config.main_branch or self.config.main_branch_candidates[0]
            logger.info(f"No main branch found; merge tree for '{master}' is empty")
            return TechTreeData(master_branch=master, nodes=[], stats=TechTreeStats())

        merges = read_commits(
            self.session,
            [main_ref.refname],
            limit,
            extra_args=["--first-parent", "--merges"],
        )
        tips = self._branch_tips(refs, main_ref)
        now = self.clock()

        fetched = bounded_map(
            self._fetch_merge_stats,
            merges,
            self.session.max_workers,
            cancel_token=cancel_token,
            operation="merge stats",
        )

        nodes: Dict[str, TechTreeNode] = {}
        for merge, result in zip(merges, fetched):
            if result is None or merge.hash in nodes:
                continue
            diff, commit_count = result
            branch_name = self._branch_name(merge, tips)
            nodes[merge.hash] = build_node(merge, branch_name, diff, commit_count, now)

        node_list = list(nodes.values())
        logger.debug(f"Merge tree for {main_ref.name}: {len(node_list)} of {len(merges)} merges")
        return TechTreeData(
            master_branch=main_ref.name,
            nodes=node_list,
            stats=compute_tree_stats(node_list),
        )

    def _branch_tips(self, refs: List[RefRecord], main_ref: RefRecord) -> Dict[str, str]:
        """Map commit hashes to the branch name pointing at them, local names first."""
        tips: Dict[str, str] = {}
        ordered = sorted(refs, key=lambda r: (r.is_remote, r.name))
        for ref in ordered:
            if ref.refname == main_ref.refname:
                continue
            name = ref.name.split("/", 1)[1] if ref.is_remote and "/" in ref.name else ref.name
            if name == main_ref.name.split("/")[-1]:
                continue
            tips.setdefault(ref.object_id, name)
        return tips

    def _branch_name(self, merge: Commit, tips: Dict[str, str]) -> str:
        merged_tip = merge.parent_hashes[1]
        if merged_tip in tips:
            return tips[merged_tip]
        from_message = branch_name_from_message(merge.message)
        if from_message:
            return from_message
        return f"merge-{merge.short_hash}"

    def _fetch_merge_stats(self, merge: Commit) -> Optional[Tuple[DiffStats, int]]:
        """Diff stats of the merge against its first parent plus the merged commit count."""
        base, merged_tip = merge.parent_hashes[0], merge.parent_hashes[1]
        try:
            diff = parse_numstat(
                self.session.run_checked("diff", "--numstat", "--summary", base, merge.hash, "--")
            )
            commit_count = parse_count(
                self.session.run_checked("rev-list", "--count", f"{base}..{merged_tip}", "--"),
                "rev-list --count",
            )
        except (VcsError, MalformedOutputError) as e:
            logger.warning(str(PartialMetadataFailure(merge.short_hash, e)))
            return None
        return diff, commit_count
