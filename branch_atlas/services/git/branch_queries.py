"""Branch query service for branch-atlas."""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Set, Tuple, TYPE_CHECKING

from branch_atlas.exceptions import MalformedOutputError, PartialMetadataFailure, VcsError
from branch_atlas.models.branch import Branch
from branch_atlas.services.git.parsers import (
    REF_FORMAT,
    RefRecord,
    parse_count,
    parse_date_lines,
    parse_left_right_count,
    parse_ref_names,
    parse_ref_records,
)
from branch_atlas.logging_config import get_logger
from branch_atlas.utils.threading import CancellationToken, bounded_map

if TYPE_CHECKING:
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)

BRANCH_NAMESPACES = ("refs/heads", "refs/remotes")


class BranchQueries:
    """Service for listing branches at basic and full fidelity."""

    def __init__(self, session: "RepositorySession"):
        """Initialize the branch queries service.

        Args:
            session: Repository session the queries run against
        """
        self.session = session
        self.config = session.config

    def list_refs(self) -> List[RefRecord]:
        """List every local and remote branch ref (one git call)."""
        output = self.session.run_checked("for-each-ref", f"--format={REF_FORMAT}", *BRANCH_NAMESPACES)
        return [ref for ref in parse_ref_records(output) if not ref.is_symbolic_head]

    def resolve_main_branch(self, refs: List[RefRecord]) -> Optional[RefRecord]:
        """Pick the main branch out of an existing ref listing.

        The configured main branch wins when it exists locally, then the default
        candidates (main, master), then their remote-tracking counterparts.
        """
        local = {ref.name: ref for ref in refs if not ref.is_remote}
        remote = {ref.name: ref for ref in refs if ref.is_remote}

        candidates = list(self.config.main_branch_candidates)
        if self.config.main_branch:
            candidates.insert(0, self.config.main_branch)

        for name in candidates:
            if name in local:
                return local[name]
        for name in candidates:
            remote_name = f"{self.config.remote_name}/{name}"
            if remote_name in remote:
                return remote[remote_name]

        logger.debug("No main branch found among refs")
        return None

    def list_merged_refs(self, main_ref: RefRecord) -> Set[str]:
        """Fully qualified names of branch refs reachable from the main branch (one git call)."""
        output = self.session.run_checked(
            "for-each-ref",
            f"--merged={main_ref.refname}",
            "--format=%(refname)",
            *BRANCH_NAMESPACES,
        )
        return set(parse_ref_names(output))

    def list_basic(self) -> List[Branch]:
        """List branches with names and merged flags only.

        Issues two git calls regardless of how many branches exist. Any
        failure here is fatal for the request.
        """
        branches, _ = self._list_basic_with_main()
        return branches

    def _list_basic_with_main(self) -> Tuple[List[Branch], Optional[Branch]]:
        refs = self.list_refs()
        main_ref = self.resolve_main_branch(refs)
        merged = self.list_merged_refs(main_ref) if main_ref is not None else set()

        remote_names = {ref.name for ref in refs if ref.is_remote}
        remote_prefixes = {name.split("/", 1)[0] for name in remote_names}

        branches = []
        main_branch = None
        for ref in sorted(refs, key=lambda r: (r.is_remote, r.name)):
            if ref.is_remote:
                is_local_only = False
            else:
                has_remote = any(f"{remote}/{ref.name}" in remote_names for remote in remote_prefixes)
                is_local_only = ref.upstream is None and not has_remote

            branch = Branch(
                name=ref.name,
                is_remote=ref.is_remote,
                is_local_only=is_local_only,
                is_merged=ref.refname in merged,
                current=ref.is_head,
                commit_hash=ref.object_id,
                upstream=ref.upstream,
            )
            branches.append(branch)
            if main_ref is not None and ref.refname == main_ref.refname:
                main_branch = branch

        logger.debug(
            f"Listed {len(branches)} branches (main: {main_branch.name if main_branch else 'none'})"
        )
        return branches, main_branch

    def list_full(self, cancel_token: Optional[CancellationToken] = None) -> List[Branch]:
        """List branches with ahead/behind counts, dates and commit counts.

        Costs a few git calls per branch, run through the session's bounded
        worker pool. A failing lookup only leaves that branch's optional
        fields unset. The result has the same order as list_basic.
        """
        branches, main_branch = self._list_basic_with_main()
        return bounded_map(
            lambda branch: self._refine(branch, main_branch),
            branches,
            self.session.max_workers,
            cancel_token=cancel_token,
            operation="branch metadata",
        )

    def _refine(self, branch: Branch, main_branch: Optional[Branch]) -> Branch:
        last_commit_date = self._probe(branch, "last commit date", self._fetch_last_commit_date, branch)
        divergence = self._probe(branch, "divergence", self._fetch_divergence, branch, main_branch)
        history = self._probe(branch, "history", self._fetch_history, branch, main_branch)

        ahead, behind = divergence if divergence else (None, None)
        commit_count, first_commit_date = history if history else (None, None)

        return replace(
            branch,
            last_commit_date=last_commit_date,
            first_commit_date=first_commit_date,
            commit_count=commit_count,
            ahead_count=ahead,
            behind_count=behind,
        )

    def _probe(self, branch: Branch, what: str, fn, *args):
        """Run one metadata lookup, turning its failure into an absent value."""
        try:
            return fn(*args)
        except (VcsError, MalformedOutputError) as e:
            failure = PartialMetadataFailure(f"{branch.name}:{what}", e)
            logger.warning(str(failure))
            return None

    def _fetch_last_commit_date(self, branch: Branch) -> Optional[datetime]:
        output = self.session.run_checked("log", "-1", "--format=%cI", branch.ref, "--")
        dates = parse_date_lines(output, "last commit date")
        return dates[0] if dates else None

    def _fetch_divergence(
        self, branch: Branch, main_branch: Optional[Branch]
    ) -> Optional[Tuple[int, int]]:
        """Return (ahead, behind) against the comparison base, or None without one.

        Branches compare against the main branch; the main branch compares
        against its upstream. A branch without an upstream still gets counts
        against the main branch. Counts are None only when neither base exists
        (the main branch without an upstream, or no main branch at all).
        """
        if main_branch is not None and branch.ref != main_branch.ref:
            base = main_branch.ref
        elif branch.upstream is not None and not branch.is_remote:
            base = f"{branch.ref}@{{upstream}}"
        else:
            return None

        output = self.session.run_checked(
            "rev-list", "--left-right", "--count", f"{base}...{branch.ref}", "--"
        )
        behind, ahead = parse_left_right_count(output, "rev-list --left-right")
        return ahead, behind

    def _fetch_history(
        self, branch: Branch, main_branch: Optional[Branch]
    ) -> Tuple[int, Optional[datetime]]:
        """Return (commit count, first commit date) of the branch's own history.

        For a branch off main that is the commits not on main; for the main
        branch (or when there is no main) it is the whole history.
        """
        if main_branch is not None and branch.ref != main_branch.ref:
            output = self.session.run_checked(
                "log", "--format=%cI", f"{main_branch.ref}..{branch.ref}", "--"
            )
            dates = parse_date_lines(output, "branch history")
            return len(dates), (min(dates) if dates else None)

        count = parse_count(
            self.session.run_checked("rev-list", "--count", branch.ref, "--"), "rev-list --count"
        )
        roots = parse_date_lines(
            self.session.run_checked("log", "--max-parents=0", "--format=%cI", branch.ref, "--"),
            "root commits",
        )
        return count, (min(roots) if roots else None)
