"""Operation surface: every repository query as a plain-dict wire response.

Each function takes an explicit RepositorySession and never raises for
repository problems; failures become the error envelope of that operation.
"""

import os
from typing import Any, Dict, Iterable, List, Optional, Union

from branch_atlas.exceptions import BranchAtlasError, OperationCancelledError
from branch_atlas.models.identity import BucketSize, MailmapEntry
from branch_atlas.models.tech_tree import TechTreeStats
from branch_atlas.services.contributor_stats import ContributorStatsService
from branch_atlas.services.git.branch_queries import BranchQueries
from branch_atlas.services.git.commit_graph import CommitGraphBuilder
from branch_atlas.services.git.github import GitHubService
from branch_atlas.services.git.merge_tree import MergeTreeBuilder
from branch_atlas.services.git.worktrees import WorktreeService
from branch_atlas.services.identity_service import IdentityService
from branch_atlas.session import RepositorySession
from branch_atlas.logging_config import get_logger
from branch_atlas.utils.threading import CancellationToken

logger = get_logger(__name__)

ErrorEnvelope = Dict[str, str]
DEFAULT_MASTER_BRANCH = "main"


def _error(operation: str, error: Exception) -> ErrorEnvelope:
    logger.error(f"{operation} failed: {error}")
    return {"error": str(error)}


def get_branches_basic(session: RepositorySession) -> Union[List[dict], ErrorEnvelope]:
    """Branches without per-branch metadata; two git calls in total."""
    try:
        return [branch.to_dict() for branch in BranchQueries(session).list_basic()]
    except BranchAtlasError as e:
        return _error("get_branches_basic", e)


def get_branches_with_metadata(
    session: RepositorySession,
    cancel_token: Optional[CancellationToken] = None,
) -> Union[List[dict], ErrorEnvelope]:
    """Branches with dates, counts and divergence from the main branch."""
    try:
        return [branch.to_dict() for branch in BranchQueries(session).list_full(cancel_token)]
    except OperationCancelledError:
        logger.info("get_branches_with_metadata cancelled")
        return {"error": "cancelled"}
    except BranchAtlasError as e:
        return _error("get_branches_with_metadata", e)


def get_branches(session: RepositorySession) -> Union[List[dict], ErrorEnvelope]:
    return get_branches_with_metadata(session)


def get_commit_graph_history(
    session: RepositorySession,
    limit: int = 500,
    skip_stats: bool = True,
    cancel_token: Optional[CancellationToken] = None,
) -> Union[List[dict], ErrorEnvelope]:
    try:
        graph = CommitGraphBuilder(session).build(
            limit=limit, skip_stats=skip_stats, cancel_token=cancel_token
        )
        return [commit.to_dict() for commit in graph]
    except OperationCancelledError:
        return {"error": "cancelled"}
    except BranchAtlasError as e:
        return _error("get_commit_graph_history", e)


def get_merged_branch_tree(
    session: RepositorySession,
    limit: int = 100,
    cancel_token: Optional[CancellationToken] = None,
) -> Dict[str, Any]:
    """Merge tree of the main branch; an empty tree if it cannot be built."""
    try:
        return MergeTreeBuilder(session).build(limit=limit, cancel_token=cancel_token).to_dict()
    except BranchAtlasError as e:
        logger.error(f"get_merged_branch_tree failed: {e}")
        return {
            "masterBranch": DEFAULT_MASTER_BRANCH,
            "nodes": [],
            "stats": TechTreeStats().to_dict(),
        }


def get_contributor_stats(
    session: RepositorySession,
    top_n: int = 10,
    bucket_size: str = "week",
) -> Dict[str, Any]:
    """Contributor time series; an empty result if they cannot be computed."""
    try:
        return ContributorStatsService(session).get_stats(top_n=top_n, bucket_size=bucket_size).to_dict()
    except (BranchAtlasError, ValueError) as e:
        logger.error(f"get_contributor_stats failed: {e}")
        return {
            "contributors": [],
            "startDate": "",
            "endDate": "",
            "bucketSize": bucket_size or BucketSize.WEEK.value,
        }


def get_mailmap(session: RepositorySession) -> List[dict]:
    try:
        return [entry.to_dict() for entry in IdentityService(session).mailmap_store.read()]
    except (OSError, ValueError) as e:
        logger.error(f"get_mailmap failed: {e}")
        return []


def get_author_identities(session: RepositorySession) -> List[dict]:
    try:
        return [identity.to_dict() for identity in IdentityService(session).get_identities()]
    except (BranchAtlasError, OSError, ValueError) as e:
        logger.error(f"get_author_identities failed: {e}")
        return []


def suggest_mailmap_entries(session: RepositorySession) -> List[dict]:
    try:
        return [entry.to_dict() for entry in IdentityService(session).suggest()]
    except (BranchAtlasError, OSError, ValueError) as e:
        logger.error(f"suggest_mailmap_entries failed: {e}")
        return []


def _to_entry(entry: Union[MailmapEntry, dict]) -> MailmapEntry:
    return entry if isinstance(entry, MailmapEntry) else MailmapEntry.from_dict(entry)


def add_mailmap_entries(
    session: RepositorySession,
    entries: Iterable[Union[MailmapEntry, dict]],
) -> Dict[str, Any]:
    """Append entries to the repository's .mailmap, skipping ones already present."""
    try:
        parsed = [_to_entry(entry) for entry in entries]
        added = IdentityService(session).mailmap_store.add(parsed)
        return {"success": True, "message": f"Added {added} of {len(parsed)} entries"}
    except (ValueError, OSError) as e:
        logger.error(f"add_mailmap_entries failed: {e}")
        return {"success": False, "message": str(e)}


def remove_mailmap_entry(session: RepositorySession, entry: Union[MailmapEntry, dict]) -> Dict[str, Any]:
    try:
        removed = IdentityService(session).mailmap_store.remove(_to_entry(entry))
    except (ValueError, OSError) as e:
        logger.error(f"remove_mailmap_entry failed: {e}")
        return {"success": False, "message": str(e)}
    if not removed:
        return {"success": False, "message": "Entry not found in .mailmap"}
    return {"success": True}


def get_worktrees(session: RepositorySession) -> Union[List[dict], ErrorEnvelope]:
    try:
        return [worktree.to_dict() for worktree in WorktreeService(session).list_worktrees()]
    except BranchAtlasError as e:
        return _error("get_worktrees", e)


def get_pull_requests(session: RepositorySession, state: str = "open") -> Union[List[dict], ErrorEnvelope]:
    """Pull requests from GitHub; empty when the integration is not configured."""
    service = GitHubService(session)
    try:
        return [pr.to_dict() for pr in service.list_pull_requests(state=state)]
    except Exception as e:  # PyGithub raises GithubException and transport errors
        return _error("get_pull_requests", e)
    finally:
        service.close()


def get_sibling_repos(session: RepositorySession) -> List[dict]:
    """Git repositories in the same parent directory as the session's repository."""
    parent = os.path.dirname(session.path.rstrip(os.sep))
    try:
        names = sorted(os.listdir(parent))
    except OSError as e:
        logger.error(f"get_sibling_repos failed: {e}")
        return []

    siblings = []
    for name in names:
        path = os.path.join(parent, name)
        if not os.path.isdir(path) or not os.path.exists(os.path.join(path, ".git")):
            continue
        siblings.append({"path": path, "name": name, "isCurrent": path == session.path})
    return siblings
