"""Worktree listing service for branch-atlas."""

from typing import List, TYPE_CHECKING

from branch_atlas.models.worktree import WorktreeInfo
from branch_atlas.services.git.parsers import parse_worktree_porcelain
from branch_atlas.logging_config import get_logger

if TYPE_CHECKING:
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)


class WorktreeService:
    """Service for reading git worktrees."""

    def __init__(self, session: "RepositorySession"):
        """Initialize the worktree service.

        Args:
            session: Repository session to read from
        """
        self.session = session

    def list_worktrees(self) -> List[WorktreeInfo]:
        """Get detailed information about all worktrees.

        Returns:
            List of WorktreeInfo objects, main working tree first
        """
        output = self.session.run_checked("worktree", "list", "--porcelain")
        worktrees = parse_worktree_porcelain(output)

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees
