"""GitHub API integration service"""

from typing import Optional, List, TYPE_CHECKING
from urllib.parse import urlparse
from github import Github, Auth
from github.GithubException import GithubException

from branch_atlas.exceptions import VcsError
from branch_atlas.models.pull_request import PullRequest
from branch_atlas.logging_config import get_logger

if TYPE_CHECKING:
    from github.PullRequest import PullRequest as GhPullRequest
    from github.Repository import Repository
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)

GITHUB_HOST = "github.com"


def parse_github_repo(remote_url: str) -> Optional[str]:
    """Extract ``owner/repo`` from a GitHub remote URL; None for other hosts.

    Handles SSH (git@github.com:org/repo.git) and HTTPS
    (https://github.com/org/repo.git) remotes.
    """
    remote_url = remote_url.strip()
    if remote_url.startswith("git@"):
        host, _, path = remote_url[len("git@"):].partition(":")
    else:
        parsed_url = urlparse(remote_url)
        host = parsed_url.hostname or ""
        path = parsed_url.path
    if host.lower() != GITHUB_HOST:
        return None

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    if path.count("/") != 1:
        return None
    return path


class GitHubService:
    def __init__(self, session: "RepositorySession"):
        """Initialize the service.

        The service stays disabled until setup_github_api succeeds; a disabled
        service reports no pull requests.
        """
        self.session = session
        self.config = session.config
        self.github_token = self.config.get("github_token")
        self.github_repo: Optional[str] = None
        self.github: Optional[Github] = None
        self.gh_repo: Optional["Repository"] = None

    @property
    def enabled(self) -> bool:
        return self.gh_repo is not None

    def get_remote_url(self) -> Optional[str]:
        """URL of the configured remote, or None if the repository has none."""
        try:
            return self.session.run_checked("remote", "get-url", self.config.remote_name).strip() or None
        except VcsError as e:
            logger.debug(f"[GitHub] No remote '{self.config.remote_name}': {e}")
            return None

    def setup_github_api(self, remote_url: Optional[str] = None) -> bool:
        """Setup GitHub API access.

        Returns False (and leaves the service disabled) without a token or
        when the remote is not hosted on GitHub.
        """
        if not self.github_token:
            logger.debug("[GitHub] No token configured; pull requests disabled")
            return False

        remote_url = remote_url if remote_url is not None else self.get_remote_url()
        if not remote_url:
            return False

        self.github_repo = parse_github_repo(remote_url)
        if self.github_repo is None:
            logger.debug(f"[GitHub] Remote {remote_url} is not a GitHub repository")
            return False

        try:
            self.github = Github(auth=Auth.Token(self.github_token))
            self.gh_repo = self.github.get_repo(self.github_repo)
        except GithubException as e:
            logger.error(f"[GitHub] Failed to setup GitHub API: {e}")
            raise

        logger.debug(f"[GitHub] GitHub integration enabled for: {self.github_repo}")
        return True

    def list_pull_requests(self, state: str = "open") -> List[PullRequest]:
        """Pull requests of the repository, most recently updated first.

        At most ``max_prs_to_fetch`` are returned, one per number.
        """
        if not self.enabled and not self.setup_github_api():
            return []
        assert self.gh_repo is not None

        limit = self.config.max_prs_to_fetch
        pulls = self.gh_repo.get_pulls(state=state, sort="updated", direction="desc")
        by_number = {}
        for pr in pulls[:limit]:
            by_number.setdefault(pr.number, self._to_model(pr))

        logger.debug(f"[GitHub] Fetched {len(by_number)} {state} pull requests for {self.github_repo}")
        return list(by_number.values())

    @staticmethod
    def _to_model(pr: "GhPullRequest") -> PullRequest:
        return PullRequest(
            number=pr.number,
            title=pr.title,
            author=pr.user.login if pr.user else "",
            branch=pr.head.ref,
            base_branch=pr.base.ref,
            state=pr.state,
            is_draft=bool(pr.draft),
            url=pr.html_url,
            updated_at=pr.updated_at,
            merged=pr.merged_at is not None,
        )

    def close(self) -> None:
        """Close the GitHub API connection to clean up resources."""
        if self.github:
            self.github.close()
            logger.debug("[GitHub] Closed GitHub API connection")
            self.github = None
            self.gh_repo = None
