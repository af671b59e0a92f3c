"""Tests for GitHubService"""
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
from github.GithubException import GithubException

from branch_atlas.config import Config
from branch_atlas.services.git.github import GitHubService, parse_github_repo
from branch_atlas.session import RepositorySession


def make_pr(number, branch, merged_at=None, draft=False):
    pr = Mock()
    pr.number = number
    pr.title = f"PR {number}"
    pr.user.login = "octocat"
    pr.head.ref = branch
    pr.base.ref = "main"
    pr.state = "open"
    pr.draft = draft
    pr.html_url = f"https://github.com/test/repo/pull/{number}"
    pr.updated_at = datetime(2024, 3, 4, tzinfo=timezone.utc)
    pr.merged_at = merged_at
    return pr


@pytest.fixture
def token_session(git_repo):
    config = Config(github_token="test_token", max_prs_to_fetch=2)
    return RepositorySession(git_repo.working_dir, config)


class TestParseGithubRepo:
    """Test remote URL parsing."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("git@github.com:test/repo.git", "test/repo"),
            ("https://github.com/test/repo.git", "test/repo"),
            ("https://github.com/test/repo", "test/repo"),
            ("https://GitHub.com/test/repo/", "test/repo"),
            ("https://gitlab.com/test/repo.git", None),
            ("git@bitbucket.org:test/repo.git", None),
            ("https://github.com/test", None),
        ],
    )
    def test_parse(self, url, expected):
        assert parse_github_repo(url) == expected


class TestGitHubServiceSetup:
    """Test GitHub API setup."""

    def test_init_without_token(self, session):
        service = GitHubService(session)
        assert not service.github_token
        assert service.setup_github_api("git@github.com:test/repo.git") is False
        assert service.list_pull_requests() == []

    def test_setup_with_github_url(self, token_session):
        service = GitHubService(token_session)

        with patch("branch_atlas.services.git.github.Github") as mock_github_class:
            mock_gh = Mock()
            mock_github_class.return_value = mock_gh

            assert service.setup_github_api("git@github.com:test/repo.git") is True
            assert service.github_repo == "test/repo"
            assert service.enabled
            mock_gh.get_repo.assert_called_once_with("test/repo")

    def test_setup_with_non_github_url(self, token_session):
        service = GitHubService(token_session)

        with patch("branch_atlas.services.git.github.Github") as mock_github_class:
            assert service.setup_github_api("https://gitlab.com/test/repo.git") is False
            mock_github_class.assert_not_called()
        assert not service.enabled

    def test_setup_reads_remote(self, git_repo, token_session):
        git_repo.create_remote("origin", "https://github.com/test/repo.git")
        service = GitHubService(token_session)

        with patch("branch_atlas.services.git.github.Github"):
            assert service.setup_github_api() is True
        assert service.github_repo == "test/repo"

    def test_setup_without_remote(self, token_session):
        service = GitHubService(token_session)
        assert service.get_remote_url() is None
        assert service.setup_github_api() is False

    def test_setup_api_error_propagates(self, token_session):
        service = GitHubService(token_session)

        with patch("branch_atlas.services.git.github.Github") as mock_github_class:
            mock_github_class.return_value.get_repo.side_effect = GithubException(404, "Not Found", None)
            with pytest.raises(GithubException):
                service.setup_github_api("git@github.com:test/repo.git")


class TestListPullRequests:
    """Test fetching pull requests."""

    def test_list_limited_and_mapped(self, token_session):
        service = GitHubService(token_session)

        with patch("branch_atlas.services.git.github.Github") as mock_github_class:
            gh_repo = mock_github_class.return_value.get_repo.return_value
            gh_repo.get_pulls.return_value = [
                make_pr(3, "feature/a", draft=True),
                make_pr(2, "fix/b", merged_at=datetime(2024, 3, 5, tzinfo=timezone.utc)),
                make_pr(1, "chore/c"),
            ]

            service.setup_github_api("git@github.com:test/repo.git")
            prs = service.list_pull_requests(state="all")

        gh_repo.get_pulls.assert_called_once_with(state="all", sort="updated", direction="desc")
        assert [pr.number for pr in prs] == [3, 2]
        assert prs[0].branch == "feature/a"
        assert prs[0].is_draft is True
        assert prs[1].merged is True
        assert prs[1].to_dict()["baseBranch"] == "main"
        assert prs[1].to_dict()["author"] == "octocat"

    def test_close(self, token_session):
        service = GitHubService(token_session)

        with patch("branch_atlas.services.git.github.Github") as mock_github_class:
            service.setup_github_api("git@github.com:test/repo.git")
            service.close()

        mock_github_class.return_value.close.assert_called_once()
        assert not service.enabled
