"""Tests for the operation surface"""
from pathlib import Path
from unittest.mock import patch

from branch_atlas import api
from branch_atlas.models.identity import MailmapEntry
from branch_atlas.session import RepositorySession
from branch_atlas.utils.threading import CancellationToken


class TestBranchOperations:
    """Test branch listings and their error envelopes."""

    def test_get_branches_basic(self, session):
        branches = api.get_branches_basic(session)
        assert [b["name"] for b in branches] == ["feature/x", "main"]
        assert branches[0]["isMerged"] is False
        assert "commitCount" not in branches[0]

    def test_get_branches_with_metadata(self, session):
        branches = {b["name"]: b for b in api.get_branches_with_metadata(session)}
        assert branches["feature/x"]["aheadCount"] == 3
        assert branches["feature/x"]["lastCommitDate"].startswith("2024-03-13T12:00:00")

    def test_get_branches_is_full_listing(self, session):
        assert api.get_branches(session) == api.get_branches_with_metadata(session)

    def test_not_a_repository(self, temp_dir, config):
        session = RepositorySession(str(temp_dir / "missing"), config)
        result = api.get_branches_basic(session)
        assert set(result) == {"error"}
        assert "not a git repository" in result["error"]

    def test_cancelled(self, session):
        token = CancellationToken()
        token.cancel()
        assert api.get_branches_with_metadata(session, cancel_token=token) == {"error": "cancelled"}


class TestGraphAndTreeOperations:
    """Test graph, merge tree and contributor operations."""

    def test_commit_graph(self, session):
        graph = api.get_commit_graph_history(session, limit=3)
        assert len(graph) == 3
        assert {"hash", "parents", "lane", "colorKey", "row"} <= set(graph[0])

    def test_commit_graph_error(self, temp_dir, config):
        session = RepositorySession(str(temp_dir / "missing"), config)
        assert "error" in api.get_commit_graph_history(session)

    def test_merged_branch_tree(self, git_repo_with_merge, config):
        session = RepositorySession(git_repo_with_merge.working_dir, config)
        tree = api.get_merged_branch_tree(session)
        assert tree["masterBranch"] == "main"
        node = tree["nodes"][0]
        assert node["branchName"] == "fix/login-bug"
        assert node["branchType"] == "fix"
        assert node["sizeTier"] == "xs"
        assert node["badges"]["surgical"] is True

    def test_merged_branch_tree_fallback(self, temp_dir, config):
        session = RepositorySession(str(temp_dir / "missing"), config)
        assert api.get_merged_branch_tree(session) == {
            "masterBranch": "main",
            "nodes": [],
            "stats": {"minLoc": 0, "maxLoc": 1, "minFiles": 0, "maxFiles": 1, "minAge": 0, "maxAge": 1},
        }

    def test_contributor_stats(self, session):
        result = api.get_contributor_stats(session, top_n=5, bucket_size="month")
        assert result["bucketSize"] == "month"
        assert result["contributors"][0]["totalCommits"] == 5
        assert result["startDate"] == "2024-03-04"

    def test_contributor_stats_fallback(self, temp_dir, config):
        session = RepositorySession(str(temp_dir / "missing"), config)
        assert api.get_contributor_stats(session, bucket_size="day") == {
            "contributors": [],
            "startDate": "",
            "endDate": "",
            "bucketSize": "day",
        }


class TestMailmapOperations:
    """Test mailmap reads and writes."""

    def test_add_get_remove(self, session):
        entry = {"canonicalName": "Test User", "canonicalEmail": "test@example.com", "aliasEmail": "old@x.com"}
        result = api.add_mailmap_entries(session, [entry])
        assert result["success"] is True

        assert api.get_mailmap(session) == [
            {
                "canonicalName": "Test User",
                "canonicalEmail": "test@example.com",
                "aliasName": None,
                "aliasEmail": "old@x.com",
            }
        ]
        assert api.remove_mailmap_entry(session, entry) == {"success": True}
        assert api.get_mailmap(session) == []

    def test_remove_missing_entry(self, session):
        entry = MailmapEntry(canonical_name=None, canonical_email="a@x.com", alias_email="b@x.com")
        result = api.remove_mailmap_entry(session, entry)
        assert result["success"] is False
        assert result["message"]

    def test_add_invalid_entry(self, session):
        result = api.add_mailmap_entries(session, [{"canonicalName": "No Email"}])
        assert result["success"] is False
        assert "canonicalEmail" in result["message"]

    def test_identities_and_suggestions(self, session):
        identities = api.get_author_identities(session)
        assert identities == [
            {
                "name": "Test User",
                "email": "test@example.com",
                "aliases": [{"name": "Test User", "email": "test@example.com"}],
                "commitCount": 8,
            }
        ]
        assert api.suggest_mailmap_entries(session) == []

    def test_latin1_mailmap(self, session):
        mailmap = Path(session.path) / ".mailmap"
        mailmap.write_bytes(b"Jos\xe9 Garc\xeda <jose@x.com> <old@x.com>\n")

        assert [e["canonicalName"] for e in api.get_mailmap(session)] == ["José García"]
        assert api.suggest_mailmap_entries(session) == []
        result = api.get_contributor_stats(session, top_n=5, bucket_size="week")
        assert [c["totalCommits"] for c in result["contributors"]] == [5]

    def test_mailmap_errors_are_empty_lists(self, temp_dir, config):
        session = RepositorySession(str(temp_dir / "missing"), config)
        assert api.get_author_identities(session) == []
        assert api.suggest_mailmap_entries(session) == []


class TestRepositoryOperations:
    """Test worktrees, pull requests and sibling repositories."""

    def test_worktrees(self, session, temp_dir, git_repo_with_branches):
        extra = temp_dir / "extra-worktree"
        git_repo_with_branches.git.worktree("add", str(extra), "feature/x")

        worktrees = api.get_worktrees(session)
        assert len(worktrees) == 2
        assert worktrees[0]["isMain"] is True
        assert worktrees[0]["branch"] == "main"
        assert worktrees[1]["branch"] == "feature/x"
        assert worktrees[1]["isOrphaned"] is False

    def test_pull_requests_disabled_without_token(self, session):
        assert api.get_pull_requests(session) == []

    def test_pull_requests_error(self, session):
        with patch("branch_atlas.api.GitHubService.list_pull_requests", side_effect=RuntimeError("rate limited")):
            assert api.get_pull_requests(session) == {"error": "rate limited"}

    def test_sibling_repos(self, session, temp_dir):
        (temp_dir / "other").mkdir()
        (temp_dir / "other" / ".git").mkdir()
        (temp_dir / "plain-dir").mkdir()

        siblings = api.get_sibling_repos(session)
        assert [(s["name"], s["isCurrent"]) for s in siblings] == [("other", False), ("test_repo", True)]
        assert siblings[1]["path"] == session.path
