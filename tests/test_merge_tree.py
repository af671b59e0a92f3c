"""Tests for the merge tree builder and its classification rules"""
import pytest

from branch_atlas.config import Config
from branch_atlas.exceptions import CommandTimeoutError
from branch_atlas.models.tech_tree import BranchType, SizeTier, TechTreeNodeStats
from branch_atlas.services.git.merge_tree import (
    MergeTreeBuilder,
    branch_name_from_message,
    classify_branch_type,
    classify_size_tier,
    compute_badges,
    pr_number_from_message,
)
from branch_atlas.session import RepositorySession

from tests.conftest import BASE_TIME, ONE_DAY, FailingRunner, commit_file, merge_no_ff

MERGE_TIME = BASE_TIME + 4 * ONE_DAY


def active_badges(badges):
    return [name for name, value in badges.to_dict().items() if value]


def node_stats(added=0, removed=0, files=1, days=10):
    return TechTreeNodeStats(
        lines_added=added,
        lines_removed=removed,
        files_changed=files,
        files_added=0,
        files_removed=0,
        commit_count=1,
        days_since_merge=days,
    )


class TestClassification:
    """Test the pure rule tables."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("feature/login", BranchType.FEATURE),
            ("feat/login", BranchType.FEATURE),
            ("fix/login-bug", BranchType.FIX),
            ("bugfix/crash", BranchType.FIX),
            ("hotfix/urgent", BranchType.FIX),
            ("chore/deps", BranchType.CHORE),
            ("refactor/models", BranchType.REFACTOR),
            ("docs/readme", BranchType.DOCS),
            ("test/flaky", BranchType.TEST),
            ("release/1.2", BranchType.RELEASE),
            ("Feature/Upper", BranchType.FEATURE),
            ("my-branch", BranchType.UNKNOWN),
            ("featureless", BranchType.UNKNOWN),
        ],
    )
    def test_branch_type(self, name, expected):
        assert classify_branch_type(name) is expected

    def test_size_tier_boundaries(self):
        assert classify_size_tier(0) is SizeTier.XS
        assert classify_size_tier(15) is SizeTier.XS
        assert classify_size_tier(20) is SizeTier.SM
        assert classify_size_tier(499) is SizeTier.MD
        assert classify_size_tier(500) is SizeTier.LG
        assert classify_size_tier(2000) is SizeTier.XL

    def test_size_tier_monotonic(self):
        """Test the tier never decreases as total changed lines grow."""
        order = list(SizeTier)
        ranks = [order.index(classify_size_tier(lines)) for lines in range(0, 5000, 7)]
        assert ranks == sorted(ranks)

    def test_badges(self):
        assert compute_badges(node_stats(added=3000, removed=0, files=40)).massive
        assert compute_badges(node_stats(added=10, removed=30)).destructive
        assert compute_badges(node_stats(added=60, removed=10)).additive
        assert compute_badges(node_stats(files=11)).multi_file
        assert compute_badges(node_stats(days=181)).ancient
        assert compute_badges(node_stats(days=1)).fresh
        quiet = compute_badges(node_stats(added=30, removed=30, files=5, days=30))
        assert active_badges(quiet) == []

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Merge pull request #42 from octo/feature/login", "feature/login"),
            ("Merge pull request #42 from octo:fix/bug", "fix/bug"),
            ("Merge branch 'fix/login-bug'", "fix/login-bug"),
            ("Merge branch 'docs/x' into main", "docs/x"),
            ("Merge remote-tracking branch 'origin/chore/deps'", "chore/deps"),
            ("Merged in release/1.0 (pull request #7)", "release/1.0"),
            ("Merge hotfix/now into main", "hotfix/now"),
            ("Squash everything", None),
        ],
    )
    def test_branch_name_from_message(self, message, expected):
        assert branch_name_from_message(message) == expected

    def test_pr_number(self):
        assert pr_number_from_message("Merge pull request #42 from octo/x") == 42
        assert pr_number_from_message("Add login (#17)") == 17
        assert pr_number_from_message("Merge branch 'x'") is None


class TestMergeTreeBuilder:
    """Test building the merge tree from a real repository."""

    def test_fix_branch_scenario(self, git_repo_with_merge, config):
        """Test a +12/-3 fix merged a day ago is one fresh, surgical xs node."""
        session = RepositorySession(git_repo_with_merge.working_dir, config)
        builder = MergeTreeBuilder(session, clock=lambda: MERGE_TIME + ONE_DAY)
        tree = builder.build()

        assert tree.master_branch == "main"
        assert len(tree.nodes) == 1
        node = tree.nodes[0]
        assert node.branch_name == "fix/login-bug"
        assert node.branch_type is BranchType.FIX
        assert node.size_tier is SizeTier.XS
        assert node.stats.lines_added == 12
        assert node.stats.lines_removed == 3
        assert node.stats.files_changed == 2
        assert node.stats.files_added == 1
        assert node.stats.commit_count == 2
        assert node.stats.days_since_merge == 1
        assert active_badges(node.badges) == ["surgical", "fresh"]
        assert node.merge_date == MERGE_TIME
        assert node.id == git_repo_with_merge.head.commit.hexsha

    def test_deleted_branch_name_from_message(self, git_repo_with_merge, config):
        """Test the branch name is recovered from the message once the branch is gone."""
        git_repo_with_merge.git.branch("-D", "fix/login-bug")
        session = RepositorySession(git_repo_with_merge.working_dir, config)
        node = MergeTreeBuilder(session, clock=lambda: MERGE_TIME).build().nodes[0]
        assert node.branch_name == "fix/login-bug"
        assert node.branch_type is BranchType.FIX

    def test_unrecognized_message_fallback(self, git_repo, config):
        repo = git_repo
        repo.git.checkout("-b", "work")
        commit_file(repo, "w.txt", "w\n", "Work", BASE_TIME + ONE_DAY)
        repo.git.checkout("main")
        merge = merge_no_ff(repo, "work", "Integrate things", BASE_TIME + 2 * ONE_DAY)
        repo.git.branch("-D", "work")

        session = RepositorySession(repo.working_dir, config)
        node = MergeTreeBuilder(session, clock=lambda: MERGE_TIME).build().nodes[0]
        assert node.branch_name == f"merge-{merge.hexsha[:7]}"
        assert node.branch_type is BranchType.UNKNOWN

    def test_merge_date_not_before_merge_commit(self, git_repo_with_merge, config):
        session = RepositorySession(git_repo_with_merge.working_dir, config)
        tree = MergeTreeBuilder(session).build()
        for node in tree.nodes:
            commit = git_repo_with_merge.commit(node.merge_commit_hash)
            assert node.merge_date.timestamp() >= commit.committed_date

    def test_tree_stats(self, git_repo_with_merge, config):
        session = RepositorySession(git_repo_with_merge.working_dir, config)
        stats = MergeTreeBuilder(session, clock=lambda: MERGE_TIME + ONE_DAY).build().stats
        assert (stats.min_loc, stats.max_loc) == (15, 15)
        assert (stats.min_files, stats.max_files) == (2, 2)
        assert (stats.min_age, stats.max_age) == (1, 1)

    def test_no_merges(self, session):
        tree = MergeTreeBuilder(session).build()
        assert tree.nodes == []
        assert tree.stats.to_dict() == {
            "minLoc": 0,
            "maxLoc": 1,
            "minFiles": 0,
            "maxFiles": 1,
            "minAge": 0,
            "maxAge": 1,
        }

    def test_no_main_branch(self, git_repo):
        git_repo.git.branch("-M", "trunk")
        config = Config(github_token="")
        tree = MergeTreeBuilder(RepositorySession(git_repo.working_dir, config)).build()
        assert tree.master_branch == "main"
        assert tree.nodes == []

    def test_limit(self, git_repo_with_merge, config):
        repo = git_repo_with_merge
        repo.git.checkout("-b", "feature/second")
        commit_file(repo, "second.txt", "second\n", "Second feature", BASE_TIME + 5 * ONE_DAY)
        repo.git.checkout("main")
        merge_no_ff(repo, "feature/second", "Merge branch 'feature/second'", BASE_TIME + 6 * ONE_DAY)

        session = RepositorySession(repo.working_dir, config)
        assert [n.branch_name for n in MergeTreeBuilder(session).build().nodes] == [
            "feature/second",
            "fix/login-bug",
        ]
        assert [n.branch_name for n in MergeTreeBuilder(session).build(limit=1).nodes] == [
            "feature/second"
        ]

    def test_unreadable_merge_is_dropped(self, git_repo_with_merge, config):
        """Test a merge whose stats time out is left out while the others keep their order."""
        repo = git_repo_with_merge
        merges = {}
        for offset, branch in ((5, "feature/second"), (7, "docs/third")):
            repo.git.checkout("-b", branch)
            commit_file(repo, f"{branch}.txt", f"{branch}\n", branch, BASE_TIME + offset * ONE_DAY)
            repo.git.checkout("main")
            merges[branch] = merge_no_ff(
                repo, branch, f"Merge branch '{branch}'", BASE_TIME + (offset + 1) * ONE_DAY
            ).hexsha

        def failure_for(args):
            if args[0] == "diff" and merges["feature/second"] in args:
                return CommandTimeoutError("git diff", config.command_timeout)
            return None

        runner = FailingRunner(failure_for, timeout=config.command_timeout)
        session = RepositorySession(repo.working_dir, config, runner=runner)
        tree = MergeTreeBuilder(session, clock=lambda: BASE_TIME + 10 * ONE_DAY).build()

        assert [n.branch_name for n in tree.nodes] == ["docs/third", "fix/login-bug"]
        assert tree.nodes[0].merge_commit_hash == merges["docs/third"]
        assert tree.nodes[1].stats.lines_added == 12
        assert (tree.stats.min_loc, tree.stats.max_loc) == (1, 15)
