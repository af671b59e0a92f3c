"""Tests for Config"""
import pytest

from branch_atlas.config import Config


class TestConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        config = Config()
        assert config.main_branch is None
        assert config.main_branch_candidates == ["main", "master"]
        assert config.command_timeout == 30.0
        assert config.graph_limit == 500
        assert config.tech_tree_limit == 100
        assert config.bucket_size == "week"
        assert config.github_token is None

    def test_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env_token")
        assert Config().github_token == "env_token"
        assert Config(github_token="explicit").github_token == "explicit"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"main_branch": "  "},
            {"main_branch_candidates": []},
            {"workers": 0},
            {"command_timeout": 0},
            {"max_buffer": -1},
            {"graph_limit": 0},
            {"top_n": -3},
            {"bucket_size": "year"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            Config(**kwargs)

    def test_main_branch_is_stripped(self):
        assert Config(main_branch=" trunk ").main_branch == "trunk"

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"top_n": 3, "stale_days": 30})
        assert config.top_n == 3
        assert config.get("stale_days", "missing") == "missing"

    def test_round_trip(self):
        config = Config(main_branch="trunk", workers=2, github_token="t")
        assert Config.from_dict(config.to_dict()) == config
