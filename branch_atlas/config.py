"""Configuration handling for branch-atlas"""

import os
from dataclasses import dataclass, field
from typing import Optional, List


BUCKET_SIZES = ["day", "week", "month"]


@dataclass
class Config:
    """Configuration for branch-atlas with validation."""

    # Repository layout
    main_branch: Optional[str] = None  # None = auto-detect (main, then master)
    main_branch_candidates: List[str] = field(default_factory=lambda: ["main", "master"])
    remote_name: str = "origin"

    # Subprocess limits
    workers: Optional[int] = None  # Size of the git worker pool (None = auto-detect)
    command_timeout: float = 30.0  # Seconds per git call
    max_buffer: int = 64 * 1024 * 1024  # Bytes of stdout accepted per git call

    # Default request windows
    graph_limit: int = 500
    tech_tree_limit: int = 100
    top_n: int = 10
    bucket_size: str = "week"

    # GitHub integration
    github_token: Optional[str] = None
    max_prs_to_fetch: int = 200

    # Output
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_main_branch()
        self._validate_workers()
        self._validate_command_timeout()
        self._validate_max_buffer()
        self._validate_limits()
        self._validate_bucket_size()
        if self.github_token is None:
            self.github_token = os.environ.get("GITHUB_TOKEN")

    def _validate_main_branch(self):
        """Validate main_branch is either unset or a non-empty name."""
        if self.main_branch is not None:
            if not self.main_branch.strip():
                raise ValueError("main_branch cannot be empty")
            self.main_branch = self.main_branch.strip()
        if not self.main_branch_candidates:
            raise ValueError("main_branch_candidates cannot be empty")

    def _validate_workers(self):
        """Validate workers is positive when given."""
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    def _validate_command_timeout(self):
        """Validate command_timeout is positive."""
        if self.command_timeout <= 0:
            raise ValueError(f"command_timeout must be positive, got {self.command_timeout}")

    def _validate_max_buffer(self):
        """Validate max_buffer is positive."""
        if self.max_buffer <= 0:
            raise ValueError(f"max_buffer must be positive, got {self.max_buffer}")

    def _validate_limits(self):
        """Validate request windows are positive."""
        for name in ("graph_limit", "tech_tree_limit", "top_n", "max_prs_to_fetch"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def _validate_bucket_size(self):
        """Validate bucket_size is one of allowed values."""
        if self.bucket_size not in BUCKET_SIZES:
            raise ValueError(f"bucket_size must be one of {BUCKET_SIZES}, got '{self.bucket_size}'")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "main_branch": self.main_branch,
            "main_branch_candidates": self.main_branch_candidates,
            "remote_name": self.remote_name,
            "workers": self.workers,
            "command_timeout": self.command_timeout,
            "max_buffer": self.max_buffer,
            "graph_limit": self.graph_limit,
            "tech_tree_limit": self.tech_tree_limit,
            "top_n": self.top_n,
            "bucket_size": self.bucket_size,
            "github_token": self.github_token,
            "max_prs_to_fetch": self.max_prs_to_fetch,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        # Extract only known fields
        known_fields = {
            "main_branch",
            "main_branch_candidates",
            "remote_name",
            "workers",
            "command_timeout",
            "max_buffer",
            "graph_limit",
            "tech_tree_limit",
            "top_n",
            "bucket_size",
            "github_token",
            "max_prs_to_fetch",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
