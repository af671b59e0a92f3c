"""Command-line interface for branch-atlas.

This package provides the CLI entry point, argument parsing and table output.
"""

from .main import main
from .args import parse_args

__all__ = ["main", "parse_args"]
