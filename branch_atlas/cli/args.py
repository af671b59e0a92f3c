"""Command-line argument parsing for branch-atlas."""

import argparse
from branch_atlas.__version__ import __version__
from branch_atlas.config import BUCKET_SIZES


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per repository view."""
    parser = argparse.ArgumentParser(
        prog="branch-atlas",
        description="Branch, commit graph and contributor views of a git repository",
        epilog="Pull requests need a GITHUB_TOKEN environment variable "
        "(scopes: repo or public_repo).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"branch-atlas {__version__}")
    parser.add_argument(
        "--repo", default=".", metavar="PATH", help="Repository working directory (default: .)"
    )
    parser.add_argument(
        "--main-branch", help="Main branch name (default: auto-detect main, then master)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Number of parallel git calls (default: auto-detect based on CPU and threading mode)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        metavar="SECONDS",
        help="Timeout for each git call (default: 30)",
    )
    parser.add_argument("--json", action="store_true", help="Print the raw JSON response")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    branches = subparsers.add_parser("branches", help="List local and remote branches")
    branches.add_argument(
        "--full",
        action="store_true",
        help="Include commit dates, counts and divergence (one git call per branch)",
    )

    graph = subparsers.add_parser("graph", help="Show the commit graph with lanes")
    graph.add_argument("--limit", type=int, default=500, help="Maximum commits (default: 500)")
    graph.add_argument(
        "--stats", action="store_true", help="Fetch per-commit line stats (slower)"
    )

    tech_tree = subparsers.add_parser("tech-tree", help="Show branches merged into the main branch")
    tech_tree.add_argument("--limit", type=int, default=100, help="Maximum merges (default: 100)")

    contributors = subparsers.add_parser("contributors", help="Show commit activity per author")
    contributors.add_argument(
        "--top", type=int, default=10, help="Number of contributors to show (default: 10)"
    )
    contributors.add_argument(
        "--bucket",
        choices=BUCKET_SIZES,
        default="week",
        help="Time bucket width (default: week)",
    )

    mailmap = subparsers.add_parser("mailmap", help="Show .mailmap entries")
    mailmap.add_argument(
        "--suggest",
        action="store_true",
        help="Suggest entries for authors that look like the same person",
    )

    subparsers.add_parser("worktrees", help="List worktrees")
    subparsers.add_parser("prs", help="List open GitHub pull requests")

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
