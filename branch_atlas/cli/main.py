"""Command-line interface for branch-atlas"""

import json
import sys
from rich.console import Console

from branch_atlas import api
from branch_atlas.cli import display
from branch_atlas.cli.args import parse_args
from branch_atlas.config import Config
from branch_atlas.logging_config import setup_logging
from branch_atlas.session import RepositorySession
from branch_atlas.utils.threading import get_threading_info

console = Console()


def build_config(parsed_args) -> Config:
    """Build config from parsed arguments."""
    overrides = {
        "main_branch": parsed_args.main_branch,
        "workers": parsed_args.workers,
        "command_timeout": parsed_args.timeout,
        "verbose": parsed_args.verbose,
        "debug": parsed_args.debug,
    }
    if parsed_args.command == "graph":
        overrides["graph_limit"] = parsed_args.limit
    elif parsed_args.command == "tech-tree":
        overrides["tech_tree_limit"] = parsed_args.limit
    elif parsed_args.command == "contributors":
        overrides["top_n"] = parsed_args.top
        overrides["bucket_size"] = parsed_args.bucket
    return Config.from_dict(overrides)


def run_command(session: RepositorySession, parsed_args):
    """Run the selected operation, returning its wire response and a renderer for it."""
    command = parsed_args.command
    config = session.config
    if command == "branches":
        if parsed_args.full:
            return api.get_branches_with_metadata(session), display.display_branches
        return api.get_branches_basic(session), display.display_branches
    if command == "graph":
        result = api.get_commit_graph_history(
            session, limit=config.graph_limit, skip_stats=not parsed_args.stats
        )
        return result, display.display_graph
    if command == "tech-tree":
        return api.get_merged_branch_tree(session, limit=config.tech_tree_limit), display.display_tech_tree
    if command == "contributors":
        result = api.get_contributor_stats(session, top_n=config.top_n, bucket_size=config.bucket_size)
        return result, display.display_contributors
    if command == "mailmap":
        if parsed_args.suggest:
            return api.suggest_mailmap_entries(session), (
                lambda entries: display.display_mailmap(entries, title="Suggested entries")
            )
        return api.get_mailmap(session), display.display_mailmap
    if command == "worktrees":
        return api.get_worktrees(session), display.display_worktrees
    if command == "prs":
        return api.get_pull_requests(session), display.display_pull_requests
    raise ValueError(f"Unknown command: {command}")


def main(argv=None):
    """Main entry point for the application."""
    parsed_args = None
    try:
        # Parse command line arguments
        parsed_args = parse_args(argv)

        # Setup logging before touching the repository
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

        config = build_config(parsed_args)

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")

            # Show threading information
            threading_info = get_threading_info()
            console.print("[yellow]Threading Information:[/yellow]")
            console.print(f"  Python version: {threading_info['python_version']}")
            console.print(f"  Threading mode: {threading_info['mode']}")
            console.print(f"  CPU count: {threading_info['cpu_count']}")
            console.print(f"  Optimal workers: {threading_info['optimal_workers']}")
            console.print(f"  Free-threading enabled: {threading_info['free_threading']}")

            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                if key == "github_token" and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        session = RepositorySession(parsed_args.repo, config)
        result, render = run_command(session, parsed_args)

        if isinstance(result, dict) and "error" in result:
            console.print(f"[red]Error: {result['error']}[/red]")
            return 1

        if parsed_args.json:
            print(json.dumps(result, indent=2))
        else:
            render(result)
        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
