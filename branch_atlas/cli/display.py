"""Rich table rendering of operation responses"""
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

console = Console()

# Characters for the graph column, indexed by lane
LANE_GLYPH = "●"
LANE_RAIL = "│"
SPARK_CHARS = " ▁▂▃▄▅▆▇█"

TIER_STYLES = {
    "xs": "dim",
    "sm": "green",
    "md": "cyan",
    "lg": "yellow",
    "xl": "bold red",
}


def format_date(value: Optional[str]) -> str:
    """Format an ISO-8601 string as YYYY-MM-DD."""
    if not value:
        return ""
    return value[:10]


def format_sync(branch: Dict[str, Any]) -> str:
    ahead, behind = branch.get("aheadCount"), branch.get("behindCount")
    if ahead is None and behind is None:
        return ""
    parts = []
    if ahead:
        parts.append(f"↑{ahead}")
    if behind:
        parts.append(f"↓{behind}")
    return " ".join(parts) or "✓"


def sparkline(counts: List[int]) -> str:
    """Render counts as block characters scaled to the largest count."""
    peak = max(counts, default=0)
    if peak == 0:
        return SPARK_CHARS[0] * len(counts)
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[(count * top + peak - 1) // peak] for count in counts)


def lane_column(lane: int) -> str:
    return f"{LANE_RAIL} " * lane + LANE_GLYPH


def display_branches(branches: List[Dict[str, Any]]) -> None:
    table = Table()
    for label in ("Branch", "Remote", "Merged", "Last Commit", "Commits", "Sync", "Upstream"):
        table.add_column(label)

    for branch in branches:
        name = f"* {branch['name']}" if branch.get("current") else branch["name"]
        if branch["isRemote"]:
            remote = "remote"
        elif branch["isLocalOnly"]:
            remote = "✗"
        else:
            remote = "✓"
        commit_count = branch.get("commitCount")
        table.add_row(
            name,
            remote,
            "✓" if branch["isMerged"] else "",
            format_date(branch.get("lastCommitDate")),
            "" if commit_count is None else str(commit_count),
            format_sync(branch),
            branch.get("upstream") or "",
            style="cyan" if branch.get("current") else ("dim" if branch["isMerged"] else None),
        )

    console.print(table)
    console.print("\n✓ = Has remote branch     ✗ = Local only     * = Current branch")
    console.print("↑ = Ahead of main         ↓ = Behind main")


def display_graph(commits: List[Dict[str, Any]]) -> None:
    table = Table(box=None, show_header=True)
    table.add_column("Graph", no_wrap=True)
    table.add_column("Commit", style="yellow")
    table.add_column("Refs", style="green")
    table.add_column("Message")
    table.add_column("Author", style="dim")
    table.add_column("Date", style="dim")

    show_stats = any("additions" in commit for commit in commits)
    if show_stats:
        table.add_column("+/-")

    for commit in commits:
        row = [
            lane_column(commit["lane"]),
            commit["shortHash"],
            ", ".join(commit["refs"]),
            commit["message"],
            commit["author"],
            format_date(commit["date"]),
        ]
        if show_stats:
            if "additions" in commit:
                row.append(f"[green]+{commit['additions']}[/green] [red]-{commit['deletions']}[/red]")
            else:
                row.append("")
        table.add_row(*row)

    console.print(table)


def display_tech_tree(tree: Dict[str, Any]) -> None:
    nodes = tree["nodes"]
    console.print(f"Merged into [bold]{tree['masterBranch']}[/bold]: {len(nodes)} branches")
    table = Table()
    for label in ("Branch", "Type", "Size", "Lines", "Files", "Commits", "Merged", "PR", "Badges"):
        table.add_column(label)

    for node in nodes:
        stats = node["stats"]
        badges = [name for name, active in node["badges"].items() if active]
        table.add_row(
            node["branchName"],
            node["branchType"],
            f"[{TIER_STYLES[node['sizeTier']]}]{node['sizeTier']}[/]",
            f"[green]+{stats['linesAdded']}[/green] [red]-{stats['linesRemoved']}[/red]",
            str(stats["filesChanged"]),
            str(stats["commitCount"]),
            format_date(node["mergeDate"]),
            f"#{node['prNumber']}" if "prNumber" in node else "",
            ", ".join(badges),
        )

    console.print(table)


def display_contributors(result: Dict[str, Any]) -> None:
    if not result["contributors"]:
        console.print("[yellow]No commits found[/yellow]")
        return

    console.print(
        f"Commits per {result['bucketSize']} from {result['startDate']} to {result['endDate']}"
    )
    table = Table()
    table.add_column("Author")
    table.add_column("Email", style="dim")
    table.add_column("Commits", justify="right")
    table.add_column("Activity", no_wrap=True)

    for contributor in result["contributors"]:
        counts = [point["count"] for point in contributor["timeSeries"]]
        table.add_row(
            contributor["author"],
            contributor["email"],
            str(contributor["totalCommits"]),
            sparkline(counts),
        )

    console.print(table)


def display_mailmap(entries: List[Dict[str, Any]], title: str = ".mailmap") -> None:
    if not entries:
        console.print(f"[yellow]No entries ({title})[/yellow]")
        return

    table = Table(title=title)
    for label in ("Canonical Name", "Canonical Email", "Alias Name", "Alias Email"):
        table.add_column(label)
    for entry in entries:
        table.add_row(
            entry["canonicalName"] or "",
            entry["canonicalEmail"],
            entry["aliasName"] or "",
            entry["aliasEmail"],
        )

    console.print(table)


def display_worktrees(worktrees: List[Dict[str, Any]]) -> None:
    table = Table()
    for label in ("Path", "Branch", "HEAD", "Status"):
        table.add_column(label)

    for worktree in worktrees:
        status = []
        if worktree["isMain"]:
            status.append("main")
        if worktree["isOrphaned"]:
            status.append("[red]orphaned[/red]")
        if worktree["isLocked"]:
            status.append("locked")
        if worktree["isPrunable"]:
            status.append("prunable")
        table.add_row(
            worktree["path"],
            worktree["branch"] or "(detached)",
            worktree["head"][:7],
            ", ".join(status),
        )

    console.print(table)


def display_pull_requests(pulls: List[Dict[str, Any]]) -> None:
    if not pulls:
        console.print("[yellow]No pull requests (is GITHUB_TOKEN set?)[/yellow]")
        return

    table = Table()
    for label in ("#", "Title", "Author", "Branch", "Base", "Updated"):
        table.add_column(label)
    for pr in pulls:
        number = f"[link={pr['url']}]#{pr['number']}[/link]"
        title = f"[dim]{pr['title']} (draft)[/dim]" if pr["isDraft"] else pr["title"]
        table.add_row(
            number,
            title,
            pr["author"],
            pr["branch"],
            pr["baseBranch"],
            format_date(pr.get("updatedAt")),
        )

    console.print(table)
