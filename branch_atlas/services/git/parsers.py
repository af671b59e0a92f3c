"""Parsers for the git output shapes the core reads.

Every format string below emits records of FIELD_SEP-separated fields
terminated by RECORD_SEP, so parsing never depends on whitespace or on what a
commit subject happens to contain. Any record that does not have the expected
shape raises MalformedOutputError instead of being guessed at.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from branch_atlas.constants import FIELD_SEP, RECORD_SEP
from branch_atlas.exceptions import MalformedOutputError
from branch_atlas.models.commit import Commit
from branch_atlas.models.tech_tree import DiffStats
from branch_atlas.models.worktree import WorktreeInfo

# for-each-ref understands %xx hex escapes, git log needs %xXX
REF_FORMAT = "%1f".join([
    "%(refname)",
    "%(objectname)",
    "%(HEAD)",
    "%(upstream:short)",
]) + "%1e"
REF_FIELDS = 4

COMMIT_FORMAT = "%x1f".join([
    "%H",   # hash
    "%P",   # parent hashes, space separated
    "%an",  # author name
    "%ae",  # author email
    "%aI",  # author date, strict ISO 8601
    "%cI",  # committer date, strict ISO 8601
    "%s",   # subject
    "%D",   # ref decorations
]) + "%x1e"
COMMIT_FIELDS = 8

AUTHOR_FORMAT = "%x1f".join(["%H", "%an", "%ae", "%aI"]) + "%x1e"
AUTHOR_FIELDS = 4


@dataclass(frozen=True)
class RefRecord:
    """One line of the branch ref listing."""
    refname: str
    object_id: str
    is_head: bool
    upstream: Optional[str]

    @property
    def is_remote(self) -> bool:
        return self.refname.startswith("refs/remotes/")

    @property
    def name(self) -> str:
        """Ref name without its namespace: ``main`` or ``origin/main``."""
        if self.is_remote:
            return self.refname[len("refs/remotes/"):]
        return self.refname[len("refs/heads/"):]

    @property
    def is_symbolic_head(self) -> bool:
        """True for ``refs/remotes/<remote>/HEAD`` pointers, which are not branches."""
        return self.is_remote and self.refname.endswith("/HEAD")


@dataclass(frozen=True)
class AuthorRecord:
    hash: str
    name: str
    email: str
    date: datetime


def split_records(output: str, expected_fields: int, context: str) -> List[List[str]]:
    """Split delimited output into records of exactly ``expected_fields`` fields."""
    records = []
    for chunk in output.split(RECORD_SEP):
        chunk = chunk.lstrip("\r\n")
        if not chunk.strip():
            # Newline git writes after the last record
            continue
        fields = chunk.split(FIELD_SEP)
        if len(fields) != expected_fields:
            raise MalformedOutputError(
                context, f"expected {expected_fields} fields, got {len(fields)} in {chunk[:80]!r}"
            )
        records.append(fields)
    return records


def parse_iso_datetime(value: str, context: str) -> datetime:
    """Parse a strict ISO 8601 timestamp as produced by ``%aI``/``%cI``."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise MalformedOutputError(context, f"invalid date {value!r}") from None
    if parsed.tzinfo is None:
        raise MalformedOutputError(context, f"date without offset {value!r}")
    return parsed


def parse_count(output: str, context: str) -> int:
    """Parse output consisting of a single non-negative integer."""
    text = output.strip()
    if not text.isdigit():
        raise MalformedOutputError(context, f"expected a count, got {text[:40]!r}")
    return int(text)


def parse_left_right_count(output: str, context: str) -> Tuple[int, int]:
    """Parse ``rev-list --left-right --count`` output into (left, right)."""
    parts = output.split()
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise MalformedOutputError(context, f"expected two counts, got {output.strip()[:40]!r}")
    return int(parts[0]), int(parts[1])


def parse_date_lines(output: str, context: str) -> List[datetime]:
    """Parse one ISO timestamp per line (``--format=%cI``)."""
    return [parse_iso_datetime(line, context) for line in output.splitlines() if line.strip()]


def parse_ref_records(output: str) -> List[RefRecord]:
    """Parse the branch listing produced with REF_FORMAT."""
    records = []
    for refname, object_id, head, upstream in split_records(
        output, REF_FIELDS, "for-each-ref"
    ):
        if not refname.startswith(("refs/heads/", "refs/remotes/")):
            raise MalformedOutputError("for-each-ref", f"unexpected ref {refname!r}")
        if head not in ("*", " ", ""):
            raise MalformedOutputError("for-each-ref", f"unexpected HEAD marker {head!r}")
        records.append(
            RefRecord(
                refname=refname,
                object_id=object_id,
                is_head=head == "*",
                upstream=upstream or None,
            )
        )
    return records


def parse_ref_names(output: str) -> List[str]:
    """Parse one fully qualified ref name per line."""
    names = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        if not line.startswith("refs/"):
            raise MalformedOutputError("ref names", f"unexpected line {line[:80]!r}")
        names.append(line)
    return names


def parse_decorations(value: str) -> List[str]:
    """Turn a ``%D`` decoration string into ref names, dropping ``HEAD ->``."""
    refs = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("HEAD -> "):
            part = part[len("HEAD -> "):]
        elif part == "HEAD":
            continue
        refs.append(part)
    return refs


def parse_commit_records(output: str) -> List[Commit]:
    """Parse ``git log`` output produced with COMMIT_FORMAT."""
    commits = []
    for fields in split_records(output, COMMIT_FIELDS, "git log"):
        commit_hash, parents, author_name, author_email, author_date, committer_date, subject, refs = fields
        if not commit_hash:
            raise MalformedOutputError("git log", "record without a commit hash")
        commits.append(
            Commit(
                hash=commit_hash,
                parent_hashes=parents.split(),
                author_name=author_name,
                author_email=author_email,
                author_date=parse_iso_datetime(author_date, "git log author date"),
                committer_date=parse_iso_datetime(committer_date, "git log committer date"),
                message=subject,
                refs=parse_decorations(refs),
            )
        )
    return commits


def parse_author_records(output: str) -> List[AuthorRecord]:
    """Parse ``git log`` output produced with AUTHOR_FORMAT."""
    return [
        AuthorRecord(
            hash=commit_hash,
            name=name,
            email=email,
            date=parse_iso_datetime(date, "git log author date"),
        )
        for commit_hash, name, email, date in split_records(output, AUTHOR_FIELDS, "git log authors")
    ]


def parse_numstat(output: str) -> DiffStats:
    """Parse ``--numstat`` output, optionally followed by ``--summary`` lines.

    Binary files (``-\\t-\\tpath``) count as changed files with no lines.
    """
    added = removed = files = files_added = files_removed = 0
    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith(" "):
            summary = line.strip()
            if summary.startswith("create mode "):
                files_added += 1
            elif summary.startswith("delete mode "):
                files_removed += 1
            elif not summary.startswith(("rename ", "copy ", "mode change ", "rewrite ")):
                raise MalformedOutputError("numstat summary", f"unexpected line {summary[:80]!r}")
            continue

        parts = line.split("\t", 2)
        if len(parts) != 3:
            raise MalformedOutputError("numstat", f"unexpected line {line[:80]!r}")
        plus, minus, _path = parts
        if plus == "-" and minus == "-":
            files += 1
            continue
        if not (plus.isdigit() and minus.isdigit()):
            raise MalformedOutputError("numstat", f"non-numeric counts in {line[:80]!r}")
        added += int(plus)
        removed += int(minus)
        files += 1

    return DiffStats(
        lines_added=added,
        lines_removed=removed,
        files_changed=files,
        files_added=files_added,
        files_removed=files_removed,
    )


def parse_worktree_porcelain(output: str) -> List[WorktreeInfo]:
    """Parse ``git worktree list --porcelain`` output.

    Format, one block per worktree separated by blank lines::

        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>     (or "detached")
        locked [reason]              (optional)
        prunable [reason]            (optional)
    """
    worktrees: List[WorktreeInfo] = []
    current: Dict[str, object] = {}

    def flush():
        if not current:
            return
        path = current.get("path")
        if not path:
            raise MalformedOutputError("worktree list", "block without a worktree path")
        worktrees.append(
            WorktreeInfo(
                path=str(path),
                branch_name=current.get("branch"),  # type: ignore[arg-type]
                head=str(current.get("HEAD", "")),
                # First worktree in list is always the main one
                is_main=not worktrees,
                is_orphaned=not os.path.exists(str(path)),
                is_locked=bool(current.get("locked", False)),
                is_prunable=bool(current.get("prunable", False)),
            )
        )
        current.clear()

    for line in output.split("\n"):
        line = line.rstrip("\r")
        if not line.strip():
            flush()
            continue

        key, _, value = line.partition(" ")
        if key == "worktree":
            flush()
            current["path"] = value
        elif key == "HEAD":
            current["HEAD"] = value
        elif key == "branch":
            current["branch"] = value[len("refs/heads/"):] if value.startswith("refs/heads/") else value
        elif key == "detached":
            current["branch"] = None
        elif key in ("locked", "prunable"):
            current[key] = True
        elif key == "bare":
            current["bare"] = True
        else:
            raise MalformedOutputError("worktree list", f"unexpected line {line[:80]!r}")
    flush()

    return worktrees
