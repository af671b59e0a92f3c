"""Mailmap file store: reads and writes ``<repo>/.mailmap``."""

import re
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Optional, Tuple

from branch_atlas.models.identity import MailmapEntry
from branch_atlas.logging_config import get_logger

logger = get_logger(__name__)

MAILMAP_FILENAME = ".mailmap"

# git reads .mailmap as bytes; files that are not UTF-8 are read as Latin-1,
# which maps every byte, and written back in the same encoding.
MAILMAP_ENCODING = "utf-8"
FALLBACK_ENCODING = "latin-1"

# Proper Name <proper@email> [Commit Name] [<commit@email>]
_LINE = re.compile(
    r"^\s*(?P<cname>[^<#]*?)\s*<(?P<cemail>[^>]*)>"
    r"(?:\s*(?P<aname>[^<#]*?)\s*<(?P<aemail>[^>]*)>)?"
    r"\s*(?:#.*)?$"
)


def parse_mailmap_line(line: str) -> Optional[MailmapEntry]:
    """Parse one mailmap line; None for blank lines, comments and unrecognized lines.

    Handles the four forms git accepts::

        Proper Name <commit@email>
        <proper@email> <commit@email>
        Proper Name <proper@email> <commit@email>
        Proper Name <proper@email> Commit Name <commit@email>
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    match = _LINE.match(stripped)
    if not match:
        logger.warning(f"Ignoring unrecognized mailmap line: {stripped!r}")
        return None

    canonical_name = match.group("cname") or None
    canonical_email = match.group("cemail")
    alias_email = match.group("aemail")
    if alias_email is None:
        return MailmapEntry(
            canonical_name=canonical_name,
            canonical_email=canonical_email,
            alias_email=canonical_email,
        )
    return MailmapEntry(
        canonical_name=canonical_name,
        canonical_email=canonical_email,
        alias_email=alias_email,
        alias_name=match.group("aname") or None,
    )


def format_mailmap_entry(entry: MailmapEntry) -> str:
    """Render an entry in the shortest mailmap form that keeps its meaning."""
    canonical = f"<{entry.canonical_email}>"
    if entry.canonical_name:
        canonical = f"{entry.canonical_name} {canonical}"
    if entry.alias_name:
        return f"{canonical} {entry.alias_name} <{entry.alias_email}>"
    if entry.canonical_name and entry.alias_email.lower() == entry.canonical_email.lower():
        return canonical
    return f"{canonical} <{entry.alias_email}>"


def _same_entry(a: MailmapEntry, b: MailmapEntry) -> bool:
    return (
        a.canonical_name == b.canonical_name
        and a.canonical_email.lower() == b.canonical_email.lower()
        and a.alias_name == b.alias_name
        and a.alias_email.lower() == b.alias_email.lower()
    )


class MailmapStore:
    """File-backed mailmap for one repository working directory."""

    def __init__(self, repo_path: str):
        """Initialize the store.

        Args:
            repo_path: Path to the repository working directory
        """
        self.path = Path(repo_path) / MAILMAP_FILENAME
        self._lock = Lock()

    def _read_lines(self) -> Tuple[List[str], str]:
        """Lines of the file and the encoding they were decoded with."""
        if not self.path.exists():
            return [], MAILMAP_ENCODING
        data = self.path.read_bytes()
        try:
            return data.decode(MAILMAP_ENCODING).splitlines(), MAILMAP_ENCODING
        except UnicodeDecodeError:
            logger.debug(f"{self.path} is not valid UTF-8; reading it as {FALLBACK_ENCODING}")
            return data.decode(FALLBACK_ENCODING).splitlines(), FALLBACK_ENCODING

    def _write_lines(self, lines: List[str], encoding: str) -> None:
        text = "\n".join(lines) + ("\n" if lines else "")
        self.path.write_bytes(text.encode(encoding))

    def read(self) -> List[MailmapEntry]:
        """All entries in file order; an absent file is an empty mailmap."""
        entries = []
        lines, _ = self._read_lines()
        for line in lines:
            entry = parse_mailmap_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def add(self, entries: Iterable[MailmapEntry]) -> int:
        """Append entries not already present; returns how many were written."""
        with self._lock:
            lines, encoding = self._read_lines()
            existing = [e for e in (parse_mailmap_line(line) for line in lines) if e is not None]
            added = 0
            for entry in entries:
                if any(_same_entry(entry, other) for other in existing):
                    continue
                lines.append(format_mailmap_entry(entry))
                existing.append(entry)
                added += 1
            if added:
                self._write_lines(lines, encoding)
                logger.info(f"Added {added} entries to {self.path}")
            return added

    def remove(self, entry: MailmapEntry) -> bool:
        """Remove every line equivalent to ``entry``; False if none matched."""
        with self._lock:
            lines, encoding = self._read_lines()
            kept = []
            removed = False
            for line in lines:
                parsed = parse_mailmap_line(line)
                if parsed is not None and _same_entry(parsed, entry):
                    removed = True
                    continue
                kept.append(line)
            if removed:
                self._write_lines(kept, encoding)
                logger.info(f"Removed mailmap entry for <{entry.alias_email}> from {self.path}")
            return removed
