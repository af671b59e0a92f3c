"""Author identity resolution against a mailmap, and alias suggestions."""

import re
from collections import Counter
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, TYPE_CHECKING

from branch_atlas.models.identity import AuthorIdentity, MailmapEntry, RawAuthor
from branch_atlas.services.git.parsers import AUTHOR_FORMAT, parse_author_records
from branch_atlas.services.mailmap_store import MailmapStore
from branch_atlas.logging_config import get_logger

if TYPE_CHECKING:
    from branch_atlas.session import RepositorySession

logger = get_logger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_name(name: str) -> str:
    """Lower-case a name and drop punctuation and repeated whitespace."""
    return _WHITESPACE.sub(" ", _PUNCTUATION.sub("", name.lower())).strip()


class Mailmap:
    """Lookup table over mailmap entries.

    Entries naming an alias (name, email) pair take precedence over
    email-only entries. Emails compare case-insensitively. When two entries
    cover the same alias the later one wins, as in git.
    """

    def __init__(self, entries: Iterable[MailmapEntry] = ()):
        self.entries: List[MailmapEntry] = list(entries)
        self._by_pair: Dict[Tuple[str, str], MailmapEntry] = {}
        self._by_email: Dict[str, MailmapEntry] = {}
        for entry in self.entries:
            email = normalize_email(entry.alias_email)
            if entry.alias_name:
                self._by_pair[(entry.alias_name, email)] = entry
            else:
                self._by_email[email] = entry

    def lookup(self, name: str, email: str) -> Optional[MailmapEntry]:
        email = normalize_email(email)
        entry = self._by_pair.get((name, email))
        if entry is None:
            entry = self._by_email.get(email)
        return entry

    def covers(self, name: str, email: str) -> bool:
        return self.lookup(name, email) is not None

    def __iter__(self) -> Iterator[MailmapEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def resolve(raw_name: str, raw_email: str, mailmap: Mailmap) -> AuthorIdentity:
    """Map a raw author onto its canonical identity.

    Without a matching entry the raw pair is its own identity.
    """
    entry = mailmap.lookup(raw_name, raw_email)
    aliases = frozenset({(raw_name, raw_email)})
    if entry is None:
        return AuthorIdentity(name=raw_name, email=raw_email, aliases=aliases)
    return AuthorIdentity(
        name=entry.canonical_name or raw_name,
        email=entry.canonical_email,
        aliases=aliases,
    )


def build_identities(raw_authors: Iterable[RawAuthor], mailmap: Mailmap) -> List[AuthorIdentity]:
    """Group raw authors by resolved identity, most active first."""
    grouped: Dict[Tuple[str, str], AuthorIdentity] = {}
    for author in raw_authors:
        identity = resolve(author.name, author.email, mailmap)
        existing = grouped.get(identity.key)
        if existing is None:
            grouped[identity.key] = AuthorIdentity(
                name=identity.name,
                email=identity.email,
                aliases=identity.aliases,
                commit_count=author.commit_count,
            )
        else:
            grouped[identity.key] = AuthorIdentity(
                name=existing.name,
                email=existing.email,
                aliases=existing.aliases | identity.aliases,
                commit_count=existing.commit_count + author.commit_count,
            )
    return sorted(grouped.values(), key=lambda i: (-i.commit_count, i.name, i.email))


def _activity_rank(author: RawAuthor) -> Tuple[int, str, str]:
    return (-author.commit_count, author.name, author.email)


def suggest_entries(all_authors: Sequence[RawAuthor], mailmap: Mailmap) -> List[MailmapEntry]:
    """Propose mailmap entries for raw authors that look like the same person.

    Only authors the mailmap does not cover yet are considered. Two authors are
    linked when their emails match case-insensitively or their names match
    after normalization; links are transitive. In each group the most active
    author (ties broken by name, then email) becomes canonical and every other
    member gets an entry. Nothing is written.
    """
    merged: Dict[Tuple[str, str], RawAuthor] = {}
    for author in all_authors:
        if mailmap.covers(author.name, author.email):
            continue
        existing = merged.get(author.key)
        count = author.commit_count + (existing.commit_count if existing else 0)
        merged[author.key] = RawAuthor(
            name=existing.name if existing else author.name,
            email=existing.email if existing else author.email,
            commit_count=count,
        )

    authors = list(merged.values())
    parent = list(range(len(authors)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    def union(a: int, b: int) -> None:
        root_a, root_b = find(a), find(b)
        if root_a != root_b:
            parent[max(root_a, root_b)] = min(root_a, root_b)

    first_by_key: Dict[str, int] = {}
    for index, author in enumerate(authors):
        keys = [f"email:{normalize_email(author.email)}"]
        name = normalize_name(author.name)
        if name:
            keys.append(f"name:{name}")
        for key in keys:
            if key in first_by_key:
                union(first_by_key[key], index)
            else:
                first_by_key[key] = index

    groups: Dict[int, List[RawAuthor]] = {}
    for index, author in enumerate(authors):
        groups.setdefault(find(index), []).append(author)

    suggestions = []
    for members in sorted(groups.values(), key=lambda m: _activity_rank(min(m, key=_activity_rank))):
        if len(members) < 2:
            continue
        members.sort(key=_activity_rank)
        canonical = members[0]
        for alias in members[1:]:
            suggestions.append(
                MailmapEntry(
                    canonical_name=canonical.name,
                    canonical_email=canonical.email,
                    alias_name=alias.name,
                    alias_email=alias.email,
                )
            )
    logger.debug(f"Suggested {len(suggestions)} mailmap entries from {len(authors)} uncovered authors")
    return suggestions


class IdentityService:
    """Reads raw authors from the repository and resolves them through its mailmap."""

    def __init__(self, session: "RepositorySession"):
        self.session = session
        self.mailmap_store = MailmapStore(session.path)

    def load_mailmap(self) -> Mailmap:
        return Mailmap(self.mailmap_store.read())

    def list_raw_authors(self) -> List[RawAuthor]:
        """Every raw (name, email) pair across all refs with its commit count."""
        output = self.session.run_checked("log", "--all", f"--format={AUTHOR_FORMAT}", "--")
        counts = Counter((record.name, record.email) for record in parse_author_records(output))
        return [
            RawAuthor(name=name, email=email, commit_count=count)
            for (name, email), count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        ]

    def get_identities(self) -> List[AuthorIdentity]:
        return build_identities(self.list_raw_authors(), self.load_mailmap())

    def suggest(self) -> List[MailmapEntry]:
        return suggest_entries(self.list_raw_authors(), self.load_mailmap())
