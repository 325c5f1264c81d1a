#!/usr/bin/env python3
"""Resolver - Pure lookup logic over an index snapshot.

Maps a user query (key plus optional tag) onto the single entry it names, and
derives the flat identifier the secure store is addressed with.

Identifiers are ``key`` or ``key:tag``. Keys and tags share one namespace, so
``("a:b", None)`` and ``("a", "b")`` both map to ``"a:b"``. The manager refuses
to register such a pair instead of changing the format.
"""

from dataclasses import dataclass
from typing import List, Optional, Union

from .index import Entry, Index, sorted_entries

TAG_SEPARATOR = ":"


class _NoTag:
    """Filter marker selecting entries that have no tag."""

    def __repr__(self):
        return "NO_TAG"


NO_TAG = _NoTag()


@dataclass(frozen=True)
class Unique:
    """The query names exactly one entry."""

    entry: Entry


@dataclass(frozen=True)
class Ambiguous:
    """An untagged query matched several entries; a tag is required."""

    key: str
    candidates: List[Entry]

    @property
    def identifiers(self) -> List[str]:
        return [identifier_of(entry) for entry in self.candidates]


@dataclass(frozen=True)
class NotFound:
    """An untagged query matched nothing in the index."""

    key: str


Resolution = Union[Unique, Ambiguous, NotFound]


def derive_identifier(key: str, tag: Optional[str] = None) -> str:
    """Return the secure store identifier for a key and optional tag."""
    if tag is None:
        return key
    return f"{key}{TAG_SEPARATOR}{tag}"


def identifier_of(entry: Entry) -> str:
    return derive_identifier(entry.key, entry.tag)


def find_matches(index: Index, key: str, tag_filter: Optional[str] = None) -> List[Entry]:
    """Entries with the given key, restricted to ``tag_filter`` if supplied."""
    return sorted_entries(
        entry for entry in index
        if entry.key == key and (tag_filter is None or entry.tag == tag_filter)
    )


def resolve(index: Index, key: str, tag: Optional[str] = None) -> Resolution:
    """Resolve a read or remove query.

    A tagged query always names ``(key, tag)``; whether it exists is left to
    the secure store. An untagged query is resolved against the index and
    never picks one of several candidates on its own.
    """
    if tag is not None:
        return Unique(Entry(key, tag))

    candidates = find_matches(index, key)
    if len(candidates) > 1:
        return Ambiguous(key, candidates)
    if len(candidates) == 1:
        return Unique(candidates[0])
    return NotFound(key)


def register(index: Index, key: str, tag: Optional[str] = None) -> bool:
    """Add ``(key, tag)``; returns False if it was already present."""
    entry = Entry(key, tag)
    if entry in index:
        return False
    index.add(entry)
    return True


def unregister(index: Index, key: str, tag: Optional[str] = None) -> bool:
    """Remove exactly ``(key, tag)``; returns whether it was present."""
    entry = Entry(key, tag)
    if entry not in index:
        return False
    index.remove(entry)
    return True


def find_collision(index: Index, key: str, tag: Optional[str] = None) -> Optional[Entry]:
    """Return a different indexed entry sharing the identifier of ``(key, tag)``."""
    wanted = Entry(key, tag)
    identifier = identifier_of(wanted)
    for entry in sorted_entries(index):
        if entry != wanted and identifier_of(entry) == identifier:
            return entry
    return None


def list_entries(index: Index, tag_filter=None) -> List[Entry]:
    """List entries, optionally filtered.

    Args:
        index: Index snapshot
        tag_filter: None for all entries, a tag string for entries with
            exactly that tag, or NO_TAG for untagged entries

    Returns:
        Entries sorted by key, then tag

    """
    if tag_filter is None:
        selected = index
    elif tag_filter is NO_TAG:
        selected = (entry for entry in index if entry.tag is None)
    else:
        selected = (entry for entry in index if entry.tag == tag_filter)
    return sorted_entries(selected)
