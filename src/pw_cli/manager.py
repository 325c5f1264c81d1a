#!/usr/bin/env python3
"""Password Manager - Keeps the index and the secret store in step.

Each operation loads the index, resolves the target entry, talks to the
secret store and only then updates and saves the index. A failed store call
leaves the index untouched.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .errors import ClipboardError, IdentifierCollisionError, IndexInvariantError
from .index import Entry, IndexStore
from .resolver import (
    Ambiguous,
    NotFound,
    Unique,
    find_collision,
    identifier_of,
    list_entries,
    register,
    resolve,
    unregister,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stored:
    """Result of a set."""

    entry: Entry
    index_changed: bool

    @property
    def identifier(self) -> str:
        return identifier_of(self.entry)


@dataclass(frozen=True)
class Retrieved:
    """Result of a successful get."""

    entry: Entry
    secret: str

    @property
    def identifier(self) -> str:
        return identifier_of(self.entry)


@dataclass(frozen=True)
class Removed:
    """Result of a successful remove."""

    entry: Entry

    @property
    def identifier(self) -> str:
        return identifier_of(self.entry)


GetOutcome = Union[Retrieved, Ambiguous]
RemoveOutcome = Union[Removed, Ambiguous, NotFound]


class PasswordManager:
    """set/get/remove/list over an index store and a secret store.

    The clipboard is optional; it is only needed to copy a retrieved secret.
    """

    def __init__(self, index_store: IndexStore, secret_store, clipboard=None):
        self.index_store = index_store
        self.secret_store = secret_store
        self.clipboard = clipboard

    def set_password(self, key: str, password: str, tag: Optional[str] = None) -> Stored:
        """Store a password and register its entry.

        Raises:
            IdentifierCollisionError: If another entry already uses the identifier
            SecretStoreError: If the store rejects the secret (index unchanged)
            StorageIOError: If the index cannot be read or written

        """
        index = self.index_store.load()
        entry = Entry(key, tag)
        identifier = identifier_of(entry)

        clash = find_collision(index, key, tag)
        if clash is not None:
            raise IdentifierCollisionError(
                f"\"{identifier}\" is already used by key \"{clash.key}\""
                + (f" with tag \"{clash.tag}\"" if clash.tag is not None else " without a tag")
            )

        self.secret_store.set(identifier, password)

        changed = register(index, key, tag)
        if changed:
            self.index_store.save(index)
            logger.debug("Registered %s", identifier)
        else:
            logger.debug("%s already registered, index not rewritten", identifier)
        return Stored(entry, changed)

    def get_password(self, key: str, tag: Optional[str] = None) -> GetOutcome:
        """Fetch a password.

        An untagged key that is not indexed is still looked up in the store,
        so the store's not-found error is what the caller sees.
        """
        index = self.index_store.load()
        resolution = resolve(index, key, tag)

        if isinstance(resolution, Ambiguous):
            logger.debug("\"%s\" is ambiguous: %s", key, resolution.identifiers)
            return resolution
        if isinstance(resolution, Unique):
            entry = resolution.entry
        else:
            logger.debug("\"%s\" is not indexed, asking the store anyway", key)
            entry = Entry(key)

        secret = self.secret_store.get(identifier_of(entry))
        return Retrieved(entry, secret)

    def remove_password(self, key: str, tag: Optional[str] = None) -> RemoveOutcome:
        """Delete a password and unregister its entry.

        Raises:
            SecretStoreError: If the store delete fails (index unchanged)
            IndexInvariantError: If an entry resolved from the index vanished
            StorageIOError: If the index cannot be read or written

        """
        index = self.index_store.load()
        resolution = resolve(index, key, tag)

        if isinstance(resolution, (Ambiguous, NotFound)):
            return resolution

        entry = resolution.entry
        self.secret_store.delete(identifier_of(entry))

        if unregister(index, entry.key, entry.tag):
            self.index_store.save(index)
        elif tag is None:
            # Untagged queries only resolve to entries taken from the index
            raise IndexInvariantError(
                f"Entry \"{identifier_of(entry)}\" was resolved from the index but could not be removed"
            )
        else:
            logger.debug("%s was not indexed; removed from the store only", identifier_of(entry))
        return Removed(entry)

    def list_entries(self, tag_filter=None) -> List[Entry]:
        """Return indexed entries, see ``resolver.list_entries``."""
        return list_entries(self.index_store.load(), tag_filter)

    def copy_secret(self, retrieved: Retrieved) -> None:
        """Put a retrieved secret on the clipboard.

        Raises:
            ClipboardError: If no clipboard is configured or writing fails

        """
        if self.clipboard is None:
            raise ClipboardError("No clipboard available")
        self.clipboard.set_text(retrieved.secret)
        logger.debug("Copied %s to the clipboard", retrieved.identifier)
