#!/usr/bin/env python3
"""Index Store - Durable catalog of the (key, tag) pairs pw-cli knows about.

The index holds no secrets. Callers always load the whole index, change it in
memory and save it back; there is no partial update.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Set

from .errors import StorageIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    """A registered password: a key plus an optional disambiguating tag."""

    key: str
    tag: Optional[str] = None

    def sort_key(self):
        # Untagged entries sort before tagged ones with the same key
        return (self.key, self.tag is not None, self.tag or "")


Index = Set[Entry]


def sorted_entries(entries: Iterable[Entry]) -> list:
    """Return entries in a stable (key, tag) order."""
    return sorted(entries, key=Entry.sort_key)


class IndexStore(ABC):
    """Load/save access to the persisted index."""

    @abstractmethod
    def load(self) -> Index:
        """Return the persisted index, or an empty one if none exists yet."""

    @abstractmethod
    def save(self, index: Index) -> None:
        """Replace the persisted index with exactly ``index``."""


class MemoryIndexStore(IndexStore):
    """Index store kept in process memory."""

    def __init__(self, entries: Optional[Iterable[Entry]] = None):
        self._entries: Index = set(entries or ())
        self.save_count = 0

    def load(self) -> Index:
        return set(self._entries)

    def save(self, index: Index) -> None:
        self._entries = set(index)
        self.save_count += 1


class JsonIndexStore(IndexStore):
    """Index store backed by a JSON file.

    Format::

        {"entries": [{"key": "db", "tag": null}, {"key": "db", "tag": "prod"}]}

    The flat ``{"keys": [...]}`` layout written by older releases is still
    read; every key in it becomes an untagged entry.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Index:
        """Read the index file.

        Returns:
            Set of entries, empty if the file does not exist

        Raises:
            StorageIOError: If the file is unreadable or malformed

        """
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("No index at %s, starting empty", self.path)
            return set()
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageIOError(f"Cannot read index {self.path}: {e}") from e

        index = parse_index(data, self.path)
        logger.debug("Loaded %d entries from %s", len(index), self.path)
        return index

    def save(self, index: Index) -> None:
        """Write the index through a temporary file and an atomic rename.

        Raises:
            StorageIOError: If the file cannot be written

        """
        data = {
            "entries": [
                {"key": entry.key, "tag": entry.tag}
                for entry in sorted_entries(index)
            ]
        }

        directory = self.path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageIOError(f"Cannot write index {self.path}: {e}") from e

        logger.debug("Saved %d entries to %s", len(index), self.path)


def parse_index(data, source="index") -> Index:
    """Validate decoded JSON and turn it into a set of entries.

    Raises:
        StorageIOError: If the structure is not a valid index

    """
    if not isinstance(data, dict):
        raise StorageIOError(f"Invalid index format in {source}: expected an object")

    if "entries" in data:
        raw_entries = data["entries"]
        if not isinstance(raw_entries, list):
            raise StorageIOError(f"Invalid index format in {source}: 'entries' must be a list")

        index = set()
        for item in raw_entries:
            if not isinstance(item, dict) or not isinstance(item.get("key"), str):
                raise StorageIOError(f"Invalid index entry in {source}: {item!r}")
            tag = item.get("tag")
            if tag is not None and not isinstance(tag, str):
                raise StorageIOError(f"Invalid tag in {source}: {tag!r}")
            index.add(Entry(item["key"], tag))
        return index

    if "keys" in data:
        keys = data["keys"]
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise StorageIOError(f"Invalid index format in {source}: 'keys' must be a list of strings")
        logger.debug("Reading legacy key list from %s", source)
        return {Entry(k) for k in keys}

    raise StorageIOError(f"Invalid index format in {source}: missing 'entries'")
