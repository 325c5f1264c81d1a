"""Unit tests for the index store module."""

import json
import os
from unittest.mock import patch

import pytest

from pw_cli.errors import StorageIOError
from pw_cli.index import Entry, JsonIndexStore, MemoryIndexStore, parse_index, sorted_entries


class TestEntry:
    """Tests for the Entry dataclass."""

    def test_identity_includes_tag(self):
        """Test that tag presence makes entries distinct."""
        assert Entry("db") != Entry("db", "prod")
        assert Entry("db", "prod") == Entry("db", "prod")
        assert len({Entry("db"), Entry("db"), Entry("db", "prod")}) == 2

    def test_sorted_entries_untagged_first(self):
        """Test stable ordering by key, then tag."""
        entries = {Entry("b"), Entry("a", "z"), Entry("a"), Entry("a", "b")}
        assert sorted_entries(entries) == [
            Entry("a"), Entry("a", "b"), Entry("a", "z"), Entry("b")
        ]


class TestJsonIndexStoreLoad:
    """Tests for JsonIndexStore.load."""

    def test_load_missing_file_is_empty(self, json_store):
        """Test that a missing file yields an empty index."""
        assert json_store.load() == set()

    def test_load_entries(self, json_store):
        """Test loading the current format."""
        json_store.path.write_text(json.dumps({
            "entries": [{"key": "db", "tag": None}, {"key": "db", "tag": "prod"}]
        }))
        assert json_store.load() == {Entry("db"), Entry("db", "prod")}

    def test_load_entry_without_tag_field(self, json_store):
        """Test that an omitted tag means untagged."""
        json_store.path.write_text(json.dumps({"entries": [{"key": "db"}]}))
        assert json_store.load() == {Entry("db")}

    def test_load_legacy_keys(self, json_store):
        """Test that the older flat key list is still readable."""
        json_store.path.write_text(json.dumps({"keys": ["github", "email"]}))
        assert json_store.load() == {Entry("github"), Entry("email")}

    def test_load_invalid_json(self, json_store):
        """Test that broken JSON raises StorageIOError."""
        json_store.path.write_text("{not json")
        with pytest.raises(StorageIOError):
            json_store.load()

    @pytest.mark.parametrize("payload", [
        [],
        {"entries": "db"},
        {"entries": [{"tag": "x"}]},
        {"entries": [{"key": 1}]},
        {"entries": [{"key": "db", "tag": 3}]},
        {"keys": [1, 2]},
        {"something": []},
    ])
    def test_load_wrong_structure(self, json_store, payload):
        """Test that structurally invalid files raise StorageIOError."""
        json_store.path.write_text(json.dumps(payload))
        with pytest.raises(StorageIOError):
            json_store.load()

    def test_load_name_too_long(self, temp_index_dir):
        """Test that stat failures other than a missing file raise StorageIOError."""
        store = JsonIndexStore(temp_index_dir / ("x" * 300) / "keys.json")
        with pytest.raises(StorageIOError):
            store.load()

    def test_load_missing_directory_is_empty(self, temp_index_dir):
        store = JsonIndexStore(temp_index_dir / "absent" / "keys.json")
        assert store.load() == set()

    def test_load_unreadable(self, json_store):
        """Test that OS errors are reported as StorageIOError."""
        json_store.path.write_text("{}")
        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(StorageIOError) as exc_info:
                json_store.load()
        assert "denied" in str(exc_info.value)


class TestJsonIndexStoreSave:
    """Tests for JsonIndexStore.save."""

    def test_round_trip(self, json_store):
        """Test load(save(x)) == x."""
        index = {Entry("db"), Entry("db", "prod"), Entry("a:b"), Entry("a", "b")}
        json_store.save(index)
        assert json_store.load() == index

    def test_save_load_is_noop(self, json_store):
        """Test that saving what was loaded leaves the file unchanged."""
        json_store.save({Entry("x"), Entry("y", "t")})
        before = json_store.path.read_text()
        json_store.save(json_store.load())
        assert json_store.path.read_text() == before

    def test_save_is_full_replace(self, json_store):
        """Test that save overwrites rather than merges."""
        json_store.save({Entry("old")})
        json_store.save({Entry("new")})
        assert json_store.load() == {Entry("new")}

    def test_save_writes_sorted_entries(self, json_store):
        """Test the on-disk layout."""
        json_store.save({Entry("db", "prod"), Entry("db")})
        data = json.loads(json_store.path.read_text())
        assert data == {"entries": [
            {"key": "db", "tag": None},
            {"key": "db", "tag": "prod"},
        ]}

    def test_save_upgrades_legacy_format(self, json_store):
        """Test that saving a legacy index writes the new format."""
        json_store.path.write_text(json.dumps({"keys": ["github"]}))
        json_store.save(json_store.load())
        assert "entries" in json.loads(json_store.path.read_text())

    def test_save_permissions(self, json_store):
        """Test the index file is private to the user."""
        json_store.save({Entry("db")})
        assert oct(json_store.path.stat().st_mode)[-3:] == "600"

    def test_save_creates_parent_directory(self, temp_index_dir):
        """Test saving into a missing directory."""
        store = JsonIndexStore(temp_index_dir / "nested" / "keys.json")
        store.save({Entry("db")})
        assert store.load() == {Entry("db")}

    def test_save_leaves_no_temp_files(self, json_store):
        """Test the temporary file is renamed into place."""
        json_store.save({Entry("db")})
        assert os.listdir(json_store.path.parent) == ["keys.json"]

    def test_failed_replace_keeps_previous_file(self, json_store):
        """Test that a failed write leaves the old index intact."""
        json_store.save({Entry("keep")})
        with patch("pw_cli.index.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageIOError):
                json_store.save({Entry("lost")})
        assert json_store.load() == {Entry("keep")}
        assert os.listdir(json_store.path.parent) == ["keys.json"]


class TestMemoryIndexStore:
    """Tests for the in-memory store."""

    def test_load_returns_copy(self):
        """Test that mutating a loaded index does not persist it."""
        store = MemoryIndexStore([Entry("db")])
        index = store.load()
        index.add(Entry("other"))
        assert store.load() == {Entry("db")}

    def test_save_counts(self):
        """Test save replaces state and counts writes."""
        store = MemoryIndexStore()
        store.save({Entry("db")})
        assert store.load() == {Entry("db")}
        assert store.save_count == 1


class TestParseIndex:
    """Tests for parse_index."""

    def test_empty_entries(self):
        assert parse_index({"entries": []}) == set()

    def test_error_mentions_source(self):
        with pytest.raises(StorageIOError) as exc_info:
            parse_index("nope", "keys.json")
        assert "keys.json" in str(exc_info.value)
