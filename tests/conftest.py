"""Pytest fixtures and utilities for pw-cli tests."""

import tempfile
from pathlib import Path

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pw_cli.errors import SecretNotFoundError, SecretStoreError
from pw_cli.index import Entry, JsonIndexStore, MemoryIndexStore
from pw_cli.manager import PasswordManager


class FakeSecretStore:
    """Dict-backed stand-in for the keyring secret store."""

    def __init__(self):
        self.secrets = {}
        self.calls = []
        self.fail_on = set()

    def _check(self, op, identifier):
        self.calls.append((op, identifier))
        if op in self.fail_on:
            raise SecretStoreError(f"backend failure during {op}")

    def set(self, identifier, secret):
        self._check("set", identifier)
        self.secrets[identifier] = secret

    def get(self, identifier):
        self._check("get", identifier)
        if identifier not in self.secrets:
            raise SecretNotFoundError(f"No password found for \"{identifier}\"")
        return self.secrets[identifier]

    def delete(self, identifier):
        self._check("delete", identifier)
        if identifier not in self.secrets:
            raise SecretNotFoundError(f"No password found for \"{identifier}\"")
        del self.secrets[identifier]


class FakeClipboard:
    """Records clipboard writes."""

    def __init__(self):
        self.text = None

    def set_text(self, text):
        self.text = text


@pytest.fixture
def temp_index_dir():
    """Create a temporary directory for index files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def json_store(temp_index_dir):
    """JSON index store pointing at a not-yet-existing file."""
    return JsonIndexStore(temp_index_dir / "keys.json")


@pytest.fixture
def memory_store():
    return MemoryIndexStore()


@pytest.fixture
def secret_store():
    return FakeSecretStore()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def manager(memory_store, secret_store, clipboard):
    """Password manager over in-memory fakes."""
    return PasswordManager(memory_store, secret_store, clipboard)


@pytest.fixture
def populated_manager(secret_store):
    """Manager with a mix of tagged and untagged entries."""
    entries = {
        Entry("db"): "db_pass",
        Entry("db", "prod"): "db_prod_pass",
        Entry("email"): "email_pass",
        Entry("api", "work"): "api_work_pass",
    }
    for entry, secret in entries.items():
        identifier = entry.key if entry.tag is None else f"{entry.key}:{entry.tag}"
        secret_store.secrets[identifier] = secret
    return PasswordManager(MemoryIndexStore(entries), secret_store)

