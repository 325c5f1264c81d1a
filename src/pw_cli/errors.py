#!/usr/bin/env python3
"""Error types raised by pw-cli.

Ambiguous and not-found lookups are outcomes, not errors; see resolver.py.
"""


class PwError(Exception):
    """Base class for every failure the CLI reports."""


class StorageIOError(PwError):
    """The index file could not be read, parsed or written."""


class SecretStoreError(PwError):
    """The secure credential store rejected an operation."""


class SecretNotFoundError(SecretStoreError):
    """No secret is stored under the requested identifier."""


class ClipboardError(PwError):
    """The clipboard could not be initialized or written."""


class IdentifierCollisionError(PwError):
    """Two different entries would share one storage identifier."""


class IndexInvariantError(PwError):
    """The index reached a state that should be impossible."""


class ConfigurationError(PwError):
    """The environment lacks something pw-cli needs, such as a user name."""
