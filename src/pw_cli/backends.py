#!/usr/bin/env python3
"""Backends - The OS keyring and the system clipboard.

Secrets are addressed by flat identifiers only. The keyring service name is
scoped by the pw-cli service and the current account, so different users on
one machine never see each other's entries.
"""

import logging

import keyring
import pyperclip
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import ClipboardError, SecretNotFoundError, SecretStoreError

logger = logging.getLogger(__name__)


class KeyringSecretStore:
    """Secret store backed by the platform keyring."""

    def __init__(self, service: str, account: str):
        self.service = service
        self.account = account

    @property
    def keyring_service(self) -> str:
        return f"{self.service}:{self.account}"

    def set(self, identifier: str, secret: str) -> None:
        """Store ``secret`` under ``identifier``, replacing any previous value."""
        logger.debug("Storing secret for %s in %s", identifier, self.keyring_service)
        try:
            keyring.set_password(self.keyring_service, identifier, secret)
        except KeyringError as e:
            raise SecretStoreError(f"Failed to store \"{identifier}\": {e}") from e

    def get(self, identifier: str) -> str:
        """Return the secret stored under ``identifier``.

        Raises:
            SecretNotFoundError: If nothing is stored under the identifier
            SecretStoreError: If the keyring backend fails

        """
        logger.debug("Reading secret for %s from %s", identifier, self.keyring_service)
        try:
            secret = keyring.get_password(self.keyring_service, identifier)
        except KeyringError as e:
            raise SecretStoreError(f"Failed to read \"{identifier}\": {e}") from e
        if secret is None:
            raise SecretNotFoundError(f"No password found for \"{identifier}\"")
        return secret

    def delete(self, identifier: str) -> None:
        """Delete the secret stored under ``identifier``."""
        logger.debug("Deleting secret for %s from %s", identifier, self.keyring_service)
        try:
            keyring.delete_password(self.keyring_service, identifier)
        except PasswordDeleteError as e:
            raise SecretNotFoundError(f"No password found for \"{identifier}\"") from e
        except KeyringError as e:
            raise SecretStoreError(f"Failed to delete \"{identifier}\": {e}") from e


class PyperclipClipboard:
    """System clipboard via pyperclip."""

    def set_text(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise ClipboardError(f"Failed to set clipboard content: {e}") from e
