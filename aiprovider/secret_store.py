import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .errors import SecretStoreError

logger = logging.getLogger(__name__)

KEYCHAIN_SERVICE = "ai-provider-cli"


class SecretStore:
    """Provider credentials kept in the OS keychain, one entry per provider name.

    Every call goes straight to ``keyring``; nothing is cached in process.
    Backend failures are re-raised as :class:`SecretStoreError`.
    """

    def __init__(self, service: str = KEYCHAIN_SERVICE):
        self.service = service

    def set(self, account: str, secret: str):
        try:
            keyring.set_password(self.service, account, secret)
        except KeyringError as e:
            raise SecretStoreError(f"Could not store API key for '{account}': {e}") from e
        logger.debug("Stored credential for %s in %s", account, self.service)

    def get(self, account: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service, account)
        except KeyringError as e:
            raise SecretStoreError(f"Could not read API key for '{account}': {e}") from e

    def delete(self, account: str) -> bool:
        try:
            keyring.delete_password(self.service, account)
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            raise SecretStoreError(f"Could not delete API key for '{account}': {e}") from e
        logger.debug("Deleted credential for %s from %s", account, self.service)
        return True
