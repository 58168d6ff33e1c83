"""Saved FTP passwords for pasvftp.

Passwords live in the system keyring, one entry per server account,
so they never touch settings.json.
"""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError


logger = logging.getLogger("pasvftp.credentials")


class CredentialManager:
    """Keyring-backed password store keyed by user@host:port."""

    SERVICE_NAME = "pasvftp"

    # Anonymous logins use a conventional address, nothing to keep secret
    UNSAVED_USERS = ("anonymous", "ftp")

    @staticmethod
    def account(host: str, port: int, username: str) -> str:
        """Keyring user name for one server account."""
        return f"{username}@{host}:{port}"

    def store(self, host: str, port: int, username: str, password: str) -> bool:
        """
        Remember a password.

        Returns:
            True if the keyring accepted it, False otherwise
        """
        if username.lower() in self.UNSAVED_USERS:
            return False
        try:
            keyring.set_password(self.SERVICE_NAME, self.account(host, port, username), password)
        except KeyringError as e:
            logger.warning(f"Could not save password for {username}@{host}: {e}")
            return False
        return True

    def lookup(self, host: str, port: int, username: str) -> Optional[str]:
        """Saved password, or None if there is none or the keyring is unavailable."""
        try:
            return keyring.get_password(self.SERVICE_NAME, self.account(host, port, username))
        except KeyringError as e:
            logger.debug(f"Keyring lookup failed: {e}")
            return None

    def forget(self, host: str, port: int, username: str) -> bool:
        """Delete a saved password. Returns False if nothing was deleted."""
        try:
            keyring.delete_password(self.SERVICE_NAME, self.account(host, port, username))
        except PasswordDeleteError:
            return False
        except KeyringError as e:
            logger.warning(f"Could not delete password for {username}@{host}: {e}")
            return False
        return True
