"""
Keystore password management for mdsign.

Passwords come from environment variables first, then from the system
keychain via ``keyring`` (one entry per keystore path).  They are never
written to the config file and never logged.
"""

from __future__ import annotations

__all__ = [
    "clear_keystore_password",
    "get_credential_storage_info",
    "resolve_keystore_password",
    "resolve_truststore_password",
    "save_keystore_password",
]

import logging
import os
from typing import TYPE_CHECKING

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..constants import ENV_KEYSTORE_PASS, ENV_TRUSTSTORE_PASS
from ..errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

# Keyring service name for credential storage
_KEYRING_SERVICE = "mdsign"

_logger = logging.getLogger(__name__)


def _keyring_username(keystore: Path) -> str:
    """Keyring account name for a keystore: its absolute path."""
    return str(keystore.expanduser().resolve())


def get_credential_storage_info() -> str:
    """Return human-readable description of where passwords are stored."""
    try:
        backend = keyring.get_keyring()
    except (KeyringError, OSError, RuntimeError) as e:
        _logger.debug("Cannot query keyring backend: %s", e)
        return "unavailable"
    module = type(backend).__module__ or ""
    if "macOS" in module:
        return "macOS Keychain"
    if "Windows" in module or "WinVault" in module:
        return "Windows Credential Manager"
    if "SecretService" in module:
        return "Linux Secret Service"
    if "KWallet" in module:
        return "KDE Wallet"
    if "fail" in module:
        return "unavailable"
    return f"System keychain ({type(backend).__name__})"


def resolve_keystore_password(keystore: Path) -> str | None:
    """Resolve the password for *keystore*.

    Priority: ``MDSIGN_KEYSTORE_PASS`` > system keychain.

    Returns:
        The password, or None if none is available.  Keychain errors are
        logged and treated as "no password".
    """
    env_pass = os.environ.get(ENV_KEYSTORE_PASS, "")
    if env_pass:
        _logger.debug("Keystore password taken from %s", ENV_KEYSTORE_PASS)
        return env_pass

    try:
        password = keyring.get_password(_KEYRING_SERVICE, _keyring_username(keystore))
    except KeyringError as e:
        _logger.warning("Keyring read failed: %s", e)
        return None
    except (OSError, RuntimeError) as e:
        _logger.warning("Keyring backend error: %s", e)
        return None

    _logger.debug("Keystore password %s in keyring", "found" if password else "not found")
    return password or None


def resolve_truststore_password() -> str | None:
    """Return ``MDSIGN_TRUSTSTORE_PASS`` if set, else None."""
    return os.environ.get(ENV_TRUSTSTORE_PASS, "") or None


def save_keystore_password(keystore: Path, password: str) -> None:
    """
    Store the password for *keystore* in the system keychain.

    Raises:
        ConfigError: If the keychain rejects the write.  There is no
            plaintext fallback.
    """
    if not password:
        raise ConfigError("Keystore password cannot be empty")
    try:
        keyring.set_password(_KEYRING_SERVICE, _keyring_username(keystore), password)
    except (KeyringError, OSError, RuntimeError) as e:
        raise ConfigError(f"Cannot store password in system keychain: {e}") from e
    _logger.info("Keystore password saved to %s", get_credential_storage_info())


def clear_keystore_password(keystore: Path) -> bool:
    """Remove the keychain entry for *keystore* (best-effort).

    Returns:
        True if an entry was deleted.
    """
    try:
        keyring.delete_password(_KEYRING_SERVICE, _keyring_username(keystore))
    except PasswordDeleteError:
        _logger.debug("No keyring entry to delete")
        return False
    except (KeyringError, OSError, RuntimeError) as e:
        _logger.warning("Keyring delete failed: %s", e)
        return False
    _logger.info("Keystore password removed from keychain")
    return True
