"""
Configuration, credentials, and key material loading.

Unified API for all config-related functionality. Instead of importing
from individual submodules (config, credentials, keystore), import from
this package directly.
"""

from __future__ import annotations

# Settings
from .config import (
    CONFIG_FILE,
    SETTING_KEYS,
    SignatureSettings,
    get_settings,
    reset_all,
    save_settings,
    set_setting,
)

# Keystore passwords
from .credentials import (
    clear_keystore_password,
    get_credential_storage_info,
    resolve_keystore_password,
    resolve_truststore_password,
    save_keystore_password,
)

# Key and trust material
from .keystore import load_signing_materials, load_trust_store

__all__ = [
    "CONFIG_FILE",
    "SETTING_KEYS",
    "SignatureSettings",
    "clear_keystore_password",
    "get_credential_storage_info",
    "get_settings",
    "load_signing_materials",
    "load_trust_store",
    "reset_all",
    "resolve_keystore_password",
    "resolve_truststore_password",
    "save_keystore_password",
    "save_settings",
    "set_setting",
]
