"""
Configuration management for mdsign.

Stores keystore/truststore locations and signature policy in
~/.mdsign/config.json.  Passwords never live here; see ``credentials.py``.

Priority for every value: env vars > config file > built-in default.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "SETTING_KEYS",
    "SignatureSettings",
    "get_settings",
    "reset_all",
    "save_settings",
    "set_setting",
]

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from ..constants import (
    DEFAULT_CERT_EXPIRY_WARNING_DAYS,
    DEFAULT_SIGNATURE_VALIDITY_DAYS,
    ENV_KEYSTORE,
    ENV_KEYSTORE_ALIAS,
    ENV_TRUSTSTORE,
    MAX_CERT_EXPIRY_WARNING_DAYS,
    MAX_SIGNATURE_VALIDITY_DAYS,
)
from ..errors import ConfigError
from ._storage import CONFIG_DIR, CONFIG_FILE, load_config, load_raw_config, save_config

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureSettings:
    """Resolved mdsign configuration.

    Paths are kept as given (``~`` expanded); they are not required to
    exist until the materials are actually loaded.
    """

    keystore: Path | None = None
    keystore_alias: str | None = None
    truststore: Path | None = None
    cert_expiry_warning_days: int = DEFAULT_CERT_EXPIRY_WARNING_DAYS
    signature_validity_days: int = DEFAULT_SIGNATURE_VALIDITY_DAYS
    validate_signer_on_sign: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.cert_expiry_warning_days <= MAX_CERT_EXPIRY_WARNING_DAYS:
            raise ConfigError(
                f"cert_expiry_warning_days must be in [1, {MAX_CERT_EXPIRY_WARNING_DAYS}], "
                f"got {self.cert_expiry_warning_days}"
            )
        if not 1 <= self.signature_validity_days <= MAX_SIGNATURE_VALIDITY_DAYS:
            raise ConfigError(
                f"signature_validity_days must be in [1, {MAX_SIGNATURE_VALIDITY_DAYS}], "
                f"got {self.signature_validity_days}"
            )

    def to_dict(self) -> dict[str, object]:
        """JSON-ready form; unset values are omitted."""
        data: dict[str, object] = {}
        for key, value in asdict(self).items():
            if value is None:
                continue
            data[key] = str(value) if isinstance(value, Path) else value
        return data


SETTING_KEYS = tuple(SignatureSettings.__dataclass_fields__)


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name, "").strip()
    return Path(value).expanduser() if value else None


def get_settings() -> SignatureSettings:
    """
    Resolve settings from env vars, the config file, and defaults.

    Returns:
        SignatureSettings (never raises for bad file values; those are
        dropped with a warning by the storage layer).
    """
    config = load_config()

    keystore = _env_path(ENV_KEYSTORE)
    if keystore is None and "keystore" in config:
        keystore = Path(config["keystore"]).expanduser()

    truststore = _env_path(ENV_TRUSTSTORE)
    if truststore is None and "truststore" in config:
        truststore = Path(config["truststore"]).expanduser()

    alias = os.environ.get(ENV_KEYSTORE_ALIAS, "").strip() or config.get("keystore_alias")

    settings = SignatureSettings(
        keystore=keystore,
        keystore_alias=alias,
        truststore=truststore,
        cert_expiry_warning_days=config.get(
            "cert_expiry_warning_days", DEFAULT_CERT_EXPIRY_WARNING_DAYS
        ),
        signature_validity_days=config.get(
            "signature_validity_days", DEFAULT_SIGNATURE_VALIDITY_DAYS
        ),
        validate_signer_on_sign=config.get("validate_signer_on_sign", False),
    )
    _logger.debug(
        "Settings: keystore=%s, truststore=%s, warn=%dd, validity=%dd",
        settings.keystore,
        settings.truststore,
        settings.cert_expiry_warning_days,
        settings.signature_validity_days,
    )
    return settings


def save_settings(settings: SignatureSettings) -> None:
    """Persist *settings*, preserving unknown keys already in the file.

    Keys whose value is unset are removed from the file.
    """
    config = load_raw_config()
    data = settings.to_dict()
    for key in SETTING_KEYS:
        if key in data:
            config[key] = data[key]
        else:
            config.pop(key, None)
    save_config(config)
    _logger.info("Settings saved to %s", CONFIG_FILE)


def _coerce(key: str, raw: str) -> object:
    if key in ("cert_expiry_warning_days", "signature_validity_days"):
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if key == "validate_signer_on_sign":
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigError(f"{key} must be a boolean, got {raw!r}")
    return raw.strip() or None


def set_setting(key: str, raw_value: str) -> SignatureSettings:
    """
    Update one setting from its string form and persist it.

    An empty string clears an optional path/alias setting.  Only the file
    layer is changed; environment overrides still apply on the next read.

    Raises:
        ConfigError: Unknown key or invalid value.
    """
    if key not in SETTING_KEYS:
        raise ConfigError(f"Unknown setting {key!r} (expected one of: {', '.join(SETTING_KEYS)})")

    config = load_config()
    current = SignatureSettings(
        keystore=Path(config["keystore"]) if "keystore" in config else None,
        keystore_alias=config.get("keystore_alias"),
        truststore=Path(config["truststore"]) if "truststore" in config else None,
        cert_expiry_warning_days=config.get(
            "cert_expiry_warning_days", DEFAULT_CERT_EXPIRY_WARNING_DAYS
        ),
        signature_validity_days=config.get(
            "signature_validity_days", DEFAULT_SIGNATURE_VALIDITY_DAYS
        ),
        validate_signer_on_sign=config.get("validate_signer_on_sign", False),
    )
    value = _coerce(key, raw_value)
    if key in ("keystore", "truststore") and value is not None:
        value = Path(str(value)).expanduser()

    updated = SignatureSettings(**{**asdict(current), key: value})
    save_settings(updated)
    return updated


def reset_all() -> None:
    """Clear the saved keystore password and all config values."""
    from .credentials import clear_keystore_password

    keystore = load_config().get("keystore")
    if keystore:
        clear_keystore_password(Path(keystore).expanduser())
    save_config({})
