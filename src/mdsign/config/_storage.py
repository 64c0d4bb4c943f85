"""
On-disk settings file for mdsign (``~/.mdsign/config.json``).

The file is a flat JSON object.  Readers get either the raw object (so
keys written by other versions survive a save) or a typed view holding
only the keys mdsign understands, with bad values dropped and logged.
Writes replace the file atomically and keep it private to the user.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ConfigDict",
    "load_config",
    "load_raw_config",
    "save_config",
]

import json
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypedDict, cast

from ..constants import MAX_CERT_EXPIRY_WARNING_DAYS, MAX_SIGNATURE_VALIDITY_DAYS

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".mdsign"
CONFIG_FILE = CONFIG_DIR / "config.json"

_PRIVATE_DIR_MODE = 0o700
_PRIVATE_FILE_MODE = 0o600


class ConfigDict(TypedDict, total=False):
    """Known settings keys and their JSON types."""

    keystore: str
    keystore_alias: str
    truststore: str
    cert_expiry_warning_days: int
    signature_validity_days: int
    validate_signer_on_sign: bool


def _path_or_name(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _day_count(maximum: int) -> Callable[[object], int | None]:
    def check(value: object) -> int | None:
        # JSON true/false load as bool, which is an int subclass
        if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= maximum:
            return value
        return None

    return check


def _flag(value: object) -> bool | None:
    return value if isinstance(value, bool) else None


_CHECKS: dict[str, Callable[[object], Any]] = {
    "keystore": _path_or_name,
    "keystore_alias": _path_or_name,
    "truststore": _path_or_name,
    "cert_expiry_warning_days": _day_count(MAX_CERT_EXPIRY_WARNING_DAYS),
    "signature_validity_days": _day_count(MAX_SIGNATURE_VALIDITY_DAYS),
    "validate_signer_on_sign": _flag,
}


def load_raw_config() -> dict[str, object]:
    """Return the settings file as a plain dict; ``{}`` if missing or unreadable.

    Unknown keys are kept so that a read-modify-save cycle does not drop
    options this version does not know about.
    """
    try:
        text = CONFIG_FILE.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        _logger.warning("Cannot read %s: %s", CONFIG_FILE, e)
        return {}

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        _logger.warning("Ignoring unparseable settings file %s: %s", CONFIG_FILE, e)
        return {}
    if not isinstance(data, dict):
        _logger.warning("Ignoring settings file %s: top level is not an object", CONFIG_FILE)
        return {}
    return cast("dict[str, object]", data)


def load_config() -> ConfigDict:
    """Return the known settings whose values pass their type and range checks."""
    raw = load_raw_config()
    typed: dict[str, object] = {}
    for key, check in _CHECKS.items():
        if key not in raw or raw[key] is None:
            continue
        value = check(raw[key])
        if value is None:
            _logger.warning("Ignoring invalid setting %s=%r", key, raw[key])
        else:
            typed[key] = value
    return cast("ConfigDict", typed)


def _restrict(path: Path, mode: int) -> None:
    if os.name == "nt":
        return
    try:
        path.chmod(mode)
    except OSError:
        _logger.warning("Could not restrict permissions on %s; it may be readable by others", path)


def _write_private(target: Path, text: str) -> None:
    """Replace *target* with *text* via a same-directory temp file (0600)."""
    fd, name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    tmp = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        _restrict(tmp, _PRIVATE_FILE_MODE)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def save_config(config: dict[str, object]) -> None:
    """Write *config* as the whole settings file."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=_PRIVATE_DIR_MODE)
    _restrict(CONFIG_DIR, _PRIVATE_DIR_MODE)
    _write_private(CONFIG_FILE, json.dumps(config, indent=2, ensure_ascii=False) + "\n")
    _logger.debug("Settings written to %s", CONFIG_FILE)
