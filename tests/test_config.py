"""Tests for mdsign.config -- settings storage and keystore passwords."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from keyring.errors import KeyringError

from mdsign.config._storage import load_config, load_raw_config, save_config
from mdsign.config.config import (
    SignatureSettings,
    get_settings,
    reset_all,
    save_settings,
    set_setting,
)
from mdsign.config.credentials import (
    clear_keystore_password,
    get_credential_storage_info,
    resolve_keystore_password,
    resolve_truststore_password,
    save_keystore_password,
)
from mdsign.errors import ConfigError

# ── load_config / save_config ─────────────────────────────────────


def test_load_empty(config_dir):
    """Loading when no config file exists should return empty dict."""
    assert load_config() == {}


def test_save_and_load(config_dir):
    _, config_file, _ = config_dir
    save_config({"keystore": "/keys/signer.p12", "signature_validity_days": 30})
    assert config_file.exists()

    loaded = load_config()
    assert loaded.get("keystore") == "/keys/signer.p12"
    assert loaded.get("signature_validity_days") == 30


def test_save_config_permissions(config_dir):
    if os.name == "nt":
        pytest.skip("chmod test not applicable on Windows")
    _, config_file, _ = config_dir
    save_config({"keystore": "x"})
    assert config_file.stat().st_mode & 0o777 == 0o600


def test_save_config_leaves_no_temp_files(config_dir):
    config_home, config_file, _ = config_dir
    save_config({"keystore": "a"})
    save_config({"keystore": "b"})
    assert [p.name for p in config_home.iterdir()] == [config_file.name]
    assert load_config() == {"keystore": "b"}


def test_save_config_failed_write_keeps_old_file(config_dir):
    config_home, config_file, _ = config_dir
    save_config({"keystore": "old"})
    with patch("mdsign.config._storage.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError, match="disk full"):
            save_config({"keystore": "new"})
    assert [p.name for p in config_home.iterdir()] == [config_file.name]
    assert load_config() == {"keystore": "old"}


def test_load_config_warns_on_invalid_values(config_dir, caplog):
    save_config({"signature_validity_days": 0, "keystore": "/k.p12"})
    with caplog.at_level("WARNING", logger="mdsign.config._storage"):
        assert load_config() == {"keystore": "/k.p12"}
    assert "signature_validity_days" in caplog.text


def test_load_corrupt_json(config_dir):
    _, config_file, _ = config_dir
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{broken json", encoding="utf-8")
    assert load_config() == {}


def test_load_non_object_json(config_dir):
    _, config_file, _ = config_dir
    config_file.parent.mkdir(parents=True)
    config_file.write_text("[1, 2]", encoding="utf-8")
    assert load_raw_config() == {}


def test_load_config_drops_invalid_values(config_dir):
    save_config(
        {
            "keystore": 42,
            "cert_expiry_warning_days": 99999,
            "signature_validity_days": True,
            "validate_signer_on_sign": "yes",
        }
    )
    assert load_config() == {}


def test_save_preserves_unknown_keys(config_dir):
    save_config({"future_option": "keep me"})
    save_settings(SignatureSettings(signature_validity_days=10))
    raw = load_raw_config()
    assert raw["future_option"] == "keep me"
    assert raw["signature_validity_days"] == 10


# ── SignatureSettings / get_settings ──────────────────────────────


def test_settings_defaults(config_dir):
    settings = get_settings()
    assert settings == SignatureSettings()
    assert settings.cert_expiry_warning_days == 30
    assert settings.signature_validity_days == 365
    assert settings.validate_signer_on_sign is False
    assert settings.keystore is None


def test_settings_range_checked():
    with pytest.raises(ConfigError, match="cert_expiry_warning_days"):
        SignatureSettings(cert_expiry_warning_days=0)
    with pytest.raises(ConfigError, match="signature_validity_days"):
        SignatureSettings(signature_validity_days=36501)


def test_settings_from_file(config_dir):
    save_config(
        {
            "keystore": "/keys/signer.p12",
            "keystore_alias": "signer",
            "truststore": "/keys/trust.pem",
            "cert_expiry_warning_days": 14,
            "validate_signer_on_sign": True,
        }
    )
    settings = get_settings()
    assert settings.keystore == Path("/keys/signer.p12")
    assert settings.keystore_alias == "signer"
    assert settings.truststore == Path("/keys/trust.pem")
    assert settings.cert_expiry_warning_days == 14
    assert settings.validate_signer_on_sign is True


def test_env_overrides_file(config_dir, monkeypatch):
    save_config({"keystore": "/file/signer.p12", "truststore": "/file/trust.pem"})
    monkeypatch.setenv("MDSIGN_KEYSTORE", "/env/signer.p12")
    monkeypatch.setenv("MDSIGN_KEYSTORE_ALIAS", "env-alias")
    settings = get_settings()
    assert settings.keystore == Path("/env/signer.p12")
    assert settings.keystore_alias == "env-alias"
    assert settings.truststore == Path("/file/trust.pem")


def test_save_settings_round_trip(config_dir):
    settings = SignatureSettings(
        keystore=Path("/keys/a.p12"), cert_expiry_warning_days=60, validate_signer_on_sign=True
    )
    save_settings(settings)
    assert get_settings() == settings


def test_save_settings_removes_cleared_values(config_dir):
    save_settings(SignatureSettings(keystore=Path("/keys/a.p12")))
    save_settings(SignatureSettings())
    assert "keystore" not in load_raw_config()


# ── set_setting ───────────────────────────────────────────────────


def test_set_setting_int(config_dir):
    assert set_setting("signature_validity_days", "90").signature_validity_days == 90
    assert get_settings().signature_validity_days == 90


def test_set_setting_bool(config_dir):
    assert set_setting("validate_signer_on_sign", "yes").validate_signer_on_sign is True
    assert set_setting("validate_signer_on_sign", "off").validate_signer_on_sign is False


def test_set_setting_path_and_clear(config_dir):
    set_setting("truststore", "/keys/trust.pem")
    assert get_settings().truststore == Path("/keys/trust.pem")
    set_setting("truststore", "")
    assert get_settings().truststore is None


def test_set_setting_unknown_key(config_dir):
    with pytest.raises(ConfigError, match="Unknown setting"):
        set_setting("colour", "blue")


def test_set_setting_bad_values(config_dir):
    with pytest.raises(ConfigError, match="integer"):
        set_setting("signature_validity_days", "soon")
    with pytest.raises(ConfigError, match="boolean"):
        set_setting("validate_signer_on_sign", "maybe")
    with pytest.raises(ConfigError, match="cert_expiry_warning_days"):
        set_setting("cert_expiry_warning_days", "5000")


# ── Keystore passwords ────────────────────────────────────────────


def test_password_from_env(config_dir, monkeypatch, tmp_path):
    monkeypatch.setenv("MDSIGN_KEYSTORE_PASS", "from-env")
    assert resolve_keystore_password(tmp_path / "k.p12") == "from-env"


def test_password_not_configured(config_dir, tmp_path):
    assert resolve_keystore_password(tmp_path / "k.p12") is None


def test_save_and_resolve_password(config_dir, tmp_path):
    keystore = tmp_path / "k.p12"
    save_keystore_password(keystore, "secret")
    assert resolve_keystore_password(keystore) == "secret"
    # Passwords never reach the config file
    assert "secret" not in json.dumps(load_raw_config())


def test_passwords_are_per_keystore(config_dir, tmp_path):
    save_keystore_password(tmp_path / "a.p12", "alpha")
    assert resolve_keystore_password(tmp_path / "b.p12") is None


def test_env_password_beats_keyring(config_dir, monkeypatch, tmp_path):
    keystore = tmp_path / "k.p12"
    save_keystore_password(keystore, "from-keyring")
    monkeypatch.setenv("MDSIGN_KEYSTORE_PASS", "from-env")
    assert resolve_keystore_password(keystore) == "from-env"


def test_save_empty_password_rejected(config_dir, tmp_path):
    with pytest.raises(ConfigError, match="empty"):
        save_keystore_password(tmp_path / "k.p12", "")


def test_clear_password(config_dir, tmp_path):
    keystore = tmp_path / "k.p12"
    save_keystore_password(keystore, "secret")
    assert clear_keystore_password(keystore) is True
    assert resolve_keystore_password(keystore) is None
    assert clear_keystore_password(keystore) is False


def test_keyring_read_error_is_no_password(config_dir, tmp_path):
    _, _, fake = config_dir
    with patch.object(fake, "get_password", side_effect=KeyringError("locked")):
        assert resolve_keystore_password(tmp_path / "k.p12") is None


def test_keyring_write_error_raises(config_dir, tmp_path):
    _, _, fake = config_dir
    with (
        patch.object(fake, "set_password", side_effect=KeyringError("denied")),
        pytest.raises(ConfigError, match="system keychain"),
    ):
        save_keystore_password(tmp_path / "k.p12", "secret")


def test_truststore_password_from_env(config_dir, monkeypatch):
    assert resolve_truststore_password() is None
    monkeypatch.setenv("MDSIGN_TRUSTSTORE_PASS", "tpw")
    assert resolve_truststore_password() == "tpw"


def test_credential_storage_info(config_dir):
    assert "FakeKeyring" in get_credential_storage_info()


def test_reset_all(config_dir, tmp_path):
    keystore = tmp_path / "k.p12"
    save_settings(SignatureSettings(keystore=keystore))
    save_keystore_password(keystore, "secret")
    reset_all()
    assert load_raw_config() == {}
    assert resolve_keystore_password(keystore) is None
