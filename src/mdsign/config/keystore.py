"""
Loading signing materials and trust anchors from disk.

Signing materials are fail-closed: anything missing or wrong raises
:class:`~mdsign.errors.ConfigError`.  Trust stores are fail-open: a
missing or unreadable store yields an empty :class:`TrustStore` (degraded
validation) with a loud warning.
"""

from __future__ import annotations

__all__ = ["load_signing_materials", "load_trust_store"]

import logging
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives.serialization import pkcs12

from ..core.cert_info import subject_dn
from ..core.models import SigningMaterials
from ..core.trust import TrustStore
from ..errors import ConfigError

_logger = logging.getLogger(__name__)

_PEM_MARKER = b"-----BEGIN"
_PKCS12_SUFFIXES = (".p12", ".pfx")


def _password_bytes(password: str | None) -> bytes | None:
    return password.encode("utf-8") if password else None


def load_signing_materials(
    path: str | Path, password: str | None, alias: str | None = None
) -> SigningMaterials:
    """
    Load a private key and certificate chain from a PKCS#12 keystore.

    Args:
        path: Keystore file.
        password: Keystore password (None for an unencrypted keystore).
        alias: Expected friendly name of the key entry, if any.

    Returns:
        SigningMaterials with chain = [certificate, *additional certs].

    Raises:
        ConfigError: Missing file, wrong password, no key or certificate,
            alias mismatch, or a key that does not match the certificate.
    """
    keystore = Path(path).expanduser()
    try:
        data = keystore.read_bytes()
    except FileNotFoundError:
        raise ConfigError(f"Keystore not found: {keystore}") from None
    except OSError as e:
        raise ConfigError(f"Cannot read keystore {keystore}: {e}") from e

    try:
        bundle = pkcs12.load_pkcs12(data, _password_bytes(password))
    except (ValueError, TypeError) as e:
        raise ConfigError(
            f"Cannot open keystore {keystore} (wrong password or not PKCS#12): {e}"
        ) from e

    if bundle.key is None:
        raise ConfigError(f"No private key found in keystore: {keystore}")
    if bundle.cert is None:
        raise ConfigError(f"No certificate found in keystore: {keystore}")

    if alias:
        friendly = bundle.cert.friendly_name
        name = friendly.decode("utf-8", errors="replace") if friendly else None
        if name != alias:
            raise ConfigError(f"No key entry found for alias {alias!r} in keystore: {keystore}")

    certificate = bundle.cert.certificate
    chain = (certificate, *(extra.certificate for extra in bundle.additional_certs))
    materials = SigningMaterials(private_key=bundle.key, certificate=certificate, chain=chain)
    _logger.info(
        "Loaded signing materials for %s (chain length %d)", materials.signer_dn, len(chain)
    )
    return materials


def _read_certificates(data: bytes, source: Path, password: str | None) -> list[x509.Certificate]:
    if _PEM_MARKER in data:
        return x509.load_pem_x509_certificates(data)
    if source.suffix.lower() in _PKCS12_SUFFIXES:
        bundle = pkcs12.load_pkcs12(data, _password_bytes(password))
        certs = [bundle.cert.certificate] if bundle.cert is not None else []
        return certs + [extra.certificate for extra in bundle.additional_certs]
    return [x509.load_der_x509_certificate(data)]


def load_trust_store(path: str | Path | None, password: str | None = None) -> TrustStore:
    """
    Load trust anchors from a PEM bundle, a DER certificate, or PKCS#12.

    Never raises: a missing path or any load error yields an empty store
    and a warning, and the validator then runs in degraded mode.

    Args:
        path: Trust store file, or None when not configured.
        password: PKCS#12 password, if the store is a ``.p12``/``.pfx``.
    """
    if path is None:
        _logger.warning("No trust store configured; using empty trust store")
        return TrustStore.empty()

    source = Path(path).expanduser()
    try:
        certificates = _read_certificates(source.read_bytes(), source, password)
    except (OSError, ValueError, TypeError) as e:
        _logger.warning(
            "Failed to load trust store %s, using empty trust store "
            "(certificate chains will NOT be checked): %s",
            source,
            e,
        )
        return TrustStore.empty()

    store = TrustStore(certificates)
    _logger.info("Loaded %d trust anchor(s) from %s", len(store), source)
    for anchor in store:
        _logger.debug("Trust anchor: %s", subject_dn(anchor))
    return store
