"""Shared test fixtures for the mdsign test suite.

Certificates and keys are generated on the fly with ``cryptography``; no
fixture files are checked in.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519
from cryptography.x509.oid import NameOID

from mdsign.core.models import SigningMaterials
from mdsign.core.signing import SignatureEngine
from mdsign.core.trust import TrustStore
from mdsign.core.validation import CertificateValidator
from mdsign.service import DocumentSigningService

_DAY = datetime.timedelta(days=1)

SAMPLE_DOCUMENT = """---
title: Quarterly Report
author: Alice
---

# Results

Revenue went up.
"""


def key_usage(
    *, digital_signature: bool = False, key_cert_sign: bool = False, crl_sign: bool = False
) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=digital_signature,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=key_cert_sign,
        crl_sign=crl_sign,
        encipher_only=False,
        decipher_only=False,
    )


_KEY_USAGE_OID_DER = bytes.fromhex("0603551d0f")


def corrupt_key_usage(cert: x509.Certificate) -> x509.Certificate:
    """Return *cert* with its KeyUsage value re-tagged as an OCTET STRING.

    The certificate still loads; reading its extensions fails. The issuer
    signature no longer matches the altered bytes.
    """
    der = bytearray(cert.public_bytes(serialization.Encoding.DER))
    at = der.index(_KEY_USAGE_OID_DER) + len(_KEY_USAGE_OID_DER)
    if der[at] == 0x01:  # critical BOOLEAN
        at += 3
    assert der[at] == 0x04 and der[at + 2] == 0x03
    der[at + 2] = 0x04
    return x509.load_der_x509_certificate(bytes(der))


_DEFAULT = object()


@dataclass(frozen=True)
class Issued:
    """A generated key and its certificate."""

    key: Any
    cert: x509.Certificate


class CertFactory:
    """Builds small test PKIs relative to a fixed "now"."""

    def __init__(self) -> None:
        self.now = datetime.datetime.now(datetime.timezone.utc)

    @staticmethod
    def new_key() -> Any:
        return ec.generate_private_key(ec.SECP256R1())

    def issue(
        self,
        common_name: str,
        issuer: Issued | None = None,
        *,
        key: Any = None,
        ca: bool = False,
        usage: Any = _DEFAULT,
        not_before: datetime.datetime | None = None,
        not_after: datetime.datetime | None = None,
        organization: str | None = None,
        email: str | None = None,
    ) -> Issued:
        """Issue a certificate; ``issuer=None`` makes it self-signed."""
        if key is None:
            key = self.new_key()
        attrs = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        if organization:
            attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
        if email:
            attrs.append(x509.NameAttribute(NameOID.EMAIL_ADDRESS, email))
        subject = x509.Name(attrs)

        if usage is _DEFAULT:
            usage = key_usage(key_cert_sign=True, crl_sign=True) if ca else key_usage(
                digital_signature=True
            )

        issuer_name = issuer.cert.subject if issuer else subject
        signing_key = issuer.key if issuer else key
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before or self.now - _DAY)
            .not_valid_after(not_after or self.now + 365 * _DAY)
            .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
            )
        )
        if usage is not None:
            builder = builder.add_extension(usage, critical=True)

        algorithm = None if isinstance(signing_key, ed25519.Ed25519PrivateKey) else hashes.SHA256()
        return Issued(key=key, cert=builder.sign(signing_key, algorithm))


@pytest.fixture(scope="session")
def pki() -> CertFactory:
    return CertFactory()


@pytest.fixture(scope="session")
def root_ca(pki) -> Issued:
    return pki.issue("Test Root CA", ca=True, organization="Test Org")


@pytest.fixture(scope="session")
def signer(pki, root_ca) -> Issued:
    return pki.issue(
        "Alice Signer", root_ca, organization="Test Org", email="alice@example.com"
    )


@pytest.fixture(scope="session")
def other_root(pki) -> Issued:
    return pki.issue("Other Root CA", ca=True)


@pytest.fixture
def materials(signer, root_ca) -> SigningMaterials:
    return SigningMaterials(signer.key, signer.cert, (signer.cert, root_ca.cert))


@pytest.fixture
def trust_store(root_ca) -> TrustStore:
    return TrustStore([root_ca.cert])


@pytest.fixture
def validator(trust_store) -> CertificateValidator:
    return CertificateValidator(trust_store)


@pytest.fixture
def engine(validator, materials) -> SignatureEngine:
    return SignatureEngine(validator, materials)


@pytest.fixture
def service(engine) -> DocumentSigningService:
    return DocumentSigningService(engine)


# ── Config isolation ─────────────────────────────────────────────────


class FakeKeyring:
    """In-memory keyring backend for testing."""

    def __init__(self):
        self._store: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self._store.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._store[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        from keyring.errors import PasswordDeleteError

        if (service, username) not in self._store:
            raise PasswordDeleteError("not found")
        del self._store[(service, username)]

    def get_keyring(self):
        return self


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Redirect config to a temp directory and replace the system keyring.

    The fake keyring keeps tests from touching the real keychain.
    Environment overrides are cleared.
    """
    for name in (
        "MDSIGN_KEYSTORE",
        "MDSIGN_KEYSTORE_PASS",
        "MDSIGN_KEYSTORE_ALIAS",
        "MDSIGN_TRUSTSTORE",
        "MDSIGN_TRUSTSTORE_PASS",
    ):
        monkeypatch.delenv(name, raising=False)

    config_home = tmp_path / "config"
    config_file = config_home / "config.json"
    fake = FakeKeyring()
    with (
        patch("mdsign.config._storage.CONFIG_DIR", config_home),
        patch("mdsign.config._storage.CONFIG_FILE", config_file),
        patch("mdsign.config.config.CONFIG_FILE", config_file),
        patch("mdsign.config.credentials.keyring", fake),
    ):
        yield config_home, config_file, fake
