"""
Value types: signature entries, documents, verification results, and
signing materials.

All records are immutable.  Mutation happens by building a new value
(e.g. :meth:`Document.with_signature`), never in place.
"""

from __future__ import annotations

__all__ = [
    "Document",
    "SignatureEntry",
    "SigningMaterials",
    "VerificationResult",
]

import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives import serialization

from ..constants import MSG_VALID, MSG_VERIFICATION_FAILED
from ..errors import ConfigError
from .cert_info import subject_dn

if TYPE_CHECKING:
    from cryptography import x509
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
    )


def _as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Normalize a datetime to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


@dataclass(frozen=True)
class SignatureEntry:
    """One embedded signature as carried in the document front matter.

    Attributes:
        signature: Base64 of the DER-encoded detached CMS SignedData.
        signer_dn: Signer certificate subject (RFC 4514 string).
        expiration_date: When the signature stops being accepted.
        metadata: Caller-supplied string pairs.  Stored as a read-only view
            over a private copy, so neither the caller's dict nor the
            entry can be changed through the other.
        signed_at: Signing time.
    """

    signature: str
    signer_dn: str
    expiration_date: datetime.datetime | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)
    signed_at: datetime.datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "expiration_date", _as_utc(self.expiration_date))
        object.__setattr__(self, "signed_at", _as_utc(self.signed_at))

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        """Return True if the entry carries an expiration date that has passed."""
        if self.expiration_date is None:
            return False
        now = _as_utc(now) or datetime.datetime.now(datetime.timezone.utc)
        return now > self.expiration_date

    def __str__(self) -> str:
        return f"SignatureEntry(signer={self.signer_dn!r}, signed={self.signed_at}, expires={self.expiration_date})"


@dataclass(frozen=True)
class Document:
    """A text document: front matter header, body, and embedded signatures.

    ``header`` never contains the reserved ``signatures`` key; the codec
    derives it from :attr:`signatures` whenever the document is written.
    """

    header: Mapping[str, Any] = field(default_factory=dict)
    body: str = ""
    signatures: tuple[SignatureEntry, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "header", MappingProxyType(dict(self.header)))
        object.__setattr__(self, "signatures", tuple(self.signatures))

    def with_signature(self, entry: SignatureEntry) -> Document:
        """Return a copy of this document with *entry* appended."""
        return replace(self, signatures=(*self.signatures, entry))


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one signature entry."""

    valid: bool
    signer_dn: str | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if self.message is None:
            object.__setattr__(self, "message", MSG_VALID if self.valid else MSG_VERIFICATION_FAILED)

    def to_dict(self) -> dict[str, object]:
        """Transport form, keyed the same way as the front matter fields."""
        return {"valid": self.valid, "signerDN": self.signer_dn, "message": self.message}


def _public_key_der(key: Any) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


@dataclass(frozen=True)
class SigningMaterials:
    """Private key, signer certificate, and certificate chain for signing.

    Construction either yields a fully valid bundle or raises
    :class:`~mdsign.errors.ConfigError`:

    - the chain must be non-empty and start with ``certificate``;
    - ``private_key`` must belong to ``certificate``.

    The private key is excluded from ``repr`` and never serialized.
    """

    private_key: CertificateIssuerPrivateKeyTypes = field(repr=False)
    certificate: x509.Certificate
    chain: tuple[x509.Certificate, ...] = ()

    def __post_init__(self) -> None:
        if self.private_key is None:
            raise ConfigError("Private key cannot be empty")
        if self.certificate is None:
            raise ConfigError("Certificate cannot be empty")
        chain = tuple(self.chain)
        if not chain:
            raise ConfigError("Certificate chain cannot be empty")
        if chain[0] != self.certificate:
            raise ConfigError("First certificate in chain must be the signer's certificate")
        try:
            matches = _public_key_der(self.private_key.public_key()) == _public_key_der(
                self.certificate.public_key()
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Unsupported signing key: {e}") from e
        if not matches:
            raise ConfigError(
                f"Private key does not match certificate: {subject_dn(self.certificate)}"
            )
        object.__setattr__(self, "chain", chain)

    @property
    def signer_dn(self) -> str:
        return subject_dn(self.certificate)

    def __repr__(self) -> str:
        return f"SigningMaterials(certificate={self.signer_dn!r}, chain_length={len(self.chain)})"
