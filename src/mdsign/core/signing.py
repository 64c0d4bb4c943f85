"""
Signature engine -- produce and check signature entries over a document body.

The body is canonicalized by trimming surrounding whitespace and encoding
as UTF-8; those exact bytes are what the detached CMS covers.  A signature
therefore survives changes to the header and to leading/trailing blank
lines, and nothing else.

Verification never raises for a bad signature: every failure is folded
into a :class:`~mdsign.core.models.VerificationResult` local to its entry.
"""

from __future__ import annotations

__all__ = ["SignatureEngine", "canonical_body", "inspect_signature"]

import base64
import binascii
import datetime
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm

from ..constants import (
    DEFAULT_SIGNATURE_VALIDITY_DAYS,
    MSG_EXPIRED,
    MSG_INVALID_FORMAT,
    MSG_INVALID_SIGNATURE,
    MSG_NO_SIGNATURES,
    MSG_SIGNER_CERT_NOT_FOUND,
    MSG_SIGNER_DN_MISMATCH,
    MSG_VALID,
)
from ..errors import CertificateValidationError, ConfigError, CryptoError, MdSignError
from .cert_info import subject_dn
from .cms import (
    CmsInspection,
    build_detached_signature,
    find_signer_certificate,
    inspect_cms_blob,
    load_signed_data,
    verify_signer_info,
)
from .models import SignatureEntry, VerificationResult

if TYPE_CHECKING:
    from .models import Document, SigningMaterials
    from .validation import CertificateValidator

_logger = logging.getLogger(__name__)


def canonical_body(body: str) -> bytes:
    """Return the exact bytes a signature covers for *body*."""
    return body.strip().encode("utf-8")


def _decode_signature(encoded: str) -> bytes:
    try:
        return base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Signature is not valid base64: {e}") from e


def _resolve_now(now: datetime.datetime | None) -> datetime.datetime:
    if now is None:
        return datetime.datetime.now(datetime.timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=datetime.timezone.utc)
    return now


class SignatureEngine:
    """Sign and verify document bodies.

    Args:
        validator: Certificate validator used at verify time (and at sign
            time when ``validate_signer_on_sign`` is set).
        materials: Signing key and certificates; None for a verify-only
            engine.
        signature_validity_days: Lifetime of new signature entries.
        validate_signer_on_sign: Run the validator on the signer's own
            certificate before signing.
    """

    def __init__(
        self,
        validator: CertificateValidator,
        materials: SigningMaterials | None = None,
        signature_validity_days: int = DEFAULT_SIGNATURE_VALIDITY_DAYS,
        validate_signer_on_sign: bool = False,
    ) -> None:
        if signature_validity_days < 1:
            raise ConfigError(
                f"Signature validity must be at least one day, got {signature_validity_days}"
            )
        self._validator = validator
        self._materials = materials
        self._validity = datetime.timedelta(days=signature_validity_days)
        self._validate_signer_on_sign = validate_signer_on_sign

    @property
    def can_sign(self) -> bool:
        return self._materials is not None

    @property
    def validator(self) -> CertificateValidator:
        return self._validator

    # ── Sign ────────────────────────────────────────────────────────

    def sign(
        self,
        body: str,
        metadata: Mapping[str, str] | None = None,
        now: datetime.datetime | None = None,
    ) -> SignatureEntry:
        """
        Sign *body* and return a new signature entry.

        Args:
            body: Document body (canonicalized before signing).
            metadata: Optional string pairs stored with the entry.
            now: Signing time; defaults to the current UTC time.

        Returns:
            SignatureEntry with base64 CMS, signer DN, signing time and
            expiration date.

        Raises:
            ConfigError: No signing materials are loaded.
            CertificateValidationError: Signer certificate rejected (only
                with ``validate_signer_on_sign``).
            CryptoError: The CMS could not be produced.
        """
        materials = self._materials
        if materials is None:
            raise ConfigError("Signing materials not configured")
        now = _resolve_now(now)

        if self._validate_signer_on_sign:
            self._validator.validate(materials.certificate, now=now)

        content = canonical_body(body)
        _logger.debug("Signing %d byte(s) of canonical body", len(content))
        cms_der = build_detached_signature(content, materials, signing_time=now)

        entry = SignatureEntry(
            signature=base64.b64encode(cms_der).decode("ascii"),
            signer_dn=materials.signer_dn,
            expiration_date=now + self._validity,
            metadata=dict(metadata or {}),
            signed_at=now,
        )
        _logger.info("Document signed by: %s", entry.signer_dn)
        return entry

    # ── Verify ──────────────────────────────────────────────────────

    def verify(
        self, body: str, entry: SignatureEntry, now: datetime.datetime | None = None
    ) -> VerificationResult:
        """
        Verify one signature entry against *body*.

        Checks run in order and the first failure decides the message:
        signature decoding, signer certificate lookup, certificate
        validation, digest and signature match, signer DN, entry
        expiration.  Never raises; any failure becomes an invalid result.

        Args:
            body: Document body (canonicalized before checking).
            entry: Signature entry to check.
            now: Evaluation time; defaults to the current UTC time.

        Returns:
            VerificationResult for this entry.
        """
        now = _resolve_now(now)
        try:
            return self._check_entry(body, entry, now)
        except (MdSignError, ValueError, TypeError, KeyError, UnsupportedAlgorithm) as e:
            _logger.warning("Unexpected error verifying signature of %s: %s", entry.signer_dn, e)
            return VerificationResult(False, entry.signer_dn, f"Verification failed: {e}")

    def _check_entry(
        self, body: str, entry: SignatureEntry, now: datetime.datetime
    ) -> VerificationResult:
        signer_dn = entry.signer_dn

        try:
            signed_data = load_signed_data(_decode_signature(entry.signature))
        except CryptoError as e:
            _logger.debug("Undecodable signature for %s: %s", signer_dn, e)
            return VerificationResult(False, signer_dn, f"{MSG_INVALID_FORMAT}: {e}")

        content = canonical_body(body)
        signer_info = signed_data["signer_infos"][0]

        signer_cert = find_signer_certificate(signed_data, signer_info)
        if signer_cert is None:
            _logger.debug("No embedded certificate matches the signer identifier")
            return VerificationResult(
                False, signer_dn, f"Verification failed: {MSG_SIGNER_CERT_NOT_FOUND}"
            )
        try:
            certificate = x509.load_der_x509_certificate(signer_cert.dump())
        except ValueError as e:
            return VerificationResult(False, signer_dn, f"{MSG_INVALID_FORMAT}: {e}")

        try:
            self._validator.validate(certificate, now=now)
        except CertificateValidationError as e:
            _logger.info("Signer certificate rejected: %s", e)
            return VerificationResult(False, signer_dn, str(e))

        try:
            matches = verify_signer_info(content, signer_info, certificate.public_key())
        except CryptoError as e:
            _logger.debug("Signature check error for %s: %s", signer_dn, e)
            return VerificationResult(False, signer_dn, f"Verification failed: {e}")
        if not matches:
            _logger.info("Signature mismatch for: %s", signer_dn)
            return VerificationResult(False, signer_dn, MSG_INVALID_SIGNATURE)

        if signer_dn != subject_dn(certificate):
            _logger.info(
                "Entry names %s but was signed by %s", signer_dn, subject_dn(certificate)
            )
            return VerificationResult(
                False, signer_dn, f"Verification failed: {MSG_SIGNER_DN_MISMATCH}"
            )

        if entry.is_expired(now):
            _logger.info("Signature expired on %s for: %s", entry.expiration_date, signer_dn)
            return VerificationResult(False, signer_dn, MSG_EXPIRED)

        _logger.debug("Signature verified for: %s", signer_dn)
        return VerificationResult(True, signer_dn, MSG_VALID)

    def verify_document(
        self, document: Document, now: datetime.datetime | None = None
    ) -> list[VerificationResult]:
        """Verify every signature entry of *document*, in order.

        A document without signatures yields a single failed result.
        """
        if not document.signatures:
            _logger.debug("No signatures to verify")
            return [VerificationResult(False, None, MSG_NO_SIGNATURES)]
        now = _resolve_now(now)
        return [self.verify(document.body, entry, now=now) for entry in document.signatures]


def inspect_signature(entry: SignatureEntry | str) -> CmsInspection:
    """Describe a signature entry's CMS without checking it against content.

    Args:
        entry: A signature entry or its base64 ``signature`` value.

    Returns:
        CmsInspection; undecodable input is reported in ``details``.
    """
    encoded = entry.signature if isinstance(entry, SignatureEntry) else entry
    try:
        cms_der = _decode_signature(encoded)
    except CryptoError as e:
        return {"signer": None, "digest_algorithm": None, "cms_size": 0, "details": [str(e)]}
    return inspect_cms_blob(cms_der)
