"""
Certificate validation -- chain trust, temporal validity, and key usage.

Used at verify time (mandatory) and optionally at sign time.  Revocation
is never checked (:data:`~mdsign.constants.REVOCATION_CHECKING`).

With an empty trust store the validator runs in degraded mode: chain
trust is skipped and any unexpired certificate with the
digitalSignature key usage passes.  This matches the fail-open trust-store
loading policy and is logged as a warning on every call.
"""

from __future__ import annotations

__all__ = ["CertificateCheck", "CertificateValidator"]

import datetime
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from ..constants import DEFAULT_CERT_EXPIRY_WARNING_DAYS, REVOCATION_CHECKING
from ..errors import CertificateValidationError, ConfigError
from .cert_info import subject_dn

if TYPE_CHECKING:
    from .trust import TrustStore

_logger = logging.getLogger(__name__)

_ExtensionT = TypeVar("_ExtensionT", bound=x509.ExtensionType)


def _find_extension(
    certificate: x509.Certificate, extension_class: type[_ExtensionT], subject: str
) -> _ExtensionT | None:
    """Return the extension value, None if absent; malformed extensions fail validation."""
    try:
        return certificate.extensions.get_extension_for_class(extension_class).value
    except x509.ExtensionNotFound:
        return None
    except ValueError as e:
        raise CertificateValidationError(
            f"Certificate validation failed: malformed extensions in "
            f"{subject_dn(certificate)} for {subject}: {e}",
            subject=subject,
        ) from e


@dataclass(frozen=True)
class CertificateCheck:
    """Successful validation outcome.

    Attributes:
        subject: Subject DN of the validated certificate.
        trusted_issuer: Subject DN of the trust anchor used, or None in
            degraded mode.
        degraded: True when no trust anchors were configured.
        expiring_soon: True when notAfter falls inside the warning window.
    """

    subject: str
    trusted_issuer: str | None = None
    degraded: bool = False
    expiring_soon: bool = False


class CertificateValidator:
    """Validate one certificate against a :class:`TrustStore`.

    Args:
        trust_store: Trust anchors; may be empty (degraded mode).
        expiry_warning_days: Warn when a certificate expires within this
            many days.  Non-fatal.
    """

    def __init__(
        self,
        trust_store: TrustStore,
        expiry_warning_days: int = DEFAULT_CERT_EXPIRY_WARNING_DAYS,
    ) -> None:
        if expiry_warning_days < 0:
            raise ConfigError(f"expiry_warning_days must be non-negative, got {expiry_warning_days}")
        self._trust_store = trust_store
        self._warning_window = datetime.timedelta(days=expiry_warning_days)

    @property
    def trust_store(self) -> TrustStore:
        return self._trust_store

    def validate(
        self, certificate: x509.Certificate, now: datetime.datetime | None = None
    ) -> CertificateCheck:
        """
        Validate *certificate* for use as a signing certificate.

        Checks, in order: chain trust (skipped in degraded mode), validity
        period, key usage.

        Args:
            certificate: Signer certificate.
            now: Evaluation time; defaults to the current UTC time.

        Returns:
            CertificateCheck describing the successful validation.

        Raises:
            CertificateValidationError: Naming the certificate subject.
        """
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=datetime.timezone.utc)
        subject = subject_dn(certificate)

        trusted_issuer: str | None = None
        degraded = self._trust_store.is_empty
        if degraded:
            _logger.warning(
                "No trust anchors configured, performing basic certificate validation only "
                "(chain of trust NOT checked) for: %s",
                subject,
            )
        else:
            trusted_issuer = self._validate_chain(certificate, subject)

        expiring_soon = self._validate_validity_period(certificate, subject, now)
        self._validate_key_usage(certificate, subject)

        _logger.debug("Certificate validation successful for subject: %s", subject)
        return CertificateCheck(
            subject=subject,
            trusted_issuer=trusted_issuer,
            degraded=degraded,
            expiring_soon=expiring_soon,
        )

    def _validate_chain(self, certificate: x509.Certificate, subject: str) -> str:
        """Single-step path validation against the trust anchors."""
        issuer = self._trust_store.find_issuer(certificate)
        if issuer is None:
            raise CertificateValidationError(
                f"Certificate validation failed: no trusted issuer "
                f"({certificate.issuer.rfc4514_string()}) for {subject}",
                subject=subject,
            )

        try:
            certificate.verify_directly_issued_by(issuer)
        except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm) as e:
            raise CertificateValidationError(
                f"Certificate validation failed: issuer signature check failed for {subject}: {e}",
                subject=subject,
            ) from e

        if issuer != certificate:
            self._validate_issuer_constraints(issuer, subject)

        _logger.debug(
            "Chain OK: %s issued by trust anchor %s (revocation checking: %s)",
            subject,
            subject_dn(issuer),
            "on" if REVOCATION_CHECKING else "off",
        )
        return subject_dn(issuer)

    @staticmethod
    def _validate_issuer_constraints(issuer: x509.Certificate, subject: str) -> None:
        """A distinct issuing anchor must not deny being a CA."""
        constraints = _find_extension(issuer, x509.BasicConstraints, subject)
        if constraints is not None and not constraints.ca:
            raise CertificateValidationError(
                f"Certificate validation failed: issuer {subject_dn(issuer)} is not a CA "
                f"(basic constraints) for {subject}",
                subject=subject,
            )
        if constraints is not None and constraints.path_length is not None and constraints.path_length < 0:
            raise CertificateValidationError(
                f"Certificate validation failed: invalid path length constraint for {subject}",
                subject=subject,
            )

        usage = _find_extension(issuer, x509.KeyUsage, subject)
        if usage is not None and not usage.key_cert_sign:
            raise CertificateValidationError(
                f"Certificate validation failed: issuer {subject_dn(issuer)} may not sign "
                f"certificates (key usage) for {subject}",
                subject=subject,
            )

    def _validate_validity_period(
        self, certificate: x509.Certificate, subject: str, now: datetime.datetime
    ) -> bool:
        """Raise if outside notBefore..notAfter; return True if expiring soon."""
        not_before = certificate.not_valid_before_utc
        not_after = certificate.not_valid_after_utc

        if now < not_before or now > not_after:
            raise CertificateValidationError(
                f"Certificate is not valid at current time: {subject}",
                subject=subject,
            )

        _logger.debug(
            "Certificate valid from %s to %s for subject: %s", not_before, not_after, subject
        )

        if not_after < now + self._warning_window:
            _logger.warning("Certificate will expire soon (notAfter: %s): %s", not_after, subject)
            return True
        return False

    @staticmethod
    def _validate_key_usage(certificate: x509.Certificate, subject: str) -> None:
        usage = _find_extension(certificate, x509.KeyUsage, subject)
        if usage is None:
            raise CertificateValidationError(
                f"No key usage extension present in certificate: {subject}",
                subject=subject,
            )

        if not usage.digital_signature:
            raise CertificateValidationError(
                f"Certificate is not authorized for digital signatures: {subject}",
                subject=subject,
            )
        _logger.debug("Certificate key usage validated for subject: %s", subject)
