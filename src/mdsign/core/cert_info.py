# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
Certificate information extraction from X.509 certificates and CMS blobs.

Pure data-parsing helpers used wherever signer identity is needed: the
signer DN recorded in front matter, log messages, and signature inspection.
"""

from __future__ import annotations

__all__ = [
    "extract_cert_info_from_asn1",
    "extract_cert_info_from_cms",
    "subject_dn",
    "to_asn1_certificate",
]

import datetime
import logging
from typing import TYPE_CHECKING

from asn1crypto import cms as asn1_cms
from asn1crypto import x509 as asn1_x509
from cryptography.hazmat.primitives import serialization

from ..errors import CryptoError

if TYPE_CHECKING:
    from cryptography import x509

_logger = logging.getLogger(__name__)

# OIDs for common subject fields
_OID_CN = "2.5.4.3"
_OID_EMAIL = "1.2.840.113549.1.9.1"
_OID_ORG = "2.5.4.10"


def subject_dn(certificate: x509.Certificate) -> str:
    """Return the certificate subject as an RFC 4514 string (e.g. ``CN=Alice,O=Acme``)."""
    return certificate.subject.rfc4514_string()


def to_asn1_certificate(certificate: x509.Certificate) -> asn1_x509.Certificate:
    """Convert a ``cryptography`` certificate into an asn1crypto one via DER."""
    return asn1_x509.Certificate.load(certificate.public_bytes(serialization.Encoding.DER))


def extract_cert_info_from_asn1(cert: asn1_x509.Certificate) -> dict[str, str | None]:
    """Extract CN, email, org, dn from an asn1crypto certificate object.

    Also logs warnings for expired or not-yet-valid certificates.
    """
    subject = cert.subject

    try:
        not_before = cert.not_valid_before
        not_after = cert.not_valid_after
        now = datetime.datetime.now(datetime.timezone.utc)
        if not_before and now < not_before:
            _logger.warning("Certificate is not yet valid (notBefore: %s)", not_before)
        elif not_after and now > not_after:
            _logger.warning("Certificate has expired (notAfter: %s)", not_after)
    except (KeyError, TypeError, ValueError) as e:
        _logger.debug("Cannot check certificate validity dates: %s", e)

    fields: dict[str, str | None] = {"name": None, "email": None, "organization": None}
    oid_map = {_OID_CN: "name", _OID_EMAIL: "email", _OID_ORG: "organization"}

    for rdn in subject.chosen:
        for attr in rdn:
            oid = attr["type"].dotted
            if oid in oid_map:
                fields[oid_map[oid]] = attr["value"].native

    fields["dn"] = subject.human_friendly
    return fields


def extract_cert_info_from_cms(cms_der: bytes) -> dict[str, str | None]:
    """
    Extract signer certificate info from a CMS/PKCS#7 DER blob.

    The certificate named by the first SignerInfo is preferred; the first
    embedded certificate is used when no identifier matches.

    Args:
        cms_der: Raw DER-encoded CMS/PKCS#7 bytes.

    Returns:
        dict with keys: name (CN), email, organization, dn (full subject).

    Raises:
        CryptoError if parsing fails or no certificate found.
    """
    from .cms import find_signer_certificate

    try:
        content_info = asn1_cms.ContentInfo.load(cms_der)
        signed_data = content_info["content"]
        certs = signed_data["certificates"]
        signer_infos = signed_data["signer_infos"]
    except (ValueError, TypeError, KeyError, OSError) as e:
        raise CryptoError(f"Failed to parse CMS/PKCS#7 blob: {e}") from e

    if not certs:
        raise CryptoError("No certificate subject found in CMS blob.")

    cert = None
    if signer_infos:
        cert = find_signer_certificate(signed_data, signer_infos[0])
    if cert is None:
        cert = certs[0].chosen
    return extract_cert_info_from_asn1(cert)
