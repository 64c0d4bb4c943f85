# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
Detached CMS/PKCS#7 SignedData -- building, parsing, and inspection.

Structures are expressed with ``asn1crypto``; raw signing and signature
checks go through ``cryptography``.  The encapsulated content is always
omitted: the verifier supplies the signed bytes.
"""

from __future__ import annotations

__all__ = [
    "CmsInspection",
    "build_detached_signature",
    "extract_digest_info",
    "extract_signer_info",
    "find_signer_certificate",
    "inspect_cms_blob",
    "load_signed_data",
    "resolve_hash_algo",
    "verify_signer_info",
]

import datetime
import hashlib
import logging
from typing import TYPE_CHECKING, Any, TypedDict

from asn1crypto import algos, core
from asn1crypto import cms as asn1_cms
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, padding, rsa

from ..constants import DEFAULT_DIGEST_ALGORITHM, MIN_CMS_SIZE
from ..errors import CryptoError, MdSignError
from .cert_info import to_asn1_certificate

if TYPE_CHECKING:
    from asn1crypto import x509 as asn1_x509

    from .models import SigningMaterials

_logger = logging.getLogger(__name__)

# ASN.1 SEQUENCE tag -- first byte of any valid CMS/PKCS#7 blob
ASN1_SEQUENCE_TAG = 0x30

# OID for messageDigest attribute in CMS SignerInfo
_OID_MESSAGE_DIGEST = "1.2.840.113549.1.9.4"

# Map combined signature algorithm identifiers to hashlib names.
# Some producers put sha256WithRSAEncryption in the digestAlgorithm field.
_DIGEST_ALGO_MAP: dict[str, str] = {
    "sha1_rsa": "sha1",
    "sha256_rsa": "sha256",
    "sha384_rsa": "sha384",
    "sha512_rsa": "sha512",
    "1.2.840.113549.1.1.5": "sha1",  # sha1WithRSAEncryption OID
    "1.2.840.113549.1.1.11": "sha256",  # sha256WithRSAEncryption OID
    "1.2.840.113549.1.1.12": "sha384",  # sha384WithRSAEncryption OID
    "1.2.840.113549.1.1.13": "sha512",  # sha512WithRSAEncryption OID
}

_CRYPTOGRAPHY_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def resolve_hash_algo(algo_raw: str) -> str | None:
    """Resolve a CMS digest algorithm identifier to a hashlib-compatible name.

    Args:
        algo_raw: Algorithm name or OID from asn1crypto (.native or .dotted).

    Returns:
        hashlib algorithm name, or None if unrecognized.
    """
    if algo_raw in _CRYPTOGRAPHY_HASHES:
        return algo_raw
    return _DIGEST_ALGO_MAP.get(algo_raw)


def _get_hash(algo_name: str) -> hashes.HashAlgorithm:
    try:
        return _CRYPTOGRAPHY_HASHES[algo_name]()
    except KeyError:
        raise CryptoError(f"Unsupported digest algorithm: {algo_name}") from None


# ── Signing ──────────────────────────────────────────────────────────


def _signature_mechanism(private_key: Any, digest_algorithm: str) -> algos.SignedDigestAlgorithm:
    """Pick the CMS signatureAlgorithm identifier matching the key type."""
    if isinstance(private_key, rsa.RSAPrivateKey):
        algo = f"{digest_algorithm}_rsa"
    elif isinstance(private_key, ec.EllipticCurvePrivateKey):
        algo = f"{digest_algorithm}_ecdsa"
    elif isinstance(private_key, ed25519.Ed25519PrivateKey):
        algo = "ed25519"
    elif isinstance(private_key, ed448.Ed448PrivateKey):
        algo = "ed448"
    else:
        raise CryptoError(f"Signing key type {type(private_key).__name__} is unsupported.")
    return algos.SignedDigestAlgorithm({"algorithm": algo})


def _sign_raw(private_key: Any, data: bytes, digest_algorithm: str) -> bytes:
    hash_algo = _get_hash(digest_algorithm)
    try:
        if isinstance(private_key, rsa.RSAPrivateKey):
            return private_key.sign(data, padding.PKCS1v15(), hash_algo)
        if isinstance(private_key, ec.EllipticCurvePrivateKey):
            return private_key.sign(data, ec.ECDSA(hash_algo))
        if isinstance(private_key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
            return private_key.sign(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"Failed to create signature: {e}") from e
    raise CryptoError(f"Signing key type {type(private_key).__name__} is unsupported.")


def _simple_attribute(attr_type: str, value: object) -> asn1_cms.CMSAttribute:
    return asn1_cms.CMSAttribute({"type": attr_type, "values": (value,)})


def build_detached_signature(
    content: bytes,
    materials: SigningMaterials,
    signing_time: datetime.datetime,
    digest_algorithm: str = DEFAULT_DIGEST_ALGORITHM,
) -> bytes:
    """Produce a detached CMS SignedData over *content*.

    The SignerInfo carries signed attributes (content type, message digest,
    signing time); the raw signature covers their DER encoding.  The signer
    certificate and the full chain are embedded, leaf first.

    Args:
        content: Exact bytes being signed.
        materials: Key, certificate, and chain of the signer.
        signing_time: Timezone-aware signing time for the signed attributes.
        digest_algorithm: hashlib name of the message digest.

    Returns:
        DER-encoded ContentInfo.

    Raises:
        CryptoError: If the key type is unsupported or signing fails.
    """
    digest_algorithm = digest_algorithm.lower()
    data_digest = hashlib.new(digest_algorithm, content).digest()

    signed_attrs = asn1_cms.CMSAttributes(
        [
            _simple_attribute("content_type", "data"),
            _simple_attribute("message_digest", data_digest),
            _simple_attribute(
                "signing_time", asn1_cms.Time({"utc_time": core.UTCTime(signing_time)})
            ),
        ]
    )
    mechanism = _signature_mechanism(materials.private_key, digest_algorithm)
    signature = _sign_raw(materials.private_key, signed_attrs.dump(), digest_algorithm)

    signer_cert = to_asn1_certificate(materials.certificate)
    digest_algorithm_obj = algos.DigestAlgorithm({"algorithm": digest_algorithm})
    signer_info = asn1_cms.SignerInfo(
        {
            "version": "v1",
            "sid": asn1_cms.SignerIdentifier(
                {
                    "issuer_and_serial_number": asn1_cms.IssuerAndSerialNumber(
                        {
                            "issuer": signer_cert.issuer,
                            "serial_number": signer_cert.serial_number,
                        }
                    )
                }
            ),
            "digest_algorithm": digest_algorithm_obj,
            "signature_algorithm": mechanism,
            "signed_attrs": signed_attrs,
            "signature": signature,
        }
    )

    signed_data = asn1_cms.SignedData(
        {
            "version": "v1",
            "digest_algorithms": asn1_cms.DigestAlgorithms((digest_algorithm_obj,)),
            "encap_content_info": {"content_type": "data"},
            "certificates": [to_asn1_certificate(cert) for cert in materials.chain],
            "signer_infos": [signer_info],
        }
    )
    content_info = asn1_cms.ContentInfo(
        {"content_type": asn1_cms.ContentType("signed_data"), "content": signed_data}
    )
    cms_der: bytes = content_info.dump()
    _logger.debug("Built detached CMS: %d bytes, digest=%s", len(cms_der), digest_algorithm)
    return cms_der


# ── Parsing ──────────────────────────────────────────────────────────


def load_signed_data(cms_der: bytes) -> asn1_cms.SignedData:
    """Parse a DER ContentInfo and return its SignedData.

    Raises:
        CryptoError: If the blob is not a parseable CMS SignedData with
            at least one SignerInfo.
    """
    if not cms_der or cms_der[0] != ASN1_SEQUENCE_TAG:
        raise CryptoError("CMS does not start with ASN.1 SEQUENCE tag (0x30)")
    try:
        content_info = asn1_cms.ContentInfo.load(cms_der)
        if content_info["content_type"].native != "signed_data":
            raise CryptoError(
                f"Expected CMS signed_data, got {content_info['content_type'].native}"
            )
        signed_data = content_info["content"]
        signer_infos = signed_data["signer_infos"]
        # Force a full parse so structural errors surface here
        _ = signed_data.native
    except (ValueError, TypeError, KeyError, OSError) as e:
        raise CryptoError(f"Failed to parse CMS/PKCS#7 blob: {e}") from e
    if not signer_infos:
        raise CryptoError("CMS blob contains no SignerInfo")
    return signed_data


def find_signer_certificate(
    signed_data: asn1_cms.SignedData, signer_info: asn1_cms.SignerInfo
) -> asn1_x509.Certificate | None:
    """Return the embedded certificate named by *signer_info*'s identifier."""
    certs = signed_data["certificates"]
    if not certs:
        return None

    sid = signer_info["sid"]
    for choice in certs:
        if choice.name != "certificate":
            continue
        cert = choice.chosen
        if sid.name == "issuer_and_serial_number":
            iss = sid.chosen
            if cert.issuer == iss["issuer"] and cert.serial_number == iss["serial_number"].native:
                return cert
        elif sid.name == "subject_key_identifier":
            if cert.key_identifier == sid.chosen.native:
                return cert
    return None


def _message_digest(signed_attrs: asn1_cms.CMSAttributes) -> bytes | None:
    for attr in signed_attrs:
        if attr["type"].dotted == _OID_MESSAGE_DIGEST:
            values = attr["values"]
            if values:
                return values[0].native
    return None


def _content_type(signed_attrs: asn1_cms.CMSAttributes) -> str | None:
    for attr in signed_attrs:
        if attr["type"].native == "content_type":
            values = attr["values"]
            if values:
                return values[0].native
    return None


def _verify_raw(
    public_key: Any,
    signature: bytes,
    data: bytes,
    signature_algorithm: algos.SignedDigestAlgorithm,
    digest_algorithm: str,
) -> bool:
    try:
        mechanism = signature_algorithm.signature_algo
        if mechanism == "rsassa_pkcs1v15" and isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature, data, padding.PKCS1v15(), _get_hash(digest_algorithm))
        elif mechanism == "rsassa_pss" and isinstance(public_key, rsa.RSAPublicKey):
            params = signature_algorithm["parameters"]
            mgf_hash = params["mask_gen_algorithm"]["parameters"]["algorithm"].native
            pss = padding.PSS(
                mgf=padding.MGF1(_get_hash(mgf_hash)),
                salt_length=params["salt_length"].native,
            )
            public_key.verify(signature, data, pss, _get_hash(params["hash_algorithm"]["algorithm"].native))
        elif mechanism == "ecdsa" and isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signature, data, ec.ECDSA(_get_hash(digest_algorithm)))
        elif mechanism == "ed25519" and isinstance(public_key, ed25519.Ed25519PublicKey):
            public_key.verify(signature, data)
        elif mechanism == "ed448" and isinstance(public_key, ed448.Ed448PublicKey):
            public_key.verify(signature, data)
        else:
            raise CryptoError(
                f"Signature mechanism {mechanism} does not match key type "
                f"{type(public_key).__name__}"
            )
    except InvalidSignature:
        return False
    except (ValueError, TypeError, KeyError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"Cannot verify signature: {e}") from e
    return True


def verify_signer_info(content: bytes, signer_info: asn1_cms.SignerInfo, public_key: Any) -> bool:
    """Check a SignerInfo against detached *content* and the signer's public key.

    With signed attributes present, the messageDigest must equal the digest
    of *content* and the signature must cover the attributes' DER SET
    encoding; otherwise the signature covers *content* directly.

    Returns:
        True if digest and signature both match, False on any mismatch.

    Raises:
        CryptoError: On unsupported algorithms or malformed structures.
    """
    algo_id = signer_info["digest_algorithm"]["algorithm"]
    algo_name = resolve_hash_algo(algo_id.native) or resolve_hash_algo(algo_id.dotted)
    if algo_name is None:
        raise CryptoError(f"Unrecognized digest algorithm: {algo_id.native} ({algo_id.dotted})")

    signed_attrs = signer_info["signed_attrs"]
    if signed_attrs:
        content_type = _content_type(signed_attrs)
        if content_type is not None and content_type != "data":
            _logger.debug("Unexpected signed content type: %s", content_type)
            return False
        cms_digest = _message_digest(signed_attrs)
        if cms_digest is None:
            raise CryptoError("Signed attributes lack a messageDigest")
        actual = hashlib.new(algo_name, content).digest()
        if actual != cms_digest:
            _logger.debug(
                "Hash MISMATCH: content %s=%s, CMS messageDigest=%s",
                algo_name,
                actual.hex(),
                cms_digest.hex(),
            )
            return False
        # signed_attrs is [0] IMPLICIT on the wire; the signature covers a SET OF
        data = signed_attrs.untag().dump()
    else:
        data = content

    return _verify_raw(
        public_key,
        signer_info["signature"].native,
        data,
        signer_info["signature_algorithm"],
        algo_name,
    )


# ── Inspection ───────────────────────────────────────────────────────


def extract_digest_info(cms_der: bytes) -> tuple[str, bytes] | None:
    """Extract digest algorithm and messageDigest from the first SignerInfo.

    Returns:
        (hashlib_algo_name, digest_bytes) if extraction succeeds, None otherwise.
    """
    try:
        signed_data = load_signed_data(cms_der)
        signer_info = signed_data["signer_infos"][0]

        algo_id = signer_info["digest_algorithm"]["algorithm"]
        algo_name = resolve_hash_algo(algo_id.native) or resolve_hash_algo(algo_id.dotted)
        if algo_name is None:
            _logger.debug("Unrecognized digest algorithm: %s (%s)", algo_id.native, algo_id.dotted)
            return None

        signed_attrs = signer_info["signed_attrs"]
        if not signed_attrs:
            return None
        digest = _message_digest(signed_attrs)
        if digest is None:
            return None
        return (algo_name, digest)  # noqa: TRY300 -- success path after the optional-field guards
    except (CryptoError, ValueError, TypeError, KeyError, AttributeError, IndexError):
        _logger.debug("Could not extract digest info from CMS", exc_info=True)
        return None


def extract_signer_info(cms_der: bytes) -> dict[str, str | None] | None:
    """Extract signer certificate info from a CMS blob.

    Returns:
        dict with name, email, organization, dn -- or None on failure.
    """
    try:
        from .cert_info import extract_cert_info_from_cms

        return extract_cert_info_from_cms(cms_der)
    except (MdSignError, ValueError, TypeError, KeyError, AttributeError):
        _logger.debug("Could not extract signer info from CMS", exc_info=True)
        return None


class CmsInspection(TypedDict):
    """Result of inspecting a CMS/PKCS#7 blob (without original data)."""

    signer: dict[str, str | None] | None
    digest_algorithm: str | None
    cms_size: int
    details: list[str]


def inspect_cms_blob(cms_der: bytes) -> CmsInspection:
    """Inspect a CMS/PKCS#7 blob without verifying against original data.

    Extracts certificate info and digest algorithm.

    Args:
        cms_der: The CMS/PKCS#7 signature (DER-encoded).

    Returns:
        CmsInspection with signer info, digest algorithm, and details.
    """
    details: list[str] = []

    if len(cms_der) < MIN_CMS_SIZE:
        details.append(f"CMS too small ({len(cms_der)} bytes) -- likely corrupt")
        return {
            "signer": None,
            "digest_algorithm": None,
            "cms_size": len(cms_der),
            "details": details,
        }

    if cms_der[0] != ASN1_SEQUENCE_TAG:
        details.append("Not a valid CMS blob (expected ASN.1 SEQUENCE)")
        return {
            "signer": None,
            "digest_algorithm": None,
            "cms_size": len(cms_der),
            "details": details,
        }

    details.append(f"CMS blob: {len(cms_der)} bytes, valid ASN.1 structure")

    signer = extract_signer_info(cms_der)
    if signer:
        if signer.get("name"):
            details.append(f"Signer: {signer['name']}")
        if signer.get("organization"):
            details.append(f"Organization: {signer['organization']}")
        if signer.get("email"):
            details.append(f"Email: {signer['email']}")

    digest_algo = None
    digest_info = extract_digest_info(cms_der)
    if digest_info is not None:
        digest_algo = digest_info[0]
        details.append(f"Digest algorithm: {digest_algo.upper().replace('_', '-')}")

    return {
        "signer": signer,
        "digest_algorithm": digest_algo,
        "cms_size": len(cms_der),
        "details": details,
    }
