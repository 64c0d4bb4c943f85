"""
mdsign -- sign and verify text documents that carry a YAML front matter header.

Signatures are detached CMS SignedData over the trimmed document body,
embedded base64-encoded in the header's ``signatures`` list.
"""

from __future__ import annotations

from .api import sign, verify
from .constants import __version__
from .core.front_matter import parse, serialize
from .core.models import Document, SignatureEntry, SigningMaterials, VerificationResult
from .core.signing import SignatureEngine, inspect_signature
from .core.trust import TrustStore
from .core.validation import CertificateValidator
from .errors import (
    CertificateValidationError,
    ConfigError,
    CryptoError,
    MdSignError,
    ParseError,
)
from .service import DocumentSigningService

__all__ = [
    "CertificateValidationError",
    "CertificateValidator",
    "ConfigError",
    "CryptoError",
    "Document",
    "DocumentSigningService",
    "MdSignError",
    "ParseError",
    "SignatureEngine",
    "SignatureEntry",
    "SigningMaterials",
    "TrustStore",
    "VerificationResult",
    "__version__",
    "inspect_signature",
    "parse",
    "serialize",
    "sign",
    "verify",
]
