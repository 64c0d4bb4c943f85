"""Core signing primitives: value types, front matter codec, CMS, trust, validation."""

from __future__ import annotations

from .front_matter import parse, serialize
from .models import Document, SignatureEntry, SigningMaterials, VerificationResult
from .signing import SignatureEngine, canonical_body, inspect_signature
from .trust import TrustStore
from .validation import CertificateCheck, CertificateValidator

__all__ = [
    "CertificateCheck",
    "CertificateValidator",
    "Document",
    "SignatureEngine",
    "SignatureEntry",
    "SigningMaterials",
    "TrustStore",
    "VerificationResult",
    "canonical_body",
    "inspect_signature",
    "parse",
    "serialize",
]
