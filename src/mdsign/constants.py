"""
Application-wide constants for mdsign.

Validity windows, protocol strings, result messages, and environment
variable names are centralized here for easy maintenance.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("mdsign")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "DEFAULT_CERT_EXPIRY_WARNING_DAYS",
    "DEFAULT_DIGEST_ALGORITHM",
    "DEFAULT_SIGNATURE_VALIDITY_DAYS",
    "ENV_KEYSTORE",
    "ENV_KEYSTORE_ALIAS",
    "ENV_KEYSTORE_PASS",
    "ENV_TRUSTSTORE",
    "ENV_TRUSTSTORE_PASS",
    "FRONT_MATTER_DELIMITER",
    "MAX_CERT_EXPIRY_WARNING_DAYS",
    "MAX_SIGNATURE_VALIDITY_DAYS",
    "MIN_CMS_SIZE",
    "MSG_EXPIRED",
    "MSG_INVALID_FORMAT",
    "MSG_INVALID_SIGNATURE",
    "MSG_NO_SIGNATURES",
    "MSG_SIGNER_CERT_NOT_FOUND",
    "MSG_SIGNER_DN_MISMATCH",
    "MSG_VALID",
    "MSG_VERIFICATION_FAILED",
    "REVOCATION_CHECKING",
    "SIGNATURES_KEY",
    "__version__",
]

# ── Validity windows (days) ───────────────────────────────────────────

# Warn when a signer certificate expires within this many days
DEFAULT_CERT_EXPIRY_WARNING_DAYS = 30
MAX_CERT_EXPIRY_WARNING_DAYS = 3650

# Signature entries expire this many days after signing
DEFAULT_SIGNATURE_VALIDITY_DAYS = 365
MAX_SIGNATURE_VALIDITY_DAYS = 36500


# ── Trust policy ──────────────────────────────────────────────────────

# Revocation checking (CRL/OCSP) is not performed. Not configurable.
REVOCATION_CHECKING = False


# ── Protocol constants ────────────────────────────────────────────────

# Line that opens and closes the YAML front matter block
FRONT_MATTER_DELIMITER = "---"

# Reserved front matter key holding the embedded signature list
SIGNATURES_KEY = "signatures"

# Digest used for the CMS messageDigest attribute
DEFAULT_DIGEST_ALGORITHM = "sha256"

# Minimum plausible CMS blob size in bytes (header + basic content)
MIN_CMS_SIZE = 100


# ── Verification result messages ──────────────────────────────────────

MSG_VALID = "Signature is valid"
MSG_VERIFICATION_FAILED = "Signature verification failed"
MSG_INVALID_SIGNATURE = "Invalid signature"
MSG_EXPIRED = "Signature has expired"
MSG_NO_SIGNATURES = "No signatures found in document"
MSG_INVALID_FORMAT = "Invalid signature format"
MSG_SIGNER_CERT_NOT_FOUND = "Signer certificate not found in signature"
MSG_SIGNER_DN_MISMATCH = "Signer DN does not match the signing certificate"


# ── Environment variable names ──────────────────────────────────────

ENV_KEYSTORE = "MDSIGN_KEYSTORE"
ENV_KEYSTORE_PASS = "MDSIGN_KEYSTORE_PASS"
ENV_KEYSTORE_ALIAS = "MDSIGN_KEYSTORE_ALIAS"
ENV_TRUSTSTORE = "MDSIGN_TRUSTSTORE"
ENV_TRUSTSTORE_PASS = "MDSIGN_TRUSTSTORE_PASS"
