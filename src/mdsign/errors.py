"""mdsign error types."""

from __future__ import annotations

__all__ = [
    "CertificateValidationError",
    "ConfigError",
    "CryptoError",
    "MdSignError",
    "ParseError",
]


class MdSignError(Exception):
    """Base error for mdsign operations."""


class ParseError(MdSignError):
    """Malformed front matter, duplicate keys, or a malformed signature record."""


class CertificateValidationError(MdSignError):
    """Certificate is expired, not yet valid, untrusted, or lacks key usage.

    Args:
        message: Human-readable error description, including the subject DN.
        subject: Subject DN of the offending certificate, when known.
    """

    def __init__(self, message: str, *, subject: str | None = None) -> None:
        super().__init__(message)
        self.subject = subject

    def __reduce__(self) -> tuple[type[CertificateValidationError], tuple[str], dict[str, object]]:
        """Preserve subject across pickle/unpickle."""
        return (type(self), (str(self),), {"subject": self.subject})

    def __setstate__(self, state: dict[str, object] | None) -> None:
        if state is None:
            return
        subject = state.get("subject")
        self.subject = subject if isinstance(subject, str) else None


class CryptoError(MdSignError):
    """Malformed signature encoding or cryptographic failure."""


class ConfigError(MdSignError):
    """Missing or incomplete signing materials, or invalid configuration."""
