"""High-level convenience API for document signing.

Provides :func:`sign` and :func:`verify`, which build a
:class:`~mdsign.service.DocumentSigningService` from the saved settings on
every call.  For repeated operations, construct the service once and
reuse it.
"""

from __future__ import annotations

__all__ = ["sign", "verify"]

from dataclasses import replace
from typing import TYPE_CHECKING

from .service import DocumentSigningService

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .config import SignatureSettings
    from .core.models import VerificationResult


def sign(
    text: str,
    metadata: Mapping[str, str] | None = None,
    *,
    settings: SignatureSettings | None = None,
    keystore_password: str | None = None,
) -> str:
    """Sign *text* with the configured keystore and return the signed text.

    Raises:
        ParseError: Malformed front matter.
        ConfigError: No keystore configured, or it cannot be opened.
    """
    service = DocumentSigningService.from_settings(settings, keystore_password=keystore_password)
    return service.sign(text, metadata)


def verify(
    text: str, *, settings: SignatureSettings | None = None
) -> list[VerificationResult]:
    """Verify all signatures in *text* against the configured trust store.

    The keystore is not needed and not loaded.

    Raises:
        ParseError: Malformed front matter.
    """
    if settings is None:
        from .config import get_settings

        settings = get_settings()
    verify_only = replace(settings, keystore=None, keystore_alias=None)
    return DocumentSigningService.from_settings(verify_only).verify(text)
