"""
Document signing service -- codec plus engine over whole document texts.

:class:`DocumentSigningService` is the seam callers use: it parses the
text, hands the body to the :class:`~mdsign.core.signing.SignatureEngine`,
and writes the result back.  Build one directly from an engine, or from
saved settings with :meth:`DocumentSigningService.from_settings`.
"""

from __future__ import annotations

__all__ = ["DocumentSigningService"]

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from .config import (
    get_settings,
    load_signing_materials,
    load_trust_store,
    resolve_keystore_password,
    resolve_truststore_password,
)
from .core import front_matter
from .core.signing import SignatureEngine, inspect_signature
from .core.validation import CertificateValidator

if TYPE_CHECKING:
    import datetime

    from .config import SignatureSettings
    from .core.cms import CmsInspection
    from .core.models import VerificationResult

_logger = logging.getLogger(__name__)


class DocumentSigningService:
    """Sign and verify complete document texts."""

    def __init__(self, engine: SignatureEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> SignatureEngine:
        return self._engine

    @property
    def can_sign(self) -> bool:
        return self._engine.can_sign

    @classmethod
    def from_settings(
        cls,
        settings: SignatureSettings | None = None,
        *,
        keystore_password: str | None = None,
    ) -> DocumentSigningService:
        """
        Wire trust store, validator, materials, and engine from settings.

        Without a configured keystore the service is verify-only.

        Args:
            settings: Resolved settings; read from config when omitted.
            keystore_password: Overrides env/keychain password lookup.

        Raises:
            ConfigError: A keystore is configured but cannot be loaded.
        """
        if settings is None:
            settings = get_settings()

        trust_store = load_trust_store(settings.truststore, resolve_truststore_password())
        validator = CertificateValidator(trust_store, settings.cert_expiry_warning_days)

        materials = None
        if settings.keystore is not None:
            password = keystore_password
            if password is None:
                password = resolve_keystore_password(settings.keystore)
            materials = load_signing_materials(
                settings.keystore, password, alias=settings.keystore_alias
            )
        else:
            _logger.info("No keystore configured; service is verify-only")

        engine = SignatureEngine(
            validator,
            materials,
            signature_validity_days=settings.signature_validity_days,
            validate_signer_on_sign=settings.validate_signer_on_sign,
        )
        return cls(engine)

    def sign(
        self,
        text: str,
        metadata: Mapping[str, str] | None = None,
        now: datetime.datetime | None = None,
    ) -> str:
        """
        Append a signature over the body of *text* and return the new text.

        Existing header keys and signatures are kept.

        Raises:
            ParseError: *text* has malformed front matter.
            ConfigError: No signing materials are loaded.
            CryptoError: Signing failed.
        """
        document = front_matter.parse(text)
        entry = self._engine.sign(document.body, metadata, now=now)
        signed = document.with_signature(entry)
        _logger.debug("Document now carries %d signature(s)", len(signed.signatures))
        return front_matter.serialize(signed)

    def verify(
        self, text: str, now: datetime.datetime | None = None
    ) -> list[VerificationResult]:
        """
        Verify every signature embedded in *text*.

        Raises:
            ParseError: *text* has malformed front matter.
        """
        document = front_matter.parse(text)
        return self._engine.verify_document(document, now=now)

    @staticmethod
    def inspect(text: str) -> list[CmsInspection]:
        """Describe each embedded signature without verifying it.

        Raises:
            ParseError: *text* has malformed front matter.
        """
        document = front_matter.parse(text)
        return [inspect_signature(entry) for entry in document.signatures]
