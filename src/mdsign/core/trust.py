"""
Trust store -- the immutable set of trusted certificates.

Built once (see :func:`mdsign.config.keystore.load_trust_store`) and shared
read-only by every validation afterwards.  An empty store is legal and
puts the certificate validator into degraded mode.
"""

from __future__ import annotations

__all__ = ["TrustStore"]

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from .cert_info import subject_dn

if TYPE_CHECKING:
    from cryptography import x509

_logger = logging.getLogger(__name__)


class TrustStore:
    """Immutable collection of trust anchors.

    Names are compared as decoded ``x509.Name`` values rather than raw
    bytes, so attribute encoding differences (PrintableString vs.
    UTF8String) do not matter.
    """

    __slots__ = ("_anchors",)

    def __init__(self, certificates: Iterable[x509.Certificate] = ()) -> None:
        anchors: list[x509.Certificate] = []
        for cert in certificates:
            if cert not in anchors:
                anchors.append(cert)
                _logger.debug("Added trust anchor: %s", subject_dn(cert))
        self._anchors: tuple[x509.Certificate, ...] = tuple(anchors)

    @classmethod
    def empty(cls) -> TrustStore:
        return cls(())

    @property
    def anchors(self) -> tuple[x509.Certificate, ...]:
        return self._anchors

    @property
    def is_empty(self) -> bool:
        return not self._anchors

    def __len__(self) -> int:
        return len(self._anchors)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(self._anchors)

    def __contains__(self, certificate: object) -> bool:
        return certificate in self._anchors

    def __repr__(self) -> str:
        return f"TrustStore(anchors={len(self._anchors)})"

    def find_issuer(self, certificate: x509.Certificate) -> x509.Certificate | None:
        """Return the first trusted certificate whose subject is *certificate*'s issuer."""
        for anchor in self._anchors:
            if anchor.subject == certificate.issuer:
                return anchor
        return None

    @staticmethod
    def is_self_signed(certificate: x509.Certificate) -> bool:
        """Return True if the certificate's subject equals its issuer."""
        return certificate.subject == certificate.issuer
