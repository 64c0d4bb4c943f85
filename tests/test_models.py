"""Tests for mdsign.core.models -- immutable value types."""

from __future__ import annotations

import dataclasses
import datetime

import pytest

from mdsign.core.models import Document, SignatureEntry, SigningMaterials, VerificationResult
from mdsign.errors import ConfigError

UTC = datetime.timezone.utc


# ── SignatureEntry ───────────────────────────────────────────────────


def test_entry_metadata_is_a_private_copy():
    source = {"role": "approver"}
    entry = SignatureEntry("c2ln", "CN=Alice", metadata=source)
    source["role"] = "changed"
    assert entry.metadata["role"] == "approver"


def test_entry_metadata_is_read_only():
    entry = SignatureEntry("c2ln", "CN=Alice", metadata={"role": "approver"})
    with pytest.raises(TypeError):
        entry.metadata["role"] = "other"  # type: ignore[index]


def test_entry_is_frozen():
    entry = SignatureEntry("c2ln", "CN=Alice")
    with pytest.raises(dataclasses.FrozenInstanceError):
        entry.signer_dn = "CN=Mallory"  # type: ignore[misc]


def test_entry_naive_datetimes_are_utc():
    entry = SignatureEntry("c2ln", "CN=Alice", signed_at=datetime.datetime(2025, 1, 1, 12, 0))
    assert entry.signed_at == datetime.datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


def test_entry_without_expiration_never_expires():
    assert not SignatureEntry("c2ln", "CN=Alice").is_expired()


def test_entry_expiration():
    expires = datetime.datetime(2025, 6, 1, tzinfo=UTC)
    entry = SignatureEntry("c2ln", "CN=Alice", expiration_date=expires)
    assert entry.is_expired(expires + datetime.timedelta(seconds=1))
    assert not entry.is_expired(expires - datetime.timedelta(seconds=1))


def test_entry_str_mentions_signer():
    assert "CN=Alice" in str(SignatureEntry("c2ln", "CN=Alice"))


# ── Document ─────────────────────────────────────────────────────────


def test_document_defaults_empty():
    doc = Document()
    assert dict(doc.header) == {}
    assert doc.body == ""
    assert doc.signatures == ()


def test_with_signature_returns_new_document():
    doc = Document(header={"title": "T"}, body="text")
    entry = SignatureEntry("c2ln", "CN=Alice")
    signed = doc.with_signature(entry)
    assert doc.signatures == ()
    assert signed.signatures == (entry,)
    assert signed.body == "text"
    assert dict(signed.header) == {"title": "T"}


def test_with_signature_appends_in_order():
    first = SignatureEntry("AAAA", "CN=A")
    second = SignatureEntry("BBBB", "CN=B")
    doc = Document().with_signature(first).with_signature(second)
    assert doc.signatures == (first, second)


def test_document_header_is_read_only():
    doc = Document(header={"title": "T"})
    with pytest.raises(TypeError):
        doc.header["title"] = "X"  # type: ignore[index]


# ── VerificationResult ───────────────────────────────────────────────


def test_result_default_messages():
    assert VerificationResult(True).message == "Signature is valid"
    assert VerificationResult(False).message == "Signature verification failed"


def test_result_to_dict():
    result = VerificationResult(False, "CN=Alice", "Invalid signature")
    assert result.to_dict() == {
        "valid": False,
        "signerDN": "CN=Alice",
        "message": "Invalid signature",
    }


# ── SigningMaterials ─────────────────────────────────────────────────


def test_materials_valid(signer, root_ca):
    materials = SigningMaterials(signer.key, signer.cert, [signer.cert, root_ca.cert])
    assert materials.chain == (signer.cert, root_ca.cert)
    assert materials.signer_dn == signer.cert.subject.rfc4514_string()


def test_materials_repr_hides_key(materials):
    text = repr(materials)
    assert "Alice Signer" in text
    assert "private" not in text.lower()


def test_materials_missing_key(signer):
    with pytest.raises(ConfigError, match="Private key"):
        SigningMaterials(None, signer.cert, (signer.cert,))  # type: ignore[arg-type]


def test_materials_missing_certificate(signer):
    with pytest.raises(ConfigError, match="Certificate cannot be empty"):
        SigningMaterials(signer.key, None, (signer.cert,))  # type: ignore[arg-type]


def test_materials_empty_chain(signer):
    with pytest.raises(ConfigError, match="chain cannot be empty"):
        SigningMaterials(signer.key, signer.cert, ())


def test_materials_chain_must_start_with_certificate(signer, root_ca):
    with pytest.raises(ConfigError, match="First certificate"):
        SigningMaterials(signer.key, signer.cert, (root_ca.cert, signer.cert))


def test_materials_key_must_match_certificate(signer, root_ca):
    with pytest.raises(ConfigError, match="does not match"):
        SigningMaterials(root_ca.key, signer.cert, (signer.cert,))
