"""
Front matter codec -- split/join a YAML header block and the document body.

Document layout::

    ---
    <YAML mapping; reserved key "signatures">
    ---
    <body>

Without a leading delimiter pair the whole input is the body.  The
``signatures`` list is lifted out of the header into
:attr:`Document.signatures` on parse and regenerated from it on serialize.
"""

from __future__ import annotations

__all__ = [
    "format_timestamp",
    "parse",
    "parse_timestamp",
    "serialize",
]

import datetime
import logging
import re
from typing import Any

import yaml

from ..constants import FRONT_MATTER_DELIMITER, SIGNATURES_KEY
from ..errors import ParseError
from .models import Document, SignatureEntry

_logger = logging.getLogger(__name__)

_FRONT_MATTER_PATTERN = re.compile(
    rf"\A{FRONT_MATTER_DELIMITER}\r?\n"
    rf"(?:(?P<header>.*?)\r?\n)??"
    rf"{FRONT_MATTER_DELIMITER}(?:\r?\n|\Z)"
    r"(?P<body>.*)\Z",
    re.DOTALL,
)

# Transport field names inside each signature entry
_FIELD_SIGNATURE = "signature"
_FIELD_SIGNER_DN = "signerDN"
_FIELD_EXPIRATION = "expirationDate"
_FIELD_SIGNED_AT = "signedAt"
_FIELD_METADATA = "metadata"

_YAML_MERGE_TAG = "tag:yaml.org,2002:merge"


class _UniqueKeyLoader(yaml.SafeLoader):
    """Safe YAML loader that rejects duplicate keys within one mapping."""

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            if key_node.tag == _YAML_MERGE_TAG:
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                duplicate = key in seen
            except TypeError:
                continue  # unhashable; the base constructor reports it
            if duplicate:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


# ── Timestamps ───────────────────────────────────────────────────────


def format_timestamp(value: datetime.datetime) -> str:
    """Format an aware datetime as ISO-8601 UTC with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime.datetime | None:
    """Parse an ISO-8601 timestamp from front matter.

    YAML may already have produced a ``datetime`` for unquoted values.
    Anything missing or unparseable yields None rather than an error.
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.datetime.fromisoformat(text)
        except ValueError:
            _logger.warning("Failed to parse timestamp value: %r", value)
            return None
    else:
        _logger.warning("Failed to parse timestamp value: %r", value)
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


# ── Parse ────────────────────────────────────────────────────────────


def _load_header(header_text: str) -> dict[Any, Any]:
    try:
        data = yaml.load(header_text, Loader=_UniqueKeyLoader)  # noqa: S506 -- SafeLoader subclass
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse front matter: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(f"Front matter must be a mapping, got {type(data).__name__}")
    return data


def _parse_metadata(index: int, raw: object) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ParseError(f"Malformed signature entry #{index}: metadata must be a mapping")
    return {str(k): "" if v is None else str(v) for k, v in raw.items()}


def _parse_signature_entry(index: int, raw: object) -> SignatureEntry:
    if not isinstance(raw, dict):
        raise ParseError(
            f"Malformed signature entry #{index}: expected a mapping, got {type(raw).__name__}"
        )
    signature = raw.get(_FIELD_SIGNATURE)
    signer_dn = raw.get(_FIELD_SIGNER_DN)
    if not isinstance(signature, str) or not signature.strip():
        raise ParseError(f"Malformed signature entry #{index}: missing '{_FIELD_SIGNATURE}'")
    if not isinstance(signer_dn, str) or not signer_dn:
        raise ParseError(f"Malformed signature entry #{index}: missing '{_FIELD_SIGNER_DN}'")

    entry = SignatureEntry(
        signature=signature.strip(),
        signer_dn=signer_dn,
        expiration_date=parse_timestamp(raw.get(_FIELD_EXPIRATION)),
        metadata=_parse_metadata(index, raw.get(_FIELD_METADATA)),
        signed_at=parse_timestamp(raw.get(_FIELD_SIGNED_AT)),
    )
    _logger.debug("Parsed signature entry #%d for DN: %s", index, signer_dn)
    return entry


def parse(raw_text: str) -> Document:
    """
    Parse document text into a :class:`Document`.

    The body is stored whitespace-trimmed.  Empty input yields an empty
    document.

    Args:
        raw_text: Complete document text.

    Returns:
        Document with header (minus ``signatures``), body, and signatures.

    Raises:
        ParseError: On invalid YAML, duplicate keys, a non-mapping header,
            or a malformed signature entry.  Nothing is partially applied.
    """
    if not raw_text or not raw_text.strip():
        _logger.debug("Empty document content")
        return Document()

    match = _FRONT_MATTER_PATTERN.match(raw_text)
    if match is None:
        _logger.debug("No front matter found, treating entire content as body")
        return Document(body=raw_text.strip())

    header = _load_header(match.group("header") or "")
    raw_signatures = header.pop(SIGNATURES_KEY, None)
    if raw_signatures is None:
        raw_signatures = []
    elif not isinstance(raw_signatures, list):
        raise ParseError(
            f"Front matter '{SIGNATURES_KEY}' must be a list, got {type(raw_signatures).__name__}"
        )

    signatures = tuple(
        _parse_signature_entry(index, raw) for index, raw in enumerate(raw_signatures)
    )
    _logger.debug(
        "Parsed front matter: %d header key(s), %d signature(s)", len(header), len(signatures)
    )
    return Document(header=header, body=match.group("body").strip(), signatures=signatures)


# ── Serialize ────────────────────────────────────────────────────────


def _entry_to_dict(entry: SignatureEntry) -> dict[str, object]:
    data: dict[str, object] = {
        _FIELD_SIGNATURE: entry.signature,
        _FIELD_SIGNER_DN: entry.signer_dn,
    }
    if entry.expiration_date is not None:
        data[_FIELD_EXPIRATION] = format_timestamp(entry.expiration_date)
    if entry.signed_at is not None:
        data[_FIELD_SIGNED_AT] = format_timestamp(entry.signed_at)
    if entry.metadata:
        data[_FIELD_METADATA] = dict(entry.metadata)
    return data


def serialize(document: Document) -> str:
    """
    Render a :class:`Document` back to text.

    The ``signatures`` header key is rebuilt from ``document.signatures``.
    The header block is emitted only when non-empty, and the body always
    ends with exactly one newline.

    Raises:
        ParseError: If the header holds values YAML cannot represent.
    """
    front_matter: dict[Any, Any] = dict(document.header)
    if document.signatures:
        front_matter[SIGNATURES_KEY] = [_entry_to_dict(sig) for sig in document.signatures]

    parts: list[str] = []
    if front_matter:
        try:
            header_text = yaml.safe_dump(
                front_matter, default_flow_style=False, sort_keys=False, allow_unicode=True
            )
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to serialize front matter: {e}") from e
        parts.append(f"{FRONT_MATTER_DELIMITER}\n{header_text}{FRONT_MATTER_DELIMITER}\n\n")
    elif _FRONT_MATTER_PATTERN.match(document.body):
        # Body would be read back as front matter; shield it with an empty block
        parts.append(f"{FRONT_MATTER_DELIMITER}\n{FRONT_MATTER_DELIMITER}\n\n")

    body = document.body.rstrip("\r\n")
    parts.append(f"{body}\n")
    return "".join(parts)
