"""Signing command handlers for mdsign CLI."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ...config import (
    get_credential_storage_info,
    get_settings,
    resolve_keystore_password,
)
from ...constants import ENV_KEYSTORE, ENV_KEYSTORE_PASS
from ...errors import MdSignError
from ...service import DocumentSigningService
from ..helpers import atomic_write, parse_metadata_pairs, prompt_password, safe_read_text


def _require_keystore_password(keystore: Path) -> str:
    """Password from env or keychain, otherwise an interactive prompt."""
    password = resolve_keystore_password(keystore)
    if password:
        return password
    if not sys.stdin.isatty():
        print(
            f"Error: no keystore password available. Set {ENV_KEYSTORE_PASS} "
            "or run 'mdsign password set'.",
            file=sys.stderr,
        )
        sys.exit(1)
    return prompt_password(f"Password for {keystore.name}: ")


def cmd_sign(args: argparse.Namespace) -> None:
    """Sign a document and write it to --output (stdout when omitted)."""
    doc_path = Path(args.file)
    text = safe_read_text(doc_path, "document")
    if text is None:
        sys.exit(1)

    try:
        metadata = parse_metadata_pairs(args.metadata)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    settings = get_settings()
    if settings.keystore is None:
        print(
            f"Error: no keystore configured. Set {ENV_KEYSTORE} "
            "or run 'mdsign config set keystore PATH'.",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        service = DocumentSigningService.from_settings(
            settings, keystore_password=_require_keystore_password(settings.keystore)
        )
        signed = service.sign(text, metadata)
    except MdSignError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.output or args.output == "-":
        sys.stdout.write(signed)
        return

    out_path = Path(args.output)
    try:
        atomic_write(out_path, signed.encode("utf-8"))
    except OSError as e:
        print(f"Error writing {out_path}: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Signed {doc_path.name} -> {out_path}", file=sys.stderr)


def cmd_password(args: argparse.Namespace) -> None:
    """Save or clear the keystore password in the system keychain."""
    from ...config import clear_keystore_password, save_keystore_password

    settings = get_settings()
    if settings.keystore is None:
        print("Error: no keystore configured.", file=sys.stderr)
        sys.exit(1)

    if args.action == "set":
        password = prompt_password(f"Password for {settings.keystore.name}: ")
        try:
            save_keystore_password(settings.keystore, password)
        except MdSignError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Password saved to: {get_credential_storage_info()}")
        print(f"  ({ENV_KEYSTORE_PASS} always takes priority)")
    elif clear_keystore_password(settings.keystore):
        print("Password removed from keychain.")
    else:
        print("No saved password found.")
