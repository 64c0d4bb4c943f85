"""
Signature verification and inspection commands.

cmd_verify checks every embedded signature against the configured trust
store.  cmd_info describes the embedded CMS blobs without checking them.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ...errors import MdSignError
from ...service import DocumentSigningService
from ..helpers import safe_read_text

if TYPE_CHECKING:
    import argparse


def cmd_verify(args: argparse.Namespace) -> None:
    """Verify all signatures; exit 1 unless every one is valid."""
    from ...api import verify

    doc_path = Path(args.file)
    text = safe_read_text(doc_path, "document")
    if text is None:
        sys.exit(1)

    print(f"Verifying {doc_path.name}...")
    try:
        results = verify(text)
    except MdSignError as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    total = len(results)
    failed = 0
    for index, result in enumerate(results, start=1):
        status = "VALID" if result.valid else "INVALID"
        if not result.valid:
            failed += 1
        signer = result.signer_dn or "-"
        prefix = f"  [{index}/{total}]" if total > 1 else " "
        print(f"{prefix} {status}: {signer}")
        print(f"      {result.message}")

    print()
    if failed == 0:
        word = "Signature" if total == 1 else f"All {total} signatures"
        print(f"  RESULT: {word} VALID")
    else:
        print(f"  RESULT: {failed} of {total} signature(s) FAILED")
        sys.exit(1)


def cmd_info(args: argparse.Namespace) -> None:
    """Show details of each embedded signature."""
    doc_path = Path(args.file)
    text = safe_read_text(doc_path, "document")
    if text is None:
        sys.exit(1)

    try:
        inspections = DocumentSigningService.inspect(text)
    except MdSignError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not inspections:
        print(f"{doc_path.name}: no signatures.")
        return

    print(f"{doc_path.name}: {len(inspections)} signature(s)")
    for index, info in enumerate(inspections, start=1):
        print(f"\n  [{index}]")
        signer = info["signer"]
        if signer and signer.get("dn"):
            print(f"  Subject: {signer['dn']}")
        for line in info["details"]:
            print(f"  {line}")
