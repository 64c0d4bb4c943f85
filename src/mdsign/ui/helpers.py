"""
Common CLI helper functions for mdsign.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

__all__ = [
    "atomic_write",
    "confirm_choice",
    "parse_metadata_pairs",
    "prompt_password",
    "safe_read_text",
]


def confirm_choice(message: str, default_yes: bool = True) -> bool:
    """Ask a yes/no question; Ctrl-C or Ctrl-D answers "no"."""
    suffix = " [Y/n] " if default_yes else " [y/N] "
    try:
        answer = input(message + suffix).strip().lower()
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    if not answer:
        return default_yes
    return answer in ("y", "yes")


def safe_read_text(path: Path, kind: str = "file") -> str | None:
    """
    Read a UTF-8 text file with uniform error handling.

    Args:
        path: Path to the file to read.
        kind: Descriptive name for error messages (e.g., "document").

    Returns:
        File contents, or None if the file doesn't exist or can't be read.
    """
    if not path.exists():
        print(f"Error: {kind} not found: {path}", file=sys.stderr)
        return None

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading {kind}: {e}", file=sys.stderr)
        return None


def parse_metadata_pairs(pairs: list[str] | None) -> dict[str, str]:
    """Turn ``KEY=VALUE`` arguments into a dict.

    Raises:
        ValueError: An argument lacks ``=`` or has an empty key.
    """
    metadata: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"metadata must be KEY=VALUE, got {pair!r}")
        metadata[key] = value
    return metadata


def prompt_password(prompt: str = "Keystore password: ") -> str:
    """
    Prompt for a password without echo.

    Raises:
        SystemExit: If the user cancels (Ctrl-C, Ctrl-D) or enters nothing.
    """
    import getpass

    try:
        password = getpass.getpass(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        sys.exit(1)
    if not password:
        print("Error: password is required.", file=sys.stderr)
        sys.exit(1)
    return password


def atomic_write(path: Path, data: bytes) -> None:
    """Write data to a file atomically using temp file + rename.

    Prevents partial writes from leaving corrupt output files if
    the process is interrupted mid-write (e.g., disk full, Ctrl-C).
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        fd = -1
        tmp.replace(path)
    except Exception:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise
