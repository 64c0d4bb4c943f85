"""
Entry point for `python -m mdsign`.

Usage:
    python -m mdsign sign document.md -o signed.md
    python -m mdsign verify signed.md
    python -m mdsign info signed.md
"""

from .ui.cli import main

main()
