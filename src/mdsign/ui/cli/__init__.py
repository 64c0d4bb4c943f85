"""
Command-line interface for mdsign.

Argument parsing and dispatch.  Command handlers live in ``sign``,
``verify``, and ``setup``.
"""

from __future__ import annotations

import argparse
import logging
import sys

from ...config import SETTING_KEYS
from ...constants import (
    ENV_KEYSTORE,
    ENV_KEYSTORE_ALIAS,
    ENV_KEYSTORE_PASS,
    ENV_TRUSTSTORE,
    ENV_TRUSTSTORE_PASS,
    __version__,
)
from .setup import cmd_config
from .sign import cmd_password, cmd_sign
from .verify import cmd_info, cmd_verify


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdsign",
        description="Sign and verify text documents with embedded CMS signatures.",
        epilog=(
            "Environment variables:\n"
            f"  {ENV_KEYSTORE:<22} PKCS#12 keystore path\n"
            f"  {ENV_KEYSTORE_PASS:<22} Keystore password\n"
            f"  {ENV_KEYSTORE_ALIAS:<22} Expected key entry alias\n"
            f"  {ENV_TRUSTSTORE:<22} Trust store (PEM, DER, or PKCS#12)\n"
            f"  {ENV_TRUSTSTORE_PASS:<22} Trust store password (PKCS#12 only)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"mdsign {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase log output (-vv for debug)"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # sign
    p_sign = sub.add_parser("sign", help="Add a signature to a document")
    p_sign.add_argument("file", help="Document to sign")
    p_sign.add_argument("-o", "--output", help="Output file (default: stdout)")
    p_sign.add_argument(
        "-m",
        "--metadata",
        action="append",
        metavar="KEY=VALUE",
        help="Metadata stored with the signature (repeatable)",
    )

    # verify
    p_verify = sub.add_parser("verify", help="Verify all signatures in a document")
    p_verify.add_argument("file", help="Signed document")

    # info
    p_info = sub.add_parser("info", help="Show embedded signature details")
    p_info.add_argument("file", help="Signed document")

    # config
    p_config = sub.add_parser("config", help="Show or change settings")
    config_sub = p_config.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="Print resolved settings")
    p_set = config_sub.add_parser("set", help="Change one setting")
    p_set.add_argument("key", choices=SETTING_KEYS)
    p_set.add_argument("value", help="New value (empty string clears a path)")
    p_reset = config_sub.add_parser("reset", help="Clear all settings and the saved password")
    p_reset.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # password
    p_password = sub.add_parser("password", help="Manage the keystore password in the keychain")
    p_password.add_argument("action", choices=("set", "clear"))

    return parser


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "sign":
        cmd_sign(args)
    elif args.command == "verify":
        cmd_verify(args)
    elif args.command == "info":
        cmd_info(args)
    elif args.command == "config":
        cmd_config(args)
    elif args.command == "password":
        cmd_password(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
