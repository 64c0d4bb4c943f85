"""
Configuration commands for mdsign CLI: show, set, and reset settings.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from ...config import CONFIG_FILE, get_settings, set_setting
from ...errors import MdSignError
from ..helpers import confirm_choice

if TYPE_CHECKING:
    import argparse


def _cmd_config_show() -> None:
    settings = get_settings()
    print(f"Config file: {CONFIG_FILE}")
    for key, value in settings.to_dict().items():
        print(f"  {key} = {value}")


def cmd_config(args: argparse.Namespace) -> None:
    """Dispatch ``config show|set|reset``."""
    if args.action == "show":
        _cmd_config_show()
    elif args.action == "set":
        try:
            set_setting(args.key, args.value)
        except MdSignError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Saved {args.key}.")
    elif args.action == "reset":
        from ...config import reset_all

        if not args.yes and not confirm_choice("Clear all configuration?", default_yes=False):
            print("Nothing changed.")
            return
        reset_all()
        print("All configuration cleared.")
