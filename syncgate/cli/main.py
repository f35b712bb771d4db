"""
Top-level CLI dispatcher: syncgate <command> [args...].
All commands dispatch to the preflight module.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

PROVIDER_SYNC_TAGS = {"command": "provider_sync"}


def _main_doctor(argv: List[str]) -> int:
    from syncgate.preflight import main as preflight_main

    parser = argparse.ArgumentParser(
        prog="syncgate doctor",
        description="Run the target store readiness gate (no provider resolution)",
    )
    parser.parse_args(argv)
    return preflight_main(gate_only=True)


def _main_provider_sync(argv: List[str]) -> int:
    from syncgate.preflight import main as preflight_main

    parser = argparse.ArgumentParser(
        prog="syncgate provider-sync",
        description="Check the target store and locate the providers specified in config",
    )
    parser.add_argument("providers", nargs="*", metavar="PROVIDER", help="Provider names (default: all in config)")
    args = parser.parse_args(argv)
    return preflight_main(args.providers, locate=True, tags=PROVIDER_SYNC_TAGS)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="syncgate",
        description="Pre-sync readiness checks for the target store and provider references",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="command")
    subparsers.add_parser("doctor", help="Run the target store readiness gate")
    subparsers.add_parser("provider-sync", help="Gate the store, resolve and locate providers")

    args, rest = parser.parse_known_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.command:
        parser.print_help()
        return 0

    cmd = args.command

    if cmd == "doctor":
        return _main_doctor(rest)
    if cmd == "provider-sync":
        return _main_provider_sync(rest)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
