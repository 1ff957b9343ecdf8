#!/usr/bin/env python3
"""
crm-adapter - run adapter operations against a configured CRM connection.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="crm-adapter",
        description="Issue find/create/update/destroy operations through the CRM adapter",
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug output")
    parser.add_argument("--config", "-c", help="Connection config file (default: ~/.config/crm-adapter/connection.yaml)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # find
    find_p = subparsers.add_parser("find", help="Find records")
    find_p.add_argument("collection", help="Collection name")
    find_p.add_argument("--where", "-w", action="append", default=[], metavar="KEY=VALUE", help="Query option")

    # create
    create_p = subparsers.add_parser("create", help="Create records")
    create_p.add_argument("collection", help="Collection name")
    create_p.add_argument("--values", "-v", required=True, help="Record(s) as JSON")

    # update
    update_p = subparsers.add_parser("update", help="Update records")
    update_p.add_argument("collection", help="Collection name")
    update_p.add_argument("--where", "-w", action="append", default=[], metavar="KEY=VALUE", help="Query option")
    update_p.add_argument("--values", "-v", required=True, help="Record(s) as JSON")

    # destroy
    destroy_p = subparsers.add_parser("destroy", help="Delete records")
    destroy_p.add_argument("collection", help="Collection name")
    destroy_p.add_argument("--where", "-w", action="append", default=[], metavar="KEY=VALUE", help="Query option")

    # hooks
    subparsers.add_parser("hooks", help="List configured hooks")

    # init
    init_p = subparsers.add_parser("init", help="Write a connection config template")
    init_p.add_argument("--force", "-f", action="store_true", help="Overwrite existing file")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    # Dispatch
    if args.command in ("find", "create", "update", "destroy"):
        return cmd_operation(args)
    elif args.command == "hooks":
        return cmd_hooks(args)
    elif args.command == "init":
        return cmd_init(args)
    else:
        parser.print_help()
        return 1


def parse_where(pairs: list[str]) -> dict[str, str]:
    """Turn ``KEY=VALUE`` strings into a dict."""
    options = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got: {pair}")
        options[key] = value
    return options


def parse_values(raw: str) -> list[dict[str, Any]]:
    """Parse ``--values`` JSON; a single object becomes a one-element list."""
    values = json.loads(raw)
    if isinstance(values, dict):
        return [values]
    if not isinstance(values, list):
        raise ValueError("--values must be a JSON object or array")
    return values


def _load(args: argparse.Namespace):
    from .config import load_connection

    return load_connection(Path(args.config) if args.config else None)


def cmd_operation(args: argparse.Namespace) -> int:
    """Handle find/create/update/destroy commands."""
    from . import operations
    from .errors import ConfigurationError

    try:
        connection = _load(args)
        where = parse_where(getattr(args, "where", []))
        values = parse_values(args.values) if getattr(args, "values", None) else []
    except (ConfigurationError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "find":
        coro = operations.find(connection, args.collection, where)
    elif args.command == "create":
        coro = operations.create(connection, args.collection, values)
    elif args.command == "update":
        coro = operations.update(connection, args.collection, where, values)
    else:
        coro = operations.destroy(connection, args.collection, where)

    outcome = asyncio.run(coro)
    if outcome.error:
        print(f"Error: {type(outcome.error).__name__}: {outcome.error}", file=sys.stderr)
        return 1

    print(json.dumps(outcome.data, indent=2, default=str))
    return 0


def cmd_hooks(args: argparse.Namespace) -> int:
    """List hooks configured on the connection."""
    from .errors import ConfigurationError

    try:
        connection = _load(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for phase, chain in (("before", connection.before_hooks), ("after", connection.after_hooks)):
        print(f"{phase}:")
        names = chain.list_hooks()
        if not names:
            print("  (none)")
        for name in names:
            print(f"  - {name}")
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    """Write the connection config template."""
    from .config import ensure_config_template, get_connection_file

    existing = get_connection_file().exists()
    path = ensure_config_template(force=args.force)
    if existing and not args.force:
        print(f"Connection config already exists: {path}")
        print("Use 'crm-adapter init --force' to overwrite")
    return 0


if __name__ == "__main__":
    sys.exit(main())
