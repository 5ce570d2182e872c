#!/usr/bin/env python3
"""
List, add and delete TaskRobin forwarding integrations.

    python manage_integrations.py list
    python manage_integrations.py add you@example.com obsidian --folder Emails
    python manage_integrations.py delete obsidian
    python manage_integrations.py set --sync-on-launch on --attachments off --interval 30m
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from api_client import TaskRobinClient
from errors import SyncError
from integrations import add_integration, delete_integration
from naming import alias_to_address
from settings_store import SettingsFile, parse_interval
from vault import FilesystemVault

SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent

VAULT_DIR = Path(os.getenv("VAULT_DIR", str(PROJECT_ROOT / "vault")))
SETTINGS_FILE = Path(os.getenv("SETTINGS_FILE", str(VAULT_DIR / ".taskrobin" / "settings.yml")))

logger = logging.getLogger(__name__)

WELCOME = """Welcome to TaskRobin email sync!

1. Register the address you forward emails from with a forwarding alias:
       python manage_integrations.py add you@example.com obsidian
2. Forward (or auto-forward) emails to obsidian@taskrobin.io
3. Run python sync_one.py to save them as notes in your vault
"""


def _on_off(value: str) -> bool:
    if value.lower() in ("on", "true", "yes", "1"):
        return True
    if value.lower() in ("off", "false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got '{value}'")


def cmd_list(store: SettingsFile, vault: FilesystemVault) -> int:
    settings = store.settings
    if not settings.has_welcomed_user:
        print(WELCOME)
        settings.has_welcomed_user = True
        store.save()

    if not settings.integrations:
        print("No integrations yet. Add one with: python manage_integrations.py add <email> <alias>")
        return 0

    print(f"Found {len(settings.integrations)} integrations:\n")
    for integration in settings.integrations:
        print(f"  {integration.origin_email} -> {alias_to_address(integration.forwarding_email_alias)}")
        print(f"    saved to vault location: /{integration.root_directory}/")
        if not vault.exists(integration.root_directory):
            print("    warning: directory does not exist, it will be created when syncing")

    print(f"\nAttachments will be {'downloaded' if settings.download_attachments else 'ignored'}")
    print(f"Sync on launch: {'on' if settings.sync_on_launch else 'off'}")
    if settings.sync_interval:
        print(f"Sync interval: {settings.sync_interval}")
    return 0


def cmd_set(store: SettingsFile, args: argparse.Namespace) -> int:
    settings = store.settings
    if args.sync_on_launch is not None:
        settings.sync_on_launch = args.sync_on_launch
    if args.attachments is not None:
        settings.download_attachments = args.attachments
    if args.interval is not None:
        if args.interval and not parse_interval(args.interval):
            print(f"Invalid interval: {args.interval} (use e.g. 30m, 1h, 1h30m)", file=sys.stderr)
            return 1
        settings.sync_interval = args.interval
    store.save()
    print("Settings saved")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Manage TaskRobin email integrations")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="show integrations and where they are saved")

    add = sub.add_parser("add", help="register a new forwarding address")
    add.add_argument("email", help="address you forward emails from")
    add.add_argument("alias", help="forwarding alias (alias@taskrobin.io)")
    add.add_argument("--folder", default="", help="vault folder for the emails (default: Emails)")

    delete = sub.add_parser("delete", help="remove a forwarding address")
    delete.add_argument("alias")

    opts = sub.add_parser("set", help="change global preferences")
    opts.add_argument("--sync-on-launch", type=_on_off, default=None)
    opts.add_argument("--attachments", type=_on_off, default=None)
    opts.add_argument("--interval", default=None, help="daemon sync interval, '' disables")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    store = SettingsFile(SETTINGS_FILE)
    vault = FilesystemVault(VAULT_DIR)

    if args.command == "list":
        return cmd_list(store, vault)
    if args.command == "set":
        return cmd_set(store, args)

    with TaskRobinClient() as client:
        try:
            if args.command == "add":
                integration = add_integration(
                    vault, store.settings, args.email, args.alias, args.folder, client, store.save
                )
                print("Integration created successfully!")
                print(
                    f"Forward emails from {integration.origin_email} to "
                    f"{alias_to_address(integration.forwarding_email_alias)}"
                )
            else:
                delete_integration(store.settings, args.alias, client, store.save)
                print("Integration successfully deleted!")
        except SyncError as exc:
            logger.debug("Command %s failed", args.command, exc_info=True)
            print(str(exc), file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
