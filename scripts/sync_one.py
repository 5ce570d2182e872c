#!/usr/bin/env python3
"""Sync emails now: one integration by forwarding alias, or all of them.

Usage:
    python sync_one.py              # every integration
    python sync_one.py obsidian     # only obsidian@taskrobin.io
    python sync_one.py --max-workers 4

Environment: VAULT_DIR, SETTINGS_FILE, LOG_LEVEL (defaults to project dirs)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# Project root (parent of scripts/)
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent

VAULT_DIR = Path(os.getenv("VAULT_DIR", str(PROJECT_ROOT / "vault")))
SETTINGS_FILE = Path(os.getenv("SETTINGS_FILE", str(VAULT_DIR / ".taskrobin" / "settings.yml")))

logger = logging.getLogger("sync-one")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Sync forwarded emails into the vault")
    parser.add_argument("alias", nargs="?", help="forwarding alias to sync (default: all)")
    parser.add_argument("--max-workers", type=int, default=None, help="parallel downloads per email")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    from api_client import TaskRobinClient
    from errors import ConfigurationError
    from integrations import find_integration
    from settings_store import load_settings
    from sync_service import perform_email_sync, sync_all_integrations
    from vault import FilesystemVault

    settings = load_settings(SETTINGS_FILE)
    vault = FilesystemVault(VAULT_DIR)

    with TaskRobinClient() as client:
        if args.alias:
            integration = find_integration(settings, args.alias)
            if integration is None:
                print(f"Unknown integration: {args.alias}", file=sys.stderr)
                return 1
            try:
                result = perform_email_sync(
                    vault, settings, integration, client=client, notify=print, max_workers=args.max_workers
                )
            except ConfigurationError as exc:
                print(f"{exc}. Run: python manage_integrations.py add", file=sys.stderr)
                return 1
            except Exception:
                logger.exception("Sync of '%s' failed", args.alias)
                return 1
            print(f"Sync complete: {result.downloaded} new files")
            return 0 if not result.failed else 1

        outcomes = sync_all_integrations(
            vault, settings, client=client, notify=print, max_workers=args.max_workers
        )

    failed = 0
    for alias, outcome in outcomes.items():
        if isinstance(outcome, Exception):
            print(f"{alias}: failed ({outcome})", file=sys.stderr)
            failed += 1
        else:
            print(f"{alias}: {outcome.downloaded} new files, {outcome.failed} failed")
            failed += bool(outcome.failed)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
