"""Main daemon: syncs on launch, schedules periodic sync, serves the trigger API."""

from __future__ import annotations

import logging
import os
import signal
import sys
import time
from pathlib import Path

import schedule

from api_client import TaskRobinClient
from credentials import sync_targets
from settings_store import Integration, load_settings, parse_interval
from sync_api import start_sync_api
from sync_service import SyncResult, perform_email_sync, sync_all_integrations
from vault import FilesystemVault

# Paths
VAULT_DIR = Path(os.getenv("VAULT_DIR", "/app/vault"))
SETTINGS_FILE = Path(os.getenv("SETTINGS_FILE", str(VAULT_DIR / ".taskrobin" / "settings.yml")))

# Logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("taskrobin-sync")

# Graceful shutdown
shutdown_requested = False


def _handle_signal(_signum: int, _frame: object) -> None:
    global shutdown_requested  # noqa: PLW0603
    logger.info("Shutdown signal received, stopping...")
    shutdown_requested = True


signal.signal(signal.SIGTERM, _handle_signal)
signal.signal(signal.SIGINT, _handle_signal)

vault = FilesystemVault(VAULT_DIR)
client = TaskRobinClient()


def run_sync(integration: Integration) -> SyncResult:
    """Sync one integration with freshly loaded settings.

    Raises on failure so the trigger API can report the error.
    """
    settings = load_settings(SETTINGS_FILE)
    return perform_email_sync(vault, settings, integration, client=client)


def sync_everything() -> None:
    """Sync all integrations (exception-safe for the scheduler)."""
    settings = load_settings(SETTINGS_FILE)
    outcomes = sync_all_integrations(vault, settings, client=client)
    failed = [alias for alias, outcome in outcomes.items() if isinstance(outcome, Exception)]
    if failed:
        logger.warning("Sync finished with failures: %s", ", ".join(failed))


def main() -> None:
    """Entry point: load settings, sync on launch, schedule jobs, run loop."""
    logger.info("Starting TaskRobin sync daemon")
    logger.info("Vault dir    : %s", VAULT_DIR)
    logger.info("Settings file: %s", SETTINGS_FILE)

    settings = load_settings(SETTINGS_FILE)
    if not settings.integrations and not settings.email_address:
        logger.warning("No integrations configured in %s; add one with manage_integrations.py", SETTINGS_FILE)

    api_port = int(os.getenv("SYNC_API_PORT", "8081"))
    start_sync_api(lambda: sync_targets(load_settings(SETTINGS_FILE)), run_sync, port=api_port)

    interval_sec = parse_interval(settings.sync_interval)
    if interval_sec:
        logger.info("Scheduling sync of all integrations every %d seconds", interval_sec)
        schedule.every(interval_sec).seconds.do(sync_everything)

    if settings.sync_on_launch:
        sync_everything()

    # Main loop
    while not shutdown_requested:
        schedule.run_pending()
        time.sleep(1)

    client.close()
    logger.info("Daemon stopped")


if __name__ == "__main__":
    main()
