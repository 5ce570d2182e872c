"""
Email sync: reconcile a TaskRobin manifest against the vault.

Each email becomes a folder '<root>/<YYYY-MM-DD> <subject>' holding the
markdown note and its attachments. Files already present at their final
path are skipped, so re-running a sync only downloads what is new.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from api_client import TaskRobinClient
from credentials import get_access_token_for_email, resolve_target
from errors import ConfigurationError
from naming import format_email_folder_name, sanitize_file_name
from settings_store import Integration, Settings
from vault import Vault, ensure_folder

logger = logging.getLogger(__name__)
notice_logger = logging.getLogger("notices")

NOTE_EXTENSION = ".md"
SUBJECT_RE = re.compile(r"^Subject: (.+)$", re.MULTILINE)

Notifier = Callable[[str], None]


def log_notice(message: str) -> None:
    """Default notifier: user-facing messages go to the 'notices' logger."""
    notice_logger.info(message)


@dataclass
class SyncResult:
    emails: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0


def extract_subject(content: str) -> str:
    match = SUBJECT_RE.search(content)
    return match.group(1).strip() if match else ""


def _find_subject(client: TaskRobinClient, files: dict[str, str]) -> str:
    """
    Subject from the first markdown file in manifest order.

    Empty only when the email has no markdown file or the note has no
    Subject line; fetch errors propagate.
    """
    for file_name, file_url in files.items():
        if file_name.endswith(NOTE_EXTENSION):
            return extract_subject(client.fetch_text(file_url))
    return ""


def final_file_name(file_name: str, subject: str) -> str:
    """Markdown notes are prefixed with the subject so they are searchable by title."""
    if file_name.endswith(NOTE_EXTENSION) and subject:
        file_name = f"{subject}-{file_name}"
    return sanitize_file_name(file_name)


def _download_file(
    vault: Vault,
    client: TaskRobinClient,
    folder_path: str,
    file_name: str,
    file_url: str,
    subject: str,
) -> bool:
    """Download one file unless it already exists. Returns True if written."""
    file_path = f"{folder_path}/{final_file_name(file_name, subject)}"
    if vault.exists(file_path):
        return False
    vault.create_binary(file_path, client.fetch_bytes(file_url))
    return True


def _sync_email(
    vault: Vault,
    client: TaskRobinClient,
    root_directory: str,
    email_id: str,
    files: dict[str, str],
    download_attachments: bool,
    notify: Notifier,
    result: SyncResult,
    max_workers: int | None,
) -> None:
    try:
        subject = _find_subject(client, files)
    except Exception:
        # The folder name depends on the subject, so nothing is written yet.
        logger.exception("Could not read subject of email %s, skipping it", email_id)
        notify(f"Failed to read email {email_id}, it will be retried on the next sync")
        result.failed += len(files)
        return

    folder_path = f"{root_directory}/{format_email_folder_name(email_id, subject)}"

    if not vault.exists(folder_path):
        vault.create_folder(folder_path)

    wanted = {
        name: url
        for name, url in files.items()
        if download_attachments or name.endswith(NOTE_EXTENSION)
    }
    result.skipped += len(files) - len(wanted)
    if not wanted:
        notify(f"Email files saved in {folder_path}")
        return

    with ThreadPoolExecutor(max_workers=max_workers or len(wanted)) as pool:
        futures = {
            name: pool.submit(_download_file, vault, client, folder_path, name, url, subject)
            for name, url in wanted.items()
        }

    for name, future in futures.items():
        try:
            written = future.result()
        except Exception:
            logger.exception("Error downloading file %s of email %s", name, email_id)
            notify(f"Failed to download file: {name}")
            result.failed += 1
            continue
        if written:
            result.downloaded += 1
        else:
            result.skipped += 1

    notify(f"Email files saved in {folder_path}")


def perform_email_sync(
    vault: Vault,
    settings: Settings,
    integration: Integration | None = None,
    *,
    client: TaskRobinClient | None = None,
    notify: Notifier = log_notice,
    max_workers: int | None = None,
) -> SyncResult:
    """
    Sync one integration (or the legacy single-account settings) into the vault.

    Manifest errors are logged, notified and re-raised. Errors on single
    files are reported and do not stop the other files of the email.
    """
    origin_email, root_directory = resolve_target(settings, integration)
    root_directory = root_directory.strip("/")
    if not origin_email or not root_directory:
        raise ConfigurationError("Origin email and target folder are required; run the setup first")

    access_token = get_access_token_for_email(settings, origin_email)
    if not access_token:
        raise ConfigurationError(f"No access token for {origin_email}; run the setup first")

    own_client = client is None
    if client is None:
        client = TaskRobinClient()

    result = SyncResult()
    try:
        notify(f"Syncing emails for {origin_email}...")
        try:
            manifest: dict[str, Any] = client.sync_emails(
                origin_email,
                access_token,
                integration.forwarding_email_alias if integration else None,
            )
        except Exception:
            logger.exception("Sync error for %s", origin_email)
            notify("Failed to sync. Check logs for details.")
            raise

        ensure_folder(vault, root_directory)

        for email_group in manifest.get("emails", []):
            for email_id, files in email_group.items():
                _sync_email(
                    vault,
                    client,
                    root_directory,
                    email_id,
                    files,
                    settings.download_attachments,
                    notify,
                    result,
                    max_workers,
                )
                result.emails += 1
    finally:
        if own_client:
            client.close()

    logger.info(
        "Sync of %s into '%s': %d emails, %d downloaded, %d skipped, %d failed",
        origin_email,
        root_directory,
        result.emails,
        result.downloaded,
        result.skipped,
        result.failed,
    )
    notify("Email sync completed!")
    return result


def sync_all_integrations(
    vault: Vault,
    settings: Settings,
    *,
    client: TaskRobinClient | None = None,
    notify: Notifier = log_notice,
    max_workers: int | None = None,
) -> dict[str, SyncResult | Exception]:
    """
    Sync every integration; a failing one is logged and the rest continue.

    Without integrations the legacy single-account settings are synced under
    the key of the legacy forwarding alias.
    """
    targets: list[Integration | None] = list(settings.integrations) or [None]
    outcomes: dict[str, SyncResult | Exception] = {}

    for integration in targets:
        key = (
            integration.forwarding_email_alias
            if integration
            else settings.forwarding_email_alias or "legacy"
        )
        try:
            outcomes[key] = perform_email_sync(
                vault,
                settings,
                integration,
                client=client,
                notify=notify,
                max_workers=max_workers,
            )
        except Exception as exc:
            logger.exception("Failed to sync integration '%s'", key)
            outcomes[key] = exc

    return outcomes
