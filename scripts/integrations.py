"""Add and remove forwarding integrations (registration with TaskRobin + settings)."""

from __future__ import annotations

import logging
from typing import Callable

from api_client import TaskRobinClient
from credentials import get_access_token_for_email, resolve_target, set_access_token_for_email
from errors import ConfigurationError, RemoteRejection
from naming import is_service_email, is_valid_alias, is_valid_email, normalize_root_directory
from settings_store import Integration, Settings
from vault import Vault, ensure_folder

logger = logging.getLogger(__name__)


def find_integration(settings: Settings, alias: str) -> Integration | None:
    for integration in settings.integrations:
        if integration.forwarding_email_alias == alias:
            return integration
    return None


def validate_new_integration(settings: Settings, source_email: str, alias: str) -> None:
    """Raise ConfigurationError when the setup input cannot be registered."""
    if not source_email:
        raise ConfigurationError("Email address is required")
    if not is_valid_email(source_email) or is_service_email(source_email):
        raise ConfigurationError(f"Not a valid source email address: {source_email}")
    if not alias:
        raise ConfigurationError("Forwarding address is required")
    if not is_valid_alias(alias):
        raise ConfigurationError(
            "Only letters, numbers, hyphens, and underscores are allowed in the forwarding address"
        )
    if find_integration(settings, alias) is not None:
        raise ConfigurationError(f"Integration '{alias}' already exists")


def add_integration(
    vault: Vault,
    settings: Settings,
    source_email: str,
    alias: str,
    root_directory: str,
    client: TaskRobinClient,
    save: Callable[[], None],
) -> Integration:
    """
    Register ``alias@taskrobin.io`` for ``source_email`` and store the binding.

    The issued token is stored per mailbox; legacy fields are kept in step so
    older readers of the settings still see the latest integration.
    """
    source_email = source_email.strip()
    alias = alias.strip()
    validate_new_integration(settings, source_email, alias)
    root_directory = normalize_root_directory(root_directory)

    payload = client.create_integration(source_email, alias)
    if payload.get("status") != "success":
        logger.error("Integration creation failed: %s", payload.get("error"))
        raise RemoteRejection(f"Failed to create integration: {payload.get('error')}")

    integration = Integration(
        forwarding_email_alias=alias,
        root_directory=root_directory,
        origin_email=source_email,
    )
    settings.integrations.append(integration)

    if not settings.access_token:
        settings.access_token = payload.get("accessToken", "")
    settings.email_address = source_email
    settings.forwarding_email_alias = alias

    set_access_token_for_email(settings, source_email, payload.get("accessToken", ""), save)

    ensure_folder(vault, root_directory)
    logger.info("Created integration %s -> %s in '%s'", source_email, alias, root_directory)
    return integration


def delete_integration(
    settings: Settings,
    alias: str,
    client: TaskRobinClient,
    save: Callable[[], None],
) -> Integration:
    """
    Remove the mapping remotely, then drop it from settings.

    The mailbox's stored token is kept: other integrations may share it.
    """
    integration = find_integration(settings, alias)
    if integration is None:
        raise ConfigurationError(f"Unknown integration: {alias}")

    origin_email, _root = resolve_target(settings, integration)
    access_token = get_access_token_for_email(settings, origin_email)

    payload = client.delete_integration(origin_email, alias, access_token)
    if payload.get("status") != "success":
        raise RemoteRejection(f"Failed to delete integration: {payload.get('error')}")

    settings.integrations = [
        i for i in settings.integrations if i.forwarding_email_alias != alias
    ]
    save()
    logger.info("Deleted integration %s (%s)", alias, origin_email)
    return integration
