"""Resolve which access token and vault folder belong to an origin mailbox."""

from __future__ import annotations

import logging
from typing import Callable

from settings_store import EmailAuth, Integration, Settings

logger = logging.getLogger(__name__)


def get_access_token_for_email(settings: Settings, origin_email: str) -> str:
    """
    Return the token stored for ``origin_email``.

    Falls back to the legacy single-account token; an empty string means
    no credential is available.
    """
    for auth in settings.email_auths:
        if auth.origin_email == origin_email and auth.access_token:
            return auth.access_token
    return settings.access_token


def set_access_token_for_email(
    settings: Settings,
    origin_email: str,
    access_token: str,
    save: Callable[[], None],
) -> None:
    """Store (or replace) the token for ``origin_email`` and persist settings once."""
    for auth in settings.email_auths:
        if auth.origin_email == origin_email:
            auth.access_token = access_token
            logger.info("Updated access token for %s", origin_email)
            break
    else:
        settings.email_auths.append(EmailAuth(origin_email=origin_email, access_token=access_token))
        logger.info("Stored new access token for %s", origin_email)

    save()


def resolve_target(settings: Settings, integration: Integration | None = None) -> tuple[str, str]:
    """Return (origin_email, root_directory) for an integration, or the legacy binding."""
    if integration is not None:
        return integration.origin_email or settings.email_address, integration.root_directory
    return settings.email_address, settings.root_directory


def sync_targets(settings: Settings) -> list[Integration]:
    """
    Integrations that can be synced on demand.

    Settings from before integrations existed are offered as one integration
    built from the legacy binding, keyed by its alias or "legacy".
    """
    if settings.integrations:
        return list(settings.integrations)
    if not settings.email_address:
        return []
    return [
        Integration(
            forwarding_email_alias=settings.forwarding_email_alias or "legacy",
            root_directory=settings.root_directory,
            origin_email=settings.email_address,
        )
    ]
