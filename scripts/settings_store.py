"""Load, migrate and persist the plugin settings record (YAML, JSON-compatible)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from naming import DEFAULT_ROOT_DIRECTORY

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "hasWelcomedUser": False,
    "emailAddress": "",
    "accessToken": "",
    "rootDirectory": DEFAULT_ROOT_DIRECTORY,
    "downloadAttachments": True,
    "forwardingEmailAlias": "",
    "syncOnLaunch": False,
    "syncInterval": "",
    "integrations": [],
    "emailAuths": [],
}

DEFAULT_INTEGRATION: dict[str, str] = {
    "forwardingEmailAlias": "",
    "rootDirectory": DEFAULT_ROOT_DIRECTORY,
    "originEmail": "",
}


@dataclass
class Integration:
    """One origin mailbox -> forwarding alias -> vault folder binding."""

    forwarding_email_alias: str
    root_directory: str
    origin_email: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Integration:
        return cls(
            forwarding_email_alias=data.get("forwardingEmailAlias", ""),
            root_directory=data.get("rootDirectory", ""),
            origin_email=data.get("originEmail", ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "forwardingEmailAlias": self.forwarding_email_alias,
            "rootDirectory": self.root_directory,
            "originEmail": self.origin_email,
        }


@dataclass
class EmailAuth:
    origin_email: str
    access_token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmailAuth:
        return cls(
            origin_email=data.get("originEmail", ""),
            access_token=data.get("accessToken", ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"originEmail": self.origin_email, "accessToken": self.access_token}


@dataclass
class Settings:
    """
    Persisted settings for one installation.

    The scalar email_address/access_token/forwarding_email_alias/root_directory
    fields predate multiple integrations. They are only used for sync when
    ``integrations`` is empty, but stay populated for display.
    """

    integrations: list[Integration] = field(default_factory=list)
    email_auths: list[EmailAuth] = field(default_factory=list)
    email_address: str = ""
    access_token: str = ""
    forwarding_email_alias: str = ""
    root_directory: str = DEFAULT_ROOT_DIRECTORY
    download_attachments: bool = True
    sync_on_launch: bool = False
    sync_interval: str = ""
    has_welcomed_user: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        return cls(
            integrations=[Integration.from_dict(i) for i in data.get("integrations", [])],
            email_auths=[EmailAuth.from_dict(a) for a in data.get("emailAuths", [])],
            email_address=data.get("emailAddress", ""),
            access_token=data.get("accessToken", ""),
            forwarding_email_alias=data.get("forwardingEmailAlias", ""),
            root_directory=data.get("rootDirectory", DEFAULT_ROOT_DIRECTORY),
            download_attachments=bool(data.get("downloadAttachments", True)),
            sync_on_launch=bool(data.get("syncOnLaunch", False)),
            sync_interval=data.get("syncInterval", "") or "",
            has_welcomed_user=bool(data.get("hasWelcomedUser", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasWelcomedUser": self.has_welcomed_user,
            "emailAddress": self.email_address,
            "accessToken": self.access_token,
            "rootDirectory": self.root_directory,
            "downloadAttachments": self.download_attachments,
            "forwardingEmailAlias": self.forwarding_email_alias,
            "syncOnLaunch": self.sync_on_launch,
            "syncInterval": self.sync_interval,
            "integrations": [i.to_dict() for i in self.integrations],
            "emailAuths": [a.to_dict() for a in self.email_auths],
        }


def parse_interval(interval_str: str) -> int:
    """
    Parse human-readable interval string to seconds.

    Supports: 30s, 5m, 1h, 1d or combinations like '1h30m'.
    Returns 0 when nothing parses (periodic sync disabled).
    """
    total = 0
    units = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    for match in re.finditer(r"(\d+)\s*([smhd])", interval_str.lower()):
        value = int(match.group(1))
        unit = match.group(2)
        total += value * units[unit]
    return total


def migrate_settings(raw: dict[str, Any] | None) -> dict[str, Any]:
    """
    Merge raw stored data over the defaults and upgrade legacy layouts.

    - single-integration installs (emailAddress + forwardingEmailAlias, no
      integrations) get an equivalent entry in ``integrations``
    - a legacy accessToken gets an ``emailAuths`` entry for emailAddress
    - integrations saved without originEmail inherit emailAddress

    Pure: the input is not modified. Running it twice gives the same result.
    """
    data: dict[str, Any] = {}
    for key, default in DEFAULT_SETTINGS.items():
        value = (raw or {}).get(key, default)
        if value is None:
            value = default
        data[key] = list(value) if isinstance(default, list) else value

    email = data["emailAddress"]
    data["integrations"] = [
        {**DEFAULT_INTEGRATION, **i, "originEmail": i.get("originEmail") or email}
        for i in data["integrations"]
    ]
    data["emailAuths"] = [dict(a) for a in data["emailAuths"]]

    if not data["integrations"] and email and data["forwardingEmailAlias"]:
        data["integrations"].append(
            {
                "forwardingEmailAlias": data["forwardingEmailAlias"],
                "rootDirectory": data["rootDirectory"],
                "originEmail": email,
            }
        )

    known = {a.get("originEmail") for a in data["emailAuths"]}
    if email and data["accessToken"] and email not in known:
        data["emailAuths"].append({"originEmail": email, "accessToken": data["accessToken"]})

    return data


def load_settings(filepath: Path) -> Settings:
    """Load settings from YAML (or plugin JSON) and migrate; defaults if missing."""
    raw: Any = None
    if filepath.exists():
        with open(filepath) as f:
            raw = yaml.safe_load(f)
        if raw is not None and not isinstance(raw, dict):
            logger.error("Settings %s is not a mapping, using defaults", filepath)
            raw = None
    else:
        logger.info("No settings at %s, using defaults", filepath)

    settings = Settings.from_dict(migrate_settings(raw))
    logger.debug(
        "Loaded settings from %s (%d integrations)", filepath, len(settings.integrations)
    )
    return settings


def save_settings(filepath: Path, settings: Settings) -> None:
    """Persist the full settings record."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        yaml.safe_dump(settings.to_dict(), f, sort_keys=False, allow_unicode=True)
    logger.debug("Saved settings to %s", filepath)


class SettingsFile:
    """Settings bound to the file they were loaded from; ``save`` persists them."""

    def __init__(self, filepath: Path) -> None:
        self.filepath = filepath
        self.settings = load_settings(filepath)

    def save(self) -> None:
        save_settings(self.filepath, self.settings)
