"""Derive safe vault folder and file names from email metadata."""

from __future__ import annotations

import re
from datetime import datetime, timezone

SERVICE_DOMAIN = "taskrobin.io"
DEFAULT_ROOT_DIRECTORY = "Emails"

# Characters that are invalid in folder names on at least one platform
_FOLDER_UNSAFE = re.compile(r'[*"\\/<>:|?]')
_FILE_UNSAFE = re.compile(r'[*"/<>:|?]')
_TRAILING_DOTS_SPACES = re.compile(r"[. ]+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_ALIAS_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def format_email_folder_name(email_id: str, subject: str) -> str:
    """
    Build the per-email folder name: '<YYYY-MM-DD> <subject>'.

    The email id is a microsecond-scale timestamp, so dropping the last six
    digits gives Unix seconds. An empty subject becomes 'No Subject'.
    Trailing dots and spaces are removed (Windows rejects them).
    """
    micros = int(email_id)
    seconds = abs(micros) // 1_000_000 * (1 if micros >= 0 else -1)
    date = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%d")
    title = (subject or "").strip() or "No Subject"
    safe_name = _FOLDER_UNSAFE.sub("_", f"{date} {title}")
    return _TRAILING_DOTS_SPACES.sub("", safe_name)


def sanitize_file_name(name: str) -> str:
    """Replace characters that are not allowed in vault file names."""
    return _FILE_UNSAFE.sub("_", name)


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def is_service_email(email: str) -> bool:
    """True for addresses on the forwarding service's own domain."""
    return email.lower().endswith("@" + SERVICE_DOMAIN)


def is_valid_alias(alias: str) -> bool:
    """Forwarding aliases may only contain letters, numbers, '-' and '_'."""
    return bool(_ALIAS_RE.match(alias))


def alias_to_address(alias: str) -> str:
    return f"{alias}@{SERVICE_DOMAIN}"


def normalize_root_directory(path: str) -> str:
    """
    Strip leading/trailing slashes from a vault folder path.

    'Emails/' -> 'Emails', '/' -> 'Emails' (default)
    """
    return path.strip().strip("/") or DEFAULT_ROOT_DIRECTORY
