"""Vault storage: the folder/file primitives the sync engine writes through."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Vault(Protocol):
    """Storage operations used by the sync engine. Paths are '/'-separated, vault-relative."""

    def exists(self, path: str) -> bool: ...

    def create_folder(self, path: str) -> None: ...

    def create_binary(self, path: str, data: bytes) -> None: ...


class FilesystemVault:
    """An Obsidian vault on local disk."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, path: str) -> Path:
        parts = [p for p in path.split("/") if p]
        if any(p == ".." for p in parts):
            raise ValueError(f"Path escapes the vault: {path}")
        return self.root.joinpath(*parts)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def create_folder(self, path: str) -> None:
        """Create one folder; the parent must already exist."""
        self._resolve(path).mkdir()
        logger.debug("Created folder %s", path)

    def create_binary(self, path: str, data: bytes) -> None:
        """Write a new file; existing files are never overwritten."""
        with open(self._resolve(path), "xb") as f:
            f.write(data)
        logger.debug("Wrote %s (%d bytes)", path, len(data))


def ensure_folder(vault: Vault, path: str) -> None:
    """Create ``path`` and any missing parents, one segment at a time."""
    current = ""
    for part in (p for p in path.split("/") if p):
        current = f"{current}/{part}" if current else part
        if not vault.exists(current):
            vault.create_folder(current)
