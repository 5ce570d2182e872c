"""Shared fixtures: a temporary vault, settings with two integrations, an API client."""

from __future__ import annotations

from pathlib import Path

import pytest

from api_client import TaskRobinClient
from settings_store import EmailAuth, Integration, Settings
from vault import FilesystemVault

API = "https://api.test"


class RecordingVault(FilesystemVault):
    """Filesystem vault that remembers every file it writes."""

    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.writes: list[str] = []

    def create_binary(self, path: str, data: bytes) -> None:
        super().create_binary(path, data)
        self.writes.append(path)


@pytest.fixture
def vault(tmp_path: Path) -> RecordingVault:
    return RecordingVault(tmp_path)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        integrations=[
            Integration(forwarding_email_alias="work", root_directory="Work", origin_email="a@x.com"),
            Integration(forwarding_email_alias="home", root_directory="Home", origin_email="b@x.com"),
        ],
        email_auths=[
            EmailAuth(origin_email="a@x.com", access_token="T1"),
            EmailAuth(origin_email="b@x.com", access_token="T2"),
        ],
        email_address="a@x.com",
        access_token="LEGACY",
        forwarding_email_alias="work",
    )


@pytest.fixture
def client():
    c = TaskRobinClient(base_url=API)
    yield c
    c.close()


@pytest.fixture
def notices() -> list[str]:
    return []
