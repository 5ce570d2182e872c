"""Tests for the sync_one and manage_integrations command lines."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import respx

import manage_integrations
import sync_one
from api_client import API_URL
from errors import NetworkError
from settings_store import load_settings, save_settings


@pytest.fixture
def paths(tmp_path: Path, monkeypatch, settings):
    settings_file = tmp_path / "vault" / ".taskrobin" / "settings.yml"
    save_settings(settings_file, settings)
    for module in (sync_one, manage_integrations):
        monkeypatch.setattr(module, "VAULT_DIR", tmp_path / "vault")
        monkeypatch.setattr(module, "SETTINGS_FILE", settings_file)
    return tmp_path / "vault", settings_file


class TestSyncOne:
    @respx.mock
    def test_sync_all_reports_failures(self, paths, capsys):
        respx.get(f"{API_URL}/emails/a@x.com").respond(500)
        respx.get(f"{API_URL}/emails/b@x.com").respond(200, json={"emails": []})

        assert sync_one.main([]) == 1

        captured = capsys.readouterr()
        assert "home: 0 new files, 0 failed" in captured.out
        assert "work: failed" in captured.err

    @respx.mock
    def test_single_alias(self, paths, capsys):
        respx.get(f"{API_URL}/emails/b@x.com").respond(200, json={"emails": []})

        assert sync_one.main(["home"]) == 0
        assert "Sync complete: 0 new files" in capsys.readouterr().out
        assert (paths[0] / "Home").is_dir()

    def test_unknown_alias(self, paths):
        assert sync_one.main(["nope"]) == 1

    @respx.mock
    def test_single_alias_failure_is_logged(self, paths, caplog):
        respx.get(f"{API_URL}/emails/b@x.com").respond(503)

        with caplog.at_level(logging.ERROR, logger="sync-one"):
            assert sync_one.main(["home"]) == 1

        records = [r for r in caplog.records if r.name == "sync-one"]
        assert [r.getMessage() for r in records] == ["Sync of 'home' failed"]
        assert records[0].exc_info[0] is NetworkError


class TestManageIntegrations:
    def test_list_welcomes_once(self, paths, capsys):
        assert manage_integrations.main(["list"]) == 0
        first = capsys.readouterr().out
        assert "Welcome to TaskRobin" in first
        assert "a@x.com -> work@taskrobin.io" in first

        manage_integrations.main(["list"])
        assert "Welcome" not in capsys.readouterr().out
        assert load_settings(paths[1]).has_welcomed_user is True

    def test_set_preferences(self, paths):
        assert manage_integrations.main(["set", "--attachments", "off", "--interval", "30m"]) == 0
        settings = load_settings(paths[1])
        assert settings.download_attachments is False
        assert settings.sync_interval == "30m"

    def test_set_rejects_bad_interval(self, paths):
        assert manage_integrations.main(["set", "--interval", "soon"]) == 1

    @respx.mock
    def test_add(self, paths, capsys):
        respx.post(f"{API_URL}/mappings").respond(200, json={"status": "success", "accessToken": "T3"})

        assert manage_integrations.main(["add", "c@x.com", "news", "--folder", "News"]) == 0

        assert "news@taskrobin.io" in capsys.readouterr().out
        settings = load_settings(paths[1])
        assert settings.integrations[-1].forwarding_email_alias == "news"
        assert (paths[0] / "News").is_dir()

    @respx.mock
    def test_delete_failure_exit_code(self, paths, capsys):
        respx.delete(f"{API_URL}/mappings").respond(500)

        assert manage_integrations.main(["delete", "work"]) == 1
        assert "API request failed" in capsys.readouterr().err
        assert len(load_settings(paths[1]).integrations) == 2
