"""Tests for credentials: per-mailbox tokens with the legacy fallback."""

from __future__ import annotations

from unittest.mock import Mock

from credentials import (
    get_access_token_for_email,
    resolve_target,
    set_access_token_for_email,
    sync_targets,
)
from settings_store import EmailAuth, Integration, Settings


class TestGetAccessToken:
    def test_matching_auth(self):
        settings = Settings(email_auths=[EmailAuth("a@x.com", "T1")], access_token="LEGACY")
        assert get_access_token_for_email(settings, "a@x.com") == "T1"

    def test_fallback_to_legacy(self):
        settings = Settings(email_auths=[EmailAuth("a@x.com", "T1")], access_token="LEGACY")
        assert get_access_token_for_email(settings, "other@x.com") == "LEGACY"

    def test_empty_token_falls_back(self):
        settings = Settings(email_auths=[EmailAuth("a@x.com", "")], access_token="LEGACY")
        assert get_access_token_for_email(settings, "a@x.com") == "LEGACY"

    def test_nothing_available(self):
        assert get_access_token_for_email(Settings(), "a@x.com") == ""


class TestSetAccessToken:
    def test_updates_in_place(self):
        settings = Settings(email_auths=[EmailAuth("a@x.com", "OLD")])
        save = Mock()
        set_access_token_for_email(settings, "a@x.com", "NEW", save)
        assert settings.email_auths == [EmailAuth("a@x.com", "NEW")]
        save.assert_called_once_with()

    def test_appends_new(self):
        settings = Settings(email_auths=[EmailAuth("a@x.com", "T1")])
        save = Mock()
        set_access_token_for_email(settings, "b@x.com", "T2", save)
        assert settings.email_auths == [EmailAuth("a@x.com", "T1"), EmailAuth("b@x.com", "T2")]
        save.assert_called_once_with()


class TestResolveTarget:
    def test_integration(self):
        settings = Settings(email_address="legacy@x.com", root_directory="Emails")
        integration = Integration("work", "Work", "a@x.com")
        assert resolve_target(settings, integration) == ("a@x.com", "Work")

    def test_integration_without_origin(self):
        settings = Settings(email_address="legacy@x.com")
        assert resolve_target(settings, Integration("work", "Work", "")) == ("legacy@x.com", "Work")

    def test_legacy(self):
        settings = Settings(email_address="legacy@x.com", root_directory="Mail")
        assert resolve_target(settings) == ("legacy@x.com", "Mail")


class TestSyncTargets:
    def test_integrations(self, settings):
        assert [i.forwarding_email_alias for i in sync_targets(settings)] == ["work", "home"]

    def test_legacy_binding(self):
        settings = Settings(
            email_address="old@x.com", root_directory="Mail", forwarding_email_alias="obsidian"
        )
        assert sync_targets(settings) == [Integration("obsidian", "Mail", "old@x.com")]

    def test_legacy_binding_without_alias(self):
        settings = Settings(email_address="old@x.com", root_directory="Mail")
        assert sync_targets(settings)[0].forwarding_email_alias == "legacy"

    def test_nothing_configured(self):
        assert sync_targets(Settings()) == []
