"""Tests for api_client.TaskRobinClient."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from api_client import TaskRobinClient
from errors import FileDownloadError, NetworkError

API = "https://api.test"


class TestCreateIntegration:
    @respx.mock
    def test_posts_mapping_without_auth(self, client: TaskRobinClient):
        route = respx.post(f"{API}/mappings").respond(200, json={"status": "success", "accessToken": "T"})

        payload = client.create_integration("me@example.com", "obsidian")

        assert payload == {"status": "success", "accessToken": "T"}
        request = route.calls[0].request
        assert json.loads(request.content) == {
            "userEmail": "me@example.com",
            "emailAlias": "obsidian@taskrobin.io",
        }
        assert "authorization" not in request.headers

    @respx.mock
    def test_error_payload_returned_not_raised(self, client: TaskRobinClient):
        respx.post(f"{API}/mappings").respond(409, json={"status": "error", "error": "alias taken"})
        assert client.create_integration("me@example.com", "obsidian") == {
            "status": "error",
            "error": "alias taken",
        }

    @respx.mock
    def test_transport_failure(self, client: TaskRobinClient):
        respx.post(f"{API}/mappings").mock(side_effect=httpx.ConnectError("offline"))
        with pytest.raises(NetworkError):
            client.create_integration("me@example.com", "obsidian")


class TestSyncEmails:
    @respx.mock
    def test_bearer_auth(self, client: TaskRobinClient):
        manifest = {"emails": [{"1700000000000000": {"note.md": "https://files.test/n.md"}}]}
        route = respx.get(f"{API}/emails/a@x.com").respond(200, json=manifest)

        assert client.sync_emails("a@x.com", "T1", "work") == manifest
        assert route.calls[0].request.headers["authorization"] == "Bearer T1"

    @respx.mock
    def test_non_success_raises_with_status_text(self, client: TaskRobinClient):
        respx.get(f"{API}/emails/a@x.com").respond(401)
        with pytest.raises(NetworkError, match="Unauthorized"):
            client.sync_emails("a@x.com", "bad")


class TestDeleteIntegration:
    @respx.mock
    def test_body_restates_mapping_and_token(self, client: TaskRobinClient):
        route = respx.delete(f"{API}/mappings").respond(200, json={"status": "success"})

        assert client.delete_integration("a@x.com", "work", "T1") == {"status": "success"}
        request = route.calls[0].request
        assert request.headers["authorization"] == "Bearer T1"
        assert json.loads(request.content) == {
            "userEmail": "a@x.com",
            "emailAlias": "work@taskrobin.io",
            "accessToken": "T1",
        }

    @respx.mock
    def test_non_success_raises(self, client: TaskRobinClient):
        respx.delete(f"{API}/mappings").respond(500)
        with pytest.raises(NetworkError, match="Internal Server Error"):
            client.delete_integration("a@x.com", "work", "T1")


class TestFetchFiles:
    @respx.mock
    def test_presigned_fetch_has_no_bearer(self, client: TaskRobinClient):
        route = respx.get("https://files.test/a.pdf").respond(200, content=b"%PDF")
        assert client.fetch_bytes("https://files.test/a.pdf") == b"%PDF"
        assert "authorization" not in route.calls[0].request.headers

    @respx.mock
    def test_fetch_text(self, client: TaskRobinClient):
        respx.get("https://files.test/n.md").respond(200, text="Subject: Hi\n")
        assert client.fetch_text("https://files.test/n.md") == "Subject: Hi\n"

    @respx.mock
    def test_failed_fetch(self, client: TaskRobinClient):
        respx.get("https://files.test/gone.pdf").respond(403)
        with pytest.raises(FileDownloadError, match="403"):
            client.fetch_bytes("https://files.test/gone.pdf")
