"""HTTP client for the TaskRobin forwarding service."""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from errors import FileDownloadError, NetworkError
from naming import alias_to_address

logger = logging.getLogger(__name__)

API_URL = os.getenv(
    "TASKROBIN_API_URL",
    "https://7ul423cced.execute-api.us-east-2.amazonaws.com/prod/obsidian",
)


class TaskRobinClient:
    """
    Thin wrapper over the three mapping/manifest endpoints.

    Presigned file URLs returned in a manifest are fetched with
    :meth:`fetch_text` / :meth:`fetch_bytes`, which never send the bearer
    token. One client may be shared between download threads.
    """

    def __init__(
        self,
        base_url: str = API_URL,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout), follow_redirects=True)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> TaskRobinClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON from API ({response.status_code} {response.reason_phrase})"
            ) from exc

    def create_integration(self, source_email: str, forwarding_alias: str) -> dict[str, Any]:
        """
        Register ``forwarding_alias@taskrobin.io`` for ``source_email``.

        Returns the payload whatever the HTTP status; callers check
        ``payload["status"] == "success"`` and read ``accessToken``.
        """
        response = self._request(
            "POST",
            "/mappings",
            json={"userEmail": source_email, "emailAlias": alias_to_address(forwarding_alias)},
        )
        logger.debug("create mapping %s -> %s: HTTP %d", source_email, forwarding_alias, response.status_code)
        return self._json(response)

    def sync_emails(
        self,
        origin_email: str,
        access_token: str,
        forwarding_alias: str | None = None,
    ) -> dict[str, Any]:
        """Fetch the email manifest for ``origin_email``."""
        # The endpoint is keyed by mailbox only; the alias is kept for logging.
        response = self._request(
            "GET",
            f"/emails/{origin_email}",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.is_success:
            raise NetworkError(f"API request failed: {response.reason_phrase}")

        manifest = self._json(response)
        logger.info(
            "Manifest for %s (%s): %d email groups",
            origin_email,
            forwarding_alias or "legacy",
            len(manifest.get("emails", [])),
        )
        return manifest

    def delete_integration(
        self, origin_email: str, forwarding_alias: str, access_token: str
    ) -> dict[str, Any]:
        """Remove a mapping. The API wants the token both as header and in the body."""
        response = self._request(
            "DELETE",
            "/mappings",
            headers={"Authorization": f"Bearer {access_token}"},
            json={
                "userEmail": origin_email,
                "emailAlias": alias_to_address(forwarding_alias),
                "accessToken": access_token,
            },
        )
        if not response.is_success:
            raise NetworkError(f"API request failed: {response.reason_phrase}")
        return self._json(response)

    def _fetch_file(self, url: str) -> httpx.Response:
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise FileDownloadError(f"GET {url} failed: {exc}") from exc
        if not response.is_success:
            raise FileDownloadError(
                f"GET {url} failed: {response.status_code} {response.reason_phrase}"
            )
        return response

    def fetch_text(self, url: str) -> str:
        return self._fetch_file(url).text

    def fetch_bytes(self, url: str) -> bytes:
        return self._fetch_file(url).content
