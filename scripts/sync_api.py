"""
On-demand sync over HTTP, served next to the scheduler in daemon.py.

    GET  /integrations   integrations with their last sync status
    POST /sync           sync every integration, or {"alias": "..."} for one

An integration whose sync is still running cannot be started again (409).
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass, replace
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable

from settings_store import Integration
from sync_service import SyncResult

logger = logging.getLogger(__name__)


def start_sync_api(
    get_integrations: Callable[[], list[Integration]],
    sync_fn: Callable[[Integration], SyncResult],
    port: int = 8081,
) -> ThreadingHTTPServer:
    """Serve the API from a daemon thread; port 0 picks a free port."""
    server = ThreadingHTTPServer(("0.0.0.0", port), _make_handler(SyncState(get_integrations, sync_fn)))
    threading.Thread(target=server.serve_forever, name="sync-api", daemon=True).start()
    logger.info("Sync API listening on port %d", server.server_address[1])
    return server


@dataclass
class SyncStatus:
    """Outcome of the latest on-demand sync of one integration."""

    syncing: bool = False
    last_sync: float | None = None
    last_error: str | None = None
    downloaded: int = 0


class SyncState:
    """Thread-safe sync status per forwarding alias."""

    def __init__(
        self,
        get_integrations: Callable[[], list[Integration]],
        sync_fn: Callable[[Integration], SyncResult],
    ) -> None:
        self.get_integrations = get_integrations
        self.sync_fn = sync_fn
        self._lock = threading.Lock()
        self._status: dict[str, SyncStatus] = {}

    def _status_for(self, alias: str) -> SyncStatus:
        return self._status.setdefault(alias, SyncStatus())

    def list_integrations(self) -> list[dict[str, Any]]:
        """Integrations as JSON-ready dicts, each merged with its sync status."""
        with self._lock:
            return [
                {
                    "alias": integration.forwarding_email_alias,
                    "originEmail": integration.origin_email,
                    "rootDirectory": integration.root_directory,
                    **asdict(self._status_for(integration.forwarding_email_alias)),
                }
                for integration in self.get_integrations()
            ]

    def trigger_sync(
        self, alias: str | None = None, background: bool = True
    ) -> tuple[int, dict[str, Any]]:
        """Start a sync of one alias or of every integration. Returns (http_status, body)."""
        by_alias = {i.forwarding_email_alias: i for i in self.get_integrations()}
        if not by_alias:
            return 404, {"error": "no integrations configured"}
        if alias and alias not in by_alias:
            return 404, {"error": f"unknown integration: {alias}"}
        selected = [by_alias[alias]] if alias else list(by_alias.values())
        aliases = [i.forwarding_email_alias for i in selected]

        with self._lock:
            busy = [a for a in aliases if self._status_for(a).syncing]
            if busy:
                return 409, {"error": "sync already running", "integrations": busy}
            for a in aliases:
                self._status[a] = replace(self._status[a], syncing=True, last_error=None)

        if background:
            threading.Thread(target=self._run_sync, args=(selected,), daemon=True).start()
        else:
            self._run_sync(selected)
        return 202, {"status": "started", "integrations": aliases}

    def _run_sync(self, selected: list[Integration]) -> None:
        for integration in selected:
            alias = integration.forwarding_email_alias
            try:
                result = self.sync_fn(integration)
            except Exception as exc:
                logger.exception("Sync API: %s failed", alias)
                with self._lock:
                    self._status[alias] = replace(self._status[alias], syncing=False, last_error=str(exc))
                continue
            with self._lock:
                self._status[alias] = SyncStatus(last_sync=time.time(), downloaded=result.downloaded)
            logger.info("Sync API: %s finished, %d files downloaded", alias, result.downloaded)


def _make_handler(state: SyncState) -> type:
    """Bind a request handler class to ``state``."""

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            if self.path != "/integrations":
                self._reply(404, {"error": "not found"})
                return
            self._reply(200, state.list_integrations())

        def do_POST(self) -> None:
            if self.path != "/sync":
                self._reply(404, {"error": "not found"})
                return
            request = self._read_body()
            if not isinstance(request, dict):
                self._reply(400, {"error": "invalid JSON body"})
                return
            self._reply(*state.trigger_sync(request.get("alias")))

        def _read_body(self) -> Any:
            size = int(self.headers.get("Content-Length") or 0)
            if not size:
                return {}
            try:
                return json.loads(self.rfile.read(size))
            except ValueError:
                return None

        def _reply(self, status: int, body: Any) -> None:
            encoded = json.dumps(body).encode()
            self.send_response(status)
            for name, value in (
                ("Content-Type", "application/json"),
                ("Content-Length", str(len(encoded))),
                ("Access-Control-Allow-Origin", "*"),
            ):
                self.send_header(name, value)
            self.end_headers()
            self.wfile.write(encoded)

        def log_message(self, fmt: str, *args: Any) -> None:
            logger.debug("%s - " + fmt, self.address_string(), *args)

    return Handler
