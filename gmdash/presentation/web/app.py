"""
gmdash Edge Server

Architectural Intent:
- Lightweight same-origin server built entirely on Python stdlib
  (http.server + http.client).
- Serves the built dashboard bundle, answers health checks and forwards
  /api/n8n/* to the upstream workflow host.
- Holds no cross-request state beyond start time and pid.

API Surface:
    GET  /health, /healthz -> JSON {status, timestamp, uptime, pid}
    OPTIONS *              -> 200, permissive CORS headers, empty body
    ANY  /api/n8n/<rest>   -> streamed to <upstream>/<rest>; 502 on transport failure
    GET  /<asset>          -> static file (403 on "..", SPA fallback, 404, 500)

Threading Model:
    ThreadingHTTPServer with non-daemon request threads. serve_forever runs in
    a background thread; the main thread waits for a shutdown request
    (SIGTERM/SIGINT or a fatal handler error), stops accepting and joins the
    in-flight request threads before returning the exit code.

Failure Policy:
    Missing asset root or index.html, bind failures and uncaught handler
    exceptions are fatal. Client disconnects are not.
"""

from __future__ import annotations

import http.client
import json
import logging
import os
import shutil
import signal
import sys
import threading
import time
from datetime import datetime, UTC
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Optional

from gmdash.infrastructure.config import (
    ProxyConfig,
    ServerConfig,
    require_assets,
)
from gmdash.presentation.web.proxy import (
    CHUNK_SIZE,
    ReverseProxy,
    forward_response_headers,
    is_proxy_path,
    iter_request_body,
)
from gmdash.presentation.web.static import resolve_static_path

logger = logging.getLogger(__name__)

HEALTH_PATHS = ("/health", "/healthz")
CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization, Cookie, X-Requested-With, Accept"
CORS_MAX_AGE = "86400"


# ---------------------------------------------------------------------------
# Request handler
# ---------------------------------------------------------------------------

class EdgeRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the edge server.

    Attributes on the *server* instance (set by EdgeServer):
        asset_root:  Path -- built bundle directory
        proxy:       ReverseProxy -- upstream forwarding
        started_at:  float -- monotonic start time for uptime
    """

    server_version = "gmdash"

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("web: %s - %s", self.address_string(), format % args)

    # ---- routing -----------------------------------------------------------

    def _route(self) -> str:
        return self.path.split("?", 1)[0]

    def do_GET(self) -> None:  # noqa: N802
        if self._route() in HEALTH_PATHS:
            self._serve_health()
        elif is_proxy_path(self.path):
            self._proxy()
        else:
            self._serve_static()

    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(HTTPStatus.OK)
        self.send_header("Access-Control-Allow-Origin", self.headers.get("Origin") or "*")
        self.send_header("Access-Control-Allow-Credentials", "true")
        self.send_header("Access-Control-Allow-Methods", CORS_ALLOW_METHODS)
        self.send_header("Access-Control-Allow-Headers", CORS_ALLOW_HEADERS)
        self.send_header("Access-Control-Max-Age", CORS_MAX_AGE)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _proxy_or_reject(self) -> None:
        if is_proxy_path(self.path):
            self._proxy()
        else:
            self._send_json(
                {"error": "method not allowed"}, HTTPStatus.METHOD_NOT_ALLOWED
            )

    do_POST = _proxy_or_reject  # noqa: N815
    do_PUT = _proxy_or_reject  # noqa: N815
    do_PATCH = _proxy_or_reject  # noqa: N815
    do_DELETE = _proxy_or_reject  # noqa: N815
    do_HEAD = _proxy_or_reject  # noqa: N815

    # ---- endpoint implementations ------------------------------------------

    def _serve_health(self) -> None:
        started_at: float = self.server.started_at  # type: ignore[attr-defined]
        self._send_json({
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": round(time.monotonic() - started_at, 3),
            "pid": os.getpid(),
        })

    def _serve_static(self) -> None:
        asset_root: Path = self.server.asset_root  # type: ignore[attr-defined]
        resolution = resolve_static_path(asset_root, self.path)
        if resolution.status == HTTPStatus.FORBIDDEN:
            self._send_text("403 Forbidden", HTTPStatus.FORBIDDEN)
            return
        if resolution.path is None:
            self._send_text("404 Not Found", HTTPStatus.NOT_FOUND)
            return

        try:
            f = open(resolution.path, "rb")
        except OSError as exc:
            logger.error("Error serving file %s: %s", resolution.path, exc)
            self._send_text("500 Internal Server Error", HTTPStatus.INTERNAL_SERVER_ERROR)
            return
        with f:
            size = os.fstat(f.fileno()).st_size
            self.send_response(HTTPStatus.OK)
            self.send_header("Content-Type", resolution.content_type)
            self.send_header("Content-Length", str(size))
            self.end_headers()
            shutil.copyfileobj(f, self.wfile, CHUNK_SIZE)

    def _proxy(self) -> None:
        proxy: ReverseProxy = self.server.proxy  # type: ignore[attr-defined]
        self.close_connection = True
        try:
            body = iter_request_body(self.rfile, self.headers)
            conn, resp = proxy.open(self.command, self.path, self.headers, body)
        except (OSError, http.client.HTTPException, ValueError) as exc:
            logger.error(
                "Proxy error: %s", exc,
                extra={"method": self.command, "path": self.path, "client": self.client_address[0]},
            )
            self._send_json(
                {"error": "Bad Gateway", "message": str(exc) or type(exc).__name__},
                HTTPStatus.BAD_GATEWAY,
            )
            return

        try:
            self.log_request(resp.status)
            self.send_response_only(resp.status, resp.reason)
            for name, value in forward_response_headers(resp.getheaders()):
                self.send_header(name, value)
            self.end_headers()
            if self.command != "HEAD":
                while chunk := resp.read(CHUNK_SIZE):
                    self.wfile.write(chunk)
        except ConnectionError as exc:
            logger.warning("Client disconnected during proxy response: %s", exc)
        except (OSError, http.client.HTTPException) as exc:
            logger.error("Upstream failed mid-response for %s: %s", self.path, exc)
        finally:
            conn.close()

    # ---- helpers -----------------------------------------------------------

    def _send_json(self, data: Any, status: HTTPStatus = HTTPStatus.OK) -> None:
        """Serialize *data* as JSON and send it as the HTTP response."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_text(self, text: str, status: HTTPStatus) -> None:
        body = text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class EdgeHTTPServer(ThreadingHTTPServer):
    """ThreadingHTTPServer whose unhandled handler errors are fatal."""

    daemon_threads = False
    block_on_close = True

    def __init__(self, *args: Any, on_fatal=None, **kwargs: Any) -> None:
        self.on_fatal = on_fatal
        super().__init__(*args, **kwargs)

    def handle_error(self, request: Any, client_address: Any) -> None:
        exc = sys.exc_info()[1]
        if isinstance(exc, ConnectionError):
            logger.info("Client %s disconnected: %s", client_address, exc)
            return
        logger.critical(
            "Unhandled error while serving %s", client_address, exc_info=True
        )
        if self.on_fatal is not None:
            self.on_fatal()


# ---------------------------------------------------------------------------
# Server wrapper
# ---------------------------------------------------------------------------

class EdgeServer:
    """Same-origin edge server for the gmdash bundle.

    Usage::

        server = EdgeServer(config.server, config.proxy)
        server.start()
        exit_code = server.wait()   # blocks until SIGTERM/SIGINT or a fatal error
    """

    def __init__(self, server_config: ServerConfig, proxy_config: ProxyConfig) -> None:
        self.server_config = server_config
        self.proxy = ReverseProxy(proxy_config.upstream_url, proxy_config.timeout_seconds)
        self._server: Optional[EdgeHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown_requested = threading.Event()
        self._exit_code = 0

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("server not started")
        return self._server.server_address[1]

    def start(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Validate assets, bind and start serving in a background thread.

        Raises:
            ConfigurationError: if the asset root or index.html is missing.
            OSError: if the address cannot be bound.
        """
        asset_root = require_assets(self.server_config)
        host = self.server_config.host if host is None else host
        port = self.server_config.port if port is None else port

        self._server = EdgeHTTPServer(
            (host, port),
            EdgeRequestHandler,
            on_fatal=lambda: self.request_shutdown(exit_code=1),
        )
        # Attach application state to the server so handlers can access it.
        self._server.asset_root = asset_root  # type: ignore[attr-defined]
        self._server.proxy = self.proxy  # type: ignore[attr-defined]
        self._server.started_at = time.monotonic()  # type: ignore[attr-defined]

        self._thread = threading.Thread(
            target=self._serve, daemon=True, name="gmdash-web"
        )
        self._thread.start()

        bound_port = self._server.server_address[1]
        logger.info("Server running at http://%s:%d", host, bound_port)
        logger.info("Health check available at http://%s:%d/health", host, bound_port)
        logger.info("Serving files from: %s", asset_root)
        logger.info("Proxying %s -> %s", "/api/n8n", self.proxy.target.host)

    def _serve(self) -> None:
        assert self._server is not None
        try:
            self._server.serve_forever()
        except Exception:
            logger.critical("Server loop crashed", exc_info=True)
            self.request_shutdown(exit_code=1)

    def request_shutdown(self, exit_code: int = 0) -> None:
        self._exit_code = max(self._exit_code, exit_code)
        self._shutdown_requested.set()

    def install_signal_handlers(self) -> None:
        """Route SIGTERM and SIGINT to a graceful shutdown (main thread only)."""
        def handler(signum: int, frame: Any) -> None:
            logger.info("%s received, shutting down gracefully", signal.Signals(signum).name)
            self.request_shutdown(exit_code=0)

        signal.signal(signal.SIGTERM, handler)
        signal.signal(signal.SIGINT, handler)

    def wait(self) -> int:
        """Block until shutdown is requested, then drain and return the exit code."""
        while not self._shutdown_requested.wait(timeout=0.5):
            pass
        self.stop()
        return self._exit_code

    def stop(self) -> None:
        """Stop accepting connections and wait for in-flight requests."""
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            logger.info("Server closed")
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None


def serve(server_config: ServerConfig, proxy_config: ProxyConfig) -> int:
    """Run the edge server until shutdown; return the process exit code."""
    server = EdgeServer(server_config, proxy_config)
    try:
        server.start()
    except OSError as exc:
        logger.critical(
            "Could not bind %s:%s: %s", server_config.host, server_config.port, exc
        )
        return 1
    server.install_signal_handlers()
    return server.wait()
