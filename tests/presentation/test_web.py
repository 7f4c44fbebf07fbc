"""Tests for the gmdash edge server.

Runs a real EdgeServer on a random port against a temporary asset root and a
local recording upstream, so no network access is needed.
"""

import http.client
import json
import os
import signal
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from conftest import json_route
from gmdash.infrastructure.config import ConfigurationError, ProxyConfig, ServerConfig
from gmdash.presentation.web.app import EdgeServer, serve


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _echo(handler, body):
    return 201, {"Content-Type": "application/octet-stream"}, body


UPSTREAM_ROUTES = {
    "/webhook/labor": json_route(
        {"data": [{"division": "Lodging"}]},
        headers={
            "Content-Encoding": "gzip",
            "Set-Cookie": "session=xyz; Path=/",
            "X-Upstream": "yes",
        },
    ),
    "/webhook/echo": _echo,
    "/webhook/redirect": (302, {"Location": "/auth/login"}, b""),
}


@pytest.fixture()
def asset_root(tmp_path):
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<html>gm dashboard</html>")
    (root / "assets" / "app.js").write_text("console.log('gm');")
    (root / "assets" / "style.css").write_text("body {}")
    (root / "assets" / "data.bin").write_bytes(b"\x00\x01")
    (tmp_path / "secret.txt").write_text("outside the asset root")
    return root


@pytest.fixture()
def edge(asset_root, upstream):
    """Start an EdgeServer on a random port, yield (server, upstream), then stop."""
    up = upstream(UPSTREAM_ROUTES)
    server = EdgeServer(
        ServerConfig(host="127.0.0.1", port=0, asset_root=str(asset_root)),
        ProxyConfig(upstream_url=up.base_url, timeout_seconds=5),
    )
    server.start()
    yield server, up
    server.stop()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _request(server, method, path, body=None, headers=None):
    """Send a request and return (status, headers, body bytes)."""
    conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=10)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        resp = conn.getresponse()
        return resp.status, resp.headers, resp.read()
    finally:
        conn.close()


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestHealth:
    """GET /health and /healthz."""

    @pytest.mark.parametrize("path", ["/health", "/healthz", "/health?check=1"])
    def test_health_payload(self, edge, path):
        server, _ = edge
        status, headers, body = _request(server, "GET", path)

        assert status == 200
        assert headers["Content-Type"] == "application/json"
        data = json.loads(body)
        assert data["status"] == "healthy"
        assert data["pid"] == os.getpid()
        assert data["uptime"] >= 0
        assert "T" in data["timestamp"]


class TestCors:
    """OPTIONS preflight on any path."""

    def test_echoes_origin(self, edge):
        server, _ = edge
        status, headers, body = _request(
            server, "OPTIONS", "/api/n8n/webhook/labor", headers={"Origin": "http://gm.test"}
        )
        assert status == 200
        assert body == b""
        assert headers["Access-Control-Allow-Origin"] == "http://gm.test"
        assert headers["Access-Control-Allow-Credentials"] == "true"
        assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS"
        assert "Authorization" in headers["Access-Control-Allow-Headers"]
        assert headers["Access-Control-Max-Age"] == "86400"

    def test_wildcard_without_origin(self, edge):
        server, _ = edge
        _, headers, _ = _request(server, "OPTIONS", "/anything")
        assert headers["Access-Control-Allow-Origin"] == "*"


class TestStatic:
    """Static assets and single-page-app fallback."""

    def test_root_serves_index(self, edge):
        server, _ = edge
        status, headers, body = _request(server, "GET", "/")
        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert headers["Content-Length"] == str(len(body))
        assert b"gm dashboard" in body

    @pytest.mark.parametrize("path,content_type", [
        ("/assets/app.js?v=3", "application/javascript"),
        ("/assets/style.css", "text/css"),
        ("/assets/data.bin", "application/octet-stream"),
    ])
    def test_content_types(self, edge, path, content_type):
        server, _ = edge
        status, headers, _ = _request(server, "GET", path)
        assert status == 200
        assert headers["Content-Type"] == content_type

    def test_spa_fallback(self, edge):
        server, _ = edge
        status, headers, body = _request(server, "GET", "/dashboard-view")
        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert b"gm dashboard" in body

    def test_missing_asset_404(self, edge):
        server, _ = edge
        status, _, body = _request(server, "GET", "/missing.png")
        assert status == 404
        assert body == b"404 Not Found"

    def test_traversal_forbidden(self, edge):
        server, _ = edge
        status, _, body = _request(server, "GET", "/assets/../../secret.txt")
        assert status == 403
        assert b"outside" not in body

    def test_other_methods_rejected(self, edge):
        server, _ = edge
        status, _, body = _request(server, "POST", "/index.html")
        assert status == 405
        assert json.loads(body)["error"] == "method not allowed"


class TestProxy:
    """ANY /api/n8n/* forwarding."""

    def test_forwards_path_query_and_cookie(self, edge):
        server, up = edge
        status, _, body = _request(
            server,
            "GET",
            "/api/n8n/webhook/labor?day=2026-01-14",
            headers={
                "Cookie": "sid=abc",
                "Connection": "keep-alive",
                "Accept-Encoding": "gzip, br",
                "X-Requested-With": "gmdash",
            },
        )

        assert status == 200
        assert json.loads(body) == {"data": [{"division": "Lodging"}]}
        forwarded = up.last
        assert forwarded.method == "GET"
        assert forwarded.path == "/webhook/labor?day=2026-01-14"
        assert forwarded.headers["Cookie"] == "sid=abc"
        assert forwarded.headers["Accept-Encoding"] == "identity"
        assert forwarded.headers["X-Requested-With"] == "gmdash"
        assert forwarded.headers["Connection"] is None
        assert forwarded.headers["Host"] == up.base_url.removeprefix("http://")

    def test_response_headers_filtered(self, edge):
        server, _ = edge
        _, headers, _ = _request(server, "GET", "/api/n8n/webhook/labor")
        assert headers["Content-Encoding"] is None
        assert headers["Content-Length"] is None
        assert headers["X-Upstream"] == "yes"
        assert headers["Set-Cookie"] == "session=xyz; Path=/"
        assert headers["Content-Type"] == "application/json"

    def test_chunked_body_forwarded_deframed(self, edge):
        server, up = edge
        status, _, body = _request(
            server, "POST", "/api/n8n/webhook/echo", body=iter([b"abc", b"defg"]),
            headers={"Content-Type": "application/octet-stream"},
        )
        assert status == 201
        assert body == b"abcdefg"
        assert up.last.headers["Transfer-Encoding"] == "chunked"
        assert up.last.body == b"abcdefg"

    def test_post_body_streamed(self, edge):
        server, up = edge
        payload = b"x" * (200 * 1024)
        status, _, body = _request(
            server, "POST", "/api/n8n/webhook/echo", body=payload,
            headers={"Content-Type": "application/octet-stream"},
        )
        assert status == 201
        assert body == payload
        assert up.last.body == payload

    def test_upstream_status_passed_through(self, edge):
        server, _ = edge
        status, _, body = _request(server, "GET", "/api/n8n/webhook/nowhere")
        assert status == 404
        assert json.loads(body) == {"error": "not found"}

    def test_redirect_not_followed(self, edge):
        server, _ = edge
        status, headers, _ = _request(server, "GET", "/api/n8n/webhook/redirect")
        assert status == 302
        assert headers["Location"] == "/auth/login"

    def test_bad_gateway_when_upstream_down(self, asset_root):
        server = EdgeServer(
            ServerConfig(host="127.0.0.1", port=0, asset_root=str(asset_root)),
            ProxyConfig(upstream_url=f"http://127.0.0.1:{_free_port()}", timeout_seconds=2),
        )
        server.start()
        try:
            status, headers, body = _request(server, "GET", "/api/n8n/webhook/labor")
        finally:
            server.stop()

        assert status == 502
        assert headers["Content-Type"] == "application/json"
        data = json.loads(body)
        assert data["error"] == "Bad Gateway"
        assert data["message"]


class TestLifecycle:
    def test_missing_asset_root_is_fatal(self, tmp_path):
        server = EdgeServer(
            ServerConfig(host="127.0.0.1", port=0, asset_root=str(tmp_path / "dist")),
            ProxyConfig(),
        )
        with pytest.raises(ConfigurationError, match="Asset root not found"):
            server.start()

    def test_graceful_shutdown_exit_code(self, asset_root):
        server = EdgeServer(
            ServerConfig(host="127.0.0.1", port=0, asset_root=str(asset_root)), ProxyConfig()
        )
        server.start()
        assert _request(server, "GET", "/health")[0] == 200
        server.request_shutdown()
        assert server.wait() == 0

    def test_in_flight_request_completes_during_shutdown(self, asset_root, upstream):
        started = threading.Event()

        def slow(handler, body):
            started.set()
            time.sleep(0.5)
            return 200, {"Content-Type": "text/plain"}, b"done"

        up = upstream({"/webhook/slow": slow})
        server = EdgeServer(
            ServerConfig(host="127.0.0.1", port=0, asset_root=str(asset_root)),
            ProxyConfig(upstream_url=up.base_url, timeout_seconds=5),
        )
        server.start()
        with ThreadPoolExecutor(max_workers=1) as pool:
            pending = pool.submit(_request, server, "GET", "/api/n8n/webhook/slow")
            assert started.wait(timeout=5)
            server.request_shutdown()
            assert server.wait() == 0
            status, _, body = pending.result(timeout=5)

        assert status == 200
        assert body == b"done"

    def test_sigterm_shuts_down_cleanly(self, asset_root):
        server = EdgeServer(
            ServerConfig(host="127.0.0.1", port=0, asset_root=str(asset_root)), ProxyConfig()
        )
        previous = {sig: signal.getsignal(sig) for sig in (signal.SIGTERM, signal.SIGINT)}
        server.start()
        try:
            server.install_signal_handlers()
            os.kill(os.getpid(), signal.SIGTERM)
            assert server.wait() == 0
        finally:
            server.stop()
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def test_unhandled_handler_error_is_fatal(self, asset_root):
        server = EdgeServer(
            ServerConfig(host="127.0.0.1", port=0, asset_root=str(asset_root)), ProxyConfig()
        )
        server.start()
        with patch(
            "gmdash.presentation.web.app.resolve_static_path",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises((http.client.HTTPException, ConnectionError)):
                _request(server, "GET", "/index.html")
        assert server.wait() == 1

    def test_serve_returns_1_when_port_taken(self, asset_root):
        with socket.socket() as taken:
            taken.bind(("127.0.0.1", 0))
            taken.listen()
            port = taken.getsockname()[1]
            code = serve(
                ServerConfig(host="127.0.0.1", port=port, asset_root=str(asset_root)),
                ProxyConfig(),
            )
        assert code == 1
