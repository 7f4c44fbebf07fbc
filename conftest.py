"""Global test configuration.

Provides a throwaway upstream HTTP server that records every request it
receives, so the proxy and HTTP source tests run against real sockets without
any network access.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Union

import pytest


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: Any
    body: bytes


Route = Union[tuple[int, dict, bytes], Callable[[BaseHTTPRequestHandler, bytes], tuple[int, dict, bytes]]]


def json_route(data: Any, status: int = 200, headers: dict | None = None) -> tuple[int, dict, bytes]:
    """Canned JSON response for a RecordingUpstream route."""
    merged = {"Content-Type": "application/json"}
    merged.update(headers or {})
    return status, merged, json.dumps(data).encode()


class RecordingUpstream:
    def __init__(self, routes: dict[str, Route], base_url: str) -> None:
        self.routes = routes
        self.base_url = base_url
        self.requests: list[RecordedRequest] = []

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


def _read_chunked(rfile) -> bytes:
    """Decode a chunked request body, discarding any trailers."""
    body = bytearray()
    while True:
        size = int(rfile.readline().split(b";", 1)[0].strip(), 16)
        if size == 0:
            break
        body += rfile.read(size)
        rfile.readline()
    while rfile.readline() not in (b"\r\n", b"\n", b""):
        pass
    return bytes(body)


class _UpstreamHandler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):  # noqa: A002
        pass

    def _handle(self) -> None:
        upstream: RecordingUpstream = self.server.upstream  # type: ignore[attr-defined]
        if "chunked" in (self.headers.get("Transfer-Encoding") or "").lower():
            body = _read_chunked(self.rfile)
        else:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
        upstream.requests.append(RecordedRequest(self.command, self.path, self.headers, body))

        route = upstream.routes.get(self.path.split("?", 1)[0])
        if route is None:
            status, headers, payload = json_route({"error": "not found"}, status=404)
        elif callable(route):
            status, headers, payload = route(self, body)
        else:
            status, headers, payload = route

        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_DELETE = _handle
    do_HEAD = _handle


@pytest.fixture()
def upstream():
    """Factory fixture: ``upstream(routes)`` starts a RecordingUpstream."""
    servers: list[ThreadingHTTPServer] = []

    def start(routes: dict[str, Route]) -> RecordingUpstream:
        server = ThreadingHTTPServer(("127.0.0.1", 0), _UpstreamHandler)
        server.upstream = RecordingUpstream(  # type: ignore[attr-defined]
            routes, f"http://127.0.0.1:{server.server_address[1]}"
        )
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server.upstream  # type: ignore[attr-defined]

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()
