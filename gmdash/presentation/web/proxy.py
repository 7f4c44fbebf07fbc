"""
Reverse Proxy

Architectural Intent:
- Forwards /api/n8n/<rest> to <upstream>/<rest> so browser code talks to a
  single origin and never hits cross-origin restrictions
- Streams request and response bodies in fixed-size chunks; nothing is
  buffered whole in memory
- Built on stdlib http.client so redirects and error statuses pass through
  untouched instead of being followed or raised

Header Rules:
- Request: everything except Host and Connection is forwarded, Cookie is
  re-attached explicitly, Host is set to the upstream host, and
  Accept-Encoding is pinned to identity (the response's Content-Encoding is
  stripped below, so the body must arrive uncompressed)
- Response: everything except Content-Encoding, Transfer-Encoding, Connection
  and Content-Length is copied back
"""

from __future__ import annotations
from dataclasses import dataclass
from email.message import Message
from typing import BinaryIO, Iterable, Iterator, Optional
from urllib.parse import urlsplit
import http.client
import logging

logger = logging.getLogger(__name__)

PROXY_PREFIX = "/api/n8n"
CHUNK_SIZE = 64 * 1024

REQUEST_HEADERS_DROPPED = frozenset({"host", "connection"})
RESPONSE_HEADERS_DROPPED = frozenset(
    {"content-encoding", "transfer-encoding", "connection", "content-length"}
)


def is_proxy_path(path: str) -> bool:
    route = path.split("?", 1)[0]
    return route == PROXY_PREFIX or route.startswith(PROXY_PREFIX + "/")


def upstream_path(path: str) -> str:
    """Strip the proxy prefix, keeping the rest of the path and the query."""
    rest = path[len(PROXY_PREFIX):]
    if not rest.startswith("/"):
        rest = "/" + rest
    return rest


def forward_request_headers(headers: Message) -> list[tuple[str, str]]:
    forwarded = [
        (name, value)
        for name, value in headers.items()
        if name.lower() not in REQUEST_HEADERS_DROPPED
        and name.lower() not in ("cookie", "accept-encoding")
    ]
    cookies = headers.get_all("Cookie") or []
    if cookies:
        forwarded.append(("Cookie", "; ".join(cookies)))
    forwarded.append(("Accept-Encoding", "identity"))
    return forwarded


def forward_response_headers(
    headers: Iterable[tuple[str, str]],
) -> list[tuple[str, str]]:
    return [
        (name, value)
        for name, value in headers
        if name.lower() not in RESPONSE_HEADERS_DROPPED
    ]


def iter_request_body(rfile: BinaryIO, headers: Message) -> Optional[Iterator[bytes]]:
    """Yield the client's request body in chunks, or None when it has none.

    Handles both Content-Length and chunked framing; chunked bodies are yielded
    de-framed.
    """
    if "chunked" in (headers.get("Transfer-Encoding") or "").lower():
        return _iter_chunked(rfile)
    length = int(headers.get("Content-Length") or 0)
    if length <= 0:
        return None
    return _iter_sized(rfile, length)


def _iter_sized(rfile: BinaryIO, length: int) -> Iterator[bytes]:
    remaining = length
    while remaining > 0:
        chunk = rfile.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            raise ConnectionResetError("client closed connection mid-body")
        remaining -= len(chunk)
        yield chunk


def _iter_chunked(rfile: BinaryIO) -> Iterator[bytes]:
    while True:
        size_line = rfile.readline(1024)
        if not size_line:
            raise ConnectionResetError("client closed connection mid-body")
        size = int(size_line.split(b";", 1)[0].strip() or b"0", 16)
        if size == 0:
            # trailers end with an empty line
            while rfile.readline(1024) not in (b"\r\n", b"\n", b""):
                pass
            return
        yield from _iter_sized(rfile, size)
        rfile.readline(1024)


@dataclass(frozen=True)
class UpstreamTarget:
    scheme: str
    host: str
    port: Optional[int]

    @staticmethod
    def from_url(url: str) -> UpstreamTarget:
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise ValueError(f"Invalid upstream URL: {url!r}")
        return UpstreamTarget(parts.scheme, parts.hostname, parts.port)


class ReverseProxy:
    """Opens upstream requests for the edge server's proxy route."""

    def __init__(self, upstream_url: str, timeout: float = 90.0) -> None:
        self.target = UpstreamTarget.from_url(upstream_url)
        self.timeout = timeout

    def _connect(self) -> http.client.HTTPConnection:
        if self.target.scheme == "https":
            return http.client.HTTPSConnection(
                self.target.host, self.target.port, timeout=self.timeout
            )
        return http.client.HTTPConnection(
            self.target.host, self.target.port, timeout=self.timeout
        )

    def open(
        self,
        method: str,
        path: str,
        headers: Message,
        body: Optional[Iterator[bytes]] = None,
    ) -> tuple[http.client.HTTPConnection, http.client.HTTPResponse]:
        """Send the request upstream and return the connection and response.

        The caller streams the response and must close the connection.

        Raises:
            OSError, http.client.HTTPException: if the upstream is unreachable
                or the exchange fails before a response arrives.
        """
        target_path = upstream_path(path)
        chunked = "chunked" in (headers.get("Transfer-Encoding") or "").lower()
        logger.info("Proxying %s %s -> %s%s", method, path, self.target.host, target_path)

        conn = self._connect()
        try:
            conn.putrequest(method, target_path, skip_accept_encoding=True)
            for name, value in forward_request_headers(headers):
                conn.putheader(name, value)
            conn.endheaders()
            if body is not None:
                for chunk in body:
                    if chunked:
                        conn.send(b"%X\r\n%s\r\n" % (len(chunk), chunk))
                    else:
                        conn.send(chunk)
                if chunked:
                    conn.send(b"0\r\n\r\n")
            return conn, conn.getresponse()
        except BaseException:
            conn.close()
            raise
