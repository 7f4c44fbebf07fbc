"""
HTTP Dashboard Source

Architectural Intent:
- Implements DashboardSourcePort over the upstream workflow webhooks
- Uses stdlib urllib for the HTTP layer; blocking calls run in the default
  executor so concurrent sources overlap on the event loop
- Optionally routes upstream URLs through the edge server's /api/n8n proxy so
  browsers and remote clients share one origin

Design Decisions:
- Every request carries Accept/Content-Type JSON headers and, when configured,
  Authorization: Bearer <api_key>
- Non-2xx, transport failures, timeouts and undecodable bodies all become
  UpstreamError with url/status context
"""

from __future__ import annotations
from typing import Any, Optional
from urllib.parse import urlsplit
import asyncio
import json
import logging
import http.client
import urllib.error
import urllib.request

from gmdash.domain.ports.dashboard_source_port import Source, UpstreamError
from gmdash.infrastructure.config import ClientConfig, EndpointsConfig

logger = logging.getLogger(__name__)

PROXY_PREFIX = "/api/n8n"


def to_proxy_url(url: str, upstream_host: str, proxy_base_url: str) -> str:
    """Rewrite *url* onto the edge server proxy when it targets *upstream_host*.

    ``https://<upstream_host>/webhook/x?y=1`` becomes
    ``<proxy_base_url>/api/n8n/webhook/x?y=1``. Other URLs, or any URL when no
    proxy base is configured, are returned unchanged.
    """
    if not proxy_base_url or not url:
        return url
    parts = urlsplit(url)
    if parts.hostname != upstream_host:
        return url
    query = f"?{parts.query}" if parts.query else ""
    return f"{proxy_base_url.rstrip('/')}{PROXY_PREFIX}{parts.path}{query}"


class UrllibJsonClient:
    """Minimal JSON-over-HTTP GET client."""

    def __init__(self, api_key: str = "", timeout: float = 90.0) -> None:
        self._timeout = timeout
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    def get_json(self, url: str) -> Any:
        req = urllib.request.Request(url, headers=self._headers, method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                if resp.geturl() != url and "/auth/" in resp.geturl():
                    raise UpstreamError(
                        "Authentication required: upstream redirected to a login page",
                        url=url,
                        status=resp.status,
                    )
                body = resp.read()
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")[:500]
            logger.error(
                "Upstream request failed: url=%s status=%s reason=%s body=%s",
                url, e.code, e.reason, detail,
            )
            raise UpstreamError(
                f"Request failed with status code {e.code}", url=url, status=e.code
            ) from e
        except (OSError, http.client.HTTPException) as e:
            reason = getattr(e, "reason", e)
            logger.error("Upstream request failed: url=%s message=%s", url, reason)
            raise UpstreamError(str(reason), url=url) from e

        try:
            return json.loads(body) if body else None
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Upstream returned invalid JSON: url=%s message=%s", url, e)
            raise UpstreamError(f"Invalid JSON response: {e}", url=url) from e


class HttpDashboardSource:
    """DashboardSourcePort backed by the configured upstream endpoints."""

    def __init__(
        self,
        endpoints: EndpointsConfig,
        client_config: ClientConfig,
        upstream_host: str = "",
        client: Optional[UrllibJsonClient] = None,
    ) -> None:
        self._client = client or UrllibJsonClient(
            api_key=client_config.api_key,
            timeout=client_config.timeout_seconds,
        )
        self._urls = {
            source: to_proxy_url(
                getattr(endpoints, source.value),
                upstream_host,
                client_config.proxy_base_url,
            )
            for source in Source
        }

    def url_for(self, source: Source) -> str:
        return self._urls[source]

    async def fetch(self, source: Source) -> Any:
        url = self._urls[source]
        if not url:
            raise UpstreamError(f"{source.label} endpoint URL is not configured")
        logger.info("Fetching %s from: %s", source.label, urlsplit(url).path)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._client.get_json, url)
