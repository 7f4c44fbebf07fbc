"""
Dashboard Source Adapters

Architectural Intent:
- Implementations of DashboardSourcePort
- HttpDashboardSource: live upstream webhooks, optionally via the edge proxy
- FixtureDashboardSource: packaged sample payloads for local/offline mode
"""

from gmdash.infrastructure.adapters.fixture_source import FixtureDashboardSource
from gmdash.infrastructure.adapters.http_source import (
    HttpDashboardSource,
    UrllibJsonClient,
    to_proxy_url,
)

__all__ = [
    "FixtureDashboardSource",
    "HttpDashboardSource",
    "UrllibJsonClient",
    "to_proxy_url",
]
