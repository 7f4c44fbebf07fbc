"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the gmdash application
- Single place where the configuration, source adapter and use case are wired
- No adapter instantiation should occur outside this module (except tests)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Fixture mode swaps the HTTP source for packaged sample data
- Endpoint URLs are validated only when the live HTTP source is used
"""

from dataclasses import dataclass, replace
from urllib.parse import urlsplit

from gmdash.application.use_cases.fetch_dashboard import (
    SEASON_PASS_FIELDS,
    TICKET_SALES_FIELDS,
    FetchDashboard,
)
from gmdash.domain.ports.dashboard_source_port import DashboardSourcePort
from gmdash.infrastructure.adapters.fixture_source import FixtureDashboardSource
from gmdash.infrastructure.adapters.http_source import HttpDashboardSource
from gmdash.infrastructure.config import DashboardConfig, require_endpoints


@dataclass
class DashboardContainer:
    """DI container holding all wired dependencies."""

    config: DashboardConfig
    source: DashboardSourcePort
    fetch_dashboard: FetchDashboard


def create_source(config: DashboardConfig) -> DashboardSourcePort:
    if config.client.use_local_data:
        return FixtureDashboardSource()
    return HttpDashboardSource(
        require_endpoints(config.endpoints),
        config.client,
        upstream_host=urlsplit(config.proxy.upstream_url).hostname or "",
    )


def create_container(config: DashboardConfig) -> DashboardContainer:
    """Create and wire all dependencies.

    Raises:
        ConfigurationError: if live mode is selected and an endpoint is missing.
    """
    source = create_source(config)
    season_pass_fields = replace(
        SEASON_PASS_FIELDS,
        current=config.sales.season_pass_current,
        previous=config.sales.season_pass_previous,
    )
    fetch_dashboard = FetchDashboard(
        source,
        ticket_sales_fields=TICKET_SALES_FIELDS,
        season_pass_fields=season_pass_fields,
    )
    return DashboardContainer(
        config=config,
        source=source,
        fetch_dashboard=fetch_dashboard,
    )
