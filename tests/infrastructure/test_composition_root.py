"""Tests for composition root DI container."""

import dataclasses

import pytest

from gmdash.domain.ports.dashboard_source_port import Source
from gmdash.infrastructure.config import (
    ClientConfig,
    ConfigurationError,
    DashboardConfig,
    EndpointsConfig,
    ProxyConfig,
    SalesConfig,
)

ENDPOINTS = EndpointsConfig(
    ticket_sales="https://n8n.test/webhook/tickets",
    season_pass_sales="https://n8n.test/webhook/passes",
    labor="https://n8n.test/webhook/labor",
    nps="https://n8n.test/webhook/nps",
)


class TestCompositionRoot:
    def test_create_container_local_data(self):
        from gmdash.composition_root import DashboardContainer, create_container
        from gmdash.infrastructure.adapters.fixture_source import FixtureDashboardSource

        config = DashboardConfig(client=ClientConfig(use_local_data=True))
        container = create_container(config)

        assert isinstance(container, DashboardContainer)
        assert isinstance(container.source, FixtureDashboardSource)
        assert container.fetch_dashboard.source is container.source
        assert container.config is config

    def test_live_mode_requires_endpoints(self):
        from gmdash.composition_root import create_container

        with pytest.raises(ConfigurationError, match="Missing required"):
            create_container(DashboardConfig())

    def test_live_mode_uses_http_source(self):
        from gmdash.composition_root import create_container
        from gmdash.infrastructure.adapters.http_source import HttpDashboardSource

        config = DashboardConfig(
            endpoints=ENDPOINTS,
            proxy=ProxyConfig(upstream_url="https://n8n.test"),
            client=ClientConfig(proxy_base_url="http://localhost:5173"),
        )
        container = create_container(config)

        assert isinstance(container.source, HttpDashboardSource)
        assert container.source.url_for(Source.LABOR) == "http://localhost:5173/api/n8n/webhook/labor"

    def test_season_pass_labels_from_config(self):
        from gmdash.composition_root import create_container

        config = DashboardConfig(
            client=ClientConfig(use_local_data=True),
            sales=SalesConfig(season_pass_current="FY25", season_pass_previous="FY24"),
        )
        fields = create_container(config).fetch_dashboard.season_pass_fields

        assert fields.current == "FY25"
        assert fields.previous == "FY24"
        assert fields.period_key == "Fiscal_Year"

    @pytest.mark.asyncio
    async def test_local_data_end_to_end(self):
        from gmdash.composition_root import create_container

        config = DashboardConfig(client=ClientConfig(use_local_data=True))
        snapshot = await create_container(config).fetch_dashboard.fetch_all_data()

        assert snapshot.sales.ticket_sales.current_season.period == "This Season"
        assert snapshot.sales.season_pass_sales.current_season.period == "FY26"
        assert [d.division for d in snapshot.labor.by_division] == [
            "Guest Services", "Hospitality", "Mountain Operations", "Food & Beverage",
        ]
        assert snapshot.satisfaction.yesterday_score == 62.4

    @pytest.mark.asyncio
    async def test_local_data_excludes_unmatched_divisions(self):
        from gmdash.composition_root import create_container

        config = dataclasses.replace(DashboardConfig(), client=ClientConfig(use_local_data=True))
        labor = (await create_container(config).fetch_dashboard.fetch_all_data()).labor
        guest = labor.by_division[0]

        assert guest.total_labor == pytest.approx(412350.5 + 98210.25 + 76540)
        assert guest.revenue == pytest.approx(1650400 + 402300)
