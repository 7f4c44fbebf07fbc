"""
Fetch Dashboard Use Case

Architectural Intent:
- Fetches every upstream source concurrently and normalizes each payload
- Isolates failures per source: one failed fetch leaves its slice None and
  never blocks its siblings
- Publishes a DashboardSnapshot only once all sources have settled

Parallelization Strategy:
- Ticket sales, season pass sales, labor and satisfaction are awaited together
  with asyncio.gather(return_exceptions=True)
- fetch_sales_comparison isolates its two sub-fetches the same way
- fetch_all_data raises DashboardUnavailableError only when every source failed
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Callable, Optional
import asyncio
import logging

from gmdash.domain.ports.dashboard_source_port import (
    DashboardSourcePort,
    Source,
    UpstreamError,
)
from gmdash.domain.services.normalizer import (
    normalize_comparison,
    normalize_labor,
    normalize_satisfaction,
    unwrap_payload,
)
from gmdash.domain.value_objects.comparison import ComparisonMetric
from gmdash.domain.value_objects.labor import LaborSummary
from gmdash.domain.value_objects.satisfaction import SatisfactionSnapshot
from gmdash.domain.value_objects.snapshot import DashboardSnapshot, SalesComparison

logger = logging.getLogger(__name__)


class DashboardUnavailableError(Exception):
    """Every upstream source failed in one fetch cycle."""


@dataclass(frozen=True)
class ComparisonFields:
    """Which upstream fields identify and measure each season."""

    period_key: str
    current: str
    previous: str
    revenue: str
    quantity: str


TICKET_SALES_FIELDS = ComparisonFields(
    period_key="fiscal_year",
    current="This Season",
    previous="Last Season",
    revenue="total_paid_no_tax",
    quantity="quantity_total",
)

SEASON_PASS_FIELDS = ComparisonFields(
    period_key="Fiscal_Year",
    current="FY26",
    previous="FY25",
    revenue="Amount",
    quantity="Quantity",
)


class FetchDashboard:
    """Assembles DashboardSnapshots from a DashboardSourcePort."""

    def __init__(
        self,
        source: DashboardSourcePort,
        ticket_sales_fields: ComparisonFields = TICKET_SALES_FIELDS,
        season_pass_fields: ComparisonFields = SEASON_PASS_FIELDS,
    ) -> None:
        self.source = source
        self.ticket_sales_fields = ticket_sales_fields
        self.season_pass_fields = season_pass_fields

    async def _fetch(self, source: Source, normalize: Callable[[Any], Any]) -> Any:
        try:
            raw = await self.source.fetch(source)
        except UpstreamError as e:
            logger.error(
                "Error fetching %s: %s", source.label, e,
                extra={"source": source.value, "url": e.url, "status": e.status},
            )
            raise UpstreamError(
                f"Failed to fetch {source.label}: {e}", url=e.url, status=e.status
            ) from e

        records = unwrap_payload(raw)
        logger.debug(
            "%s raw response: type=%s length=%s",
            source.label,
            type(records).__name__,
            len(records) if isinstance(records, list) else "N/A",
        )
        result = normalize(records)
        if result is None:
            logger.warning("%s normalization returned no data", source.label)
        return result

    @staticmethod
    def _comparison(fields: ComparisonFields) -> Callable[[Any], Optional[ComparisonMetric]]:
        def normalize(raw: Any) -> Optional[ComparisonMetric]:
            return normalize_comparison(
                raw,
                fields.period_key,
                fields.current,
                fields.previous,
                fields.revenue,
                fields.quantity,
            )
        return normalize

    async def fetch_ticket_sales(self) -> Optional[ComparisonMetric]:
        return await self._fetch(
            Source.TICKET_SALES, self._comparison(self.ticket_sales_fields)
        )

    async def fetch_season_pass_sales(self) -> Optional[ComparisonMetric]:
        return await self._fetch(
            Source.SEASON_PASS_SALES, self._comparison(self.season_pass_fields)
        )

    async def fetch_labor_expenses(self) -> Optional[LaborSummary]:
        return await self._fetch(Source.LABOR, normalize_labor)

    async def fetch_guest_satisfaction(self) -> Optional[SatisfactionSnapshot]:
        return await self._fetch(Source.NPS, normalize_satisfaction)

    async def fetch_sales_comparison(self) -> SalesComparison:
        """Fetch both sales families; a failure in one leaves only it None."""
        ticket_sales, season_pass = await asyncio.gather(
            self.fetch_ticket_sales(),
            self.fetch_season_pass_sales(),
            return_exceptions=True,
        )
        return SalesComparison(
            ticket_sales=_settled(Source.TICKET_SALES, ticket_sales),
            season_pass_sales=_settled(Source.SEASON_PASS_SALES, season_pass),
        )

    async def fetch_all_data(self) -> DashboardSnapshot:
        """Fetch every source and assemble one snapshot.

        Raises:
            DashboardUnavailableError: if every source failed.
        """
        try:
            results = await asyncio.gather(
                self.fetch_ticket_sales(),
                self.fetch_season_pass_sales(),
                self.fetch_labor_expenses(),
                self.fetch_guest_satisfaction(),
                return_exceptions=True,
            )
            sources = (
                Source.TICKET_SALES,
                Source.SEASON_PASS_SALES,
                Source.LABOR,
                Source.NPS,
            )
            failures = [r for r in results if isinstance(r, Exception)]
            if len(failures) == len(results):
                raise DashboardUnavailableError(
                    "All data sources failed: " + "; ".join(str(f) for f in failures)
                )
            ticket_sales, season_pass, labor, satisfaction = (
                _settled(s, r) for s, r in zip(sources, results)
            )
            return DashboardSnapshot(
                sales=SalesComparison(
                    ticket_sales=ticket_sales, season_pass_sales=season_pass
                ),
                labor=labor,
                satisfaction=satisfaction,
                fetched_at=datetime.now(UTC),
            )
        except Exception:
            logger.exception("Error fetching all data")
            raise


def _settled(source: Source, result: Any) -> Any:
    """Return a gathered result, or None (logged) if it was an exception."""
    if isinstance(result, Exception):
        logger.error("Failed to fetch %s: %s", source.label, result)
        return None
    if isinstance(result, BaseException):
        raise result
    return result
