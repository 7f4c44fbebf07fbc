"""
Dashboard Snapshot

Architectural Intent:
- Root aggregate of one fetch cycle: one complete, internally-consistent set
  of normalized data
- Any slice may be None ("no data"), never a partially built object
- Replaced wholesale by the next cycle, never mutated in place
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Optional

from gmdash.domain.value_objects.comparison import ComparisonMetric
from gmdash.domain.value_objects.labor import LaborSummary
from gmdash.domain.value_objects.satisfaction import SatisfactionSnapshot


def _dump(value: Any) -> Any:
    return value.to_dict() if value is not None else None


@dataclass(frozen=True)
class SalesComparison:
    ticket_sales: Optional[ComparisonMetric] = None
    season_pass_sales: Optional[ComparisonMetric] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticketSales": _dump(self.ticket_sales),
            "seasonPassSales": _dump(self.season_pass_sales),
        }


@dataclass(frozen=True)
class DashboardSnapshot:
    sales: SalesComparison = field(default_factory=SalesComparison)
    labor: Optional[LaborSummary] = None
    satisfaction: Optional[SatisfactionSnapshot] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "sales": self.sales.to_dict(),
            "labor": _dump(self.labor),
            "satisfaction": _dump(self.satisfaction),
            "fetchedAt": self.fetched_at.isoformat(),
        }
