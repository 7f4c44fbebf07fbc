"""
Labor Value Objects

Architectural Intent:
- Consolidated labor cost per canonical division and in aggregate
- percentOfRevenue is always round(labor / revenue * 100, 2), or 0 when
  revenue <= 0
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any


def percent_of_revenue(labor: float, revenue: float) -> float:
    if revenue <= 0:
        return 0
    return round(labor / revenue * 100, 2)


@dataclass(frozen=True)
class DivisionEntry:
    """Labor totals for one consolidated division."""

    division: str
    total_labor: float = 0
    total_hours: float = 0
    revenue: float = 0

    @property
    def percent_of_revenue(self) -> float:
        return percent_of_revenue(self.total_labor, self.revenue)

    def to_dict(self) -> dict[str, Any]:
        return {
            "division": self.division,
            "totalLabor": self.total_labor,
            "totalHours": self.total_hours,
            "revenue": self.revenue,
            "percentOfRevenue": self.percent_of_revenue,
        }


@dataclass(frozen=True)
class LaborSummary:
    """Labor totals across all consolidated divisions."""

    by_division: tuple[DivisionEntry, ...]

    @property
    def total_labor(self) -> float:
        return sum(d.total_labor for d in self.by_division)

    @property
    def total_hours(self) -> float:
        return sum(d.total_hours for d in self.by_division)

    @property
    def total_revenue(self) -> float:
        return sum(d.revenue for d in self.by_division)

    @property
    def percent_of_revenue(self) -> float:
        return percent_of_revenue(self.total_labor, self.total_revenue)

    def ranked(self) -> list[DivisionEntry]:
        """Divisions ordered by labor-to-revenue ratio, highest first."""
        return sorted(self.by_division, key=lambda d: d.percent_of_revenue, reverse=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLabor": self.total_labor,
            "totalHours": self.total_hours,
            "totalRevenue": self.total_revenue,
            "percentOfRevenue": self.percent_of_revenue,
            "byDivision": [d.to_dict() for d in self.by_division],
        }
