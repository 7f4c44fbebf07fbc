"""
Season Comparison Value Objects

Architectural Intent:
- Immutable season-over-season comparison for one sales family
- Built fresh each fetch cycle by the normalizer, never mutated
- to_dict() emits the camelCase schema consumed by the browser bundle
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional


def percent_change(current: float, previous: float) -> float:
    """Percent change from *previous* to *current*; 0 when previous <= 0."""
    if previous <= 0:
        return 0
    return (current - previous) / previous * 100


@dataclass(frozen=True)
class SeasonFigures:
    """Revenue and quantity for one season."""

    period: Optional[str]
    revenue: float
    quantity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "revenue": self.revenue,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class Change:
    """Absolute and percent change between two values."""

    percent_change: float
    absolute_change: float

    @staticmethod
    def between(current: float, previous: float) -> Change:
        return Change(
            percent_change=percent_change(current, previous),
            absolute_change=current - previous,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentChange": self.percent_change,
            "absoluteChange": self.absolute_change,
        }


@dataclass(frozen=True)
class ComparisonMetric:
    """Current season vs. last season for revenue and quantity."""

    current_season: SeasonFigures
    last_season: SeasonFigures
    revenue_comparison: Change
    quantity_comparison: Change

    @staticmethod
    def compare(current: SeasonFigures, previous: SeasonFigures) -> ComparisonMetric:
        return ComparisonMetric(
            current_season=current,
            last_season=previous,
            revenue_comparison=Change.between(current.revenue, previous.revenue),
            quantity_comparison=Change.between(current.quantity, previous.quantity),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentSeason": self.current_season.to_dict(),
            "lastSeason": self.last_season.to_dict(),
            "revenueComparison": self.revenue_comparison.to_dict(),
            "quantityComparison": self.quantity_comparison.to_dict(),
        }
