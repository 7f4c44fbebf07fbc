"""
Dashboard Source Port

Architectural Intent:
- Abstract interface for obtaining raw upstream JSON, one call per data family
- Decouples the fetch orchestrator from HTTP, proxying and fixture data

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- fetch() returns the decoded JSON body untouched; unwrapping and
  normalization belong to the caller
- Failures surface as UpstreamError carrying the request context
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class Source(Enum):
    """Upstream workflow sources."""

    TICKET_SALES = "ticket_sales"
    SEASON_PASS_SALES = "season_pass_sales"
    LABOR = "labor"
    NPS = "nps"

    @property
    def label(self) -> str:
        return {
            Source.TICKET_SALES: "ticket sales",
            Source.SEASON_PASS_SALES: "season pass sales",
            Source.LABOR: "labor expenses",
            Source.NPS: "guest satisfaction",
        }[self]


class UpstreamError(Exception):
    """An upstream call failed: transport error, non-2xx status or bad body."""

    def __init__(
        self, message: str, url: str = "", status: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


@runtime_checkable
class DashboardSourcePort(Protocol):
    """Port for fetching raw upstream data for one source."""

    async def fetch(self, source: Source) -> Any:
        """Fetch the raw JSON payload for *source*.

        Raises:
            UpstreamError: if the source could not be fetched or decoded.
        """
        ...
