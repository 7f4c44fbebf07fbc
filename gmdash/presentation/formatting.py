"""Display formatting for dashboard figures (en-US conventions)."""

from __future__ import annotations
from datetime import date, datetime
from typing import Optional, Union

NOT_AVAILABLE = "N/A"

_DATE_FORMATS = {
    "short": "%b {day}",
    "medium": "%b {day}, %Y",
    "long": "%A, %B {day}, %Y",
}


def format_number(value: Optional[float], decimals: int = 0) -> str:
    if value is None:
        return NOT_AVAILABLE
    return f"{value:,.{decimals}f}"


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return NOT_AVAILABLE
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    """Signed percentage, e.g. 13.6 -> "+13.6%"."""
    if value is None:
        return NOT_AVAILABLE
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{decimals}f}%"


def format_compact(value: Optional[float], prefix: str = "") -> str:
    """Axis-style abbreviation: 1_500_000 -> "1.5M", 45_000 -> "45k"."""
    if value is None:
        return NOT_AVAILABLE
    if abs(value) >= 1_000_000:
        return f"{prefix}{value / 1_000_000:.1f}M"
    if abs(value) >= 1_000:
        return f"{prefix}{value / 1_000:.0f}k"
    return f"{prefix}{value:.0f}"


def format_date(value: Union[str, date, None], style: str = "short") -> str:
    """Format an ISO date for display; unparseable input yields ""."""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return ""
    pattern = _DATE_FORMATS.get(style, _DATE_FORMATS["short"])
    return value.strftime(pattern.format(day=value.day))
