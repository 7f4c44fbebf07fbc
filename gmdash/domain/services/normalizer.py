"""
Data Normalization Service

Architectural Intent:
- Pure transforms from raw upstream workflow JSON to the fixed dashboard schema
- One function per upstream data family: comparison (ticket / season pass
  sales), labor, satisfaction
- Partial or malformed upstream data degrades to None ("no data"), never an
  exception, so one bad payload cannot take down the rest of the dashboard

Design Decisions:
- Wrapper probing ({"data": [...]}, {"results": [...]}) is a separate, explicit
  unwrap step applied before normalization
- Missing or non-numeric fields default to 0; dates default to None
- Functions are idempotent and hold no state besides diagnostic logging
"""

from __future__ import annotations
from typing import Any, Mapping, Optional, Sequence
import logging
import math

from gmdash.domain.services.division_matching import DivisionMatcher
from gmdash.domain.value_objects.comparison import ComparisonMetric, SeasonFigures
from gmdash.domain.value_objects.labor import DivisionEntry, LaborSummary
from gmdash.domain.value_objects.satisfaction import SatisfactionSnapshot

logger = logging.getLogger(__name__)

WRAPPER_KEYS: tuple[str, ...] = ("data", "results")

# upstream field -> SatisfactionSnapshot attribute
SATISFACTION_FIELDS: dict[str, str] = {
    "yesterday_score": "yesterday_score",
    "last_year_yesterday_score": "last_year_yesterday_score",
    "yesterday_compset": "yesterday_compset",
    "last_year_yesterday_compset": "last_year_yesterday_compset",
    "score_difference": "score_difference",
    "percent_change": "percent_change",
}
SATISFACTION_DATE_FIELDS: dict[str, str] = {
    "yesterday_date": "yesterday_date",
    "last_year_yesterday_date": "last_year_yesterday_date",
}

_default_matcher = DivisionMatcher()


def unwrap_payload(raw: Any, keys: Sequence[str] = WRAPPER_KEYS) -> Any:
    """Strip a single wrapper object around a record list.

    The first key in *keys* whose value is a list wins. Anything else is
    returned unchanged.
    """
    if isinstance(raw, Mapping):
        for key in keys:
            if isinstance(raw.get(key), list):
                return raw[key]
    return raw


def to_number(value: Any) -> float:
    """Coerce an upstream value to a finite number, defaulting to 0.

    NaN and infinities, whether strings or floats decoded from JSON, become 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.replace(",", ""))
        except ValueError:
            return 0
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    return 0


def _records(raw: Any) -> list[Mapping[str, Any]]:
    if not isinstance(raw, list):
        return []
    return [r for r in raw if isinstance(r, Mapping)]


def _find(records: list[Mapping[str, Any]], key: str, value: Any) -> Optional[Mapping[str, Any]]:
    return next((r for r in records if r.get(key) == value), None)


def normalize_comparison(
    raw: Any,
    current_key: str,
    current_value: Any,
    previous_value: Any,
    revenue_field: str,
    quantity_field: str,
) -> Optional[ComparisonMetric]:
    """Build a season-over-season comparison from a list of period records.

    Args:
        raw: Upstream records, one per period.
        current_key: Field distinguishing periods (e.g. ``fiscal_year``).
        current_value: Value of *current_key* on the current-season record.
        previous_value: Value of *current_key* on the last-season record.
        revenue_field: Field holding revenue.
        quantity_field: Field holding quantity.

    Returns:
        The comparison, or None when the input is empty or either period is
        missing.
    """
    if not isinstance(raw, list) or not raw:
        logger.warning(
            "normalize_comparison: expected a non-empty list, got %s",
            type(raw).__name__ if raw is not None else "nothing",
        )
        return None

    records = _records(raw)
    current = _find(records, current_key, current_value)
    previous = _find(records, current_key, previous_value)
    if current is None or previous is None:
        logger.warning(
            "normalize_comparison: missing period data "
            "(has_current=%s, has_previous=%s, available=%s)",
            current is not None,
            previous is not None,
            [r.get(current_key) for r in records],
        )
        return None

    def figures(record: Mapping[str, Any]) -> SeasonFigures:
        return SeasonFigures(
            period=record.get(current_key),
            revenue=to_number(record.get(revenue_field)),
            quantity=to_number(record.get(quantity_field)),
        )

    return ComparisonMetric.compare(figures(current), figures(previous))


def normalize_labor(
    raw: Any, matcher: DivisionMatcher = _default_matcher
) -> Optional[LaborSummary]:
    """Consolidate upstream division records into the canonical buckets.

    Every bucket is present in the result, in table order, even when no
    upstream division folded into it. Unmatched divisions are dropped.
    """
    if not isinstance(raw, list) or not raw:
        logger.warning("normalize_labor: expected a non-empty list")
        return None

    totals: dict[str, list[float]] = {name: [0, 0, 0] for name in matcher.bucket_names}
    dropped: list[Any] = []

    for record in _records(raw):
        name = record.get("division") or record.get("divisionName") or ""
        bucket = matcher.match(name if isinstance(name, str) else str(name))
        if bucket is None:
            dropped.append(name)
            continue
        acc = totals[bucket]
        acc[0] += to_number(record.get("totalLabor"))
        acc[1] += to_number(record.get("totalHours"))
        acc[2] += to_number(record.get("revenue"))

    if dropped:
        logger.debug("normalize_labor: ignored divisions %s", dropped)

    return LaborSummary(
        by_division=tuple(
            DivisionEntry(
                division=name,
                total_labor=labor,
                total_hours=hours,
                revenue=revenue,
            )
            for name, (labor, hours, revenue) in totals.items()
        )
    )


def normalize_satisfaction(raw: Any) -> Optional[SatisfactionSnapshot]:
    """Map the first NPS record to a SatisfactionSnapshot.

    Accepts a single record or a list of records; only the first is used.
    """
    record = raw[0] if isinstance(raw, list) and raw else raw
    if not isinstance(record, Mapping) or not record:
        logger.warning("normalize_satisfaction: no usable record")
        return None

    values: dict[str, Any] = {
        attr: to_number(record.get(source)) for source, attr in SATISFACTION_FIELDS.items()
    }
    for source, attr in SATISFACTION_DATE_FIELDS.items():
        date = record.get(source)
        values[attr] = str(date) if date is not None else None
    return SatisfactionSnapshot(**values)
