"""
Division Matching Service

Architectural Intent:
- Folds free-text upstream division names into the four canonical labor buckets
- Priority-ordered matcher: exact alias match first, then fuzzy containment
- Fuzzy hits are logged so ambiguous upstream names surface in diagnostics

Matching Rules:
- Comparison is case-insensitive on whitespace-trimmed names
- Exact: the name equals one of a bucket's aliases (any bucket)
- Fuzzy: the name contains an alias or an alias contains the name, buckets
  checked in table order so Guest Services wins over Hospitality, etc.
- Empty names never match; unmatched names are dropped by the caller
- Blank or whitespace-only names are dropped, not folded into the first bucket
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging

logger = logging.getLogger(__name__)

GUEST_SERVICES = "Guest Services"
HOSPITALITY = "Hospitality"
MOUNTAIN_OPERATIONS = "Mountain Operations"
FOOD_AND_BEVERAGE = "Food & Beverage"


@dataclass(frozen=True)
class DivisionBucket:
    name: str
    aliases: tuple[str, ...]


DIVISION_BUCKETS: tuple[DivisionBucket, ...] = (
    DivisionBucket(
        GUEST_SERVICES,
        ("Ski School", "Indoor Guest Services", "Outdoor Guest Services"),
    ),
    DivisionBucket(HOSPITALITY, ("Lodging", "Community Services")),
    DivisionBucket(MOUNTAIN_OPERATIONS, ("Mountain Operations",)),
    DivisionBucket(FOOD_AND_BEVERAGE, ("Food & Beverage", "Food and Beverage", "F&B")),
)


class DivisionMatcher:
    """Resolves upstream division names to canonical bucket names."""

    def __init__(self, buckets: tuple[DivisionBucket, ...] = DIVISION_BUCKETS) -> None:
        self.buckets = buckets
        self._exact: dict[str, str] = {}
        for bucket in buckets:
            for alias in bucket.aliases:
                self._exact.setdefault(alias.lower(), bucket.name)

    @property
    def bucket_names(self) -> list[str]:
        return [b.name for b in self.buckets]

    def match(self, division_name: Optional[str]) -> Optional[str]:
        normalized = (division_name or "").strip().lower()
        if not normalized:
            return None

        exact = self._exact.get(normalized)
        if exact is not None:
            return exact

        for bucket in self.buckets:
            for alias in bucket.aliases:
                target = alias.lower()
                if target in normalized or normalized in target:
                    logger.debug(
                        "Fuzzy division match: %r -> %s (alias %r)",
                        division_name,
                        bucket.name,
                        alias,
                    )
                    return bucket.name
        return None
