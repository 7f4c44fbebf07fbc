"""
Domain Services Package

Architectural Intent:
- Contains pure domain services turning raw upstream data into dashboard values
"""

from gmdash.domain.services.division_matching import (
    DIVISION_BUCKETS,
    DivisionBucket,
    DivisionMatcher,
)
from gmdash.domain.services.normalizer import (
    normalize_comparison,
    normalize_labor,
    normalize_satisfaction,
    unwrap_payload,
)

__all__ = [
    "DIVISION_BUCKETS",
    "DivisionBucket",
    "DivisionMatcher",
    "normalize_comparison",
    "normalize_labor",
    "normalize_satisfaction",
    "unwrap_payload",
]
