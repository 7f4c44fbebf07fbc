from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class SatisfactionSnapshot:
    """
    Value Object holding yesterday's guest satisfaction (NPS) against the same
    day last year and against the competitive set.
    """
    yesterday_score: float = 0
    last_year_yesterday_score: float = 0
    yesterday_compset: float = 0
    last_year_yesterday_compset: float = 0
    score_difference: float = 0
    percent_change: float = 0
    yesterday_date: Optional[str] = None
    last_year_yesterday_date: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "yesterdayScore": self.yesterday_score,
            "lastYearYesterdayScore": self.last_year_yesterday_score,
            "yesterdayCompset": self.yesterday_compset,
            "lastYearYesterdayCompset": self.last_year_yesterday_compset,
            "scoreDifference": self.score_difference,
            "percentChange": self.percent_change,
            "yesterdayDate": self.yesterday_date,
            "lastYearYesterdayDate": self.last_year_yesterday_date,
        }
