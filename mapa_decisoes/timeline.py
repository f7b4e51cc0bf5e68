"""
Monthly Timeline
================

Groups decisions into (year, month) buckets, ascending.

Decisions without a date are left out of every bucket; they still count in
the rollup totals.
"""

from dataclasses import dataclass
from typing import Iterable, List

from .rollup import StatTuple, group_stats
from .scope import DecisionRecord


@dataclass
class MonthBucket:
    year: int
    month: int
    stats: StatTuple

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def bucket_by_month(decisions: Iterable[DecisionRecord]) -> List[MonthBucket]:
    dated = (d for d in decisions if d.decision_date is not None)
    groups = group_stats(dated, key=lambda d: (d.decision_date.year, d.decision_date.month))
    return [
        MonthBucket(year=year, month=month, stats=stats)
        for (year, month), stats in sorted(groups.items())
    ]
