"""
Grouped Breakdowns
==================

The rollup calculator keyed by a decision attribute instead of hierarchy
membership. One row per distinct key present in the filtered set.
"""

from typing import Callable, Hashable, Iterable, List, Tuple

from .regions import macro_region_for
from .rollup import StatTuple, group_stats
from .scope import DecisionRecord


def breakdown(
    decisions: Iterable[DecisionRecord],
    key: Callable[[DecisionRecord], Hashable],
) -> List[Tuple[Hashable, StatTuple]]:
    """Groups ordered by total desc, then key"""
    groups = group_stats(decisions, key)
    return sorted(groups.items(), key=lambda item: (-item[1].total, str(item[0])))


def by_company(decisions: Iterable[DecisionRecord]) -> List[Tuple[Hashable, StatTuple]]:
    return breakdown(decisions, key=lambda d: d.company)


def by_region(decisions: Iterable[DecisionRecord]) -> List[Tuple[Hashable, StatTuple]]:
    return breakdown(decisions, key=lambda d: macro_region_for(d.region_code))
