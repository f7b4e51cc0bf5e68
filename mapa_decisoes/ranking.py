"""
Leaderboards
============

Top-N (and bottom-N) by favorability over one level of a rollup.

Ordering:
- best:  percentualFavoravel desc, total desc, name asc
- worst: percentualFavoravel asc,  total desc, name asc

No minimum sample size is enforced here; `total` is exposed so callers can
drop thin entries with `filter_min_sample` before ranking.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .normalize import normalize_name
from .rollup import NodeRollup, StatTuple

DEFAULT_LEADERBOARD_SIZE = 5


@dataclass(frozen=True)
class RankedEntry:
    id: str
    name: str
    context_label: str
    stats: StatTuple


def entries_from_nodes(
    nodes: Iterable[NodeRollup],
    context: Optional[Callable[[NodeRollup], str]] = None,
) -> List[RankedEntry]:
    return [
        RankedEntry(
            id=node.id,
            name=node.name,
            context_label=context(node) if context else "",
            stats=node.stats,
        )
        for node in nodes
    ]


def filter_min_sample(entries: Iterable[RankedEntry], min_total: int) -> List[RankedEntry]:
    """Caller-side cutoff: keep entries with at least min_total decisions"""
    return [e for e in entries if e.stats.total >= min_total]


def _sort_key(entry: RankedEntry, worst: bool):
    pct = entry.stats.percent_favorable
    return (
        pct if worst else -pct,
        -entry.stats.total,
        normalize_name(entry.name),
        entry.id,
    )


def leaderboard(
    entries: Iterable[RankedEntry],
    n: int = DEFAULT_LEADERBOARD_SIZE,
    worst: bool = False,
) -> List[RankedEntry]:
    """N best (or worst) entries; n <= 0 returns an empty list"""
    if n <= 0:
        return []
    ranked = sorted(entries, key=lambda e: _sort_key(e, worst))
    return ranked[:n]
