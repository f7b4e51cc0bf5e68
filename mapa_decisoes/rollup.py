"""
Favorability Rollup
===================

Filters a scoped decision set once, then computes additive counts and
percentages for every Court, Division and Adjudicator.

Percentage rule (used by every view):
    percentualFavoravel = round(favorable / (favorable + unfavorable) * 100)
Partial and under-review decisions count toward total but not toward the
denominator. Rounding is half-up.

Rollups are built bottom-up by summing children, so a Division's total is
always the sum of its Adjudicators' totals and a Court's total the sum of
its Divisions'.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Hashable, Iterable, List, Optional

from .errors import InvalidFilterError
from .scope import DecisionRecord, HierarchySnapshot
from .schemas import Outcome, LiabilityType, StatsOutput

logger = logging.getLogger(__name__)


def percentage(part: int, denominator: int) -> int:
    """Integer percentage, half-up; 0 when the denominator is empty"""
    if denominator <= 0:
        return 0
    return (200 * part + denominator) // (2 * denominator)


# =============================================================================
# Statistic tuple
# =============================================================================

@dataclass
class StatTuple:
    """Counts for one node or group"""
    total: int = 0
    favorable: int = 0
    unfavorable: int = 0
    partial: int = 0
    under_review: int = 0

    def add(self, outcome: Outcome) -> None:
        self.total += 1
        if outcome == Outcome.FAVORAVEL:
            self.favorable += 1
        elif outcome == Outcome.DESFAVORAVEL:
            self.unfavorable += 1
        elif outcome == Outcome.PARCIAL:
            self.partial += 1
        else:
            self.under_review += 1

    def merge(self, other: "StatTuple") -> "StatTuple":
        self.total += other.total
        self.favorable += other.favorable
        self.unfavorable += other.unfavorable
        self.partial += other.partial
        self.under_review += other.under_review
        return self

    @property
    def resolved(self) -> int:
        return self.favorable + self.unfavorable

    @property
    def percent_favorable(self) -> int:
        return percentage(self.favorable, self.resolved)

    @property
    def percent_unfavorable(self) -> int:
        return percentage(self.unfavorable, self.resolved)

    def to_output(self) -> StatsOutput:
        return StatsOutput(**self.output_fields())

    def output_fields(self) -> Dict[str, int]:
        return {
            "totalDecisoes": self.total,
            "favoraveis": self.favorable,
            "desfavoraveis": self.unfavorable,
            "parciais": self.partial,
            "emAnalise": self.under_review,
            "percentualFavoravel": self.percent_favorable,
            "percentualDesfavoravel": self.percent_unfavorable,
        }


def stats_for(decisions: Iterable[DecisionRecord]) -> StatTuple:
    stats = StatTuple()
    for d in decisions:
        stats.add(d.outcome)
    return stats


def group_stats(
    decisions: Iterable[DecisionRecord],
    key: Callable[[DecisionRecord], Hashable],
) -> "OrderedDict[Hashable, StatTuple]":
    """
    Stat tuple per grouping key, in first-seen order.

    Shared by the hierarchy rollup (key = adjudicator id) and the grouped
    breakdowns (key = company, region).
    """
    groups: "OrderedDict[Hashable, StatTuple]" = OrderedDict()
    for d in decisions:
        k = key(d)
        stats = groups.get(k)
        if stats is None:
            stats = groups[k] = StatTuple()
        stats.add(d.outcome)
    return groups


# =============================================================================
# Filters
# =============================================================================

@dataclass(frozen=True)
class DecisionFilters:
    """
    Optional predicates over a decision. Inactive when None.

    With a date range active, decisions without a date are excluded: they
    cannot be placed inside the range.
    """
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    liability: Optional[LiabilityType] = None
    company: Optional[str] = None
    process_number: Optional[str] = None

    def validate(self) -> "DecisionFilters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise InvalidFilterError(
                f"date_from ({self.date_from.isoformat()}) is after date_to ({self.date_to.isoformat()})"
            )
        if self.liability is not None:
            try:
                LiabilityType(self.liability)
            except ValueError:
                raise InvalidFilterError(f"Unknown liability type: {self.liability!r}")
        return self

    @property
    def has_date_range(self) -> bool:
        return self.date_from is not None or self.date_to is not None

    def matches(self, d: DecisionRecord) -> bool:
        if self.has_date_range:
            if d.decision_date is None:
                return False
            if self.date_from and d.decision_date < self.date_from:
                return False
            if self.date_to and d.decision_date > self.date_to:
                return False

        if self.liability is not None and d.liability != self.liability:
            return False

        if self.company and (d.company or "").casefold() != self.company.strip().casefold():
            return False

        if self.process_number and not _process_number_contains(d.process_number, self.process_number):
            return False

        return True


def _process_number_contains(process_number: str, query: str) -> bool:
    query = query.strip()
    if not query:
        return True
    if query.casefold() in (process_number or "").casefold():
        return True
    # Users often type the number without punctuation
    digits = re.sub(r"\D", "", query)
    return bool(digits) and digits in re.sub(r"\D", "", process_number or "")


def apply_filters(
    decisions: Iterable[DecisionRecord],
    filters: Optional[DecisionFilters] = None,
) -> List[DecisionRecord]:
    """Apply all active filters once; a decision passes all or is dropped"""
    if filters is None:
        return list(decisions)
    filters.validate()
    return [d for d in decisions if filters.matches(d)]


# =============================================================================
# Hierarchy rollup
# =============================================================================

@dataclass
class NodeRollup:
    """Rollup for one hierarchy node"""
    id: str
    name: str
    level: str  # court | division | adjudicator
    parent_id: Optional[str]
    stats: StatTuple = field(default_factory=StatTuple)
    children: List["NodeRollup"] = field(default_factory=list)
    decisions: List[DecisionRecord] = field(default_factory=list)


@dataclass
class HierarchyRollup:
    """Rollup for a whole tenant+instance scope"""
    courts: List[NodeRollup] = field(default_factory=list)
    overall: StatTuple = field(default_factory=StatTuple)

    def divisions(self) -> List[NodeRollup]:
        return [div for court in self.courts for div in court.children]

    def adjudicators(self) -> List[NodeRollup]:
        return [adj for div in self.divisions() for adj in div.children]

    def by_level(self, level: str) -> List[NodeRollup]:
        if level == "court":
            return list(self.courts)
        if level == "division":
            return self.divisions()
        if level == "adjudicator":
            return self.adjudicators()
        raise InvalidFilterError(f"Unknown hierarchy level: {level!r}")

    def find(self, node_id: str) -> Optional[NodeRollup]:
        for court in self.courts:
            if court.id == node_id:
                return court
            for div in court.children:
                if div.id == node_id:
                    return div
                for adj in div.children:
                    if adj.id == node_id:
                        return adj
        return None


def compute_rollup(
    snapshot: HierarchySnapshot,
    decisions: Iterable[DecisionRecord],
    filters: Optional[DecisionFilters] = None,
) -> HierarchyRollup:
    """
    Rollup every node of the snapshot over the filtered decisions.

    Nodes with no matching decisions are kept with zeroed tuples.
    """
    filtered = apply_filters(decisions, filters)

    by_adjudicator: Dict[str, List[DecisionRecord]] = {}
    orphans = 0
    for d in filtered:
        if snapshot.adjudicator(d.adjudicator_id) is None:
            orphans += 1
            continue
        by_adjudicator.setdefault(d.adjudicator_id, []).append(d)
    if orphans:
        logger.warning(f"Rollup: {orphans} decisions reference adjudicators outside the snapshot")

    adjudicator_stats = group_stats(
        (d for ds in by_adjudicator.values() for d in ds),
        key=lambda d: d.adjudicator_id,
    )

    result = HierarchyRollup()
    for court in snapshot.courts:
        court_node = NodeRollup(court.id, court.name, "court", None)
        for division in snapshot.divisions_of(court.id):
            div_node = NodeRollup(division.id, division.name, "division", court.id)
            for adj in snapshot.adjudicators_of(division.id):
                adj_node = NodeRollup(
                    adj.id,
                    adj.name,
                    "adjudicator",
                    division.id,
                    stats=StatTuple().merge(adjudicator_stats.get(adj.id, StatTuple())),
                    decisions=sorted(by_adjudicator.get(adj.id, []), key=_decision_order),
                )
                div_node.stats.merge(adj_node.stats)
                div_node.children.append(adj_node)
            court_node.stats.merge(div_node.stats)
            court_node.children.append(div_node)
        result.overall.merge(court_node.stats)
        result.courts.append(court_node)

    return result


def _decision_order(d: DecisionRecord):
    # Dated decisions first, oldest to newest, then by process number
    return (d.decision_date is None, d.decision_date or date.min, d.process_number)
