"""
Scoped Read Access
==================

The only readers of the hierarchy and decision tables on the analytics path.

Every function takes tenant_id and instance as mandatory leading
parameters and filters on them before anything leaves the database layer.
Callers receive frozen snapshots, never ORM objects, so a read path cannot
mutate or widen its scope.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy.orm import Session

from .db.models import Tenant, Court, Division, Adjudicator, Decision
from .errors import InvalidFilterError
from .schemas import Instance, Outcome, LiabilityType, AdjudicatorRole


@dataclass(frozen=True)
class CourtNode:
    id: str
    name: str
    region_code: Optional[str] = None


@dataclass(frozen=True)
class DivisionNode:
    id: str
    court_id: str
    name: str


@dataclass(frozen=True)
class AdjudicatorNode:
    id: str
    division_id: str
    name: str
    role: Optional[AdjudicatorRole] = None


@dataclass(frozen=True)
class DecisionRecord:
    id: str
    adjudicator_id: str
    process_number: str
    decision_date: Optional[date]
    outcome: Outcome
    liability: Optional[LiabilityType]
    upi: bool
    company: str
    region_code: Optional[str] = None


@dataclass(frozen=True)
class HierarchySnapshot:
    """
    Read-only view of one tenant+instance hierarchy.

    Nodes are kept in a stable order (name, then id).
    """
    courts: Tuple[CourtNode, ...] = ()
    divisions: Tuple[DivisionNode, ...] = ()
    adjudicators: Tuple[AdjudicatorNode, ...] = ()
    _court_by_id: Dict[str, CourtNode] = field(default_factory=dict, repr=False, compare=False)
    _division_by_id: Dict[str, DivisionNode] = field(default_factory=dict, repr=False, compare=False)
    _adjudicator_by_id: Dict[str, AdjudicatorNode] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        self._court_by_id.update({c.id: c for c in self.courts})
        self._division_by_id.update({d.id: d for d in self.divisions})
        self._adjudicator_by_id.update({a.id: a for a in self.adjudicators})

    def court(self, court_id: str) -> Optional[CourtNode]:
        return self._court_by_id.get(court_id)

    def division(self, division_id: str) -> Optional[DivisionNode]:
        return self._division_by_id.get(division_id)

    def adjudicator(self, adjudicator_id: str) -> Optional[AdjudicatorNode]:
        return self._adjudicator_by_id.get(adjudicator_id)

    def divisions_of(self, court_id: str) -> List[DivisionNode]:
        return [d for d in self.divisions if d.court_id == court_id]

    def adjudicators_of(self, division_id: str) -> List[AdjudicatorNode]:
        return [a for a in self.adjudicators if a.division_id == division_id]

    def court_of_division(self, division_id: str) -> Optional[CourtNode]:
        division = self.division(division_id)
        return self.court(division.court_id) if division else None

    def adjudicator_ids_under(
        self,
        court_id: Optional[str] = None,
        division_id: Optional[str] = None,
    ) -> FrozenSet[str]:
        """Adjudicator ids inside a subtree; no arguments means the whole scope"""
        ids = set()
        for adj in self.adjudicators:
            division = self.division(adj.division_id)
            if division is None:
                continue
            if division_id and division.id != division_id:
                continue
            if court_id and division.court_id != court_id:
                continue
            ids.add(adj.id)
        return frozenset(ids)


def _require_scope(tenant_id: str, instance) -> Instance:
    if not tenant_id or not str(tenant_id).strip():
        raise InvalidFilterError("tenant_id is required")
    try:
        return Instance(instance)
    except ValueError:
        raise InvalidFilterError(f"Unknown instance: {instance!r}")


def tenant_exists(db: Session, tenant_id: str) -> bool:
    if not tenant_id:
        return False
    return db.query(Tenant.id).filter(Tenant.id == tenant_id).first() is not None


def load_hierarchy(db: Session, tenant_id: str, instance: Instance) -> HierarchySnapshot:
    """Snapshot of courts, divisions and adjudicators for one scope"""
    instance = _require_scope(tenant_id, instance)

    courts = (
        db.query(Court)
        .filter(Court.tenant_id == tenant_id, Court.instance == instance)
        .order_by(Court.name.asc(), Court.id.asc())
        .all()
    )
    divisions = (
        db.query(Division)
        .join(Court, Division.court_id == Court.id)
        .filter(Court.tenant_id == tenant_id, Court.instance == instance)
        .order_by(Division.name.asc(), Division.id.asc())
        .all()
    )
    adjudicators = (
        db.query(Adjudicator)
        .join(Division, Adjudicator.division_id == Division.id)
        .join(Court, Division.court_id == Court.id)
        .filter(Court.tenant_id == tenant_id, Court.instance == instance)
        .order_by(Adjudicator.name.asc(), Adjudicator.id.asc())
        .all()
    )

    return HierarchySnapshot(
        courts=tuple(CourtNode(c.id, c.name, c.region_code) for c in courts),
        divisions=tuple(DivisionNode(d.id, d.court_id, d.name) for d in divisions),
        adjudicators=tuple(AdjudicatorNode(a.id, a.division_id, a.name, a.role) for a in adjudicators),
    )


def scoped_decisions(db: Session, tenant_id: str, instance: Instance) -> List[DecisionRecord]:
    """
    All decisions of one tenant+instance.

    This is the lowest read of the decisions table; nothing above it can
    ask for an unscoped set.
    """
    instance = _require_scope(tenant_id, instance)

    rows = (
        db.query(Decision)
        .filter(Decision.tenant_id == tenant_id, Decision.instance == instance)
        .order_by(Decision.process_number.asc())
        .all()
    )
    return [
        DecisionRecord(
            id=d.id,
            adjudicator_id=d.adjudicator_id,
            process_number=d.process_number,
            decision_date=d.decision_date,
            outcome=d.outcome,
            liability=d.liability,
            upi=bool(d.upi),
            company=d.company,
            region_code=d.region_code,
        )
        for d in rows
    ]
