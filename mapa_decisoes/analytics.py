"""
Dashboard Analytics
===================

Read operations for the dashboard. Each call:
1. Reads the scoped hierarchy snapshot and decision set
2. Applies the filters once
3. Feeds the filtered set to the rollup, ranking, timeline or breakdown

Nothing is cached between calls.
"""

from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .breakdown import by_company, by_region
from .errors import ScopeNotFoundError
from .ranking import (
    DEFAULT_LEADERBOARD_SIZE, RankedEntry,
    entries_from_nodes, filter_min_sample, leaderboard,
)
from .rollup import DecisionFilters, HierarchyRollup, NodeRollup, apply_filters, compute_rollup
from .schemas import (
    Instance, CourtOutput, DivisionOutput, AdjudicatorOutput, DecisionOutput,
    RankingOutput, TimelineOutput, CompanyOutput, RegionOutput, StatisticsOutput,
)
from .scope import DecisionRecord, HierarchySnapshot, load_hierarchy, scoped_decisions
from .timeline import bucket_by_month


def _load(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters],
) -> Tuple[HierarchySnapshot, List[DecisionRecord]]:
    snapshot = load_hierarchy(db, tenant_id, instance)
    decisions = apply_filters(scoped_decisions(db, tenant_id, instance), filters)
    return snapshot, decisions


def _rollup(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters],
) -> Tuple[HierarchySnapshot, HierarchyRollup]:
    snapshot, decisions = _load(db, tenant_id, instance, filters)
    # Already filtered
    return snapshot, compute_rollup(snapshot, decisions)


def _narrow(
    snapshot: HierarchySnapshot,
    decisions: List[DecisionRecord],
    court_id: Optional[str],
    division_id: Optional[str],
) -> List[DecisionRecord]:
    if court_id and snapshot.court(court_id) is None:
        raise ScopeNotFoundError(f"Court {court_id} not found")
    if division_id and snapshot.division(division_id) is None:
        raise ScopeNotFoundError(f"Division {division_id} not found")
    if not court_id and not division_id:
        return decisions
    allowed = snapshot.adjudicator_ids_under(court_id=court_id, division_id=division_id)
    return [d for d in decisions if d.adjudicator_id in allowed]


def _decision_output(d: DecisionRecord) -> DecisionOutput:
    return DecisionOutput(
        id=d.id,
        numeroProcesso=d.process_number,
        dataDecisao=d.decision_date,
        resultado=d.outcome,
        responsabilidade=d.liability,
        upi=d.upi,
        empresa=d.company,
        regiao=d.region_code,
    )


# =============================================================================
# Hierarchy levels
# =============================================================================

def court_overview(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
) -> List[CourtOutput]:
    """One row per TRT"""
    snapshot, rollup = _rollup(db, tenant_id, instance, filters)
    return [
        CourtOutput(
            id=court.id,
            nome=court.name,
            regiao=snapshot.court(court.id).region_code,
            totalTurmas=len(court.children),
            totalDesembargadores=sum(len(div.children) for div in court.children),
            **court.stats.output_fields(),
        )
        for court in rollup.courts
    ]


def division_overview(
    db: Session,
    tenant_id: str,
    instance: Instance,
    court_id: str,
    filters: Optional[DecisionFilters] = None,
) -> List[DivisionOutput]:
    """One row per turma/vara of a TRT"""
    _, rollup = _rollup(db, tenant_id, instance, filters)
    court = rollup.find(court_id)
    if court is None or court.level != "court":
        raise ScopeNotFoundError(f"Court {court_id} not found")
    return [
        DivisionOutput(
            id=div.id,
            nome=div.name,
            trtId=court.id,
            totalDesembargadores=len(div.children),
            **div.stats.output_fields(),
        )
        for div in court.children
    ]


def adjudicator_overview(
    db: Session,
    tenant_id: str,
    instance: Instance,
    division_id: str,
    filters: Optional[DecisionFilters] = None,
) -> List[AdjudicatorOutput]:
    """One row per desembargador/juiz of a division, with its decisions"""
    snapshot, rollup = _rollup(db, tenant_id, instance, filters)
    division = rollup.find(division_id)
    if division is None or division.level != "division":
        raise ScopeNotFoundError(f"Division {division_id} not found")
    return [
        AdjudicatorOutput(
            id=adj.id,
            nome=adj.name,
            voto=snapshot.adjudicator(adj.id).role,
            turmaId=division.id,
            decisoes=[_decision_output(d) for d in adj.decisions],
            **adj.stats.output_fields(),
        )
        for adj in division.children
    ]


def statistics_summary(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
) -> StatisticsOutput:
    """Dashboard KPIs"""
    snapshot, rollup = _rollup(db, tenant_id, instance, filters)
    return StatisticsOutput(
        totalTRTs=len(snapshot.courts),
        totalTurmas=len(snapshot.divisions),
        totalDesembargadores=len(snapshot.adjudicators),
        **rollup.overall.output_fields(),
    )


# =============================================================================
# Rankings
# =============================================================================

def _ranking_output(entries: List[RankedEntry]) -> List[RankingOutput]:
    return [
        RankingOutput(
            id=e.id,
            nome=e.name,
            contextLabel=e.context_label,
            totalDecisoes=e.stats.total,
            favoraveis=e.stats.favorable,
            desfavoraveis=e.stats.unfavorable,
            percentualFavoravel=e.stats.percent_favorable,
        )
        for e in entries
    ]


def _in_subtree(node: NodeRollup, snapshot: HierarchySnapshot, court_id: Optional[str], division_id: Optional[str]) -> bool:
    if node.level == "division":
        return (not court_id or node.parent_id == court_id) and (not division_id or node.id == division_id)
    division = snapshot.division(node.parent_id)
    return (not division_id or node.parent_id == division_id) and (not court_id or division.court_id == court_id)


def top_divisions(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
    n: int = DEFAULT_LEADERBOARD_SIZE,
    min_total: int = 0,
    worst: bool = False,
    court_id: Optional[str] = None,
) -> List[RankingOutput]:
    """
    Best (or worst) turmas by favorability.

    min_total is the caller's sample-size policy; 0 keeps every entry.
    """
    snapshot, rollup = _rollup(db, tenant_id, instance, filters)
    if court_id and snapshot.court(court_id) is None:
        raise ScopeNotFoundError(f"Court {court_id} not found")

    nodes = [div for div in rollup.divisions() if _in_subtree(div, snapshot, court_id, None)]
    entries = entries_from_nodes(nodes, context=lambda div: snapshot.court_of_division(div.id).name)
    return _ranking_output(leaderboard(filter_min_sample(entries, min_total), n=n, worst=worst))


def top_adjudicators(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
    n: int = DEFAULT_LEADERBOARD_SIZE,
    min_total: int = 0,
    worst: bool = False,
    court_id: Optional[str] = None,
    division_id: Optional[str] = None,
) -> List[RankingOutput]:
    """Best (or worst) desembargadores/juízes by favorability"""
    snapshot, rollup = _rollup(db, tenant_id, instance, filters)
    if court_id and snapshot.court(court_id) is None:
        raise ScopeNotFoundError(f"Court {court_id} not found")
    if division_id and snapshot.division(division_id) is None:
        raise ScopeNotFoundError(f"Division {division_id} not found")

    def context(adj: NodeRollup) -> str:
        division = snapshot.division(adj.parent_id)
        court = snapshot.court(division.court_id)
        return f"{division.name} - {court.name}"

    nodes = [adj for adj in rollup.adjudicators() if _in_subtree(adj, snapshot, court_id, division_id)]
    entries = entries_from_nodes(nodes, context=context)
    return _ranking_output(leaderboard(filter_min_sample(entries, min_total), n=n, worst=worst))


# =============================================================================
# Timeline & breakdowns
# =============================================================================

def timeline(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
    court_id: Optional[str] = None,
    division_id: Optional[str] = None,
) -> List[TimelineOutput]:
    """Monthly buckets, ascending; undated decisions are left out"""
    snapshot, decisions = _load(db, tenant_id, instance, filters)
    decisions = _narrow(snapshot, decisions, court_id, division_id)
    return [
        TimelineOutput(
            mes=bucket.month,
            ano=bucket.year,
            label=bucket.label,
            totalDecisoes=bucket.stats.total,
            favoraveis=bucket.stats.favorable,
            desfavoraveis=bucket.stats.unfavorable,
            percentualFavoravel=bucket.stats.percent_favorable,
            percentualDesfavoravel=bucket.stats.percent_unfavorable,
        )
        for bucket in bucket_by_month(decisions)
    ]


def company_breakdown(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
) -> List[CompanyOutput]:
    """One row per company present in the filtered set"""
    _, decisions = _load(db, tenant_id, instance, filters)
    return [
        CompanyOutput(
            empresa=company,
            totalDecisoes=stats.total,
            favoraveis=stats.favorable,
            desfavoraveis=stats.unfavorable,
            parciais=stats.partial,
            emAnalise=stats.under_review,
            percentualFavoravel=stats.percent_favorable,
            percentualDesfavoravel=stats.percent_unfavorable,
        )
        for company, stats in by_company(decisions)
    ]


def region_breakdown(
    db: Session,
    tenant_id: str,
    instance: Instance,
    filters: Optional[DecisionFilters] = None,
) -> List[RegionOutput]:
    """One row per macro-region present in the filtered set"""
    _, decisions = _load(db, tenant_id, instance, filters)
    return [
        RegionOutput(
            nome=region,
            totalDecisoes=stats.total,
            favoraveis=stats.favorable,
            desfavoraveis=stats.unfavorable,
            parciais=stats.partial,
            emAnalise=stats.under_review,
            percentualFavoravel=stats.percent_favorable,
            percentualDesfavoravel=stats.percent_unfavorable,
        )
        for region, stats in by_region(decisions)
    ]
