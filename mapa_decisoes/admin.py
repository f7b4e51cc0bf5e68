"""
Admin Write Helpers
===================

Explicit admin actions: setup of tenants and courts, single and batch
decision creation for an existing adjudicator, and cascading deletes.

Every helper is scoped by tenant_id + instance; an id outside the scope is
reported as ScopeNotFoundError. Callers own the transaction.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import Tenant, Court, Division, Adjudicator, Decision
from .errors import ScopeNotFoundError, InvalidFilterError
from .normalize import normalize_company
from .reconcile import upsert_decision
from .regions import extract_region_code
from .schemas import Instance, Outcome, LiabilityType

logger = logging.getLogger(__name__)


def create_tenant(db: Session, name: str, primary_company: Optional[str] = None) -> Tenant:
    tenant = Tenant(name=name, primary_company=primary_company)
    db.add(tenant)
    db.flush()
    return tenant


def create_court(
    db: Session,
    tenant_id: str,
    instance: Instance,
    name: str,
    region_code: Optional[str] = None,
) -> Court:
    court = Court(
        tenant_id=tenant_id,
        instance=Instance(instance),
        name=name.strip(),
        region_code=region_code.zfill(2) if region_code else None,
    )
    db.add(court)
    db.flush()
    return court


# =============================================================================
# Scoped lookups
# =============================================================================

def get_court(db: Session, tenant_id: str, instance: Instance, court_id: str) -> Court:
    court = (
        db.query(Court)
        .filter(Court.id == court_id, Court.tenant_id == tenant_id, Court.instance == Instance(instance))
        .first()
    )
    if court is None:
        raise ScopeNotFoundError(f"Court {court_id} not found")
    return court


def get_division(db: Session, tenant_id: str, instance: Instance, division_id: str) -> Division:
    division = (
        db.query(Division)
        .join(Court, Division.court_id == Court.id)
        .filter(
            Division.id == division_id,
            Court.tenant_id == tenant_id,
            Court.instance == Instance(instance),
        )
        .first()
    )
    if division is None:
        raise ScopeNotFoundError(f"Division {division_id} not found")
    return division


def get_adjudicator(db: Session, tenant_id: str, instance: Instance, adjudicator_id: str) -> Adjudicator:
    adjudicator = (
        db.query(Adjudicator)
        .join(Division, Adjudicator.division_id == Division.id)
        .join(Court, Division.court_id == Court.id)
        .filter(
            Adjudicator.id == adjudicator_id,
            Court.tenant_id == tenant_id,
            Court.instance == Instance(instance),
        )
        .first()
    )
    if adjudicator is None:
        raise ScopeNotFoundError(f"Adjudicator {adjudicator_id} not found")
    return adjudicator


# =============================================================================
# Decisions
# =============================================================================

def create_decision(
    db: Session,
    tenant_id: str,
    instance: Instance,
    adjudicator_id: str,
    process_number: str,
    outcome: Outcome,
    decision_date: Optional[date] = None,
    liability: Optional[LiabilityType] = None,
    upi: bool = False,
    company: Optional[str] = None,
) -> Tuple[Decision, str]:
    """
    Create a decision for an existing adjudicator.

    An existing process number in the scope is corrected, not duplicated.
    """
    instance = Instance(instance)
    process_number = (process_number or "").strip()
    if not process_number:
        raise InvalidFilterError("process_number is required")

    adjudicator = get_adjudicator(db, tenant_id, instance, adjudicator_id)
    tenant = db.get(Tenant, tenant_id)
    default_company = normalize_company(
        tenant.primary_company if tenant else None,
        default=get_settings().default_company,
    )

    fields = {
        "adjudicator_id": adjudicator.id,
        "decision_date": decision_date,
        "outcome": Outcome(outcome),
        "liability": LiabilityType(liability) if liability else LiabilityType.SUBSIDIARIA,
        "upi": bool(upi),
        "company": normalize_company(company, default=default_company),
        "region_code": extract_region_code(process_number) or adjudicator.division.court.region_code,
    }
    return upsert_decision(db, tenant_id, instance, process_number, fields)


def create_decisions(
    db: Session,
    tenant_id: str,
    instance: Instance,
    items: Iterable[Dict[str, Any]],
) -> Dict[str, int]:
    """Batch form of create_decision; all-or-nothing within the caller's transaction"""
    counts = {"created": 0, "updated": 0, "skipped": 0}
    for item in items:
        _, status = create_decision(db, tenant_id, instance, **item)
        counts[status] += 1
    return counts


def delete_decision(db: Session, tenant_id: str, instance: Instance, decision_id: str) -> None:
    decision = (
        db.query(Decision)
        .filter(
            Decision.id == decision_id,
            Decision.tenant_id == tenant_id,
            Decision.instance == Instance(instance),
        )
        .first()
    )
    if decision is None:
        raise ScopeNotFoundError(f"Decision {decision_id} not found")
    db.delete(decision)
    db.flush()


# =============================================================================
# Cascading deletes
# =============================================================================

def _count_subtree(divisions: List[Division]) -> Tuple[int, int]:
    adjudicators = [a for d in divisions for a in d.adjudicators]
    decisions = sum(len(a.decisions) for a in adjudicators)
    return len(adjudicators), decisions


def delete_court(db: Session, tenant_id: str, instance: Instance, court_id: str) -> Dict[str, int]:
    """Delete a court with its divisions, adjudicators and decisions"""
    court = get_court(db, tenant_id, instance, court_id)
    adjudicators, decisions = _count_subtree(court.divisions)
    removed = {
        "turmas": len(court.divisions),
        "desembargadores": adjudicators,
        "decisoes": decisions,
    }
    db.delete(court)
    db.flush()
    logger.info(f"Deleted court {court_id} (cascade: {removed})")
    return removed


def delete_division(db: Session, tenant_id: str, instance: Instance, division_id: str) -> Dict[str, int]:
    """Delete a division with its adjudicators and decisions"""
    division = get_division(db, tenant_id, instance, division_id)
    adjudicators, decisions = _count_subtree([division])
    removed = {"desembargadores": adjudicators, "decisoes": decisions}
    db.delete(division)
    db.flush()
    logger.info(f"Deleted division {division_id} (cascade: {removed})")
    return removed
