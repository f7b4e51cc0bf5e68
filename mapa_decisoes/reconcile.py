"""
Reconciliation / Ingest
=======================

Turns spreadsheet rows into Decisions, resolving or creating the division
and adjudicator each row names, and upserting the decision by process
number within tenant + instance.

Per row:
1. Validate required fields (turma, relator, numeroProcesso)
2. Resolve the court (batch court_id, else region code, else `local`)
3. Resolve the division by case-insensitive name, creating it if absent
4. Resolve the adjudicator through a NameMatcher, creating it if absent
5. Normalize outcome / liability / UPI / company / date
6. Upsert the decision: created, updated, or skipped when nothing changed

Each row runs in its own SAVEPOINT, so a failing row leaves no orphaned
nodes behind. The batch holds the (tenant, instance) ingest lock.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import Tenant, Court, Division, Adjudicator, Decision
from .db.session import DecisionStore
from .errors import (
    BatchTooLargeError, ScopeNotFoundError, RowError,
    RowValidationError, CourtResolutionError,
)
from .matching import NameMatcher, get_matcher
from .normalize import (
    normalize_label, normalize_outcome, normalize_liability, normalize_upi,
    normalize_company, parse_decision_date,
)
from .regions import extract_region_code
from .schemas import Instance, ImportRow, ImportResult, ImportRowError, AdjudicatorRole

logger = logging.getLogger(__name__)

# Decision columns a correction may change
MUTABLE_FIELDS = (
    "adjudicator_id",
    "decision_date",
    "outcome",
    "liability",
    "upi",
    "company",
    "region_code",
)

_LOCAL_TRT_PATTERN = re.compile(r"trt\W*(\d{1,2})\b", re.IGNORECASE)


@dataclass
class RowOutcome:
    """What happened to one row"""
    status: str  # created | updated | skipped
    decision_id: str
    division_created: bool = False
    adjudicator_created: bool = False


# =============================================================================
# Decision upsert (shared with the admin write path)
# =============================================================================

def upsert_decision(
    db: Session,
    tenant_id: str,
    instance: Instance,
    process_number: str,
    fields: Mapping[str, Any],
) -> Tuple[Decision, str]:
    """
    Insert or correct the decision keyed by (tenant, instance, process number).

    Returns the decision and "created", "updated" or "skipped".
    """
    existing = (
        db.query(Decision)
        .filter(
            Decision.tenant_id == tenant_id,
            Decision.instance == instance,
            Decision.process_number == process_number,
        )
        .first()
    )

    if existing is None:
        decision = Decision(
            tenant_id=tenant_id,
            instance=instance,
            process_number=process_number,
            **fields,
        )
        db.add(decision)
        db.flush()
        return decision, "created"

    changed = [name for name in MUTABLE_FIELDS if name in fields and getattr(existing, name) != fields[name]]
    if not changed:
        return existing, "skipped"

    for name in changed:
        setattr(existing, name, fields[name])
    db.flush()
    return existing, "updated"


# =============================================================================
# Hierarchy resolution
# =============================================================================

def _scope_courts(db: Session, tenant_id: str, instance: Instance) -> List[Court]:
    return (
        db.query(Court)
        .filter(Court.tenant_id == tenant_id, Court.instance == instance)
        .order_by(Court.name.asc(), Court.id.asc())
        .all()
    )


def _region_code_from_local(local: Optional[str]) -> Optional[str]:
    if not local:
        return None
    match = _LOCAL_TRT_PATTERN.search(local)
    if match:
        return match.group(1).zfill(2)
    return None


def resolve_court(courts: List[Court], process_number: str, local: Optional[str]) -> Court:
    """
    Court for a row: region code from the process number, then from
    `local` ("TRT 2"), then an exact name match on `local`.
    """
    for code in (extract_region_code(process_number), _region_code_from_local(local)):
        if not code:
            continue
        for court in courts:
            if court.region_code == code:
                return court

    wanted = normalize_label(local)
    if wanted:
        for court in courts:
            if normalize_label(court.name) == wanted:
                return court

    raise CourtResolutionError(
        f"TRT não encontrado para o processo {process_number} (local: {local or '-'})"
    )


def resolve_division(db: Session, court: Court, name: str) -> Tuple[Division, bool]:
    """Exact case-insensitive match within the court, else create"""
    wanted = normalize_label(name)
    divisions = (
        db.query(Division)
        .filter(Division.court_id == court.id)
        .order_by(Division.name.asc(), Division.id.asc())
        .all()
    )
    for division in divisions:
        if normalize_label(division.name) == wanted:
            return division, False

    division = Division(court_id=court.id, name=name.strip())
    db.add(division)
    db.flush()
    logger.info(f"Created division '{division.name}' in court '{court.name}'")
    return division, True


def resolve_adjudicator(
    db: Session,
    division: Division,
    name: str,
    matcher: NameMatcher,
) -> Tuple[Adjudicator, bool]:
    """First matching adjudicator in (name, id) order, else create"""
    candidates = (
        db.query(Adjudicator)
        .filter(Adjudicator.division_id == division.id)
        .order_by(Adjudicator.name.asc(), Adjudicator.id.asc())
        .all()
    )
    found = matcher.find(name, candidates)
    if found is not None:
        return found, False

    adjudicator = Adjudicator(division_id=division.id, name=name.strip(), role=AdjudicatorRole.TITULAR)
    db.add(adjudicator)
    db.flush()
    logger.info(f"Created adjudicator '{adjudicator.name}' in division '{division.name}'")
    return adjudicator, True


# =============================================================================
# Rows
# =============================================================================

def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def validate_row(row: ImportRow, instance: Instance) -> None:
    missing = [
        label for label, value in (
            ("turma", row.turma),
            ("relator", row.relator),
            ("numeroProcesso", row.numero_processo),
        )
        if not _clean(value)
    ]
    if missing:
        raise RowValidationError(f"Campos obrigatórios ausentes: {', '.join(missing)}")

    if _clean(row.instancia):
        try:
            row_instance = Instance(_clean(row.instancia).lower())
        except ValueError:
            raise RowValidationError(f"Instância inválida: {row.instancia}")
        if row_instance != instance:
            raise RowValidationError(
                f"Instância da linha ({row_instance.value}) difere da importação ({instance.value})"
            )


def reconcile_row(
    db: Session,
    tenant_id: str,
    instance: Instance,
    row: ImportRow,
    courts: List[Court],
    matcher: NameMatcher,
    default_company: str,
    target_court: Optional[Court] = None,
) -> RowOutcome:
    """Resolve hierarchy and upsert one decision. Raises RowError on bad input."""
    validate_row(row, instance)

    process_number = _clean(row.numero_processo)
    court = target_court or resolve_court(courts, process_number, row.local)
    division, division_created = resolve_division(db, court, _clean(row.turma))
    adjudicator, adjudicator_created = resolve_adjudicator(db, division, _clean(row.relator), matcher)

    fields = {
        "adjudicator_id": adjudicator.id,
        "decision_date": parse_decision_date(row.data_decisao),
        "outcome": normalize_outcome(row.resultado),
        "liability": normalize_liability(row.responsabilidade),
        "upi": normalize_upi(row.upi),
        "company": normalize_company(row.empresa, default=default_company),
        "region_code": extract_region_code(process_number) or court.region_code,
    }
    decision, status = upsert_decision(db, tenant_id, instance, process_number, fields)

    return RowOutcome(
        status=status,
        decision_id=decision.id,
        division_created=division_created,
        adjudicator_created=adjudicator_created,
    )


def _get_scoped_court(db: Session, tenant_id: str, instance: Instance, court_id: str) -> Court:
    court = (
        db.query(Court)
        .filter(Court.id == court_id, Court.tenant_id == tenant_id, Court.instance == instance)
        .first()
    )
    if court is None:
        raise ScopeNotFoundError(f"Court {court_id} not found")
    return court


def import_decisions(
    store: DecisionStore,
    tenant_id: str,
    instance: Instance,
    rows: Iterable[Union[ImportRow, Dict[str, Any]]],
    court_id: Optional[str] = None,
    matcher: Optional[NameMatcher] = None,
    max_rows: Optional[int] = None,
) -> ImportResult:
    """
    Import a batch of rows into one tenant+instance scope.

    Bad rows are reported in errorDetails and never abort the batch.
    Raises BatchTooLargeError before touching the store, and
    ScopeNotFoundError for an unknown tenant or court_id.
    """
    settings = get_settings()
    instance = Instance(instance)
    rows = [r if isinstance(r, ImportRow) else ImportRow.model_validate(r) for r in rows]

    limit = max_rows if max_rows is not None else settings.import_max_rows
    if len(rows) > limit:
        raise BatchTooLargeError(len(rows), limit)

    matcher = matcher or get_matcher(settings.adjudicator_matcher)
    result = ImportResult()

    with store.ingest_lock(tenant_id, instance):
        with store.session() as db:
            tenant = db.get(Tenant, tenant_id)
            if tenant is None:
                raise ScopeNotFoundError(f"Tenant {tenant_id} not found")

            default_company = normalize_company(tenant.primary_company, default=settings.default_company)
            target_court = _get_scoped_court(db, tenant_id, instance, court_id) if court_id else None
            courts = _scope_courts(db, tenant_id, instance)

            for index, row in enumerate(rows):
                try:
                    with db.begin_nested():
                        outcome = reconcile_row(
                            db, tenant_id, instance, row, courts, matcher,
                            default_company, target_court=target_court,
                        )
                except RowError as e:
                    _record_error(result, index, str(e))
                    continue
                except SQLAlchemyError as e:
                    logger.error(f"Import row {index} failed: {e}", exc_info=True)
                    _record_error(result, index, f"Erro ao gravar linha: {e.__class__.__name__}")
                    continue

                if outcome.status == "created":
                    result.success += 1
                elif outcome.status == "updated":
                    result.updated += 1
                else:
                    result.skipped += 1
                if outcome.division_created:
                    result.turmasCreated += 1
                if outcome.adjudicator_created:
                    result.desembargadoresCreated += 1

    logger.info(
        f"Import tenant={tenant_id} instance={instance.value}: "
        f"{result.success} created, {result.updated} updated, {result.skipped} skipped, "
        f"{result.errors} errors, {result.turmasCreated} divisions and "
        f"{result.desembargadoresCreated} adjudicators created"
    )
    return result


def _record_error(result: ImportResult, index: int, message: str) -> None:
    result.errors += 1
    result.errorDetails.append(ImportRowError(index=index, error=message))
    logger.warning(f"Import row {index} rejected: {message}")
