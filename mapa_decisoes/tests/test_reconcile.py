"""
Tests for Reconciliation / Ingest
=================================

Tests for:
- Division / adjudicator resolution and auto-creation
- Upsert by process number (created / updated / skipped)
- Per-row error collection
- Court resolution
- Row atomicity and batch limits
"""

import pytest

from mapa_decisoes.db.models import Division, Adjudicator, Decision
from mapa_decisoes.errors import BatchTooLargeError, ScopeNotFoundError, RowError
from mapa_decisoes.matching import ExactMatcher, NameMatcher
from mapa_decisoes.reconcile import import_decisions
from mapa_decisoes.schemas import Instance, Outcome, LiabilityType
from mapa_decisoes.tests.conftest import make_row, process_number

SEGUNDA = Instance.SEGUNDA


def _count(store, model, **filters):
    with store.session() as db:
        return db.query(model).filter_by(**filters).count()


def _decision(store, tenant_id, numero, instance=SEGUNDA):
    with store.session() as db:
        d = (
            db.query(Decision)
            .filter_by(tenant_id=tenant_id, instance=instance, process_number=numero)
            .one()
        )
        return {
            "adjudicator": d.adjudicator.name,
            "division": d.adjudicator.division.name,
            "court_id": d.adjudicator.division.court_id,
            "outcome": d.outcome,
            "liability": d.liability,
            "upi": d.upi,
            "company": d.company,
            "region_code": d.region_code,
            "decision_date": d.decision_date,
        }


class _FailingMatcher(NameMatcher):
    """Fails after the division of the row has been created"""

    name = "failing"

    def matches(self, candidate, existing):
        return False

    def find(self, candidate, existing, key=lambda x: x.name):
        raise RowError("matcher exploded")


# =============================================================================
# Hierarchy resolution
# =============================================================================

class TestHierarchyResolution:

    def test_creates_division_adjudicator_and_decision(self, store, scope):
        result = import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1))])

        assert result.success == 1
        assert result.turmasCreated == 1
        assert result.desembargadoresCreated == 1
        assert result.errors == 0

        info = _decision(store, scope["a"], process_number(1))
        assert info["division"] == "1ª Turma"
        assert info["adjudicator"] == "Des. Maria Helena Costa"
        assert info["court_id"] == scope[("a", SEGUNDA, "01")]

    def test_division_match_is_case_insensitive(self, store, scope):
        rows = [
            make_row(process_number(1), turma="1ª Turma"),
            make_row(process_number(2), turma="  1ª TURMA "),
        ]
        result = import_decisions(store, scope["a"], SEGUNDA, rows)

        assert result.success == 2
        assert result.turmasCreated == 1
        assert _count(store, Division) == 1

    def test_fuzzy_merge_attaches_to_existing_adjudicator(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1), relator="Dr. João Silva Santos")])
        result = import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(2), relator="João Silva")])

        assert result.success == 1
        assert result.desembargadoresCreated == 0
        assert _count(store, Adjudicator) == 1
        assert _decision(store, scope["a"], process_number(2))["adjudicator"] == "Dr. João Silva Santos"

    def test_exact_matcher_creates_separate_adjudicator(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1), relator="Dr. João Silva Santos")])
        result = import_decisions(
            store, scope["a"], SEGUNDA,
            [make_row(process_number(2), relator="João Silva")],
            matcher=ExactMatcher(),
        )

        assert result.desembargadoresCreated == 1
        assert _count(store, Adjudicator) == 2

    def test_same_name_in_other_division_is_a_new_adjudicator(self, store, scope):
        rows = [
            make_row(process_number(1), turma="1ª Turma"),
            make_row(process_number(2), turma="2ª Turma"),
        ]
        result = import_decisions(store, scope["a"], SEGUNDA, rows)

        assert result.turmasCreated == 2
        assert result.desembargadoresCreated == 2


class TestCourtResolution:

    def test_court_from_process_number_region(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1, "02"), local="Capital")])
        info = _decision(store, scope["a"], process_number(1, "02"))

        assert info["court_id"] == scope[("a", SEGUNDA, "02")]
        assert info["region_code"] == "02"

    def test_court_from_local_when_number_has_no_region(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row("ABC-1", local="TRT 2")])
        info = _decision(store, scope["a"], "ABC-1")

        assert info["court_id"] == scope[("a", SEGUNDA, "02")]
        assert info["region_code"] == "02"

    def test_unknown_court_is_row_error(self, store, scope):
        result = import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1, "15"), local="Campinas")])

        assert result.errors == 1
        assert "TRT não encontrado" in result.errorDetails[0].error
        assert _count(store, Division) == 0

    def test_explicit_court_id_wins(self, store, scope):
        trt2 = scope[("a", SEGUNDA, "02")]
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1, "01"))], court_id=trt2)

        assert _decision(store, scope["a"], process_number(1, "01"))["court_id"] == trt2

    def test_court_id_from_other_tenant_rejected(self, store, scope):
        foreign = scope[("b", SEGUNDA, "01")]
        with pytest.raises(ScopeNotFoundError):
            import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1))], court_id=foreign)

    def test_court_id_from_other_instance_rejected(self, store, scope):
        other = scope[("a", Instance.PRIMEIRA, "01")]
        with pytest.raises(ScopeNotFoundError):
            import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1))], court_id=other)


# =============================================================================
# Upsert
# =============================================================================

class TestUpsert:

    def test_identical_reimport_is_skipped(self, store, scope):
        rows = [make_row(process_number(i)) for i in range(1, 4)]
        first = import_decisions(store, scope["a"], SEGUNDA, rows)
        second = import_decisions(store, scope["a"], SEGUNDA, rows)

        assert first.success == 3
        assert second.success == 0
        assert second.skipped == 3
        assert second.updated == 0
        assert second.turmasCreated == 0
        assert second.desembargadoresCreated == 0
        assert _count(store, Decision) == 3

    def test_changed_row_is_an_update(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1), resultado="Favorável")])
        result = import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1), resultado="Desfavorável")])

        assert result.updated == 1
        assert result.success == 0
        assert _count(store, Decision) == 1
        assert _decision(store, scope["a"], process_number(1))["outcome"] == Outcome.DESFAVORAVEL

    def test_duplicate_inside_one_batch_updates(self, store, scope):
        rows = [
            make_row(process_number(1), resultado="Favorável"),
            make_row(process_number(1), resultado="Parcial"),
        ]
        result = import_decisions(store, scope["a"], SEGUNDA, rows)

        assert result.success == 1
        assert result.updated == 1
        assert _count(store, Decision) == 1

    def test_same_number_in_other_instance_is_separate(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1))])
        result = import_decisions(
            store, scope["a"], Instance.PRIMEIRA,
            [make_row(process_number(1), turma="1ª Vara", relator="Juiz Carlos Lima")],
        )

        assert result.success == 1
        assert _count(store, Decision) == 2

    def test_defaults_for_optional_fields(self, store, scope):
        import_decisions(store, scope["b"], SEGUNDA, [make_row(process_number(1))])
        info = _decision(store, scope["b"], process_number(1))

        assert info["company"] == "OI"  # tenant B's primary company
        assert info["liability"] == LiabilityType.SUBSIDIARIA
        assert info["upi"] is False

    def test_optional_fields_are_normalized(self, store, scope):
        row = make_row(
            process_number(1),
            responsabilidade="Solidária",
            upi="Sim",
            empresa="SEREDE LTDA",
            dataDecisao="15/01/2024",
        )
        import_decisions(store, scope["a"], SEGUNDA, [row])
        info = _decision(store, scope["a"], process_number(1))

        assert info["liability"] == LiabilityType.SOLIDARIA
        assert info["upi"] is True
        assert info["company"] == "Serede"
        assert info["decision_date"].isoformat() == "2024-01-15"

    def test_unparseable_date_is_stored_as_null(self, store, scope):
        import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1), dataDecisao="sem data")])
        assert _decision(store, scope["a"], process_number(1))["decision_date"] is None


# =============================================================================
# Errors & atomicity
# =============================================================================

class TestRowErrors:

    def test_missing_fields_collected_not_fatal(self, store, scope):
        rows = [
            make_row(process_number(1)),
            make_row(process_number(2), relator=""),
            {"numeroProcesso": process_number(3)},
            make_row(process_number(4)),
        ]
        result = import_decisions(store, scope["a"], SEGUNDA, rows)

        assert result.success == 2
        assert result.errors == 2
        assert [e.index for e in result.errorDetails] == [1, 2]
        assert "relator" in result.errorDetails[0].error
        assert "turma" in result.errorDetails[1].error

    def test_instance_mismatch_is_row_error(self, store, scope):
        result = import_decisions(store, scope["a"], SEGUNDA, [make_row(process_number(1), instancia="primeira")])

        assert result.errors == 1
        assert result.success == 0

    def test_failed_row_leaves_no_orphan_nodes(self, store, scope):
        result = import_decisions(
            store, scope["a"], SEGUNDA,
            [make_row(process_number(1), turma="Turma Nova")],
            matcher=_FailingMatcher(),
        )

        assert result.errors == 1
        assert result.turmasCreated == 0
        assert _count(store, Division) == 0
        assert _count(store, Decision) == 0

    def test_batch_too_large(self, store, scope):
        rows = [make_row(process_number(i)) for i in range(1, 4)]
        with pytest.raises(BatchTooLargeError):
            import_decisions(store, scope["a"], SEGUNDA, rows, max_rows=2)
        assert _count(store, Decision) == 0

    def test_unknown_tenant(self, store, scope):
        with pytest.raises(ScopeNotFoundError):
            import_decisions(store, "no-such-tenant", SEGUNDA, [make_row(process_number(1))])


class TestIngestLock:

    def test_lock_is_per_scope(self, store):
        lock = store.ingest_lock("t1", SEGUNDA)
        assert store.ingest_lock("t1", "segunda") is lock
        assert store.ingest_lock("t1", Instance.PRIMEIRA) is not lock
        assert store.ingest_lock("t2", SEGUNDA) is not lock
