"""
Tests for the Favorability Rollup
=================================

Tests for:
- Percentage rule and rounding
- Bottom-up additivity, with and without filters
- Each filter predicate
- Empty scopes
"""

from datetime import date
from itertools import product

import pytest

from mapa_decisoes.errors import InvalidFilterError
from mapa_decisoes.rollup import (
    DecisionFilters, StatTuple, apply_filters, compute_rollup, group_stats, percentage,
)
from mapa_decisoes.schemas import Outcome, LiabilityType
from mapa_decisoes.scope import (
    AdjudicatorNode, CourtNode, DecisionRecord, DivisionNode, HierarchySnapshot,
)

FAV, DES, PAR, ANA = Outcome.FAVORAVEL, Outcome.DESFAVORAVEL, Outcome.PARCIAL, Outcome.EM_ANALISE


def _snapshot():
    """TRT 1 -> {1ª Turma: [A, B], 2ª Turma: [C]}, TRT 2 -> {1ª Turma: [D]}"""
    return HierarchySnapshot(
        courts=(CourtNode("c1", "TRT 1", "01"), CourtNode("c2", "TRT 2", "02")),
        divisions=(
            DivisionNode("d1", "c1", "1ª Turma"),
            DivisionNode("d2", "c1", "2ª Turma"),
            DivisionNode("d3", "c2", "1ª Turma"),
        ),
        adjudicators=(
            AdjudicatorNode("a", "d1", "Des. A"),
            AdjudicatorNode("b", "d1", "Des. B"),
            AdjudicatorNode("c", "d2", "Des. C"),
            AdjudicatorNode("d", "d3", "Des. D"),
        ),
    )


_seq = iter(range(1, 10_000))


def _dec(adj, outcome, when=date(2024, 3, 10), liability=LiabilityType.SUBSIDIARIA,
         company="V.tal", numero=None, region="01"):
    n = next(_seq)
    return DecisionRecord(
        id=f"dec-{n}",
        adjudicator_id=adj,
        process_number=numero or f"{n:07d}-45.2023.5.{region}.0001",
        decision_date=when,
        outcome=outcome,
        liability=liability,
        upi=False,
        company=company,
        region_code=region,
    )


def _decisions():
    return [
        _dec("a", FAV, date(2024, 1, 5), company="V.tal"),
        _dec("a", FAV, date(2024, 2, 5), liability=LiabilityType.SOLIDARIA),
        _dec("a", DES, date(2024, 2, 20), company="OI"),
        _dec("b", PAR, date(2024, 3, 1)),
        _dec("b", ANA, None),
        _dec("c", DES, date(2023, 12, 31), company="Serede"),
        _dec("c", FAV, date(2024, 6, 30), liability=LiabilityType.SOLIDARIA, company="OI"),
        _dec("d", FAV, date(2024, 4, 1), region="02"),
    ]


# =============================================================================
# Percentage rule
# =============================================================================

class TestPercentage:

    def test_two_of_three(self):
        assert percentage(2, 3) == 67

    def test_half_up(self):
        assert percentage(1, 8) == 13  # 12.5
        assert percentage(1, 3) == 33
        assert percentage(1, 2) == 50

    def test_empty_denominator(self):
        assert percentage(0, 0) == 0

    def test_partial_and_under_review_excluded_from_denominator(self):
        stats = StatTuple()
        for outcome in (FAV, FAV, DES, PAR, ANA):
            stats.add(outcome)

        assert stats.total == 5
        assert stats.percent_favorable == 67
        assert stats.percent_unfavorable == 33

    def test_only_partial_gives_zero(self):
        stats = StatTuple()
        stats.add(PAR)
        stats.add(ANA)
        assert stats.percent_favorable == 0
        assert stats.percent_unfavorable == 0

    def test_bounds(self):
        for fav, unf in product(range(0, 6), repeat=2):
            stats = StatTuple(total=fav + unf, favorable=fav, unfavorable=unf)
            assert 0 <= stats.percent_favorable <= 100
            assert 0 <= stats.percent_unfavorable <= 100

    def test_output_fields(self):
        stats = StatTuple()
        for outcome in (FAV, FAV, DES):
            stats.add(outcome)
        out = stats.to_output()

        assert out.totalDecisoes == 3
        assert out.favoraveis == 2
        assert out.desfavoraveis == 1
        assert out.percentualFavoravel == 67
        assert out.percentualDesfavoravel == 33


# =============================================================================
# Rollup
# =============================================================================

class TestRollup:

    def test_basic_adjudicator_stats(self):
        snapshot = HierarchySnapshot(
            courts=(CourtNode("c1", "TRT 1"),),
            divisions=(DivisionNode("d1", "c1", "1ª Turma"),),
            adjudicators=(AdjudicatorNode("a", "d1", "Des. A"),),
        )
        rollup = compute_rollup(snapshot, [_dec("a", FAV), _dec("a", FAV), _dec("a", DES)])
        adj = rollup.find("a")

        assert adj.stats.total == 3
        assert adj.stats.favorable == 2
        assert adj.stats.unfavorable == 1
        assert adj.stats.percent_favorable == 67

    def test_additivity(self):
        rollup = compute_rollup(_snapshot(), _decisions())

        for court in rollup.courts:
            assert court.stats.total == sum(d.stats.total for d in court.children)
            assert court.stats.favorable == sum(d.stats.favorable for d in court.children)
            for div in court.children:
                assert div.stats.total == sum(a.stats.total for a in div.children)
                assert div.stats.unfavorable == sum(a.stats.unfavorable for a in div.children)
        assert rollup.overall.total == sum(c.stats.total for c in rollup.courts) == 8

    def test_additivity_holds_for_every_filter_combination(self):
        decisions = _decisions()
        date_ranges = [(None, None), (date(2024, 1, 1), None), (None, date(2024, 2, 28)),
                       (date(2024, 2, 1), date(2024, 3, 31))]
        liabilities = [None, LiabilityType.SOLIDARIA, LiabilityType.SUBSIDIARIA]
        companies = [None, "V.tal", "OI"]

        for (start, end), liability, company in product(date_ranges, liabilities, companies):
            filters = DecisionFilters(date_from=start, date_to=end, liability=liability, company=company)
            rollup = compute_rollup(_snapshot(), decisions, filters)
            expected = len(apply_filters(decisions, filters))

            assert rollup.overall.total == expected
            for court in rollup.courts:
                assert court.stats.total == sum(d.stats.total for d in court.children)
                for div in court.children:
                    assert div.stats.total == sum(a.stats.total for a in div.children)

    def test_nodes_without_decisions_are_zeroed(self):
        rollup = compute_rollup(_snapshot(), [])

        assert len(rollup.courts) == 2
        assert len(rollup.adjudicators()) == 4
        assert all(a.stats.total == 0 for a in rollup.adjudicators())
        assert rollup.overall.percent_favorable == 0

    def test_empty_snapshot(self):
        rollup = compute_rollup(HierarchySnapshot(), [])
        assert rollup.courts == []
        assert rollup.overall.total == 0

    def test_decisions_ordered_oldest_first_undated_last(self):
        rollup = compute_rollup(_snapshot(), _decisions())
        b = rollup.find("b")
        assert [d.decision_date for d in b.decisions] == [date(2024, 3, 1), None]

    def test_orphan_decisions_ignored(self):
        rollup = compute_rollup(_snapshot(), [_dec("ghost", FAV), _dec("a", FAV)])
        assert rollup.overall.total == 1

    def test_by_level(self):
        rollup = compute_rollup(_snapshot(), _decisions())

        assert [n.id for n in rollup.by_level("court")] == ["c1", "c2"]
        assert len(rollup.by_level("division")) == 3
        assert len(rollup.by_level("adjudicator")) == 4
        with pytest.raises(InvalidFilterError):
            rollup.by_level("planet")

    def test_group_stats_first_seen_order(self):
        groups = group_stats(_decisions(), key=lambda d: d.company)
        assert list(groups) == ["V.tal", "OI", "Serede"]
        assert groups["OI"].total == 2


# =============================================================================
# Filters
# =============================================================================

class TestFilters:

    def test_date_range_inclusive(self):
        filters = DecisionFilters(date_from=date(2024, 2, 5), date_to=date(2024, 3, 1))
        kept = apply_filters(_decisions(), filters)
        assert sorted(d.decision_date for d in kept) == [
            date(2024, 2, 5), date(2024, 2, 20), date(2024, 3, 1),
        ]

    def test_date_range_drops_undated(self):
        filters = DecisionFilters(date_from=date(2000, 1, 1))
        kept = apply_filters(_decisions(), filters)
        assert all(d.decision_date is not None for d in kept)
        assert len(kept) == 7

    def test_undated_kept_without_date_filter(self):
        assert len(apply_filters(_decisions(), DecisionFilters())) == 8

    def test_liability(self):
        kept = apply_filters(_decisions(), DecisionFilters(liability=LiabilityType.SOLIDARIA))
        assert len(kept) == 2

    def test_liability_as_plain_string(self):
        kept = apply_filters(_decisions(), DecisionFilters(liability="solidaria"))
        assert len(kept) == 2

    def test_company_is_case_insensitive(self):
        kept = apply_filters(_decisions(), DecisionFilters(company=" oi "))
        assert len(kept) == 2

    def test_process_number_substring(self):
        decisions = [
            _dec("a", FAV, numero="0001234-56.2024.5.01.0001"),
            _dec("a", FAV, numero="0009999-56.2024.5.01.0001"),
        ]
        assert len(apply_filters(decisions, DecisionFilters(process_number="1234-56"))) == 1
        assert len(apply_filters(decisions, DecisionFilters(process_number="00012345620245"))) == 1
        assert len(apply_filters(decisions, DecisionFilters(process_number="2024.5.01"))) == 2

    def test_filters_combine_with_and(self):
        filters = DecisionFilters(liability=LiabilityType.SOLIDARIA, company="OI")
        kept = apply_filters(_decisions(), filters)
        assert [d.adjudicator_id for d in kept] == ["c"]

    def test_inverted_date_range_rejected(self):
        filters = DecisionFilters(date_from=date(2024, 5, 1), date_to=date(2024, 1, 1))
        with pytest.raises(InvalidFilterError):
            apply_filters(_decisions(), filters)

    def test_unknown_liability_rejected(self):
        with pytest.raises(InvalidFilterError):
            DecisionFilters(liability="integral").validate()

    def test_filter_with_no_match_gives_zeros(self):
        rollup = compute_rollup(_snapshot(), _decisions(), DecisionFilters(company="Sprink"))
        assert rollup.overall.total == 0
        assert rollup.overall.percent_favorable == 0
        assert len(rollup.adjudicators()) == 4
