"""Unit tests for candidate ranking."""

import random

from mixplanner.domain.calculator.ranking import (
    candidate_rank_key,
    compare_candidates,
    rank_candidates,
    select_best,
)
from mixplanner.domain.models.portfolio import PortfolioCandidate, PortfolioTotals
from mixplanner.domain.models.service import ServiceCandidate, Violation


def _option(service_id, units):
    return ServiceCandidate(
        service_id=service_id,
        units_per_month=units,
        annual_units=units * 10,
        service_days=units * 10,
        price_per_unit=1000,
        revenue=units * 10000,
        direct_cost=0,
        tax_rate=0.4,
        tax=units * 4000,
        net=units * 6000,
        gross_margin=1.0 if units else 0.0,
        fixed_cost_share=0,
        variable_cost_share=0,
        hands_on_weight=1,
        pricing_floor=0,
        pricing_ceiling=2000,
        comfort_floor=0.15,
    )


def _candidate(net, target=50000, violations=0, units=(1.0, 1.0)):
    totals = PortfolioTotals(
        revenue=net,
        direct_cost=0,
        tax=0,
        net=net,
        service_days=0,
        travel_days=0,
        hands_on_days=0,
        hands_on_share=0,
        gross_margin=0,
        target_net=target,
        net_gap=net - target,
    )
    return PortfolioCandidate(
        mix={sid: _option(sid, u) for sid, u in zip(("ops", "qc"), units)},
        totals=totals,
        violations=[Violation(type="serviceDays") for _ in range(violations)],
        meets_target=net >= target,
    )


class TestCompareCandidates:
    def test_fewer_violations_first(self):
        clean = _candidate(40000)
        broken = _candidate(50000, violations=1)
        assert compare_candidates(clean, broken) < 0

    def test_meeting_target_first(self):
        assert compare_candidates(_candidate(50100), _candidate(49990)) < 0

    def test_smallest_surplus_first(self):
        assert compare_candidates(_candidate(50100), _candidate(60000)) < 0

    def test_closest_shortfall_first(self):
        assert compare_candidates(_candidate(49000), _candidate(30000)) < 0

    def test_higher_net_breaks_equal_gaps(self):
        assert compare_candidates(_candidate(65000, target=60000), _candidate(55000)) < 0

    def test_units_break_full_ties(self):
        a = _candidate(50000, target=50000, units=(2.0, 1.0))
        b = _candidate(50000, target=50000, units=(1.0, 2.0))
        assert compare_candidates(b, a) < 0

    def test_identical(self):
        assert compare_candidates(_candidate(50000), _candidate(50000)) == 0


class TestRankCandidates:
    def test_ranks_are_numbered(self):
        ranked = rank_candidates([_candidate(60000), _candidate(51000), _candidate(10000)])
        assert [c.rank for c in ranked] == [1, 2, 3]
        assert ranked[0].totals.net == 51000

    def test_top_n(self):
        ranked = rank_candidates([_candidate(n) for n in (52000, 51000, 53000)], top_n=2)
        assert [c.totals.net for c in ranked] == [51000, 52000]

    def test_order_independent(self):
        candidates = [
            _candidate(net, violations=v, units=(u, 1.0))
            for net, v, u in [
                (50000, 0, 1.0),
                (50000, 0, 0.5),
                (55000, 0, 2.0),
                (49000, 0, 1.5),
                (70000, 1, 3.0),
                (50500, 2, 2.5),
            ]
        ]
        expected = [candidate_rank_key(c) for c in rank_candidates(candidates)]
        rng = random.Random(7)
        for _ in range(20):
            shuffled = candidates[:]
            rng.shuffle(shuffled)
            assert [candidate_rank_key(c) for c in rank_candidates(shuffled)] == expected

    def test_select_best(self):
        candidates = [_candidate(60000), _candidate(50000, units=(0.5, 0.5)), _candidate(50000)]
        assert select_best(candidates).unit_vector() == (0.5, 0.5)
        assert select_best([]) is None
