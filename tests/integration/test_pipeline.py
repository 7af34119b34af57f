"""Integration tests for the planning pipeline.

Runs scenarios end to end: capacity, costs, income target, tax reserve and
the portfolio search over the whole catalogue.
"""

import json
import math

import pytest

from mixplanner.core.settings import PlannerSettings
from mixplanner.services.catalog import SERVICE_IDS
from mixplanner.services.solver import (
    ScenarioSolver,
    optimize_service_mix,
    solve_portfolio,
    solve_scenario,
)


@pytest.fixture
def settings():
    return PlannerSettings(block_depth=3)


class TestConcreteScenario:
    """Two months off, 100% utilisation, 50k net target under a 40% flat rate."""

    @pytest.fixture
    def result(self, concrete_scenario, settings):
        return ScenarioSolver(settings).solve(concrete_scenario)

    def test_capacity(self, result):
        assert result.capacity.active_months == 10
        assert result.capacity.working_weeks == pytest.approx(43.33, abs=0.01)
        assert result.capacity.working_days_per_year == pytest.approx(303.33, abs=0.01)

    def test_costs_and_tax(self, result):
        assert result.costs.annual_variable_costs == pytest.approx(3033.33, abs=0.01)
        assert result.tax.mode == "simple"
        assert result.tax.profit_before_tax == pytest.approx(50000 / 0.6)
        assert result.target_net == 50000

    def test_portfolio_meets_target(self, result):
        best = result.portfolio.best
        assert result.portfolio.meets_target
        assert result.portfolio.violations == []
        assert 0 <= best.totals.net_gap < 5000
        assert set(best.mix) == set(SERVICE_IDS)

    def test_portfolio_within_limits(self, result):
        best = result.portfolio.best
        constraints = result.portfolio.constraints
        assert best.totals.service_days <= constraints.max_service_days + 1e-6
        share = best.totals.hands_on_share
        assert constraints.hands_on_share_min - 1e-6 <= share <= constraints.hands_on_share_max + 1e-6
        assert best.totals.gross_margin >= constraints.comfort_floor - 1e-6

    def test_search_size(self, result):
        portfolio = result.portfolio
        assert portfolio.combinations == math.prod(portfolio.candidate_counts.values())
        assert portfolio.iterations + portfolio.pruned == portfolio.combinations
        assert len(portfolio.candidates) == 5

    def test_baseline(self, result):
        assert list(result.baseline) == list(SERVICE_IDS)
        representation = result.baseline["representation"]
        assert representation.price_per_unit == pytest.approx(2250 * 1.15)
        assert representation.units_per_month == pytest.approx(303.333 * 0.32 / 1.5 / 10, rel=1e-4)

    def test_serialises(self, result):
        payload = json.loads(result.model_dump_json(by_alias=False))
        assert payload["portfolio"]["best"]["meets_target"] is True
        assert payload["capacity"]["active_months"] == 10


def test_default_settings_match(concrete_scenario, settings):
    fast = ScenarioSolver(settings).solve(concrete_scenario, top_n=1)
    default = solve_scenario(concrete_scenario, settings=PlannerSettings(default_top_n=1))
    assert default.portfolio.best.violation_count == fast.portfolio.best.violation_count
    assert default.portfolio.best.totals.net_gap == pytest.approx(fast.portfolio.best.totals.net_gap)


def test_solve_portfolio(concrete_scenario, settings):
    result = solve_portfolio(concrete_scenario, settings=settings)
    assert len(result.candidates) == 1
    assert result.meets_target


def test_optimize_service_mix(concrete_scenario, settings):
    result = optimize_service_mix(concrete_scenario, top_n=3, settings=settings)
    assert [c.rank for c in result.candidates] == [1, 2, 3]
    assert result.best.totals.net_gap >= 0
    assert result.constraints.hands_on_share_min == pytest.approx(0.5)
    assert result.constraints.hands_on_share_max is None


def test_hands_on_quota_sets_minimum_share(concrete_scenario, settings):
    scenario = dict(concrete_scenario, modifiers={"handsOnQuotaPercent": 90})
    quota = optimize_service_mix(scenario, top_n=1, settings=settings)
    banded = solve_portfolio(scenario, settings=settings)

    assert quota.constraints.hands_on_share_min == pytest.approx(0.9)
    assert quota.constraints.hands_on_share_max is None
    assert banded.constraints.hands_on_share_max == pytest.approx(0.66)

    share = quota.best.totals.hands_on_share
    types = [v.type for v in quota.best.violations]
    assert (share < 0.9 - 1e-6) == ("handsOnMin" in types)
    assert "handsOnMax" not in types
    assert (share, quota.best.violation_count) != (
        banded.best.totals.hands_on_share,
        banded.best.violation_count,
    )


def test_explicit_target_overrides_quota(concrete_scenario, settings):
    scenario = dict(
        concrete_scenario,
        modifiers={"handsOnQuotaPercent": 90},
        portfolioConstraints={"handsOnShareTarget": 0.5, "handsOnShareTolerance": 0.2},
    )
    result = optimize_service_mix(scenario, top_n=1, settings=settings)
    assert result.constraints.hands_on_share_min == pytest.approx(0.3)
    assert result.constraints.hands_on_share_max == pytest.approx(0.7)


def test_dutch_regime(dutch_scenario, settings):
    result = ScenarioSolver(settings).solve(dutch_scenario)
    assert result.tax.mode == "dutch2025"
    assert result.tax.converged
    assert abs(result.tax.net_income - 50000) <= 0.5
    assert 0 < result.tax.effective_tax_rate < 0.5
    for option in result.portfolio.best.mix.values():
        assert option.tax_rate == pytest.approx(result.tax.effective_tax_rate)
    assert result.portfolio.meets_target


def test_gross_target(concrete_scenario, settings):
    scenario = dict(concrete_scenario, incomeTargets={"mode": "gross", "basis": "year", "year": 80000})
    result = ScenarioSolver(settings).solve(scenario)
    assert result.income.target_gross == 80000
    assert result.income.target_net is None
    assert result.tax.profit_before_tax == 80000
    assert result.target_net == pytest.approx(48000)
    assert result.portfolio.target_net == pytest.approx(48000)


def test_monthly_target(concrete_scenario, settings):
    scenario = dict(concrete_scenario, incomeTargets={"mode": "net", "basis": "month", "month": 5000})
    result = ScenarioSolver(settings).solve(scenario)
    assert result.income.target_annual == pytest.approx(50000)
    assert result.target_net == pytest.approx(50000)


def test_year_off(concrete_scenario, settings):
    scenario = dict(concrete_scenario)
    scenario["capacity"] = dict(concrete_scenario["capacity"], monthsOff=12)
    result = ScenarioSolver(settings).solve(scenario)
    assert result.capacity.working_weeks == 0
    assert not result.portfolio.meets_target
    assert all(units == 0 for units in result.portfolio.best.units.values())


def test_service_override(concrete_scenario, settings):
    scenario = dict(concrete_scenario, services={"intel": {"pricePerUnit": 5000}})
    result = ScenarioSolver(settings).solve(scenario)
    assert result.baseline["intel"].price_per_unit == 5000
    assert result.baseline["intel"].price_source == "override"


def test_garbage_input_does_not_raise(settings):
    scenario = {
        "capacity": {"monthsOff": "abc", "utilizationPercent": None, "daysOffWeek": 99},
        "costs": {"taxRatePercent": "high", "fixedCosts": -5},
        "incomeTargets": {"mode": "sideways", "basis": "fortnight", "year": "lots"},
        "tax": {"mode": "martian"},
    }
    result = ScenarioSolver(settings).solve(scenario)
    assert result.portfolio.best is not None
