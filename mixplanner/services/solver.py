"""Scenario pipeline.

Runs the planning stages in order: modifiers, capacity, costs, income
target, tax reserve, service catalogue and portfolio search. Every stage is
a pure function of the scenario; this module only wires them together and
applies the planner settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field

from mixplanner.core import constants as C
from mixplanner.core.capacity import derive_capacity
from mixplanner.core.costs import compute_costs
from mixplanner.core.income import derive_income_targets
from mixplanner.core.logging import get_logger
from mixplanner.core.modifiers import normalize_modifiers
from mixplanner.core.settings import PlannerSettings, get_settings
from mixplanner.core.tax import calculate_tax_reserve
from mixplanner.domain.calculator.service_economics import (
    ServiceSnapshot,
    compute_service_hours,
    compute_service_revenue,
)
from mixplanner.domain.models.metrics import (
    CapacityMetrics,
    CostMetrics,
    IncomeTargets,
    ModifierMetrics,
    TaxBreakdown,
)
from mixplanner.domain.models.portfolio import OptimizationResult
from mixplanner.domain.models.scenario import ScenarioInput, as_input
from mixplanner.domain.models.service import ServiceConfig
from mixplanner.services.catalog import build_service_configs
from mixplanner.services.optimizer import PortfolioOptimizer, SearchProgress

log = get_logger(__name__)

ScenarioLike = ScenarioInput | dict[str, Any] | None


@dataclass(frozen=True)
class ScenarioMetrics:
    """Everything derived from a scenario before the portfolio search."""

    scenario: ScenarioInput
    modifiers: ModifierMetrics
    capacity: CapacityMetrics
    costs: CostMetrics
    income: IncomeTargets
    tax: TaxBreakdown
    target_net: float
    configs: dict[str, ServiceConfig]


class ScenarioResult(BaseModel):
    """Complete plan for a scenario."""

    modifiers: ModifierMetrics
    capacity: CapacityMetrics
    costs: CostMetrics
    income: IncomeTargets
    tax: TaxBreakdown
    target_net: float = Field(..., ge=0, description="Net income the search aims for")
    baseline: dict[str, ServiceSnapshot] = Field(default_factory=dict)
    portfolio: OptimizationResult

    model_config = {"frozen": True}


def resolve_target_net(income: IncomeTargets, tax: TaxBreakdown) -> float:
    """Net target of the search: entered net, or the net implied by a gross target."""
    if income.mode == "gross":
        return max(tax.net_income, 0.0)
    return max(income.target_net or 0.0, 0.0)


class ScenarioSolver:
    """Runs scenarios through the planning pipeline with planner settings.

    Example:
        >>> solver = ScenarioSolver()
        >>> result = solver.solve({"capacity": {"monthsOff": 2}})
        >>> result.portfolio.best.units
    """

    def __init__(self, settings: Optional[PlannerSettings] = None):
        self.settings = settings or get_settings()

    def derive(
        self,
        scenario: ScenarioLike,
        capacity: Optional[CapacityMetrics] = None,
    ) -> ScenarioMetrics:
        """Derive every pre-search stage of ``scenario``.

        Args:
            scenario: Raw or validated scenario.
            capacity: Precomputed capacity, reused instead of re-deriving.
        """
        data = as_input(ScenarioInput, scenario)
        modifiers = normalize_modifiers(data.modifiers)

        session_length = data.session_length
        if "session_length" not in data.model_fields_set:
            session_length = self.settings.default_session_length

        if capacity is None:
            capacity = derive_capacity(data.capacity, modifiers, session_length)
        costs = compute_costs(data.costs, capacity, modifiers)
        income = derive_income_targets(data.income_targets, capacity)
        tax = calculate_tax_reserve(
            data.tax,
            capacity,
            costs,
            income,
            tolerance=self.settings.tax_solver_tolerance,
            max_iterations=self.settings.tax_solver_max_iterations,
            max_expansions=self.settings.tax_solver_max_expansions,
        )
        configs = build_service_configs(data.services)

        return ScenarioMetrics(
            scenario=data,
            modifiers=modifiers,
            capacity=capacity,
            costs=costs,
            income=income,
            tax=tax,
            target_net=resolve_target_net(income, tax),
            configs=configs,
        )

    def optimizer(self, top_n: Optional[int] = None) -> PortfolioOptimizer:
        return PortfolioOptimizer(
            top_n=top_n or 1,
            enable_pruning=self.settings.enable_pruning,
            block_depth=self.settings.block_depth,
            max_combinations=self.settings.max_combinations,
        )

    def search(
        self,
        metrics: ScenarioMetrics,
        top_n: Optional[int] = None,
        progress_callback=None,
        apply_quota: bool = False,
    ) -> OptimizationResult:
        """Portfolio search over derived scenario metrics.

        With ``apply_quota`` the hands-on quota modifier sets the minimum
        hands-on share in place of the baseline band.
        """
        return self.optimizer(top_n).solve(
            metrics.configs,
            metrics.capacity,
            metrics.costs,
            metrics.target_net,
            tax=metrics.tax,
            constraints=metrics.scenario.portfolio_constraints,
            progress_callback=progress_callback,
            hands_on_minimum=metrics.modifiers.hands_on_quota if apply_quota else None,
        )

    def solve(
        self,
        scenario: ScenarioLike,
        top_n: Optional[int] = None,
        capacity: Optional[CapacityMetrics] = None,
        progress_callback=None,
    ) -> ScenarioResult:
        """Run the whole pipeline.

        Args:
            scenario: Raw or validated scenario.
            top_n: Candidates to retain; defaults to the configured top-N.
            capacity: Precomputed capacity metrics.
            progress_callback: Optional callback receiving SearchProgress.

        Returns:
            ScenarioResult with every stage and the ranked portfolio.
        """
        metrics = self.derive(scenario, capacity)
        portfolio = self.search(metrics, top_n or self.settings.default_top_n, progress_callback)

        baseline = {
            service_id: compute_service_revenue(
                config, compute_service_hours(config, metrics.capacity), metrics.costs
            )
            for service_id, config in metrics.configs.items()
        }

        log.info(
            "scenario_solved",
            tax_mode=metrics.tax.mode,
            target_net=round(metrics.target_net, 2),
            working_weeks=round(metrics.capacity.working_weeks, 2),
            meets_target=portfolio.meets_target,
        )
        return ScenarioResult(
            modifiers=metrics.modifiers,
            capacity=metrics.capacity,
            costs=metrics.costs,
            income=metrics.income,
            tax=metrics.tax,
            target_net=metrics.target_net,
            baseline=baseline,
            portfolio=portfolio,
        )


def solve_scenario(scenario: ScenarioLike, settings: Optional[PlannerSettings] = None) -> ScenarioResult:
    """Run the whole pipeline for ``scenario``."""
    return ScenarioSolver(settings).solve(scenario)


def solve_portfolio(
    scenario: ScenarioLike,
    capacity: Optional[CapacityMetrics] = None,
    settings: Optional[PlannerSettings] = None,
) -> OptimizationResult:
    """Best service mix for ``scenario`` with search diagnostics."""
    solver = ScenarioSolver(settings)
    return solver.search(solver.derive(scenario, capacity), top_n=1)


def optimize_service_mix(
    scenario: ScenarioLike,
    top_n: int = C.DEFAULT_TOP_N,
    settings: Optional[PlannerSettings] = None,
) -> OptimizationResult:
    """The ``top_n`` best service mixes for ``scenario``, best first.

    The hands-on quota modifier is enforced as the minimum hands-on share
    unless the portfolio constraints name an explicit target.
    """
    solver = ScenarioSolver(settings)
    return solver.search(solver.derive(scenario), top_n=top_n, apply_quota=True)


__all__ = [
    "ScenarioMetrics",
    "ScenarioResult",
    "ScenarioSolver",
    "SearchProgress",
    "optimize_service_mix",
    "resolve_target_net",
    "solve_portfolio",
    "solve_scenario",
]
