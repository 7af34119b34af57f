"""Service catalogue, portfolio search, pipeline and sensitivity sweeps."""

from .catalog import SERVICE_DEFAULTS, SERVICE_IDS, build_service_configs
from .candidates import build_service_candidates, build_unit_range
from .optimizer import PortfolioOptimizer, resolve_constraints
from .sensitivity import run_sensitivity
from .solver import (
    ScenarioResult,
    ScenarioSolver,
    optimize_service_mix,
    solve_portfolio,
    solve_scenario,
)

__all__ = [
    "SERVICE_DEFAULTS",
    "SERVICE_IDS",
    "build_service_configs",
    "build_service_candidates",
    "build_unit_range",
    "PortfolioOptimizer",
    "resolve_constraints",
    "run_sensitivity",
    "ScenarioResult",
    "ScenarioSolver",
    "optimize_service_mix",
    "solve_portfolio",
    "solve_scenario",
]
