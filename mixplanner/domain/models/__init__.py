"""Data models for mixplanner."""

from .metrics import CapacityMetrics, CostMetrics, IncomeTargets, ModifierMetrics, TaxBreakdown
from .portfolio import OptimizationResult, PortfolioCandidate, PortfolioConstraints, PortfolioTotals
from .scenario import (
    CapacityInput,
    CostInput,
    IncomeTargetInput,
    ModifierInput,
    PortfolioConstraintInput,
    ScenarioInput,
    TaxInput,
)
from .service import PricingFences, ResolvedValue, ServiceCandidate, ServiceConfig, Violation

__all__ = [
    "CapacityInput",
    "CapacityMetrics",
    "CostInput",
    "CostMetrics",
    "IncomeTargetInput",
    "IncomeTargets",
    "ModifierInput",
    "ModifierMetrics",
    "OptimizationResult",
    "PortfolioCandidate",
    "PortfolioConstraintInput",
    "PortfolioConstraints",
    "PortfolioTotals",
    "PricingFences",
    "ResolvedValue",
    "ScenarioInput",
    "ServiceCandidate",
    "ServiceConfig",
    "TaxBreakdown",
    "TaxInput",
    "Violation",
]
