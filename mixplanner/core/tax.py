"""Tax reserve calculation.

Two regimes are supported:

* ``simple``: a flat manual rate, ``profit = net / (1 - rate)``.
* ``dutch2025``: the 2025 Dutch entrepreneur regime (self-employed and
  starter deductions, MKB profit exemption, two income-tax brackets and the
  ZVW health contribution). The profit that yields a requested net income is
  found by bisection on the forward model, which is monotone in profit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from mixplanner.core import constants as C
from mixplanner.core.logging import get_logger
from mixplanner.core.numeric import clamp
from mixplanner.domain.models.metrics import (
    CapacityMetrics,
    CostMetrics,
    IncomeTargets,
    TaxBreakdown,
)
from mixplanner.domain.models.scenario import TaxInput, as_input

log = get_logger(__name__)


@dataclass(frozen=True)
class TaxSettings:
    """Dutch 2025 deduction toggles."""

    zelfstandigenaftrek: bool = True
    startersaftrek: bool = False
    mkb_vrijstelling: bool = True
    include_zvw: bool = True

    @classmethod
    def from_input(cls, tax: TaxInput) -> "TaxSettings":
        return cls(
            zelfstandigenaftrek=tax.zelfstandigenaftrek,
            startersaftrek=tax.startersaftrek,
            mkb_vrijstelling=tax.mkb_vrijstelling,
            include_zvw=tax.include_zvw,
        )


def resolve_tax_mode(tax: TaxInput | dict[str, Any] | None) -> str:
    """Tax mode name; anything unknown resolves to ``simple``."""
    return as_input(TaxInput, tax).mode


def resolve_tax_settings(tax: TaxInput | dict[str, Any] | None) -> TaxSettings:
    """Deduction toggles with documented defaults for missing entries."""
    return TaxSettings.from_input(as_input(TaxInput, tax))


def compute_progressive_tax(
    income: float,
    brackets: tuple[tuple[float, float], ...] = C.INCOME_TAX_BRACKETS_2025,
) -> float:
    """Tax due on ``income`` over ordered ``(upper_bound, rate)`` brackets."""
    if income <= 0:
        return 0.0

    tax = 0.0
    lower = 0.0
    for upper, rate in brackets:
        if income <= lower:
            break
        taxable = min(income, upper) - lower
        tax += taxable * rate
        lower = upper
    return tax


def compute_tax_breakdown(profit_before_tax: float, settings: TaxSettings | None = None) -> TaxBreakdown:
    """Forward Dutch 2025 model for a given profit before tax.

    Args:
        profit_before_tax: Annual profit; negative values are treated as 0.
        settings: Deduction toggles.

    Returns:
        TaxBreakdown with ``net_income = profit - income_tax - zvw``.
    """
    settings = settings or TaxSettings()
    profit = max(profit_before_tax, 0.0) if math.isfinite(profit_before_tax) else 0.0

    zelfstandigenaftrek = min(C.ZELFSTANDIGENAFTREK_2025, profit) if settings.zelfstandigenaftrek else 0.0
    startersaftrek = (
        min(C.STARTERSAFTREK_2025, max(profit - zelfstandigenaftrek, 0.0))
        if settings.startersaftrek
        else 0.0
    )

    taxable_before_mkb = max(profit - zelfstandigenaftrek - startersaftrek, 0.0)
    mkb_rate = C.MKB_WINSTVRIJSTELLING_RATE_2025 if settings.mkb_vrijstelling else 0.0
    mkb_vrijstelling = taxable_before_mkb * mkb_rate
    taxable_after_mkb = max(taxable_before_mkb - mkb_vrijstelling, 0.0)

    income_tax = compute_progressive_tax(taxable_after_mkb)
    zvw_base = max(min(taxable_before_mkb, C.ZVW_MAX_BASE_2025), 0.0)
    zvw_contribution = zvw_base * C.ZVW_RATE_2025 if settings.include_zvw else 0.0

    tax_reserve = income_tax + zvw_contribution
    return TaxBreakdown(
        mode=C.TAX_MODE_DUTCH_2025,
        profit_before_tax=profit,
        zelfstandigenaftrek=zelfstandigenaftrek,
        startersaftrek=startersaftrek,
        taxable_profit_before_mkb=taxable_before_mkb,
        mkb_vrijstelling_rate=mkb_rate,
        mkb_vrijstelling=mkb_vrijstelling,
        taxable_profit_after_mkb=taxable_after_mkb,
        income_tax=income_tax,
        zvw_base=zvw_base,
        zvw_contribution=zvw_contribution,
        tax_reserve=tax_reserve,
        net_income=profit - tax_reserve,
        effective_tax_rate=tax_reserve / profit if profit > 0 else 0.0,
    )


def solve_tax_breakdown(
    target_net: float,
    settings: TaxSettings | None = None,
    manual_rate: float = 0.0,
    tolerance: float = C.TAX_SOLVER_TOLERANCE,
    max_iterations: int = C.TAX_SOLVER_MAX_ITERATIONS,
    max_expansions: int = C.TAX_SOLVER_MAX_EXPANSIONS,
) -> TaxBreakdown:
    """Find the profit before tax whose net income matches ``target_net``.

    The lower bound starts at the target itself (tax is never negative); the
    upper bound is seeded from the manual rate and grown by 1.5x until it
    yields enough net income. Bisection stops within ``tolerance`` or after
    ``max_iterations`` midpoints; the last midpoint is returned with
    ``converged=False`` in the latter case.

    Args:
        target_net: Required annual net income.
        settings: Deduction toggles.
        manual_rate: Flat rate used only to seed the upper bound.
        tolerance: Accepted absolute gap on net income.
        max_iterations: Bisection cap.
        max_expansions: Cap on upper-bound growth steps.

    Returns:
        TaxBreakdown carrying ``iterations``, ``converged`` and ``residual``.
    """
    settings = settings or TaxSettings()
    if target_net is None or not math.isfinite(target_net) or target_net <= 0:
        return compute_tax_breakdown(0.0, settings)

    low = target_net
    low_result = compute_tax_breakdown(low, settings)
    if abs(low_result.net_income - target_net) <= tolerance or low_result.net_income > target_net:
        return low_result.with_target(target_net, 0, True)

    rate = clamp(manual_rate, 0.0, C.MAX_MANUAL_TAX_GUESS)
    high = max(target_net / max(1 - rate, C.MIN_NET_SHARE_GUESS), target_net + 1)
    expansions = 0
    while compute_tax_breakdown(high, settings).net_income < target_net and expansions < max_expansions:
        low = high
        high *= C.TAX_SOLVER_GROWTH
        expansions += 1

    result = low_result
    for iteration in range(1, max_iterations + 1):
        mid = (low + high) / 2
        result = compute_tax_breakdown(mid, settings)
        gap = result.net_income - target_net
        if abs(gap) <= tolerance:
            return result.with_target(target_net, iteration, True)
        if gap < 0:
            low = mid
        else:
            high = mid

    log.warning(
        "tax_solver_iteration_cap",
        target_net=target_net,
        profit_before_tax=result.profit_before_tax,
        residual=result.net_income - target_net,
        iterations=max_iterations,
    )
    return result.with_target(target_net, max_iterations, False)


def calculate_simple_tax_reserve(target_net: float, tax_rate: float) -> TaxBreakdown:
    """Flat-rate reserve: ``profit = target / (1 - rate)``.

    At a rate of 99.9% or more the profit is taken as the target itself so
    the division stays defined.
    """
    target = max(target_net, 0.0) if math.isfinite(target_net) else 0.0
    rate = clamp(tax_rate, 0.0, 0.999)
    profit = target if rate >= 0.999 else target / (1 - rate)
    reserve = max(profit - target, 0.0)
    return TaxBreakdown(
        mode=C.TAX_MODE_SIMPLE,
        target_net=target,
        profit_before_tax=profit,
        income_tax=reserve,
        zvw_contribution=0.0,
        tax_reserve=reserve,
        net_income=profit - reserve,
        effective_tax_rate=rate,
    )


def calculate_dutch_tax_2025(
    target_net: float,
    settings: TaxSettings | None = None,
    manual_rate: float = 0.0,
    tolerance: float = C.TAX_SOLVER_TOLERANCE,
    max_iterations: int = C.TAX_SOLVER_MAX_ITERATIONS,
    max_expansions: int = C.TAX_SOLVER_MAX_EXPANSIONS,
) -> TaxBreakdown:
    """Dutch 2025 reserve for a net income target."""
    return solve_tax_breakdown(
        target_net,
        settings,
        manual_rate=manual_rate,
        tolerance=tolerance,
        max_iterations=max_iterations,
        max_expansions=max_expansions,
    )


def tax_on_gross(gross_profit: float, mode: str, settings: TaxSettings, tax_rate: float) -> TaxBreakdown:
    """Forward tax model for a target entered as gross profit."""
    gross = max(gross_profit, 0.0) if math.isfinite(gross_profit) else 0.0
    if mode == C.TAX_MODE_DUTCH_2025:
        result = compute_tax_breakdown(gross, settings)
    else:
        rate = clamp(tax_rate, 0.0, 0.999)
        reserve = gross * rate
        result = TaxBreakdown(
            mode=C.TAX_MODE_SIMPLE,
            profit_before_tax=gross,
            income_tax=reserve,
            tax_reserve=reserve,
            net_income=gross - reserve,
            effective_tax_rate=rate,
        )
    return result.with_target(result.net_income, 0, True)


def calculate_tax_reserve(
    tax: TaxInput | dict[str, Any] | None,
    capacity: Optional[CapacityMetrics],
    costs: CostMetrics,
    income: IncomeTargets,
    tolerance: float = C.TAX_SOLVER_TOLERANCE,
    max_iterations: int = C.TAX_SOLVER_MAX_ITERATIONS,
    max_expansions: int = C.TAX_SOLVER_MAX_EXPANSIONS,
) -> TaxBreakdown:
    """Tax reserve for the scenario's income target, dispatched on tax mode.

    In net mode the reserve is solved backwards from the net target. In gross
    mode the target is a profit before tax and the reserve follows forward;
    the implied ``net_income`` then serves as the net target downstream.

    The reserve depends only on annual figures; ``capacity`` is not read.
    """
    data = as_input(TaxInput, tax)
    settings = TaxSettings.from_input(data)

    if income.mode == "gross":
        return tax_on_gross(income.target_gross or 0.0, data.mode, settings, costs.tax_rate)

    target_net = income.target_net or 0.0
    if data.mode == C.TAX_MODE_DUTCH_2025:
        return calculate_dutch_tax_2025(
            target_net,
            settings,
            manual_rate=costs.tax_rate,
            tolerance=tolerance,
            max_iterations=max_iterations,
            max_expansions=max_expansions,
        )
    return calculate_simple_tax_reserve(target_net, costs.tax_rate)
