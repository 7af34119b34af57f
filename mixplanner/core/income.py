"""Income target resolution.

A target can be entered per year, per working week, per active month or as
a full-year weekly/monthly average. It is resolved to one canonical annual
figure and re-expressed on every other basis.
"""

from __future__ import annotations

from typing import Any, Optional

from mixplanner.core import constants as C
from mixplanner.core.numeric import safe_divide
from mixplanner.domain.models.metrics import CapacityMetrics, IncomeTargets
from mixplanner.domain.models.scenario import IncomeTargetInput, as_input

BASIS_LABELS = {
    "year": "per year",
    "week": "per working week",
    "month": "per active month",
    "avgWeek": "per week (full-year average)",
    "avgMonth": "per month (full-year average)",
}


def to_annual(value: float, basis: str, capacity: CapacityMetrics) -> Optional[float]:
    """Annual figure for ``value`` entered on ``basis``.

    Returns ``None`` when the basis has no capacity to scale by (no working
    weeks for ``week``, no active months for ``month``).
    """
    value = max(value, 0.0)
    if basis == "week":
        return value * capacity.working_weeks if capacity.working_weeks > 0 else None
    if basis == "month":
        return value * capacity.active_months if capacity.active_months > 0 else None
    if basis == "avgWeek":
        return value * C.WEEKS_PER_YEAR
    if basis == "avgMonth":
        return value * C.MONTHS_PER_YEAR
    return value


def from_annual(annual: float, basis: str, capacity: CapacityMetrics) -> Optional[float]:
    """Express an annual figure on ``basis``; ``None`` when undefined."""
    if basis == "week":
        return safe_divide(annual, capacity.working_weeks, None)
    if basis == "month":
        return safe_divide(annual, capacity.active_months, None)
    if basis == "avgWeek":
        return annual / C.WEEKS_PER_YEAR
    if basis == "avgMonth":
        return annual / C.MONTHS_PER_YEAR
    return annual


def convert_target(
    value: float, from_basis: str, to_basis: str, capacity: CapacityMetrics
) -> Optional[float]:
    """Convert a target between bases through the annual figure."""
    annual = to_annual(value, from_basis, capacity)
    if annual is None:
        return None
    return from_annual(annual, to_basis, capacity)


def derive_target_net_defaults(
    capacity: CapacityMetrics, annual: float = C.TARGET_NET_DEFAULT
) -> dict[str, float]:
    """Default target per basis, all equivalent to ``annual`` per year."""
    return {
        "year": annual,
        "week": from_annual(annual, "week", capacity) or 0.0,
        "month": from_annual(annual, "month", capacity) or 0.0,
        "average_week": annual / C.WEEKS_PER_YEAR,
        "average_month": annual / C.MONTHS_PER_YEAR,
    }


def derive_income_targets(
    targets: IncomeTargetInput | dict[str, Any] | None,
    capacity: CapacityMetrics,
) -> IncomeTargets:
    """Resolve the entered income target.

    Args:
        targets: Mode (net/gross), basis and the entered values.
        capacity: Derived capacity metrics.

    Returns:
        IncomeTargets. ``target_net`` is set only in net mode and
        ``target_gross`` only in gross mode; per-week and per-month figures
        are ``None`` when the year has no working weeks or active months.
    """
    data = as_input(IncomeTargetInput, targets)
    basis = data.basis

    target_annual = to_annual(data.value_for(basis), basis, capacity)
    if target_annual is None:
        # No capacity to scale a weekly/monthly figure: use the annual entry
        target_annual = max(data.year, 0.0)

    target_per_week = from_annual(target_annual, "week", capacity)
    target_per_month = from_annual(target_annual, "month", capacity)
    average_week = target_annual / C.WEEKS_PER_YEAR
    average_month = target_annual / C.MONTHS_PER_YEAR

    prefix = "Net target" if data.mode == "net" else "Gross target"
    return IncomeTargets(
        mode=data.mode,
        basis=basis,
        label=f"{prefix} {BASIS_LABELS[basis]}",
        year=target_annual,
        week=target_per_week or 0.0,
        month=target_per_month or 0.0,
        average_week=average_week,
        average_month=average_month,
        target_annual=target_annual,
        target_per_week=target_per_week,
        target_per_month=target_per_month,
        target_average_per_week=average_week,
        target_average_per_month=average_month,
        target_net=target_annual if data.mode == "net" else None,
        target_gross=target_annual if data.mode == "gross" else None,
        has_working_weeks=capacity.working_weeks > 0,
        has_active_months=capacity.active_months > 0,
        defaults=derive_target_net_defaults(capacity),
    )
