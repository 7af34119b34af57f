"""Annual capacity model.

Turns time off, utilisation, seasonality and travel into working weeks,
working days, billable days and billable hours for one year.
"""

from __future__ import annotations

from typing import Any, Optional

from mixplanner.core import constants as C
from mixplanner.core.modifiers import normalize_modifiers
from mixplanner.core.numeric import clamp, safe_divide
from mixplanner.domain.models.metrics import CapacityMetrics, ModifierMetrics
from mixplanner.domain.models.scenario import CapacityInput, as_input


def derive_capacity(
    capacity: CapacityInput | dict[str, Any] | None = None,
    modifiers: ModifierMetrics | dict[str, Any] | None = None,
    session_length: Optional[float] = C.DEFAULT_SESSION_LENGTH,
) -> CapacityMetrics:
    """Derive annual capacity metrics.

    Args:
        capacity: Time off, utilisation and travel inputs.
        modifiers: Normalised modifiers (or a raw modifier record).
        session_length: Hours per billable session. ``None`` or a value <= 0
            leaves billable hours unset.

    Returns:
        CapacityMetrics with every value finite and non-negative.
    """
    data = as_input(CapacityInput, capacity)
    if not isinstance(modifiers, ModifierMetrics):
        modifiers = normalize_modifiers(modifiers)

    # Time off
    months_off = clamp(data.months_off, 0, C.MONTHS_PER_YEAR)
    active_months = C.MONTHS_PER_YEAR - months_off
    active_month_share = active_months / C.MONTHS_PER_YEAR

    weeks_off = clamp(data.weeks_off_cycle, 0, C.WEEKS_PER_CYCLE)
    working_weeks_per_cycle = C.WEEKS_PER_CYCLE - weeks_off
    weeks_share = working_weeks_per_cycle / C.WEEKS_PER_CYCLE

    days_off = clamp(data.days_off_week, 0, C.BASE_WORK_DAYS_PER_WEEK)
    working_days_per_week = C.BASE_WORK_DAYS_PER_WEEK - days_off

    seasonality = clamp(modifiers.seasonality, 0, 1)
    seasonality_penalty = max(1 - seasonality, C.MIN_SEASONALITY_PENALTY)

    working_weeks = max(
        C.WEEKS_PER_YEAR * active_month_share * weeks_share * seasonality_penalty, 0.0
    )
    working_days_per_year = working_weeks * working_days_per_week

    # Utilisation
    utilization_percent = clamp(data.utilization_percent, 0, 100)
    utilization_rate = clamp(utilization_percent / 100 * seasonality_penalty, 0, 1)
    billable_weeks = working_weeks * utilization_rate
    billable_days_per_year = working_days_per_year * utilization_rate

    # Travel
    friction_multiplier = 1 + max(modifiers.travel_friction, 0.0)
    per_month = clamp(data.travel_days_per_month, 0, C.MAX_TRAVEL_DAYS_PER_MONTH)
    per_cycle = clamp(data.travel_days_per_cycle, 0, C.MAX_TRAVEL_DAYS_PER_CYCLE)
    cycles_per_year = (
        working_weeks / C.WEEKS_PER_CYCLE if working_weeks > 0 else C.FALLBACK_CYCLES_PER_YEAR
    )
    if data.travel_days_per_year > 0:
        travel_days_per_year = data.travel_days_per_year
    else:
        travel_days_per_year = max(per_month * active_months, per_cycle * cycles_per_year)
    travel_days_per_year *= friction_multiplier

    travel_allowance_days = max(min(travel_days_per_year, max(working_days_per_year, 0.0)), 0.0)
    travel_allowance_share = min(safe_divide(travel_allowance_days, working_days_per_year), 1.0)
    travel_allowance_billable_share = min(
        safe_divide(travel_allowance_days, billable_days_per_year), 1.0
    )
    travel_weeks_per_year = safe_divide(travel_days_per_year, working_days_per_week)
    billable_days_after_travel = max(billable_days_per_year - travel_allowance_days, 0.0)

    # Sessions
    if session_length is not None and session_length > 0:
        billable_hours_per_year = billable_days_after_travel * session_length
    else:
        session_length = None
        billable_hours_per_year = None

    return CapacityMetrics(
        months_off=months_off,
        active_months=active_months,
        active_month_share=active_month_share,
        weeks_off_per_cycle=weeks_off,
        working_weeks_per_cycle=working_weeks_per_cycle,
        weeks_share=weeks_share,
        days_off_per_week=days_off,
        working_days_per_week=working_days_per_week,
        working_weeks=working_weeks,
        working_days_per_year=working_days_per_year,
        seasonality_percent=modifiers.seasonality_percent,
        seasonality_penalty=seasonality_penalty,
        travel_friction_percent=modifiers.travel_friction_percent,
        travel_friction_multiplier=friction_multiplier,
        utilization_percent=utilization_percent,
        utilization_rate=utilization_rate,
        billable_weeks=billable_weeks,
        billable_days_per_year=billable_days_per_year,
        travel_days_per_month=per_month * friction_multiplier,
        travel_days_per_cycle=per_cycle * friction_multiplier,
        travel_days_per_year=travel_days_per_year,
        travel_weeks_per_year=travel_weeks_per_year,
        travel_allowance_days=travel_allowance_days,
        travel_allowance_share=travel_allowance_share,
        travel_allowance_billable_share=travel_allowance_billable_share,
        billable_days_after_travel=billable_days_after_travel,
        session_length=session_length,
        billable_hours_per_year=billable_hours_per_year,
    )
