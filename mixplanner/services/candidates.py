"""Discrete volume candidates per service.

Each service is searched over a small set of units-per-month values: zero,
multiples of its baseline volume, any explicit override, and a coarse grid
up to an upper bound derived from baseline and capacity.
"""

from __future__ import annotations

from typing import Optional

from mixplanner.core import constants as C
from mixplanner.core.numeric import round_units
from mixplanner.domain.calculator.config_resolution import resolve_units_per_month
from mixplanner.domain.calculator.service_economics import (
    compute_service_hours,
    evaluate_service_option,
)
from mixplanner.domain.models.metrics import CapacityMetrics, CostMetrics, TaxBreakdown
from mixplanner.domain.models.service import ServiceCandidate, ServiceConfig


def build_unit_range(config: ServiceConfig, capacity: CapacityMetrics) -> list[float]:
    """Sorted, de-duplicated units-per-month values to search for a service.

    The upper bound is the largest of 1.5x baseline, 1.1x the volume that
    would fill all billable capacity, and baseline plus two units. The grid
    step is 0.5 for small bounds, else a sixth of the bound.
    """
    baseline = compute_service_hours(config, capacity)
    base_units = baseline.units_per_month
    active_months = baseline.active_months
    capacity_units = baseline.billable_days / active_months / baseline.days_per_unit

    upper = max(base_units * 1.5, capacity_units * 1.1, base_units + 2, 0.0)
    if upper <= 6:
        step = C.FINE_UNIT_STEP
    else:
        step = max(round_units(upper / C.UNIT_GRID_STEPS) or 1.0, C.FINE_UNIT_STEP)

    values = {0.0}
    if base_units > 0:
        values.update(round_units(base_units * multiplier) for multiplier in C.UNIT_MULTIPLIERS)

    explicit = resolve_units_per_month(config, active_months)
    if explicit is not None:
        values.add(round_units(explicit.value))

    index = 1
    while step * index <= upper + step / 2:
        values.add(round_units(step * index))
        index += 1
    values.add(round_units(upper))

    return sorted(value for value in values if value >= 0)


def build_service_candidates(
    service_id: str,
    config: ServiceConfig,
    capacity: CapacityMetrics,
    costs: CostMetrics,
    tax: Optional[TaxBreakdown] = None,
) -> list[ServiceCandidate]:
    """Evaluate every volume in the unit range of a service.

    Falls back to the zero-volume option when the range is empty.
    """
    units = build_unit_range(config, capacity) or [0.0]
    return [
        evaluate_service_option(service_id, config, value, capacity, costs, tax)
        for value in units
    ]
