"""Annual cost structure."""

from __future__ import annotations

from typing import Any, Optional

from mixplanner.core import constants as C
from mixplanner.core.numeric import clamp
from mixplanner.domain.models.metrics import CapacityMetrics, CostMetrics, ModifierMetrics
from mixplanner.domain.models.scenario import CostInput, as_input


def compute_costs(
    costs: CostInput | dict[str, Any] | None,
    capacity: CapacityMetrics,
    modifiers: Optional[ModifierMetrics] = None,
) -> CostMetrics:
    """Normalise the cost inputs against the year's capacity.

    Variable costs accrue per working day, so the annual figure scales with
    ``capacity.working_days_per_year``.

    Args:
        costs: Raw or validated cost inputs.
        capacity: Derived capacity metrics.
        modifiers: Normalised modifiers; only the comfort margin is read.

    Returns:
        CostMetrics with rates as fractions.
    """
    data = as_input(CostInput, costs)

    tax_rate_percent = clamp(data.tax_rate_percent, 0, C.MAX_TAX_RATE_PERCENT)
    variable_cost_per_day = max(data.variable_cost_per_day, 0.0)
    working_days = max(capacity.working_days_per_year, 0.0)

    return CostMetrics(
        tax_rate_percent=tax_rate_percent,
        tax_rate=tax_rate_percent / 100,
        fixed_costs=max(data.fixed_costs, 0.0),
        variable_cost_per_day=variable_cost_per_day,
        annual_variable_costs=variable_cost_per_day * working_days,
        vat_rate_percent=max(data.vat_rate_percent, 0.0),
        vat_rate=max(data.vat_rate_percent, 0.0) / 100,
        buffer_percent=max(data.buffer_percent, 0.0),
        buffer=max(data.buffer_percent, 0.0) / 100,
        comfort_margin=modifiers.comfort_margin if modifiers is not None else 0.0,
        currency_symbol=data.currency_symbol,
    )
