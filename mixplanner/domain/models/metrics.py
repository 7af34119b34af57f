"""Derived scenario metrics.

Immutable outputs of the capacity, cost, income and tax stages. Presentation
code reads these; nothing downstream mutates them.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, computed_field

OUTPUT_CONFIG = {"frozen": True}


class ModifierMetrics(BaseModel):
    """Clamped scenario modifiers as percent and fraction."""

    comfort_margin_percent: float
    comfort_margin: float
    seasonality_percent: float
    seasonality: float
    travel_friction_percent: float
    travel_friction: float
    hands_on_quota_percent: float
    hands_on_quota: float

    model_config = OUTPUT_CONFIG


class CapacityMetrics(BaseModel):
    """Annual working and billable capacity after time off, seasonality and travel."""

    # Time off
    months_off: float = Field(..., description="Months fully off")
    active_months: float = Field(..., description="12 minus months off")
    active_month_share: float
    weeks_off_per_cycle: float
    working_weeks_per_cycle: float
    weeks_share: float
    days_off_per_week: float
    working_days_per_week: float

    # Working time
    working_weeks: float = Field(..., ge=0, description="Working weeks per year")
    working_days_per_year: float = Field(..., ge=0)

    # Modifiers
    seasonality_percent: float = 0.0
    seasonality_penalty: float = 1.0
    travel_friction_percent: float = 0.0
    travel_friction_multiplier: float = 1.0

    # Utilisation
    utilization_percent: float
    utilization_rate: float = Field(..., ge=0, le=1)
    billable_weeks: float = Field(..., ge=0)
    billable_days_per_year: float = Field(..., ge=0)

    # Travel
    travel_days_per_month: float = 0.0
    travel_days_per_cycle: float = 0.0
    travel_days_per_year: float = 0.0
    travel_weeks_per_year: float = 0.0
    travel_allowance_days: float = 0.0
    travel_allowance_share: float = 0.0
    travel_allowance_billable_share: float = 0.0
    billable_days_after_travel: float = Field(..., ge=0)

    # Sessions
    session_length: Optional[float] = None
    billable_hours_per_year: Optional[float] = None

    model_config = OUTPUT_CONFIG

    @computed_field
    @property
    def non_billable_share(self) -> Optional[float]:
        """Share of working days not billed after travel."""
        if self.working_days_per_year <= 0:
            return None
        return max(0.0, 1.0 - self.billable_days_after_travel / self.working_days_per_year)

    @computed_field
    @property
    def has_capacity(self) -> bool:
        """True when any working week remains."""
        return self.working_weeks > 0


class CostMetrics(BaseModel):
    """Normalised annual cost structure."""

    tax_rate_percent: float
    tax_rate: float = Field(..., ge=0, lt=1)
    fixed_costs: float = Field(..., ge=0)
    variable_cost_per_day: float = Field(..., ge=0)
    annual_variable_costs: float = Field(..., ge=0)
    vat_rate_percent: float
    vat_rate: float
    buffer_percent: float
    buffer: float = Field(..., ge=0, description="Pricing buffer fraction over base price")
    comfort_margin: float = Field(default=0.0, ge=0)
    currency_symbol: str = "€"

    model_config = OUTPUT_CONFIG

    @computed_field
    @property
    def effective_buffer(self) -> float:
        """Buffer plus the comfort margin modifier, as quoted to the user."""
        return self.buffer + self.comfort_margin

    @computed_field
    @property
    def annual_costs(self) -> float:
        """Fixed plus variable annual costs."""
        return self.fixed_costs + self.annual_variable_costs


class IncomeTargets(BaseModel):
    """Income target resolved to an annual figure and re-expressed on every basis."""

    mode: str
    basis: str
    label: str
    year: float
    week: float
    month: float
    average_week: float
    average_month: float
    target_annual: float = Field(..., ge=0)
    target_per_week: Optional[float] = None
    target_per_month: Optional[float] = None
    target_average_per_week: float
    target_average_per_month: float
    target_net: Optional[float] = None
    target_gross: Optional[float] = None
    has_working_weeks: bool
    has_active_months: bool
    defaults: dict[str, float] = Field(default_factory=dict)

    model_config = OUTPUT_CONFIG


class TaxBreakdown(BaseModel):
    """Annual tax reserve and the figures it was derived from.

    Deduction fields are ``None`` in simple mode. ``residual`` is the
    remaining gap ``net_income - target_net`` after solving.
    """

    mode: str
    target_net: float = 0.0
    profit_before_tax: float = Field(..., ge=0)
    zelfstandigenaftrek: Optional[float] = None
    startersaftrek: Optional[float] = None
    taxable_profit_before_mkb: Optional[float] = None
    mkb_vrijstelling_rate: Optional[float] = None
    mkb_vrijstelling: Optional[float] = None
    taxable_profit_after_mkb: Optional[float] = None
    income_tax: float = 0.0
    zvw_base: Optional[float] = None
    zvw_contribution: float = 0.0
    tax_reserve: float = Field(..., ge=0)
    net_income: float
    effective_tax_rate: float = Field(..., ge=0, le=1)
    iterations: int = 0
    converged: bool = True

    model_config = OUTPUT_CONFIG

    @computed_field
    @property
    def residual(self) -> float:
        """Net income minus the requested net target."""
        return self.net_income - self.target_net

    def with_target(self, target_net: float, iterations: int, converged: bool) -> "TaxBreakdown":
        """Copy carrying solver bookkeeping."""
        return self.model_copy(
            update={"target_net": target_net, "iterations": iterations, "converged": converged}
        )
