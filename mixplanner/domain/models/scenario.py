"""Scenario input models.

A scenario is the whole planning record entered by the consultant: time off,
modifiers, costs, income target, tax regime, per-service overrides and
optional portfolio constraints. Every numeric field is coerced and clamped on
validation, so a malformed form value never raises.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from mixplanner.core import constants as C
from mixplanner.core.numeric import coerce_flag, coerce_number, coerce_optional

INPUT_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "extra": "allow",
}

# field -> (default, lower, upper)
CAPACITY_BOUNDS = {
    "months_off": (0.0, 0.0, float(C.MONTHS_PER_YEAR)),
    "weeks_off_cycle": (0.0, 0.0, float(C.WEEKS_PER_CYCLE)),
    "days_off_week": (0.0, 0.0, float(C.BASE_WORK_DAYS_PER_WEEK)),
    "utilization_percent": (100.0, 0.0, 100.0),
    "travel_days_per_month": (0.0, 0.0, float(C.MAX_TRAVEL_DAYS_PER_MONTH)),
    "travel_days_per_cycle": (0.0, 0.0, float(C.MAX_TRAVEL_DAYS_PER_CYCLE)),
    "travel_days_per_year": (0.0, 0.0, math.inf),
}

COST_BOUNDS = {
    "tax_rate_percent": (40.0, 0.0, C.MAX_TAX_RATE_PERCENT),
    "fixed_costs": (0.0, 0.0, math.inf),
    "variable_cost_per_day": (0.0, 0.0, math.inf),
    "vat_rate_percent": (21.0, 0.0, math.inf),
    "buffer_percent": (15.0, 0.0, math.inf),
}

TARGET_BOUNDS = {
    "year": (C.TARGET_NET_DEFAULT, 0.0, math.inf),
    "week": (0.0, 0.0, math.inf),
    "month": (0.0, 0.0, math.inf),
    "average_week": (0.0, 0.0, math.inf),
    "average_month": (0.0, 0.0, math.inf),
}

_BASIS_LOOKUP = {basis.lower(): basis for basis in C.TARGET_NET_BASIS_VALUES}


def _section(value: Any) -> Any:
    """Replace anything that is not a record with an empty one."""
    if isinstance(value, (BaseModel, Mapping)):
        return value
    return {}


class CapacityInput(BaseModel):
    """Time off, utilisation and travel entered for the year."""

    months_off: float = Field(default=0.0, description="Months fully off, 0-12")
    weeks_off_cycle: float = Field(default=0.0, description="Weeks off per 4-week cycle, 0-4")
    days_off_week: float = Field(default=0.0, description="Days off per week, 0-7")
    utilization_percent: float = Field(default=100.0, description="Billable share of working time in %")
    travel_days_per_month: float = Field(default=0.0, description="Travel days per active month, 0-28")
    travel_days_per_cycle: float = Field(default=0.0, description="Travel days per 4-week cycle, 0-7")
    travel_days_per_year: float = Field(default=0.0, description="Explicit annual travel days")

    model_config = INPUT_CONFIG

    @field_validator(*CAPACITY_BOUNDS, mode="before")
    @classmethod
    def _coerce(cls, value: Any, info) -> float:
        default, lower, upper = CAPACITY_BOUNDS[info.field_name]
        return coerce_number(value, default, lower, upper)


class ModifierInput(BaseModel):
    """Scenario modifiers, all expressed in percent."""

    comfort_margin_percent: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "comfortMarginPercent", "comfort_margin_percent", "comfortMargin", "comfort_margin"
        ),
    )
    seasonality_percent: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "seasonalityPercent", "seasonality_percent", "seasonality"
        ),
    )
    travel_friction_percent: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "travelFrictionPercent", "travel_friction_percent", "travelFriction", "travel_friction"
        ),
    )
    hands_on_quota_percent: float = Field(
        default=50.0,
        validation_alias=AliasChoices(
            "handsOnQuotaPercent", "hands_on_quota_percent", "handsOnQuota", "hands_on_quota"
        ),
    )

    model_config = INPUT_CONFIG

    @field_validator(*C.MODIFIER_RANGES, mode="before")
    @classmethod
    def _coerce(cls, value: Any, info) -> float:
        default, lower, upper = C.MODIFIER_RANGES[info.field_name]
        return coerce_number(value, default, lower, upper)


class CostInput(BaseModel):
    """Annual cost structure and pricing buffer."""

    tax_rate_percent: float = Field(default=40.0, description="Manual tax rate in %, 0-99.9")
    fixed_costs: float = Field(default=0.0, description="Fixed annual costs")
    variable_cost_per_day: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "variableCostPerDay", "variable_cost_per_day", "variableCostPerClass", "variable_cost_per_class"
        ),
        description="Variable cost per working day",
    )
    vat_rate_percent: float = Field(default=21.0, description="VAT rate in %")
    buffer_percent: float = Field(default=15.0, description="Pricing buffer over base price in %")
    currency_symbol: str = Field(default=C.DEFAULT_CURRENCY_SYMBOL)

    model_config = INPUT_CONFIG

    @field_validator(*COST_BOUNDS, mode="before")
    @classmethod
    def _coerce(cls, value: Any, info) -> float:
        default, lower, upper = COST_BOUNDS[info.field_name]
        return coerce_number(value, default, lower, upper)

    @field_validator("currency_symbol", mode="before")
    @classmethod
    def _currency(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return C.DEFAULT_CURRENCY_SYMBOL


class IncomeTargetInput(BaseModel):
    """Income target as entered: a mode, a basis and one value per basis."""

    mode: str = Field(default=C.DEFAULT_TARGET_INCOME_MODE, description="net or gross")
    basis: str = Field(default=C.DEFAULT_TARGET_NET_BASIS, description="Basis the target was entered on")
    year: float = Field(default=C.TARGET_NET_DEFAULT)
    week: float = Field(default=0.0)
    month: float = Field(default=0.0)
    average_week: float = Field(
        default=0.0,
        validation_alias=AliasChoices("averageWeek", "average_week", "avgWeek"),
    )
    average_month: float = Field(
        default=0.0,
        validation_alias=AliasChoices("averageMonth", "average_month", "avgMonth"),
    )

    model_config = INPUT_CONFIG

    @field_validator(*TARGET_BOUNDS, mode="before")
    @classmethod
    def _coerce(cls, value: Any, info) -> float:
        default, lower, upper = TARGET_BOUNDS[info.field_name]
        return coerce_number(value, default, lower, upper)

    @field_validator("mode", mode="before")
    @classmethod
    def _mode(cls, value: Any) -> str:
        text = str(value).strip().lower() if value is not None else ""
        return text if text in C.TARGET_INCOME_MODES else C.DEFAULT_TARGET_INCOME_MODE

    @field_validator("basis", mode="before")
    @classmethod
    def _basis(cls, value: Any) -> str:
        text = str(value).strip().lower() if value is not None else ""
        return _BASIS_LOOKUP.get(text, C.DEFAULT_TARGET_NET_BASIS)

    def value_for(self, basis: str) -> float:
        """Entered value for a basis name."""
        field = {"avgWeek": "average_week", "avgMonth": "average_month"}.get(basis, basis)
        return getattr(self, field, 0.0)


class TaxInput(BaseModel):
    """Tax regime selection and Dutch 2025 toggles."""

    mode: str = Field(default=C.DEFAULT_TAX_MODE, description="simple or dutch2025")
    zelfstandigenaftrek: bool = Field(default=True)
    startersaftrek: bool = Field(default=False)
    mkb_vrijstelling: bool = Field(default=True)
    include_zvw: bool = Field(default=True)

    model_config = INPUT_CONFIG

    @field_validator("mode", mode="before")
    @classmethod
    def _mode(cls, value: Any) -> str:
        text = str(value).strip().lower() if value is not None else ""
        return text if text in C.TAX_MODES else C.DEFAULT_TAX_MODE

    @field_validator(*C.DUTCH_TAX_DEFAULTS, mode="before")
    @classmethod
    def _flag(cls, value: Any, info) -> bool:
        return coerce_flag(value, C.DUTCH_TAX_DEFAULTS[info.field_name])


class PortfolioConstraintInput(BaseModel):
    """Optional overrides for the portfolio feasibility limits."""

    max_service_days: Optional[float] = Field(None, description="Annual service-day limit")
    max_travel_days: Optional[float] = Field(None, description="Annual travel-day limit")
    hands_on_share_target: Optional[float] = Field(None, description="Target hands-on share, 0-1")
    hands_on_share_tolerance: float = Field(
        default=C.DEFAULT_HANDS_ON_TOLERANCE, description="Band half-width around the target"
    )
    comfort_buffer_min: Optional[float] = Field(None, description="Minimum blended gross margin")

    model_config = INPUT_CONFIG

    @field_validator("max_service_days", "max_travel_days", mode="before")
    @classmethod
    def _limit(cls, value: Any) -> Optional[float]:
        return coerce_optional(value)

    @field_validator("hands_on_share_target", mode="before")
    @classmethod
    def _share(cls, value: Any) -> Optional[float]:
        return coerce_optional(value, 0.0, 1.0)

    @field_validator("comfort_buffer_min", mode="before")
    @classmethod
    def _comfort(cls, value: Any) -> Optional[float]:
        return coerce_optional(value, 0.0, C.MAX_COMFORT_FLOOR)

    @field_validator("hands_on_share_tolerance", mode="before")
    @classmethod
    def _tolerance(cls, value: Any) -> float:
        return coerce_number(
            value, C.DEFAULT_HANDS_ON_TOLERANCE, 0.0, C.MAX_HANDS_ON_TOLERANCE
        )


class ScenarioInput(BaseModel):
    """Complete planning scenario.

    Example:
        >>> ScenarioInput.model_validate({"capacity": {"monthsOff": 2}})
    """

    capacity: CapacityInput = Field(default_factory=CapacityInput)
    modifiers: ModifierInput = Field(default_factory=ModifierInput)
    session_length: float = Field(
        default=C.DEFAULT_SESSION_LENGTH, description="Hours per billable session; 0 means unset"
    )
    costs: CostInput = Field(default_factory=CostInput)
    income_targets: IncomeTargetInput = Field(default_factory=IncomeTargetInput)
    tax: TaxInput = Field(default_factory=TaxInput)
    services: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Per-service override records keyed by service id"
    )
    portfolio_constraints: PortfolioConstraintInput = Field(default_factory=PortfolioConstraintInput)

    model_config = INPUT_CONFIG

    @field_validator(
        "capacity", "modifiers", "costs", "income_targets", "tax", "portfolio_constraints",
        mode="before",
    )
    @classmethod
    def _sections(cls, value: Any) -> Any:
        return _section(value)

    @field_validator("session_length", mode="before")
    @classmethod
    def _session(cls, value: Any) -> float:
        return coerce_number(value, C.DEFAULT_SESSION_LENGTH)

    @field_validator("services", mode="before")
    @classmethod
    def _services(cls, value: Any) -> dict[str, dict[str, Any]]:
        if not isinstance(value, Mapping):
            return {}
        return {
            str(service_id): dict(record)
            for service_id, record in value.items()
            if isinstance(record, Mapping)
        }


def as_input(model: type[BaseModel], value: Any) -> BaseModel:
    """Validate ``value`` into ``model`` unless it already is one."""
    if isinstance(value, model):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return model.model_validate(_section(value))
