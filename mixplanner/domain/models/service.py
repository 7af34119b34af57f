"""Service catalogue records and evaluated service options."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from mixplanner.core import constants as C
from mixplanner.core.numeric import coerce_flag, coerce_optional

ValueSource = Literal["override", "default", "computed"]

# Optional numeric config fields -> (lower, upper)
SERVICE_NUMBER_BOUNDS = {
    "share_of_capacity": (0.0, 1.0),
    "days_per_unit": (C.MIN_DAYS_PER_UNIT, float("inf")),
    "base_price": (0.0, float("inf")),
    "direct_cost_per_unit": (0.0, float("inf")),
    "fixed_cost_share": (0.0, 1.0),
    "variable_cost_share": (0.0, 1.0),
    "units_per_month": (0.0, float("inf")),
    "units_per_year": (0.0, float("inf")),
    "price_per_unit": (0.0, float("inf")),
    "buffer_override": (0.0, C.MAX_BUFFER_OVERRIDE),
    "tax_rate": (0.0, 1.0),
    "min_price_per_unit": (0.0, float("inf")),
    "max_price_per_unit": (0.0, float("inf")),
    "comfort_buffer": (0.0, C.MAX_COMFORT_FLOOR),
    "hands_on_weight": (0.0, 1.0),
    "travel_days_per_unit": (0.0, float("inf")),
}


class PricingFences(BaseModel):
    """Price band per unit: minimum, target and stretch."""

    min: Optional[float] = None
    target: Optional[float] = None
    stretch: Optional[float] = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "frozen": True}

    @field_validator("min", "target", "stretch", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Optional[float]:
        number = coerce_optional(value)
        return number if number and number > 0 else None


class ServiceConfig(BaseModel):
    """Configuration of one service: catalogue defaults merged with overrides.

    Every field is optional so the same model validates a partial override
    record; the catalogue fills the defaults.
    """

    id: str = Field(..., description="Service id")
    title: str = Field(default="", description="Display title")

    # Catalogue economics
    share_of_capacity: Optional[float] = Field(None, description="Share of billable days, 0-1")
    days_per_unit: Optional[float] = Field(None, description="Working days per delivered unit")
    base_price: Optional[float] = Field(None, description="Base price per unit")
    direct_cost_per_unit: Optional[float] = Field(None, description="Direct cost per unit")
    fixed_cost_share: Optional[float] = Field(None, description="Share of fixed costs allocated")
    variable_cost_share: Optional[float] = Field(None, description="Share of variable costs allocated")
    pricing_fences: PricingFences = Field(default_factory=PricingFences)

    # Overrides
    units_per_month: Optional[float] = Field(None, description="Explicit units per active month")
    units_per_year: Optional[float] = Field(None, description="Explicit units per year")
    price_per_unit: Optional[float] = Field(None, description="Locked price per unit")
    buffer_override: Optional[float] = Field(None, description="Pricing buffer for this service, 0-5")
    tax_rate: Optional[float] = Field(None, description="Manual tax rate for this service, 0-1")
    min_price_per_unit: Optional[float] = None
    max_price_per_unit: Optional[float] = None
    comfort_buffer: Optional[float] = Field(None, description="Minimum gross margin, 0-0.95")
    hands_on_weight: Optional[float] = Field(None, description="Hands-on share of delivery, 0-1")
    hands_on: Optional[bool] = None
    travel_days_per_unit: Optional[float] = Field(None, description="Travel days per unit")

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
        "frozen": True,
    }

    @field_validator(*SERVICE_NUMBER_BOUNDS, mode="before")
    @classmethod
    def _coerce(cls, value: Any, info) -> Optional[float]:
        lower, upper = SERVICE_NUMBER_BOUNDS[info.field_name]
        return coerce_optional(value, lower, upper)

    @field_validator("hands_on", mode="before")
    @classmethod
    def _hands_on(cls, value: Any) -> Optional[bool]:
        return coerce_flag(value, None)

    @field_validator("pricing_fences", mode="before")
    @classmethod
    def _fences(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, PricingFences)) else {}


class ResolvedValue(BaseModel):
    """A configuration value together with where it came from."""

    value: Optional[float]
    source: ValueSource

    model_config = {"frozen": True}


class Violation(BaseModel):
    """A broken feasibility rule on an option or a whole portfolio."""

    type: str = Field(..., description="Rule name, e.g. pricingFloor or serviceDays")
    service_id: Optional[str] = None
    limit: Optional[float] = None
    actual: Optional[float] = None
    message: str = ""

    model_config = {"frozen": True}


class ServiceCandidate(BaseModel):
    """Annual economics of one service at one volume."""

    service_id: str
    units_per_month: float = Field(..., ge=0)
    annual_units: float = Field(..., ge=0)
    service_days: float = Field(..., ge=0)
    travel_days: float = Field(default=0.0, ge=0)
    price_per_unit: float = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    direct_cost: float = Field(..., ge=0)
    tax_rate: float = Field(..., ge=0, le=1)
    tax: float = Field(..., ge=0)
    net: float
    gross_margin: float
    fixed_cost_share: float
    variable_cost_share: float
    hands_on_weight: float = Field(..., ge=0, le=1)
    pricing_floor: float
    pricing_ceiling: float
    comfort_floor: float
    violations: list[Violation] = Field(default_factory=list)

    model_config = {"frozen": True}

    @computed_field
    @property
    def hands_on_days(self) -> float:
        """Service days weighted by hands-on share."""
        return self.service_days * self.hands_on_weight

    @computed_field
    @property
    def violation_count(self) -> int:
        return len(self.violations)
