"""Per-service volume and economics.

Volumes are expressed in units per active month; annual figures multiply by
the active months of the year.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from mixplanner.core import constants as C
from mixplanner.core.numeric import clamp
from mixplanner.domain.calculator.config_resolution import (
    resolve_comfort_floor,
    resolve_cost_share,
    resolve_hands_on_weight,
    resolve_price_per_unit,
    resolve_pricing_ceiling,
    resolve_pricing_floor,
    resolve_tax_rate,
    resolve_units_per_month,
)
from mixplanner.domain.models.metrics import CapacityMetrics, CostMetrics, TaxBreakdown
from mixplanner.domain.models.service import ServiceCandidate, ServiceConfig, Violation


@dataclass(frozen=True)
class ServiceHours:
    """Volume of one service for the year."""

    service_id: str
    share: float
    days_per_unit: float
    active_months: float
    billable_days: float
    units_per_month: float
    annual_units: float
    annual_days: float
    units_source: str
    hours_per_year: Optional[float] = None


@dataclass(frozen=True)
class ServiceSnapshot:
    """Price, revenue and direct cost of a service at its baseline volume."""

    service_id: str
    title: str
    units_per_month: float
    price_per_unit: float
    price_source: str
    revenue_per_month: float
    revenue_annual: float
    direct_cost_annual: float
    margin_per_unit: float


def _days_per_unit(config: ServiceConfig) -> float:
    return max(config.days_per_unit if config.days_per_unit is not None else 1.0, C.MIN_DAYS_PER_UNIT)


def compute_service_hours(
    config: ServiceConfig,
    capacity: CapacityMetrics,
    units_per_month: Optional[float] = None,
) -> ServiceHours:
    """Resolve the volume of a service.

    Args:
        config: Service configuration.
        capacity: Derived capacity metrics.
        units_per_month: Volume to evaluate; when omitted the configured
            override is used, else the service's share of billable days.

    Returns:
        ServiceHours with annual units and days.
    """
    share = clamp(config.share_of_capacity or 0.0, 0, 1)
    days_per_unit = _days_per_unit(config)
    active_months = max(capacity.active_months, 1.0)
    billable_days = max(capacity.billable_days_after_travel, 0.0)

    if units_per_month is not None:
        units, source = max(units_per_month, 0.0), "override"
    else:
        explicit = resolve_units_per_month(config, active_months)
        if explicit is not None:
            units, source = max(explicit.value, 0.0), explicit.source
        else:
            units = billable_days * share / days_per_unit / active_months
            source = "computed"

    annual_units = units * active_months
    annual_days = annual_units * days_per_unit
    hours = annual_days * capacity.session_length if capacity.session_length else None
    return ServiceHours(
        service_id=config.id,
        share=share,
        days_per_unit=days_per_unit,
        active_months=active_months,
        billable_days=billable_days,
        units_per_month=units,
        annual_units=annual_units,
        annual_days=annual_days,
        units_source=source,
        hours_per_year=hours,
    )


def compute_service_revenue(
    config: ServiceConfig,
    hours: ServiceHours,
    costs: CostMetrics,
) -> ServiceSnapshot:
    """Revenue view of a service at the volume in ``hours``."""
    price = resolve_price_per_unit(config, costs)
    direct_cost_per_unit = config.direct_cost_per_unit or 0.0
    revenue_annual = price.value * hours.annual_units
    return ServiceSnapshot(
        service_id=config.id,
        title=config.title,
        units_per_month=hours.units_per_month,
        price_per_unit=price.value,
        price_source=price.source,
        revenue_per_month=price.value * hours.units_per_month,
        revenue_annual=revenue_annual,
        direct_cost_annual=direct_cost_per_unit * hours.annual_units,
        margin_per_unit=price.value - direct_cost_per_unit,
    )


def _option_violations(
    service_id: str,
    price: float,
    floor: float,
    ceiling: float,
    revenue: float,
    gross_margin: float,
    comfort_floor: float,
) -> list[Violation]:
    violations: list[Violation] = []
    if price + C.EPSILON < floor:
        violations.append(
            Violation(
                type="pricingFloor",
                service_id=service_id,
                limit=floor,
                actual=price,
                message=f"{service_id}: price {price:.2f} below floor {floor:.2f}",
            )
        )
    if price - C.EPSILON > ceiling:
        violations.append(
            Violation(
                type="pricingCeiling",
                service_id=service_id,
                limit=ceiling,
                actual=price,
                message=f"{service_id}: price {price:.2f} above ceiling {ceiling:.2f}",
            )
        )
    if revenue > C.EPSILON and gross_margin + C.EPSILON < comfort_floor:
        violations.append(
            Violation(
                type="comfortBuffer",
                service_id=service_id,
                limit=comfort_floor,
                actual=gross_margin,
                message=f"{service_id}: margin {gross_margin:.1%} below comfort floor {comfort_floor:.1%}",
            )
        )
    return violations


def evaluate_service_option(
    service_id: str,
    config: ServiceConfig,
    units_per_month: float,
    capacity: CapacityMetrics,
    costs: CostMetrics,
    tax: Optional[TaxBreakdown] = None,
) -> ServiceCandidate:
    """Annual economics of one service at ``units_per_month``.

    Fixed and variable costs are allocated by the configured shares, or by
    the share of billable capacity the option consumes when none is set.
    Under the Dutch regime the scenario's effective tax rate applies.

    Args:
        service_id: Catalogue id.
        config: Service configuration.
        units_per_month: Volume to evaluate.
        capacity: Derived capacity metrics.
        costs: Normalised costs.
        tax: Solved tax breakdown, read for its effective rate.

    Returns:
        ServiceCandidate with its pricing and comfort violations.
    """
    hours = compute_service_hours(config, capacity, units_per_month)
    annual_units = hours.annual_units
    service_days = hours.annual_days
    travel_days = (config.travel_days_per_unit or 0.0) * annual_units

    capacity_days = max(capacity.billable_days_after_travel, 0.01)
    usage_share = min(service_days / capacity_days, 1.0)
    fixed_share = resolve_cost_share(config.fixed_cost_share, usage_share).value
    variable_share = resolve_cost_share(config.variable_cost_share, usage_share).value

    direct_cost = (
        (config.direct_cost_per_unit or 0.0) * annual_units
        + costs.fixed_costs * fixed_share
        + costs.annual_variable_costs * variable_share
    )

    price = resolve_price_per_unit(config, costs).value
    revenue = price * annual_units

    dutch_rate = (
        tax.effective_tax_rate
        if tax is not None and tax.mode == C.TAX_MODE_DUTCH_2025
        else None
    )
    tax_rate = resolve_tax_rate(config, costs, dutch_rate).value
    tax_amount = revenue * tax_rate
    net = revenue - direct_cost - tax_amount
    gross_margin = (revenue - direct_cost) / revenue if revenue > 0 else 0.0

    floor = resolve_pricing_floor(config).value
    ceiling = resolve_pricing_ceiling(config).value
    comfort_floor = resolve_comfort_floor(config, costs).value

    return ServiceCandidate(
        service_id=service_id,
        units_per_month=hours.units_per_month,
        annual_units=annual_units,
        service_days=service_days,
        travel_days=travel_days,
        price_per_unit=price,
        revenue=revenue,
        direct_cost=direct_cost,
        tax_rate=tax_rate,
        tax=tax_amount,
        net=net,
        gross_margin=gross_margin,
        fixed_cost_share=fixed_share,
        variable_cost_share=variable_share,
        hands_on_weight=resolve_hands_on_weight(service_id, config).value,
        pricing_floor=floor,
        pricing_ceiling=ceiling,
        comfort_floor=comfort_floor,
        violations=_option_violations(
            service_id, price, floor, ceiling, revenue, gross_margin, comfort_floor
        ),
    )


def estimate_hands_on_target(
    configs: Mapping[str, ServiceConfig],
    capacity: CapacityMetrics,
) -> Optional[float]:
    """Hands-on share of the baseline mix, or ``None`` when it has no days."""
    total_days = 0.0
    hands_on_days = 0.0
    for service_id, config in configs.items():
        days = compute_service_hours(config, capacity).annual_days
        total_days += days
        hands_on_days += days * resolve_hands_on_weight(service_id, config).value
    if total_days <= 0:
        return None
    return hands_on_days / total_days
