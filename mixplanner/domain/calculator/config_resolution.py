"""Per-field configuration resolution for services.

Each resolver returns the value used by the economics together with the
source it came from: an explicit ``override``, the catalogue ``default``, or
a value ``computed`` from capacity or costs.
"""

from __future__ import annotations

import math
from typing import Optional

from mixplanner.core import constants as C
from mixplanner.core.numeric import clamp
from mixplanner.domain.models.metrics import CostMetrics
from mixplanner.domain.models.service import ResolvedValue, ServiceConfig

# Services delivered in person unless configured otherwise
HANDS_ON_SERVICE_IDS = frozenset({"ops", "qc", "training"})


def resolve_units_per_month(config: ServiceConfig, active_months: float) -> Optional[ResolvedValue]:
    """Explicit volume, if any: units per month first, then units per year.

    Returns ``None`` when the volume has to be derived from capacity.
    """
    if config.units_per_month is not None:
        return ResolvedValue(value=config.units_per_month, source="override")
    if config.units_per_year is not None:
        return ResolvedValue(
            value=config.units_per_year / max(active_months, 1.0), source="override"
        )
    return None


def resolve_buffer(config: ServiceConfig, costs: CostMetrics) -> ResolvedValue:
    if config.buffer_override is not None:
        return ResolvedValue(value=clamp(config.buffer_override, 0, C.MAX_BUFFER_OVERRIDE), source="override")
    return ResolvedValue(value=clamp(costs.buffer, 0, C.MAX_BUFFER_OVERRIDE), source="computed")


def resolve_price_per_unit(config: ServiceConfig, costs: CostMetrics) -> ResolvedValue:
    """Locked price when positive, else base price marked up by the buffer."""
    if config.price_per_unit is not None and config.price_per_unit > 0:
        return ResolvedValue(value=config.price_per_unit, source="override")
    buffer = resolve_buffer(config, costs).value
    return ResolvedValue(value=(config.base_price or 0.0) * (1 + buffer), source="computed")


def resolve_pricing_floor(config: ServiceConfig) -> ResolvedValue:
    """Explicit minimum price, else the fence minimum, else the base price."""
    if config.min_price_per_unit is not None and config.min_price_per_unit > 0:
        return ResolvedValue(value=config.min_price_per_unit, source="override")
    if config.pricing_fences.min is not None:
        return ResolvedValue(value=config.pricing_fences.min, source="default")
    return ResolvedValue(value=config.base_price or 0.0, source="default")


def resolve_pricing_ceiling(config: ServiceConfig) -> ResolvedValue:
    """Explicit maximum price, else the stretch fence, else twice the floor.

    Without any price information the ceiling is unbounded.
    """
    if config.max_price_per_unit is not None and config.max_price_per_unit > 0:
        return ResolvedValue(value=config.max_price_per_unit, source="override")
    if config.pricing_fences.stretch is not None:
        return ResolvedValue(value=config.pricing_fences.stretch, source="default")
    floor = resolve_pricing_floor(config).value
    if floor and floor > 0:
        return ResolvedValue(value=floor * 2, source="computed")
    return ResolvedValue(value=math.inf, source="computed")


def resolve_cost_share(configured: Optional[float], usage_share: float) -> ResolvedValue:
    """Configured allocation share, else the service's share of capacity used."""
    if configured is not None:
        return ResolvedValue(value=clamp(configured, 0, 1), source="default")
    return ResolvedValue(value=clamp(usage_share, 0, 1), source="computed")


def resolve_comfort_floor(config: ServiceConfig, costs: CostMetrics) -> ResolvedValue:
    if config.comfort_buffer is not None:
        return ResolvedValue(value=clamp(config.comfort_buffer, 0, C.MAX_COMFORT_FLOOR), source="override")
    return ResolvedValue(value=clamp(costs.buffer, 0, C.MAX_COMFORT_FLOOR), source="computed")


def resolve_hands_on_weight(service_id: str, config: ServiceConfig) -> ResolvedValue:
    """Explicit weight, else the hands-on flag, else the catalogue convention."""
    if config.hands_on_weight is not None:
        return ResolvedValue(value=clamp(config.hands_on_weight, 0, 1), source="override")
    if config.hands_on is not None:
        return ResolvedValue(value=1.0 if config.hands_on else 0.0, source="override")
    return ResolvedValue(value=1.0 if service_id in HANDS_ON_SERVICE_IDS else 0.0, source="default")


def resolve_tax_rate(
    config: ServiceConfig, costs: CostMetrics, dutch_effective_rate: Optional[float] = None
) -> ResolvedValue:
    """Rate applied to service revenue.

    Under the Dutch regime the solved effective rate applies to every
    service; otherwise a per-service manual rate wins over the scenario rate.
    """
    if dutch_effective_rate is not None:
        return ResolvedValue(value=clamp(dutch_effective_rate, 0, 1), source="computed")
    if config.tax_rate is not None:
        return ResolvedValue(value=clamp(config.tax_rate, 0, 1), source="override")
    return ResolvedValue(value=clamp(costs.tax_rate, 0, 1), source="default")
