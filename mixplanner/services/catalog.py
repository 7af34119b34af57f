"""Service catalogue.

Five services are offered. Each carries default economics that a scenario
may override field by field; the merged configurations are built once per
solve and handed to the optimizer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from pydantic.alias_generators import to_camel

from mixplanner.core.exceptions import ConfigurationError
from mixplanner.core.logging import get_logger
from mixplanner.domain.models.service import ServiceConfig

log = get_logger(__name__)

SERVICE_IDS = ("representation", "ops", "qc", "training", "intel")

# Override fields an explicit null resets to "not configured"
CLEARABLE_FIELDS = ("fixed_cost_share", "variable_cost_share")

SERVICE_TITLES = {
    "representation": "Representation",
    "ops": "Operations",
    "qc": "Quality control - arrivals",
    "training": "Training",
    "intel": "Intel",
}

SERVICE_DEFAULTS: dict[str, dict[str, Any]] = {
    "representation": {
        "share_of_capacity": 0.32,
        "days_per_unit": 1.5,
        "base_price": 2250.0,
        "direct_cost_per_unit": 180.0,
        "fixed_cost_share": 0.34,
        "variable_cost_share": 0.28,
        "pricing_fences": {"min": 2030.0, "target": 2250.0, "stretch": 2700.0},
    },
    "ops": {
        "share_of_capacity": 0.22,
        "days_per_unit": 1.0,
        "base_price": 1450.0,
        "direct_cost_per_unit": 140.0,
        "fixed_cost_share": 0.2,
        "variable_cost_share": 0.25,
        "pricing_fences": {"min": 1310.0, "target": 1450.0, "stretch": 1740.0},
    },
    "qc": {
        "share_of_capacity": 0.16,
        "days_per_unit": 0.6,
        "base_price": 980.0,
        "direct_cost_per_unit": 90.0,
        "fixed_cost_share": 0.12,
        "variable_cost_share": 0.15,
        "pricing_fences": {"min": 880.0, "target": 980.0, "stretch": 1180.0},
    },
    "training": {
        "share_of_capacity": 0.18,
        "days_per_unit": 1.2,
        "base_price": 1180.0,
        "direct_cost_per_unit": 105.0,
        "fixed_cost_share": 0.18,
        "variable_cost_share": 0.2,
        "pricing_fences": {"min": 1060.0, "target": 1180.0, "stretch": 1420.0},
    },
    "intel": {
        "share_of_capacity": 0.12,
        "days_per_unit": 0.5,
        "base_price": 760.0,
        "direct_cost_per_unit": 80.0,
        "fixed_cost_share": 0.16,
        "variable_cost_share": 0.12,
        "pricing_fences": {"min": 680.0, "target": 760.0, "stretch": 910.0},
    },
}


def _clean_override(service_id: str, raw: Mapping[str, Any]) -> dict[str, Any]:
    """Valid, explicitly provided override fields in snake_case.

    An explicit ``None`` on a cost share clears the catalogue default so the
    share falls back to the capacity the service uses.
    """
    parsed = ServiceConfig.model_validate({**raw, "id": service_id})
    cleaned = parsed.model_dump(exclude_unset=True, exclude_none=True)
    cleaned.pop("id", None)
    for field in CLEARABLE_FIELDS:
        if field in parsed.model_fields_set and any(
            key in raw and raw[key] is None for key in (field, to_camel(field))
        ):
            cleaned[field] = None
    return cleaned


def build_service_config(service_id: str, override: Optional[Mapping[str, Any]] = None) -> ServiceConfig:
    """Catalogue defaults for ``service_id`` merged with ``override``."""
    if service_id not in SERVICE_DEFAULTS:
        raise ConfigurationError(f"Unknown service id '{service_id}'")

    merged: dict[str, Any] = {"id": service_id, "title": SERVICE_TITLES[service_id]}
    merged.update(SERVICE_DEFAULTS[service_id])
    merged["pricing_fences"] = dict(merged["pricing_fences"])

    if override:
        cleaned = _clean_override(service_id, override)
        fences = cleaned.pop("pricing_fences", None)
        merged.update(cleaned)
        if fences:
            merged["pricing_fences"].update(fences)

    return ServiceConfig.model_validate(merged)


def build_service_configs(
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    service_ids: Optional[Iterable[str]] = None,
) -> dict[str, ServiceConfig]:
    """Build the per-solve service configuration map.

    Args:
        overrides: Override records keyed by service id.
        service_ids: Services to offer, in search order. Defaults to the
            whole catalogue.

    Returns:
        Ordered mapping of service id to merged ServiceConfig.

    Raises:
        ConfigurationError: If a requested service id is not in the catalogue.
    """
    overrides = overrides or {}
    ids = list(SERVICE_IDS if service_ids is None else service_ids)

    for service_id in overrides:
        if service_id not in SERVICE_DEFAULTS:
            log.warning("unknown_service_override", service_id=service_id)

    return {
        service_id: build_service_config(service_id, overrides.get(service_id))
        for service_id in ids
    }
