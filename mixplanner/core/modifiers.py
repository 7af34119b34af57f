"""Scenario modifier normalisation."""

from __future__ import annotations

from typing import Any

from mixplanner.domain.models.metrics import ModifierMetrics
from mixplanner.domain.models.scenario import ModifierInput, as_input


def normalize_modifiers(modifiers: ModifierInput | dict[str, Any] | None = None) -> ModifierMetrics:
    """Clamp the scenario modifiers and expose each as percent and fraction.

    Args:
        modifiers: Raw modifier record or validated input. Missing or invalid
            entries take their defaults (comfort 10%, seasonality 0%,
            travel friction 0%, hands-on quota 50%).

    Returns:
        ModifierMetrics with fractions equal to percent / 100.
    """
    data = as_input(ModifierInput, modifiers)
    return ModifierMetrics(
        comfort_margin_percent=data.comfort_margin_percent,
        comfort_margin=data.comfort_margin_percent / 100.0,
        seasonality_percent=data.seasonality_percent,
        seasonality=data.seasonality_percent / 100.0,
        travel_friction_percent=data.travel_friction_percent,
        travel_friction=data.travel_friction_percent / 100.0,
        hands_on_quota_percent=data.hands_on_quota_percent,
        hands_on_quota=data.hands_on_quota_percent / 100.0,
    )
