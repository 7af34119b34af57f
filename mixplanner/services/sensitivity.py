"""Sensitivity sweeps.

Re-solves a scenario while one input moves across a range, and reports how
the best mix's net income responds, including the break-even point against
the net target.
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from mixplanner.core.exceptions import InvalidParameterError
from mixplanner.core.logging import get_logger
from mixplanner.core.settings import PlannerSettings, get_settings
from mixplanner.domain.models.scenario import ScenarioInput, as_input
from mixplanner.services.solver import ScenarioSolver

log = get_logger(__name__)


@dataclass(frozen=True)
class SensitivityAxis:
    """A scenario input that can be swept."""

    section: str
    field: str
    minimum: float
    maximum: float
    label: str


SENSITIVITY_AXES = {
    "utilization": SensitivityAxis("capacity", "utilization_percent", 40.0, 100.0, "Utilization (%)"),
    "months_off": SensitivityAxis("capacity", "months_off", 0.0, 6.0, "Months off"),
    "seasonality": SensitivityAxis("modifiers", "seasonality_percent", 0.0, 50.0, "Seasonality (%)"),
    "travel_friction": SensitivityAxis(
        "modifiers", "travel_friction_percent", 0.0, 100.0, "Travel friction (%)"
    ),
    "tax_rate": SensitivityAxis("costs", "tax_rate_percent", 20.0, 55.0, "Tax rate (%)"),
    "buffer": SensitivityAxis("costs", "buffer_percent", 0.0, 40.0, "Pricing buffer (%)"),
    "fixed_costs": SensitivityAxis("costs", "fixed_costs", 0.0, 50000.0, "Fixed costs"),
}


@dataclass(frozen=True)
class SensitivitySeries:
    """Result of one sweep; ``frame`` has one row per sample, sorted by value."""

    axis: str
    label: str
    current_value: float
    frame: pd.DataFrame
    break_even: Optional[float]

    def closest(self, value: Optional[float] = None) -> dict[str, Any]:
        """Sample row nearest to ``value`` (the current value by default)."""
        return find_closest_point(self.frame, self.current_value if value is None else value)


def get_axis(name: str) -> SensitivityAxis:
    try:
        return SENSITIVITY_AXES[name]
    except KeyError:
        raise InvalidParameterError(
            "axis", name, f"expected one of {', '.join(SENSITIVITY_AXES)}"
        ) from None


def build_sample_values(
    minimum: float,
    maximum: float,
    count: int,
    include: Optional[float] = None,
) -> list[float]:
    """Evenly spaced samples over ``[minimum, maximum]`` plus ``include``.

    Values are rounded to 4 decimals, de-duplicated and sorted.

    Raises:
        InvalidParameterError: If the range is inverted or ``count`` < 1.
    """
    if count < 1:
        raise InvalidParameterError("count", count, "at least one sample is required")
    if maximum < minimum:
        raise InvalidParameterError("maximum", maximum, f"must be >= minimum ({minimum})")

    values = {round(float(v), 4) for v in np.linspace(minimum, maximum, count)}
    if include is not None and np.isfinite(include):
        values.add(round(float(include), 4))
    return sorted(values)


def apply_axis_value(scenario: ScenarioInput, axis: SensitivityAxis, value: float) -> ScenarioInput:
    """Copy of ``scenario`` with the axis input set to ``value``."""
    data = scenario.model_dump(exclude_unset=True)
    section = dict(data.get(axis.section) or {})
    section[axis.field] = value
    data[axis.section] = section
    return ScenarioInput.model_validate(data)


def find_break_even(values: list[float], gaps: list[float]) -> Optional[float]:
    """Axis value where the net gap crosses zero, by linear interpolation.

    Args:
        values: Axis values in ascending order.
        gaps: Net income minus target at each value.

    Returns:
        The first crossing, or ``None`` when the gap never changes sign.
    """
    for index, (value, gap) in enumerate(zip(values, gaps)):
        if gap == 0:
            return value
        if index == 0:
            continue
        previous_value, previous_gap = values[index - 1], gaps[index - 1]
        if (previous_gap < 0) != (gap < 0):
            span = gap - previous_gap
            return previous_value + (0 - previous_gap) * (value - previous_value) / span
    return None


def find_closest_point(frame: pd.DataFrame, value: float) -> dict[str, Any]:
    """Row of ``frame`` whose axis value is nearest to ``value``."""
    if frame.empty:
        return {}
    position = int((frame["value"] - value).abs().to_numpy().argmin())
    return frame.iloc[position].to_dict()


def _solve_point(solver: ScenarioSolver, scenario: ScenarioInput, axis: SensitivityAxis, value: float) -> dict[str, Any]:
    metrics = solver.derive(apply_axis_value(scenario, axis, value))
    result = solver.search(metrics, top_n=1)
    best = result.best
    return {
        "value": value,
        "net": best.totals.net,
        "revenue": best.totals.revenue,
        "target_net": result.target_net,
        "gap": best.totals.net_gap,
        "violations": best.violation_count,
        "meets_target": best.meets_target,
        "billable_days": metrics.capacity.billable_days_after_travel,
    }


def run_sensitivity(
    scenario: ScenarioInput | dict[str, Any] | None,
    axis: str,
    samples: Optional[int] = None,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    settings: Optional[PlannerSettings] = None,
    n_workers: Optional[int] = None,
) -> SensitivitySeries:
    """Sweep one scenario input and re-solve the portfolio at each sample.

    Args:
        scenario: Raw or validated scenario; it is not modified.
        axis: Name in ``SENSITIVITY_AXES``.
        samples: Number of evenly spaced samples (settings default).
        minimum: Lower end of the sweep (axis default).
        maximum: Upper end of the sweep (axis default).
        settings: Planner settings.
        n_workers: Threads used to solve samples (settings default).

    Returns:
        SensitivitySeries with one row per sample and the break-even value.
    """
    settings = settings or get_settings()
    definition = get_axis(axis)
    data = as_input(ScenarioInput, scenario)
    current = float(getattr(getattr(data, definition.section), definition.field))

    values = build_sample_values(
        definition.minimum if minimum is None else minimum,
        definition.maximum if maximum is None else maximum,
        samples or settings.sensitivity_samples,
        include=current,
    )
    solver = ScenarioSolver(settings)
    workers = n_workers or settings.sensitivity_workers

    log.info("sensitivity_started", axis=axis, samples=len(values), workers=workers)
    if workers > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            rows = list(executor.map(lambda v: _solve_point(solver, data, definition, v), values))
    else:
        rows = [_solve_point(solver, data, definition, value) for value in values]

    frame = pd.DataFrame(rows)
    break_even = find_break_even(frame["value"].tolist(), frame["gap"].tolist())
    log.info("sensitivity_finished", axis=axis, break_even=break_even)

    return SensitivitySeries(
        axis=axis,
        label=definition.label,
        current_value=current,
        frame=frame,
        break_even=break_even,
    )
