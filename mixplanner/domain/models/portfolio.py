"""Portfolio search records.

A portfolio candidate is one unit volume per service; the optimization
result holds the retained candidates, best first, with search diagnostics.
"""

from __future__ import annotations

from typing import Any, Optional

import pandas as pd
from pydantic import BaseModel, Field, computed_field

from mixplanner.domain.models.service import ServiceCandidate, Violation


class PortfolioConstraints(BaseModel):
    """Resolved feasibility limits for a portfolio."""

    max_service_days: float = Field(..., ge=0)
    max_travel_days: float = Field(..., ge=0)
    hands_on_share_target: Optional[float] = Field(None, description="None disables the band")
    hands_on_share_tolerance: float = Field(..., ge=0, le=0.5)
    hands_on_share_min: Optional[float] = None
    hands_on_share_max: Optional[float] = None
    comfort_floor: float = Field(..., ge=0, le=0.95)

    model_config = {"frozen": True}


class PortfolioTotals(BaseModel):
    """Aggregated economics of a portfolio candidate."""

    revenue: float
    direct_cost: float
    tax: float
    net: float
    service_days: float
    travel_days: float
    hands_on_days: float
    hands_on_share: float
    gross_margin: float
    target_net: float
    net_gap: float

    model_config = {"frozen": True}


class PortfolioCandidate(BaseModel):
    """One unit volume per service, with totals and violations."""

    mix: dict[str, ServiceCandidate] = Field(default_factory=dict)
    totals: PortfolioTotals
    violations: list[Violation] = Field(default_factory=list)
    meets_target: bool
    rank: int = Field(default=1, ge=1, description="Position in the ranking, 1 is best")

    model_config = {"frozen": True}

    @computed_field
    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @computed_field
    @property
    def units(self) -> dict[str, float]:
        """Units per month by service id."""
        return {service_id: option.units_per_month for service_id, option in self.mix.items()}

    def unit_vector(self) -> tuple[float, ...]:
        """Units per month in service order."""
        return tuple(option.units_per_month for option in self.mix.values())


class OptimizationResult(BaseModel):
    """Outcome of a portfolio search."""

    best: PortfolioCandidate
    candidates: list[PortfolioCandidate] = Field(default_factory=list)
    constraints: PortfolioConstraints
    target_net: float
    iterations: int = Field(default=0, ge=0, description="Combinations evaluated")
    pruned: int = Field(default=0, ge=0, description="Combinations skipped by pruning")
    combinations: int = Field(default=0, ge=0, description="Size of the full cross product")
    candidate_counts: dict[str, int] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @computed_field
    @property
    def violations(self) -> list[Violation]:
        """Violations of the best candidate."""
        return list(self.best.violations)

    @computed_field
    @property
    def meets_target(self) -> bool:
        return self.best.meets_target

    def to_frame(self) -> pd.DataFrame:
        """Ranked candidates as a table, one row per candidate."""
        rows: list[dict[str, Any]] = []
        for candidate in self.candidates:
            row: dict[str, Any] = {"rank": candidate.rank}
            row.update({f"units_{k}": v for k, v in candidate.units.items()})
            row.update(candidate.totals.model_dump())
            row["violations"] = candidate.violation_count
            row["meets_target"] = candidate.meets_target
            rows.append(row)
        return pd.DataFrame(rows)
