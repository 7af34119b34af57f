"""Planner settings with environment variable support.

Uses pydantic-settings for typed configuration validation. Only the pipeline
facade and the sensitivity sweep read these; the calculation functions take
plain arguments.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from mixplanner.core import constants as C


class PlannerSettings(BaseSettings):
    """Planner configuration loaded from environment variables."""

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")
    log_file: Optional[str] = Field(default=None, description="Rotating log file path")

    # Defaults for scenarios
    default_session_length: float = Field(default=C.DEFAULT_SESSION_LENGTH, ge=0)

    # Tax solver
    tax_solver_tolerance: float = Field(default=C.TAX_SOLVER_TOLERANCE, gt=0)
    tax_solver_max_iterations: int = Field(default=C.TAX_SOLVER_MAX_ITERATIONS, ge=1, le=500)
    tax_solver_max_expansions: int = Field(default=C.TAX_SOLVER_MAX_EXPANSIONS, ge=0, le=200)

    # Portfolio search
    default_top_n: int = Field(default=C.DEFAULT_TOP_N, ge=1, le=100)
    enable_pruning: bool = Field(default=True, description="Skip prefixes that cannot rank")
    block_depth: int = Field(default=2, ge=1, le=3, description="Services evaluated per numpy block")
    max_combinations: int = Field(
        default=250_000, description="Search size above which a warning is logged"
    )

    # Sensitivity
    sensitivity_samples: int = Field(default=9, ge=2, le=101)
    sensitivity_workers: int = Field(default=1, ge=1, le=32)

    model_config = {
        "env_prefix": "MIXPLANNER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> PlannerSettings:
    """Get cached planner settings."""
    return PlannerSettings()
