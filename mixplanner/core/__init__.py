"""Core planning stages: capacity, costs, income targets and tax."""

from .exceptions import (
    ConfigurationError,
    InvalidParameterError,
    MixPlannerError,
    SolverError,
)
from .capacity import derive_capacity
from .costs import compute_costs
from .income import convert_target, derive_income_targets, derive_target_net_defaults
from .modifiers import normalize_modifiers
from .tax import (
    TaxSettings,
    calculate_dutch_tax_2025,
    calculate_simple_tax_reserve,
    calculate_tax_reserve,
    compute_progressive_tax,
    compute_tax_breakdown,
    resolve_tax_mode,
    resolve_tax_settings,
    solve_tax_breakdown,
)

__all__ = [
    "derive_capacity",
    "compute_costs",
    "convert_target",
    "derive_income_targets",
    "derive_target_net_defaults",
    "normalize_modifiers",
    "TaxSettings",
    "calculate_dutch_tax_2025",
    "calculate_simple_tax_reserve",
    "calculate_tax_reserve",
    "compute_progressive_tax",
    "compute_tax_breakdown",
    "resolve_tax_mode",
    "resolve_tax_settings",
    "solve_tax_breakdown",
    # Exceptions
    "MixPlannerError",
    "InvalidParameterError",
    "ConfigurationError",
    "SolverError",
]
