"""Custom exceptions for mixplanner.

Numeric scenario input never raises: it is coerced and clamped. These types
cover configuration and programming mistakes only.
"""

from __future__ import annotations

from typing import Any


class MixPlannerError(Exception):
    """Base exception for all mixplanner errors."""
    pass


class InvalidParameterError(MixPlannerError):
    """Invalid parameter value provided."""

    def __init__(self, param_name: str, value: Any, reason: str = ""):
        self.param_name = param_name
        self.value = value
        self.reason = reason
        msg = f"Invalid parameter '{param_name}': {value}"
        if reason:
            msg += f" - {reason}"
        super().__init__(msg)


# --- Configuration Errors ---

class ConfigurationError(MixPlannerError):
    """Error in planner or catalogue configuration."""
    pass


# --- Calculation Errors ---

class SolverError(MixPlannerError):
    """Internal invariant broken during a solve."""
    pass
