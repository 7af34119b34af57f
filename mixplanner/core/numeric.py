"""Numeric coercion helpers.

Scenario records come from forms and storage; anything that is not a finite
number resolves to a caller-supplied fallback instead of raising.
"""

from __future__ import annotations

import math
from typing import Any, Optional


def to_number(value: Any, fallback: Optional[float] = 0.0) -> Optional[float]:
    """Convert ``value`` to a finite float or return ``fallback``.

    Booleans are rejected, strings are parsed after trimming.
    """
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        text = value.strip().replace(",", ".")
        if not text:
            return fallback
        try:
            value = float(text)
        except ValueError:
            return fallback
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return number


def clamp(value: float, lower: float = 0.0, upper: float = math.inf) -> float:
    """Clamp ``value`` into ``[lower, upper]``; NaN maps to ``lower``."""
    if value is None or math.isnan(value):
        return lower
    return min(max(value, lower), upper)


def coerce_number(
    value: Any,
    default: float,
    lower: float = 0.0,
    upper: float = math.inf,
) -> float:
    """Coerce ``value`` to a number, fall back to ``default``, then clamp."""
    return clamp(to_number(value, default), lower, upper)


def coerce_optional(value: Any, lower: float = 0.0, upper: float = math.inf) -> Optional[float]:
    """Like :func:`coerce_number` but keeps missing or invalid values as ``None``."""
    number = to_number(value, None)
    if number is None:
        return None
    return clamp(number, lower, upper)


def coerce_flag(value: Any, default: Optional[bool]) -> Optional[bool]:
    """Coerce form-style booleans ("true", "0", 1, None)."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value) if math.isfinite(value) else default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "yes", "on"):
            return True
        if text in ("false", "0", "no", "off"):
            return False
    return default


def round_units(value: float, decimals: int = 2) -> float:
    """Round half away from zero, as the planner's unit grids are displayed."""
    factor = 10 ** decimals
    return math.floor(abs(value) * factor + 0.5) / factor * (1 if value >= 0 else -1)


def safe_divide(numerator: float, denominator: float, fallback: Optional[float] = 0.0) -> Optional[float]:
    """Divide, returning ``fallback`` when the denominator is not positive."""
    if denominator is None or denominator <= 0:
        return fallback
    return numerator / denominator
