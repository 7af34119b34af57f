"""Calendar, tax and solver constants shared by the planning stages."""

from __future__ import annotations

import math

# Calendar
MONTHS_PER_YEAR = 12
WEEKS_PER_YEAR = 52
WEEKS_PER_CYCLE = 4
BASE_WORK_DAYS_PER_WEEK = 7
DEFAULT_SESSION_LENGTH = 1.5

# Travel inputs
MAX_TRAVEL_DAYS_PER_MONTH = 28
MAX_TRAVEL_DAYS_PER_CYCLE = 7
FALLBACK_CYCLES_PER_YEAR = 13

# Seasonality never removes more than 90% of the working year
MIN_SEASONALITY_PENALTY = 0.1

# Income targets
TARGET_NET_DEFAULT = 50000.0
TARGET_INCOME_MODES = ("net", "gross")
DEFAULT_TARGET_INCOME_MODE = "net"
TARGET_NET_BASIS_VALUES = ("year", "week", "month", "avgWeek", "avgMonth")
DEFAULT_TARGET_NET_BASIS = "year"

# Costs
MAX_TAX_RATE_PERCENT = 99.9
DEFAULT_CURRENCY_SYMBOL = "€"

# Tax modes
TAX_MODE_SIMPLE = "simple"
TAX_MODE_DUTCH_2025 = "dutch2025"
TAX_MODES = (TAX_MODE_SIMPLE, TAX_MODE_DUTCH_2025)
DEFAULT_TAX_MODE = TAX_MODE_SIMPLE

# Dutch 2025 entrepreneur regime
ZELFSTANDIGENAFTREK_2025 = 2470.0
STARTERSAFTREK_2025 = 2123.0
MKB_WINSTVRIJSTELLING_RATE_2025 = 0.1331
ZVW_RATE_2025 = 0.0532
ZVW_MAX_BASE_2025 = 80000.0
INCOME_TAX_BRACKETS_2025: tuple[tuple[float, float], ...] = (
    (75518.0, 0.3697),
    (math.inf, 0.495),
)
DUTCH_TAX_DEFAULTS = {
    "zelfstandigenaftrek": True,
    "startersaftrek": False,
    "mkb_vrijstelling": True,
    "include_zvw": True,
}

# Tax solver
TAX_SOLVER_TOLERANCE = 0.5
TAX_SOLVER_MAX_ITERATIONS = 60
TAX_SOLVER_MAX_EXPANSIONS = 25
TAX_SOLVER_GROWTH = 1.5
MAX_MANUAL_TAX_GUESS = 0.95
MIN_NET_SHARE_GUESS = 0.05

# Feasibility comparisons
EPSILON = 1e-6

# Scenario modifiers: (default percent, min percent, max percent)
MODIFIER_RANGES = {
    "comfort_margin_percent": (10.0, 0.0, 60.0),
    "seasonality_percent": (0.0, 0.0, 75.0),
    "travel_friction_percent": (0.0, 0.0, 150.0),
    "hands_on_quota_percent": (50.0, 0.0, 100.0),
}

# Portfolio search
DEFAULT_HANDS_ON_TOLERANCE = 0.1
MAX_HANDS_ON_TOLERANCE = 0.5
MAX_COMFORT_FLOOR = 0.95
MAX_BUFFER_OVERRIDE = 5.0
MIN_DAYS_PER_UNIT = 0.01
UNIT_MULTIPLIERS = (0.5, 0.75, 1.0, 1.25, 1.5)
UNIT_GRID_STEPS = 6
FINE_UNIT_STEP = 0.5
DEFAULT_TOP_N = 5
