"""Pytest fixtures for mixplanner tests."""

import os
import sys

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mixplanner.core.capacity import derive_capacity  # noqa: E402
from mixplanner.core.costs import compute_costs  # noqa: E402
from mixplanner.core.modifiers import normalize_modifiers  # noqa: E402


@pytest.fixture
def concrete_scenario():
    """Two months off, full utilisation, 50k net target, simple tax."""
    return {
        "capacity": {
            "monthsOff": 2,
            "weeksOffCycle": 0,
            "daysOffWeek": 0,
            "utilizationPercent": 100,
        },
        "sessionLength": 1.5,
        "incomeTargets": {"mode": "net", "basis": "year", "year": 50000},
        "tax": {"mode": "simple"},
        "costs": {
            "taxRatePercent": 40,
            "fixedCosts": 12000,
            "variableCostPerClass": 10,
            "vatRatePercent": 21,
            "bufferPercent": 15,
        },
    }


@pytest.fixture
def dutch_scenario(concrete_scenario):
    """Concrete scenario under the Dutch 2025 regime."""
    scenario = dict(concrete_scenario)
    scenario["tax"] = {"mode": "dutch2025"}
    return scenario


@pytest.fixture
def modifiers():
    return normalize_modifiers({})


@pytest.fixture
def capacity(concrete_scenario, modifiers):
    """Capacity of the concrete scenario: 10 active months, 7-day weeks."""
    return derive_capacity(concrete_scenario["capacity"], modifiers, 1.5)


@pytest.fixture
def costs(concrete_scenario, capacity, modifiers):
    return compute_costs(concrete_scenario["costs"], capacity, modifiers)
