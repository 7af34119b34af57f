"""Unit tests for income target resolution."""

import math

import pytest

from mixplanner.core.capacity import derive_capacity
from mixplanner.core.income import (
    convert_target,
    derive_income_targets,
    derive_target_net_defaults,
)


class TestDeriveIncomeTargets:
    def test_year_basis(self, capacity):
        targets = derive_income_targets({"basis": "year", "year": 50000}, capacity)
        assert targets.target_annual == 50000
        assert targets.target_net == 50000
        assert targets.target_gross is None
        assert math.isclose(targets.target_per_week, 50000 / capacity.working_weeks)
        assert math.isclose(targets.target_per_month, 5000)
        assert math.isclose(targets.target_average_per_week, 50000 / 52)
        assert math.isclose(targets.target_average_per_month, 50000 / 12)

    def test_week_basis(self, capacity):
        targets = derive_income_targets({"basis": "week", "week": 1000}, capacity)
        assert math.isclose(targets.target_annual, 1000 * capacity.working_weeks)

    def test_month_basis(self, capacity):
        targets = derive_income_targets({"basis": "month", "month": 4000}, capacity)
        assert math.isclose(targets.target_annual, 40000)

    @pytest.mark.parametrize("basis,key,factor", [("avgWeek", "averageWeek", 52), ("avgMonth", "averageMonth", 12)])
    def test_average_bases(self, capacity, basis, key, factor):
        targets = derive_income_targets({"basis": basis, key: 800}, capacity)
        assert math.isclose(targets.target_annual, 800 * factor)

    def test_gross_mode(self, capacity):
        targets = derive_income_targets({"mode": "gross", "year": 80000}, capacity)
        assert targets.target_net is None
        assert targets.target_gross == 80000
        assert targets.label.startswith("Gross target")

    def test_negative_targets_clamp_to_zero(self, capacity):
        targets = derive_income_targets({"year": -100}, capacity)
        assert targets.target_annual == 0

    def test_week_basis_without_working_weeks_falls_back_to_year(self):
        capacity = derive_capacity({"monthsOff": 12})
        targets = derive_income_targets({"basis": "week", "week": 1000, "year": 30000}, capacity)
        assert targets.target_annual == 30000
        assert targets.target_per_week is None
        assert targets.target_per_month is None
        assert targets.has_working_weeks is False


class TestConversion:
    def test_year_week_year_round_trip(self, capacity):
        """Converting year -> week -> year returns the original value."""
        week = convert_target(50000, "year", "week", capacity)
        assert math.isclose(convert_target(week, "week", "year", capacity), 50000)

    def test_round_trip_through_resolver(self, capacity):
        per_week = derive_income_targets({"basis": "year", "year": 50000}, capacity).target_per_week
        back = derive_income_targets({"basis": "week", "week": per_week}, capacity)
        assert math.isclose(back.target_annual, 50000)

    def test_undefined_conversion(self):
        capacity = derive_capacity({"monthsOff": 12})
        assert convert_target(50000, "year", "month", capacity) is None

    def test_defaults(self, capacity):
        defaults = derive_target_net_defaults(capacity)
        assert defaults["year"] == 50000
        assert math.isclose(defaults["month"], 5000)
        assert math.isclose(defaults["average_week"], 50000 / 52)
