"""Unit tests for the service catalogue and per-field resolution."""

import math

import pytest

from mixplanner.core.exceptions import ConfigurationError
from mixplanner.domain.calculator.config_resolution import (
    resolve_comfort_floor,
    resolve_cost_share,
    resolve_hands_on_weight,
    resolve_price_per_unit,
    resolve_pricing_ceiling,
    resolve_pricing_floor,
    resolve_tax_rate,
    resolve_units_per_month,
)
from mixplanner.domain.calculator.service_economics import evaluate_service_option
from mixplanner.domain.models.service import ServiceConfig
from mixplanner.services.catalog import (
    SERVICE_DEFAULTS,
    SERVICE_IDS,
    build_service_config,
    build_service_configs,
)


class TestBuildServiceConfigs:
    def test_full_catalogue_in_order(self):
        configs = build_service_configs()
        assert list(configs) == list(SERVICE_IDS)
        assert configs["qc"].title == "Quality control - arrivals"
        assert configs["representation"].base_price == 2250

    def test_override_merges_field_by_field(self):
        configs = build_service_configs({"ops": {"basePrice": 1600, "unitsPerMonth": 4}})
        ops = configs["ops"]
        assert ops.base_price == 1600
        assert ops.units_per_month == 4
        assert ops.days_per_unit == SERVICE_DEFAULTS["ops"]["days_per_unit"]
        assert ops.pricing_fences.stretch == 1740

    def test_fence_override_keeps_other_fences(self):
        config = build_service_config("qc", {"pricingFences": {"stretch": 1500}})
        assert config.pricing_fences.stretch == 1500
        assert config.pricing_fences.min == 880

    def test_invalid_override_values_are_ignored(self):
        config = build_service_config("intel", {"basePrice": "free", "daysPerUnit": None})
        assert config.base_price == 760
        assert config.days_per_unit == 0.5

    def test_subset_of_services(self):
        configs = build_service_configs(service_ids=["intel", "ops"])
        assert list(configs) == ["intel", "ops"]

    def test_unknown_requested_service(self):
        with pytest.raises(ConfigurationError):
            build_service_configs(service_ids=["coaching"])

    def test_unknown_override_is_ignored(self):
        configs = build_service_configs({"coaching": {"basePrice": 100}})
        assert "coaching" not in configs

    def test_null_cost_share_clears_default(self):
        configs = build_service_configs({"intel": {"fixedCostShare": None, "variable_cost_share": None}})
        assert configs["intel"].fixed_cost_share is None
        assert configs["intel"].variable_cost_share is None
        assert configs["ops"].fixed_cost_share == 0.2

    def test_invalid_cost_share_keeps_default(self):
        config = build_service_config("intel", {"fixedCostShare": "abc"})
        assert config.fixed_cost_share == 0.16

    def test_cleared_share_allocates_by_usage(self, capacity, costs):
        config = build_service_configs({"intel": {"fixedCostShare": None, "variableCostShare": None}})["intel"]
        option = evaluate_service_option("intel", config, 4, capacity, costs)
        usage = option.service_days / capacity.billable_days_after_travel
        assert math.isclose(option.fixed_cost_share, usage)
        assert math.isclose(option.variable_cost_share, usage)
        expected = 80 * option.annual_units + costs.fixed_costs * usage + costs.annual_variable_costs * usage
        assert math.isclose(option.direct_cost, expected)


class TestResolution:
    """Each resolver reports where its value came from."""

    def test_price_from_buffer(self, costs):
        price = resolve_price_per_unit(build_service_config("representation"), costs)
        assert math.isclose(price.value, 2250 * 1.15)
        assert price.source == "computed"

    def test_locked_price(self, costs):
        price = resolve_price_per_unit(build_service_config("ops", {"pricePerUnit": 1500}), costs)
        assert price.value == 1500
        assert price.source == "override"

    def test_buffer_override(self, costs):
        price = resolve_price_per_unit(build_service_config("ops", {"bufferOverride": 0.5}), costs)
        assert math.isclose(price.value, 1450 * 1.5)

    def test_pricing_floor_and_ceiling(self):
        config = build_service_config("training")
        assert resolve_pricing_floor(config).value == 1060
        assert resolve_pricing_ceiling(config).value == 1420

    def test_explicit_price_bounds(self):
        config = build_service_config("training", {"minPricePerUnit": 1200, "maxPricePerUnit": 1300})
        assert resolve_pricing_floor(config).source == "override"
        assert resolve_pricing_ceiling(config).value == 1300

    def test_ceiling_without_fences(self):
        config = ServiceConfig.model_validate({"id": "training", "basePrice": 1180})
        assert resolve_pricing_floor(config).value == 1180
        assert resolve_pricing_ceiling(config).value == 2360
        assert math.isinf(resolve_pricing_ceiling(ServiceConfig(id="empty")).value)

    def test_units_override(self):
        assert resolve_units_per_month(build_service_config("qc"), 10) is None
        per_year = resolve_units_per_month(build_service_config("qc", {"unitsPerYear": 50}), 10)
        assert per_year.value == 5
        assert per_year.source == "override"

    def test_zero_units_are_explicit(self):
        per_month = resolve_units_per_month(build_service_config("qc", {"unitsPerMonth": 0}), 10)
        per_year = resolve_units_per_month(build_service_config("qc", {"unitsPerYear": 0}), 10)
        assert per_month.value == 0
        assert per_year.value == 0
        assert per_year.source == "override"

    def test_cost_share(self):
        assert resolve_cost_share(0.3, 0.9).value == 0.3
        computed = resolve_cost_share(None, 0.9)
        assert computed.value == 0.9
        assert computed.source == "computed"

    def test_comfort_floor(self, costs):
        assert math.isclose(resolve_comfort_floor(build_service_config("qc"), costs).value, 0.15)
        override = build_service_config("qc", {"comfortBuffer": 0.99})
        assert resolve_comfort_floor(override, costs).value == 0.95

    @pytest.mark.parametrize("service_id,expected", [
        ("representation", 0.0), ("ops", 1.0), ("qc", 1.0), ("training", 1.0), ("intel", 0.0),
    ])
    def test_hands_on_convention(self, service_id, expected):
        weight = resolve_hands_on_weight(service_id, build_service_config(service_id))
        assert weight.value == expected
        assert weight.source == "default"

    def test_hands_on_overrides(self):
        assert resolve_hands_on_weight("intel", build_service_config("intel", {"handsOn": True})).value == 1
        assert resolve_hands_on_weight("ops", build_service_config("ops", {"handsOnWeight": 0.25})).value == 0.25

    def test_tax_rate_resolution(self, costs):
        config = build_service_config("ops", {"taxRate": 0.3})
        assert resolve_tax_rate(config, costs).value == 0.3
        assert resolve_tax_rate(build_service_config("ops"), costs).value == 0.4
        assert resolve_tax_rate(config, costs, dutch_effective_rate=0.25).value == 0.25
