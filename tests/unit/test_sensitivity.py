"""Unit tests for sensitivity sweeps."""

import pandas as pd
import pytest

from mixplanner.core.exceptions import InvalidParameterError
from mixplanner.core.settings import PlannerSettings
from mixplanner.domain.models.scenario import ScenarioInput
from mixplanner.services.sensitivity import (
    SENSITIVITY_AXES,
    apply_axis_value,
    build_sample_values,
    find_break_even,
    find_closest_point,
    get_axis,
    run_sensitivity,
)

FRAME_COLUMNS = [
    "value",
    "net",
    "revenue",
    "target_net",
    "gap",
    "violations",
    "meets_target",
    "billable_days",
]


@pytest.fixture
def fast_settings():
    return PlannerSettings(block_depth=3, sensitivity_samples=3)


class TestBuildSampleValues:
    def test_even_spacing(self):
        assert build_sample_values(0, 10, 3) == [0.0, 5.0, 10.0]

    def test_includes_current(self):
        assert build_sample_values(0, 10, 3, include=7.25) == [0.0, 5.0, 7.25, 10.0]

    def test_deduplicates(self):
        assert build_sample_values(0, 10, 3, include=5) == [0.0, 5.0, 10.0]

    def test_single_point(self):
        assert build_sample_values(4, 4, 1) == [4.0]

    def test_invalid_count(self):
        with pytest.raises(InvalidParameterError):
            build_sample_values(0, 10, 0)

    def test_inverted_range(self):
        with pytest.raises(InvalidParameterError):
            build_sample_values(10, 0, 3)


class TestFindBreakEven:
    def test_interpolates_crossing(self):
        assert find_break_even([0, 10, 20], [-100, -50, 50]) == pytest.approx(15)

    def test_exact_zero(self):
        assert find_break_even([0, 10, 20], [-100, 0, 50]) == 10

    def test_falling_crossing(self):
        assert find_break_even([0, 10], [40, -60]) == pytest.approx(4)

    def test_no_crossing(self):
        assert find_break_even([0, 10, 20], [5, 10, 15]) is None
        assert find_break_even([], []) is None


class TestAxes:
    def test_unknown_axis(self):
        with pytest.raises(InvalidParameterError, match="axis"):
            get_axis("weather")

    @pytest.mark.parametrize("name", sorted(SENSITIVITY_AXES))
    def test_axis_fields_exist(self, name):
        axis = get_axis(name)
        section = getattr(ScenarioInput(), axis.section)
        assert hasattr(section, axis.field)
        assert axis.minimum < axis.maximum

    def test_apply_axis_value(self, concrete_scenario):
        scenario = ScenarioInput.model_validate(concrete_scenario)
        updated = apply_axis_value(scenario, get_axis("months_off"), 4)
        assert updated.capacity.months_off == 4
        assert scenario.capacity.months_off == 2
        assert updated.costs.fixed_costs == scenario.costs.fixed_costs
        assert updated.income_targets == scenario.income_targets


class TestFindClosestPoint:
    def test_nearest_row(self):
        frame = pd.DataFrame({"value": [0.0, 5.0, 10.0], "net": [1.0, 2.0, 3.0]})
        assert find_closest_point(frame, 6.0)["net"] == 2.0

    def test_empty(self):
        assert find_closest_point(pd.DataFrame(), 1.0) == {}


class TestRunSensitivity:
    def test_fixed_costs_sweep(self, concrete_scenario, fast_settings):
        series = run_sensitivity(
            concrete_scenario, "fixed_costs", minimum=0, maximum=40000, settings=fast_settings
        )
        frame = series.frame
        assert list(frame.columns) == FRAME_COLUMNS
        assert frame["value"].tolist() == [0.0, 12000.0, 20000.0, 40000.0]
        assert series.current_value == 12000
        assert series.label == "Fixed costs"
        assert (frame["target_net"] == 50000).all()
        assert series.closest()["value"] == 12000
        assert bool(series.closest()["meets_target"])

    def test_workers_match_sequential(self, concrete_scenario, fast_settings):
        kwargs = dict(samples=2, minimum=30, maximum=40, settings=fast_settings)
        sequential = run_sensitivity(concrete_scenario, "tax_rate", n_workers=1, **kwargs)
        threaded = run_sensitivity(concrete_scenario, "tax_rate", n_workers=2, **kwargs)
        pd.testing.assert_frame_equal(sequential.frame, threaded.frame)

    def test_scenario_not_modified(self, concrete_scenario, fast_settings):
        scenario = ScenarioInput.model_validate(concrete_scenario)
        before = scenario.model_dump()
        run_sensitivity(scenario, "months_off", samples=2, minimum=1, maximum=3, settings=fast_settings)
        assert scenario.model_dump() == before

    def test_unknown_axis(self, concrete_scenario):
        with pytest.raises(InvalidParameterError):
            run_sensitivity(concrete_scenario, "interest_rate")
