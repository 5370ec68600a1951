import numpy as np
import pytest

from bikeshare.exception import InvalidGrid
from bikeshare.modeling.grid import (
    PARAMETER_DEFAULTS,
    ParamRange,
    grid_for_spec,
    grid_from_config,
    param_from_config,
    random_grid,
    regular_grid,
)
from bikeshare.modeling.model_spec import TUNE, ModelSpec, boost_tree


def test_regular_grid_is_a_cross_product_with_first_argument_slowest():
    grid = regular_grid({"tree_depth": ParamRange(1, 5, integer=True), "learn_rate": ParamRange(-3, -1, transform="log10")},
                        levels=5)
    assert len(grid) == 25
    assert grid[0].config == "Model01" and grid[-1].config == "Model25"
    assert [c.params["tree_depth"] for c in grid[:5]] == [1] * 5
    assert grid[5].params["tree_depth"] == 2
    assert list(grid[0].params) == ["tree_depth", "learn_rate"]


def test_log_scale_values():
    values = ParamRange(-3, -1, transform="log10").values(3)
    assert values == pytest.approx((0.001, 0.01, 0.1))


def test_integer_values_are_deduplicated():
    assert ParamRange(1, 3, integer=True).values(5) == (1, 2, 3)
    assert all(isinstance(v, int) for v in ParamRange(1, 15, integer=True).values(4))


def test_single_level_uses_lower_bound():
    assert ParamRange(2, 40, integer=True).values(1) == (2,)


def test_invalid_range():
    with pytest.raises(InvalidGrid):
        ParamRange(5, 1)
    with pytest.raises(InvalidGrid):
        ParamRange(0, 1, transform="sqrt")


def test_explicit_values_are_used_as_given():
    grid = regular_grid({"trees": [10, 20], "learn_rate": np.array([0.1, 0.3])})
    assert len(grid) == 4
    assert grid[0].params == {"trees": 10, "learn_rate": 0.1}
    assert isinstance(grid[0].params["learn_rate"], float)
    assert [c.config for c in grid] == ["Model1", "Model2", "Model3", "Model4"]


def test_empty_value_set_is_rejected():
    with pytest.raises(InvalidGrid):
        regular_grid({"trees": []})


def test_per_argument_levels():
    grid = regular_grid({"tree_depth": ParamRange(1, 10, integer=True), "mixture": ParamRange(0.0, 1.0)},
                        levels={"tree_depth": 2, "mixture": 4})
    assert len(grid) == 8


def test_grid_for_spec_uses_default_ranges():
    spec = boost_tree(trees=500, tree_depth=TUNE, min_n=TUNE)
    grid = grid_for_spec(spec, levels=3)
    assert len(grid) == 9
    depths = sorted({c.params["tree_depth"] for c in grid})
    assert depths == list(PARAMETER_DEFAULTS["tree_depth"].values(3))


def test_grid_for_spec_overrides():
    spec = boost_tree(tree_depth=TUNE, learn_rate=TUNE)
    grid = grid_for_spec(spec, levels=2, overrides={"learn_rate": [0.05, 0.1, 0.2]})
    assert len(grid) == 6
    assert {c.params["learn_rate"] for c in grid} == {0.05, 0.1, 0.2}


def test_grid_for_spec_rejects_ranges_for_fixed_arguments():
    spec = boost_tree(trees=100, tree_depth=TUNE)
    with pytest.raises(InvalidGrid):
        grid_for_spec(spec, overrides={"trees": [10, 20]})


def test_param_from_config():
    assert param_from_config({"type": "int", "min": 1, "max": 10}) == ParamRange(1, 10, integer=True)
    log_range = param_from_config({"type": "float", "min": 0.001, "max": 0.1, "log": True})
    assert log_range.transform == "log10"
    assert log_range.values(3) == pytest.approx((0.001, 0.01, 0.1))
    assert param_from_config({"type": "categorical", "choices": ["a", "b"]}) == ("a", "b")
    with pytest.raises(InvalidGrid):
        param_from_config({"type": "complex", "min": 0, "max": 1})


def test_grid_from_config_honours_entry_levels():
    config = {
        "family": "rand_forest",
        "grid_levels": 2,
        "args": {"trees": 100, "mtry": {"type": "int", "min": 2, "max": 6}, "min_n": {"type": "int", "min": 2, "max": 20}},
    }
    grid = grid_from_config(ModelSpec.from_config(config), config, levels=5)
    assert len(grid) == 4
    assert {c.params["mtry"] for c in grid} == {2, 6}


def test_random_grid_is_reproducible():
    params = {"tree_depth": ParamRange(1, 15, integer=True), "learn_rate": ParamRange(-4, -1, transform="log10")}
    first = random_grid(params, size=6, seed=3)
    second = random_grid(params, size=6, seed=3)
    assert [c.values for c in first] == [c.values for c in second]
    assert len({c.values for c in first}) == 6
    for candidate in first:
        assert 1 <= candidate.params["tree_depth"] <= 15
        assert 1e-4 <= candidate.params["learn_rate"] <= 0.1
