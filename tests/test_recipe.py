import numpy as np
import pandas as pd
import pytest

from bikeshare.exception import DegenerateColumn, UnknownColumn
from bikeshare.modeling.recipe import (
    CorrelationFilter,
    DropColumns,
    DummyEncoder,
    InteractionExpander,
    NearZeroVarianceFilter,
    Normalizer,
    Recipe,
)


@pytest.fixture
def predictors(day_split):
    return day_split.training().drop(columns=["cnt"]), day_split.testing().drop(columns=["cnt"])


@pytest.fixture
def day_recipe(schema_config):
    return Recipe.from_config(schema_config["recipe"])


def test_normalized_training_columns_have_zero_mean_unit_std(predictors):
    train, _ = predictors
    recipe = Recipe((Normalizer(columns=["temp", "atemp", "hum", "windspeed"]),))
    baked = recipe.prep(train).bake(train)
    for col in ["temp", "atemp", "hum", "windspeed"]:
        assert baked[col].mean() == pytest.approx(0.0, abs=1e-10)
        assert baked[col].std(ddof=1) == pytest.approx(1.0)


def test_bake_is_idempotent_on_training_data(predictors, day_recipe):
    train, _ = predictors
    fitted = day_recipe.prep(train)
    pd.testing.assert_frame_equal(fitted.bake(train), fitted.bake(train))


def test_fitted_parameters_come_from_training_rows_only(predictors):
    train, test = predictors
    fitted = Recipe((Normalizer(columns=["temp", "hum"]),)).prep(train)
    params = fitted.steps[0][1]
    assert params.means["temp"] == pytest.approx(train["temp"].mean())
    assert params.stds["hum"] == pytest.approx(train["hum"].std(ddof=1))

    shifted = test.assign(temp=test["temp"] + 100.0)
    baked = fitted.bake(shifted)
    assert params.means["temp"] == pytest.approx(train["temp"].mean())
    expected = (shifted["temp"] - train["temp"].mean()) / train["temp"].std(ddof=1)
    np.testing.assert_allclose(baked["temp"], expected)


def test_baked_subsets_share_columns(predictors, day_recipe):
    train, test = predictors
    fitted = day_recipe.prep(train)
    baked_train, baked_test = fitted.bake(train), fitted.bake(test)
    assert list(baked_train.columns) == list(baked_test.columns) == list(fitted.output_columns)


def test_day_recipe_output_is_numeric(predictors, day_recipe):
    train, test = predictors
    baked = day_recipe.prep(train).bake(test)
    assert all(pd.api.types.is_numeric_dtype(dtype) for dtype in baked.dtypes)
    assert not baked.isna().any().any()


def test_dummy_encoder_drops_reference_level():
    data = pd.DataFrame({"weather": pd.Categorical(["clear", "mist", "rain", "clear"],
                                                   categories=["clear", "mist", "rain", "snow"])})
    baked = Recipe((DummyEncoder(),)).prep(data).bake(data)
    assert list(baked.columns) == ["weather_mist", "weather_rain"]
    assert baked["weather_mist"].tolist() == [0.0, 1.0, 0.0, 0.0]


def test_dummy_encoder_one_hot_keeps_every_level():
    data = pd.DataFrame({"weather": ["clear", "mist", "rain"]})
    baked = Recipe((DummyEncoder(one_hot=True),)).prep(data).bake(data)
    assert list(baked.columns) == ["weather_clear", "weather_mist", "weather_rain"]


def test_dummy_encoder_handles_missing_and_unseen_levels():
    train = pd.DataFrame({"weather": ["clear", "mist", "rain"], "temp": [0.1, 0.2, 0.3]})
    test = pd.DataFrame({"weather": ["clear", "snow"], "temp": [0.4, 0.5]})
    fitted = Recipe((DummyEncoder(),)).prep(train)
    baked = fitted.bake(test)
    assert list(baked.columns) == ["temp", "weather_mist", "weather_rain"]
    assert baked[["weather_mist", "weather_rain"]].to_numpy().sum() == 0


def test_near_zero_variance_filter():
    n_rows = 100
    data = pd.DataFrame({
        "constant": np.ones(n_rows),
        "rare": [1.0] * 2 + [0.0] * (n_rows - 2),
        "balanced": [1.0, 0.0] * (n_rows // 2),
        "continuous": np.linspace(0, 1, n_rows),
    })
    fitted = Recipe((NearZeroVarianceFilter(),)).prep(data)
    assert fitted.steps[0][1].removed == ("constant", "rare")
    assert list(fitted.bake(data).columns) == ["balanced", "continuous"]


def test_near_zero_variance_decision_is_kept_for_other_data():
    train = pd.DataFrame({"x": np.ones(20), "y": np.arange(20.0)})
    test = pd.DataFrame({"x": np.arange(5.0), "y": np.arange(5.0)})
    baked = Recipe((NearZeroVarianceFilter(),)).prep(train).bake(test)
    assert list(baked.columns) == ["y"]


def test_near_zero_variance_ignores_missing_rows():
    # 44 observed values, 5 distinct: 11% unique among observed rows, 5% of all rows
    observed = [0.0] * 40 + [1.0, 2.0, 3.0, 4.0]
    data = pd.DataFrame({"x": observed + [np.nan] * 56, "y": np.arange(100.0)})
    fitted = Recipe((NearZeroVarianceFilter(),)).prep(data)
    assert fitted.steps[0][1].removed == ()
    assert list(fitted.bake(data).columns) == ["x", "y"]


def test_normalizer_rejects_constant_column():
    data = pd.DataFrame({"x": [2.0, 2.0, 2.0], "y": [1.0, 2.0, 3.0]})
    with pytest.raises(DegenerateColumn):
        Recipe((Normalizer(),)).prep(data)


def test_interaction_expander_resolves_patterns():
    data = pd.DataFrame({
        "season_2": [0.0, 1.0, 0.0],
        "season_3": [0.0, 0.0, 1.0],
        "temp": [0.2, 0.5, 0.8],
        "hum": [0.5, 0.5, 0.4],
    })
    recipe = Recipe((InteractionExpander(terms=[["temp", "hum"], "season_*:temp"]),))
    baked = recipe.prep(data).bake(data)
    assert {"temp_x_hum", "season_2_x_temp", "season_3_x_temp"} <= set(baked.columns)
    np.testing.assert_allclose(baked["season_3_x_temp"], [0.0, 0.0, 0.8])
    np.testing.assert_allclose(baked["temp_x_hum"], data["temp"] * data["hum"])


def test_interaction_without_match_raises():
    data = pd.DataFrame({"temp": [0.1, 0.2]})
    with pytest.raises(UnknownColumn):
        Recipe((InteractionExpander(terms=["windspeed:temp"]),)).prep(data)


def test_correlation_filter_drops_one_of_a_correlated_pair():
    rng = np.random.default_rng(0)
    temp = rng.uniform(0, 1, 200)
    data = pd.DataFrame({
        "temp": temp,
        "atemp": temp * 0.9 + rng.normal(0, 0.005, 200),
        "hum": rng.uniform(0, 1, 200),
    })
    fitted = Recipe((CorrelationFilter(threshold=0.9),)).prep(data)
    removed = fitted.steps[0][1].removed
    assert len(removed) == 1 and removed[0] in ("temp", "atemp")
    assert "hum" in fitted.output_columns


def test_correlation_filter_tie_drops_later_column():
    rng = np.random.default_rng(1)
    a = rng.normal(size=50)
    data = pd.DataFrame({"a": a, "b": a.copy(), "c": rng.normal(size=50)})
    fitted = Recipe((CorrelationFilter(threshold=0.9),)).prep(data)
    assert fitted.steps[0][1].removed == ("b",)


def test_drop_columns_and_unknown_column():
    data = pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0]})
    assert list(Recipe((DropColumns(["x"]),)).prep(data).bake(data).columns) == ["y"]
    with pytest.raises(UnknownColumn):
        Recipe((Normalizer(columns=["z"]),)).prep(data)


def test_bake_requires_fitted_columns():
    train = pd.DataFrame({"x": [1.0, 2.0, 3.0]})
    fitted = Recipe((Normalizer(),)).prep(train)
    with pytest.raises(UnknownColumn):
        fitted.bake(pd.DataFrame({"y": [1.0]}))


def test_steps_work_as_sklearn_transformers(predictors):
    train, test = predictors
    step = Normalizer(columns=["temp"])
    transformed = step.fit(train).transform(test)
    expected = step.apply(step.fit_params(train), test)
    pd.testing.assert_frame_equal(transformed, expected)


def test_prep_leaves_steps_unfitted(predictors, day_recipe):
    train, _ = predictors
    day_recipe.prep(train)
    assert not any(hasattr(step, "params_") for step in day_recipe.steps)


def test_from_config_rejects_unknown_step():
    with pytest.raises(ValueError):
        Recipe.from_config([{"step": "pca"}])


def test_add_step_returns_new_recipe():
    recipe = Recipe()
    extended = recipe.add_step(Normalizer())
    assert len(recipe) == 0 and len(extended) == 1
