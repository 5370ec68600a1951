import numpy as np
import pandas as pd
import pytest

from bikeshare.exception import InvalidFraction, UnknownColumn
from bikeshare.modeling.splitting import initial_split


def test_split_sizes_for_day_table(day_split, day_table):
    assert len(day_split.train_idx) == 511
    assert len(day_split.test_idx) == 220
    assert len(day_split.training()) + len(day_split.testing()) == len(day_table)


def test_split_is_a_partition(day_split, day_table):
    train, test = set(day_split.train_idx), set(day_split.test_idx)
    assert train.isdisjoint(test)
    assert train | test == set(range(len(day_table)))


@pytest.mark.parametrize("prop", [0.1, 0.25, 0.5, 0.75, 0.9])
def test_training_size_is_floor_of_fraction(day_table, prop):
    split = initial_split(day_table, prop=prop, strata="season", seed=1)
    assert len(split.train_idx) == int(np.floor(prop * len(day_table)))


def test_stratum_proportions_are_preserved(day_split, day_table):
    n_train = len(day_split.train_idx)
    total_counts = day_table["season"].value_counts()
    train_counts = day_split.training()["season"].value_counts()
    for level, count in total_counts.items():
        expected = n_train * count / len(day_table)
        assert abs(train_counts[level] - expected) <= 1


def test_split_is_deterministic_for_a_seed(day_table):
    first = initial_split(day_table, prop=0.7, strata="season", seed=11)
    second = initial_split(day_table, prop=0.7, strata="season", seed=11)
    other = initial_split(day_table, prop=0.7, strata="season", seed=12)
    np.testing.assert_array_equal(first.train_idx, second.train_idx)
    assert not np.array_equal(first.train_idx, other.train_idx)


def test_training_and_testing_are_copies(day_split, day_table):
    training = day_split.training()
    training["temp"] = -1.0
    assert (day_table["temp"] >= 0).all()


@pytest.mark.parametrize("prop", [0, 1, -0.2, 1.5])
def test_invalid_fraction(day_table, prop):
    with pytest.raises(InvalidFraction):
        initial_split(day_table, prop=prop, strata="season")


def test_fraction_leaving_an_empty_subset(day_table):
    with pytest.raises(InvalidFraction):
        initial_split(day_table.head(3), prop=0.2)


def test_unknown_strata_column(day_table):
    with pytest.raises(UnknownColumn):
        initial_split(day_table, prop=0.7, strata="not_a_column")


def test_unstratified_split(day_table):
    split = initial_split(day_table, prop=0.6, seed=3)
    assert split.strata is None
    assert len(split.train_idx) == int(np.floor(0.6 * len(day_table)))


def test_tiny_strata_fall_back_to_unstratified():
    data = pd.DataFrame({"group": ["a"] * 10 + ["b"] * 9 + ["c"], "x": range(20)})
    split = initial_split(data, prop=0.5, strata="group", seed=0)
    assert len(split.train_idx) == 10
    assert set(split.train_idx) | set(split.test_idx) == set(range(20))


def test_single_row_strata_are_pooled():
    data = pd.DataFrame({"group": ["a"] * 10 + ["b"] * 10 + ["c", "d"], "x": range(22)})
    split = initial_split(data, prop=0.5, strata="group", seed=0)
    train_groups = data.iloc[split.train_idx]["group"].value_counts()
    assert train_groups["a"] == 5
    assert train_groups["b"] == 5
    assert len(split.train_idx) == 11


def test_repr(day_split):
    assert repr(day_split) == "<Training/Testing/Total> <511/220/731>"
