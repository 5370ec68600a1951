"""
Preprocessing recipe: an ordered list of steps with an explicit fit/apply split.

Every step learns its parameters from the training subset only
(``fit_params``) and applies them, unchanged, to any other subset
(``apply``). Steps are scikit-learn transformers too, so a recipe can be
dropped in front of an estimator inside a ``sklearn.pipeline.Pipeline``.
"""
import fnmatch
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from bikeshare import logging
from bikeshare.exception import DegenerateColumn, UnknownColumn

ALL_NOMINAL = "all_nominal"
ALL_NUMERIC = "all_numeric"

ColumnSelector = Optional[Union[str, Sequence[str]]]


def is_nominal(series: pd.Series) -> bool:
    return (
        isinstance(series.dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(series.dtype)
        or pd.api.types.is_string_dtype(series.dtype)
    )


def is_numeric(series: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(series.dtype) and not pd.api.types.is_bool_dtype(series.dtype)


def require_columns(X: pd.DataFrame, columns: Sequence[str]) -> None:
    missing = [col for col in columns if col not in X.columns]
    if missing:
        raise UnknownColumn(f"Columns {missing} are not found in the data")


def select_columns(X: pd.DataFrame, columns: ColumnSelector, default: str) -> List[str]:
    """Resolve a column selector against the columns of ``X``."""
    selector = default if columns is None else columns
    if selector == ALL_NOMINAL:
        return [col for col in X.columns if is_nominal(X[col])]
    if selector == ALL_NUMERIC:
        return [col for col in X.columns if is_numeric(X[col])]
    if isinstance(selector, str):
        selector = [selector]
    selected = list(selector)
    require_columns(X, selected)
    return selected


class RecipeStep(TransformerMixin, BaseEstimator):
    """
    Base class of the recipe steps.

    Subclasses implement ``fit_params`` and ``apply``. The scikit-learn
    ``fit``/``transform`` pair is derived from them.
    """
    step_name = "step"

    def fit_params(self, X: pd.DataFrame) -> Any:
        raise NotImplementedError

    def apply(self, params: Any, X: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError

    def fit(self, X: pd.DataFrame, y=None) -> "RecipeStep":
        self.params_ = self.fit_params(X)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "params_")
        return self.apply(self.params_, X)


@dataclass(frozen=True)
class EncodingParams:
    levels: Dict[str, Tuple[Any, ...]]
    one_hot: bool


class DummyEncoder(RecipeStep):
    """
    Replace nominal columns with indicator columns.

    The first observed level of each column is the reference level and gets
    no indicator unless ``one_hot`` is set. Levels that are unseen at fit
    time encode as all zeros.
    """
    step_name = "dummy"

    def __init__(self, columns: ColumnSelector = None, one_hot: bool = False):
        self.columns = columns
        self.one_hot = one_hot

    def fit_params(self, X: pd.DataFrame) -> EncodingParams:
        levels = {}
        for col in select_columns(X, self.columns, ALL_NOMINAL):
            observed = X[col].dropna()
            if isinstance(X[col].dtype, pd.CategoricalDtype):
                seen = set(observed.unique())
                col_levels = [level for level in X[col].cat.categories if level in seen]
            else:
                col_levels = sorted(observed.unique().tolist())
            levels[col] = tuple(col_levels)
        return EncodingParams(levels=levels, one_hot=self.one_hot)

    def apply(self, params: EncodingParams, X: pd.DataFrame) -> pd.DataFrame:
        require_columns(X, list(params.levels))
        indicators = []
        for col, col_levels in params.levels.items():
            values = pd.Categorical(X[col], categories=list(col_levels))
            dummies = pd.get_dummies(values, prefix=col, prefix_sep="_", drop_first=not params.one_hot, dtype=float)
            dummies.index = X.index
            indicators.append(dummies)
        return pd.concat([X.drop(columns=list(params.levels))] + indicators, axis=1)


@dataclass(frozen=True)
class RemovalParams:
    removed: Tuple[str, ...]


class NearZeroVarianceFilter(RecipeStep):
    """
    Drop numeric columns that are constant or nearly so.

    A column is dropped when it has a single distinct value, or when the ratio
    of its most to second most frequent value exceeds ``freq_cut`` while the
    percentage of distinct values is at most ``unique_cut``.
    """
    step_name = "nzv"

    def __init__(self, columns: ColumnSelector = None, freq_cut: float = 95 / 5, unique_cut: float = 10):
        self.columns = columns
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut

    def fit_params(self, X: pd.DataFrame) -> RemovalParams:
        removed = []
        for col in select_columns(X, self.columns, ALL_NUMERIC):
            counts = X[col].value_counts(dropna=True)
            if len(counts) <= 1:
                removed.append(col)
                continue
            freq_ratio = counts.iloc[0] / counts.iloc[1]
            percent_unique = 100 * len(counts) / X[col].notna().sum()
            if freq_ratio > self.freq_cut and percent_unique <= self.unique_cut:
                removed.append(col)
        if removed:
            logging.info(f"Near-zero variance filter removes {removed}")
        return RemovalParams(removed=tuple(removed))

    def apply(self, params: RemovalParams, X: pd.DataFrame) -> pd.DataFrame:
        require_columns(X, params.removed)
        return X.drop(columns=list(params.removed))


@dataclass(frozen=True)
class NormalizationParams:
    means: Dict[str, float]
    stds: Dict[str, float]


class Normalizer(RecipeStep):
    """Center and scale numeric columns with the training mean and standard deviation."""
    step_name = "normalize"

    def __init__(self, columns: ColumnSelector = None):
        self.columns = columns

    def fit_params(self, X: pd.DataFrame) -> NormalizationParams:
        cols = select_columns(X, self.columns, ALL_NUMERIC)
        means = X[cols].mean()
        stds = X[cols].std(ddof=1)
        degenerate = [col for col in cols if not np.isfinite(stds[col]) or stds[col] == 0]
        if degenerate:
            raise DegenerateColumn(f"Columns {degenerate} have zero or undefined standard deviation")
        return NormalizationParams(
            means={col: float(means[col]) for col in cols},
            stds={col: float(stds[col]) for col in cols},
        )

    def apply(self, params: NormalizationParams, X: pd.DataFrame) -> pd.DataFrame:
        cols = list(params.means)
        require_columns(X, cols)
        X = X.copy()
        if cols:
            X[cols] = (X[cols] - pd.Series(params.means)) / pd.Series(params.stds)
        return X


@dataclass(frozen=True)
class InteractionParams:
    pairs: Tuple[Tuple[str, str], ...]
    separator: str


class InteractionExpander(RecipeStep):
    """
    Add product columns for pairs of columns.

    Each term is a pair ``(a, b)`` or a string ``"a:b"``; either side may be a
    glob pattern such as ``season_*``, resolved against the training columns.
    """
    step_name = "interact"

    def __init__(self, terms: Sequence[Union[str, Sequence[str]]] = (), separator: str = "_x_"):
        self.terms = terms
        self.separator = separator

    @staticmethod
    def _parse(term: Union[str, Sequence[str]]) -> Tuple[str, str]:
        parts = term.split(":") if isinstance(term, str) else list(term)
        if len(parts) != 2:
            raise ValueError(f"Interaction term {term!r} must name exactly two columns")
        return parts[0].strip(), parts[1].strip()

    def fit_params(self, X: pd.DataFrame) -> InteractionParams:
        columns = [str(col) for col in X.columns]
        pairs = []
        for term in self.terms:
            left, right = self._parse(term)
            left_cols = fnmatch.filter(columns, left)
            right_cols = fnmatch.filter(columns, right)
            if not left_cols or not right_cols:
                raise UnknownColumn(f"Interaction term {term!r} matches no columns")
            pairs.extend((a, b) for a in left_cols for b in right_cols if a != b)
        return InteractionParams(pairs=tuple(pairs), separator=self.separator)

    def apply(self, params: InteractionParams, X: pd.DataFrame) -> pd.DataFrame:
        require_columns(X, sorted({col for pair in params.pairs for col in pair}))
        products = {f"{a}{params.separator}{b}": X[a] * X[b] for a, b in params.pairs}
        if not products:
            return X.copy()
        return pd.concat([X, pd.DataFrame(products, index=X.index)], axis=1)


class CorrelationFilter(RecipeStep):
    """
    Drop numeric columns until no pair has absolute correlation above ``threshold``.

    From the most correlated pair, the column with the larger mean absolute
    correlation to the others is removed; on a tie the later column goes.
    """
    step_name = "corr"

    def __init__(self, columns: ColumnSelector = None, threshold: float = 0.9):
        self.columns = columns
        self.threshold = threshold

    def fit_params(self, X: pd.DataFrame) -> RemovalParams:
        remaining = select_columns(X, self.columns, ALL_NUMERIC)
        corr = X[remaining].corr().abs().fillna(0.0)
        removed = []
        while len(remaining) > 1:
            values = corr.loc[remaining, remaining].to_numpy(copy=True)
            np.fill_diagonal(values, 0.0)
            i, j = np.unravel_index(np.argmax(values), values.shape)
            if values[i, j] <= self.threshold:
                break
            mean_corr = values.sum(axis=1) / (len(remaining) - 1)
            drop = remaining[i] if mean_corr[i] > mean_corr[j] else remaining[max(i, j)]
            removed.append(drop)
            remaining = [col for col in remaining if col != drop]
        if removed:
            logging.info(f"Correlation filter (threshold={self.threshold}) removes {removed}")
        return RemovalParams(removed=tuple(removed))

    def apply(self, params: RemovalParams, X: pd.DataFrame) -> pd.DataFrame:
        require_columns(X, params.removed)
        return X.drop(columns=list(params.removed))


class DropColumns(RecipeStep):
    """Transformer to drop redundant columns from the dataset."""
    step_name = "drop"

    def __init__(self, columns: Sequence[str] = ()):
        self.columns = columns

    def fit_params(self, X: pd.DataFrame) -> RemovalParams:
        cols = list(self.columns)
        require_columns(X, cols)
        return RemovalParams(removed=tuple(cols))

    def apply(self, params: RemovalParams, X: pd.DataFrame) -> pd.DataFrame:
        require_columns(X, params.removed)
        return X.drop(columns=list(params.removed))


STEP_REGISTRY = {
    step.step_name: step
    for step in (DummyEncoder, NearZeroVarianceFilter, Normalizer,
                 InteractionExpander, CorrelationFilter, DropColumns)
}


@dataclass(frozen=True, eq=False)
class FittedRecipe:
    steps: Tuple[Tuple[RecipeStep, Any], ...]
    input_columns: Tuple[str, ...]
    output_columns: Tuple[str, ...]

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        """Apply the fitted parameters of every step, in order."""
        for step, params in self.steps:
            data = step.apply(params, data)
        return data


@dataclass(frozen=True, eq=False)
class Recipe:
    """An ordered, immutable sequence of preprocessing steps."""
    steps: Tuple[RecipeStep, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def __len__(self) -> int:
        return len(self.steps)

    def add_step(self, step: RecipeStep) -> "Recipe":
        return Recipe(self.steps + (step,))

    def prep(self, training: pd.DataFrame) -> FittedRecipe:
        """
        Fit every step on the output of the previous one.

        Args:
            training (pd.DataFrame): The subset the statistics are computed from.

        Returns:
            FittedRecipe: The steps paired with their fitted parameters.
        """
        current = training
        fitted = []
        for step in self.steps:
            params = step.fit_params(current)
            current = step.apply(params, current)
            fitted.append((step, params))
        return FittedRecipe(
            steps=tuple(fitted),
            input_columns=tuple(training.columns),
            output_columns=tuple(current.columns),
        )

    @classmethod
    def from_config(cls, config: List[Dict[str, Any]]) -> "Recipe":
        """
        Build a recipe from a list of ``{step: <name>, **arguments}`` mappings,
        as found under the ``recipe`` key of the schema file.
        """
        steps = []
        for entry in config or []:
            settings = dict(entry)
            step_name = settings.pop("step", None)
            if step_name not in STEP_REGISTRY:
                raise ValueError(f"Unknown recipe step: {step_name}")
            steps.append(STEP_REGISTRY[step_name](**settings))
        logging.info(f"Built recipe with steps: {[step.step_name for step in steps]}")
        return cls(tuple(steps))
