from dataclasses import dataclass
from typing import Callable, Dict, Sequence, Tuple

import numpy as np
from sklearn.metrics import (accuracy_score, mean_absolute_error,
                             mean_absolute_percentage_error,
                             mean_squared_error, r2_score)

from bikeshare.exception import ScoreFailure

MINIMIZE = "minimize"
MAXIMIZE = "maximize"


@dataclass(frozen=True)
class Metric:
    name: str
    fn: Callable[[np.ndarray, np.ndarray], float]
    direction: str

    def __call__(self, y_true, y_pred) -> float:
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)
        if len(y_true) == 0:
            raise ScoreFailure(f"{self.name} is undefined on an empty sample")
        value = float(self.fn(y_true, y_pred))
        if not np.isfinite(value):
            raise ScoreFailure(f"{self.name} is not finite ({value})")
        return value


def _rmse(y_true, y_pred) -> float:
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


METRICS: Dict[str, Metric] = {
    "rmse": Metric("rmse", _rmse, MINIMIZE),
    "rsq": Metric("rsq", r2_score, MAXIMIZE),
    "mae": Metric("mae", mean_absolute_error, MINIMIZE),
    "mape": Metric("mape", mean_absolute_percentage_error, MINIMIZE),
    "accuracy": Metric("accuracy", accuracy_score, MAXIMIZE),
}


def get_metric(name: str) -> Metric:
    if name not in METRICS:
        raise ValueError(f"Unknown metric '{name}'; choose one of {sorted(METRICS)}")
    return METRICS[name]


class MetricSet:
    """An ordered set of named metrics, the first one being the primary metric."""

    def __init__(self, *names: str):
        if not names:
            raise ValueError("A metric set needs at least one metric")
        self.metrics: Tuple[Metric, ...] = tuple(get_metric(name) for name in names)

    @property
    def names(self) -> Sequence[str]:
        return [metric.name for metric in self.metrics]

    @property
    def primary(self) -> Metric:
        return self.metrics[0]

    def __iter__(self):
        return iter(self.metrics)

    def __call__(self, y_true, y_pred) -> Dict[str, float]:
        return {metric.name: metric(y_true, y_pred) for metric in self.metrics}

    def __repr__(self) -> str:
        return f"MetricSet({', '.join(self.names)})"


def default_metrics(mode: str) -> MetricSet:
    if mode == "classification":
        return MetricSet("accuracy")
    return MetricSet("rmse", "rsq")
