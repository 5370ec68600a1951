from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd

from bikeshare import logging
from bikeshare.exception import BikeShareError, FitFailure, NoUsableResult
from bikeshare.modeling.grid import Candidate
from bikeshare.modeling.metrics import MAXIMIZE, MetricSet, default_metrics
from bikeshare.modeling.splitting import Split
from bikeshare.modeling.tuning import TuneResults
from bikeshare.modeling.workflow import FittedWorkflow, Workflow


def select_best(results: TuneResults, metric: Optional[str] = None) -> Candidate:
    """
    Pick the candidate with the best mean value of ``metric``.

    Args:
        results (TuneResults): Output of ``tune_grid``.
        metric (str, optional): Metric name; defaults to the run's primary metric.

    Returns:
        Candidate: The winner. Ties resolve to the earliest candidate in grid order.
    """
    metric_obj = results.metrics.primary if metric is None else results.metric_by_name(metric)
    if not results.has_usable_results:
        raise NoUsableResult(f"Every candidate failed on every resample ({len(results.failures)} failures)")

    summary = results.collect_metrics()
    rows = summary[summary["metric"] == metric_obj.name]
    if rows.empty:
        raise NoUsableResult(f"No candidate has a usable {metric_obj.name} value")

    key = rows["mean"].to_numpy(dtype=float)
    if metric_obj.direction == MAXIMIZE:
        key = -key
    best = rows.iloc[int(np.argsort(key, kind="stable")[0])]
    candidate = results.candidate(best["config"])
    logging.info(f"Selected {candidate} with mean {metric_obj.name} {best['mean']:.4f}")
    return candidate


def finalize_workflow(workflow: Workflow, candidate: Candidate) -> Workflow:
    return workflow.update_spec(workflow.spec.finalize(candidate))


@dataclass(frozen=True, eq=False)
class LastFitResult:
    workflow: FittedWorkflow
    metrics: Dict[str, float]
    predictions: pd.DataFrame


def refit(workflow: Workflow, training: pd.DataFrame, seed: Optional[int] = None) -> FittedWorkflow:
    """Fit a finalized workflow on the whole training table; any failure raises ``FitFailure``."""
    if workflow.spec.tunable_params():
        raise ValueError(f"Workflow still has tuned arguments {list(workflow.spec.tunable_params())}")
    try:
        return workflow.fit(training, seed=seed)
    except BikeShareError:
        raise
    except Exception as e:
        raise FitFailure(f"Refit of {workflow.spec} on the training set failed: {e}") from e


def last_fit(
        workflow: Workflow,
        split: Split,
        metrics: Union[MetricSet, Sequence[str], None] = None,
        seed: Optional[int] = None,
        ) -> LastFitResult:
    """
    Refit a finalized workflow on the whole training subset and evaluate it
    once on the testing subset. A failing refit raises ``FitFailure``.
    """
    if metrics is None:
        metrics = default_metrics(workflow.spec.mode)
    elif not isinstance(metrics, MetricSet):
        metrics = MetricSet(*metrics)

    training, testing = split.training(), split.testing()
    fitted = refit(workflow, training, seed=seed)

    predicted = fitted.predict(testing)
    truth = testing[workflow.outcome].to_numpy()
    test_metrics = metrics(truth, predicted)
    predictions = pd.DataFrame({"row": testing.index, "truth": truth, "prediction": predicted})
    logging.info(f"Last fit on {len(training)} rows, test metrics on {len(testing)} rows: {test_metrics}")
    return LastFitResult(workflow=fitted, metrics=test_metrics, predictions=predictions)
