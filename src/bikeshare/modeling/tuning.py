"""
Cross-validated grid search.

Every (candidate, resample) pair is an independent task: the workflow is
fitted on the analysis rows and scored on the assessment rows. Tasks run
through joblib, so a worker pool is a matter of ``TuneControl(n_jobs=...)``.
A failing task yields a ``FailureRecord`` and never stops its siblings.
"""
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from joblib.externals.loky import ProcessPoolExecutor

from bikeshare import logging
from bikeshare.exception import FitFailure, InvalidGrid
from bikeshare.modeling.grid import Candidate, grid_for_spec
from bikeshare.modeling.metrics import MINIMIZE, Metric, MetricSet, default_metrics
from bikeshare.modeling.resampling import Resamples
from bikeshare.modeling.workflow import Workflow

FIT_FAILURE = "FitFailure"
SCORE_FAILURE = "ScoreFailure"


@dataclass(frozen=True)
class TuneControl:
    """Execution settings of a tuning run."""
    n_jobs: int = 1
    backend: str = "loky"
    fit_timeout: Optional[float] = None
    seed: Optional[int] = None
    verbose: int = 0


@dataclass(frozen=True)
class MetricRecord:
    config: str
    repeat: int
    fold: int
    metric: str
    value: float


@dataclass(frozen=True)
class FailureRecord:
    config: str
    repeat: int
    fold: int
    kind: str
    message: str
    metric: Optional[str] = None


def _call_with_timeout(fn, timeout: Optional[float], *args):
    """
    Run ``fn(*args)``, in a separate worker process when a timeout is set.
    A call that overruns raises ``FitFailure`` and its worker is killed.
    """
    if timeout is None:
        return fn(*args)
    # private single-worker executor per call, killed on overrun
    executor = ProcessPoolExecutor(max_workers=1)
    future = executor.submit(fn, *args)
    try:
        result = future.result(timeout=timeout)
    except FutureTimeoutError:
        executor.shutdown(wait=True, kill_workers=True)
        raise FitFailure(f"Fit did not finish within {timeout} seconds")
    except BaseException:
        executor.shutdown(wait=True, kill_workers=True)
        raise
    executor.shutdown(wait=True)
    return result


def _fit_and_score(
        workflow: Workflow,
        analysis: pd.DataFrame,
        assessment: pd.DataFrame,
        config: str,
        repeat: int,
        fold: int,
        metrics: MetricSet,
        control: TuneControl,
        ) -> Tuple[List[MetricRecord], List[FailureRecord]]:
    try:
        fitted = _call_with_timeout(workflow.fit, control.fit_timeout, analysis, control.seed)
    except Exception as e:
        return [], [FailureRecord(config, repeat, fold, FIT_FAILURE, f"{type(e).__name__}: {e}")]

    try:
        predictions = fitted.predict(assessment)
        y_true = assessment[workflow.outcome].to_numpy()
    except Exception as e:
        return [], [FailureRecord(config, repeat, fold, SCORE_FAILURE, f"{type(e).__name__}: {e}")]

    records, failures = [], []
    for metric in metrics:
        try:
            records.append(MetricRecord(config, repeat, fold, metric.name, metric(y_true, predictions)))
        except Exception as e:
            failures.append(FailureRecord(config, repeat, fold, SCORE_FAILURE, f"{type(e).__name__}: {e}", metric.name))
    return records, failures


class TuneResults:
    """Metric and failure records of a tuning run, with aggregation helpers."""

    def __init__(
            self,
            workflow: Workflow,
            candidates: Sequence[Candidate],
            metrics: MetricSet,
            records: Sequence[MetricRecord],
            failures: Sequence[FailureRecord],
            n_resamples: int,
            ):
        self.workflow = workflow
        self.candidates = list(candidates)
        self.metrics = metrics
        self.records = list(records)
        self.failures = list(failures)
        self.n_resamples = n_resamples

    @property
    def has_usable_results(self) -> bool:
        return len(self.records) > 0

    def candidate(self, config: str) -> Candidate:
        for candidate in self.candidates:
            if candidate.config == config:
                return candidate
        raise KeyError(f"No candidate with config '{config}'")

    def _params_frame(self) -> pd.DataFrame:
        return pd.DataFrame([{"config": c.config, **c.params} for c in self.candidates])

    def metrics_frame(self) -> pd.DataFrame:
        """One row per successful (candidate, resample, metric)."""
        columns = ["config", "repeat", "fold", "metric", "value"]
        return pd.DataFrame([vars(record) for record in self.records], columns=columns)

    def notes_frame(self) -> pd.DataFrame:
        columns = ["config", "repeat", "fold", "kind", "metric", "message"]
        return pd.DataFrame([vars(record) for record in self.failures], columns=columns)

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """
        Aggregate the metric records per candidate and metric.

        Args:
            summarize (bool): If False, return the per-resample records instead.

        Returns:
            pd.DataFrame: Candidate parameters with ``metric``, ``mean``, ``n``,
            ``std_err`` and ``config`` columns, in grid order. Candidates without
            a single successful resample are absent.
        """
        frame = self.metrics_frame()
        if not summarize:
            return frame
        param_names = list(self.candidates[0].params) if self.candidates else []
        if frame.empty:
            return pd.DataFrame(columns=param_names + ["metric", "mean", "n", "std_err", "config"])

        summary = (
            frame.groupby(["config", "metric"], sort=False)["value"]
            .agg(mean="mean", n="count", std="std")
            .reset_index()
        )
        summary["std_err"] = summary["std"] / np.sqrt(summary["n"])
        config_order = {c.config: i for i, c in enumerate(self.candidates)}
        metric_order = {name: i for i, name in enumerate(self.metrics.names)}
        summary = (
            summary.assign(
                _config_rank=summary["config"].map(config_order),
                _metric_rank=summary["metric"].map(metric_order),
            )
            .sort_values(["_config_rank", "_metric_rank"], kind="stable")
            .drop(columns=["_config_rank", "_metric_rank", "std"])
        )
        summary = summary.merge(self._params_frame(), on="config", how="left")
        return summary[param_names + ["metric", "mean", "n", "std_err", "config"]].reset_index(drop=True)

    def show_best(self, metric: Optional[str] = None, n: int = 5) -> pd.DataFrame:
        """Top ``n`` candidates for one metric, best first; ties keep grid order."""
        metric_obj = self.metrics.primary if metric is None else self.metric_by_name(metric)
        summary = self.collect_metrics()
        summary = summary[summary["metric"] == metric_obj.name]
        ascending = metric_obj.direction == MINIMIZE
        return summary.sort_values("mean", ascending=ascending, kind="stable").head(n).reset_index(drop=True)

    def metric_by_name(self, name: str) -> Metric:
        for metric in self.metrics:
            if metric.name == name:
                return metric
        raise ValueError(f"Metric '{name}' was not computed in this run; available: {self.metrics.names}")

    def __repr__(self) -> str:
        return (
            f"TuneResults({len(self.candidates)} candidates x {self.n_resamples} resamples: "
            f"{len(self.records)} metric records, {len(self.failures)} failures)"
        )


def _validate_grid(workflow: Workflow, grid: Sequence[Candidate]) -> None:
    if len(grid) == 0:
        raise InvalidGrid("The tuning grid is empty")
    tunable = set(workflow.spec.tunable_params())
    configs = set()
    for candidate in grid:
        if set(candidate.params) != tunable:
            raise InvalidGrid(
                f"Candidate {candidate.config} sets {sorted(candidate.params)} "
                f"but the spec tunes {sorted(tunable)}"
            )
        if candidate.config in configs:
            raise InvalidGrid(f"Duplicate candidate id {candidate.config}")
        configs.add(candidate.config)


def tune_grid(
        workflow: Workflow,
        resamples: Resamples,
        grid: Union[int, Sequence[Candidate], None] = None,
        metrics: Union[MetricSet, Sequence[str], None] = None,
        control: Optional[TuneControl] = None,
        ) -> TuneResults:
    """
    Evaluate every candidate of the grid on every resample.

    Args:
        workflow (Workflow): Recipe and spec; the spec's tuned arguments are filled from the grid.
        resamples (Resamples): Cross-validation folds shared by all candidates.
        grid (int | Sequence[Candidate]): The candidates, or a number of levels for a
            regular grid over the default ranges.
        metrics (MetricSet | Sequence[str]): Metrics to compute, the first one is primary.
        control (TuneControl): Parallelism, timeout and seed.

    Returns:
        TuneResults: All metric and failure records of the run.
    """
    control = control or TuneControl()
    if metrics is None:
        metrics = default_metrics(workflow.spec.mode)
    elif not isinstance(metrics, MetricSet):
        metrics = MetricSet(*metrics)

    workflow.predictors(resamples.data)
    if grid is None or isinstance(grid, int):
        grid = grid_for_spec(workflow.spec, levels=3 if grid is None else grid)
    grid = list(grid)
    _validate_grid(workflow, grid)

    finalized = [(c.config, workflow.update_spec(workflow.spec.finalize(c))) for c in grid]
    logging.info(
        f"Tuning {workflow.spec} over {len(grid)} candidates x {len(resamples)} resamples "
        f"with n_jobs={control.n_jobs}, backend={control.backend}"
    )

    outputs = Parallel(n_jobs=control.n_jobs, backend=control.backend, verbose=control.verbose)(
        delayed(_fit_and_score)(
            candidate_workflow,
            resamples.analysis(resample),
            resamples.assessment(resample),
            config,
            resample.repeat,
            resample.fold,
            metrics,
            control,
        )
        for config, candidate_workflow in finalized
        for resample in resamples
    )

    records, failures = [], []
    for task_records, task_failures in outputs:
        records.extend(task_records)
        failures.extend(task_failures)
    for failure in failures:
        logging.warning(
            f"{failure.kind} for {failure.config} (repeat {failure.repeat}, fold {failure.fold}): {failure.message}"
        )

    results = TuneResults(workflow, grid, metrics, records, failures, len(resamples))
    logging.info(f"Finished tuning: {results}")
    return results


def fit_resamples(
        workflow: Workflow,
        resamples: Resamples,
        metrics: Union[MetricSet, Sequence[str], None] = None,
        control: Optional[TuneControl] = None,
        ) -> TuneResults:
    """Resampled performance of a workflow without tuned arguments."""
    return tune_grid(workflow, resamples, grid=[Candidate("Model1")], metrics=metrics, control=control)
