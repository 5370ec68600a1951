from dataclasses import dataclass, replace
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.pipeline import Pipeline

from bikeshare import logging
from bikeshare.exception import UnknownColumn
from bikeshare.modeling.metrics import MetricSet, default_metrics
from bikeshare.modeling.model_spec import ModelSpec
from bikeshare.modeling.recipe import Recipe
from bikeshare.utils.main_utils import MainUtils


class PipelineManager:
    """
    Builds a scikit-learn Pipeline step by step.

    Steps can be appended or inserted at any position before the pipeline is
    assembled with ``get_pipeline``.
    """

    def __init__(self):
        self.steps = []

    def add_step(self, step_name, step_object, position=None):
        """
        Add a transformation step to the pipeline.

        Args:
            step_name (str): Name of the step to add.
            step_object (object): The transformer or estimator object.
            position (int or None): Optional; the position to insert the step.
                                    If None, the step is appended at the end of the pipeline.
        """
        if position is None:
            self.steps.append((step_name, step_object))
        else:
            self.steps.insert(position, (step_name, step_object))

    def get_pipeline(self) -> Pipeline:
        return Pipeline(steps=list(self.steps))


@dataclass(frozen=True, eq=False)
class Workflow:
    """A preprocessing recipe bundled with a model specification and the outcome column."""
    recipe: Recipe
    spec: ModelSpec
    outcome: str

    def predictors(self, data: pd.DataFrame) -> List[str]:
        if self.outcome not in data.columns:
            raise UnknownColumn(f"Outcome column '{self.outcome}' not found in the data")
        return [col for col in data.columns if col != self.outcome]

    def update_spec(self, spec: ModelSpec) -> "Workflow":
        return replace(self, spec=spec)

    def build_pipeline(self, seed: Optional[int] = None) -> Pipeline:
        manager = PipelineManager()
        for i, step in enumerate(self.recipe.steps):
            manager.add_step(f"{i}_{step.step_name}", clone(step))
        manager.add_step("model", self.spec.build_estimator(seed=seed))
        return manager.get_pipeline()

    def fit(self, data: pd.DataFrame, seed: Optional[int] = None) -> "FittedWorkflow":
        predictors = self.predictors(data)
        pipeline = self.build_pipeline(seed=seed)
        pipeline.fit(data[predictors], data[self.outcome])
        return FittedWorkflow(pipeline=pipeline, outcome=self.outcome, predictors=predictors, spec=self.spec)


class FittedWorkflow:
    """A fitted preprocessing + model pipeline ready for prediction and persistence."""

    def __init__(self, pipeline: Pipeline, outcome: str, predictors: List[str], spec: ModelSpec):
        self.pipeline = pipeline
        self.outcome = outcome
        self.predictors = list(predictors)
        self.spec = spec

    @property
    def feature_names(self) -> Optional[List[str]]:
        names = getattr(self.pipeline.steps[-1][1], "feature_names_in_", None)
        return None if names is None else list(names)

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        missing = [col for col in self.predictors if col not in data.columns]
        if missing:
            raise UnknownColumn(f"Columns {missing} are required for prediction")
        return np.asarray(self.pipeline.predict(data[self.predictors]))

    def evaluate(self, data: pd.DataFrame, metrics: Optional[MetricSet] = None) -> Dict[str, float]:
        metrics = metrics or default_metrics(self.spec.mode)
        return metrics(data[self.outcome].to_numpy(), self.predict(data))

    def save(self, file_path: str) -> str:
        return MainUtils.save_object(file_path, self)

    @staticmethod
    def load(file_path: str) -> "FittedWorkflow":
        obj = MainUtils.load_object(file_path)
        if not isinstance(obj, FittedWorkflow):
            raise TypeError(f"{file_path} does not hold a fitted workflow")
        logging.info(f"Loaded fitted workflow {obj.spec} from {file_path}")
        return obj

    def __repr__(self) -> str:
        return f"FittedWorkflow({self.spec}, outcome={self.outcome})"
