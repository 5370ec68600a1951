import os
import sys
from typing import Dict, List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import mlflow
import pandas as pd
import seaborn as sns
from tqdm import tqdm

from bikeshare import logging, CustomException
from bikeshare.entity import ModelTrainerConfig
from bikeshare.entity import DataIngestionArtefacts, ModelTrainerArtefacts
from bikeshare.exception import BikeShareError, NoUsableResult
from bikeshare.modeling.finalize import finalize_workflow, refit, select_best
from bikeshare.modeling.grid import Candidate, grid_from_config
from bikeshare.modeling.metrics import MAXIMIZE, MetricSet
from bikeshare.modeling.model_spec import ModelSpec
from bikeshare.modeling.recipe import Recipe
from bikeshare.modeling.resampling import Resamples, vfold_cv
from bikeshare.modeling.tuning import TuneControl, TuneResults, tune_grid
from bikeshare.modeling.workflow import Workflow


class ModelTrainer:
    """
    Tunes every model configured in ``config/model.yaml`` on the same
    cross-validation folds, keeps the best candidate across models and refits
    it on the whole training table.
    """

    def __init__(
            self,
            data_ingestion_artefacts: DataIngestionArtefacts,
            model_trainer_config: ModelTrainerConfig,
            ):
        self.data_ingestion_artefacts = data_ingestion_artefacts
        self.model_trainer_config = model_trainer_config
        self.utils = self.model_trainer_config.UTILS
        self.best_configs: Dict[str, str] = {}

        metric_names = [self.model_trainer_config.METRIC] + [
            name for name in self.model_trainer_config.METRICS if name != self.model_trainer_config.METRIC
        ]
        self.metrics = MetricSet(*metric_names)
        self.control = TuneControl(
            n_jobs=self.model_trainer_config.N_JOBS,
            backend=self.model_trainer_config.BACKEND,
            fit_timeout=self.model_trainer_config.FIT_TIMEOUT,
            seed=self.model_trainer_config.SEED,
        )
        logging.info(f"ModelTrainer initialised with metrics {self.metrics} and {self.control}")

    def load_training_data(self) -> pd.DataFrame:
        train_df = pd.read_csv(self.data_ingestion_artefacts.train_data_file_path)
        train_df = self.utils.apply_schema(train_df, self.model_trainer_config.SCHEMA_CONFIG)
        logging.info(f"Train data loaded from {self.data_ingestion_artefacts.train_data_file_path}: {train_df.shape}")
        return train_df

    def get_model_configs(self) -> Dict[str, dict]:
        """Entries of ``model.yaml`` selected by the ``MODELS`` parameter, in file order."""
        model_configs = self.model_trainer_config.MODEL_CONFIG.get("models") or {}
        selected = self.model_trainer_config.MODELS
        if selected in (None, "ALL"):
            return dict(model_configs)
        unknown = [name for name in selected if name not in model_configs]
        if unknown:
            raise ValueError(f"Models {unknown} are not defined in model.yaml")
        return {name: model_configs[name] for name in selected}

    def build_workflows(self, recipe: Recipe) -> Dict[str, Tuple[Workflow, List[Candidate]]]:
        """Specs and grids of every selected model; configuration errors surface here, before any fit."""
        workflows = {}
        for model_name, model_config in self.get_model_configs().items():
            spec = ModelSpec.from_config(model_config)
            if spec.tunable_params():
                grid = grid_from_config(spec, model_config, levels=self.model_trainer_config.GRID_LEVELS)
            else:
                grid = [Candidate("Model1")]
            workflows[model_name] = (Workflow(recipe, spec, self.model_trainer_config.TARGET_COLUMN), grid)
            logging.info(f"{model_name}: {spec} with {len(grid)} candidates")
        if not workflows:
            raise ValueError("No model is configured for training")
        return workflows

    def tune_models(self, workflows: Dict[str, Tuple[Workflow, List[Candidate]]], resamples: Resamples) -> Dict[str, TuneResults]:
        results = {}
        for model_name, (workflow, grid) in tqdm(workflows.items(), desc="Tuning models"):
            logging.info(f"Starting tuning of model: {model_name}")
            results[model_name] = tune_grid(workflow, resamples, grid=grid, metrics=self.metrics, control=self.control)
            logging.info(f"{model_name}: {results[model_name]}")
        return results

    def select_best_model(self, results: Dict[str, TuneResults]) -> Tuple[str, Candidate, float]:
        """
        Best candidate of every model, then the best model by mean primary metric.
        Ties keep the model listed first.
        """
        metric = self.metrics.primary
        best = None
        self.best_configs = {}
        for model_name, model_results in results.items():
            try:
                candidate = select_best(model_results, metric.name)
            except NoUsableResult:
                logging.warning(f"{model_name} has no usable resampling result")
                continue
            self.best_configs[model_name] = candidate.config
            summary = model_results.collect_metrics()
            score = float(summary.loc[
                (summary["config"] == candidate.config) & (summary["metric"] == metric.name), "mean"
            ].iloc[0])
            if best is None:
                better = True
            elif metric.direction == MAXIMIZE:
                better = score > best[2]
            else:
                better = score < best[2]
            if better:
                best = (model_name, candidate, score)
        if best is None:
            raise NoUsableResult("No model produced a usable resampling result")
        logging.info(f"Best model: {best[0]} {best[1]} with mean {metric.name} {best[2]:.4f}")
        return best

    def save_tuning_results(self, results: Dict[str, TuneResults]) -> None:
        frames = {"metrics": [], "summary": [], "notes": []}
        for model_name, model_results in results.items():
            frames["metrics"].append(model_results.metrics_frame().assign(model=model_name))
            frames["summary"].append(model_results.collect_metrics().assign(model=model_name))
            frames["notes"].append(model_results.notes_frame().assign(model=model_name))

        pd.concat(frames["metrics"], ignore_index=True).to_csv(
            self.model_trainer_config.TUNING_METRICS_FILE_PATH, index=False)
        pd.concat(frames["summary"], ignore_index=True).to_csv(
            self.model_trainer_config.TUNING_SUMMARY_FILE_PATH, index=False)
        pd.concat(frames["notes"], ignore_index=True).to_csv(
            self.model_trainer_config.TUNING_NOTES_FILE_PATH, index=False)
        logging.info(f"Saved tuning records to {self.model_trainer_config.MODEL_TRAINER_ARTEFACTS_DIR}")

    def plot_resampled_metric(self, results: Dict[str, TuneResults], best: Dict[str, str]) -> str:
        """Per-fold primary metric of the best candidate of each model."""
        metric = self.metrics.primary.name
        frames = []
        for model_name, config in best.items():
            frame = results[model_name].metrics_frame()
            frames.append(frame[(frame["config"] == config) & (frame["metric"] == metric)].assign(model=model_name))
        data = pd.concat(frames, ignore_index=True)

        plt.figure(figsize=(8, 6))
        sns.boxplot(data=data, x="model", y="value")
        sns.stripplot(data=data, x="model", y="value", color="black", size=4)
        plt.ylabel(metric)
        plt.title(f"Resampled {metric} of the best candidate per model")
        file_path = os.path.join(self.model_trainer_config.MODEL_TRAINER_ARTEFACTS_DIR, f"resampled_{metric}.png")
        plt.savefig(file_path, bbox_inches='tight')
        plt.close()
        return file_path

    def log_to_mlflow(self, model_name: str, candidate: Candidate, score: float, artefact_paths: List[str]) -> None:
        mlflow.set_tracking_uri(self.model_trainer_config.TRACKING_URI)
        mlflow.set_experiment(self.model_trainer_config.MLFLOW_EXPERIMENT_NAME)
        if mlflow.active_run():
            mlflow.end_run()
        with mlflow.start_run(run_name=model_name):
            mlflow.set_tag("model", model_name)
            mlflow.log_params({"model": model_name, "config": candidate.config, **candidate.params})
            mlflow.log_metric(f"cv_{self.metrics.primary.name}", score)
            for artefact_path in artefact_paths:
                mlflow.log_artifact(artefact_path)
        logging.info(f"Logged {model_name} to MLflow experiment {self.model_trainer_config.MLFLOW_EXPERIMENT_NAME}")

    def initiate_model_trainer(self) -> ModelTrainerArtefacts:
        logging.info("Entered the initiate_model_trainer method of ModelTrainer class")
        try:
            os.makedirs(self.model_trainer_config.MODEL_TRAINER_ARTEFACTS_DIR, exist_ok=True)
            train_df = self.load_training_data()

            recipe = Recipe.from_config(self.model_trainer_config.RECIPE_CONFIG)
            workflows = self.build_workflows(recipe)

            # one fold assignment shared by every model and candidate
            resamples = vfold_cv(
                train_df,
                v=self.model_trainer_config.N_FOLDS,
                repeats=self.model_trainer_config.N_REPEATS,
                seed=self.model_trainer_config.SEED,
            )
            results = self.tune_models(workflows, resamples)
            self.save_tuning_results(results)

            best_model_name, best_candidate, best_score = self.select_best_model(results)
            plot_path = self.plot_resampled_metric(results, self.best_configs)

            final_workflow = finalize_workflow(workflows[best_model_name][0], best_candidate)
            fitted = refit(final_workflow, train_df, seed=self.model_trainer_config.SEED)
            fitted.save(self.model_trainer_config.TRAINED_MODEL_FILE_PATH)
            logging.info(f"Saved the fitted {best_model_name} workflow to {self.model_trainer_config.TRAINED_MODEL_FILE_PATH}")

            if self.model_trainer_config.MLFLOW_TRACKING:
                self.log_to_mlflow(best_model_name, best_candidate, best_score, [
                    self.model_trainer_config.TUNING_SUMMARY_FILE_PATH, plot_path,
                ])

            logging.info("Exited the initiate_model_trainer method of ModelTrainer class")
            return ModelTrainerArtefacts(
                trained_model_file_path=self.model_trainer_config.TRAINED_MODEL_FILE_PATH,
                tuning_metrics_file_path=self.model_trainer_config.TUNING_METRICS_FILE_PATH,
                tuning_summary_file_path=self.model_trainer_config.TUNING_SUMMARY_FILE_PATH,
                tuning_notes_file_path=self.model_trainer_config.TUNING_NOTES_FILE_PATH,
                best_model_name=best_model_name,
                best_params=best_candidate.params,
                cv_metric=self.metrics.primary.name,
                cv_score=best_score,
            )
        except BikeShareError:
            raise
        except Exception as e:
            raise CustomException(e, sys)
