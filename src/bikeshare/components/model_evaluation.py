import os
import sys

import mlflow
import pandas as pd

from bikeshare import logging, CustomException
from bikeshare.entity import ModelEvaluationConfig
from bikeshare.entity import (
    DataIngestionArtefacts,
    ModelTrainerArtefacts,
    ModelEvaluationArtefacts,
)
from bikeshare.exception import BikeShareError
from bikeshare.modeling.metrics import MetricSet
from bikeshare.modeling.workflow import FittedWorkflow
from bikeshare.utils.evaluation_artefacts import ModelDiagnosticsLogger


class ModelEvaluation:
    """Single evaluation of the persisted workflow on the held-out test table."""

    def __init__(
        self,
        model_trainer_artefact: ModelTrainerArtefacts,
        model_evaluation_config: ModelEvaluationConfig,
        data_ingestion_artefact: DataIngestionArtefacts,
    ):
        self.model_trainer_artefact = model_trainer_artefact
        self.model_evaluation_config = model_evaluation_config
        self.data_ingestion_artefact = data_ingestion_artefact
        logging.info("ModelEvaluation initialised with configuration and artefacts.")

    def evaluate_model(self) -> dict:
        """
        Evaluate the trained workflow on the test data.

        Returns:
            dict: Metric name to value on the test table.
        """
        test_df = pd.read_csv(self.data_ingestion_artefact.test_data_file_path)
        test_df = self.model_evaluation_config.UTILS.apply_schema(test_df, self.model_evaluation_config.SCHEMA_CONFIG)
        logging.info(f"Test data loaded from the path: {self.data_ingestion_artefact.test_data_file_path}")

        workflow = FittedWorkflow.load(self.model_trainer_artefact.trained_model_file_path)
        test_metrics = workflow.evaluate(test_df, MetricSet(*self.model_evaluation_config.METRICS))
        logging.info(f"Test metrics of {self.model_trainer_artefact.best_model_name}: {test_metrics}")

        tuning_summary = pd.read_csv(self.model_trainer_artefact.tuning_summary_file_path)
        config = self.model_evaluation_config
        evaluator = ModelDiagnosticsLogger(
            workflow,
            test_df,
            test_df[config.TARGET_COLUMN],
            self.model_trainer_artefact.best_model_name,
            artefact_path=config.METRIC_ARTEFACTS_DIR,
            mlflow_tracking=config.MLFLOW_TRACKING,
        )
        if not config.MLFLOW_TRACKING:
            evaluator.log_model_diagnostics(tuning_summary, metric=self.model_trainer_artefact.cv_metric)
            return test_metrics

        mlflow.set_tracking_uri(config.TRACKING_URI)
        mlflow.set_experiment(config.MLFLOW_EXPERIMENT_NAME)
        if mlflow.active_run():
            mlflow.end_run()
        with mlflow.start_run(run_name=f"{self.model_trainer_artefact.best_model_name}_evaluation"):
            mlflow.set_tag("model", self.model_trainer_artefact.best_model_name)
            mlflow.log_params({"model": self.model_trainer_artefact.best_model_name,
                               **self.model_trainer_artefact.best_params})
            mlflow.log_metric(f"cv_{self.model_trainer_artefact.cv_metric}", float(self.model_trainer_artefact.cv_score))
            mlflow.log_metrics({f"test_{name}": float(value) for name, value in test_metrics.items()})
            evaluator.log_model_diagnostics(tuning_summary, metric=self.model_trainer_artefact.cv_metric)
        logging.info(f"Logged the evaluation to MLflow experiment {config.MLFLOW_EXPERIMENT_NAME}")
        return test_metrics

    def initiate_model_evaluation(self) -> ModelEvaluationArtefacts:
        logging.info("Entered the initiate_model_evaluation method of ModelEvaluation class")
        try:
            os.makedirs(self.model_evaluation_config.MODEL_EVALUATION_ARTEFACTS_DIR, exist_ok=True)
            test_metrics = self.evaluate_model()

            report = {
                "model": self.model_trainer_artefact.best_model_name,
                "params": self.model_trainer_artefact.best_params,
                f"cv_{self.model_trainer_artefact.cv_metric}": float(self.model_trainer_artefact.cv_score),
                "test_metrics": {name: float(value) for name, value in test_metrics.items()},
            }
            self.model_evaluation_config.UTILS.write_json_to_yaml(
                report, self.model_evaluation_config.EVALUATION_REPORT_FILE_PATH
            )
            logging.info("Exited the initiate_model_evaluation method of ModelEvaluation class")
            return ModelEvaluationArtefacts(
                evaluation_report_file_path=self.model_evaluation_config.EVALUATION_REPORT_FILE_PATH,
                test_metrics=test_metrics,
                trained_model_path=self.model_trainer_artefact.trained_model_file_path,
            )
        except BikeShareError:
            raise
        except Exception as e:
            raise CustomException(e, sys)
