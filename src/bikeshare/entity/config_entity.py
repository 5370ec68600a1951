from dataclasses import dataclass
from typing import Optional
from from_root import from_root
import os

from bikeshare.utils.main_utils import MainUtils
from bikeshare.constants import *


@dataclass
class PipelineConfig:
    """
    Shared locations and settings of the pipeline stages.

    Args:
        root_dir (str, optional): Project root holding ``config/`` and ``params.yaml``.
            Defaults to the directory found by ``from_root``.
        artefacts_dir (str, optional): Where the stage artefacts are written.
            Defaults to ``<root_dir>/artefacts``.
    """
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        self.UTILS = MainUtils()
        self.ROOT_DIR = str(root_dir) if root_dir is not None else str(from_root())
        self.ARTEFACTS_DIR = str(artefacts_dir) if artefacts_dir is not None else os.path.join(
            self.ROOT_DIR, ARTEFACTS_DIR_NAME
            )
        self.SCHEMA_CONFIG = self.UTILS.read_yaml_file(filename=os.path.join(self.ROOT_DIR, SCHEMA_FILE_PATH))
        self.PARAMS = self.UTILS.read_yaml_file(filename=os.path.join(self.ROOT_DIR, PARAM_FILE_PATH)) or {}

        self.TARGET_COLUMN = self.SCHEMA_CONFIG.get("target_column", TARGET_COLUMN)
        self.SEED = self.PARAMS.get("SEED", SEED)

        self.DATA_INGESTION_ARTEFACTS_DIR: str = os.path.join(
            self.ARTEFACTS_DIR, DATA_INGESTION_ARTEFACTS_DIR
            )
        self.TRAIN_DATA_FILE_PATH: str = os.path.join(
            self.DATA_INGESTION_ARTEFACTS_DIR, DATA_INGESTION_TRAIN_DIR, DATA_INGESTION_TRAIN_FILE_NAME
            )
        self.TEST_DATA_FILE_PATH: str = os.path.join(
            self.DATA_INGESTION_ARTEFACTS_DIR, DATA_INGESTION_TEST_DIR, DATA_INGESTION_TEST_FILE_NAME
            )
        self.MODEL_TRAINER_ARTEFACTS_DIR: str = os.path.join(
            self.ARTEFACTS_DIR, MODEL_TRAINER_ARTEFACTS_DIR
            )
        self.TRAINED_MODEL_FILE_PATH: str = os.path.join(
            self.MODEL_TRAINER_ARTEFACTS_DIR, MODEL_FILE_NAME
            )


@dataclass
class DataIngestionConfig(PipelineConfig):
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        super().__init__(root_dir, artefacts_dir)
        self.SOURCE_URL = self.PARAMS.get("SOURCE_URL", SOURCE_URL)
        self.LOCAL_FILE_NAME = LOCAL_FILE_NAME
        self.RAW_DATA_DIR: str = os.path.join(self.ARTEFACTS_DIR, RAW_DATA_DIR)
        self.DOWNLOADED_DATA_FILE_PATH: str = os.path.join(
            self.RAW_DATA_DIR, self.LOCAL_FILE_NAME
            )
        self.TRAIN_SIZE = self.PARAMS.get("TRAIN_SIZE", TRAIN_SIZE)
        self.STRATA_COLUMN = self.SCHEMA_CONFIG.get("strata_column", STRATA_COLUMN)


@dataclass
class DataValidationConfig(PipelineConfig):
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        super().__init__(root_dir, artefacts_dir)
        self.DATA_VALIDATION_ARTEFACTS_DIR: str = os.path.join(
            self.ARTEFACTS_DIR, DATA_VALIDATION_ARTEFACT_DIR
            )
        self.VALIDATION_REPORT_FILE_PATH: str = os.path.join(
            self.DATA_VALIDATION_ARTEFACTS_DIR, DATA_VALIDATION_REPORT_FILE_NAME
            )


@dataclass
class DataExplorationConfig(PipelineConfig):
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        super().__init__(root_dir, artefacts_dir)
        self.DATA_EXPLORATION_ARTEFACTS_DIR: str = os.path.join(
            self.ARTEFACTS_DIR, DATA_EXPLORATION_ARTEFACTS_DIR
            )
        self.DESCRIPTIVE_STATS_FILE_PATH: str = os.path.join(
            self.DATA_EXPLORATION_ARTEFACTS_DIR, DESCRIPTIVE_STATS_FILE_NAME
            )


# Model Trainer Configurations
@dataclass
class ModelTrainerConfig(PipelineConfig):
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        super().__init__(root_dir, artefacts_dir)
        self.MODEL_CONFIG = self.UTILS.read_yaml_file(filename=os.path.join(self.ROOT_DIR, MODEL_CONFIG_FILE))
        self.RECIPE_CONFIG = self.SCHEMA_CONFIG.get("recipe", [])

        self.N_FOLDS = self.PARAMS.get("N_FOLDS", N_FOLDS)
        self.N_REPEATS = self.PARAMS.get("N_REPEATS", N_REPEATS)
        self.METRICS = list(self.PARAMS.get("METRICS", ["rmse", "rsq"]))
        self.METRIC = self.PARAMS.get("METRIC", self.METRICS[0])
        self.GRID_LEVELS = self.PARAMS.get("GRID_LEVELS", 3)
        self.MODELS = self.PARAMS.get("MODELS", "ALL")
        self.N_JOBS = self.PARAMS.get("N_JOBS", 1)
        self.BACKEND = self.PARAMS.get("BACKEND", "loky")
        self.FIT_TIMEOUT = self.PARAMS.get("FIT_TIMEOUT")
        self.MLFLOW_TRACKING = self.PARAMS.get("MLFLOW_TRACKING", False)
        self.TRACKING_URI = self.PARAMS.get("TRACKING_URI", TRACKING_URI)
        self.MLFLOW_EXPERIMENT_NAME = MLFLOW_EXPERIMENT_NAME

        self.TUNING_METRICS_FILE_PATH: str = os.path.join(
            self.MODEL_TRAINER_ARTEFACTS_DIR, TUNING_METRICS_FILE_NAME
            )
        self.TUNING_SUMMARY_FILE_PATH: str = os.path.join(
            self.MODEL_TRAINER_ARTEFACTS_DIR, TUNING_SUMMARY_FILE_NAME
            )
        self.TUNING_NOTES_FILE_PATH: str = os.path.join(
            self.MODEL_TRAINER_ARTEFACTS_DIR, TUNING_NOTES_FILE_NAME
            )


# Model Evaluation Configurations
@dataclass
class ModelEvaluationConfig(PipelineConfig):
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        super().__init__(root_dir, artefacts_dir)
        self.METRICS = list(self.PARAMS.get("METRICS", ["rmse", "rsq"]))
        self.MODEL_EVALUATION_ARTEFACTS_DIR: str = os.path.join(
            self.ARTEFACTS_DIR, MODEL_EVALUATION_ARTEFACTS_DIR
            )
        self.METRIC_ARTEFACTS_DIR: str = os.path.join(
            self.MODEL_EVALUATION_ARTEFACTS_DIR, METRIC_ARTEFACTS_DIR
            )
        self.EVALUATION_REPORT_FILE_PATH: str = os.path.join(
            self.MODEL_EVALUATION_ARTEFACTS_DIR, EVALUATION_REPORT_FILE_NAME
            )
        self.MLFLOW_TRACKING = self.PARAMS.get("MLFLOW_TRACKING", False)
        self.TRACKING_URI = self.PARAMS.get("TRACKING_URI", TRACKING_URI)
        self.MLFLOW_EXPERIMENT_NAME = MLFLOW_EXPERIMENT_NAME


@dataclass
class PredictorConfig(PipelineConfig):
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        super().__init__(root_dir, artefacts_dir)
        self.PREDICTION_COLUMN = "predicted_cnt"
