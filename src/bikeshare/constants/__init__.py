import os
from datetime import datetime

TIMESTAMP: str = datetime.now().strftime("%Y_%m_%d_%H_%M_%S")

# Configuration files, relative to the project root
MODEL_CONFIG_FILE = os.path.join("config", "model.yaml")
SCHEMA_FILE_PATH = os.path.join("config", "schema.yaml")
PARAM_FILE_PATH = "params.yaml"

SOURCE_URL = "https://raw.githubusercontent.com/theaboy/linear-regression-bike-demand/main/day.csv"
LOCAL_FILE_NAME = "day.csv"

TARGET_COLUMN = "cnt"
STRATA_COLUMN = "season"

TRAIN_SIZE = 0.7
SEED = 2024
N_FOLDS = 5
N_REPEATS = 1

ARTEFACTS_DIR_NAME = "artefacts"
RAW_DATA_DIR = "RawData"

DATA_INGESTION_ARTEFACTS_DIR = "DataIngestionArtefacts"
DATA_INGESTION_TRAIN_DIR = "Train"
DATA_INGESTION_TEST_DIR = "Test"
DATA_INGESTION_TRAIN_FILE_NAME = "train.csv"
DATA_INGESTION_TEST_FILE_NAME = "test.csv"

DATA_VALIDATION_ARTEFACT_DIR = "DataValidationArtefacts"
DATA_VALIDATION_REPORT_FILE_NAME = "ValidationReport.yaml"

DATA_EXPLORATION_ARTEFACTS_DIR = "DataExplorationArtefacts"
DESCRIPTIVE_STATS_FILE_NAME = "descriptive_statistics.csv"

MODEL_TRAINER_ARTEFACTS_DIR = "ModelTrainerArtefacts"
MODEL_FILE_NAME = "best_model_bike_demand.pkl"
MODEL_SAVE_FORMAT = ".pkl"
TUNING_METRICS_FILE_NAME = "tuning_metrics.csv"
TUNING_SUMMARY_FILE_NAME = "tuning_summary.csv"
TUNING_NOTES_FILE_NAME = "tuning_notes.csv"

"""
MODEL EVALUATION related constant
"""
MODEL_EVALUATION_ARTEFACTS_DIR = "ModelEvaluationArtefacts"
METRIC_ARTEFACTS_DIR = "MetricArtefacts"
EVALUATION_REPORT_FILE_NAME = "test_metrics.yaml"

# MlFlow
TRACKING_URI = "http://127.0.0.1:5000"
MLFLOW_EXPERIMENT_NAME = "bike_demand"
