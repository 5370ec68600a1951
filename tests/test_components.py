import os

import mlflow
import pandas as pd
import pytest
import yaml

from bikeshare.components.data_exploration import DataExploration
from bikeshare.components.data_ingestion import DataIngestion
from bikeshare.components.data_validation import DataValidation
from bikeshare.components.model_predictor import BikeDayData, BikeDemandPredictor
from bikeshare.entity import (
    DataExplorationConfig,
    DataIngestionConfig,
    DataValidationConfig,
    PredictorConfig,
)
from bikeshare.modeling import FittedWorkflow
from bikeshare.pipeline.training_pipeline import TrainPipeline


@pytest.fixture
def ingestion_artefacts(project_dir):
    return DataIngestion(DataIngestionConfig(project_dir)).initiate_data_ingestion()


def test_data_ingestion_writes_stratified_split(ingestion_artefacts):
    assert ingestion_artefacts.n_train == 511
    assert ingestion_artefacts.n_test == 220
    train = pd.read_csv(ingestion_artefacts.train_data_file_path)
    test = pd.read_csv(ingestion_artefacts.test_data_file_path)
    assert len(train) == 511 and len(test) == 220
    assert "instant" not in train.columns and "registered" not in train.columns
    assert "cnt" in train.columns


def test_data_validation_passes_on_clean_data(project_dir, ingestion_artefacts):
    validation = DataValidation(ingestion_artefacts, DataValidationConfig(project_dir))
    artefacts = validation.initiate_data_validation()
    assert artefacts.validation_status
    with open(artefacts.validation_report_file_path) as f:
        report = yaml.safe_load(f)
    assert report["validation_status"] is True
    assert report["train"]["rows"] == 511


def test_data_validation_reports_values_outside_the_schema(project_dir, ingestion_artefacts):
    train = pd.read_csv(ingestion_artefacts.train_data_file_path)
    train.loc[0, "season"] = 7
    train.loc[1, "hum"] = 1.5
    train.drop(columns=["windspeed"]).to_csv(ingestion_artefacts.train_data_file_path, index=False)

    validation = DataValidation(ingestion_artefacts, DataValidationConfig(project_dir))
    artefacts = validation.initiate_data_validation()
    assert not artefacts.validation_status
    with open(artefacts.validation_report_file_path) as f:
        errors = yaml.safe_load(f)["train"]["errors"]
    assert any("season" in error for error in errors)
    assert any("hum" in error for error in errors)
    assert "Missing column: windspeed" in errors


def test_pipeline_stops_on_failed_validation(project_dir, ingestion_artefacts):
    train = pd.read_csv(ingestion_artefacts.train_data_file_path)
    train.loc[0, "season"] = 7
    train.to_csv(ingestion_artefacts.train_data_file_path, index=False)
    with pytest.raises(ValueError):
        TrainPipeline(root_dir=project_dir).start_data_validation(ingestion_artefacts)


def test_data_exploration_outputs(project_dir, ingestion_artefacts):
    exploration = DataExploration(ingestion_artefacts, DataExplorationConfig(project_dir))
    artefacts = exploration.initiate_data_exploration()
    assert os.path.exists(artefacts.descriptive_stats_file_path)
    # heatmap, four continuous columns and seven nominal columns
    assert len(artefacts.plot_file_paths) == 12
    assert all(os.path.exists(path) for path in artefacts.plot_file_paths)


def test_training_pipeline_end_to_end(project_dir):
    evaluation = TrainPipeline(root_dir=project_dir).run_pipeline()

    assert set(evaluation.test_metrics) == {"rmse", "rsq"}
    assert evaluation.test_metrics["rmse"] > 0
    with open(evaluation.evaluation_report_file_path) as f:
        report = yaml.safe_load(f)
    assert report["model"] in ("linear_reg", "boost_tree")
    assert "cv_rmse" in report

    fitted = FittedWorkflow.load(evaluation.trained_model_path)
    assert fitted.outcome == "cnt"

    trainer_dir = os.path.join(project_dir, "artefacts", "ModelTrainerArtefacts")
    summary = pd.read_csv(os.path.join(trainer_dir, "tuning_summary.csv"))
    assert set(summary["model"]) == {"linear_reg", "boost_tree"}
    assert (summary["n"] == 3).all()

    day = BikeDayData(season=3, yr=1, mnth=7, holiday=0, weekday=3, workingday=1, weathersit=1,
                      temp=0.7, atemp=0.65, hum=0.55, windspeed=0.15)
    predictor = BikeDemandPredictor(PredictorConfig(project_dir))
    prediction = predictor.predict(day.get_input_data_frame())
    assert prediction.shape == (1,)
    assert prediction[0] > 0


def test_training_and_evaluation_are_tracked_in_mlflow(project_dir, tmp_path):
    params_path = os.path.join(project_dir, "params.yaml")
    with open(params_path) as f:
        params = yaml.safe_load(f)
    tracking_uri = (tmp_path / "mlruns").as_uri()
    params.update({"MLFLOW_TRACKING": True, "TRACKING_URI": tracking_uri})
    with open(params_path, "w") as f:
        yaml.safe_dump(params, f)

    evaluation = TrainPipeline(root_dir=project_dir).run_pipeline()

    mlflow.set_tracking_uri(tracking_uri)
    runs = mlflow.search_runs(experiment_names=["bike_demand"])
    with open(evaluation.evaluation_report_file_path) as f:
        best_model = yaml.safe_load(f)["model"]
    assert set(runs["tags.mlflow.runName"]) == {best_model, f"{best_model}_evaluation"}
    assert runs["metrics.cv_rmse"].notna().all()
    evaluation_run = runs[runs["tags.mlflow.runName"] == f"{best_model}_evaluation"]
    assert len(evaluation_run) == 1
    assert evaluation_run["metrics.test_rmse"].iloc[0] == pytest.approx(evaluation.test_metrics["rmse"])

    artifact_dir = mlflow.artifacts.download_artifacts(run_id=evaluation_run["run_id"].iloc[0])
    assert any(name.endswith(".png") for name in os.listdir(artifact_dir))
