from dataclasses import dataclass, field

# Data Ingestion Artefacts

@dataclass
class DataIngestionArtefacts:
    train_data_file_path: str
    test_data_file_path: str
    n_train: int
    n_test: int


@dataclass
class DataValidationArtefacts:
    validation_report_file_path: str
    validation_status: bool
    validation_message: str


@dataclass
class DataExplorationArtefacts:
    exploration_dir: str
    descriptive_stats_file_path: str
    plot_file_paths: list = field(default_factory=list)


@dataclass
class ModelTrainerArtefacts:
    trained_model_file_path: str
    tuning_metrics_file_path: str
    tuning_summary_file_path: str
    tuning_notes_file_path: str
    best_model_name: str
    best_params: dict
    cv_metric: str
    cv_score: float


@dataclass
class ModelEvaluationArtefacts:
    evaluation_report_file_path: str
    test_metrics: dict
    trained_model_path: str
