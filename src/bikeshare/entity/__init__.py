from bikeshare.entity.config_entity import (
    PipelineConfig,
    DataIngestionConfig,
    DataValidationConfig,
    DataExplorationConfig,
    ModelTrainerConfig,
    ModelEvaluationConfig,
    PredictorConfig,
)
from bikeshare.entity.artefacts_entity import (
    DataIngestionArtefacts,
    DataValidationArtefacts,
    DataExplorationArtefacts,
    ModelTrainerArtefacts,
    ModelEvaluationArtefacts,
)
