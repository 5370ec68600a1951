import sys
from typing import Optional
from bikeshare import logging
from bikeshare import CustomException
from bikeshare.exception import BikeShareError

from bikeshare.entity.artefacts_entity import (
    DataIngestionArtefacts,
    DataValidationArtefacts,
    DataExplorationArtefacts,
    ModelTrainerArtefacts,
    ModelEvaluationArtefacts,
    )

from bikeshare.entity.config_entity import (
    DataIngestionConfig,
    DataValidationConfig,
    DataExplorationConfig,
    ModelTrainerConfig,
    ModelEvaluationConfig,
    )

from bikeshare.components.data_ingestion import DataIngestion
from bikeshare.components.data_validation import DataValidation
from bikeshare.components.data_exploration import DataExploration
from bikeshare.components.model_trainer import ModelTrainer
from bikeshare.components.model_evaluation import ModelEvaluation


class TrainPipeline:
    def __init__(self, root_dir: Optional[str] = None, artefacts_dir: Optional[str] = None):
        self.data_ingestion_config = DataIngestionConfig(root_dir, artefacts_dir)
        self.data_validation_config = DataValidationConfig(root_dir, artefacts_dir)
        self.data_exploration_config = DataExplorationConfig(root_dir, artefacts_dir)
        self.model_trainer_config = ModelTrainerConfig(root_dir, artefacts_dir)
        self.model_evaluation_config = ModelEvaluationConfig(root_dir, artefacts_dir)

    # This method is used to start the data ingestion.
    def start_data_ingestion(self) -> DataIngestionArtefacts:
        logging.info("Entered the start_data_ingestion method of TrainPipeline class.")
        data_ingestion = DataIngestion(self.data_ingestion_config)
        data_ingestion_artefacts = data_ingestion.initiate_data_ingestion()
        logging.info("Exited the start_data_ingestion method of TrainPipeline class.")
        return data_ingestion_artefacts

    # This method is used to start the data validation.
    def start_data_validation(self, data_ingestion_artefact: DataIngestionArtefacts) -> DataValidationArtefacts:
        logging.info("Entered the start_data_validation method of TrainPipeline class.")
        data_validation = DataValidation(
            data_ingestion_artefacts=data_ingestion_artefact,
            data_validation_config=self.data_validation_config)

        data_validation_artefact = data_validation.initiate_data_validation()
        if not data_validation_artefact.validation_status:
            raise ValueError(
                f"{data_validation_artefact.validation_message}, "
                f"see {data_validation_artefact.validation_report_file_path}"
            )
        logging.info("Exited the start_data_validation method of TrainPipeline class.")
        return data_validation_artefact

    # This method is used to start the data exploration.
    def start_data_exploration(self, data_ingestion_artefact: DataIngestionArtefacts) -> DataExplorationArtefacts:
        logging.info("Entered the start_data_exploration method of TrainPipeline class.")
        data_exploration = DataExploration(
            data_ingestion_artefacts=data_ingestion_artefact,
            data_exploration_config=self.data_exploration_config)
        data_exploration_artefact = data_exploration.initiate_data_exploration()
        logging.info("Exited the start_data_exploration method of TrainPipeline class.")
        return data_exploration_artefact

    # This method is used to start the model trainer.
    def start_model_trainer(self, data_ingestion_artefact: DataIngestionArtefacts) -> ModelTrainerArtefacts:
        logging.info("Entered the start_model_trainer method of TrainPipeline class.")
        model_trainer = ModelTrainer(
            data_ingestion_artefacts=data_ingestion_artefact,
            model_trainer_config=self.model_trainer_config
            )
        model_trainer_artefact = model_trainer.initiate_model_trainer()
        logging.info("Exited the start_model_trainer method of TrainPipeline class.")
        return model_trainer_artefact

    # This method is used to start the model evaluation.
    def start_model_evaluation(
            self, data_ingestion_artefact: DataIngestionArtefacts,
            model_trainer_artefact: ModelTrainerArtefacts,
            ) -> ModelEvaluationArtefacts:
        logging.info("Entered the start_model_evaluation method of TrainPipeline class.")
        model_evaluation = ModelEvaluation(
            model_trainer_artefact=model_trainer_artefact,
            model_evaluation_config=self.model_evaluation_config,
            data_ingestion_artefact=data_ingestion_artefact,
            )
        model_evaluation_artefact = model_evaluation.initiate_model_evaluation()
        logging.info("Exited the start_model_evaluation method of TrainPipeline class.")
        return model_evaluation_artefact

    # This method is used to start the training pipeline.
    def run_pipeline(self) -> ModelEvaluationArtefacts:
        logging.info("Entered the run_pipeline method of TrainPipeline class.")
        try:
            data_ingestion_artefact = self.start_data_ingestion()

            self.start_data_validation(data_ingestion_artefact=data_ingestion_artefact)

            self.start_data_exploration(data_ingestion_artefact=data_ingestion_artefact)

            model_trainer_artefact = self.start_model_trainer(
                data_ingestion_artefact=data_ingestion_artefact
            )

            model_evaluation_artefact = self.start_model_evaluation(
                data_ingestion_artefact=data_ingestion_artefact,
                model_trainer_artefact=model_trainer_artefact,
            )
            logging.info(f"Test metrics: {model_evaluation_artefact.test_metrics}")
            logging.info("Exited the run_pipeline method of TrainPipeline class.")
            return model_evaluation_artefact
        except BikeShareError:
            raise
        except Exception as e:
            raise CustomException(e, sys)
