from bikeshare import logging
from bikeshare.pipeline.training_pipeline import TrainPipeline


if __name__ == "__main__":
    train_pipeline = TrainPipeline()
    model_evaluation_artefact = train_pipeline.run_pipeline()
    logging.info(f"Training pipeline finished: {model_evaluation_artefact}")
    print(model_evaluation_artefact.test_metrics)
