import sys
import numpy as np
import pandas as pd
from typing import Dict, Optional
from bikeshare import logging
from bikeshare import CustomException
from bikeshare.entity import PredictorConfig
from bikeshare.modeling.workflow import FittedWorkflow


class BikeDayData:
    """Conditions of one day, as entered for a demand prediction."""

    def __init__(self,
                 season,
                 yr,
                 mnth,
                 holiday,
                 weekday,
                 workingday,
                 weathersit,
                 temp,
                 atemp,
                 hum,
                 windspeed,
                 ):
        self.season = season
        self.yr = yr
        self.mnth = mnth
        self.holiday = holiday
        self.weekday = weekday
        self.workingday = workingday
        self.weathersit = weathersit
        self.temp = temp
        self.atemp = atemp
        self.hum = hum
        self.windspeed = windspeed

    def get_data(self) -> Dict:
        """Get the day record as a column mapping

        Returns:
            Dict: The data
        """
        logging.info("Entered the get_data method of the BikeDayData class")
        try:
            input_data = {
                "season": [int(self.season)],
                "yr": [int(self.yr)],
                "mnth": [int(self.mnth)],
                "holiday": [int(self.holiday)],
                "weekday": [int(self.weekday)],
                "workingday": [int(self.workingday)],
                "weathersit": [int(self.weathersit)],
                "temp": [float(self.temp)],
                "atemp": [float(self.atemp)],
                "hum": [float(self.hum)],
                "windspeed": [float(self.windspeed)],
            }
            logging.info("Exited the get_data method of the BikeDayData class")
            return input_data
        except Exception as e:
            raise CustomException(e, sys)

    def get_input_data_frame(self) -> pd.DataFrame:
        """Get the input data as a pandas DataFrame

        Returns:
            pd.DataFrame: The data
        """
        logging.info("Entered the get_input_data_frame method of the BikeDayData class")
        try:
            data_frame = pd.DataFrame(self.get_data())
            logging.info("Exited the get_input_data_frame method of the BikeDayData class")
            return data_frame
        except Exception as e:
            raise CustomException(e, sys)


class BikeDemandPredictor:
    def __init__(self, predictor_config: Optional[PredictorConfig] = None, model_path: Optional[str] = None):
        self.predictor_config = predictor_config or PredictorConfig()
        self.model_path = model_path or self.predictor_config.TRAINED_MODEL_FILE_PATH
        self._workflow: Optional[FittedWorkflow] = None

    @property
    def workflow(self) -> FittedWorkflow:
        if self._workflow is None:
            self._workflow = FittedWorkflow.load(self.model_path)
        return self._workflow

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict the daily rental count

        Args:
            X (pd.DataFrame): The input data, one row per day

        Returns:
            np.ndarray: The predicted counts
        """
        logging.info("Entered the predict method of the BikeDemandPredictor class")
        try:
            X = self.predictor_config.UTILS.apply_schema(X, self.predictor_config.SCHEMA_CONFIG)
            prediction = self.workflow.predict(X)
            logging.info(f"Predicted {len(prediction)} rows with {self.workflow.spec}")
            logging.info("Exited the predict method of the BikeDemandPredictor class")
            return prediction
        except Exception as e:
            raise CustomException(e, sys)
