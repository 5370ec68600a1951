import os
import sys
from typing import Tuple
import pandas as pd
import urllib.request as request
from pathlib import Path
from bikeshare.entity import DataIngestionConfig
from bikeshare.entity import DataIngestionArtefacts
from bikeshare import logging, CustomException
from bikeshare.exception import BikeShareError
from bikeshare.modeling.splitting import initial_split
from bikeshare.utils import get_size


class DataIngestion:
    def __init__(
            self,
            data_ingestion_config: DataIngestionConfig,
            ):
        self.data_ingestion_config = data_ingestion_config

    def get_data_from_data_source(self) -> None:
        """
        Download the day-level rental table unless it is already present.
        """
        logging.info("Entered the get_data_from_data_source method of DataIngestion class")
        try:
            os.makedirs(self.data_ingestion_config.RAW_DATA_DIR, exist_ok=True)

            if not os.path.exists(self.data_ingestion_config.DOWNLOADED_DATA_FILE_PATH):
                logging.info(f"Download started from {self.data_ingestion_config.SOURCE_URL}")
                filename, headers = request.urlretrieve(
                    url=self.data_ingestion_config.SOURCE_URL,
                    filename=self.data_ingestion_config.DOWNLOADED_DATA_FILE_PATH
                )
                logging.info(f"{filename} downloaded with following info: \n{headers}")
            else:
                logging.info(
                    f"File already exists of size: "
                    f"{get_size(Path(self.data_ingestion_config.DOWNLOADED_DATA_FILE_PATH))}"
                )
        except Exception as e:
            raise CustomException(e, sys)

    def get_data_from_local_data_file(self) -> pd.DataFrame:
        """
        Get the data from csv file and apply the schema.

        Returns:
            pd.DataFrame: The day-level table without leakage columns, nominal columns as categories.
        """
        logging.info("Entered the get_data_from_local_data_file method of DataIngestion class")
        try:
            filename = self.data_ingestion_config.DOWNLOADED_DATA_FILE_PATH
            df = pd.read_csv(filename)
            logging.info(f"Obtained the dataframe from local data file: {filename} with shape {df.shape}")
            df = self.data_ingestion_config.UTILS.apply_schema(df, self.data_ingestion_config.SCHEMA_CONFIG)
            logging.info("Exited the get_data_from_local_data_file method of DataIngestion class")
            return df
        except Exception as e:
            raise CustomException(e, sys)

    def split_data_as_train_test(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Split the data into train and test, stratified on the strata column.

        Args:
            df (pd.DataFrame): The dataframe to be split.

        Returns:
            Tuple[pd.DataFrame, pd.DataFrame]: The train and test dataframe.
        """
        logging.info("Entered the split_data_as_train_test method of DataIngestion class")
        try:
            split = initial_split(
                df,
                prop=self.data_ingestion_config.TRAIN_SIZE,
                strata=self.data_ingestion_config.STRATA_COLUMN,
                seed=self.data_ingestion_config.SEED,
            )
            train_set, test_set = split.training(), split.testing()
            logging.info(f"Splitted the data into train and test: {split}")

            train_data_file_path = self.data_ingestion_config.TRAIN_DATA_FILE_PATH
            test_data_file_path = self.data_ingestion_config.TEST_DATA_FILE_PATH
            os.makedirs(os.path.dirname(train_data_file_path), exist_ok=True)
            os.makedirs(os.path.dirname(test_data_file_path), exist_ok=True)

            train_set.to_csv(train_data_file_path, index=False, header=True)
            test_set.to_csv(test_data_file_path, index=False, header=True)
            logging.info(
                f"Saved {os.path.basename(train_data_file_path)}, {os.path.basename(test_data_file_path)} in "
                f"{os.path.basename(self.data_ingestion_config.DATA_INGESTION_ARTEFACTS_DIR)} directory"
            )
            logging.info("Exited the split_data_as_train_test method of DataIngestion class")
            return train_set, test_set
        except BikeShareError:
            raise
        except Exception as e:
            raise CustomException(e, sys)

    def initiate_data_ingestion(self) -> DataIngestionArtefacts:
        """
        Initiate the data ingestion.

        Returns:
            DataIngestionArtefacts: The data ingestion artefacts.
        """
        logging.info("Entered the initiate_data_ingestion method of DataIngestion class")
        self.get_data_from_data_source()
        df = self.get_data_from_local_data_file()

        train_set, test_set = self.split_data_as_train_test(df)
        logging.info("Exited the initiate_data_ingestion method of DataIngestion class")

        return DataIngestionArtefacts(
            train_data_file_path=self.data_ingestion_config.TRAIN_DATA_FILE_PATH,
            test_data_file_path=self.data_ingestion_config.TEST_DATA_FILE_PATH,
            n_train=len(train_set),
            n_test=len(test_set),
        )
