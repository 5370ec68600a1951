import os
import sys
from typing import Dict, Tuple

import dill
import pandas as pd
import yaml
from yaml import safe_dump

from bikeshare import logging, CustomException


class MainUtils:
    def read_yaml_file(self, filename: str) -> Dict:
        logging.info("Entered the read_yaml_file method of MainUtils class.")
        try:
            with open(filename, "rb") as yaml_file:
                data = yaml.safe_load(yaml_file)
            logging.info(f"Successfully read the yaml data from {filename}")
            return data
        except Exception as e:
            raise CustomException(e, sys)

    def write_json_to_yaml(self, json_file: Dict, yaml_file_path: str) -> str:
        logging.info("Entered the write_json_to_yaml method of MainUtils class.")
        try:
            os.makedirs(os.path.dirname(yaml_file_path) or ".", exist_ok=True)
            with open(yaml_file_path, "w") as yaml_file:
                safe_dump(json_file, yaml_file, default_flow_style=False, sort_keys=False)
            logging.info(f"Successfully saved the json data to {yaml_file_path}")
            return yaml_file_path
        except Exception as e:
            raise CustomException(e, sys)

    @staticmethod
    def save_object(file_path: str, obj: object) -> str:
        logging.info("Entered the save_object method of MainUtils class")
        try:
            os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
            with open(file_path, "wb") as file_obj:
                dill.dump(obj, file_obj)
            logging.info(f"Successfully saved the object to {file_path}")
            logging.info("Exited the save_object method of MainUtils class")
            return file_path
        except Exception as e:
            raise CustomException(e, sys)

    @staticmethod
    def load_object(file_path: str) -> object:
        logging.info("Entered the load_object method of MainUtils class")
        try:
            with open(file_path, "rb") as file_obj:
                obj = dill.load(file_obj)
            logging.info(f"Successfully loaded the object from {file_path}")
            return obj
        except Exception as e:
            raise CustomException(e, sys)

    @staticmethod
    def apply_schema(df: pd.DataFrame, schema_config: Dict) -> pd.DataFrame:
        """
        Drop the columns listed under ``drop_columns`` and give every nominal
        column a categorical dtype whose categories are its schema domain.

        Args:
            df (pd.DataFrame): The raw day-level table.
            schema_config (Dict): The parsed ``schema.yaml``.

        Returns:
            pd.DataFrame: A new frame with the schema applied.
        """
        drop_cols = [col for col in schema_config.get("drop_columns", []) if col in df.columns]
        df = df.drop(columns=drop_cols)
        for col, domain in (schema_config.get("nominal_columns") or {}).items():
            if col in df.columns:
                df[col] = pd.Categorical(df[col], categories=list(domain))
        logging.info(f"Applied schema: dropped {drop_cols}, nominal columns {list(schema_config.get('nominal_columns') or {})}")
        return df

    @staticmethod
    def separate_data(df: pd.DataFrame, target_column: str) -> Tuple[pd.DataFrame, pd.Series]:
        X = df.drop(columns=[target_column])
        y = df[target_column]
        return X, y
