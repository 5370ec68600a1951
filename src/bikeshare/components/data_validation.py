import os
import sys
from typing import Dict, List, Tuple
import pandas as pd

from bikeshare import logging, CustomException
from bikeshare.entity import DataValidationConfig
from bikeshare.entity import DataIngestionArtefacts, DataValidationArtefacts


class DataValidation:
    """Checks the ingested train and test tables against ``config/schema.yaml``."""

    def __init__(
            self,
            data_ingestion_artefacts: DataIngestionArtefacts,
            data_validation_config: DataValidationConfig,
            ):
        self.data_ingestion_artefacts = data_ingestion_artefacts
        self.data_validation_config = data_validation_config
        self.schema_config = self.data_validation_config.SCHEMA_CONFIG

    def validate_columns(self, df: pd.DataFrame) -> List[str]:
        expected = (
            list(self.schema_config.get("nominal_columns") or {})
            + list(self.schema_config.get("numerical_columns") or {})
        )
        if self.data_validation_config.TARGET_COLUMN not in expected:
            expected.append(self.data_validation_config.TARGET_COLUMN)
        missing = [col for col in expected if col not in df.columns]
        return [f"Missing column: {col}" for col in missing]

    def validate_domains(self, df: pd.DataFrame) -> List[str]:
        errors = []
        for col, domain in (self.schema_config.get("nominal_columns") or {}).items():
            if col not in df.columns:
                continue
            values = df[col].dropna()
            unexpected = sorted(set(values.astype(object)) - set(domain), key=str)
            if unexpected:
                errors.append(f"Column {col} has values {unexpected} outside its domain {list(domain)}")
        return errors

    def validate_ranges(self, df: pd.DataFrame) -> List[str]:
        errors = []
        for col, bounds in (self.schema_config.get("numerical_columns") or {}).items():
            if col not in df.columns:
                continue
            if not pd.api.types.is_numeric_dtype(df[col]):
                errors.append(f"Column {col} is not numeric")
                continue
            bounds = bounds or {}
            lower, upper = bounds.get("min"), bounds.get("max")
            if lower is not None and (df[col] < lower).any():
                errors.append(f"Column {col} has values below {lower}")
            if upper is not None and (df[col] > upper).any():
                errors.append(f"Column {col} has values above {upper}")
        return errors

    def validate_missing_values(self, df: pd.DataFrame) -> List[str]:
        counts = df.isna().sum()
        return [f"Column {col} has {n} missing values" for col, n in counts.items() if n > 0]

    def validate_dataset(self, df: pd.DataFrame) -> Tuple[bool, List[str]]:
        """
        Run every check on one table.

        Returns:
            Tuple[bool, List[str]]: The status and the list of problems found.
        """
        errors = (
            self.validate_columns(df)
            + self.validate_domains(df)
            + self.validate_ranges(df)
            + self.validate_missing_values(df)
        )
        return len(errors) == 0, errors

    def initiate_data_validation(self) -> DataValidationArtefacts:
        logging.info("Entered the initiate_data_validation method of DataValidation class")
        try:
            report: Dict = {}
            status = True
            for name, file_path in (
                    ("train", self.data_ingestion_artefacts.train_data_file_path),
                    ("test", self.data_ingestion_artefacts.test_data_file_path),
            ):
                df = pd.read_csv(file_path)
                df_status, errors = self.validate_dataset(df)
                report[name] = {"rows": len(df), "status": df_status, "errors": errors}
                status = status and df_status
                logging.info(f"Validation of {name} data ({len(df)} rows): status={df_status}, errors={errors}")

            message = "Data validation passed" if status else "Data validation failed"
            report = {"validation_status": status, "validation_message": message, **report}

            os.makedirs(self.data_validation_config.DATA_VALIDATION_ARTEFACTS_DIR, exist_ok=True)
            self.data_validation_config.UTILS.write_json_to_yaml(
                report, self.data_validation_config.VALIDATION_REPORT_FILE_PATH
            )
            logging.info("Exited the initiate_data_validation method of DataValidation class")
            return DataValidationArtefacts(
                validation_report_file_path=self.data_validation_config.VALIDATION_REPORT_FILE_PATH,
                validation_status=status,
                validation_message=message,
            )
        except Exception as e:
            raise CustomException(e, sys)
