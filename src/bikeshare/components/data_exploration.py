import os
import sys
from typing import List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from bikeshare import logging, CustomException
from bikeshare.entity import DataExplorationConfig
from bikeshare.entity import DataIngestionArtefacts, DataExplorationArtefacts


class DataExploration:
    """Descriptive statistics and plots of the training table."""

    def __init__(
            self,
            data_ingestion_artefacts: DataIngestionArtefacts,
            data_exploration_config: DataExplorationConfig,
            ):
        self.data_ingestion_artefacts = data_ingestion_artefacts
        self.data_exploration_config = data_exploration_config
        self.output_dir = self.data_exploration_config.DATA_EXPLORATION_ARTEFACTS_DIR
        self.target_column = self.data_exploration_config.TARGET_COLUMN
        schema_config = self.data_exploration_config.SCHEMA_CONFIG
        self.nominal_columns = list(schema_config.get("nominal_columns") or {})
        self.numerical_columns = [
            col for col in (schema_config.get("numerical_columns") or {}) if col != self.target_column
        ]

    def _save(self, file_name: str) -> str:
        file_path = os.path.join(self.output_dir, file_name)
        plt.savefig(file_path, bbox_inches='tight')
        plt.close()
        return file_path

    def descriptive_statistics(self, df: pd.DataFrame) -> pd.DataFrame:
        stats = df.describe(include="all").T
        stats["missing"] = df.isna().sum()
        stats.to_csv(self.data_exploration_config.DESCRIPTIVE_STATS_FILE_PATH)
        logging.info(f"Saved descriptive statistics of {df.shape[1]} columns")
        return stats

    def plot_correlation_heatmap(self, df: pd.DataFrame) -> str:
        columns = [col for col in self.numerical_columns + [self.target_column] if col in df.columns]
        plt.figure(figsize=(8, 6))
        sns.heatmap(df[columns].corr(), annot=True, fmt=".2f", cmap="coolwarm", vmin=-1, vmax=1)
        plt.title("Correlation of the continuous columns")
        return self._save("correlation_heatmap.png")

    def plot_target_vs_continuous(self, df: pd.DataFrame) -> List[str]:
        file_paths = []
        for col in self.numerical_columns:
            if col not in df.columns:
                continue
            slope, intercept = np.polyfit(df[col], df[self.target_column], 1)
            plt.figure(figsize=(7, 5))
            sns.scatterplot(x=df[col], y=df[self.target_column], alpha=0.6)
            xs = np.linspace(df[col].min(), df[col].max(), 50)
            plt.plot(xs, slope * xs + intercept, color="red", label=f"trend (slope={slope:.1f})")
            plt.xlabel(col)
            plt.ylabel(self.target_column)
            plt.legend()
            plt.title(f"{self.target_column} vs {col}")
            file_paths.append(self._save(f"{self.target_column}_vs_{col}.png"))
        return file_paths

    def plot_target_by_category(self, df: pd.DataFrame) -> List[str]:
        file_paths = []
        for col in self.nominal_columns:
            if col not in df.columns:
                continue
            plt.figure(figsize=(7, 5))
            sns.boxplot(x=df[col].astype(str), y=df[self.target_column])
            plt.xlabel(col)
            plt.ylabel(self.target_column)
            plt.title(f"{self.target_column} by {col}")
            file_paths.append(self._save(f"{self.target_column}_by_{col}.png"))
        return file_paths

    def initiate_data_exploration(self) -> DataExplorationArtefacts:
        logging.info("Entered the initiate_data_exploration method of DataExploration class")
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            train_df = pd.read_csv(self.data_ingestion_artefacts.train_data_file_path)

            self.descriptive_statistics(train_df)
            plot_file_paths = [self.plot_correlation_heatmap(train_df)]
            plot_file_paths += self.plot_target_vs_continuous(train_df)
            plot_file_paths += self.plot_target_by_category(train_df)
            logging.info(f"Saved {len(plot_file_paths)} exploration plots to {self.output_dir}")
            logging.info("Exited the initiate_data_exploration method of DataExploration class")

            return DataExplorationArtefacts(
                exploration_dir=self.output_dir,
                descriptive_stats_file_path=self.data_exploration_config.DESCRIPTIVE_STATS_FILE_PATH,
                plot_file_paths=plot_file_paths,
            )
        except Exception as e:
            raise CustomException(e, sys)
