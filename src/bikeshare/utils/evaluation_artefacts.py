import os
from typing import List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import mlflow
import numpy as np
import pandas as pd
import seaborn as sns

from bikeshare import logging
from bikeshare.modeling.workflow import FittedWorkflow


class ModelDiagnosticsLogger:
    """Diagnostic plots of a fitted regression workflow on held-out data."""

    def __init__(self, workflow: FittedWorkflow, X_test: pd.DataFrame,
                 y_test: pd.Series,
                 model_name: str,
                 artefact_path: str,
                 mlflow_tracking: bool = False
                 ):
        self.workflow = workflow
        self.model = workflow.pipeline.named_steps['model']
        self.X_test = X_test
        self.y_test = np.asarray(y_test)
        self.model_name = model_name
        self.feature_names = workflow.feature_names or []
        self.artefact_path = artefact_path
        self.mlflow_tracking = mlflow_tracking
        self.artifact_paths: List[str] = []
        os.makedirs(self.artefact_path, exist_ok=True)

    def _save(self, file_name: str) -> None:
        artifact_path = os.path.join(self.artefact_path, f"{self.model_name}_{file_name}")
        plt.savefig(artifact_path, bbox_inches='tight')
        plt.close()
        if self.mlflow_tracking:
            mlflow.log_artifact(artifact_path)
        self.artifact_paths.append(artifact_path)

    def plot_predicted_vs_actual(self):
        try:
            y_pred = self.workflow.predict(self.X_test)
            plt.figure(figsize=(8, 6))
            sns.scatterplot(x=self.y_test, y=y_pred, alpha=0.7)
            lims = [min(self.y_test.min(), y_pred.min()), max(self.y_test.max(), y_pred.max())]
            plt.plot(lims, lims, linestyle='--', color='gray', label='Perfect prediction')
            plt.xlabel("Actual rentals")
            plt.ylabel("Predicted rentals")
            plt.title(f"{self.model_name} - Predicted vs Actual")
            plt.legend(loc=4)
            self._save("predicted_vs_actual.png")
        except Exception as e:
            logging.warning(f"Error occurred while plot_predicted_vs_actual: {str(e)}")

    def plot_residuals(self):
        try:
            y_pred = self.workflow.predict(self.X_test)
            residuals = self.y_test - y_pred
            fig, axes = plt.subplots(1, 2, figsize=(14, 5))
            sns.scatterplot(x=y_pred, y=residuals, ax=axes[0], alpha=0.7)
            axes[0].axhline(0, linestyle='--', color='gray')
            axes[0].set_xlabel("Predicted rentals")
            axes[0].set_ylabel("Residual")
            sns.histplot(residuals, kde=True, ax=axes[1])
            axes[1].set_xlabel("Residual")
            fig.suptitle(f"{self.model_name} - Residuals")
            self._save("residuals.png")
        except Exception as e:
            logging.warning(f"Error occurred while plot_residuals: {str(e)}")

    def display_feature_importance(self, n_top=10):
        """
        Bar chart of the largest feature importances, or of the coefficients
        for linear models, after preprocessing.
        """
        try:
            if hasattr(self.model, 'feature_importances_'):
                importance_scores = self.model.feature_importances_
            else:
                importance_scores = np.ravel(self.model.coef_)

            df = pd.DataFrame({'Feature': self.feature_names, 'Score': importance_scores})
            df['Abs_Score'] = np.abs(df['Score'])
            df_sorted = df.sort_values(by="Abs_Score", ascending=False)
            if n_top:
                df_sorted = df_sorted.head(n_top)

            colors = ["green" if score > 0 else "red" for score in df_sorted["Score"]]
            plt.figure(figsize=(12, 8))
            sns.barplot(x="Feature", y="Score", hue="Feature", legend=False, data=df_sorted, palette=colors)
            plt.xlabel("Feature")
            plt.ylabel("Feature Importance Score")
            plt.title(f"Feature Importance in {self.model_name} Regression")
            plt.xticks(rotation=45, ha="right")
            plt.tight_layout()
            self._save("feature_importance_score.png")
        except Exception as e:
            logging.warning(f"Error occurred while extracting feature importances: {str(e)}")

    def plot_tuning_profile(self, tuning_summary: pd.DataFrame, metric: str):
        """Mean resampled metric of every candidate, with one standard error."""
        try:
            rows = tuning_summary[tuning_summary["metric"] == metric]
            if rows.empty:
                return
            plt.figure(figsize=(12, 6))
            labels = rows["model"] + ":" + rows["config"] if "model" in rows else rows["config"]
            plt.errorbar(range(len(rows)), rows["mean"], yerr=rows["std_err"].fillna(0), fmt='o', color='violet')
            plt.xticks(range(len(rows)), labels, rotation=90)
            plt.ylabel(f"Mean {metric}")
            plt.title(f"Cross-validated {metric} per candidate")
            plt.tight_layout()
            self._save(f"tuning_profile_{metric}.png")
        except Exception as e:
            logging.warning(f"Error occurred while plot_tuning_profile: {str(e)}")

    def log_model_diagnostics(self, tuning_summary: Optional[pd.DataFrame] = None, metric: str = "rmse") -> List[str]:
        self.plot_predicted_vs_actual()
        self.plot_residuals()
        self.display_feature_importance()
        if tuning_summary is not None:
            self.plot_tuning_profile(tuning_summary, metric)
        logging.info(f"All diagnostics for {self.model_name} saved to {self.artefact_path}")
        return self.artifact_paths
