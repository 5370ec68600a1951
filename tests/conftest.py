import os
import shutil
import tempfile
from pathlib import Path

os.environ.setdefault("BIKESHARE_LOG_DIR", tempfile.mkdtemp(prefix="bikeshare_logs_"))
os.environ.setdefault("MLFLOW_ALLOW_FILE_STORE", "true")

import numpy as np
import pandas as pd
import pytest
import yaml

from bikeshare.modeling.splitting import initial_split
from bikeshare.utils.main_utils import MainUtils

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def make_day_table(n_rows: int = 731, seed: int = 0) -> pd.DataFrame:
    """Synthetic table with the columns and value ranges of the daily rental data."""
    rng = np.random.default_rng(seed)
    dates = pd.date_range("2011-01-01", periods=n_rows, freq="D")
    mnth = dates.month.to_numpy()
    season = np.select([np.isin(mnth, [12, 1, 2]), np.isin(mnth, [3, 4, 5]), np.isin(mnth, [6, 7, 8])], [1, 2, 3], 4)
    yr = (dates.year - 2011).to_numpy().clip(0, 1)
    weekday = ((dates.dayofweek.to_numpy() + 1) % 7)
    holiday = (rng.random(n_rows) < 0.03).astype(int)
    workingday = ((weekday >= 1) & (weekday <= 5) & (holiday == 0)).astype(int)
    weathersit = rng.choice([1, 2, 3], size=n_rows, p=[0.63, 0.34, 0.03])

    day_of_year = dates.dayofyear.to_numpy()
    temp = np.clip(0.5 - 0.3 * np.cos(2 * np.pi * (day_of_year - 15) / 365) + rng.normal(0, 0.05, n_rows), 0.05, 0.95)
    atemp = np.clip(0.9 * temp + rng.normal(0, 0.02, n_rows), 0.05, 0.95)
    hum = np.clip(rng.normal(0.63, 0.14, n_rows), 0.1, 0.97)
    windspeed = np.clip(rng.normal(0.19, 0.08, n_rows), 0.02, 0.5)

    cnt = (
        1200 + 2000 * yr + 5000 * temp - 1500 * hum - 1000 * windspeed
        - 600 * (weathersit - 1) + 200 * workingday + rng.normal(0, 300, n_rows)
    )
    cnt = np.clip(np.round(cnt), 22, None).astype(int)
    casual = (cnt * 0.2).astype(int)

    return pd.DataFrame({
        "instant": np.arange(1, n_rows + 1),
        "dteday": dates.strftime("%Y-%m-%d"),
        "season": season,
        "yr": yr,
        "mnth": mnth,
        "holiday": holiday,
        "weekday": weekday,
        "workingday": workingday,
        "weathersit": weathersit,
        "temp": temp.round(6),
        "atemp": atemp.round(6),
        "hum": hum.round(6),
        "windspeed": windspeed.round(6),
        "casual": casual,
        "registered": cnt - casual,
        "cnt": cnt,
    })


@pytest.fixture(scope="session")
def schema_config():
    with open(PROJECT_ROOT / "config" / "schema.yaml") as f:
        return yaml.safe_load(f)


@pytest.fixture(scope="session")
def raw_day_table():
    return make_day_table()


@pytest.fixture
def day_table(raw_day_table, schema_config):
    return MainUtils.apply_schema(raw_day_table, schema_config)


@pytest.fixture
def day_split(day_table):
    return initial_split(day_table, prop=0.7, strata="season", seed=2024)


@pytest.fixture
def small_numeric_table():
    rng = np.random.default_rng(7)
    n_rows = 60
    temp = rng.uniform(0.1, 0.9, n_rows)
    hum = rng.uniform(0.3, 0.9, n_rows)
    return pd.DataFrame({
        "temp": temp,
        "hum": hum,
        "cnt": 1000 + 4000 * temp - 1000 * hum + rng.normal(0, 50, n_rows),
    })


@pytest.fixture
def project_dir(tmp_path, raw_day_table):
    """
    A project root with the real schema, a small model grid and the raw table
    already downloaded, so no network access is needed.
    """
    shutil.copytree(PROJECT_ROOT / "config", tmp_path / "config")
    model_config = {
        "models": {
            "linear_reg": {"family": "linear_reg", "mode": "regression", "engine": "lm"},
            "boost_tree": {
                "family": "boost_tree",
                "mode": "regression",
                "engine": "sklearn",
                "grid_levels": 2,
                "args": {
                    "trees": 20,
                    "tree_depth": {"type": "int", "min": 1, "max": 3},
                },
            },
        }
    }
    params = {
        "TRAIN_SIZE": 0.7,
        "SEED": 2024,
        "N_FOLDS": 3,
        "N_REPEATS": 1,
        "METRIC": "rmse",
        "METRICS": ["rmse", "rsq"],
        "MODELS": "ALL",
        "N_JOBS": 1,
        "BACKEND": "threading",
        "FIT_TIMEOUT": None,
        "MLFLOW_TRACKING": False,
    }
    with open(tmp_path / "config" / "model.yaml", "w") as f:
        yaml.safe_dump(model_config, f)
    with open(tmp_path / "params.yaml", "w") as f:
        yaml.safe_dump(params, f)

    raw_dir = tmp_path / "artefacts" / "RawData"
    raw_dir.mkdir(parents=True)
    raw_day_table.to_csv(raw_dir / "day.csv", index=False)
    return tmp_path
