from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from bikeshare import logging
from bikeshare.exception import InvalidFraction, UnknownColumn

POOLED_STRATUM = "__pooled__"
MISSING_STRATUM = "__missing__"


@dataclass(frozen=True, eq=False)
class Split:
    """A train/test partition of one table, stored as row positions."""
    data: pd.DataFrame
    train_idx: np.ndarray
    test_idx: np.ndarray
    strata: Optional[str] = None
    seed: Optional[int] = None

    def training(self) -> pd.DataFrame:
        return self.data.iloc[self.train_idx].copy()

    def testing(self) -> pd.DataFrame:
        return self.data.iloc[self.test_idx].copy()

    def __repr__(self) -> str:
        return f"<Training/Testing/Total> <{len(self.train_idx)}/{len(self.test_idx)}/{len(self.data)}>"


def _strata_labels(column: pd.Series, n_train: int, n_test: int) -> Optional[np.ndarray]:
    """
    Build stratum labels for the split. Strata with a single row are pooled
    together; returns None when the strata still cannot be honoured.
    """
    labels = column.astype(object).where(column.notna(), MISSING_STRATUM).astype(str)
    counts = labels.value_counts()
    rare = counts[counts < 2].index
    if len(rare) > 0:
        labels = labels.where(~labels.isin(rare), POOLED_STRATUM)
        counts = labels.value_counts()

    if counts.min() < 2 or len(counts) > min(n_train, n_test):
        logging.warning(
            f"Strata of column '{column.name}' are too small for a stratified split "
            f"({counts.to_dict()}); falling back to an unstratified split"
        )
        return None
    return labels.to_numpy()


def initial_split(
        data: pd.DataFrame,
        prop: float = 0.75,
        strata: Optional[str] = None,
        seed: Optional[int] = None,
        ) -> Split:
    """
    Partition a table into training and testing subsets.

    Args:
        data (pd.DataFrame): The full observation table.
        prop (float): Fraction of rows assigned to training, in (0, 1).
        strata (str, optional): Nominal column whose class proportions are preserved.
        seed (int, optional): Random seed for reproducibility.

    Returns:
        Split: The partition, with training size floor(prop * N).
    """
    if not 0 < prop < 1:
        raise InvalidFraction(f"prop must lie strictly between 0 and 1, got {prop}")
    if strata is not None and strata not in data.columns:
        raise UnknownColumn(f"Stratification column '{strata}' not found in the data")

    n_rows = len(data)
    n_train = int(np.floor(prop * n_rows))
    n_test = n_rows - n_train
    if n_train == 0 or n_test == 0:
        raise InvalidFraction(f"prop={prop} leaves an empty subset for {n_rows} rows")

    stratify = None
    if strata is not None:
        stratify = _strata_labels(data[strata], n_train, n_test)

    train_idx, test_idx = train_test_split(
        np.arange(n_rows),
        train_size=n_train,
        test_size=n_test,
        stratify=stratify,
        random_state=seed,
    )
    split = Split(
        data=data,
        train_idx=np.sort(train_idx),
        test_idx=np.sort(test_idx),
        strata=strata,
        seed=seed,
    )
    logging.info(f"Created initial split {split} stratified on {strata}")
    return split
