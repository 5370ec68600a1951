from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, RepeatedKFold

from bikeshare import logging
from bikeshare.exception import InvalidFoldCount


@dataclass(frozen=True, eq=False)
class Resample:
    """One analysis/assessment pair; ids are zero based."""
    repeat: int
    fold: int
    analysis: np.ndarray
    assessment: np.ndarray

    @property
    def id(self) -> str:
        return f"Repeat{self.repeat + 1}_Fold{self.fold + 1:02d}"


@dataclass(frozen=True, eq=False)
class Resamples:
    """V-fold cross-validation resamples of one training frame."""
    data: pd.DataFrame
    splits: Tuple[Resample, ...]
    v: int
    repeats: int
    seed: Optional[int] = None

    def __len__(self) -> int:
        return len(self.splits)

    def __iter__(self) -> Iterator[Resample]:
        return iter(self.splits)

    def analysis(self, resample: Resample) -> pd.DataFrame:
        return self.data.iloc[resample.analysis]

    def assessment(self, resample: Resample) -> pd.DataFrame:
        return self.data.iloc[resample.assessment]

    def assignments(self, repeat: int = 0) -> pd.Series:
        """Fold id of every training row for one repeat."""
        folds = np.full(len(self.data), -1, dtype=int)
        for resample in self.splits:
            if resample.repeat == repeat:
                folds[resample.assessment] = resample.fold
        return pd.Series(folds, index=self.data.index, name="fold")

    def __repr__(self) -> str:
        return f"#  {self.v}-fold cross-validation repeated {self.repeats} times ({len(self.splits)} resamples)"


def vfold_cv(data: pd.DataFrame, v: int = 10, repeats: int = 1, seed: Optional[int] = None) -> Resamples:
    """
    Randomly partition the training frame into ``v`` folds, ``repeats`` times.

    Args:
        data (pd.DataFrame): The training subset. It is copied and never modified afterwards.
        v (int): Number of folds, between 2 and the number of rows.
        repeats (int): Number of independent fold assignments.
        seed (int, optional): Random seed for reproducibility.

    Returns:
        Resamples: ``v * repeats`` analysis/assessment pairs.
    """
    if v < 2 or v > len(data):
        raise InvalidFoldCount(f"v must lie between 2 and the number of rows ({len(data)}), got {v}")
    if repeats < 1:
        raise InvalidFoldCount(f"repeats must be at least 1, got {repeats}")

    if repeats == 1:
        splitter = KFold(n_splits=v, shuffle=True, random_state=seed)
    else:
        splitter = RepeatedKFold(n_splits=v, n_repeats=repeats, random_state=seed)

    splits = tuple(
        Resample(repeat=i // v, fold=i % v, analysis=analysis, assessment=assessment)
        for i, (analysis, assessment) in enumerate(splitter.split(np.arange(len(data))))
    )
    resamples = Resamples(data=data.copy(), splits=splits, v=v, repeats=repeats, seed=seed)
    logging.info(f"Created {resamples} on {len(data)} rows with seed {seed}")
    return resamples
