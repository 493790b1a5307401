"""Shared fit/predict contract for classifier backends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
import pandas as pd

from markerflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainedModel:
    """Fitted estimator owned by a single fold iteration."""

    backend: str
    estimator: Any
    predictors: Tuple[str, ...]
    levels: Tuple[str, ...]


@runtime_checkable
class ClassifierBackend(Protocol):
    """Anything that can fit on labelled rows and predict level names."""

    name: str

    def model_columns(self, predictors: Sequence[str]) -> Tuple[str, ...]:
        ...

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        levels: Sequence[str],
        predictors: Sequence[str],
    ) -> TrainedModel:
        ...

    def predict(self, model: TrainedModel, X: pd.DataFrame) -> np.ndarray:
        ...


def encode_labels(y: pd.Series, levels: Sequence[str]) -> np.ndarray:
    """Encode labels as integer codes following the explicit level order."""
    y_cat = pd.Categorical(np.asarray(y, dtype=object), categories=list(levels))
    if (y_cat.codes < 0).any():
        unknown = sorted(set(map(str, np.asarray(y)[y_cat.codes < 0])))
        raise ConfigurationError(f"Labels not in levels {list(levels)}: {unknown}")
    return y_cat.codes.astype(int)


def decode_labels(codes: np.ndarray, levels: Sequence[str]) -> np.ndarray:
    """Map integer codes back to level names."""
    lookup = np.asarray(list(levels), dtype=object)
    return lookup[np.asarray(codes, dtype=int)]


def select_matrix(X: pd.DataFrame, predictors: Sequence[str]) -> pd.DataFrame:
    """Return the predictor columns in order, rejecting missing columns and values."""
    missing = [c for c in predictors if c not in X.columns]
    if missing:
        raise ConfigurationError(f"Predictor columns not found: {missing}")
    matrix = X[list(predictors)]
    if matrix.isna().any().any():
        bad = matrix.columns[matrix.isna().any()].tolist()
        raise ConfigurationError(f"Missing values in predictor columns: {bad}")
    return matrix
