"""Quadratic discriminant analysis backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.discriminant_analysis import QuadraticDiscriminantAnalysis

from markerflow.backends.base import TrainedModel, encode_labels, decode_labels, select_matrix
from markerflow.exceptions import InsufficientClassSizeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscriminantBackend:
    """
    Class-conditional quadratic discriminant boundaries over numeric predictors.

    Each class needs more training rows than predictors to estimate a full
    covariance matrix; otherwise ``fit`` raises ``InsufficientClassSizeError``.
    """

    reg_param: float = 0.0
    name: str = "qda"

    def model_columns(self, predictors: Sequence[str]) -> Tuple[str, ...]:
        return tuple(predictors)

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        levels: Sequence[str],
        predictors: Sequence[str],
    ) -> TrainedModel:
        predictors = self.model_columns(predictors)
        matrix = select_matrix(X, predictors)
        codes = encode_labels(y, levels)

        counts = {lvl: int((codes == i).sum()) for i, lvl in enumerate(levels)}
        present = {lvl: n for lvl, n in counts.items() if n > 0}
        too_small = {lvl: n for lvl, n in present.items() if n <= len(predictors)}
        if too_small:
            raise InsufficientClassSizeError(
                f"Classes {too_small} have too few training rows for QDA "
                f"with {len(predictors)} predictors (need > {len(predictors)})",
                class_counts=counts,
            )
        if len(present) < 2:
            raise InsufficientClassSizeError(
                f"QDA needs at least two classes in training data, got {sorted(present)}",
                class_counts=counts,
            )

        estimator = QuadraticDiscriminantAnalysis(reg_param=self.reg_param)
        estimator.fit(matrix.to_numpy(dtype=float), codes)
        logger.debug("Fitted QDA on %d rows, %d predictors", len(codes), len(predictors))
        return TrainedModel(
            backend=self.name,
            estimator=estimator,
            predictors=predictors,
            levels=tuple(levels),
        )

    def predict(self, model: TrainedModel, X: pd.DataFrame) -> np.ndarray:
        matrix = select_matrix(X, model.predictors)
        codes = model.estimator.predict(matrix.to_numpy(dtype=float))
        return decode_labels(codes, model.levels)
