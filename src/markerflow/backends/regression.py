"""Multinomial (softmax) logistic regression backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from markerflow.backends.base import TrainedModel, encode_labels, decode_labels, select_matrix
from markerflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MultinomialRegressionBackend:
    """
    Softmax linear model over numeric predictors.

    ``covariates`` are appended to whatever predictor set the caller supplies;
    the "with covariates" configuration is this same backend with a non-empty
    tuple. The large default ``C`` keeps the fit close to an unpenalized
    multinomial model while staying finite under separation.
    """

    covariates: Tuple[str, ...] = ()
    C: float = 1.0e4
    max_iter: int = 10000
    random_state: int = 42

    @property
    def name(self) -> str:
        return "multinom_cov" if self.covariates else "multinom"

    def model_columns(self, predictors: Sequence[str]) -> Tuple[str, ...]:
        extra = tuple(c for c in self.covariates if c not in predictors)
        return tuple(predictors) + extra

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        levels: Sequence[str],
        predictors: Sequence[str],
    ) -> TrainedModel:
        columns = self.model_columns(predictors)
        matrix = select_matrix(X, columns)
        codes = encode_labels(y, levels)
        if len(np.unique(codes)) < 2:
            raise ConfigurationError("Multinomial regression needs at least two classes in training data")

        pipe = Pipeline(
            [
                ("scaler", StandardScaler()),
                (
                    "clf",
                    LogisticRegression(
                        C=self.C,
                        solver="lbfgs",
                        max_iter=self.max_iter,
                        random_state=self.random_state,
                    ),
                ),
            ]
        )
        pipe.fit(matrix.to_numpy(dtype=float), codes)
        logger.debug(
            "Fitted %s on %d rows, columns=%s",
            self.name,
            len(codes),
            list(columns),
        )
        return TrainedModel(
            backend=self.name,
            estimator=pipe,
            predictors=columns,
            levels=tuple(levels),
        )

    def predict(self, model: TrainedModel, X: pd.DataFrame) -> np.ndarray:
        matrix = select_matrix(X, model.predictors)
        codes = model.estimator.predict(matrix.to_numpy(dtype=float))
        return decode_labels(codes, model.levels)
