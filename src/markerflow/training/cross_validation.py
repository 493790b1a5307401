"""Stratified k-fold cross-validation of a classifier backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from markerflow.backends.base import ClassifierBackend, select_matrix
from markerflow.exceptions import (
    ConfigurationError,
    FoldExecutionError,
    InsufficientClassSizeError,
)
from markerflow.metrics import AggregatedResult, FoldMetrics, aggregate_folds, evaluate_predictions, fold_table
from markerflow.splitting import assign_stratified_folds, iter_fold_splits

logger = logging.getLogger(__name__)


@dataclass
class CrossValidationResult:
    """Everything a cross-validation run produces."""

    backend: str
    predictors: Tuple[str, ...]
    levels: Tuple[str, ...]
    assignment: np.ndarray
    fold_metrics: List[FoldMetrics]
    aggregated: AggregatedResult
    failed_folds: Tuple[int, ...] = ()
    failure_messages: List[str] = field(default_factory=list)

    @property
    def overall(self) -> pd.DataFrame:
        return self.aggregated.overall

    @property
    def by_class(self) -> pd.DataFrame:
        return self.aggregated.by_class

    def folds(self) -> pd.DataFrame:
        return fold_table(self.fold_metrics)


@dataclass
class _FoldOutcome:
    fold: int
    metrics: Optional[FoldMetrics] = None
    error: Optional[InsufficientClassSizeError] = None


def _with_fold_context(
    exc: ConfigurationError, fold: int, backend: str, predictors: Sequence[str]
) -> ConfigurationError:
    """Restate a configuration error raised inside a fold with where it happened."""
    return ConfigurationError(f"Fold {fold} failed for backend '{backend}' (predictors {list(predictors)}): {exc}")


def _run_fold(
    backend: ClassifierBackend,
    data: pd.DataFrame,
    y: pd.Series,
    levels: Sequence[str],
    predictors: Sequence[str],
    fold: int,
    train_idx: np.ndarray,
    test_idx: np.ndarray,
) -> _FoldOutcome:
    """Train on ``train_idx``, predict ``test_idx`` and evaluate; one model per call."""
    try:
        model = backend.fit(data.iloc[train_idx], y.iloc[train_idx], levels, predictors)
    except InsufficientClassSizeError as exc:
        return _FoldOutcome(fold=fold, error=exc)
    except ConfigurationError as exc:
        raise _with_fold_context(exc, fold, backend.name, predictors) from exc
    except Exception as exc:
        raise FoldExecutionError(fold, backend.name, predictors, exc) from exc

    try:
        predicted = backend.predict(model, data.iloc[test_idx])
        metrics = evaluate_predictions(y.iloc[test_idx], predicted, levels, fold=fold)
    except ConfigurationError as exc:
        raise _with_fold_context(exc, fold, backend.name, predictors) from exc
    except Exception as exc:
        raise FoldExecutionError(fold, backend.name, predictors, exc) from exc

    logger.info(
        "  Fold %d: train=%d, test=%d, accuracy=%.3f",
        fold,
        len(train_idx),
        len(test_idx),
        metrics.accuracy,
    )
    return _FoldOutcome(fold=fold, metrics=metrics)


class CrossValidationRunner:
    """
    Partition once, then train/predict/evaluate each fold and aggregate.

    Parameters
    ----------
    backend : ClassifierBackend
        Classifier used for every fold; a new model is fit per fold
    n_folds : int
        Number of stratified folds
    random_state : int
        Seed fixed before partitioning
    allow_sparse_labels : bool
        Permit labels with fewer rows than folds
    n_jobs : int
        Folds to run concurrently via joblib (1 = sequential)
    """

    def __init__(
        self,
        backend: ClassifierBackend,
        n_folds: int = 5,
        random_state: int = 42,
        allow_sparse_labels: bool = False,
        n_jobs: int = 1,
    ):
        if n_folds < 2:
            raise ConfigurationError(f"n_folds must be >= 2, got {n_folds}")
        self.backend = backend
        self.n_folds = n_folds
        self.random_state = random_state
        self.allow_sparse_labels = allow_sparse_labels
        self.n_jobs = n_jobs

    def run(
        self,
        data: pd.DataFrame,
        label_col: str,
        predictors: Sequence[str],
        levels: Sequence[str],
    ) -> CrossValidationResult:
        """Run the full cross-validation loop and return aggregated tables."""
        predictors = tuple(predictors)
        levels = tuple(str(lvl) for lvl in levels)
        if not predictors:
            raise ConfigurationError("At least one predictor is required")
        if label_col not in data.columns:
            raise ConfigurationError(f"Label column '{label_col}' not found in data")

        data = data.reset_index(drop=True)
        y = data[label_col].astype(str)
        unknown = sorted(set(y) - set(levels))
        if unknown:
            raise ConfigurationError(f"Labels not in levels {list(levels)}: {unknown}")
        select_matrix(data, self.backend.model_columns(predictors))

        logger.info(
            "Cross-validating %s: %d rows, %d folds, seed=%d, predictors=%s",
            self.backend.name,
            len(data),
            self.n_folds,
            self.random_state,
            list(predictors),
        )
        assignment = assign_stratified_folds(
            y,
            self.n_folds,
            self.random_state,
            allow_sparse_labels=self.allow_sparse_labels,
        )
        splits = list(enumerate(iter_fold_splits(assignment, self.n_folds)))

        if self.n_jobs == 1:
            outcomes = [
                _run_fold(self.backend, data, y, levels, predictors, fold, tr_idx, te_idx)
                for fold, (tr_idx, te_idx) in splits
            ]
        else:
            outcomes = Parallel(n_jobs=self.n_jobs)(
                delayed(_run_fold)(self.backend, data, y, levels, predictors, fold, tr_idx, te_idx)
                for fold, (tr_idx, te_idx) in splits
            )
        outcomes = sorted(outcomes, key=lambda o: o.fold)

        fold_metrics = [o.metrics for o in outcomes if o.metrics is not None]
        failed = tuple(o.fold for o in outcomes if o.error is not None)
        messages = [f"fold {o.fold}: {o.error}" for o in outcomes if o.error is not None]
        for message in messages:
            logger.warning("Excluded from aggregation (%s) - %s", self.backend.name, message)
        if not fold_metrics:
            raise ConfigurationError(
                f"Backend '{self.backend.name}' could not be fit on any fold: {messages}"
            )

        aggregated = aggregate_folds(fold_metrics, levels, failed_folds=failed)
        logger.info(
            "%s overall accuracy=%.3f over %d/%d folds",
            self.backend.name,
            aggregated.overall["Accuracy"].iloc[0],
            len(fold_metrics),
            self.n_folds,
        )
        return CrossValidationResult(
            backend=self.backend.name,
            predictors=predictors,
            levels=levels,
            assignment=assignment,
            fold_metrics=fold_metrics,
            aggregated=aggregated,
            failed_folds=failed,
            failure_messages=messages,
        )
