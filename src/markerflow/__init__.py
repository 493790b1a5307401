"""
markerflow: cross-validated multi-class evaluation for biomarker exposure studies.

This package provides:
- Exhaustive best-subset predictor search (adjusted R², Mallows' Cp, BIC)
- Label-stratified round-robin fold assignment
- QDA and multinomial-regression classifier backends
- Confusion-matrix metrics with missing-aware cross-fold aggregation
- CLI tools for selection, evaluation and model comparison
"""

__version__ = "0.1.0"

from markerflow.backends import DiscriminantBackend, MultinomialRegressionBackend, get_backend
from markerflow.config import EvaluationConfig, SelectionConfig, DEFAULT_LEVELS
from markerflow.exceptions import ConfigurationError, FoldExecutionError, InsufficientClassSizeError
from markerflow.metrics import aggregate_folds, combine_results, evaluate_predictions
from markerflow.selection import best_subset_search
from markerflow.splitting import assign_stratified_folds
from markerflow.training import CrossValidationRunner

__all__ = [
    "__version__",
    "DiscriminantBackend",
    "MultinomialRegressionBackend",
    "get_backend",
    "EvaluationConfig",
    "SelectionConfig",
    "DEFAULT_LEVELS",
    "ConfigurationError",
    "FoldExecutionError",
    "InsufficientClassSizeError",
    "aggregate_folds",
    "combine_results",
    "evaluate_predictions",
    "best_subset_search",
    "assign_stratified_folds",
    "CrossValidationRunner",
]
