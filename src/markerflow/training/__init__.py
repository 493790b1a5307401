"""Cross-validation runner and file-based pipelines."""

from markerflow.training.cross_validation import CrossValidationResult, CrossValidationRunner
from markerflow.training.pipeline import (
    run_selection,
    run_evaluation,
    evaluate_dataset,
    compare_models,
)

__all__ = [
    "CrossValidationResult",
    "CrossValidationRunner",
    "run_selection",
    "run_evaluation",
    "evaluate_dataset",
    "compare_models",
]
