"""Splitting utilities for cross-validation."""

from markerflow.splitting.stratified import (
    assign_stratified_folds,
    iter_fold_splits,
    fold_label_counts,
)

__all__ = [
    "assign_stratified_folds",
    "iter_fold_splits",
    "fold_label_counts",
]
