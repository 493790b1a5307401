"""Confusion-matrix metrics and cross-fold aggregation."""

from markerflow.metrics.confusion import (
    FoldMetrics,
    PER_CLASS_METRICS,
    confusion_matrix_frame,
    per_class_metrics,
    evaluate_predictions,
)
from markerflow.metrics.aggregate import (
    AggregatedResult,
    OVERALL_COLUMNS,
    BY_CLASS_COLUMNS,
    aggregate_folds,
    fold_table,
    combine_results,
)

__all__ = [
    "FoldMetrics",
    "PER_CLASS_METRICS",
    "confusion_matrix_frame",
    "per_class_metrics",
    "evaluate_predictions",
    "AggregatedResult",
    "OVERALL_COLUMNS",
    "BY_CLASS_COLUMNS",
    "aggregate_folds",
    "fold_table",
    "combine_results",
]
