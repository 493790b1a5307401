"""Predictor subset selection."""

from markerflow.selection.best_subset import (
    BestSubsetResult,
    CRITERIA,
    best_subset_search,
    ordinal_response,
)

__all__ = [
    "BestSubsetResult",
    "CRITERIA",
    "best_subset_search",
    "ordinal_response",
]
