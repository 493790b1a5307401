"""Label-stratified round-robin fold assignment."""

from __future__ import annotations

import logging
from typing import Iterator, Tuple, Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from markerflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def assign_stratified_folds(
    labels: Iterable,
    n_folds: int,
    random_state: int,
    allow_sparse_labels: bool = False,
) -> np.ndarray:
    """
    Assign every row to one of ``n_folds`` label-stratified folds.

    Each label's row indices are shuffled independently with a single
    ``RandomState`` seeded from ``random_state`` and dealt cyclically across
    the folds, so per-label fold counts differ by at most one. Each label
    starts at the fold after the last one the previous label filled, which
    keeps overall fold sizes within one of each other as well.

    Parameters
    ----------
    labels : Iterable
        Label per row, in row order
    n_folds : int
        Number of folds (k)
    random_state : int
        Seed for the per-label permutations
    allow_sparse_labels : bool
        Permit labels with fewer than ``n_folds`` rows; affected folds hold
        no rows of that label

    Returns
    -------
    assignment : np.ndarray
        Integer fold index in ``0..n_folds-1`` for each row

    Raises
    ------
    ConfigurationError
        If the fold count is invalid for the data, or a fold would be empty
    """
    y = pd.Series(list(labels)).to_numpy(dtype=object)
    n = len(y)
    if n_folds < 2:
        raise ConfigurationError(f"n_folds must be >= 2, got {n_folds}")
    if n_folds > n:
        raise ConfigurationError(f"n_folds ({n_folds}) exceeds number of rows ({n})")
    if pd.isna(y).any():
        raise ConfigurationError("Labels contain missing values")

    unique_labels, counts = np.unique(y.astype(str), return_counts=True)
    sparse = {str(lab): int(cnt) for lab, cnt in zip(unique_labels, counts) if cnt < n_folds}
    if sparse:
        if not allow_sparse_labels:
            raise ConfigurationError(
                f"n_folds ({n_folds}) exceeds the number of rows for labels {sparse}"
            )
        logger.warning(
            "Labels with fewer rows than folds (%s); some folds will hold none of them",
            sparse,
        )

    rng = np.random.RandomState(random_state)
    assignment = np.full(n, -1, dtype=int)
    y_str = y.astype(str)
    # each label continues the deal where the previous one stopped
    offset = 0
    for label in unique_labels:
        label_idx = np.flatnonzero(y_str == label)
        rng.shuffle(label_idx)
        for pos, row in enumerate(label_idx):
            assignment[row] = (offset + pos) % n_folds
        offset = (offset + len(label_idx)) % n_folds

    fold_sizes = np.bincount(assignment, minlength=n_folds)
    empty = np.flatnonzero(fold_sizes == 0).tolist()
    if empty:
        raise ConfigurationError(f"Folds {empty} would hold no rows (fold sizes {fold_sizes.tolist()})")

    return assignment


def iter_fold_splits(assignment: np.ndarray, n_folds: Optional[int] = None) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
    """Yield ``(train_idx, test_idx)`` for each fold of an assignment array."""
    assignment = np.asarray(assignment)
    if n_folds is None:
        n_folds = int(assignment.max()) + 1
    for fold in range(n_folds):
        test_mask = assignment == fold
        yield np.flatnonzero(~test_mask), np.flatnonzero(test_mask)


def fold_label_counts(
    labels: Iterable,
    assignment: np.ndarray,
    levels: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Cross-tabulate held-out label counts per fold (rows = folds)."""
    table = pd.crosstab(
        pd.Series(np.asarray(assignment), name="fold"),
        pd.Series(np.asarray(list(labels), dtype=object), name="label"),
    )
    if levels is not None:
        table = table.reindex(columns=list(levels), fill_value=0)
    return table
