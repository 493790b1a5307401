"""Exhaustive best-subset predictor search scored by adjusted R², Mallows' Cp and BIC."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from math import comb
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from markerflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CRITERIA = ("adj_r2", "cp", "bic")


@dataclass
class BestSubsetResult:
    """Best subsets per size with their fit-quality scores.

    Attributes:
        table: One row per (size, rank) with columns ``size``, ``rank``,
            ``predictors``, ``rss``, ``r2``, ``adj_r2``, ``cp``, ``bic``
        candidates: Candidate predictors actually searched
        excluded: Candidates dropped before the search (constant columns)
        levels: Label order used for the ordinal response
    """

    table: pd.DataFrame
    candidates: List[str]
    excluded: List[str] = field(default_factory=list)
    levels: List[str] = field(default_factory=list)

    @property
    def max_size(self) -> int:
        return int(self.table["size"].max())

    def scores(self) -> pd.DataFrame:
        """Criterion trajectory across sizes (best subset of each size)."""
        best = self.table[self.table["rank"] == 1]
        return best.set_index("size")[["adj_r2", "cp", "bic"]]

    def predictors(self, size: int) -> Tuple[str, ...]:
        """Return the chosen predictor set for a caller-fixed subset size."""
        rows = self.table[(self.table["size"] == size) & (self.table["rank"] == 1)]
        if rows.empty:
            raise ConfigurationError(
                f"Subset size {size} was not searched (available: 1..{self.max_size})"
            )
        return tuple(rows.iloc[0]["predictors"])

    def best_by(self, criterion: str) -> int:
        """Size each criterion favours; informational only, never applied automatically."""
        if criterion not in CRITERIA:
            raise ConfigurationError(f"criterion must be one of {list(CRITERIA)}, got {criterion!r}")
        trajectory = self.scores()[criterion]
        if criterion == "adj_r2":
            return int(trajectory.idxmax())
        return int(trajectory.idxmin())


def ordinal_response(labels: pd.Series, levels: Sequence[str]) -> np.ndarray:
    """Encode labels as 1..K following ``levels``."""
    cat = pd.Categorical(labels.astype(object), categories=list(levels))
    if (cat.codes < 0).any():
        unknown = sorted(set(map(str, labels[cat.codes < 0])))
        raise ConfigurationError(f"Labels not in levels {list(levels)}: {unknown}")
    return cat.codes.astype(float) + 1.0


def _constant_columns(X: pd.DataFrame) -> List[str]:
    return [c for c in X.columns if X[c].nunique(dropna=False) <= 1]


def best_subset_search(
    data: pd.DataFrame,
    label_col: str,
    candidates: Optional[Sequence[str]] = None,
    max_size: int = 8,
    levels: Optional[Sequence[str]] = None,
    n_best: int = 1,
) -> BestSubsetResult:
    """
    Exhaustive subset search of the ordinal label surrogate on candidate predictors.

    For every size 1..``max_size`` the subsets with the lowest residual sum of
    squares are kept (``n_best`` per size), and each is scored by adjusted R²,
    Mallows' Cp and BIC. The final size is left to the caller.

    Parameters
    ----------
    data : pd.DataFrame
        Cleaned table with label and numeric candidate columns
    label_col : str
        Name of the label column
    candidates : Sequence[str], optional
        Candidate predictors; defaults to every numeric column but the label
    max_size : int
        Largest subset size; clamped to the number of usable candidates
    levels : Sequence[str], optional
        Label order for the ordinal response; defaults to sorted labels
    n_best : int
        Number of subsets to keep per size

    Returns
    -------
    BestSubsetResult

    Raises
    ------
    ConfigurationError
        On invalid sizes, missing values, or when Mallows' Cp is undefined
        because the full candidate model has no residual variance estimate
    """
    if max_size < 1:
        raise ConfigurationError(f"max_size must be >= 1, got {max_size}")
    if n_best < 1:
        raise ConfigurationError(f"n_best must be >= 1, got {n_best}")
    if label_col not in data.columns:
        raise ConfigurationError(f"Label column '{label_col}' not found in data")

    if candidates is None:
        candidates = [
            c for c in data.select_dtypes(include=[np.number]).columns if c != label_col
        ]
    candidates = list(candidates)
    missing = [c for c in candidates if c not in data.columns]
    if missing:
        raise ConfigurationError(f"Candidate columns not found: {missing}")

    X = data[candidates].astype(float)
    if X.isna().any().any() or data[label_col].isna().any():
        raise ConfigurationError("Missing values in label or candidate columns; impute upstream")

    if levels is None:
        levels = sorted(data[label_col].astype(str).unique().tolist())
        logger.debug("No level order given; using sorted labels %s", levels)
    y = ordinal_response(data[label_col], levels)

    excluded = _constant_columns(X)
    if excluded:
        logger.warning("Excluding constant candidate columns: %s", excluded)
    usable = [c for c in candidates if c not in excluded]
    if not usable:
        raise ConfigurationError("No non-constant candidate predictors to search")
    if max_size > len(usable):
        logger.warning(
            "max_size %d exceeds %d usable candidates; searching up to %d",
            max_size,
            len(usable),
            len(usable),
        )
        max_size = len(usable)

    n = len(y)
    design = sm.add_constant(X[usable].to_numpy(), has_constant="add")
    full = sm.OLS(y, design).fit()
    df_resid = n - len(usable) - 1
    if df_resid <= 0:
        raise ConfigurationError(
            f"Mallows' Cp undefined: {n} rows leave no residual degrees of freedom "
            f"for the full model with {len(usable)} candidates"
        )
    sigma2 = full.ssr / df_resid
    if sigma2 <= 0:
        raise ConfigurationError("Mallows' Cp undefined: full candidate model fits the response exactly")

    total = sum(comb(len(usable), k) for k in range(1, max_size + 1))
    logger.info(
        "Best-subset search: %d candidates, sizes 1..%d, %d subsets", len(usable), max_size, total
    )

    rows = []
    for size in range(1, max_size + 1):
        fits = []
        for combo in itertools.combinations(range(len(usable)), size):
            cols = [0] + [i + 1 for i in combo]
            fits.append((sm.OLS(y, design[:, cols]).fit().ssr, combo))
        fits.sort()
        for rank, (ssr, combo) in enumerate(fits[:n_best], 1):
            fit = sm.OLS(y, design[:, [0] + [i + 1 for i in combo]]).fit()
            rows.append(
                {
                    "size": size,
                    "rank": rank,
                    "predictors": tuple(usable[i] for i in combo),
                    "rss": float(ssr),
                    "r2": float(fit.rsquared),
                    "adj_r2": float(fit.rsquared_adj),
                    "cp": float(ssr / sigma2 - n + 2 * (size + 1)),
                    "bic": float(fit.bic),
                }
            )
        logger.debug("Size %d best: %s", size, [usable[i] for i in fits[0][1]])

    return BestSubsetResult(
        table=pd.DataFrame(rows),
        candidates=usable,
        excluded=excluded,
        levels=list(levels),
    )
