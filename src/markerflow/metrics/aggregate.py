"""Cross-fold aggregation of fold metrics into Overall and ByClass tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from markerflow.exceptions import ConfigurationError
from markerflow.metrics.confusion import FoldMetrics, PER_CLASS_METRICS

logger = logging.getLogger(__name__)

METRIC_LABELS: Dict[str, str] = {
    "sensitivity": "Sensitivity",
    "specificity": "Specificity",
    "ppv": "PPV",
    "npv": "NPV",
}
OVERALL_COLUMNS = ["Accuracy", "Sensitivity", "Specificity", "PPV", "NPV", "BalancedAccuracy"]
BY_CLASS_COLUMNS = ["Sensitivity", "Specificity", "PPV", "NPV", "BalancedAccuracy", "ObservedAccuracy"]


@dataclass
class AggregatedResult:
    """Final cross-validated performance tables for one model run.

    Attributes:
        overall: One-row table of mean metrics
        by_class: One row per label in canonical order, plus ``n_folds_*``
            columns counting the folds that contributed to each mean
        fallbacks: Explicit notes for overall cells rebuilt from other classes
        n_folds: Number of folds aggregated
        failed_folds: Folds excluded because the classifier could not be fit
    """

    overall: pd.DataFrame
    by_class: pd.DataFrame
    fallbacks: List[str] = field(default_factory=list)
    n_folds: int = 0
    failed_folds: Tuple[int, ...] = ()

    def rounded(self, decimals: int = 3) -> "AggregatedResult":
        """Return a copy with metric columns rounded for reporting."""
        return replace(
            self,
            overall=self.overall.round(decimals),
            by_class=self.by_class.round(decimals),
            fallbacks=list(self.fallbacks),
        )


def _balanced(sens: pd.Series, spec: pd.Series) -> pd.Series:
    return (sens + spec) / 2.0


def aggregate_folds(
    fold_metrics: Sequence[FoldMetrics],
    levels: Sequence[str],
    failed_folds: Sequence[int] = (),
) -> AggregatedResult:
    """
    Merge per-fold metrics into Overall and ByClass tables.

    Per-class metrics are averaged over the folds where they are defined. The
    overall Sensitivity/Specificity/PPV/NPV are unweighted means over classes;
    a class whose metric is undefined in every fold is replaced by the mean of
    the other classes, and the substitution is logged and recorded in
    ``fallbacks``.

    Raises
    ------
    ConfigurationError
        If no fold metrics are supplied
    """
    if not fold_metrics:
        raise ConfigurationError("No fold metrics to aggregate")
    levels = list(levels)

    stacked = pd.concat(
        [fm.per_class.reset_index().assign(fold=fm.fold) for fm in fold_metrics],
        ignore_index=True,
    )
    grouped = stacked.groupby("class", sort=False)
    means = grouped[PER_CLASS_METRICS].mean().reindex(levels)
    counts = grouped[PER_CLASS_METRICS].count().reindex(levels).fillna(0).astype(int)
    sums = grouped[["n_actual", "n_correct"]].sum().reindex(levels).fillna(0)

    by_class = pd.DataFrame(index=pd.Index(levels, name="class"))
    for key, label in METRIC_LABELS.items():
        by_class[label] = means[key]
    by_class["BalancedAccuracy"] = _balanced(by_class["Sensitivity"], by_class["Specificity"])
    # Pooled over folds: correct held-out rows / held-out rows
    by_class["ObservedAccuracy"] = np.where(
        sums["n_actual"] > 0,
        sums["n_correct"] / sums["n_actual"].where(sums["n_actual"] > 0, 1),
        np.nan,
    )
    for key, label in METRIC_LABELS.items():
        by_class[f"n_folds_{label}"] = counts[key]

    fallbacks: List[str] = []
    overall_values: Dict[str, float] = {
        "Accuracy": float(np.mean([fm.accuracy for fm in fold_metrics])),
    }
    for key, label in METRIC_LABELS.items():
        column = by_class[label]
        missing = column.index[column.isna()].tolist()
        if missing:
            available = column.dropna()
            if available.empty:
                note = f"{label}: undefined for every class; overall value left missing"
                overall_values[label] = np.nan
            else:
                note = (
                    f"{label}: undefined in every fold for {missing}; overall value is "
                    f"the unweighted mean of {available.index.tolist()}"
                )
                overall_values[label] = float(available.mean())
            logger.warning("Fallback applied - %s", note)
            fallbacks.append(note)
        else:
            overall_values[label] = float(column.mean())

    overall_values["BalancedAccuracy"] = (
        overall_values["Sensitivity"] + overall_values["Specificity"]
    ) / 2.0
    overall = pd.DataFrame([overall_values], index=pd.Index(["Overall"]))[OVERALL_COLUMNS]

    return AggregatedResult(
        overall=overall,
        by_class=by_class,
        fallbacks=fallbacks,
        n_folds=len(fold_metrics),
        failed_folds=tuple(failed_folds),
    )


def fold_table(fold_metrics: Sequence[FoldMetrics]) -> pd.DataFrame:
    """Long per-fold, per-class table (one row per fold and class)."""
    frames = []
    for fm in fold_metrics:
        frame = fm.per_class.reset_index()
        frame.insert(0, "fold", fm.fold)
        frame.insert(1, "accuracy", fm.accuracy)
        frames.append(frame)
    if not frames:
        return pd.DataFrame(columns=["fold", "accuracy", "class"] + PER_CLASS_METRICS)
    return pd.concat(frames, ignore_index=True)


def combine_results(results: Mapping[str, AggregatedResult]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Concatenate several runs for side-by-side comparison.

    Returns
    -------
    overall : pd.DataFrame
        One row per model with a leading ``model`` column
    by_class : pd.DataFrame
        One row per (model, class)
    """
    overall_frames = []
    by_class_frames = []
    for model_id, result in results.items():
        overall = result.overall.reset_index(drop=True)
        overall.insert(0, "model", model_id)
        overall_frames.append(overall)

        by_class = result.by_class[BY_CLASS_COLUMNS].reset_index()
        by_class.insert(0, "model", model_id)
        by_class_frames.append(by_class)

    if not overall_frames:
        raise ConfigurationError("No results to combine")
    return (
        pd.concat(overall_frames, ignore_index=True),
        pd.concat(by_class_frames, ignore_index=True),
    )
