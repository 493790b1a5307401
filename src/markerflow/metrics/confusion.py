"""Confusion-matrix construction and per-class metrics for one fold."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix

from markerflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PER_CLASS_METRICS = ["sensitivity", "specificity", "ppv", "npv"]


@dataclass
class FoldMetrics:
    """Metrics for one held-out fold.

    ``per_class`` is indexed by level (in level order) with columns
    ``sensitivity``, ``specificity``, ``ppv``, ``npv`` (NaN where undefined)
    and the counts ``n_actual``, ``n_predicted``, ``n_correct``.
    """

    fold: int
    accuracy: float
    per_class: pd.DataFrame
    confusion: pd.DataFrame

    @property
    def n(self) -> int:
        return int(self.confusion.to_numpy().sum())


def _ratio(num: int, den: int) -> float:
    """Return num/den, or NaN when the denominator is zero."""
    if den == 0:
        return np.nan
    return float(num) / float(den)


def _check_labels(values: np.ndarray, levels: Sequence[str], what: str) -> None:
    unknown = sorted(set(map(str, values)) - set(map(str, levels)))
    if unknown:
        raise ConfigurationError(f"{what} labels not in levels {list(levels)}: {unknown}")


def confusion_matrix_frame(
    actual: Iterable,
    predicted: Iterable,
    levels: Sequence[str],
) -> pd.DataFrame:
    """
    Build a K x K confusion matrix as a DataFrame.

    Rows are actual labels and columns predicted labels, both in ``levels``
    order.

    Raises
    ------
    ConfigurationError
        If the sequences differ in length or hold labels outside ``levels``
    """
    y_true = np.asarray(list(actual), dtype=object)
    y_pred = np.asarray(list(predicted), dtype=object)
    if len(y_true) != len(y_pred):
        raise ConfigurationError(
            f"Actual and predicted lengths differ: {len(y_true)} != {len(y_pred)}"
        )
    levels = list(levels)
    _check_labels(y_true, levels, "Actual")
    _check_labels(y_pred, levels, "Predicted")

    if len(y_true) == 0:
        cm = np.zeros((len(levels), len(levels)), dtype=int)
    else:
        cm = confusion_matrix(y_true.astype(str), y_pred.astype(str), labels=[str(lvl) for lvl in levels])
    return pd.DataFrame(
        cm,
        index=pd.Index(levels, name="actual"),
        columns=pd.Index(levels, name="predicted"),
    )


def per_class_metrics(cm: pd.DataFrame) -> pd.DataFrame:
    """
    Derive one-vs-rest sensitivity, specificity, PPV and NPV from a confusion matrix.

    A zero denominator gives NaN. A class with no actual rows is excluded from
    the fold's per-class statistics: all four metrics are NaN.
    """
    counts = cm.to_numpy()
    total = int(counts.sum())
    rows = []
    for i, level in enumerate(cm.index):
        tp = int(counts[i, i])
        n_actual = int(counts[i, :].sum())
        n_predicted = int(counts[:, i].sum())
        fn = n_actual - tp
        fp = n_predicted - tp
        tn = total - tp - fn - fp

        if n_actual == 0:
            logger.debug("No held-out rows for class '%s'; class excluded for this fold", level)
            values = dict.fromkeys(PER_CLASS_METRICS, np.nan)
        else:
            values = {
                "sensitivity": _ratio(tp, tp + fn),
                "specificity": _ratio(tn, tn + fp),
                "ppv": _ratio(tp, tp + fp),
                "npv": _ratio(tn, tn + fn),
            }
            undefined = [name for name, val in values.items() if np.isnan(val)]
            if undefined:
                logger.debug("Undefined %s for class '%s' (zero denominator)", undefined, level)

        rows.append({**values, "n_actual": n_actual, "n_predicted": n_predicted, "n_correct": tp})

    frame = pd.DataFrame(rows, index=pd.Index(cm.index, name="class"))
    return frame[PER_CLASS_METRICS + ["n_actual", "n_predicted", "n_correct"]]


def evaluate_predictions(
    actual: Iterable,
    predicted: Iterable,
    levels: Sequence[str],
    fold: int = 0,
) -> FoldMetrics:
    """Evaluate one fold's predictions against its held-out labels."""
    cm = confusion_matrix_frame(actual, predicted, levels)
    n = int(cm.to_numpy().sum())
    accuracy = _ratio(int(np.trace(cm.to_numpy())), n)
    return FoldMetrics(
        fold=fold,
        accuracy=accuracy,
        per_class=per_class_metrics(cm),
        confusion=cm,
    )
