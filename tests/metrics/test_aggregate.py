"""Tests for cross-fold aggregation."""

import numpy as np
import pandas as pd
import pytest

from markerflow.exceptions import ConfigurationError
from markerflow.metrics import (
    OVERALL_COLUMNS,
    BY_CLASS_COLUMNS,
    aggregate_folds,
    combine_results,
    evaluate_predictions,
    fold_table,
)

LEVELS = ["never_smoker", "smoker", "device_gen_a", "device_gen_b"]


def _fold(actual, predicted, fold):
    return evaluate_predictions(actual, predicted, LEVELS, fold=fold)


@pytest.fixture
def perfect_fold():
    return _fold(LEVELS * 2, LEVELS * 2, 0)


@pytest.fixture
def no_smoker_fold():
    actual = LEVELS * 2
    predicted = ["never_smoker", "never_smoker", "device_gen_a", "device_gen_b"] * 2
    return _fold(actual, predicted, 1)


def test_single_fold_aggregate_equals_fold(no_smoker_fold):
    result = aggregate_folds([no_smoker_fold], LEVELS)

    expected = no_smoker_fold.per_class
    for key, label in [("sensitivity", "Sensitivity"), ("specificity", "Specificity"), ("npv", "NPV")]:
        pd.testing.assert_series_equal(
            result.by_class[label], expected[key], check_names=False
        )
    assert result.overall["Accuracy"].iloc[0] == pytest.approx(no_smoker_fold.accuracy)
    assert result.n_folds == 1


def test_missing_ppv_excluded_not_zeroed(perfect_fold, no_smoker_fold):
    result = aggregate_folds([perfect_fold, no_smoker_fold], LEVELS)

    # smoker PPV is 1.0 in fold 0 and undefined in fold 1
    assert result.by_class.loc["smoker", "PPV"] == pytest.approx(1.0)
    assert result.by_class.loc["smoker", "n_folds_PPV"] == 1
    assert result.by_class.loc["never_smoker", "n_folds_PPV"] == 2
    assert result.fallbacks == []


def test_fully_missing_ppv_uses_documented_fallback(no_smoker_fold):
    result = aggregate_folds([no_smoker_fold], LEVELS)

    assert np.isnan(result.by_class.loc["smoker", "PPV"])
    others = result.by_class.loc[["never_smoker", "device_gen_a", "device_gen_b"], "PPV"]
    assert result.overall["PPV"].iloc[0] == pytest.approx(others.mean())
    assert len(result.fallbacks) == 1
    assert "PPV" in result.fallbacks[0]
    assert "smoker" in result.fallbacks[0]


def test_balanced_accuracy_is_mean_of_sensitivity_and_specificity(perfect_fold, no_smoker_fold):
    result = aggregate_folds([perfect_fold, no_smoker_fold], LEVELS)

    by_class = result.by_class
    expected = (by_class["Sensitivity"] + by_class["Specificity"]) / 2
    pd.testing.assert_series_equal(by_class["BalancedAccuracy"], expected, check_names=False)
    overall = result.overall.iloc[0]
    assert overall["BalancedAccuracy"] == pytest.approx(
        (overall["Sensitivity"] + overall["Specificity"]) / 2
    )


def test_observed_accuracy_pooled_across_folds():
    fold_a = _fold(["smoker"] * 3 + ["never_smoker"], ["smoker"] * 3 + ["never_smoker"], 0)
    fold_b = _fold(["smoker", "never_smoker"], ["never_smoker", "never_smoker"], 1)

    result = aggregate_folds([fold_a, fold_b], LEVELS)

    # pooled 3/4, while mean sensitivity is (1 + 0) / 2
    assert result.by_class.loc["smoker", "ObservedAccuracy"] == pytest.approx(0.75)
    assert result.by_class.loc["smoker", "Sensitivity"] == pytest.approx(0.5)


def test_table_shapes_and_order(perfect_fold):
    reversed_levels = list(reversed(LEVELS))
    result = aggregate_folds([perfect_fold], reversed_levels)

    assert result.overall.columns.tolist() == OVERALL_COLUMNS
    assert len(result.overall) == 1
    assert result.by_class.index.tolist() == reversed_levels
    assert set(BY_CLASS_COLUMNS).issubset(result.by_class.columns)


def test_rounded_copy(no_smoker_fold):
    result = aggregate_folds([no_smoker_fold], LEVELS)
    rounded = result.rounded(2)

    assert rounded.overall["Accuracy"].iloc[0] == round(result.overall["Accuracy"].iloc[0], 2)
    assert rounded.fallbacks == result.fallbacks
    assert rounded.fallbacks is not result.fallbacks


def test_no_folds_raises():
    with pytest.raises(ConfigurationError):
        aggregate_folds([], LEVELS)


def test_combine_results_adds_model_column(perfect_fold, no_smoker_fold):
    first = aggregate_folds([perfect_fold], LEVELS)
    second = aggregate_folds([no_smoker_fold], LEVELS)

    overall, by_class = combine_results({"qda": first, "multinom": second})

    assert overall["model"].tolist() == ["qda", "multinom"]
    assert overall.columns.tolist() == ["model"] + OVERALL_COLUMNS
    assert len(by_class) == 2 * len(LEVELS)
    assert by_class.loc[by_class["model"] == "qda", "class"].tolist() == LEVELS


def test_fold_table_long_format(perfect_fold, no_smoker_fold):
    table = fold_table([perfect_fold, no_smoker_fold])

    assert len(table) == 2 * len(LEVELS)
    assert table["fold"].unique().tolist() == [0, 1]
    assert "accuracy" in table.columns
