"""Tests for the cross-validation runner."""

from dataclasses import dataclass

import numpy as np
import pandas as pd
import pytest

from markerflow.backends import DiscriminantBackend, MultinomialRegressionBackend, TrainedModel
from markerflow.exceptions import ConfigurationError, FoldExecutionError
from markerflow.metrics import OVERALL_COLUMNS
from markerflow.training import CrossValidationRunner

PREDICTORS = ["il6", "tnf", "crp"]


@dataclass(frozen=True)
class NeverSmokerBackend:
    """Predicts the true label except that smokers are called never-smokers."""

    name: str = "oracle_no_smoker"

    def model_columns(self, predictors):
        return tuple(predictors)

    def fit(self, X, y, levels, predictors):
        return TrainedModel(self.name, None, tuple(predictors), tuple(levels))

    def predict(self, model, X):
        truth = X["group"].to_numpy(dtype=object)
        return np.where(truth == "smoker", "never_smoker", truth)


@dataclass(frozen=True)
class BrokenBackend:
    name: str = "broken"

    def model_columns(self, predictors):
        return tuple(predictors)

    def fit(self, X, y, levels, predictors):
        raise RuntimeError("solver exploded")

    def predict(self, model, X):
        raise AssertionError("unreachable")


@dataclass(frozen=True)
class StrictBackend:
    name: str = "strict"

    def model_columns(self, predictors):
        return tuple(predictors)

    def fit(self, X, y, levels, predictors):
        raise ConfigurationError("training rows rejected")

    def predict(self, model, X):
        raise AssertionError("unreachable")


def test_qda_run_produces_both_tables(exposure_data, levels):
    runner = CrossValidationRunner(DiscriminantBackend(), n_folds=5, random_state=42)
    result = runner.run(exposure_data, "group", PREDICTORS, levels)

    assert result.overall.columns.tolist() == OVERALL_COLUMNS
    assert result.by_class.index.tolist() == levels
    assert len(result.fold_metrics) == 5
    assert result.failed_folds == ()
    assert result.overall["Accuracy"].iloc[0] > 0.7
    assert sorted(set(result.assignment)) == [0, 1, 2, 3, 4]


def test_same_seed_gives_identical_tables(exposure_data, levels):
    first = CrossValidationRunner(MultinomialRegressionBackend(), n_folds=5, random_state=7).run(
        exposure_data, "group", PREDICTORS, levels
    )
    second = CrossValidationRunner(MultinomialRegressionBackend(), n_folds=5, random_state=7).run(
        exposure_data, "group", PREDICTORS, levels
    )

    pd.testing.assert_frame_equal(first.overall, second.overall)
    pd.testing.assert_frame_equal(first.by_class, second.by_class)
    np.testing.assert_array_equal(first.assignment, second.assignment)


def test_parallel_folds_match_sequential(exposure_data, levels):
    sequential = CrossValidationRunner(DiscriminantBackend(), n_folds=4, random_state=3).run(
        exposure_data, "group", PREDICTORS, levels
    )
    parallel = CrossValidationRunner(DiscriminantBackend(), n_folds=4, random_state=3, n_jobs=2).run(
        exposure_data, "group", PREDICTORS, levels
    )

    pd.testing.assert_frame_equal(sequential.overall, parallel.overall)
    pd.testing.assert_frame_equal(sequential.by_class, parallel.by_class)


def test_observed_accuracy_pooled_from_folds(exposure_data, levels):
    result = CrossValidationRunner(DiscriminantBackend(), n_folds=5, random_state=1).run(
        exposure_data, "group", PREDICTORS, levels
    )
    folds = result.folds()

    for level in levels:
        rows = folds[folds["class"] == level]
        expected = rows["n_correct"].sum() / rows["n_actual"].sum()
        assert result.by_class.loc[level, "ObservedAccuracy"] == pytest.approx(expected)


def test_never_predicted_class_reports_fallback(exposure_data, levels):
    result = CrossValidationRunner(NeverSmokerBackend(), n_folds=5, random_state=42).run(
        exposure_data, "group", PREDICTORS, levels
    )

    assert np.isnan(result.by_class.loc["smoker", "PPV"])
    assert result.by_class.loc["smoker", "n_folds_PPV"] == 0
    assert result.by_class.loc["smoker", "Sensitivity"] == 0.0
    others = result.by_class.loc[["never_smoker", "device_gen_a", "device_gen_b"], "PPV"]
    assert result.overall["PPV"].iloc[0] == pytest.approx(others.mean())
    assert any("PPV" in note for note in result.aggregated.fallbacks)


def test_qda_fold_failure_is_excluded_and_recorded(make_data, levels):
    data = make_data(seed=5)
    smokers = data[data["group"] == "smoker"].head(5)
    data = pd.concat([data[data["group"] != "smoker"], smokers], ignore_index=True)

    # five smokers over four folds: one fold holds two, leaving three for training
    result = CrossValidationRunner(DiscriminantBackend(), n_folds=4, random_state=0).run(
        data, "group", PREDICTORS, levels
    )
    smoker_folds = np.bincount(result.assignment[data["group"].to_numpy() == "smoker"], minlength=4)
    crowded = int(np.argmax(smoker_folds))

    assert smoker_folds.tolist().count(2) == 1
    assert result.failed_folds == (crowded,)
    assert [fm.fold for fm in result.fold_metrics] == [f for f in range(4) if f != crowded]
    assert result.aggregated.failed_folds == (crowded,)
    assert result.aggregated.n_folds == 3
    assert f"fold {crowded}" in result.failure_messages[0]


def test_all_folds_failing_aborts(make_data, levels):
    data = make_data(seed=5)
    smokers = data[data["group"] == "smoker"].head(4)
    data = pd.concat([data[data["group"] != "smoker"], smokers], ignore_index=True)

    with pytest.raises(ConfigurationError, match="could not be fit on any fold"):
        CrossValidationRunner(DiscriminantBackend(), n_folds=4, random_state=0).run(
            data, "group", PREDICTORS, levels
        )


def test_unexpected_errors_carry_fold_context(exposure_data, levels):
    runner = CrossValidationRunner(BrokenBackend(), n_folds=3, random_state=0)
    with pytest.raises(FoldExecutionError) as excinfo:
        runner.run(exposure_data, "group", PREDICTORS, levels)

    err = excinfo.value
    assert err.fold == 0
    assert err.backend == "broken"
    assert err.predictors == tuple(PREDICTORS)
    assert isinstance(err.__cause__, RuntimeError)


def test_configuration_errors_inside_a_fold_name_the_fold(exposure_data, levels):
    runner = CrossValidationRunner(StrictBackend(), n_folds=3, random_state=0)
    with pytest.raises(ConfigurationError, match="Fold 0") as excinfo:
        runner.run(exposure_data, "group", PREDICTORS, levels)

    message = str(excinfo.value)
    assert "strict" in message
    assert "il6" in message
    assert "training rows rejected" in message
    assert isinstance(excinfo.value.__cause__, ConfigurationError)


def test_sparse_labels_need_opt_in(exposure_data, levels):
    data = pd.concat(
        [
            exposure_data[exposure_data["group"] != "device_gen_b"],
            exposure_data[exposure_data["group"] == "device_gen_b"].head(3),
        ],
        ignore_index=True,
    )
    runner = CrossValidationRunner(MultinomialRegressionBackend(), n_folds=5, random_state=0)
    with pytest.raises(ConfigurationError):
        runner.run(data, "group", PREDICTORS, levels)

    sparse = CrossValidationRunner(
        MultinomialRegressionBackend(), n_folds=5, random_state=0, allow_sparse_labels=True
    ).run(data, "group", PREDICTORS, levels)
    assert sparse.by_class.loc["device_gen_b", "n_folds_Sensitivity"] == 3


def test_every_label_sparse_still_runs_all_folds(exposure_data, levels):
    data = exposure_data.groupby("group", group_keys=False).head(3).reset_index(drop=True)

    result = CrossValidationRunner(
        MultinomialRegressionBackend(), n_folds=4, random_state=0, allow_sparse_labels=True
    ).run(data, "group", PREDICTORS, levels)

    assert np.bincount(result.assignment, minlength=4).tolist() == [3, 3, 3, 3]
    assert [fm.fold for fm in result.fold_metrics] == [0, 1, 2, 3]
    assert result.failed_folds == ()
    assert result.by_class["n_folds_Sensitivity"].tolist() == [3, 3, 3, 3]


def test_unknown_labels_and_missing_values(exposure_data, levels):
    runner = CrossValidationRunner(DiscriminantBackend(), n_folds=3)
    with pytest.raises(ConfigurationError, match="not in levels"):
        runner.run(exposure_data, "group", PREDICTORS, levels[:3])

    holes = exposure_data.copy()
    holes.loc[3, "crp"] = np.nan
    with pytest.raises(ConfigurationError, match="Missing values"):
        runner.run(holes, "group", PREDICTORS, levels)
