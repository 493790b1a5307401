"""Tests for configuration dataclasses."""

import json

import pytest

from markerflow.config import (
    DEFAULT_LEVELS,
    EvaluationConfig,
    SelectionConfig,
    parse_name_list,
)
from markerflow.exceptions import ConfigurationError


def test_parse_name_list():
    assert parse_name_list(" il6, tnf ,,crp ") == ["il6", "tnf", "crp"]
    assert parse_name_list(None) == []


def test_evaluation_config_defaults(tmp_path):
    config = EvaluationConfig(data_path=str(tmp_path / "x.csv"), label_col="group", predictors=["il6"])

    assert config.levels == DEFAULT_LEVELS
    assert config.n_folds == 5
    assert config.model_columns == ["il6"]


def test_model_columns_append_covariates(tmp_path):
    config = EvaluationConfig(
        data_path=tmp_path / "x.csv",
        label_col="group",
        predictors=["il6", "age"],
        model="multinom_cov",
        covariates=["age", "sex"],
    )
    assert config.model_columns == ["il6", "age", "sex"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"predictors": []},
        {"model": "svm"},
        {"model": "multinom_cov"},
        {"n_folds": 1},
        {"decimals": -1},
        {"levels": ["a", "a"]},
    ],
)
def test_evaluation_config_validation(tmp_path, kwargs):
    base = {"data_path": tmp_path / "x.csv", "label_col": "group", "predictors": ["il6"]}
    base.update(kwargs)
    with pytest.raises(ConfigurationError):
        EvaluationConfig(**base)


def test_selection_config_validation(tmp_path):
    with pytest.raises(ConfigurationError):
        SelectionConfig(data_path=tmp_path / "x.csv", label_col="group", max_size=0)


def test_config_save_roundtrip(tmp_path):
    config = EvaluationConfig(data_path=tmp_path / "x.csv", label_col="group", predictors=["il6"])
    path = tmp_path / "run.json"
    config.save(path)

    saved = json.loads(path.read_text())
    assert saved["data_path"] == str(tmp_path / "x.csv")
    assert saved["predictors"] == ["il6"]
