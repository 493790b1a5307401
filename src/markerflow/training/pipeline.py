"""File-based selection and evaluation runs driven by config objects."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional, Sequence, Tuple

import pandas as pd

from markerflow.backends import get_backend
from markerflow.config import EvaluationConfig, SelectionConfig
from markerflow.io import load_table, prepare_dataset, numeric_columns
from markerflow.metrics import BY_CLASS_COLUMNS, combine_results
from markerflow.selection import BestSubsetResult, best_subset_search
from markerflow.training.cross_validation import CrossValidationResult, CrossValidationRunner

logger = logging.getLogger(__name__)


def run_selection(config: SelectionConfig) -> BestSubsetResult:
    """Run best-subset search and write ``best_subset.csv`` to the output directory."""
    logger.info("Starting best-subset search")
    logger.info(f"  Data: {config.data_path}")
    logger.info(f"  Label: {config.label_col}")

    df = load_table(config.data_path)
    candidates = config.candidates or numeric_columns(df, exclude=[config.label_col])
    data = prepare_dataset(df, config.label_col, candidates, config.levels)

    result = best_subset_search(
        data,
        label_col=config.label_col,
        candidates=candidates,
        max_size=config.max_size,
        levels=config.levels,
    )

    config.outdir.mkdir(parents=True, exist_ok=True)
    table = result.table.copy()
    table["predictors"] = table["predictors"].map(",".join)
    table.to_csv(config.outdir / "best_subset.csv", index=False)
    config.save(config.outdir / "selection.json")
    logger.info(f"Saved best-subset table to {config.outdir / 'best_subset.csv'}")
    return result


def _backend_for(config: EvaluationConfig):
    return get_backend(
        config.model,
        config.covariates,
        C=config.C,
        max_iter=config.max_iter,
        random_state=config.random_state,
    )


def evaluate_dataset(config: EvaluationConfig, data: pd.DataFrame) -> CrossValidationResult:
    """Cross-validate the configured model on an in-memory, prepared table."""
    runner = CrossValidationRunner(
        backend=_backend_for(config),
        n_folds=config.n_folds,
        random_state=config.random_state,
        allow_sparse_labels=config.allow_sparse_labels,
        n_jobs=config.n_jobs,
    )
    return runner.run(data, config.label_col, config.predictors, config.levels)


def write_result(result: CrossValidationResult, config: EvaluationConfig) -> None:
    """Write rounded Overall/ByClass tables, per-fold metrics and the config."""
    outdir = config.outdir
    outdir.mkdir(parents=True, exist_ok=True)
    rounded = result.aggregated.rounded(config.decimals)
    rounded.overall.to_csv(outdir / "overall.csv", index=False)
    rounded.by_class[BY_CLASS_COLUMNS].to_csv(outdir / "by_class.csv", index_label="class")
    result.folds().round(config.decimals).to_csv(outdir / "folds.csv", index=False)
    config.save(outdir / "run.json")
    if rounded.fallbacks:
        (outdir / "fallbacks.txt").write_text("\n".join(rounded.fallbacks) + "\n")


def run_evaluation(config: EvaluationConfig) -> CrossValidationResult:
    """Load data, cross-validate one model and write its result tables."""
    logger.info("Starting cross-validated evaluation")
    logger.info(f"  Data: {config.data_path}")
    logger.info(f"  Model: {config.model}")
    logger.info(f"  Folds: {config.n_folds}, seed: {config.random_state}")
    if config.model != "multinom_cov" and config.covariates:
        logger.warning("Covariates %s are ignored by model '%s'", config.covariates, config.model)

    df = load_table(config.data_path)
    data = prepare_dataset(df, config.label_col, config.model_columns, config.levels)
    result = evaluate_dataset(config, data)
    write_result(result, config)
    logger.info("Evaluation complete")
    return result


def compare_models(
    config: EvaluationConfig,
    models: Optional[Sequence[str]] = None,
) -> Tuple[Dict[str, CrossValidationResult], pd.DataFrame, pd.DataFrame]:
    """
    Cross-validate several models on the same predictor set and seed.

    Each model is an independent run; the comparison tables are a plain
    concatenation with a ``model`` column.
    """
    if models is None:
        models = ["qda", "multinom", "multinom_cov"] if config.covariates else ["qda", "multinom"]

    df = load_table(config.data_path)
    runs: Dict[str, CrossValidationResult] = {}
    for model in models:
        logger.info(f"Comparing model: {model}")
        model_config = replace(config, model=model, outdir=config.outdir / model)
        data = prepare_dataset(df, config.label_col, model_config.model_columns, config.levels)
        runs[model] = evaluate_dataset(model_config, data)
        write_result(runs[model], model_config)

    overall, by_class = combine_results(
        {name: run.aggregated.rounded(config.decimals) for name, run in runs.items()}
    )
    config.outdir.mkdir(parents=True, exist_ok=True)
    overall.to_csv(config.outdir / "overall.csv", index=False)
    by_class.to_csv(config.outdir / "by_class.csv", index=False)
    return runs, overall, by_class
