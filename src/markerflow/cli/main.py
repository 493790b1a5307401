"""Main CLI entrypoint using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from markerflow import __version__
from markerflow.config import DEFAULT_LEVELS, EvaluationConfig, SelectionConfig, parse_name_list
from markerflow.exceptions import MarkerflowError

app = typer.Typer(
    name="markerflow",
    help="Cross-validated multi-class evaluation for exposure-group biomarker studies.",
    add_completion=False,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"markerflow {__version__}")
        raise typer.Exit()


def _levels(value: Optional[str]) -> list:
    return parse_name_list(value) or list(DEFAULT_LEVELS)


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger("markerflow").setLevel(logging.DEBUG)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """markerflow: predictive-model evaluation for exposure-group studies."""
    pass


@app.command()
def select(
    data: Path = typer.Option(..., "--data", help="Cleaned table (.csv or .parquet)"),
    label_col: str = typer.Option(..., "--label-col", help="Name of label column"),
    candidates: Optional[str] = typer.Option(
        None,
        "--candidates",
        help="Comma-separated candidate predictors (default: all numeric columns)",
    ),
    max_size: int = typer.Option(8, "--max-size", help="Largest subset size to search"),
    levels: Optional[str] = typer.Option(None, "--levels", help="Comma-separated label order"),
    outdir: Path = typer.Option(Path("derived"), "--outdir", help="Output directory"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose logging"),
):
    """
    Run best-subset search and print the criterion trajectory.

    The subset size used for modeling is chosen by inspecting this table and
    passing the matching predictors to `evaluate`.

    Example:
        markerflow select --data cleaned.csv --label-col group --max-size 6
    """
    from markerflow.training import run_selection

    _set_verbose(verbose)
    try:
        config = SelectionConfig(
            data_path=data,
            label_col=label_col,
            candidates=parse_name_list(candidates) or None,
            max_size=max_size,
            levels=_levels(levels),
            outdir=outdir,
        )
        result = run_selection(config)
    except (MarkerflowError, FileNotFoundError, ValueError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(result.scores().round(4).to_string())
    for size in result.scores().index:
        typer.echo(f"  size {size}: {', '.join(result.predictors(size))}")
    for criterion in ("adj_r2", "cp", "bic"):
        typer.echo(f"  {criterion} favours size {result.best_by(criterion)}")


@app.command()
def evaluate(
    data: Path = typer.Option(..., "--data", help="Cleaned table (.csv or .parquet)"),
    label_col: str = typer.Option(..., "--label-col", help="Name of label column"),
    predictors: str = typer.Option(..., "--predictors", help="Comma-separated predictor set"),
    model: str = typer.Option("qda", "--model", help="Model: qda, multinom, multinom_cov"),
    covariates: Optional[str] = typer.Option(
        None, "--covariates", help="Comma-separated covariates (multinom_cov only)"
    ),
    folds: int = typer.Option(5, "--folds", help="Number of stratified folds"),
    random_state: int = typer.Option(42, "--random-state", help="Random seed"),
    levels: Optional[str] = typer.Option(None, "--levels", help="Comma-separated label order"),
    allow_sparse_labels: bool = typer.Option(
        False,
        "--allow-sparse-labels",
        help="Allow labels with fewer rows than folds",
    ),
    n_jobs: int = typer.Option(1, "--n-jobs", help="Folds to run in parallel"),
    decimals: int = typer.Option(3, "--decimals", help="Decimal places in reported tables"),
    outdir: Path = typer.Option(Path("derived"), "--outdir", help="Output directory"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose logging"),
):
    """
    Cross-validate one classifier and write Overall/ByClass tables.

    Example:
        markerflow evaluate --data cleaned.csv --label-col group \\
            --predictors il6,tnf,crp --model multinom_cov --covariates age,sex
    """
    from markerflow.training import run_evaluation

    _set_verbose(verbose)
    try:
        config = EvaluationConfig(
            data_path=data,
            label_col=label_col,
            predictors=parse_name_list(predictors),
            model=model.lower().replace("-", "_"),
            covariates=parse_name_list(covariates),
            n_folds=folds,
            random_state=random_state,
            allow_sparse_labels=allow_sparse_labels,
            n_jobs=n_jobs,
            levels=_levels(levels),
            decimals=decimals,
            outdir=outdir,
        )
        result = run_evaluation(config)
    except (MarkerflowError, FileNotFoundError, ValueError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    rounded = result.aggregated.rounded(decimals)
    typer.echo(rounded.overall.to_string())
    typer.echo(rounded.by_class.to_string())
    for note in rounded.fallbacks:
        typer.secho(f"Fallback: {note}", fg=typer.colors.YELLOW)
    typer.secho(f"\n✓ Results written to {outdir}", fg=typer.colors.GREEN)


@app.command()
def compare(
    data: Path = typer.Option(..., "--data", help="Cleaned table (.csv or .parquet)"),
    label_col: str = typer.Option(..., "--label-col", help="Name of label column"),
    predictors: str = typer.Option(..., "--predictors", help="Comma-separated predictor set"),
    covariates: Optional[str] = typer.Option(
        None, "--covariates", help="Comma-separated covariates; adds multinom_cov"
    ),
    folds: int = typer.Option(5, "--folds", help="Number of stratified folds"),
    random_state: int = typer.Option(42, "--random-state", help="Random seed"),
    levels: Optional[str] = typer.Option(None, "--levels", help="Comma-separated label order"),
    decimals: int = typer.Option(3, "--decimals", help="Decimal places in reported tables"),
    outdir: Path = typer.Option(Path("derived"), "--outdir", help="Output directory"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose logging"),
):
    """Cross-validate QDA and multinomial models on the same folds and combine the tables."""
    from markerflow.training import compare_models

    _set_verbose(verbose)
    try:
        config = EvaluationConfig(
            data_path=data,
            label_col=label_col,
            predictors=parse_name_list(predictors),
            model="qda",
            covariates=parse_name_list(covariates),
            n_folds=folds,
            random_state=random_state,
            levels=_levels(levels),
            decimals=decimals,
            outdir=outdir,
        )
        _, overall, by_class = compare_models(config)
    except (MarkerflowError, FileNotFoundError, ValueError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(overall.to_string(index=False))
    typer.echo(by_class.to_string(index=False))
    typer.secho(f"\n✓ Comparison written to {outdir}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
