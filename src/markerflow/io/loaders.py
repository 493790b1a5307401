"""Loading of already-cleaned study tables."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd

from markerflow.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def validate_parquet_available() -> None:
    """
    Check if PyArrow is available for Parquet operations.

    Raises
    ------
    ImportError
        If PyArrow is not installed
    """
    try:
        import pyarrow  # noqa: F401
    except ImportError as exc:
        raise ImportError(
            "PyArrow is required for Parquet support but is not installed.\n"
            "Install with: pip install markerflow[parquet] or pip install pyarrow"
        ) from exc


def load_table(path: Union[Path, str]) -> pd.DataFrame:
    """
    Load a table from a CSV or Parquet file.

    Parameters
    ----------
    path : Path or str
        Path to a ``.csv`` or ``.parquet`` file

    Returns
    -------
    pd.DataFrame
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    logger.info(f"Loading data from {path}")
    suffix = path.suffix.lower()
    if suffix in {".parquet", ".pq"}:
        validate_parquet_available()
        df = pd.read_parquet(path)
    elif suffix in {".csv", ".txt"}:
        df = pd.read_csv(path)
    elif suffix == ".tsv":
        df = pd.read_csv(path, sep="\t")
    else:
        raise ValueError(f"Unsupported data format: {path.suffix}")

    logger.info(f"  Loaded {len(df)} rows x {len(df.columns)} columns")
    return df


def prepare_dataset(
    df: pd.DataFrame,
    label_col: str,
    columns: Sequence[str],
    levels: Sequence[str],
) -> pd.DataFrame:
    """
    Restrict a cleaned table to the label and model columns.

    Rows whose label is not one of ``levels`` are dropped (logged). Labels are
    returned as strings.

    Raises
    ------
    ConfigurationError
        If columns are missing or model columns contain missing values
    """
    columns = list(dict.fromkeys(columns))
    missing = [c for c in [label_col] + columns if c not in df.columns]
    if missing:
        raise ConfigurationError(f"Columns not found in data: {missing}")

    out = df[[label_col] + columns].copy()
    out[label_col] = out[label_col].astype(str)
    levels = [str(lvl) for lvl in levels]
    keep = out[label_col].isin(levels)
    dropped = int((~keep).sum())
    if dropped:
        logger.warning(
            "Dropping %d rows with labels outside %s: %s",
            dropped,
            levels,
            sorted(out.loc[~keep, label_col].unique().tolist()),
        )
        out = out[keep]

    non_numeric = [c for c in columns if not pd.api.types.is_numeric_dtype(out[c])]
    if non_numeric:
        raise ConfigurationError(f"Model columns must be numeric (recode upstream): {non_numeric}")
    na_cols = out[columns].columns[out[columns].isna().any()].tolist()
    if na_cols:
        raise ConfigurationError(f"Missing values in model columns (impute upstream): {na_cols}")

    return out.reset_index(drop=True)


def numeric_columns(df: pd.DataFrame, exclude: Optional[Sequence[str]] = None) -> List[str]:
    """Numeric columns of ``df`` minus ``exclude``."""
    exclude = set(exclude or [])
    return [c for c in df.select_dtypes(include="number").columns if c not in exclude]
