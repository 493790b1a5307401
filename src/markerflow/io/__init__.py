"""Data I/O utilities."""

from markerflow.io.loaders import load_table, prepare_dataset, numeric_columns

__all__ = [
    "load_table",
    "prepare_dataset",
    "numeric_columns",
]
