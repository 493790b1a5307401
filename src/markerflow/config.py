"""Configuration dataclasses for selection and evaluation runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, List, Literal, Dict, Any

from markerflow.exceptions import ConfigurationError

# Canonical exposure-group order used for every reported table
DEFAULT_LEVELS: List[str] = ["never_smoker", "smoker", "device_gen_a", "device_gen_b"]

MODEL_CHOICES = ("qda", "multinom", "multinom_cov")


def parse_name_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated option value into a list of names."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class SelectionConfig:
    """Configuration for best-subset predictor search.

    Attributes:
        data_path: Path to the cleaned input table
        label_col: Name of the group/label column
        candidates: Candidate predictor columns (None = all numeric columns)
        max_size: Largest subset size to search
        levels: Label levels in canonical order
        outdir: Output directory for the score table
    """

    data_path: Path
    label_col: str
    candidates: Optional[List[str]] = None
    max_size: int = 8
    levels: List[str] = field(default_factory=lambda: list(DEFAULT_LEVELS))
    outdir: Path = Path("derived")

    def __post_init__(self):
        """Validate configuration."""
        self.data_path = Path(self.data_path)
        self.outdir = Path(self.outdir)

        if self.max_size < 1:
            raise ConfigurationError(f"max_size must be >= 1, got {self.max_size}")
        if len(set(self.levels)) != len(self.levels):
            raise ConfigurationError(f"Duplicate label levels: {self.levels}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dict with Path objects as strings."""
        d = asdict(self)
        d["data_path"] = str(self.data_path)
        d["outdir"] = str(self.outdir)
        return d

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)


@dataclass
class EvaluationConfig:
    """Configuration for a cross-validated classifier evaluation."""

    data_path: Path
    label_col: str
    predictors: List[str] = field(default_factory=list)

    # Model
    model: Literal["qda", "multinom", "multinom_cov"] = "qda"
    covariates: List[str] = field(default_factory=list)
    max_iter: int = 10000
    C: float = 1.0e4

    # Cross-validation
    n_folds: int = 5
    random_state: int = 42
    allow_sparse_labels: bool = False
    n_jobs: int = 1

    # Reporting
    levels: List[str] = field(default_factory=lambda: list(DEFAULT_LEVELS))
    decimals: int = 3
    outdir: Path = Path("derived")

    def __post_init__(self):
        """Convert paths and validate configuration."""
        self.data_path = Path(self.data_path)
        self.outdir = Path(self.outdir)

        if not self.predictors:
            raise ConfigurationError("At least one predictor is required")
        if self.model not in MODEL_CHOICES:
            raise ConfigurationError(f"model must be one of {list(MODEL_CHOICES)}, got {self.model!r}")
        if self.model == "multinom_cov" and not self.covariates:
            raise ConfigurationError("model 'multinom_cov' requires at least one covariate")
        if self.n_folds < 2:
            raise ConfigurationError(f"n_folds must be >= 2, got {self.n_folds}")
        if self.decimals < 0:
            raise ConfigurationError(f"decimals must be >= 0, got {self.decimals}")
        if len(set(self.levels)) != len(self.levels):
            raise ConfigurationError(f"Duplicate label levels: {self.levels}")

    @property
    def model_columns(self) -> List[str]:
        """Columns the model reads: predictors plus covariates when used."""
        if self.model == "multinom_cov":
            return list(self.predictors) + [c for c in self.covariates if c not in self.predictors]
        return list(self.predictors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dict with Path objects as strings."""
        d = asdict(self)
        d["data_path"] = str(self.data_path)
        d["outdir"] = str(self.outdir)
        return d

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
