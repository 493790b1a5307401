"""Exception types raised by markerflow."""

from __future__ import annotations

from typing import Sequence


class MarkerflowError(Exception):
    """Base class for all markerflow errors."""


class ConfigurationError(MarkerflowError, ValueError):
    """Invalid run configuration or unmet model precondition."""


class InsufficientClassSizeError(ConfigurationError):
    """A class has too few training rows for the requested classifier."""

    def __init__(self, message: str, class_counts: dict | None = None):
        super().__init__(message)
        self.class_counts = dict(class_counts or {})

    def __reduce__(self):
        return (self.__class__, (self.args[0], self.class_counts))


class FoldExecutionError(MarkerflowError, RuntimeError):
    """A fold failed while training, predicting or evaluating."""

    def __init__(self, fold: int, backend: str, predictors: Sequence[str], cause: BaseException):
        self.fold = fold
        self.backend = backend
        self.predictors = tuple(predictors)
        self.cause = cause
        super().__init__(
            f"Fold {fold} failed for backend '{backend}' "
            f"with predictors {list(self.predictors)}: {cause}"
        )

    def __reduce__(self):
        return (self.__class__, (self.fold, self.backend, self.predictors, self.cause))
