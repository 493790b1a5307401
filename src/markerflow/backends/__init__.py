"""Classifier backends sharing a fit/predict contract."""

from markerflow.backends.base import ClassifierBackend, TrainedModel
from markerflow.backends.discriminant import DiscriminantBackend
from markerflow.backends.regression import MultinomialRegressionBackend
from markerflow.backends.registry import get_backend, BACKEND_NAMES

__all__ = [
    "ClassifierBackend",
    "TrainedModel",
    "DiscriminantBackend",
    "MultinomialRegressionBackend",
    "get_backend",
    "BACKEND_NAMES",
]
