"""Backend registry keyed by model name."""

from __future__ import annotations

from typing import Optional, Sequence

from markerflow.backends.base import ClassifierBackend
from markerflow.backends.discriminant import DiscriminantBackend
from markerflow.backends.regression import MultinomialRegressionBackend
from markerflow.exceptions import ConfigurationError

BACKEND_NAMES = ("qda", "multinom", "multinom_cov")


def get_backend(
    name: str,
    covariates: Optional[Sequence[str]] = None,
    *,
    C: float = 1.0e4,
    max_iter: int = 10000,
    random_state: int = 42,
) -> ClassifierBackend:
    """
    Resolve a classifier backend from its model name.

    Parameters
    ----------
    name : str
        One of ``qda``, ``multinom`` or ``multinom_cov``
    covariates : Sequence[str], optional
        Covariate columns; required for ``multinom_cov``

    Returns
    -------
    ClassifierBackend
        Fresh backend instance
    """
    name = (name or "").lower().replace("-", "_")
    if name == "qda":
        return DiscriminantBackend()
    if name == "multinom":
        return MultinomialRegressionBackend(C=C, max_iter=max_iter, random_state=random_state)
    if name == "multinom_cov":
        if not covariates:
            raise ConfigurationError("Backend 'multinom_cov' requires covariates")
        return MultinomialRegressionBackend(
            covariates=tuple(covariates),
            C=C,
            max_iter=max_iter,
            random_state=random_state,
        )
    raise ConfigurationError(f"Unsupported backend: {name!r}. Choose from {list(BACKEND_NAMES)}")
