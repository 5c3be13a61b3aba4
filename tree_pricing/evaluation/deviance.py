# tree_pricing/evaluation/deviance.py
"""Mean deviance of claim frequency and severity predictions."""

from typing import Optional

import numpy as np
from scipy.stats import poisson

from ..utils.exceptions import DataValidationError


def _as_array(values, name: str) -> np.ndarray:
    array = np.asarray(values, dtype=float).reshape(-1)
    if array.size == 0:
        raise DataValidationError(f"'{name}' cannot be empty", error_code="DEVIANCE_EMPTY")
    if not np.all(np.isfinite(array)):
        raise DataValidationError(f"'{name}' must be finite", error_code="DEVIANCE_NOT_FINITE")
    return array


def _check_lengths(**arrays: np.ndarray) -> None:
    lengths = {name: len(array) for name, array in arrays.items()}
    if len(set(lengths.values())) > 1:
        raise DataValidationError(
            f"Length mismatch: {lengths}",
            error_code="DEVIANCE_LENGTH_MISMATCH",
            context=lengths
        )


def poisson_deviance(observed, predicted, exposure: Optional[np.ndarray] = None) -> float:
    """Mean Poisson deviance of predicted claim counts.

    The saturated log-likelihood of a zero count is taken as 0.

    Args:
        observed: Observed claim counts (non-negative integers)
        predicted: Predicted rates; multiplied by ``exposure`` when given
        exposure: Optional exposure per observation

    Returns:
        Mean deviance

    Example:
        >>> poisson_deviance([0], [1.0])
        2.0
    """
    y = _as_array(observed, "observed")
    mu = _as_array(predicted, "predicted")
    if exposure is not None:
        expo = _as_array(exposure, "exposure")
        _check_lengths(observed=y, predicted=mu, exposure=expo)
        mu = mu * expo
    _check_lengths(observed=y, predicted=mu)

    if np.any(mu <= 0):
        raise DataValidationError("Predicted values must be positive", error_code="DEVIANCE_NON_POSITIVE")
    if np.any(y < 0) or np.any(y != np.round(y)):
        raise DataValidationError("Observed counts must be non-negative integers", error_code="DEVIANCE_COUNTS")

    saturated = np.zeros_like(y)
    has_claims = y > 0
    saturated[has_claims] = poisson.logpmf(y[has_claims], y[has_claims])

    return float(np.mean(-2 * (poisson.logpmf(y, mu) - saturated)))


def gamma_deviance(observed, predicted, case_weights=None) -> float:
    """Mean weighted Gamma deviance of predicted claim severities.

    Args:
        observed: Observed severities (positive)
        predicted: Predicted severities (positive)
        case_weights: Optional weights, typically the number of claims

    Returns:
        Mean deviance
    """
    y = _as_array(observed, "observed")
    mu = _as_array(predicted, "predicted")
    weights = np.ones_like(y) if case_weights is None else _as_array(case_weights, "case_weights")
    _check_lengths(observed=y, predicted=mu, case_weights=weights)

    if np.any(mu <= 0):
        raise DataValidationError("Predicted values must be positive", error_code="DEVIANCE_NON_POSITIVE")
    if np.any(y <= 0):
        raise DataValidationError("Observed severities must be positive", error_code="DEVIANCE_NON_POSITIVE")
    if np.any(weights < 0):
        raise DataValidationError("Case weights must be non-negative", error_code="DEVIANCE_WEIGHTS")

    return float(np.mean(-2 * weights * (np.log(y / mu) - (y - mu) / mu)))
