# tree_pricing/evaluation/gini.py
"""Gini indices from ordered Lorenz curves and minimax model selection.

For a base premium and an alternative score, policies are ordered by the
relativity score / base. The ordered Lorenz curve plots the cumulative
share of base premium against the cumulative share of losses; the Gini
index is twice the area between that curve and the line of equality. A
large Gini means the alternative score finds profitable policies the base
premium misprices. Each candidate premium is therefore judged by the
largest Gini any other candidate achieves against it, and the candidate
with the smallest such value is the minimax choice.
"""

from typing import Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.metrics import auc

from ..utils.logger import get_logger
from ..utils.exceptions import ConfigurationError, DataValidationError

logger = get_logger(__name__)

PremiumTable = Union[pd.DataFrame, Mapping[str, Sequence[float]]]


def ordered_lorenz_curve(loss, base, score) -> Tuple[np.ndarray, np.ndarray]:
    """Ordered Lorenz curve of ``loss`` for ``base`` premium sorted by ``score / base``.

    Returns:
        Tuple of (cumulative base premium share, cumulative loss share),
        both starting at 0
    """
    loss = np.asarray(loss, dtype=float)
    base = np.asarray(base, dtype=float)
    score = np.asarray(score, dtype=float)

    if not (loss.shape == base.shape == score.shape) or loss.size == 0:
        raise DataValidationError(
            "Loss, base and score must be non-empty and of equal length",
            error_code="GINI_LENGTH_MISMATCH"
        )
    if np.any(base <= 0) or np.any(score <= 0):
        raise DataValidationError("Premiums must be positive", error_code="GINI_PREMIUM")
    if np.any(loss < 0) or loss.sum() <= 0:
        raise DataValidationError("Losses must be non-negative with a positive total", error_code="GINI_LOSS")

    order = np.argsort(score / base, kind="mergesort")
    premium_share = np.concatenate([[0.0], np.cumsum(base[order]) / base.sum()])
    loss_share = np.concatenate([[0.0], np.cumsum(loss[order]) / loss.sum()])
    return premium_share, loss_share


def gini_index(loss, base, score) -> float:
    """Gini index of ``score`` against ``base`` premium."""
    premium_share, loss_share = ordered_lorenz_curve(loss, base, score)
    return float(1 - 2 * auc(premium_share, loss_share))


def _premium_frame(premiums: PremiumTable) -> pd.DataFrame:
    frame = pd.DataFrame(premiums)
    if frame.shape[1] < 2:
        raise ConfigurationError(
            "At least two premium columns are needed to compare models",
            error_code="GINI_TOO_FEW_PREMIUMS",
            context={"columns": list(frame.columns)}
        )
    if frame.columns.duplicated().any():
        raise ConfigurationError(f"Duplicate premium columns: {list(frame.columns)}")
    return frame


def gini_matrix(loss, premiums: PremiumTable) -> pd.DataFrame:
    """Gini index of every premium against every other premium as base.

    Returns:
        DataFrame with rows = base premium, columns = alternative score,
        NaN on the diagonal
    """
    frame = _premium_frame(premiums)
    loss = np.asarray(loss, dtype=float)
    names = list(frame.columns)

    matrix = pd.DataFrame(np.nan, index=pd.Index(names, name="base"), columns=pd.Index(names, name="score"))
    for base in names:
        for score in names:
            if base != score:
                matrix.loc[base, score] = gini_index(loss, frame[base].to_numpy(), frame[score].to_numpy())
    return matrix


def gini_ranking(loss, premiums: PremiumTable) -> pd.DataFrame:
    """Rank premiums by their worst-case Gini (minimax).

    Args:
        loss: Observed loss per policy
        premiums: Candidate premiums, one column per model

    Returns:
        DataFrame with columns ``premium``, ``max_gini`` and ``rank``
        ordered best first; ties keep the input column order
    """
    matrix = gini_matrix(loss, premiums)
    worst_case = matrix.max(axis=1, skipna=True)

    order = np.argsort(worst_case.to_numpy(), kind="mergesort")
    ranking = pd.DataFrame({
        "premium": worst_case.index[order],
        "max_gini": worst_case.to_numpy()[order],
        "rank": np.arange(1, len(order) + 1),
    })

    logger.info(f"Minimax premium: {ranking['premium'].iloc[0]} (max Gini {ranking['max_gini'].iloc[0]:.4f})")
    return ranking
