# tree_pricing/evaluation/lift.py
"""Loss-ratio lift and double lift of a competitor premium against a benchmark.

Policies are sorted by relativity (competitor premium over benchmark
premium) and cut into bins of equal exposure. A competitor that prices
risk better than the benchmark shows a rising loss ratio across the
relativity bins.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from ..config.analysis_config import LiftConfig
from ..data.portfolio import require_columns
from ..utils.logger import get_logger
from ..utils.exceptions import DataValidationError, validate_parameter

logger = get_logger(__name__)


def exposure_bins(sort_key: Sequence[float], exposure: Sequence[float], n_bins: int) -> np.ndarray:
    """Assign rows to ``n_bins`` bins of equal cumulative exposure.

    Rows are ordered by ``sort_key`` (stable) and each row goes to the bin
    holding the midpoint of its slice of cumulative exposure, so every
    bin's total exposure is within one row's exposure of
    ``total / n_bins``.

    Args:
        sort_key: Ordering value per row
        exposure: Non-negative exposure per row
        n_bins: Number of bins

    Returns:
        Bin number (0-based) per row, aligned with the input order
    """
    validate_parameter("n_bins", n_bins, min_value=1)
    key = np.asarray(sort_key, dtype=float)
    expo = np.asarray(exposure, dtype=float)

    if key.shape != expo.shape:
        raise DataValidationError(
            "Sort key and exposure must have the same length",
            error_code="LIFT_LENGTH_MISMATCH",
            context={"sort_key": key.shape, "exposure": expo.shape}
        )
    if np.any(expo < 0) or expo.sum() <= 0:
        raise DataValidationError("Exposure must be non-negative with a positive total", error_code="LIFT_EXPOSURE")

    order = np.argsort(key, kind="mergesort")
    ranked = expo[order]
    midpoints = np.cumsum(ranked) - ranked / 2

    ranked_bins = np.minimum(np.floor(midpoints / ranked.sum() * n_bins).astype(int), n_bins - 1)
    bins = np.empty_like(ranked_bins)
    bins[order] = ranked_bins
    return bins


def _relativity_frame(
    data: pd.DataFrame,
    benchmark_premium_col: str,
    competitor_premium_col: str,
    n_bins: Optional[int],
    loss_col: Optional[str],
    exposure_col: Optional[str],
    config: Optional[LiftConfig]
) -> tuple:
    config = config or LiftConfig()
    n_bins = config.n_bins if n_bins is None else n_bins
    loss_col = loss_col or config.loss_col
    exposure_col = exposure_col or config.exposure_col

    require_columns(data, [benchmark_premium_col, competitor_premium_col, loss_col, exposure_col])
    if data.empty:
        raise DataValidationError("Lift analysis needs at least one policy")

    benchmark = data[benchmark_premium_col].to_numpy(dtype=float)
    competitor = data[competitor_premium_col].to_numpy(dtype=float)
    if np.any(benchmark <= 0) or np.any(competitor <= 0):
        raise DataValidationError("Premiums must be positive", error_code="LIFT_PREMIUM")

    frame = pd.DataFrame({
        "relativity": competitor / benchmark,
        "benchmark": benchmark,
        "competitor": competitor,
        "loss": data[loss_col].to_numpy(dtype=float),
        "exposure": data[exposure_col].to_numpy(dtype=float),
    })
    frame["bin"] = exposure_bins(frame["relativity"], frame["exposure"], n_bins) + 1
    return frame, config.label_decimals


def _bin_summary(frame: pd.DataFrame, decimals: int) -> tuple:
    grouped = frame.groupby("bin", sort=True)
    summary = pd.DataFrame({
        "label": grouped["relativity"].agg(
            lambda r: f"[{r.min():.{decimals}f}, {r.max():.{decimals}f}]"
        ),
        "exposure": grouped["exposure"].sum(),
        "policies": grouped.size(),
    })
    return summary, grouped


def loss_ratio_lift(
    data: pd.DataFrame,
    benchmark_premium_col: str,
    competitor_premium_col: str,
    n_bins: Optional[int] = None,
    loss_col: Optional[str] = None,
    exposure_col: Optional[str] = None,
    config: Optional[LiftConfig] = None
) -> pd.DataFrame:
    """Loss ratio of the benchmark premium per relativity bin.

    Args:
        data: Test portfolio with premiums, losses and exposure
        benchmark_premium_col: Column of the benchmark premium
        competitor_premium_col: Column of the competitor premium
        n_bins: Number of equal-exposure bins (default from config)
        loss_col: Loss column (default from config)
        exposure_col: Exposure column (default from config)
        config: LiftConfig with defaults

    Returns:
        DataFrame with columns ``bin``, ``label``, ``loss_ratio``,
        ``exposure``, ``policies`` ordered by ascending relativity
    """
    frame, decimals = _relativity_frame(
        data, benchmark_premium_col, competitor_premium_col, n_bins, loss_col, exposure_col, config
    )
    summary, grouped = _bin_summary(frame, decimals)

    with np.errstate(divide="ignore", invalid="ignore"):
        summary["loss_ratio"] = grouped["loss"].sum() / grouped["benchmark"].sum()

    logger.debug(f"Loss ratio lift {competitor_premium_col} vs {benchmark_premium_col}: {len(summary)} bins")
    return summary.reset_index()[["bin", "label", "loss_ratio", "exposure", "policies"]]


def double_lift(
    data: pd.DataFrame,
    benchmark_premium_col: str,
    competitor_premium_col: str,
    n_bins: Optional[int] = None,
    loss_col: Optional[str] = None,
    exposure_col: Optional[str] = None,
    config: Optional[LiftConfig] = None
) -> pd.DataFrame:
    """Percentage error of both premiums against losses per relativity bin.

    A bin with no losses has an infinite error.

    Returns:
        DataFrame with columns ``bin``, ``label``, ``competitor_error``,
        ``benchmark_error``, ``exposure``, ``policies``
    """
    frame, decimals = _relativity_frame(
        data, benchmark_premium_col, competitor_premium_col, n_bins, loss_col, exposure_col, config
    )
    summary, grouped = _bin_summary(frame, decimals)

    mean_loss = grouped["loss"].mean()
    with np.errstate(divide="ignore", invalid="ignore"):
        summary["competitor_error"] = grouped["competitor"].mean() / mean_loss - 1
        summary["benchmark_error"] = grouped["benchmark"].mean() / mean_loss - 1

    return summary.reset_index()[
        ["bin", "label", "competitor_error", "benchmark_error", "exposure", "policies"]
    ]
