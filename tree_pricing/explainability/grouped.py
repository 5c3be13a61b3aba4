# tree_pricing/explainability/grouped.py
"""Partial dependence broken down by a second (grouping) feature.

Per-observation effect curves of the swept feature are averaged within
groups of the grouping feature, either its levels or quantile bins of a
numeric feature, and by default centred so every group's curve starts at
zero. Centring compares curve shapes across groups; absolute levels are
kept only in the uncentred table (``center=False``).
"""

from typing import Any, List, Optional, Sequence

import numpy as np
import pandas as pd

from .partial_dependence import (
    individual_conditional_expectation,
    is_categorical,
    _is_real_number
)
from ..data.portfolio import require_columns
from ..models.variants import FittedModel
from ..utils.logger import get_logger
from ..utils.timer import timer
from ..utils.exceptions import ConfigurationError, validate_parameter

logger = get_logger(__name__)


def _format_bound(value: Any) -> str:
    return f"{value:g}" if _is_real_number(value) else str(value)


def quantile_groups(values: pd.Series, n_groups: int) -> tuple:
    """Assign numeric values to quantile bins.

    Duplicate quantile boundaries collapse, so fewer than ``n_groups``
    bins may result. Each bin is labelled by the closed interval of the
    values observed in it.

    Args:
        values: Numeric values to bin
        n_groups: Requested number of bins

    Returns:
        Tuple of (bin code per value as float array, ordered list of labels)
    """
    codes = pd.qcut(values, q=n_groups, labels=False, duplicates="drop")
    codes = np.asarray(codes, dtype=float)

    labels = []
    for code in np.unique(codes[~np.isnan(codes)]):
        members = values[codes == code]
        labels.append(f"[{_format_bound(members.min())}, {_format_bound(members.max())}]")
    return codes, labels


@timer(name="grouped_partial_dependence")
def grouped_partial_dependence(
    model: FittedModel,
    data: pd.DataFrame,
    sweep_feature: str,
    grid: Sequence[Any],
    group_feature: str,
    n_groups: Optional[int] = None,
    center: bool = True,
    n_jobs: int = 1
) -> pd.DataFrame:
    """Average effect curve of ``sweep_feature`` within groups of ``group_feature``.

    Args:
        model: Fitted model variant
        data: Observations to sweep
        sweep_feature: Feature overridden with each grid value
        grid: Grid values; numeric grids are evaluated in ascending order
        group_feature: Feature whose original (unswept) values define groups
        n_groups: Number of quantile bins for a numeric grouping feature;
            when omitted each distinct level is a group (first-seen order)
        center: Subtract each group's value at the first grid point
        n_jobs: Worker threads for grid points

    Returns:
        DataFrame indexed by group label (named ``group_feature``) with
        one column per grid value

    Raises:
        MissingFeatureError: If a feature is absent from ``data``
        ConfigurationError: If ``n_groups`` is invalid for the grouping feature
        InvalidGridValueError: If the grid is empty or out of domain
    """
    require_columns(data, [group_feature])

    if n_groups is not None:
        validate_parameter("n_groups", n_groups, min_value=1)
        if is_categorical(data[group_feature]):
            raise ConfigurationError(
                f"n_groups requires a numeric grouping feature; '{group_feature}' is categorical",
                error_code="GROUPING_NOT_NUMERIC",
                context={"group_feature": group_feature, "n_groups": n_groups}
            )

    values: List[Any] = list(grid.tolist() if hasattr(grid, "tolist") else grid)
    if values and all(_is_real_number(v) for v in values):
        values = sorted(values)

    ice = individual_conditional_expectation(model, data, sweep_feature, values, n_jobs=n_jobs)
    per_row = pd.DataFrame(ice.to_numpy().T, columns=ice.index)

    groups = data[group_feature].reset_index(drop=True)
    if n_groups is not None:
        codes, labels = quantile_groups(groups, n_groups)
        table = per_row.groupby(codes).mean().sort_index()
        table.index = pd.Index(labels, name=group_feature)
    else:
        order = list(pd.unique(groups.dropna()))
        table = per_row.groupby(groups.to_numpy(dtype=object)).mean()
        table = table.loc[order]
        table.index = pd.Index(order, name=group_feature)

    table.columns.name = sweep_feature
    logger.debug(
        f"Grouped PDP of '{sweep_feature}' by '{group_feature}': {len(table)} groups x {table.shape[1]} grid values"
    )

    if center:
        table = table.sub(table.iloc[:, 0], axis=0)
    return table
