# tree_pricing/explainability/partial_dependence.py
"""Partial dependence (PDP) and individual conditional expectation (ICE).

Both sweep one feature over a grid: for every grid value the feature is
overridden in a copy of the data, the model predicts every row, and the
predictions are either averaged (PDP) or kept per observation (ICE). The
input data is never modified.
"""

import numbers
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..config.analysis_config import PartialDependenceConfig
from ..data.portfolio import require_columns, sample_rows
from ..models.prediction import predict
from ..models.variants import FittedModel
from ..utils.logger import get_logger
from ..utils.timer import timer, timed_operation
from ..utils.exceptions import (
    DataValidationError,
    InvalidGridValueError,
    validate_parameter,
    create_error_context
)

logger = get_logger(__name__)

PREDICTION_COLUMN = "prediction"


def with_columns(data: pd.DataFrame, overrides: Dict[str, Any]) -> pd.DataFrame:
    """Copy ``data`` with each column in ``overrides`` set to one value.

    Categorical columns keep their categories so estimators trained on
    category codes see the same encoding.

    Args:
        data: Source dataset (left untouched)
        overrides: Mapping of column name to the value every row receives

    Returns:
        New DataFrame
    """
    require_columns(data, overrides)
    modified = data.copy()
    for column, value in overrides.items():
        dtype = data[column].dtype
        if isinstance(dtype, pd.CategoricalDtype):
            modified[column] = pd.Categorical(
                [value] * len(data), categories=dtype.categories, ordered=dtype.ordered
            )
        else:
            modified[column] = value
    return modified


def with_column(data: pd.DataFrame, column: str, value: Any) -> pd.DataFrame:
    """Copy ``data`` with ``column`` set to ``value`` for every row."""
    return with_columns(data, {column: value})


def is_categorical(column: pd.Series) -> bool:
    """Whether a column holds levels rather than numbers."""
    return not pd.api.types.is_numeric_dtype(column) or pd.api.types.is_bool_dtype(column)


def feature_levels(column: pd.Series) -> List[Any]:
    """Levels of a categorical column (categories, or observed values)."""
    if isinstance(column.dtype, pd.CategoricalDtype):
        return list(column.cat.categories)
    return list(pd.unique(column.dropna()))


def _is_real_number(value: Any) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, (bool, np.bool_))
        and bool(np.isfinite(value))
    )


def validate_grid(data: pd.DataFrame, feature: str, grid: Sequence[Any]) -> List[Any]:
    """Check a grid against the domain of ``feature`` in ``data``.

    Numeric features accept finite real numbers; categorical features
    accept only their levels.

    Returns:
        The grid as a list

    Raises:
        InvalidGridValueError: For an empty grid or an out-of-domain value
    """
    values = list(grid.tolist() if hasattr(grid, "tolist") else grid)
    if not values:
        raise InvalidGridValueError(
            f"Grid for feature '{feature}' is empty",
            error_code="GRID_EMPTY",
            context={"feature": feature}
        )

    column = data[feature]
    if is_categorical(column):
        levels = feature_levels(column)
        for value in values:
            if value not in levels:
                raise InvalidGridValueError(
                    f"Grid value {value!r} is not a level of categorical feature '{feature}'",
                    error_code="GRID_VALUE_NOT_A_LEVEL",
                    context=create_error_context(feature=feature, value=value, levels=levels)
                )
    else:
        for value in values:
            if not _is_real_number(value):
                raise InvalidGridValueError(
                    f"Grid value {value!r} is not a finite number for numeric feature '{feature}'",
                    error_code="GRID_VALUE_NOT_NUMERIC",
                    context=create_error_context(feature=feature, value=value)
                )

    return values


def _validate_sweep(model: FittedModel, data: pd.DataFrame, feature: str, grid: Sequence[Any]) -> List[Any]:
    if data.empty:
        raise DataValidationError("Input data for a partial dependence sweep cannot be empty")
    require_columns(data, [feature])
    require_columns(data, model.features)
    return validate_grid(data, feature, grid)


def _sweep(
    model: FittedModel,
    data: pd.DataFrame,
    feature: str,
    grid: List[Any],
    n_jobs: int
) -> List[np.ndarray]:
    """Predictions for every row at every grid value, in grid order."""

    def evaluate(value: Any) -> np.ndarray:
        return predict(model, with_column(data, feature, value))

    with timed_operation(f"sweep_{feature}"):
        if n_jobs == 1:
            return [evaluate(value) for value in grid]
        # joblib returns results in submission order
        return Parallel(n_jobs=n_jobs, prefer="threads")(delayed(evaluate)(value) for value in grid)


@timer(name="partial_dependence")
def partial_dependence(
    model: FittedModel,
    data: pd.DataFrame,
    feature: str,
    grid: Sequence[Any],
    n_jobs: int = 1
) -> pd.DataFrame:
    """Average prediction as ``feature`` is swept over ``grid``.

    Args:
        model: Fitted model variant
        data: Observations whose distribution of the other features is kept
        feature: Feature to sweep
        grid: Values to assign to ``feature``
        n_jobs: Worker threads for grid points (1 = sequential)

    Returns:
        DataFrame with columns ``[feature, 'prediction']`` in grid order

    Raises:
        MissingFeatureError: If ``feature`` or a model feature is absent
        InvalidGridValueError: If the grid is empty or out of domain
    """
    values = _validate_sweep(model, data, feature, grid)
    logger.debug(f"PDP for '{feature}' over {len(values)} grid values and {len(data):,} rows")

    predictions = _sweep(model, data, feature, values, n_jobs)
    return pd.DataFrame({
        feature: values,
        PREDICTION_COLUMN: [float(np.mean(p)) for p in predictions],
    })


@timer(name="individual_conditional_expectation")
def individual_conditional_expectation(
    model: FittedModel,
    data: pd.DataFrame,
    feature: str,
    grid: Sequence[Any],
    n_jobs: int = 1
) -> pd.DataFrame:
    """Per-observation predictions as ``feature`` is swept over ``grid``.

    The row-wise mean of the result equals ``partial_dependence`` for the
    same inputs.

    Returns:
        DataFrame of shape (len(grid), len(data)); index holds the grid
        values (named after ``feature``), columns the index of ``data``
    """
    values = _validate_sweep(model, data, feature, grid)
    logger.debug(f"ICE for '{feature}' over {len(values)} grid values and {len(data):,} rows")

    predictions = _sweep(model, data, feature, values, n_jobs)
    return pd.DataFrame(
        np.vstack(predictions),
        index=pd.Index(values, name=feature),
        columns=data.index
    )


def numeric_grid(start: float, stop: float, step: float = 1) -> List[float]:
    """Evenly spaced grid from ``start`` to ``stop`` inclusive.

    Example:
        >>> numeric_grid(18, 90)[:3]
        [18, 19, 20]
    """
    validate_parameter("step", step, min_value=0)
    if step == 0:
        raise InvalidGridValueError("Grid step must be positive", error_code="GRID_STEP")
    if stop < start:
        raise InvalidGridValueError(
            f"Grid stop {stop} is below start {start}",
            error_code="GRID_BOUNDS"
        )

    if all(isinstance(v, numbers.Integral) for v in (start, stop, step)):
        return list(range(start, stop + 1, step))

    n_steps = int(np.floor((stop - start) / step + 1e-9))
    return [float(v) for v in start + step * np.arange(n_steps + 1)]


def grid_from_data(
    data: pd.DataFrame,
    feature: str,
    resolution: int = 50,
    percentiles: Tuple[float, float] = (0.05, 0.95)
) -> List[Any]:
    """Build a sweep grid from the observed values of ``feature``.

    Categorical features use their levels. Numeric features use every
    integer between the percentiles when that fits in ``resolution``
    points, otherwise ``resolution`` evenly spaced values.
    """
    require_columns(data, [feature])
    column = data[feature]

    if is_categorical(column):
        return feature_levels(column)

    observed = column.dropna().to_numpy(dtype=float)
    if observed.size == 0:
        raise InvalidGridValueError(f"Feature '{feature}' has no observed values", error_code="GRID_EMPTY")

    low, high = np.quantile(observed, percentiles)
    if pd.api.types.is_integer_dtype(column) and np.ceil(low) <= np.floor(high):
        start, stop = int(np.ceil(low)), int(np.floor(high))
        if stop - start + 1 <= resolution:
            return list(range(start, stop + 1))

    return [float(v) for v in np.unique(np.linspace(low, high, resolution))]


class PartialDependenceEngine:
    """Partial dependence analysis of one model under a fixed configuration.

    Subsamples the data (reproducibly) when ``max_samples`` is set and
    builds grids from the data when none is given.

    Example:
        >>> engine = PartialDependenceEngine(model, PartialDependenceConfig(max_samples=5000))
        >>> curve = engine.partial_dependence(train, 'ageph', numeric_grid(18, 90))
        >>> ice = engine.individual_conditional_expectation(train, 'ageph')
    """

    def __init__(self, model: FittedModel, config: Optional[PartialDependenceConfig] = None) -> None:
        self.model = model
        self.config = config or PartialDependenceConfig()
        self.log = get_logger(__name__, model=model.name)

        self.log.debug(
            f"PartialDependenceEngine ready: n_jobs={self.config.n_jobs}, "
            f"max_samples={self.config.max_samples}"
        )

    def prepare(self, data: pd.DataFrame) -> pd.DataFrame:
        """Subsample ``data`` to ``max_samples`` rows with the configured seed."""
        if self.config.max_samples is None or len(data) <= self.config.max_samples:
            return data
        return sample_rows(data, self.config.max_samples, self.config.random_state)

    def grid(self, data: pd.DataFrame, feature: str) -> List[Any]:
        """Default grid for ``feature``."""
        return grid_from_data(
            data, feature,
            resolution=self.config.grid_resolution,
            percentiles=self.config.percentiles
        )

    def partial_dependence(
        self,
        data: pd.DataFrame,
        feature: str,
        grid: Optional[Sequence[Any]] = None
    ) -> pd.DataFrame:
        """PDP of ``feature``; see ``partial_dependence``."""
        rows = self.prepare(data)
        values = self.grid(rows, feature) if grid is None else grid
        with self.log.track("Partial dependence", feature=feature, rows=len(rows)):
            return partial_dependence(self.model, rows, feature, values, n_jobs=self.config.n_jobs)

    def individual_conditional_expectation(
        self,
        data: pd.DataFrame,
        feature: str,
        grid: Optional[Sequence[Any]] = None
    ) -> pd.DataFrame:
        """ICE of ``feature``; see ``individual_conditional_expectation``."""
        rows = self.prepare(data)
        values = self.grid(rows, feature) if grid is None else grid
        with self.log.track("ICE", feature=feature, rows=len(rows)):
            return individual_conditional_expectation(
                self.model, rows, feature, values, n_jobs=self.config.n_jobs
            )

    def effects(
        self,
        data: pd.DataFrame,
        features: Sequence[str],
        grids: Optional[Dict[str, Sequence[Any]]] = None
    ) -> Dict[str, pd.DataFrame]:
        """PDPs for several features on the same subsample."""
        rows = self.prepare(data)
        grids = grids or {}
        curves = {}
        with self.log.track("Partial dependence of several features", features=len(features)):
            for feature in features:
                values = grids[feature] if feature in grids else self.grid(rows, feature)
                curves[feature] = partial_dependence(
                    self.model, rows, feature, values, n_jobs=self.config.n_jobs
                )
        return curves
