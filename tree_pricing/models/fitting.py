# tree_pricing/models/fitting.py
"""Delegated fitting of frequency and severity models.

These helpers only prepare targets, weights and encoders for the
library estimators (scikit-learn trees and forests, XGBoost boosting)
and wrap the fitted result in a model variant. Claim frequency is
modelled as claims per unit of exposure, claim severity as the average
amount per claim weighted by the number of claims.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OrdinalEncoder
from sklearn.tree import DecisionTreeRegressor
from xgboost import XGBRegressor
from xgboost.core import XGBoostError

from .variants import TreeModel, ForestModel, BoostedModel, build_model
from ..config.analysis_config import (
    ModelKind,
    PricingTarget,
    TreeConfig,
    ForestConfig,
    BoostedConfig
)
from ..data.portfolio import require_columns
from ..utils.logger import get_logger
from ..utils.timer import timer
from ..utils.exceptions import (
    DataValidationError,
    ModelFittingError,
    handle_and_reraise,
    create_error_context
)

logger = get_logger(__name__)


def _categorical_features(data: pd.DataFrame, features: Sequence[str]) -> List[str]:
    return [
        f for f in features
        if isinstance(data[f].dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(data[f])
        or pd.api.types.is_string_dtype(data[f])
    ]


def _targets(data: pd.DataFrame, target: str) -> Tuple[np.ndarray, np.ndarray]:
    """Return (response, weight) for the modelled quantity."""
    if target == PricingTarget.FREQUENCY.value:
        require_columns(data, ["nclaims", "expo"])
        expo = data["expo"].to_numpy(dtype=float)
        if np.any(expo <= 0):
            raise DataValidationError("Exposure must be positive for frequency models")
        return data["nclaims"].to_numpy(dtype=float) / expo, expo

    require_columns(data, ["average", "nclaims"])
    severity = data.loc[data["nclaims"] > 0]
    if len(severity) != len(data):
        raise DataValidationError(
            "Severity models need policies with at least one claim; use severity_subset()",
            error_code="SEVERITY_WITHOUT_CLAIMS",
            context={"n_without_claims": int(len(data) - len(severity))}
        )
    return data["average"].to_numpy(dtype=float), data["nclaims"].to_numpy(dtype=float)


def _tree_pipeline(data: pd.DataFrame, features: Sequence[str], regressor) -> Pipeline:
    categorical = _categorical_features(data, features)
    encoder = ColumnTransformer(
        [(
            "categorical",
            OrdinalEncoder(handle_unknown="use_encoded_value", unknown_value=-1),
            categorical
        )],
        remainder="passthrough",
        verbose_feature_names_out=False
    )
    return Pipeline([("encode", encoder), ("model", regressor)])


def _fit_pipeline(kind: ModelKind, pipeline: Pipeline, data: pd.DataFrame,
                  features: Sequence[str], target: str, name: str):
    y, weight = _targets(data, target)
    try:
        pipeline.fit(data.loc[:, list(features)], y, model__sample_weight=weight)
    except ValueError as e:
        handle_and_reraise(
            e, ModelFittingError,
            f"Fitting {kind.value} model failed",
            error_code="FIT_FAILED",
            context=create_error_context(target=target, n_rows=len(data))
        )
    return build_model(kind, pipeline, features, name=name)


@timer(name="fit_tree")
def fit_tree(
    data: pd.DataFrame,
    features: Sequence[str],
    config: Optional[TreeConfig] = None,
    name: str = ""
) -> TreeModel:
    """Fit a regression tree (Poisson deviance for frequency).

    Args:
        data: Training portfolio
        features: Rating factors to use
        config: Tree settings
        name: Display name of the model

    Returns:
        Fitted TreeModel
    """
    config = config or TreeConfig()
    require_columns(data, features)
    criterion = "poisson" if config.target == PricingTarget.FREQUENCY.value else "squared_error"

    regressor = DecisionTreeRegressor(
        criterion=criterion,
        max_depth=config.max_depth,
        min_samples_leaf=config.min_samples_leaf,
        ccp_alpha=config.ccp_alpha,
        random_state=config.random_state,
        **config.custom_params
    )
    logger.info(f"Fitting {config.target} tree on {len(data):,} policies, {len(features)} features")
    return _fit_pipeline(
        ModelKind.TREE, _tree_pipeline(data, features, regressor),
        data, features, config.target, name or f"tree_{config.target}"
    )


@timer(name="fit_forest")
def fit_forest(
    data: pd.DataFrame,
    features: Sequence[str],
    config: Optional[ForestConfig] = None,
    name: str = ""
) -> ForestModel:
    """Fit a random forest of regression trees.

    Args:
        data: Training portfolio
        features: Rating factors to use
        config: Forest settings
        name: Display name of the model

    Returns:
        Fitted ForestModel
    """
    config = config or ForestConfig()
    require_columns(data, features)
    criterion = "poisson" if config.target == PricingTarget.FREQUENCY.value else "squared_error"

    regressor = RandomForestRegressor(
        n_estimators=config.n_estimators,
        criterion=criterion,
        max_depth=config.max_depth,
        max_features=config.max_features,
        max_samples=config.max_samples,
        min_samples_leaf=config.min_samples_leaf,
        n_jobs=config.n_jobs,
        random_state=config.random_state,
        **config.custom_params
    )
    logger.info(
        f"Fitting {config.target} forest of {config.n_estimators} trees on {len(data):,} policies"
    )
    return _fit_pipeline(
        ModelKind.FOREST, _tree_pipeline(data, features, regressor),
        data, features, config.target, name or f"forest_{config.target}"
    )


@timer(name="fit_boosted")
def fit_boosted(
    data: pd.DataFrame,
    features: Sequence[str],
    config: Optional[BoostedConfig] = None,
    name: str = ""
) -> BoostedModel:
    """Fit a gradient-boosted ensemble with XGBoost.

    Frequency uses a Poisson objective on claim counts with log exposure
    as offset, so predictions are claim rates per unit of exposure.
    Severity uses a Gamma objective on the average claim amount.
    Categorical rating factors must be ``category`` dtype.

    Args:
        data: Training portfolio
        features: Rating factors to use
        config: Boosting settings
        name: Display name of the model

    Returns:
        Fitted BoostedModel
    """
    config = config or BoostedConfig()
    require_columns(data, features)

    non_category = [
        f for f in _categorical_features(data, features)
        if not isinstance(data[f].dtype, pd.CategoricalDtype)
    ]
    if non_category:
        raise DataValidationError(
            f"Categorical features must use category dtype for boosting: {non_category}",
            error_code="BOOSTED_CATEGORICAL_DTYPE"
        )

    frequency = config.target == PricingTarget.FREQUENCY.value
    params = dict(config.custom_params)
    if frequency:
        # Zero margin at prediction time, so predictions are rates per unit of exposure
        params.setdefault("base_score", 1.0)

    regressor = XGBRegressor(
        objective="count:poisson" if frequency else "reg:gamma",
        n_estimators=config.n_estimators,
        max_depth=config.max_depth,
        learning_rate=config.learning_rate,
        subsample=config.subsample,
        tree_method="hist",
        enable_categorical=True,
        n_jobs=config.n_jobs,
        random_state=config.random_state,
        **params
    )

    X = data.loc[:, list(features)]
    if frequency:
        _, expo = _targets(data, config.target)
        y = data["nclaims"].to_numpy(dtype=float)
        fit_kwargs = {"base_margin": np.log(expo)}
    else:
        y, weight = _targets(data, config.target)
        fit_kwargs = {"sample_weight": weight}

    logger.info(
        f"Fitting {config.target} boosted ensemble: {config.n_estimators} trees, "
        f"depth {config.max_depth}, learning rate {config.learning_rate}"
    )
    try:
        regressor.fit(X, y, **fit_kwargs)
    except (ValueError, XGBoostError) as e:
        handle_and_reraise(
            e, ModelFittingError,
            "Fitting boosted model failed",
            error_code="FIT_FAILED",
            context=create_error_context(target=config.target, n_rows=len(data))
        )

    return build_model(
        ModelKind.BOOSTED, regressor, features,
        name=name or f"boosted_{config.target}",
        n_trees=config.n_estimators,
        interaction_depth=config.max_depth
    )
