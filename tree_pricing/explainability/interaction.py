# tree_pricing/explainability/interaction.py
"""Friedman's H-statistic for pairwise interaction strength.

Partial dependence surfaces are evaluated on the linear-predictor scale
of a boosted ensemble, at the combinations of the two features that are
actually observed in the data, and weighted by how often each
combination occurs. H is the share of the joint effect's variance that
the two main effects leave unexplained:

    H^2 = sum n (f_ij - f_i - f_j)^2 / sum n f_ij^2

with every surface centred at its weighted mean. A ratio above one can
only come from floating-point noise around negligible effects and is
reported as NaN.
"""

from itertools import combinations
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from .partial_dependence import with_columns
from ..data.portfolio import require_columns
from ..models.prediction import predict
from ..models.variants import FittedModel, BoostedModel
from ..utils.logger import get_logger
from ..utils.timer import timer
from ..utils.exceptions import (
    ConfigurationError,
    DataValidationError,
    InsufficientDepthError,
    UnknownFeatureError,
    create_error_context
)

logger = get_logger(__name__)

# Joint-effect variance below this share of the mean squared surface is rounding noise
NEGLIGIBLE_VARIANCE = 1e-20


def _validate_interaction(
    model: FittedModel,
    data: pd.DataFrame,
    features: Sequence[str],
    order: int = 2
) -> None:
    if not isinstance(model, BoostedModel):
        raise ConfigurationError(
            f"Interaction strength needs a boosted ensemble, got {type(model).__name__}",
            error_code="INTERACTION_MODEL_KIND"
        )

    for feature in features:
        if feature not in model.features:
            raise UnknownFeatureError(
                f"Feature '{feature}' is not used by model '{model.name}'",
                error_code="UNKNOWN_FEATURE",
                context=create_error_context(feature=feature, model_features=list(model.features))
            )

    if model.interaction_depth < order:
        raise InsufficientDepthError(
            f"Interaction depth {model.interaction_depth} of model '{model.name}' "
            f"cannot express a {order}-way interaction",
            error_code="INSUFFICIENT_DEPTH",
            context={"interaction_depth": model.interaction_depth, "n_features": order}
        )

    if data.empty:
        raise DataValidationError("Input data for interaction strength cannot be empty")
    require_columns(data, model.features)


def _partial_dependence_at(model: BoostedModel, data: pd.DataFrame, overrides: Dict[str, Any]) -> float:
    """Mean linear predictor with ``overrides`` applied to every row."""
    return float(np.mean(predict(model, with_columns(data, overrides), link=True)))


def _centered(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    return values - np.average(values, weights=weights)


@timer(name="h_statistic")
def h_statistic(model: FittedModel, data: pd.DataFrame, feature_pair: Sequence[str]) -> float:
    """Friedman's H-statistic for the interaction of two features.

    Args:
        model: Boosted ensemble
        data: Observations defining the joint distribution of the pair
        feature_pair: Names of the two features

    Returns:
        H in [0, 1], or NaN when the ratio exceeds one or the pair has no
        joint effect at all

    Raises:
        ConfigurationError: If the model is not boosted or the pair is malformed
        UnknownFeatureError: If a feature is not one of the model's features
        InsufficientDepthError: If the trees are too shallow to interact
    """
    pair = tuple(feature_pair)
    if len(pair) != 2 or pair[0] == pair[1]:
        raise ConfigurationError(
            f"H-statistic needs two distinct features, got {list(pair)}",
            error_code="INTERACTION_PAIR"
        )
    _validate_interaction(model, data, pair, order=len(pair))

    first, second = pair
    joint = (
        data.groupby([first, second], observed=True, sort=False)
        .size()
        .reset_index(name="n")
    )
    weights = joint["n"].to_numpy(dtype=float)

    f_joint = np.array([
        _partial_dependence_at(model, data, {first: a, second: b})
        for a, b in zip(joint[first], joint[second])
    ])

    main_effects = []
    for feature in pair:
        effect = {
            value: _partial_dependence_at(model, data, {feature: value})
            for value in pd.unique(joint[feature])
        }
        main_effects.append(np.array([effect[value] for value in joint[feature]]))

    scale = np.average(f_joint ** 2, weights=weights)
    f_joint = _centered(f_joint, weights)
    f_first = _centered(main_effects[0], weights)
    f_second = _centered(main_effects[1], weights)

    numerator = np.average((f_joint - f_first - f_second) ** 2, weights=weights)
    denominator = np.average(f_joint ** 2, weights=weights)

    if denominator <= NEGLIGIBLE_VARIANCE * scale:
        logger.warning(f"No joint effect of {first} and {second}; H-statistic undefined")
        return float("nan")

    ratio = numerator / denominator
    if ratio > 1:
        logger.warning(
            f"H-statistic ratio {ratio:.6f} for ({first}, {second}) exceeds 1; reporting NaN"
        )
        return float("nan")

    h_value = float(np.sqrt(ratio))
    logger.debug(f"H-statistic ({first}, {second}) over {len(joint)} combinations: {h_value:.4f}")
    return h_value


def pairwise_h_statistics(
    model: FittedModel,
    data: pd.DataFrame,
    features: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """H-statistic for every unordered pair of ``features``.

    Args:
        model: Boosted ensemble
        data: Observations, typically a seeded subsample of the training data
        features: Features to pair; defaults to all model features

    Returns:
        DataFrame with columns ``feature_1``, ``feature_2``, ``h_statistic``
        sorted by decreasing H (NaN last)
    """
    features = list(dict.fromkeys(model.features if features is None else features))
    if len(features) < 2:
        raise ConfigurationError("At least two distinct features are needed for pairwise interactions")
    _validate_interaction(model, data, features, order=2)

    pairs = list(combinations(features, 2))
    log = get_logger(__name__, model=model.name)
    with log.track("H-statistics", pairs=len(pairs), rows=len(data)):
        table = pd.DataFrame(
            [(a, b, h_statistic(model, data, (a, b))) for a, b in pairs],
            columns=["feature_1", "feature_2", "h_statistic"]
        )
    return (
        table.sort_values("h_statistic", ascending=False, na_position="last", kind="mergesort")
        .reset_index(drop=True)
    )
