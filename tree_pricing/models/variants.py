# tree_pricing/models/variants.py
"""Fitted model variants understood by the interpretation layer.

The set of variants is closed: a regression tree, a random forest and a
gradient-boosted ensemble. Each wraps an already fitted estimator and the
ordered list of features it was trained on. Boosted ensembles also record
the ensemble size used for prediction, the interaction depth of their
trees and the link function of their objective.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple, Union

from ..config.analysis_config import ModelKind
from ..utils.exceptions import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# XGBoost objective prefix -> link function
OBJECTIVE_LINKS = {
    "count:poisson": "log",
    "reg:gamma": "log",
    "reg:tweedie": "log",
    "survival:cox": "log",
    "reg:squarederror": "identity",
    "reg:absoluteerror": "identity",
    "reg:pseudohubererror": "identity",
    "reg:squaredlogerror": "identity",
    "reg:logistic": "logit",
    "binary:logistic": "logit",
}

SUPPORTED_LINKS = ("log", "identity", "logit")

# Depth XGBoost uses when max_depth is left unset
XGBOOST_DEFAULT_DEPTH = 6


def _resolve_features(estimator: Any, features: Optional[Sequence[str]]) -> Tuple[str, ...]:
    """Determine the ordered feature list of a fitted estimator."""
    if features is not None:
        resolved = tuple(features)
    elif getattr(estimator, "feature_names_in_", None) is not None:
        resolved = tuple(str(name) for name in estimator.feature_names_in_)
    elif hasattr(estimator, "get_booster") and estimator.get_booster().feature_names:
        resolved = tuple(estimator.get_booster().feature_names)
    else:
        raise ConfigurationError(
            f"Cannot determine features of {type(estimator).__name__}; pass them explicitly",
            error_code="MODEL_FEATURES_UNKNOWN"
        )

    if not resolved:
        raise ConfigurationError("A fitted model needs at least one feature")
    if len(set(resolved)) != len(resolved):
        raise ConfigurationError(f"Duplicate feature names: {list(resolved)}")
    return resolved


@dataclass
class FittedModel:
    """Common state of every fitted model variant.

    Attributes:
        estimator: The fitted estimator object
        features: Ordered feature names the estimator expects
        name: Optional display name used in reports
    """

    estimator: Any
    features: Optional[Sequence[str]] = None
    name: str = ""

    kind = None

    def __post_init__(self) -> None:
        if not hasattr(self.estimator, "predict"):
            raise ConfigurationError(
                f"Estimator {type(self.estimator).__name__} has no predict method",
                error_code="MODEL_NOT_PREDICTIVE"
            )
        self.features = _resolve_features(self.estimator, self.features)
        if not self.name:
            self.name = self.kind.value if self.kind else type(self.estimator).__name__


@dataclass
class TreeModel(FittedModel):
    """A single regression tree."""

    kind = ModelKind.TREE


@dataclass
class ForestModel(FittedModel):
    """A random forest; aggregation across trees is left to the estimator."""

    kind = ModelKind.FOREST


@dataclass
class BoostedModel(FittedModel):
    """A gradient-boosted tree ensemble.

    Attributes:
        n_trees: Boosting rounds used for prediction; defaults to the
            ensemble size configured at fit time (``n_estimators``)
        interaction_depth: Depth of the individual trees; defaults to the
            estimator's ``max_depth``
        link: Link function of the objective ('log', 'identity', 'logit');
            derived from the estimator's objective when omitted
    """

    n_trees: Optional[int] = None
    interaction_depth: Optional[int] = None
    link: Optional[str] = None

    kind = ModelKind.BOOSTED

    def __post_init__(self) -> None:
        super().__post_init__()

        if self.n_trees is None:
            self.n_trees = getattr(self.estimator, "n_estimators", None)
        if self.n_trees is None or self.n_trees < 1:
            raise ConfigurationError(
                "Boosted model needs a positive ensemble size",
                error_code="MODEL_ENSEMBLE_SIZE",
                context={"n_trees": self.n_trees}
            )

        if self.interaction_depth is None:
            depth = getattr(self.estimator, "max_depth", None)
            self.interaction_depth = XGBOOST_DEFAULT_DEPTH if depth is None else depth

        if self.link is None:
            objective = getattr(self.estimator, "objective", None)
            if not isinstance(objective, str) or objective not in OBJECTIVE_LINKS:
                raise ConfigurationError(
                    f"Cannot derive link function from objective {objective!r}; pass link explicitly",
                    error_code="MODEL_LINK_UNKNOWN"
                )
            self.link = OBJECTIVE_LINKS[objective]

        if self.link not in SUPPORTED_LINKS:
            raise ConfigurationError(
                f"Unsupported link function '{self.link}'",
                error_code="MODEL_LINK_UNKNOWN",
                context={"supported": list(SUPPORTED_LINKS)}
            )

        logger.debug(
            f"Boosted model '{self.name}': {self.n_trees} trees, "
            f"depth {self.interaction_depth}, {self.link} link"
        )


def build_model(
    kind: Union[str, ModelKind],
    estimator: Any,
    features: Optional[Sequence[str]] = None,
    **kwargs: Any
) -> FittedModel:
    """Wrap a fitted estimator in the variant for ``kind``.

    Args:
        kind: 'tree', 'forest' or 'boosted'
        estimator: Fitted estimator
        features: Ordered feature names (inferred when omitted)
        **kwargs: Variant-specific fields (name, n_trees, ...)

    Returns:
        The fitted model variant
    """
    try:
        kind = ModelKind(kind)
    except ValueError:
        raise ConfigurationError(
            f"Unsupported model kind: {kind}",
            error_code="MODEL_KIND_UNKNOWN",
            context={"supported": [k.value for k in ModelKind]}
        ) from None

    if kind is ModelKind.TREE:
        return TreeModel(estimator, features, **kwargs)
    if kind is ModelKind.FOREST:
        return ForestModel(estimator, features, **kwargs)
    return BoostedModel(estimator, features, **kwargs)
