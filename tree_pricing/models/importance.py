# tree_pricing/models/importance.py
"""Variable importance for the fitted model variants.

Raw scores come from the fitted estimators themselves: the summed
split improvement (unnormalized impurity decrease) for trees and
forests, and the total gain for boosted ensembles. Scores are then
rescaled to sum to one over the features the model actually uses.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .variants import FittedModel, TreeModel, ForestModel, BoostedModel
from ..config.analysis_config import ImportanceConfig
from ..utils.logger import get_logger
from ..utils.exceptions import (
    ConfigurationError,
    DegenerateImportanceError,
    validate_parameter
)

logger = get_logger(__name__)

REPORT_DECIMALS = 4

_XGB_INDEX_NAME = re.compile(r"^f(\d+)$")


@dataclass(frozen=True)
class ImportanceRecord:
    """Importance of one variable within one model."""

    variable: str
    raw_score: float
    normalized_score: float

    @property
    def reported_score(self) -> float:
        """Normalized score rounded for reporting."""
        return round(self.normalized_score, REPORT_DECIMALS)


def _split_pipeline(estimator: Any) -> Tuple[Any, Any]:
    """Return (preprocessor, final estimator) of an sklearn Pipeline."""
    if hasattr(estimator, "steps"):
        preprocessor = estimator[:-1] if len(estimator.steps) > 1 else None
        return preprocessor, estimator[-1]
    return None, estimator


def _map_to_feature(name: str, features: Sequence[str]) -> str:
    """Map a transformed column name back to the model feature it came from."""
    if name in features:
        return name

    index_match = _XGB_INDEX_NAME.match(name)
    if index_match and int(index_match.group(1)) < len(features):
        return features[int(index_match.group(1))]

    # Prefixed ('categorical__fuel') or expanded ('fuel_diesel') names
    stripped = name.split("__", 1)[-1]
    if stripped in features:
        return stripped
    candidates = [f for f in features if stripped.startswith(f"{f}_")]
    if candidates:
        return max(candidates, key=len)

    raise ConfigurationError(
        f"Cannot map estimator column '{name}' to a model feature",
        error_code="IMPORTANCE_UNMAPPED_COLUMN",
        context={"features": list(features)}
    )


def _aggregate(column_names: Sequence[str], scores: np.ndarray, features: Sequence[str]) -> Dict[str, float]:
    raw = {feature: 0.0 for feature in features}
    for column, score in zip(column_names, scores):
        raw[_map_to_feature(str(column), features)] += float(score)
    return raw


def _column_names(preprocessor: Any, n_columns: int, features: Sequence[str]) -> List[str]:
    if preprocessor is not None:
        return [str(name) for name in preprocessor.get_feature_names_out()]
    if n_columns != len(features):
        raise ConfigurationError(
            f"Estimator reports {n_columns} columns but the model has {len(features)} features",
            error_code="IMPORTANCE_SHAPE"
        )
    return list(features)


def _tree_scores(model: TreeModel) -> Dict[str, float]:
    preprocessor, tree = _split_pipeline(model.estimator)
    scores = tree.tree_.compute_feature_importances(normalize=False)
    return _aggregate(_column_names(preprocessor, len(scores), model.features), scores, model.features)


def _forest_scores(model: ForestModel) -> Dict[str, float]:
    preprocessor, forest = _split_pipeline(model.estimator)
    scores = np.sum(
        [tree.tree_.compute_feature_importances(normalize=False) for tree in forest.estimators_],
        axis=0
    )
    return _aggregate(_column_names(preprocessor, len(scores), model.features), scores, model.features)


def _boosted_scores(model: BoostedModel) -> Dict[str, float]:
    gains = model.estimator.get_booster().get_score(importance_type="total_gain")
    return _aggregate(list(gains.keys()), np.array(list(gains.values()), dtype=float), model.features)


def raw_importance(model: FittedModel) -> Dict[str, float]:
    """Raw, non-negative importance score per model feature."""
    if isinstance(model, BoostedModel):
        return _boosted_scores(model)
    if isinstance(model, ForestModel):
        return _forest_scores(model)
    if isinstance(model, TreeModel):
        return _tree_scores(model)
    raise ConfigurationError(
        f"Unsupported model variant: {type(model).__name__}",
        error_code="MODEL_KIND_UNKNOWN"
    )


def importance(model: FittedModel) -> List[ImportanceRecord]:
    """Normalized variable importance of a fitted model.

    Only features with a positive raw score are returned, ordered by
    decreasing importance. ``normalized_score`` sums to one over the
    returned records; ``reported_score`` is the rounded value.

    Args:
        model: Fitted model variant

    Returns:
        List of ImportanceRecord

    Raises:
        DegenerateImportanceError: If no feature has a positive score
    """
    raw = raw_importance(model)
    positive = {feature: score for feature, score in raw.items() if score > 0}
    total = sum(positive.values())

    if not positive or total <= 0:
        raise DegenerateImportanceError(
            f"Model '{model.name}' has no feature with positive importance",
            error_code="IMPORTANCE_DEGENERATE",
            context={"model": model.name}
        )

    ranked = sorted(positive.items(), key=lambda item: item[1], reverse=True)
    records = [ImportanceRecord(feature, score, score / total) for feature, score in ranked]

    logger.debug(f"Importance for '{model.name}': {len(records)} of {len(raw)} features used")
    return records


def _report_decimals(decimals: Optional[int], config: Optional[ImportanceConfig]) -> int:
    """Explicit ``decimals`` first, then the config section, then the default."""
    if decimals is None:
        decimals = config.decimals if config is not None else REPORT_DECIMALS
    validate_parameter("decimals", decimals, min_value=0)
    return decimals


def importance_frame(
    records: Sequence[ImportanceRecord],
    decimals: Optional[int] = None,
    config: Optional[ImportanceConfig] = None
) -> pd.DataFrame:
    """Tabulate importance records with rounded scores."""
    decimals = _report_decimals(decimals, config)
    return pd.DataFrame({
        "variable": [r.variable for r in records],
        "raw_score": [r.raw_score for r in records],
        "importance": [round(r.normalized_score, decimals) for r in records],
    })


def compare_importance(
    models: Dict[str, FittedModel],
    decimals: Optional[int] = None,
    config: Optional[ImportanceConfig] = None
) -> pd.DataFrame:
    """Side-by-side normalized importance of several models.

    Rows are variables (ordered by mean importance), columns are model
    names; variables a model does not use get 0.

    Args:
        models: Fitted models keyed by the column label to report them under
        decimals: Rounding of the reported scores
        config: Importance section of an ``AnalysisConfig``; supplies
            ``decimals`` when it is not given explicitly
    """
    if not models:
        raise ConfigurationError("At least one model is required")
    decimals = _report_decimals(decimals, config)

    table = pd.DataFrame({
        label: pd.Series({r.variable: r.normalized_score for r in importance(model)})
        for label, model in models.items()
    }).fillna(0.0)

    table = table.loc[table.mean(axis=1).sort_values(ascending=False, kind="mergesort").index]
    table.index.name = "variable"
    return table.round(decimals)
