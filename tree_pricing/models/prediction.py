# tree_pricing/models/prediction.py
"""Uniform prediction over the fitted model variants."""

from typing import Callable, Dict

import numpy as np
import pandas as pd
from scipy.special import expit

from .variants import FittedModel, TreeModel, ForestModel, BoostedModel
from ..data.portfolio import require_columns
from ..utils.logger import get_logger
from ..utils.exceptions import (
    ConfigurationError,
    ModelEvaluationError,
    handle_and_reraise,
    create_error_context
)

logger = get_logger(__name__)

INVERSE_LINKS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "log": np.exp,
    "identity": lambda eta: eta,
    "logit": expit,
}


def _predict_tree(model: TreeModel, X: pd.DataFrame) -> np.ndarray:
    return model.estimator.predict(X)


def _predict_forest(model: ForestModel, X: pd.DataFrame) -> np.ndarray:
    return model.estimator.predict(X)


def _predict_boosted(model: BoostedModel, X: pd.DataFrame, link: bool) -> np.ndarray:
    margin = model.estimator.predict(
        X, iteration_range=(0, model.n_trees), output_margin=True
    )
    if link:
        return margin
    return INVERSE_LINKS[model.link](np.asarray(margin, dtype=float))


def predict(model: FittedModel, rows: pd.DataFrame, link: bool = False) -> np.ndarray:
    """Predict one value per row, in row order.

    Boosted ensembles use their first ``n_trees`` rounds and return
    predictions on the response scale unless ``link`` is set, in which
    case the linear predictor is returned. Trees and forests have no link
    and return the same values either way.

    Args:
        model: Fitted model variant
        rows: Dataset containing every feature of the model
        link: Return the linear predictor for boosted ensembles

    Returns:
        1-D float array of predictions

    Raises:
        MissingFeatureError: If ``rows`` lacks a model feature
        ConfigurationError: If ``model`` is not a known variant
        ModelEvaluationError: If the estimator fails to predict
    """
    require_columns(rows, model.features)
    X = rows.loc[:, list(model.features)]

    try:
        if isinstance(model, BoostedModel):
            predictions = _predict_boosted(model, X, link)
        elif isinstance(model, ForestModel):
            predictions = _predict_forest(model, X)
        elif isinstance(model, TreeModel):
            predictions = _predict_tree(model, X)
        else:
            raise ConfigurationError(
                f"Unsupported model variant: {type(model).__name__}",
                error_code="MODEL_KIND_UNKNOWN"
            )
    except (ValueError, TypeError, KeyError) as e:
        handle_and_reraise(
            e, ModelEvaluationError,
            f"Prediction failed for model '{model.name}'",
            error_code="PREDICTION_FAILED",
            context=create_error_context(model=model.name, n_rows=len(rows))
        )

    predictions = np.asarray(predictions, dtype=float).reshape(-1)
    if predictions.shape[0] != len(rows):
        raise ModelEvaluationError(
            f"Model '{model.name}' returned {predictions.shape[0]} predictions for {len(rows)} rows",
            error_code="PREDICTION_SHAPE"
        )
    return predictions
