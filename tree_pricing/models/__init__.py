"""Tree Pricing - Fitted model variants, prediction, importance and fitting.

Example:
    >>> from tree_pricing.models import fit_boosted, predict, importance
    >>> model = fit_boosted(train, ['ageph', 'bm', 'power', 'fuel'])
    >>> rates = predict(model, test)
    >>> records = importance(model)
"""

from .variants import (
    FittedModel,
    TreeModel,
    ForestModel,
    BoostedModel,
    build_model
)
from .prediction import predict
from .importance import (
    ImportanceRecord,
    raw_importance,
    importance,
    importance_frame,
    compare_importance
)
from .fitting import (
    fit_tree,
    fit_forest,
    fit_boosted
)

__all__ = [
    'FittedModel',
    'TreeModel',
    'ForestModel',
    'BoostedModel',
    'build_model',
    'predict',
    'ImportanceRecord',
    'raw_importance',
    'importance',
    'importance_frame',
    'compare_importance',
    'fit_tree',
    'fit_forest',
    'fit_boosted'
]
