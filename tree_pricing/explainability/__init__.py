"""Tree Pricing - Model-agnostic interpretation.

Partial dependence, individual conditional expectation, grouped partial
dependence and Friedman's H-statistic, all expressed through the uniform
``predict`` of the fitted model variants.

Example:
    >>> from tree_pricing.explainability import partial_dependence, numeric_grid
    >>> curve = partial_dependence(model, sample, 'ageph', numeric_grid(18, 90))
"""

from .partial_dependence import (
    PartialDependenceEngine,
    with_column,
    with_columns,
    validate_grid,
    partial_dependence,
    individual_conditional_expectation,
    numeric_grid,
    grid_from_data
)
from .grouped import (
    grouped_partial_dependence,
    quantile_groups
)
from .interaction import (
    h_statistic,
    pairwise_h_statistics
)

__all__ = [
    'PartialDependenceEngine',
    'with_column',
    'with_columns',
    'validate_grid',
    'partial_dependence',
    'individual_conditional_expectation',
    'numeric_grid',
    'grid_from_data',
    'grouped_partial_dependence',
    'quantile_groups',
    'h_statistic',
    'pairwise_h_statistics'
]
