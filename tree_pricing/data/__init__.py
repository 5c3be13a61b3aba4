"""Tree Pricing - Portfolio data handling."""

from .portfolio import (
    CLAIM_COLUMNS,
    DEFAULT_CATEGORICAL,
    require_columns,
    load_portfolio,
    sample_rows,
    split_portfolio,
    severity_subset,
    rating_factors
)

__all__ = [
    'CLAIM_COLUMNS',
    'DEFAULT_CATEGORICAL',
    'require_columns',
    'load_portfolio',
    'sample_rows',
    'split_portfolio',
    'severity_subset',
    'rating_factors'
]
