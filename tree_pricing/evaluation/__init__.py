"""Tree Pricing - Business-facing model comparison.

Deviance of frequency and severity predictions, loss-ratio lift and
double lift of premiums, and Gini-based minimax ranking of candidate
premiums.
"""

from .deviance import (
    poisson_deviance,
    gamma_deviance
)
from .lift import (
    exposure_bins,
    loss_ratio_lift,
    double_lift
)
from .gini import (
    ordered_lorenz_curve,
    gini_index,
    gini_matrix,
    gini_ranking
)

__all__ = [
    'poisson_deviance',
    'gamma_deviance',
    'exposure_bins',
    'loss_ratio_lift',
    'double_lift',
    'ordered_lorenz_curve',
    'gini_index',
    'gini_matrix',
    'gini_ranking'
]
