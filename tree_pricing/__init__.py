# tree_pricing/__init__.py
"""Tree Pricing - Tree-based models for insurance pricing, explained.

Regression trees, random forests and gradient-boosted ensembles for
claim frequency and severity, with model-agnostic interpretation and
business-facing comparison:

- Uniform prediction over tree, forest and boosted model variants
- Normalized variable importance
- Partial dependence, ICE and grouped partial dependence
- Friedman's H-statistic for pairwise interactions
- Poisson and Gamma deviance, loss-ratio lift, double lift
- Gini indices from ordered Lorenz curves with minimax model ranking

Quick Start:
    >>> import tree_pricing as tp
    >>> train, test = tp.split_portfolio(tp.load_portfolio('mtpl.csv'))
    >>> features = ['ageph', 'bm', 'power', 'agec', 'coverage', 'fuel']
    >>> gbm = tp.fit_boosted(train, features)
    >>> sample = tp.sample_rows(train, 10000, seed=54321)
    >>> curve = tp.partial_dependence(gbm, sample, 'ageph', tp.numeric_grid(18, 90))
    >>> tp.h_statistic(gbm, sample, ('ageph', 'power'))
"""

__version__ = "1.0.0"
__license__ = "MIT"
__description__ = "Tree-based insurance pricing models with interpretation and lift analysis"

from .utils.logger import configure_logging, get_logger

configure_logging(level="INFO", include_context=True, include_console=True)

logger = get_logger(__name__)
logger.debug(f"Tree Pricing v{__version__} initialized")

# Data
from .data import load_portfolio, sample_rows, split_portfolio, severity_subset

# Models
from .models import (
    FittedModel,
    TreeModel,
    ForestModel,
    BoostedModel,
    build_model,
    predict,
    ImportanceRecord,
    importance,
    importance_frame,
    compare_importance,
    fit_tree,
    fit_forest,
    fit_boosted
)

# Interpretation
from .explainability import (
    PartialDependenceEngine,
    partial_dependence,
    individual_conditional_expectation,
    grouped_partial_dependence,
    h_statistic,
    pairwise_h_statistics,
    numeric_grid,
    grid_from_data
)

# Comparison
from .evaluation import (
    poisson_deviance,
    gamma_deviance,
    loss_ratio_lift,
    double_lift,
    gini_index,
    gini_matrix,
    gini_ranking
)

# Configuration
from .config import AnalysisConfig, load_config, save_config

# Exceptions
from .utils.exceptions import (
    TreePricingError,
    ConfigurationError,
    DataValidationError,
    MissingFeatureError,
    ExplainabilityError,
    InvalidGridValueError,
    DegenerateImportanceError,
    InsufficientDepthError,
    UnknownFeatureError
)

__all__ = [
    '__version__',
    'configure_logging',
    'get_logger',
    'load_portfolio',
    'sample_rows',
    'split_portfolio',
    'severity_subset',
    'FittedModel',
    'TreeModel',
    'ForestModel',
    'BoostedModel',
    'build_model',
    'predict',
    'ImportanceRecord',
    'importance',
    'importance_frame',
    'compare_importance',
    'fit_tree',
    'fit_forest',
    'fit_boosted',
    'PartialDependenceEngine',
    'partial_dependence',
    'individual_conditional_expectation',
    'grouped_partial_dependence',
    'h_statistic',
    'pairwise_h_statistics',
    'numeric_grid',
    'grid_from_data',
    'poisson_deviance',
    'gamma_deviance',
    'loss_ratio_lift',
    'double_lift',
    'gini_index',
    'gini_matrix',
    'gini_ranking',
    'AnalysisConfig',
    'load_config',
    'save_config',
    'TreePricingError',
    'ConfigurationError',
    'DataValidationError',
    'MissingFeatureError',
    'ExplainabilityError',
    'InvalidGridValueError',
    'DegenerateImportanceError',
    'InsufficientDepthError',
    'UnknownFeatureError'
]
