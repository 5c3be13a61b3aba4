"""Tree Pricing - Configuration Management Components.

Example:
    >>> from tree_pricing.config import load_config, LiftConfig
    >>> config = load_config('config/mtpl.yaml')
    >>> lift_config = LiftConfig(n_bins=5)
"""

from .analysis_config import (
    ModelKind,
    PricingTarget,
    SamplingConfig,
    PartialDependenceConfig,
    ImportanceConfig,
    LiftConfig,
    BaseFitConfig,
    TreeConfig,
    ForestConfig,
    BoostedConfig,
    AnalysisConfig
)
from .loader import (
    ConfigLoader,
    load_config,
    save_config
)

__all__ = [
    'ModelKind',
    'PricingTarget',
    'SamplingConfig',
    'PartialDependenceConfig',
    'ImportanceConfig',
    'LiftConfig',
    'BaseFitConfig',
    'TreeConfig',
    'ForestConfig',
    'BoostedConfig',
    'AnalysisConfig',
    'ConfigLoader',
    'load_config',
    'save_config'
]
