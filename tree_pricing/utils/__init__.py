"""Tree Pricing - Utility Components.

Shared logging, timing and exception handling used throughout the package.

Example:
    >>> from tree_pricing.utils import get_logger, timer
    >>> logger = get_logger(__name__)
"""

from .logger import (
    get_logger,
    configure_logging,
    set_log_level,
    temporary_log_level,
    AnalysisLoggerAdapter
)
from .timer import (
    timer,
    timed_operation,
    get_performance_stats,
    reset_performance_stats,
    timing_report
)
from .exceptions import (
    TreePricingError,
    ConfigurationError,
    DataValidationError,
    MissingFeatureError,
    ModelFittingError,
    ModelEvaluationError,
    ExplainabilityError,
    InvalidGridValueError,
    DegenerateImportanceError,
    InsufficientDepthError,
    UnknownFeatureError,
    FileOperationError,
    handle_and_reraise,
    validate_parameter
)

__all__ = [
    # Logging utilities
    'get_logger',
    'configure_logging',
    'set_log_level',
    'temporary_log_level',
    'AnalysisLoggerAdapter',

    # Timing utilities
    'timer',
    'timed_operation',
    'get_performance_stats',
    'reset_performance_stats',
    'timing_report',

    # Exceptions
    'TreePricingError',
    'ConfigurationError',
    'DataValidationError',
    'MissingFeatureError',
    'ModelFittingError',
    'ModelEvaluationError',
    'ExplainabilityError',
    'InvalidGridValueError',
    'DegenerateImportanceError',
    'InsufficientDepthError',
    'UnknownFeatureError',
    'FileOperationError',
    'handle_and_reraise',
    'validate_parameter'
]
