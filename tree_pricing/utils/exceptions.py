# tree_pricing/utils/exceptions.py
"""Custom exception hierarchy for tree_pricing package.

Every error raised by the package derives from ``TreePricingError`` so
callers can catch package failures in one place, while the specific
subclasses tell apart bad configuration, bad input data and failures in
the interpretation layer.
"""

from typing import Any, Optional, Dict, List

import pandas as pd


class TreePricingError(Exception):
    """Base exception for all tree_pricing package errors.

    Carries an optional error code for programmatic handling and a
    context dictionary with debugging information.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialize TreePricingError.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        base_msg = self.message
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg = f"{base_msg} (Context: {context_str})"
        return base_msg


class ConfigurationError(TreePricingError):
    """Invalid configuration section, call parameter or model variant."""


class DataValidationError(TreePricingError):
    """Input data that cannot be used, such as an empty table or non-positive exposure."""


class MissingFeatureError(DataValidationError):
    """Raised when a dataset lacks a column the caller or model needs."""

    def __init__(
        self,
        feature: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        self.feature = feature
        super().__init__(
            message or f"Feature '{feature}' not found in data",
            error_code="MISSING_FEATURE",
            context=context or {"feature": feature}
        )


class ModelFittingError(TreePricingError):
    """Raised when a delegated model fit fails."""
    pass


class ModelEvaluationError(TreePricingError):
    """Raised when prediction or metric computation fails."""
    pass


class ExplainabilityError(TreePricingError):
    """Base of the errors raised by importance, partial dependence and interaction routines."""


class InvalidGridValueError(ExplainabilityError):
    """Raised when a grid is empty or holds a value outside the feature's domain."""
    pass


class DegenerateImportanceError(ExplainabilityError):
    """Raised when a model reports no positive importance for any feature."""
    pass


class InsufficientDepthError(ExplainabilityError):
    """Raised when an ensemble's interaction depth cannot express the requested interaction."""
    pass


class UnknownFeatureError(ExplainabilityError):
    """Raised when a feature is not part of the model's feature list."""
    pass


class FileOperationError(TreePricingError):
    """A portfolio, configuration, plot or log file could not be read or written."""


def handle_and_reraise(
    exception: Exception,
    error_class: type,
    message: str,
    error_code: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """Re-raise a library exception as ``error_class``, chained to the original.

    The original message and type are added to the context.
    """
    context = dict(context or {})
    context.update(original_error=str(exception), original_error_type=type(exception).__name__)
    raise error_class(message, error_code, context) from exception


def validate_parameter(
    param_name: str,
    param_value: Any,
    valid_values: Optional[List[Any]] = None,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    required: bool = False
) -> None:
    """Check a configuration value against allowed values and bounds.

    ``None`` passes every check unless ``required`` is set.

    Raises:
        ConfigurationError: With code PARAM_REQUIRED, PARAM_INVALID_VALUE,
            PARAM_TOO_SMALL or PARAM_TOO_LARGE
    """
    context = {"parameter": param_name, "value": param_value}

    if param_value is None:
        if required:
            raise ConfigurationError(
                f"Parameter '{param_name}' is required", error_code="PARAM_REQUIRED", context=context
            )
        return

    if valid_values is not None and param_value not in valid_values:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be one of {list(valid_values)}, got {param_value!r}",
            error_code="PARAM_INVALID_VALUE",
            context={**context, "valid_values": list(valid_values)}
        )

    if min_value is not None and param_value < min_value:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be at least {min_value}, got {param_value}",
            error_code="PARAM_TOO_SMALL",
            context={**context, "min_value": min_value}
        )
    if max_value is not None and param_value > max_value:
        raise ConfigurationError(
            f"Parameter '{param_name}' must be at most {max_value}, got {param_value}",
            error_code="PARAM_TOO_LARGE",
            context={**context, "max_value": max_value}
        )


def create_error_context(**kwargs: Any) -> Dict[str, Any]:
    """Error context whose values stay printable.

    Tables are summarised by their shape, fitted model variants by their
    name and other objects by ``str``.
    """
    context = {}
    for key, value in kwargs.items():
        if isinstance(value, (pd.DataFrame, pd.Series)):
            context[key] = f"{type(value).__name__} of shape {value.shape}"
        elif hasattr(value, "estimator") and hasattr(value, "features"):
            context[key] = getattr(value, "name", None) or type(value).__name__
        elif hasattr(value, "__dict__") or hasattr(value, "__slots__"):
            context[key] = str(value)
        else:
            context[key] = value
    return context
