# tree_pricing/config/analysis_config.py
"""Type-safe configuration for pricing analyses.

Dataclass configurations for sampling, interpretation sweeps, lift
analysis and the delegated model fits, each validated on construction.
"""

from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from ..utils.exceptions import ConfigurationError, validate_parameter
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ModelKind(Enum):
    """Supported fitted model variants."""

    TREE = "tree"
    FOREST = "forest"
    BOOSTED = "boosted"


class PricingTarget(Enum):
    """Modelled quantity of a claims model."""

    FREQUENCY = "frequency"
    SEVERITY = "severity"


@dataclass
class SamplingConfig:
    """Configuration for drawing the interpretation subsample."""

    n_samples: int = 10000
    random_state: int = 54321

    def __post_init__(self) -> None:
        validate_parameter("n_samples", self.n_samples, min_value=1)
        validate_parameter("random_state", self.random_state, min_value=0)


@dataclass
class PartialDependenceConfig:
    """Configuration for partial dependence and ICE sweeps."""

    # Grid construction for grid_from_data
    grid_resolution: int = 50
    percentiles: Tuple[float, float] = (0.05, 0.95)

    # Performance settings
    n_jobs: int = 1
    max_samples: Optional[int] = None
    random_state: int = 54321

    def __post_init__(self) -> None:
        """Validate partial dependence configuration."""
        validate_parameter("grid_resolution", self.grid_resolution, min_value=2, max_value=1000)
        validate_parameter("max_samples", self.max_samples, min_value=1)
        validate_parameter("random_state", self.random_state, min_value=0)

        if self.n_jobs == 0 or self.n_jobs < -1:
            raise ConfigurationError(
                f"Parameter 'n_jobs' must be -1 or a positive integer, got {self.n_jobs}",
                error_code="PARAM_INVALID_VALUE",
                context={"parameter": "n_jobs", "value": self.n_jobs}
            )

        self.percentiles = tuple(self.percentiles)
        if not (0 <= self.percentiles[0] < self.percentiles[1] <= 1):
            raise ConfigurationError("Percentiles must be in [0, 1] with first < second")


@dataclass
class ImportanceConfig:
    """Configuration for variable importance reporting."""

    decimals: int = 4

    def __post_init__(self) -> None:
        validate_parameter("decimals", self.decimals, min_value=0, max_value=15)


@dataclass
class LiftConfig:
    """Configuration for loss-ratio lift and double lift tables."""

    n_bins: int = 10
    loss_col: str = "amount"
    exposure_col: str = "expo"
    label_decimals: int = 2

    def __post_init__(self) -> None:
        validate_parameter("n_bins", self.n_bins, min_value=1)
        validate_parameter("label_decimals", self.label_decimals, min_value=0)
        if not self.loss_col or not self.exposure_col:
            raise ConfigurationError("Loss and exposure column names must be non-empty")


@dataclass
class BaseFitConfig:
    """Common parameters of the delegated model fits."""

    target: str = PricingTarget.FREQUENCY.value
    random_state: Optional[int] = 54321
    n_jobs: int = -1

    # Additional keyword arguments for the underlying estimator
    custom_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        validate_parameter("target", self.target, valid_values=[t.value for t in PricingTarget])
        validate_parameter("random_state", self.random_state, min_value=0)
        if self.n_jobs != -1:
            validate_parameter("n_jobs", self.n_jobs, min_value=1)


@dataclass
class TreeConfig(BaseFitConfig):
    """Regression tree complexity settings."""

    max_depth: Optional[int] = 5
    min_samples_leaf: Union[int, float] = 0.01
    ccp_alpha: float = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        validate_parameter("max_depth", self.max_depth, min_value=1)
        validate_parameter("min_samples_leaf", self.min_samples_leaf, min_value=0)
        validate_parameter("ccp_alpha", self.ccp_alpha, min_value=0.0)


@dataclass
class ForestConfig(BaseFitConfig):
    """Random forest settings."""

    n_estimators: int = 500
    max_depth: Optional[int] = 20
    # Candidate features per split (count or fraction)
    max_features: Union[int, float] = 0.33
    # Bootstrap subsampling fraction
    max_samples: Optional[float] = 0.75
    min_samples_leaf: Union[int, float] = 0.001

    def __post_init__(self) -> None:
        super().__post_init__()
        validate_parameter("n_estimators", self.n_estimators, min_value=1)
        validate_parameter("max_depth", self.max_depth, min_value=1)
        validate_parameter("max_features", self.max_features, min_value=0)
        validate_parameter("max_samples", self.max_samples, min_value=0.0, max_value=1.0)
        validate_parameter("min_samples_leaf", self.min_samples_leaf, min_value=0)


@dataclass
class BoostedConfig(BaseFitConfig):
    """Gradient boosting settings.

    ``max_depth`` is the interaction depth of the ensemble; the
    H-statistic needs it to be at least 2.
    """

    n_estimators: int = 500
    max_depth: int = 3
    learning_rate: float = 0.01
    subsample: float = 0.75

    def __post_init__(self) -> None:
        super().__post_init__()
        validate_parameter("n_estimators", self.n_estimators, min_value=1)
        validate_parameter("max_depth", self.max_depth, min_value=1)
        validate_parameter("learning_rate", self.learning_rate, min_value=0.0, max_value=1.0)
        validate_parameter("subsample", self.subsample, min_value=0.0, max_value=1.0)


_SECTIONS = {
    "sampling": SamplingConfig,
    "partial_dependence": PartialDependenceConfig,
    "importance": ImportanceConfig,
    "lift": LiftConfig,
    "tree": TreeConfig,
    "forest": ForestConfig,
    "boosted": BoostedConfig,
}


@dataclass
class AnalysisConfig:
    """Complete configuration of a pricing analysis."""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    partial_dependence: PartialDependenceConfig = field(default_factory=PartialDependenceConfig)
    importance: ImportanceConfig = field(default_factory=ImportanceConfig)
    lift: LiftConfig = field(default_factory=LiftConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    forest: ForestConfig = field(default_factory=ForestConfig)
    boosted: BoostedConfig = field(default_factory=BoostedConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AnalysisConfig":
        """Build a configuration from a nested dictionary.

        Args:
            config_dict: Mapping of section name to section parameters

        Returns:
            Validated AnalysisConfig

        Raises:
            ConfigurationError: On unknown sections or parameters
        """
        unknown = set(config_dict) - set(_SECTIONS)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration sections: {sorted(unknown)}",
                error_code="CONFIG_UNKNOWN_SECTION",
                context={"valid_sections": sorted(_SECTIONS)}
            )

        sections = {}
        for section_name, section_cls in _SECTIONS.items():
            params = config_dict.get(section_name) or {}
            if not isinstance(params, dict):
                raise ConfigurationError(f"Section '{section_name}' must be a mapping, got {type(params)}")

            valid_fields = {f.name for f in fields(section_cls)}
            bad_fields = set(params) - valid_fields
            if bad_fields:
                raise ConfigurationError(
                    f"Unknown parameters for section '{section_name}': {sorted(bad_fields)}",
                    error_code="CONFIG_UNKNOWN_PARAMETER",
                    context={"section": section_name}
                )
            sections[section_name] = section_cls(**params)

        return cls(**sections)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain nested dictionary."""
        config_dict = asdict(self)
        config_dict["partial_dependence"]["percentiles"] = list(self.partial_dependence.percentiles)
        return config_dict
