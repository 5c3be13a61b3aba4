# tree_pricing/config/loader.py
"""Configuration loading for pricing analyses.

YAML configuration files are parsed with PyYAML, merged over the
defaults and optionally overridden from environment variables of the
form ``TREE_PRICING_<SECTION>_<KEY>``.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .analysis_config import AnalysisConfig, _SECTIONS
from ..utils.logger import get_logger
from ..utils.exceptions import (
    ConfigurationError,
    handle_and_reraise,
    create_error_context
)

logger = get_logger(__name__)

ENV_PREFIX = "TREE_PRICING_"


class ConfigLoader:
    """Loads ``AnalysisConfig`` objects from YAML files and dictionaries.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load('config/mtpl.yaml')
        >>> config.lift.n_bins
        10
    """

    def __init__(
        self,
        allow_environment_override: bool = True,
        encoding: str = 'utf-8'
    ) -> None:
        """Initialize configuration loader.

        Args:
            allow_environment_override: Whether to apply TREE_PRICING_* variables
            encoding: File encoding for configuration files
        """
        self.allow_environment_override = allow_environment_override
        self.encoding = encoding

    def load_yaml(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Read a YAML mapping of section name to parameters.

        An empty file yields an empty mapping (all defaults).

        Raises:
            ConfigurationError: If the file is missing, unreadable, not valid
                YAML or not a mapping at the top level
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                error_code="CONFIG_NOT_FOUND",
                context={"file_path": str(file_path)}
            )

        try:
            config = yaml.safe_load(file_path.read_text(encoding=self.encoding)) or {}
        except (OSError, yaml.YAMLError) as e:
            handle_and_reraise(
                e, ConfigurationError,
                f"Cannot read configuration file {file_path}",
                error_code="CONFIG_LOAD_FAILED",
                context=create_error_context(file_path=str(file_path))
            )

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Configuration file {file_path} must map section names to parameters, "
                f"got {type(config).__name__}",
                error_code="CONFIG_NOT_MAPPING"
            )

        logger.debug(f"Read sections {sorted(config)} from {file_path}")
        return config

    def save_yaml(self, config: Dict[str, Any], file_path: Union[str, Path]) -> None:
        """Write a configuration dictionary as YAML, keeping section order."""
        file_path = Path(file_path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(
                yaml.safe_dump(config, default_flow_style=False, sort_keys=False),
                encoding=self.encoding
            )
        except OSError as e:
            handle_and_reraise(
                e, ConfigurationError,
                f"Cannot write configuration to {file_path}",
                error_code="CONFIG_SAVE_FAILED"
            )

        logger.info(f"Configuration saved to {file_path}")

    def apply_environment_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to a configuration dictionary.

        Variables are read as ``TREE_PRICING_<SECTION>_<KEY>=value`` where
        SECTION is one of the configuration sections, e.g.
        ``TREE_PRICING_LIFT_N_BINS=5``.
        """
        if not self.allow_environment_override:
            return config

        merged = {section: dict(values or {}) for section, values in config.items()}
        applied = []

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            remainder = env_key[len(ENV_PREFIX):].lower()
            section = next(
                (name for name in _SECTIONS if remainder.startswith(f"{name}_")),
                None
            )
            if section is None:
                logger.warning(f"Ignoring environment override with unknown section: {env_key}")
                continue

            key = remainder[len(section) + 1:]
            merged.setdefault(section, {})[key] = self._parse_env_value(env_value)
            applied.append(env_key)

        if applied:
            logger.info(f"Applying environment overrides: {sorted(applied)}")

        return merged

    def _parse_env_value(self, value: str) -> Any:
        """Numbers, booleans, null and lists parse as JSON; anything else stays a string."""
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return {"true": True, "false": False}.get(value.lower(), value)

    def load(self, config_file: Optional[Union[str, Path]] = None) -> AnalysisConfig:
        """Load a complete analysis configuration.

        Args:
            config_file: Optional YAML file; defaults are used when omitted

        Returns:
            Validated AnalysisConfig
        """
        config_dict = self.load_yaml(config_file) if config_file else {}
        config_dict = self.apply_environment_overrides(config_dict)
        return AnalysisConfig.from_dict(config_dict)


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    allow_environment_override: bool = True
) -> AnalysisConfig:
    """Load an analysis configuration from YAML.

    Example:
        >>> config = load_config('config/mtpl.yaml')
        >>> print(config.boosted.n_estimators)
    """
    loader = ConfigLoader(allow_environment_override=allow_environment_override)
    return loader.load(config_file)


def save_config(config: AnalysisConfig, file_path: Union[str, Path]) -> None:
    """Save an analysis configuration to YAML."""
    ConfigLoader().save_yaml(config.to_dict(), file_path)
