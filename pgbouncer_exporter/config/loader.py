"""Configuration loader with YAML parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..exceptions import ConfigError
from .models import ExporterConfig
from .settings import Settings


class ConfigLoader:
    """Load and validate exporter configuration."""

    @staticmethod
    def load_from_file(
        config_path: str,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None
    ) -> ExporterConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        DATA_SOURCE_NAME / LOG_LEVEL and then *overrides* are applied on top
        of the file.

        Args:
            config_path: Path to YAML configuration file
            overrides: Nested {section: {field: value}} overrides

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        return ConfigLoader._build(ConfigLoader._read_file(config_path), overrides)

    @staticmethod
    def load(
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Dict[str, Any]]] = None
    ) -> ExporterConfig:
        """
        Build configuration from defaults, an optional file, the environment and overrides.

        Later sources win: defaults, then the YAML file, then DATA_SOURCE_NAME
        and LOG_LEVEL, then explicit overrides (usually command line flags).
        Override values of None are ignored.

        Args:
            config_path: Optional path to YAML configuration file
            overrides: Nested {section: {field: value}} overrides

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            ConfigError: If the file cannot be read or the result is invalid
        """
        try:
            if config_path:
                return ConfigLoader.load_from_file(config_path, overrides)
            return ConfigLoader._build({}, overrides)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read configuration file {config_path}: {e}") from e
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _build(
        raw_config: Dict[str, Any],
        overrides: Optional[Dict[str, Dict[str, Any]]]
    ) -> ExporterConfig:
        raw_config = ConfigLoader._merge(raw_config, Settings.overrides())
        raw_config = ConfigLoader._merge(raw_config, overrides or {})
        return ExporterConfig(**raw_config)

    @staticmethod
    def _read_file(config_path: str) -> Dict[str, Any]:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise yaml.YAMLError(f"Top level of {config_path} must be a mapping")

        return ConfigLoader._substitute_env_vars(raw_config)

    @staticmethod
    def _merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recursively merge *updates* into a copy of *base*, skipping None values.

        Args:
            base: Original nested dict
            updates: Nested dict of values to apply

        Returns:
            Dict: Merged copy
        """
        merged = dict(base)
        for key, value in updates.items():
            if value is None:
                continue
            if isinstance(value, dict):
                current = merged.get(key)
                merged[key] = ConfigLoader._merge(current if isinstance(current, dict) else {}, value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
