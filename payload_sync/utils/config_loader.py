"""Configuration loader for the Payload sync system."""

import os
import re
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from payload_sync.errors import ConfigurationError
from payload_sync.models.config import AppConfig

log = structlog.stdlib.get_logger()


class ConfigLoader:
    """Loads and validates application configuration from YAML files and environment variables."""

    def __init__(self, environ: Optional[Dict[str, str]] = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            environ: Mapping used for ${VAR} substitution. Defaults to os.environ.
        """
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")
        self._environ = environ

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to the configuration YAML file. If None, uses
                config/{APP_ENV}.yaml and falls back to config/default.yaml

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If the file is missing or invalid, a referenced
                environment variable is unset, or validation fails
        """
        if config_path is None:
            config_path = self._get_default_config_path()

        log.info("loading_configuration", config_path=config_path)

        config_dict = self._load_yaml_file(config_path)
        config_dict = self._substitute_env_vars(config_dict)

        try:
            app_config = AppConfig(**config_dict)
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        log.info(
            "configuration_loaded_successfully",
            collections=[c.api_path for c in app_config.collections],
        )
        return app_config

    def _getenv(self, name: str) -> Optional[str]:
        if self._environ is not None:
            return self._environ.get(name)
        return os.getenv(name)

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path based on environment.

        Returns:
            str: Path to the configuration file
        """
        env = self._getenv("APP_ENV") or "default"
        config_dir = Path(__file__).parent.parent.parent / "config"
        config_file = config_dir / f"{env}.yaml"

        if not config_file.exists():
            config_file = config_dir / "default.yaml"

        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}. "
                f"Please create config/default.yaml or set APP_ENV to a valid environment."
            )

        return str(config_file)

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        """Load YAML configuration file.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(config_path, "r") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration file {config_path}: {e}") from e

        if config_dict is None:
            raise ConfigurationError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute ${VAR_NAME} references in configuration values."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        else:
            return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        """Substitute environment variables in a string.

        Raises:
            ConfigurationError: If a referenced environment variable is unset or empty
        """
        for var_name in self.env_var_pattern.findall(value):
            env_value = self._getenv(var_name)
            if not env_value:
                raise ConfigurationError(f"{var_name} environment variable is not set")
            value = value.replace(f"${{{var_name}}}", env_value)

        return value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Validate configuration and return any warnings.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []

        counts = Counter(c.api_path for c in config.collections)
        duplicates = sorted(path for path, count in counts.items() if count > 1)
        if duplicates:
            warnings.append(
                f"collections {duplicates} are configured more than once and share one store namespace"
            )

        if config.scheduler.max_delay < config.scheduler.base_delay:
            warnings.append(
                f"scheduler.max_delay ({config.scheduler.max_delay}) is lower than "
                f"scheduler.base_delay ({config.scheduler.base_delay})"
            )

        if not config.store.path:
            warnings.append("store.path is not set; synced records will not survive a restart")

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
