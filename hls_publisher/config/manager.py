"""
Configuration management for HLS publisher.

This module handles loading, validating, and saving configuration from YAML
files. Storage credentials can also come from the environment.
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from hls_publisher.config.models import PublisherConfig
from hls_publisher.utils import ConfigurationError, get_logger

logger = get_logger(__name__)

# Environment variable -> storage config field
ENV_OVERRIDES = {
    "B2_KEY_ID": "key_id",
    "B2_APPLICATION_KEY": "application_key",
    "B2_BUCKET_ID": "bucket_id",
    "B2_BUCKET_NAME": "bucket_name",
}


class ConfigManager:
    """Manages publisher configuration."""

    DEFAULT_CONFIG_LOCATIONS = [
        Path.home() / ".hls-publisher.yaml",
        Path.home() / ".config" / "hls-publisher" / "config.yaml",
        Path.cwd() / ".hls-publisher.yaml",
    ]

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file
            environ: Environment to read credentials from (os.environ if None)
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self._config: Optional[PublisherConfig] = None

    @property
    def config(self) -> PublisherConfig:
        """
        Get current configuration, loading it if necessary.

        Raises:
            ConfigurationError: If configuration cannot be loaded
        """
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self, config_path: Optional[Path] = None) -> PublisherConfig:
        """
        Load configuration from file or create default, then apply environment overrides.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Loaded PublisherConfig

        Raises:
            ConfigurationError: If configuration file is missing or invalid
        """
        path = config_path or self.config_path

        if path:
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")
            data = self._read_file(path)
        else:
            data = None
            for default_path in self.DEFAULT_CONFIG_LOCATIONS:
                if default_path.exists():
                    logger.info(f"Loading configuration from {default_path}")
                    data = self._read_file(default_path)
                    break

        if data is None:
            logger.info("No configuration file found, using defaults")
            data = PublisherConfig.create_default().model_dump(mode="json")

        data = self._apply_env_overrides(data)

        try:
            return PublisherConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _read_file(self, path: Path) -> dict[str, Any]:
        """
        Read raw configuration mapping from a YAML file.

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")

        logger.debug(f"Read configuration from {path}")
        return data

    def _apply_env_overrides(self, data: dict[str, Any]) -> dict[str, Any]:
        """Overlay B2_* environment variables onto the storage section."""
        storage = dict(data.get("storage") or {})
        for env_name, field_name in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                storage[field_name] = value
                logger.debug(f"Using {env_name} from environment")
        if storage:
            data = {**data, "storage": storage}
        return data

    def save(self, path: Optional[Path] = None, config: Optional[PublisherConfig] = None) -> None:
        """
        Save configuration to file.

        Args:
            path: Path to save configuration (uses default if None)
            config: Configuration to save (uses current if None)

        Raises:
            ConfigurationError: If configuration cannot be saved
        """
        cfg = config or self.config
        save_path = path or self.config_path or self.DEFAULT_CONFIG_LOCATIONS[0]

        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            data = cfg.model_dump(mode="json")

            with open(save_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)

            logger.info(f"Configuration saved to {save_path}")

        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def init_default_config(self, path: Optional[Path] = None, force: bool = False) -> Path:
        """
        Initialize default configuration file.

        Args:
            path: Path to create configuration file (uses default if None)
            force: Overwrite existing file

        Returns:
            Path to created configuration file

        Raises:
            ConfigurationError: If file already exists and force=False
        """
        target_path = path or self.DEFAULT_CONFIG_LOCATIONS[0]

        if target_path.exists() and not force:
            raise ConfigurationError(
                f"Configuration file already exists: {target_path}. Use force=True to overwrite."
            )

        self.save(target_path, PublisherConfig.create_default())
        return target_path

    def reload(self) -> PublisherConfig:
        """Reload configuration from file."""
        self._config = None
        return self.config


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """
    Get global configuration manager instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager(config_path)

    return _config_manager


def get_config(config_path: Optional[Path] = None) -> PublisherConfig:
    """Get publisher configuration."""
    return get_config_manager(config_path).config
