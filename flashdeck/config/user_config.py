"""
User configuration management for flashdeck.

This module handles user-specific configuration settings with multiple sources:
1. Environment variables (highest precedence)
2. Command-line provided config file
3. Config file in current directory
4. User's XDG config directory
5. Default values (lowest precedence)
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from flashdeck.config.models import FlashdeckSettings
from flashdeck.core.errors import ConfigError
from flashdeck.core.structlog_logger import get_struct_logger, is_debug_enabled


logger = get_struct_logger(__name__)

ENV_PREFIX = "FLASHDECK_"


class UserConfig:
    """Manages user-specific configuration for flashdeck using Pydantic Settings.

    The first existing YAML file on the search path provides file values;
    environment variables override them (handled by Pydantic Settings).
    """

    def __init__(self, cli_config_path: str | Path | None = None):
        """Initialize the user configuration handler.

        Args:
            cli_config_path: Optional config file path provided via CLI
        """
        self._config_sources: dict[str, str] = {}
        self._config_path: Path | None = None
        self._config_paths = self._generate_config_paths(cli_config_path)

        if cli_config_path and not self._config_paths[0].exists():
            raise ConfigError(f"Config file not found: {cli_config_path}")

        self._load_config()

    @property
    def settings(self) -> FlashdeckSettings:
        """The resolved settings."""
        return self._config

    @property
    def config_path(self) -> Path | None:
        """The file the settings were loaded from, if any."""
        return self._config_path

    def _generate_config_paths(self, cli_config_path: str | Path | None) -> list[Path]:
        """Generate a list of config paths to search in order of precedence."""
        config_paths = []

        if cli_config_path:
            config_paths.append(Path(cli_config_path).expanduser().resolve())

        config_paths.extend([Path.cwd() / "flashdeck.yaml", Path.cwd() / ".flashdeck.yml"])

        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        config_root = (
            Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
        )
        config_paths.extend(
            [
                config_root / "flashdeck" / "config.yaml",
                config_root / "flashdeck" / "config.yml",
            ]
        )
        return config_paths

    def _load_config(self) -> None:
        """Load configuration from the first config file found plus environment."""
        if is_debug_enabled():
            logger.debug(
                "config_search_paths", paths=[str(p) for p in self._config_paths]
            )

        config_data: dict[str, Any] = {}
        for path in self._config_paths:
            if path.is_file():
                config_data = self._read_yaml(path)
                self._config_path = path
                self._track_file_sources(config_data, path.name)
                logger.debug("config_file_loaded", path=str(path))
                break
        else:
            logger.debug("no_config_file_found")

        try:
            self._config = FlashdeckSettings(**config_data)
        except PydanticValidationError as e:
            source = self._config_path or "environment"
            raise ConfigError(f"Invalid configuration in {source}: {e}") from e

        self._track_env_var_sources()

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def _track_file_sources(
        self, data: dict[str, Any], filename: str, prefix: str = ""
    ) -> None:
        """Recursively track sources for file-based configuration values."""
        for key, value in data.items():
            current_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                self._track_file_sources(value, filename, current_key)
            else:
                self._config_sources[current_key] = f"file:{filename}"

    def _track_env_var_sources(self) -> None:
        """Track which configuration values came from environment variables."""
        for env_name in os.environ:
            if not env_name.upper().startswith(ENV_PREFIX):
                continue
            config_key = env_name[len(ENV_PREFIX) :].lower().replace("__", ".")
            self._config_sources[config_key] = "environment"

    def get_source(self, key: str) -> str:
        """Get the source of a configuration value (environment, file:name, default)."""
        return self._config_sources.get(key, "default")

    def get_log_level_int(self) -> int:
        """Get the configured log level as a logging module constant."""
        return getattr(logging, self._config.log_level, logging.WARNING)  # type: ignore[no-any-return]

    def as_flat_dict(self) -> dict[str, Any]:
        """Settings flattened to dotted keys, for display."""
        flat: dict[str, Any] = {}

        def _walk(data: dict[str, Any], prefix: str = "") -> None:
            for key, value in data.items():
                dotted = f"{prefix}.{key}" if prefix else key
                if isinstance(value, dict):
                    _walk(value, dotted)
                else:
                    flat[dotted] = value

        _walk(self._config.model_dump(mode="json"))
        return flat


def create_user_config(cli_config_path: str | Path | None = None) -> UserConfig:
    """Create a UserConfig instance.

    Args:
        cli_config_path: Optional config file path provided via CLI

    Returns:
        Configured UserConfig instance
    """
    return UserConfig(cli_config_path=cli_config_path)
