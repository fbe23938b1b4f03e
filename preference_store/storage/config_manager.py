"""
Manages loading and saving of the INI configuration file for the preference store.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from preference_store.exceptions import ConfigurationError
from preference_store.models.config import StoreConfig

log = logging.getLogger(__name__)

SECTION = "preferences"

# Environment variables that override the file, keyed by config field
ENV_OVERRIDES = {
    "persistence_enabled": "PREFERENCES_PERSISTENCE",
    "caching_enabled": "PREFERENCES_CACHING",
    "database_path": "PREFERENCES_DATABASE",
}


class ConfigManager:
    """Handles all operations related to the preference store's INI config file."""

    def __init__(self, config_file_path: Path | None = None):
        self.config_file_path = Path(config_file_path) if config_file_path else None
        self._parser = configparser.ConfigParser()

    def load_config(self, overrides: dict[str, Any] | None = None) -> StoreConfig:
        """
        Loads configuration from the INI file and the environment, applies
        overrides, and validates it.

        A missing file is not an error: defaults are used instead.

        Args:
            overrides: Settings that take precedence over the file and environment.

        Returns:
            A validated StoreConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        settings: dict[str, Any] = {}

        if self.config_file_path is not None and self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e
            settings.update(self._get_config_as_dict())
        elif self.config_file_path is not None:
            log.debug(
                f"No configuration file at '{self.config_file_path}', using defaults."
            )

        settings.update(self._get_env_overrides())

        if overrides:
            settings.update(overrides)

        try:
            return StoreConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed:\n{e}"
            ) from e

    def save_config(self, config: StoreConfig) -> None:
        """
        Writes a configuration to the INI file.

        Raises:
            ConfigurationError: If there is no file path or the file cannot be written.
        """
        if self.config_file_path is None:
            raise ConfigurationError("No configuration file path was given.")

        parser = configparser.ConfigParser()
        parser[SECTION] = {}
        for key in sorted(StoreConfig.get_ini_keys()):
            value = getattr(config, key)
            if isinstance(value, bool):
                parser[SECTION][key] = "true" if value else "false"
            elif value is not None:
                parser[SECTION][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                parser.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the preferences section of the INI file into a dictionary."""
        if not self._parser.has_section(SECTION):
            return {}
        section = self._parser[SECTION]
        known = StoreConfig.get_ini_keys()
        for key in section:
            if key not in known:
                log.warning(f"Ignoring unknown configuration key '{key}'.")

        try:
            settings: dict[str, Any] = {
                "persistence_enabled": section.getboolean("persistence_enabled", True),
                "caching_enabled": section.getboolean("caching_enabled", True),
                "cache_backend": section.get("cache_backend", "memory"),
                "cache_max_age_days": section.getint("cache_max_age_days", 1),
                "auto_provision": section.getboolean("auto_provision", True),
            }
            if "cache_max_entries" in section:
                settings["cache_max_entries"] = section.getint("cache_max_entries")
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        for key in ("cache_dir", "database_path"):
            if key in section:
                settings[key] = section.get(key)
        return settings

    def _get_env_overrides(self) -> dict[str, Any]:
        """Collects raw environment strings; StoreConfig parses and validates them."""
        return {
            key: os.environ[name]
            for key, name in ENV_OVERRIDES.items()
            if name in os.environ
        }
