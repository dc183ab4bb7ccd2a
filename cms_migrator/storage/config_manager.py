"""
Reads, writes and upgrades the INI file behind MigrationConfig.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cms_migrator.exceptions import ConfigurationError
from cms_migrator.models.config import MigrationConfig

log = logging.getLogger(__name__)

USERNAME_ENV = "CMS_USER"
PASSWORD_ENV = "CMS_PASSWORD"

_BOOL_KEYS = {"headless", "dry_run"}
_INT_KEYS = {
    "workers",
    "max_index_pages",
    "navigation_attempts",
    "stable_required_reads",
    "create_max_attempts",
}
_FLOAT_KEYS = {
    "navigation_timeout",
    "stable_poll_interval",
    "stable_timeout",
    "http_timeout",
}


def default_config_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / "cms-migrator" / "config.ini"


class ConfigManager:
    """Owns one INI file: loads it into a validated config and writes new ones."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> MigrationConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.

        Credentials missing from the file are taken from the CMS_USER and
        CMS_PASSWORD environment variables.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'cms-migrator init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        settings = self._get_config_as_dict()
        if not settings.get("username"):
            settings["username"] = os.environ.get(USERNAME_ENV, "")
        if not settings.get("password"):
            settings["password"] = os.environ.get(PASSWORD_ENV, "")

        if cli_options:
            settings.update({k: v for k, v in cli_options.items() if v is not None})

        try:
            config_dir = self.config_file_path.parent
            return MigrationConfig(**settings, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Validates ``settings`` and writes them as a fresh configuration file.

        Args:
            settings: A dictionary of settings to save. Missing keys get their
            model defaults.
        """
        try:
            MigrationConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}
        defaults = MigrationConfig.model_construct()

        for key in sorted(MigrationConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = _to_ini(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Typed values of every known key present in the DEFAULT section."""
        section = self._parser["DEFAULT"]
        settings: dict[str, Any] = {}
        try:
            for key in MigrationConfig.get_ini_keys():
                if key not in section:
                    continue
                if key in _BOOL_KEYS:
                    settings[key] = section.getboolean(key)
                elif key in _INT_KEYS:
                    settings[key] = section.getint(key)
                elif key in _FLOAT_KEYS:
                    settings[key] = section.getfloat(key)
                else:
                    settings[key] = section.get(key, "")
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e
        return settings

    def _migrate_if_needed(self) -> bool:
        """Writes defaults for keys an older file lacks; True when the file changed."""
        defaults = MigrationConfig.model_construct()
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(MigrationConfig.get_ini_keys()):
            if key in config_section or key == "source_url":
                continue
            config_section[key] = _to_ini(getattr(defaults, key, ""))
            needs_saving = True
            log.debug(
                f"Migrating config: added missing key '{key}' with "
                f"value '{config_section[key]}'."
            )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving


def _to_ini(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)
