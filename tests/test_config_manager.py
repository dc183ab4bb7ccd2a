"""Tests for the INI configuration file and its validation."""

import configparser

import pytest

from cms_migrator.exceptions import ConfigurationError
from cms_migrator.models.config import MigrationConfig
from cms_migrator.storage.config_manager import (
    PASSWORD_ENV,
    USERNAME_ENV,
    ConfigManager,
    default_config_path,
)


@pytest.fixture()
def manager(tmp_path) -> ConfigManager:
    return ConfigManager(tmp_path / "cms-migrator" / "config.ini")


@pytest.fixture(autouse=True)
def no_env_credentials(monkeypatch):
    monkeypatch.delenv(USERNAME_ENV, raising=False)
    monkeypatch.delenv(PASSWORD_ENV, raising=False)


def read_ini(path) -> configparser.SectionProxy:
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")
    return parser["DEFAULT"]


def test_save_then_load(manager):
    manager.save_new_config(
        {
            "source_url": "https://source.example.com",
            "destination_url": "https://dest.example.com",
            "username": "admin",
            "password": "p%ss",
            "workers": 2,
            "headless": False,
        }
    )

    section = read_ini(manager.config_file_path)
    assert set(section) == MigrationConfig.get_ini_keys()
    assert section["headless"] == "false"
    assert section["max_index_pages"] == "-1"

    config = manager.load_config()
    assert config.source_url == "https://source.example.com"
    assert config.password == "p%ss"
    assert config.workers == 2
    assert config.headless is False
    assert config.navigation_timeout == 30.0
    assert config.config_path == str(manager.config_file_path.parent)


def test_cli_options_override_the_file(manager):
    manager.save_new_config({"source_url": "https://source.example.com"})
    config = manager.load_config({"workers": 5, "dry_run": True, "max_index_pages": None})
    assert config.workers == 5
    assert config.dry_run is True
    assert config.max_index_pages == -1


def test_credentials_from_environment(manager, monkeypatch):
    manager.save_new_config({"source_url": "https://source.example.com", "username": "file-user"})
    monkeypatch.setenv(USERNAME_ENV, "env-user")
    monkeypatch.setenv(PASSWORD_ENV, "env-secret")

    config = manager.load_config()
    assert config.username == "file-user"
    assert config.password == "env-secret"
    assert config.has_credentials()


def test_missing_keys_are_added(manager):
    manager.config_file_path.parent.mkdir(parents=True)
    manager.config_file_path.write_text(
        "[DEFAULT]\nsource_url = https://source.example.com\nworkers = 4\n", encoding="utf-8"
    )

    config = manager.load_config()

    assert config.workers == 4
    assert config.stable_required_reads == 3
    section = read_ini(manager.config_file_path)
    assert section["workers"] == "4"
    assert section["create_max_attempts"] == "10"
    assert set(section) == MigrationConfig.get_ini_keys()


def test_missing_file(manager):
    with pytest.raises(ConfigurationError, match="cms-migrator init"):
        manager.load_config()


@pytest.mark.parametrize(
    ("line", "match"),
    [
        ("workers = many", "Invalid value"),
        ("workers = 9", "between 1 and 5"),
        ("destination_url = dest.example.com", "absolute URL"),
        ("max_index_pages = 0", "max_index_pages"),
        ("stable_timeout = 0.5", "stable_timeout"),
    ],
)
def test_invalid_values(manager, line, match):
    manager.config_file_path.parent.mkdir(parents=True)
    manager.config_file_path.write_text(
        f"[DEFAULT]\nsource_url = https://source.example.com\n{line}\n", encoding="utf-8"
    )
    with pytest.raises(ConfigurationError, match=match):
        manager.load_config()


def test_source_url_is_required(manager):
    manager.config_file_path.parent.mkdir(parents=True)
    manager.config_file_path.write_text("[DEFAULT]\nworkers = 2\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="source_url"):
        manager.load_config()
    assert "source_url" not in read_ini(manager.config_file_path)


def test_invalid_settings_are_not_saved(manager):
    with pytest.raises(ConfigurationError):
        manager.save_new_config({"source_url": "not a url"})
    assert not manager.config_file_path.exists()


def test_default_config_path(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert default_config_path() == tmp_path / "cms-migrator" / "config.ini"
