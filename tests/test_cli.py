"""Tests for the command-line commands that need no browser."""

import pytest
from typer.testing import CliRunner

from cms_migrator import __version__
from cms_migrator.cli import app as cli
from cms_migrator.models.entities import Category, Event
from cms_migrator.models.state import State
from cms_migrator.storage.snapshot import SnapshotStore, Stage

runner = CliRunner()


@pytest.fixture()
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config" / "config.ini"
    monkeypatch.setattr(cli, "CONFIG_FILE", path)
    monkeypatch.chdir(tmp_path)
    return path


def test_version():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_then_validate(config_file):
    result = runner.invoke(
        cli.app,
        ["init", "https://source.example.com", "-d", "https://dest.example.com", "-u", "admin"],
    )
    assert result.exit_code == 0, result.output
    assert config_file.is_file()
    assert "No credentials stored" in result.output

    result = runner.invoke(cli.app, ["validate"])
    assert result.exit_code == 0, result.output
    assert "https://dest.example.com" in result.output


def test_init_asks_before_overwriting(config_file):
    runner.invoke(cli.app, ["init", "https://source.example.com"])
    result = runner.invoke(cli.app, ["init", "https://other.example.com"], input="n\n")
    assert result.exit_code != 0
    assert "source.example.com" in config_file.read_text(encoding="utf-8")


def test_show_config_hides_the_password(config_file):
    runner.invoke(cli.app, ["init", "https://source.example.com", "-u", "admin", "-p", "s3cret"])
    result = runner.invoke(cli.app, ["--show-config"])
    assert result.exit_code == 0
    assert "s3cret" not in result.output
    assert "********" in result.output


def test_validate_without_config(config_file):
    result = runner.invoke(cli.app, ["validate"])
    assert result.exit_code == 1
    assert "invalid" in result.output


def test_run_rejects_the_dashboard(config_file):
    result = runner.invoke(cli.app, ["run", Category.DASHBOARD.value])
    assert result.exit_code == 1
    assert "revert" in result.output


def test_status_counts_states(config_file, tmp_path):
    runner.invoke(cli.app, ["init", "https://source.example.com"])
    store = SnapshotStore(tmp_path / "snapshots", Category.EVENTS)
    failed = Event(href="https://source.example.com/events/2", title="Broken event", state=State.INDEX)
    failed.lifecycle.fail(failed, "Navigation timed out")
    store.write(
        Stage.DETAILS,
        [Event(href="https://source.example.com/events/1", title="Fine", state=State.DETAILS), failed],
    )

    result = runner.invoke(cli.app, ["status", "events"])

    assert result.exit_code == 0, result.output
    assert "Details: 1" in result.output
    assert "Error: 1" in result.output
    assert "Broken event" in result.output


def test_status_without_snapshots(config_file):
    runner.invoke(cli.app, ["init", "https://source.example.com"])
    result = runner.invoke(cli.app, ["status", "persons"])
    assert result.exit_code == 0
    assert "No snapshots" in result.output


def test_error_suggestions_follow_the_class_hierarchy():
    from cms_migrator.cli.formatters import FALLBACK_SUGGESTIONS, SUGGESTIONS, suggestions_for
    from cms_migrator.exceptions import DownloadError, FileUnavailableError

    assert suggestions_for(FileUnavailableError("gone")) == SUGGESTIONS[DownloadError]
    assert suggestions_for(ValueError("odd")) == FALLBACK_SUGGESTIONS
