"""Smoke tests for the command line interface."""

import logging

import pytest
from typer.testing import CliRunner

from bidwatch import __version__
from bidwatch.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every command from a scratch directory with console-only logging."""
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "app.yaml"
    config_path.write_text(
        "database:\n"
        f"  url: sqlite:///{tmp_path / 'cli.db'}\n"
        "logging:\n"
        "  file: null\n"
        "  rich_console: false\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("BIDWATCH_CONFIG", str(config_path))
    yield
    # Handlers hold the runner's captured stderr
    logger = logging.getLogger("bidwatch")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_unknown_portal_exits_with_failure():
    result = runner.invoke(app, ["collect", "run", "--portal", "bec-sp", "--json"])

    assert result.exit_code == 1
    assert '"success": false' in result.output
    assert "Unsupported portal" in result.output


def test_bad_configuration_exits_with_failure(tmp_path, monkeypatch):
    broken = tmp_path / "broken.yaml"
    broken.write_text("fetch: [oops\n", encoding="utf-8")
    monkeypatch.setenv("BIDWATCH_CONFIG", str(broken))

    result = runner.invoke(app, ["collect", "portals"])

    assert result.exit_code == 1


def test_schedule_list():
    result = runner.invoke(app, ["schedule", "list"])

    assert result.exit_code == 0
    assert "Schedules" in result.output


def test_db_init_stamps_latest_revision(tmp_path):
    result = runner.invoke(app, ["db", "init"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "cli.db").exists()

    current = runner.invoke(app, ["db", "current"])

    assert current.exit_code == 0
    assert "001" in current.output


def test_init_writes_a_loadable_default_config(tmp_path, monkeypatch):
    from bidwatch.core.config.loader import load_app_config

    monkeypatch.delenv("BIDWATCH_DATABASE_URL", raising=False)

    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0, result.output
    written = load_app_config(tmp_path / "configs" / "app.yaml")
    assert written.database.url == "sqlite:///data/bidwatch.db"
    assert [s.name for s in written.scheduler.schedules] == [
        "collect_comprasnet_daily",
        "collect_comprasnet_weekly",
    ]
