"""Tests for the management CLI (cli.py)."""

import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest

import cli

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("cli.configure_logging") as mock_configure:
        yield mock_configure


@pytest.fixture
def alembic_command():
    with patch("cli.command") as mock_command:
        yield mock_command


class TestMain:
    def test_no_command_prints_help(self, capsys, _no_logging_setup):
        assert cli.main([]) == 1

        assert "create-tables" in capsys.readouterr().out
        _no_logging_setup.assert_not_called()

    def test_unknown_command_exits(self):
        with pytest.raises(SystemExit):
            cli.main(["bogus"])

    def test_configures_logging_before_running(self, alembic_command, _no_logging_setup):
        assert cli.main(["current"]) == 0

        _no_logging_setup.assert_called_once_with(db_echo=False)


class TestMigrationCommands:
    def test_migrate_defaults_to_head(self, alembic_command):
        assert cli.main(["migrate"]) == 0

        assert alembic_command.upgrade.call_args.args[1] == "head"

    def test_migrate_to_revision(self, alembic_command):
        cli.main(["migrate", "0001_baseline"])

        assert alembic_command.upgrade.call_args.args[1] == "0001_baseline"

    def test_downgrade_defaults_to_one_step(self, alembic_command):
        cli.main(["downgrade"])

        assert alembic_command.downgrade.call_args.args[1] == "-1"

    @pytest.mark.parametrize("name", ["current", "history"])
    def test_inspection_commands(self, alembic_command, name):
        assert cli.main([name]) == 0

        getattr(alembic_command, name).assert_called_once()

    def test_alembic_config_uses_absolute_paths(self):
        cfg = cli.get_alembic_config()

        script_location = Path(cfg.get_main_option("script_location"))
        assert script_location.is_absolute()
        assert (script_location / "env.py").exists()

    def test_alembic_config_requires_scripts_beside_cli(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "API_DIR", tmp_path)

        with pytest.raises(FileNotFoundError, match="api/ directory"):
            cli.get_alembic_config()

    def test_migrate_without_scripts_fails_before_alembic(
        self, alembic_command, tmp_path, monkeypatch
    ):
        monkeypatch.setattr(cli, "API_DIR", tmp_path)

        with pytest.raises(FileNotFoundError):
            cli.main(["migrate"])

        alembic_command.upgrade.assert_not_called()

    def test_distribution_does_not_install_app_modules(self):
        """Modules only run from api/, where alembic.ini and the scripts live."""
        pyproject = cli.API_DIR.parent / "pyproject.toml"
        setuptools_cfg = tomllib.loads(pyproject.read_text())["tool"]["setuptools"]

        assert setuptools_cfg["packages"] == []
        assert setuptools_cfg["py-modules"] == []


class TestDatabaseCommands:
    def test_create_tables(self):
        with patch("cli.create_tables") as mock_create:
            assert cli.main(["create-tables"]) == 0

        mock_create.assert_awaited_once()

    def test_check_db(self):
        with patch("cli.init_db") as mock_init:
            assert cli.main(["check-db"]) == 0

        mock_init.assert_awaited_once()

    def test_check_db_against_real_database(self):
        assert cli.main(["check-db"]) == 0
