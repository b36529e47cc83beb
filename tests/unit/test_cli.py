from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from alchemy_cleaner.cli import add_cleaner_commands, get_cleaner_group
from alchemy_cleaner.config import CleanerConfig
from tests.helpers import agents, count_rows, insert_rows, users

if TYPE_CHECKING:
    from click import Group
    from pytest_mock import MockerFixture
    from sqlalchemy import Engine


@pytest.fixture
def cli_runner() -> Generator[CliRunner, None, None]:
    """Create a Click CLI test runner."""
    yield CliRunner()


@pytest.fixture
def cleaner_cli(mocker: MockerFixture, cleaner_config: CleanerConfig) -> Generator[Group, None, None]:
    """Create the cleaner CLI group, loading ``cleaner_config`` for any ``--config`` path."""
    mocker.patch("alchemy_cleaner.utils.module_loader.import_string", return_value=cleaner_config)
    yield add_cleaner_commands()


@pytest.fixture
def populated(engine: Engine) -> Engine:
    insert_rows(engine, users)
    insert_rows(engine, agents)
    return engine


def test_group_requires_config(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(add_cleaner_commands(get_cleaner_group()), ["tables"])

    assert result.exit_code != 0
    assert "--config" in result.output


def test_bad_config_path(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(add_cleaner_commands(), ["--config", "tests.unit.missing.config", "tables"])

    assert result.exit_code == 1
    assert "Error loading config" in result.output


def test_config_of_wrong_type(cli_runner: CliRunner, mocker: MockerFixture) -> None:
    mocker.patch("alchemy_cleaner.utils.module_loader.import_string", return_value=object())

    result = cli_runner.invoke(add_cleaner_commands(), ["--config", "myapp.config", "tables"])

    assert result.exit_code == 1
    assert "Expected a CleanerConfig or an Engine" in result.output


def test_engine_as_config(cli_runner: CliRunner, mocker: MockerFixture, engine: Engine) -> None:
    mocker.patch("alchemy_cleaner.utils.module_loader.import_string", return_value=engine)

    result = cli_runner.invoke(add_cleaner_commands(), ["--config", "myapp.engine", "tables"])

    assert result.exit_code == 0
    assert "users" in result.output


def test_tables(cli_runner: CliRunner, cleaner_cli: Group) -> None:
    result = cli_runner.invoke(cleaner_cli, ["--config", "myapp.config", "tables"])

    assert result.exit_code == 0
    assert "users" in result.output
    assert "agents" in result.output
    assert "schema_migrations" not in result.output
    assert "user_names" not in result.output


def test_tables_with_except(cli_runner: CliRunner, cleaner_cli: Group) -> None:
    result = cli_runner.invoke(cleaner_cli, ["--config", "myapp.config", "tables", "--except", "users"])

    assert result.exit_code == 0
    assert "agents" in result.output
    assert "users" not in result.output


def test_tables_with_only_and_except(cli_runner: CliRunner, cleaner_cli: Group) -> None:
    result = cli_runner.invoke(
        cleaner_cli,
        ["--config", "myapp.config", "tables", "--only", "users", "--except", "agents"],
    )

    assert result.exit_code == 1
    assert "either 'only' or 'except'" in result.output


def test_tables_pre_count_with_nothing_written(cli_runner: CliRunner, cleaner_cli: Group) -> None:
    result = cli_runner.invoke(cleaner_cli, ["--config", "myapp.config", "tables", "--pre-count"])

    assert result.exit_code == 0
    assert "No tables to clean" in result.output


def test_clean(cli_runner: CliRunner, cleaner_cli: Group, populated: Engine) -> None:
    result = cli_runner.invoke(cleaner_cli, ["--config", "myapp.config", "clean", "--no-prompt"])

    assert result.exit_code == 0
    assert "Database cleaned" in result.output
    assert count_rows(populated, users) == 0
    assert insert_rows(populated, users, 1) == [1]


def test_clean_with_deletion(cli_runner: CliRunner, cleaner_cli: Group, populated: Engine) -> None:
    result = cli_runner.invoke(
        cleaner_cli,
        ["--config", "myapp.config", "clean", "--strategy", "deletion", "--only", "agents", "--no-prompt"],
    )

    assert result.exit_code == 0
    assert count_rows(populated, users) == 2
    assert count_rows(populated, agents) == 0
    assert insert_rows(populated, agents, 1) == [3]


def test_clean_without_resetting_ids(cli_runner: CliRunner, cleaner_cli: Group, populated: Engine) -> None:
    result = cli_runner.invoke(cleaner_cli, ["--config", "myapp.config", "clean", "--no-reset-ids", "--no-prompt"])

    assert result.exit_code == 0
    assert insert_rows(populated, users, 1) == [3]


def test_clean_declined(cli_runner: CliRunner, cleaner_cli: Group, populated: Engine) -> None:
    result = cli_runner.invoke(cleaner_cli, ["--config", "myapp.config", "clean"], input="n\n")

    assert result.exit_code == 0
    assert count_rows(populated, users) == 2


def test_transaction_strategy_is_not_offered(cli_runner: CliRunner, cleaner_cli: Group) -> None:
    result = cli_runner.invoke(
        cleaner_cli,
        ["--config", "myapp.config", "clean", "--strategy", "transaction", "--no-prompt"],
    )

    assert result.exit_code == 2


def test_unresolvable_database(cli_runner: CliRunner, mocker: MockerFixture, tmp_path: Path) -> None:
    mocker.patch(
        "alchemy_cleaner.utils.module_loader.import_string",
        return_value=CleanerConfig(config_file_location=tmp_path / "missing.yml"),
    )

    result = cli_runner.invoke(add_cleaner_commands(), ["--config", "myapp.config", "clean", "--no-prompt"])

    assert result.exit_code == 1
    assert "Cannot resolve a connection" in result.output


def test_version(cli_runner: CliRunner) -> None:
    from alchemy_cleaner.__metadata__ import __version__

    result = cli_runner.invoke(add_cleaner_commands(), ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
