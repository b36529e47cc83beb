from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, insert, text

from alchemy_cleaner.config import CleanerConfig
from tests.helpers import metadata, schema_migrations

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from sqlalchemy import Engine


@pytest.fixture(autouse=True, scope="session")
def configure_logging() -> None:
    """Show the SQL issued by the cleaner when a test fails."""
    logging.getLogger("alchemy_cleaner").setLevel(logging.DEBUG)


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """File backed SQLite database with two tables, a view and a migration bookkeeping table."""
    engine = create_engine(f"sqlite:///{tmp_path / 'cleaner.db'}")
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(text("CREATE VIEW user_names AS SELECT name FROM users"))
        connection.execute(insert(schema_migrations).values(version="20240101000000"))
    yield engine
    engine.dispose()


@pytest.fixture
def cleaner_config(engine: Engine, tmp_path: Path) -> CleanerConfig:
    return CleanerConfig(config_file_location=tmp_path / "database.yml", default_engine=engine)
