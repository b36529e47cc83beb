from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

from sqlalchemy import Column, Integer, MetaData, String, Table, func, insert, select

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Engine
    from sqlalchemy.engine import Dialect

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50)),
    sqlite_autoincrement=True,
)
agents = Table(
    "agents",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50)),
    sqlite_autoincrement=True,
)
schema_migrations = Table(
    "schema_migrations",
    metadata,
    Column("version", String(32), primary_key=True),
)


def insert_rows(engine: Engine, table: Table, count: int = 2) -> list[int]:
    """Insert ``count`` rows and return their ids."""
    with engine.begin() as connection:
        return [
            connection.execute(insert(table).values(name=f"{table.name}-{index}")).inserted_primary_key[0]
            for index in range(count)
        ]


def count_rows(engine: Engine, table: Table) -> int:
    with engine.connect() as connection:
        return connection.execute(select(func.count()).select_from(table)).scalar_one()


def recording_connection(
    dialect: Dialect,
    responses: Mapping[str, Any] | None = None,
    failures: Mapping[str, BaseException] | None = None,
) -> MagicMock:
    """Build a mock connection that records the SQL it executes.

    Statements are recorded with normalized whitespace in ``connection.executed``. A statement containing
    a key of ``failures`` raises the mapped exception, one containing a key of ``responses`` returns a
    result whose ``scalar()``, ``scalars()`` and iteration produce the mapped value.
    """
    connection = MagicMock()
    connection.dialect = dialect
    connection.executed = []

    def execute(statement: Any, params: Any = None) -> MagicMock:
        sql = " ".join(str(statement).split())
        connection.executed.append(sql)
        for fragment, exc in (failures or {}).items():
            if fragment in sql:
                raise exc
        result = MagicMock()
        for fragment, value in (responses or {}).items():
            if fragment in sql:
                rows = value if isinstance(value, list) else [value]
                result.scalar.return_value = value
                result.first.return_value = rows[0] if value is not None and rows else None
                result.scalars.return_value = rows
                result.__iter__.return_value = iter(rows)
        return result

    connection.execute.side_effect = execute
    return connection
