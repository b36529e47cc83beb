from __future__ import annotations

from typing import TYPE_CHECKING

from alchemy_cleaner.config.database import DEFAULT_BOOKKEEPING_TABLES
from alchemy_cleaner.dialects.base import Dialect, DialectAdapter, detect_dialect, unqualified
from alchemy_cleaner.dialects.generic import DB2Adapter, GenericAdapter, JDBCAdapter
from alchemy_cleaner.dialects.mssql import MSSQLAdapter
from alchemy_cleaner.dialects.mysql import MySQLAdapter
from alchemy_cleaner.dialects.oracle import OracleAdapter
from alchemy_cleaner.dialects.postgresql import PostgresAdapter
from alchemy_cleaner.dialects.sqlite import SQLiteAdapter

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy import Connection, Engine

__all__ = (
    "ADAPTERS",
    "DB2Adapter",
    "Dialect",
    "DialectAdapter",
    "GenericAdapter",
    "JDBCAdapter",
    "MSSQLAdapter",
    "MySQLAdapter",
    "OracleAdapter",
    "PostgresAdapter",
    "SQLiteAdapter",
    "detect_dialect",
    "get_adapter",
    "unqualified",
)

ADAPTERS: dict[Dialect, type[DialectAdapter]] = {
    Dialect.GENERIC: GenericAdapter,
    Dialect.MYSQL: MySQLAdapter,
    Dialect.POSTGRESQL: PostgresAdapter,
    Dialect.SQLITE: SQLiteAdapter,
    Dialect.ORACLE: OracleAdapter,
    Dialect.MSSQL: MSSQLAdapter,
    Dialect.DB2: DB2Adapter,
    Dialect.JDBC: JDBCAdapter,
}


def get_adapter(
    bind: Engine | Connection,
    bookkeeping_tables: Collection[str] = DEFAULT_BOOKKEEPING_TABLES,
) -> DialectAdapter:
    """Return the adapter for the database behind ``bind``.

    Args:
        bind: Engine or connection whose dialect selects the adapter.
        bookkeeping_tables: Migration bookkeeping tables the adapter never lists.

    Returns:
        A new adapter instance.
    """
    return ADAPTERS[detect_dialect(bind)](bookkeeping_tables)
