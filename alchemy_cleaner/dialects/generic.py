"""Adapters for databases without dedicated support."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alchemy_cleaner.dialects.base import Dialect, DialectAdapter
from alchemy_cleaner.exceptions import wrap_clean_failure

if TYPE_CHECKING:
    from sqlalchemy import Connection

__all__ = (
    "DB2Adapter",
    "GenericAdapter",
    "JDBCAdapter",
)


class GenericAdapter(DialectAdapter):
    """Portable behavior: inspector metadata, ``TRUNCATE`` with a ``DELETE`` fallback."""

    dialect = Dialect.GENERIC


class JDBCAdapter(GenericAdapter):
    """Databases reached through a JDBC bridge driver.

    Some targets refuse to truncate referenced tables, which the ``DELETE`` fallback covers.
    """

    dialect = Dialect.JDBC


class DB2Adapter(GenericAdapter):
    """IBM DB2."""

    dialect = Dialect.DB2

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        with wrap_clean_failure(table_name, action="truncate"):
            self.execute(connection, f"TRUNCATE {self.quote(connection, table_name)} IMMEDIATE")
