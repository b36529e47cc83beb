"""Microsoft SQL Server."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import DBAPIError

from alchemy_cleaner.dialects.base import Dialect, DialectAdapter
from alchemy_cleaner.exceptions import CleanFailure, is_connection_lost, wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlalchemy import Connection

__all__ = ("MSSQLAdapter",)

logger = logging.getLogger("alchemy_cleaner")


class MSSQLAdapter(DialectAdapter):
    """SQL Server: ``TRUNCATE TABLE``, or ``DELETE`` plus an identity reseed for referenced tables."""

    dialect = Dialect.MSSQL

    def has_been_written(self, connection: Connection, table_name: str) -> bool:
        if self.has_rows(connection, table_name):
            return True
        # last_value stays NULL until the first insert and after a TRUNCATE.
        with wrap_clean_failure(table_name, action="read the identity of"):
            value = self.execute(
                connection,
                "SELECT last_value FROM sys.identity_columns WHERE object_id = OBJECT_ID(:table_name)",
                {"table_name": table_name},
            ).scalar()
        return value is not None

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        quoted = self.quote(connection, table_name)
        try:
            self.execute(connection, f"TRUNCATE TABLE {quoted}")
        except DBAPIError as exc:
            # Tables referenced by a foreign key cannot be truncated, even with the constraint disabled.
            if is_connection_lost(exc):
                raise CleanFailure(detail=f"Failed to truncate table {table_name!r}: {exc}", table=table_name) from exc
            logger.debug("TRUNCATE of %s failed, deleting rows instead: %s", table_name, exc)
            self.delete_table(connection, table_name)
            self.reseed_identity(connection, table_name)

    def reseed_identity(self, connection: Connection, table_name: str) -> None:
        with wrap_clean_failure(table_name, action="reseed the identity of"):
            has_identity = self.execute(
                connection,
                "SELECT OBJECTPROPERTY(OBJECT_ID(:table_name), 'TableHasIdentity')",
                {"table_name": table_name},
            ).scalar()
            if has_identity:
                literal = table_name.replace("'", "''")
                self.execute(connection, f"DBCC CHECKIDENT('{literal}', RESEED, 0)")

    @contextmanager
    def disable_referential_integrity(self, connection: Connection) -> Generator[None, None, None]:
        with wrap_clean_failure(action="disable constraints"):
            self.execute(connection, "EXEC sp_MSforeachtable 'ALTER TABLE ? NOCHECK CONSTRAINT ALL'")
        with self.restoring(
            "check constraints again",
            lambda: self.execute(connection, "EXEC sp_MSforeachtable 'ALTER TABLE ? WITH CHECK CHECK CONSTRAINT ALL'"),
        ):
            yield
