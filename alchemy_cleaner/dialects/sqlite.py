"""SQLite."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from alchemy_cleaner.dialects.base import Dialect, DialectAdapter
from alchemy_cleaner.exceptions import wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlalchemy import Connection

__all__ = ("SQLiteAdapter",)


class SQLiteAdapter(DialectAdapter):
    """SQLite has no ``TRUNCATE``: rows are deleted and ``sqlite_sequence`` entries removed.

    ``sqlite_sequence`` only exists once a table declared with ``AUTOINCREMENT`` has been created.
    """

    dialect = Dialect.SQLITE

    def list_tables(self, connection: Connection) -> list[str]:
        with wrap_clean_failure(action="list tables"):
            result = self.execute(
                connection,
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'",
            )
            return self._without_bookkeeping(result.scalars())

    def list_views(self, connection: Connection) -> list[str]:
        def _views() -> list[str]:
            return list(self.execute(connection, "SELECT name FROM sqlite_master WHERE type = 'view'").scalars())

        return self.degrade_unsupported("view listing", _views, [])

    def uses_sequence(self, connection: Connection) -> bool:
        with wrap_clean_failure(action="look up sqlite_sequence"):
            result = self.execute(
                connection,
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'",
            )
            return result.scalar() is not None

    def sequence_value(self, connection: Connection, table_name: str) -> int:
        if not self.uses_sequence(connection):
            return 0
        with wrap_clean_failure(table_name, action="read the sequence of"):
            value = self.execute(
                connection,
                "SELECT seq FROM sqlite_sequence WHERE name = :name",
                {"name": table_name},
            ).scalar()
        return int(value or 0)

    def has_been_written(self, connection: Connection, table_name: str) -> bool:
        return self.has_rows(connection, table_name) or self.sequence_value(connection, table_name) > 0

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        self.delete_table(connection, table_name)
        if self.uses_sequence(connection):
            with wrap_clean_failure(table_name, action="reset the sequence of"):
                self.execute(connection, "DELETE FROM sqlite_sequence WHERE name = :name", {"name": table_name})

    @contextmanager
    def disable_referential_integrity(self, connection: Connection) -> Generator[None, None, None]:
        # PRAGMA foreign_keys is a no-op inside a transaction, deferral is checked at commit instead.
        with wrap_clean_failure(action="defer foreign keys"):
            driver_connection = connection.connection.driver_connection
            if not getattr(driver_connection, "in_transaction", True):
                # pysqlite only emits BEGIN before DML, the pragma would otherwise be reset right away.
                self.execute(connection, "BEGIN")
            previous = self.execute(connection, "PRAGMA defer_foreign_keys").scalar()
            self.execute(connection, "PRAGMA defer_foreign_keys = ON")
        with self.restoring(
            "restore foreign key deferral",
            lambda: self.execute(connection, f"PRAGMA defer_foreign_keys = {'ON' if previous else 'OFF'}"),
        ):
            yield
