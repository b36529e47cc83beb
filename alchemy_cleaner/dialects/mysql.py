"""MySQL and MariaDB."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from alchemy_cleaner.dialects.base import Dialect, DialectAdapter
from alchemy_cleaner.exceptions import wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from sqlalchemy import Connection, TextClause

__all__ = ("MySQLAdapter",)


class MySQLAdapter(DialectAdapter):
    """MySQL/MariaDB: ``TRUNCATE`` per table with ``FOREIGN_KEY_CHECKS`` disabled."""

    dialect = Dialect.MYSQL

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._information_schema_exists: bool | None = None

    def list_tables(self, connection: Connection) -> list[str]:
        with wrap_clean_failure(action="list tables"):
            result = self.execute(
                connection,
                """
                SELECT table_name FROM information_schema.tables
                WHERE table_schema = DATABASE() AND table_type = 'BASE TABLE'
                """,
            )
            return self._without_bookkeeping(result.scalars())

    def list_views(self, connection: Connection) -> list[str]:
        def _views() -> list[str]:
            result = self.execute(
                connection,
                "SELECT table_name FROM information_schema.views WHERE table_schema = DATABASE()",
            )
            return list(result.scalars())

        return self.degrade_unsupported("view listing", _views, [])

    def information_schema_exists(self, connection: Connection) -> bool:
        """Return whether ``information_schema`` can be queried. The answer is remembered."""
        if self._information_schema_exists is None:

            def _probe() -> bool:
                self.execute(connection, "SELECT 1 FROM information_schema.tables LIMIT 1")
                return True

            self._information_schema_exists = self.degrade_unsupported("information_schema probe", _probe, False)
        return self._information_schema_exists

    def auto_increment_value(self, connection: Connection, table_name: str) -> int:
        with wrap_clean_failure(table_name, action="read the auto-increment counter of"):
            value = self.execute(
                connection,
                """
                SELECT auto_increment FROM information_schema.tables
                WHERE table_name = :table_name AND table_schema = DATABASE()
                """,
                {"table_name": table_name},
            ).scalar()
        return int(value or 0)

    def has_been_written(self, connection: Connection, table_name: str) -> bool:
        # A table may have been populated and emptied again, leaving the counter advanced.
        return self.has_rows(connection, table_name) or self.auto_increment_value(connection, table_name) > 1

    def row_probe(self, connection: Connection, tables: Sequence[str]) -> tuple[TextClause, dict[str, Any]] | None:
        if not tables or not self.information_schema_exists(connection):
            return None
        params = {f"t{index}": name for index, name in enumerate(tables)}
        queries = [
            f"(SELECT :t{index} FROM {self.quote(connection, name)} LIMIT 1)" for index, name in enumerate(tables)
        ]
        return text(" UNION ALL ".join(queries)), params

    def written_tables(self, connection: Connection, tables: Sequence[str]) -> list[str]:
        probe = self.row_probe(connection, tables)
        if probe is None:
            return super().written_tables(connection, tables)

        with wrap_clean_failure(action="detect written tables"):
            advanced = set(
                self.execute(
                    connection,
                    """
                    SELECT table_name FROM information_schema.tables
                    WHERE table_schema = DATABASE() AND auto_increment > 1
                    """,
                ).scalars(),
            )
            statement, params = probe
            with_rows = set(connection.execute(statement, params).scalars())
        return [name for name in tables if name in advanced or name in with_rows]

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        with wrap_clean_failure(table_name, action="truncate"):
            self.execute(connection, f"TRUNCATE TABLE {self.quote(connection, table_name)}")

    @contextmanager
    def disable_referential_integrity(self, connection: Connection) -> Generator[None, None, None]:
        with wrap_clean_failure(action="disable foreign key checks"):
            previous = self.execute(connection, "SELECT @@FOREIGN_KEY_CHECKS").scalar()
            self.execute(connection, "SET FOREIGN_KEY_CHECKS = 0")
        with self.restoring(
            "restore foreign key checks",
            lambda: self.execute(connection, f"SET FOREIGN_KEY_CHECKS = {int(previous or 0)}"),
        ):
            yield
