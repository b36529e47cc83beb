"""PostgreSQL."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import DBAPIError

from alchemy_cleaner.dialects.base import Dialect, DialectAdapter
from alchemy_cleaner.exceptions import CleanFailure, is_connection_lost, wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence
    from contextlib import AbstractContextManager

    from sqlalchemy import Connection

__all__ = ("PostgresAdapter",)

logger = logging.getLogger("alchemy_cleaner")

_CASCADE_VERSION = (8, 2)
_RESTART_IDENTITY_VERSION = (8, 4)


class PostgresAdapter(DialectAdapter):
    """PostgreSQL: one ``TRUNCATE ... RESTART IDENTITY CASCADE`` for every table.

    Table names are schema-qualified because the same table name may exist in several schemas of the
    search path.
    """

    dialect = Dialect.POSTGRESQL

    def probe_scope(self, connection: Connection) -> AbstractContextManager[Any]:
        # A failed statement aborts the whole transaction unless it ran in a savepoint.
        return connection.begin_nested()

    def server_version(self, connection: Connection) -> tuple[int, ...]:
        return tuple(connection.dialect.server_version_info or (0,))

    def list_tables(self, connection: Connection) -> list[str]:
        with wrap_clean_failure(action="list tables"):
            result = self.execute(
                connection,
                r"""
                SELECT schemaname || '.' || tablename
                FROM pg_tables
                WHERE tablename !~ '_prt_'
                  AND schemaname = ANY (current_schemas(false))
                """,
            )
            return self._without_bookkeeping(result.scalars())

    def list_views(self, connection: Connection) -> list[str]:
        def _views() -> list[str]:
            with self.probe_scope(connection):
                result = self.execute(
                    connection,
                    "SELECT table_name FROM information_schema.views WHERE table_schema = ANY (current_schemas(false))",
                )
                return list(result.scalars())

        return self.degrade_unsupported("view listing", _views, [])

    def owned_sequences(self, connection: Connection, table_name: str) -> list[str]:
        """Return the sequences owned by columns of the table, already quoted."""
        with wrap_clean_failure(table_name, action="list sequences of"):
            result = self.execute(
                connection,
                """
                SELECT CAST(CAST(d.objid AS regclass) AS text)
                FROM pg_depend d
                JOIN pg_class s ON s.oid = d.objid
                WHERE s.relkind = 'S' AND d.refobjid = CAST(:table_name AS regclass)
                """,
                {"table_name": self.quote(connection, table_name)},
            )
            return list(result.scalars())

    def has_been_written(self, connection: Connection, table_name: str) -> bool:
        if self.has_rows(connection, table_name):
            return True
        for sequence in self.owned_sequences(connection, table_name):
            with wrap_clean_failure(table_name, action="read the sequence of"):
                if self.execute(connection, f"SELECT is_called FROM {sequence}").scalar():
                    return True
        return False

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        self.truncate_tables(connection, [table_name])

    def truncate_tables(self, connection: Connection, tables: Sequence[str], reset_ids: bool = True) -> None:
        if not tables:
            return
        version = self.server_version(connection)
        clauses = [f"TRUNCATE TABLE {', '.join(self.quote(connection, name) for name in tables)}"]
        if version >= _RESTART_IDENTITY_VERSION:
            clauses.append("RESTART IDENTITY" if reset_ids else "CONTINUE IDENTITY")
        # Foreign keys stay enforced during a truncate, CASCADE covers the referencing tables.
        if version >= _CASCADE_VERSION:
            clauses.append("CASCADE")
        with wrap_clean_failure(tables[0] if len(tables) == 1 else ", ".join(tables), action="truncate"):
            self.execute(connection, " ".join(clauses))

    @contextmanager
    def disable_referential_integrity(self, connection: Connection) -> Generator[None, None, None]:
        with wrap_clean_failure(action="read session_replication_role"):
            previous = self.execute(connection, "SHOW session_replication_role").scalar() or "origin"
        suspended = self._set_replication_role(connection, "replica")

        def _restore() -> None:
            if suspended:
                self._set_replication_role(connection, previous)

        with self.restoring("restore session_replication_role", _restore):
            yield

    def _set_replication_role(self, connection: Connection, role: str) -> bool:
        try:
            with self.probe_scope(connection):
                self.execute(connection, f"SET LOCAL session_replication_role = {role}")
        except DBAPIError as exc:
            if is_connection_lost(exc):
                raise CleanFailure(detail=f"Connection lost while setting session_replication_role: {exc}") from exc
            logger.warning("Could not set session_replication_role to %s, foreign keys stay enforced: %s", role, exc)
            return False
        return True
