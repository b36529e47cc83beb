"""Dialect adapter interface and shared behavior."""

from __future__ import annotations

import enum
import logging
from abc import ABC
from contextlib import contextmanager, nullcontext
from typing import TYPE_CHECKING, Any, Callable, ClassVar, TypeVar

from sqlalchemy import inspect, literal_column, select, table, text
from sqlalchemy.exc import DBAPIError

from alchemy_cleaner.config.database import DEFAULT_BOOKKEEPING_TABLES
from alchemy_cleaner.exceptions import CleanFailure, is_connection_lost, wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Collection, Generator, Iterable, Sequence
    from contextlib import AbstractContextManager

    from sqlalchemy import Connection, CursorResult, Engine, TextClause

__all__ = (
    "Dialect",
    "DialectAdapter",
    "detect_dialect",
    "unqualified",
)

logger = logging.getLogger("alchemy_cleaner")

_T = TypeVar("_T")


class Dialect(str, enum.Enum):
    """Database engine families with distinct cleaning behavior."""

    GENERIC = "generic"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"
    ORACLE = "oracle"
    MSSQL = "mssql"
    DB2 = "db2"
    JDBC = "jdbc"


_DIALECT_NAMES: dict[str, Dialect] = {
    "mysql": Dialect.MYSQL,
    "mariadb": Dialect.MYSQL,
    "postgresql": Dialect.POSTGRESQL,
    "sqlite": Dialect.SQLITE,
    "oracle": Dialect.ORACLE,
    "mssql": Dialect.MSSQL,
    "ibm_db_sa": Dialect.DB2,
    "db2": Dialect.DB2,
}


def detect_dialect(bind: Engine | Connection) -> Dialect:
    """Return the :class:`Dialect` family of an engine or connection."""
    sa_dialect = bind.dialect
    if "jdbc" in (sa_dialect.driver or "").lower():
        return Dialect.JDBC
    return _DIALECT_NAMES.get(sa_dialect.name, Dialect.GENERIC)


def unqualified(name: str) -> str:
    """Strip the schema from a possibly schema-qualified table name."""
    return name.rsplit(".", 1)[-1]


class DialectAdapter(ABC):
    """Per-engine database operations used by the cleaning strategies.

    Subclasses override the operations whose SQL differs from the portable defaults implemented here.

    Args:
        bookkeeping_tables: Migration bookkeeping tables that ``list_tables`` never returns.
    """

    dialect: ClassVar[Dialect] = Dialect.GENERIC

    def __init__(self, bookkeeping_tables: Collection[str] = DEFAULT_BOOKKEEPING_TABLES) -> None:
        self.bookkeeping_tables = frozenset(bookkeeping_tables)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # helpers

    def quote(self, connection: Connection, name: str) -> str:
        """Quote a possibly schema-qualified table name for the connection's dialect."""
        preparer = connection.dialect.identifier_preparer
        return ".".join(preparer.quote(part) for part in name.split("."))

    def execute(self, connection: Connection, sql: str, params: dict[str, Any] | None = None) -> CursorResult[Any]:
        logger.debug("Executing: %s", sql)
        return connection.execute(text(sql), params or {})

    def probe_scope(self, connection: Connection) -> AbstractContextManager[Any]:
        """Context in which a statement that may fail is run without spoiling the surrounding transaction."""
        return nullcontext()

    def degrade_unsupported(self, description: str, probe: Callable[[], _T], default: _T) -> _T:
        """Run a metadata probe, returning ``default`` when the database does not support it.

        Errors that invalidated the connection are not an unsupported feature and are raised as
        :class:`CleanFailure`.
        """
        try:
            return probe()
        except NotImplementedError:
            logger.debug("%s is not implemented for this dialect", description)
            return default
        except DBAPIError as exc:
            if is_connection_lost(exc):
                raise CleanFailure(detail=f"Connection lost during {description}: {exc}") from exc
            logger.debug("%s is unavailable: %s", description, exc)
            return default

    @contextmanager
    def restoring(self, action: str, restore: Callable[[], object]) -> Generator[None, None, None]:
        """Run ``restore`` when the context exits, whether or not the enclosed block raised.

        Restore failures are raised as :class:`CleanFailure`. When the block already raised, a restore
        failure is logged and the block's exception is propagated.
        """
        try:
            yield
        except BaseException:
            try:
                with wrap_clean_failure(action=action):
                    restore()
            except CleanFailure as exc:
                logger.warning("Could not %s after a failed clean: %s", action, exc)
            raise
        with wrap_clean_failure(action=action):
            restore()

    def _without_bookkeeping(self, tables: Iterable[str]) -> list[str]:
        return [name for name in tables if unqualified(name) not in self.bookkeeping_tables]

    # metadata

    def list_tables(self, connection: Connection) -> list[str]:
        """Return the base tables of the database, without bookkeeping tables."""
        with wrap_clean_failure(action="list tables"):
            return self._without_bookkeeping(inspect(connection).get_table_names())

    def list_views(self, connection: Connection) -> list[str]:
        """Return the views of the database, or an empty list when they cannot be listed."""

        def _views() -> list[str]:
            with self.probe_scope(connection):
                return list(inspect(connection).get_view_names())

        return self.degrade_unsupported("view listing", _views, [])

    def has_rows(self, connection: Connection, table_name: str) -> bool:
        schema, _, name = table_name.rpartition(".")
        statement = select(literal_column("1")).select_from(table(name, schema=schema or None)).limit(1)
        with wrap_clean_failure(table_name, action="count rows of"):
            return connection.execute(statement).first() is not None

    def has_been_written(self, connection: Connection, table_name: str) -> bool:
        """Return ``True`` if the table holds rows or its auto-increment counter has advanced.

        The default implementation only looks at rows.
        """
        return self.has_rows(connection, table_name)

    def written_tables(self, connection: Connection, tables: Sequence[str]) -> list[str]:
        """Return the subset of ``tables`` for which :meth:`has_been_written` is true."""
        return [name for name in tables if self.has_been_written(connection, name)]

    def row_probe(self, connection: Connection, tables: Sequence[str]) -> tuple[TextClause, dict[str, Any]] | None:
        """Build a single query returning the names of the ``tables`` that hold rows.

        Returns ``None`` when the dialect has no batched probe.
        """
        return None

    # mutation

    def delete_table(self, connection: Connection, table_name: str) -> None:
        """Remove every row of the table without resetting its auto-increment counter."""
        with wrap_clean_failure(table_name, action="delete rows of"):
            self.execute(connection, f"DELETE FROM {self.quote(connection, table_name)}")

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        """Remove every row of the table and reset its auto-increment counter."""
        quoted = self.quote(connection, table_name)
        try:
            with self.probe_scope(connection):
                self.execute(connection, f"TRUNCATE TABLE {quoted}")
        except DBAPIError as exc:
            if is_connection_lost(exc):
                raise CleanFailure(detail=f"Failed to truncate table {table_name!r}: {exc}", table=table_name) from exc
            logger.debug("TRUNCATE of %s failed, deleting rows instead: %s", table_name, exc)
            self.delete_table(connection, table_name)

    def truncate_tables(self, connection: Connection, tables: Sequence[str], reset_ids: bool = True) -> None:
        """Empty ``tables``, resetting their counters unless ``reset_ids`` is false."""
        for table_name in tables:
            if reset_ids:
                self.truncate_table(connection, table_name)
            else:
                self.delete_table(connection, table_name)

    @contextmanager
    def disable_referential_integrity(self, connection: Connection) -> Generator[None, None, None]:
        """Suspend foreign key enforcement for the duration of the context.

        The default implementation does nothing.
        """
        yield
