"""Decide which tables a strategy cleans."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from alchemy_cleaner.config.database import DEFAULT_BOOKKEEPING_TABLES
from alchemy_cleaner.dialects.base import unqualified
from alchemy_cleaner.exceptions import wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from sqlalchemy import Connection, Engine, TextClause

    from alchemy_cleaner.config.options import StrategyOptions
    from alchemy_cleaner.dialects.base import DialectAdapter

__all__ = ("TableResolver",)

logger = logging.getLogger("alchemy_cleaner")


class TableResolver:
    """Compute the tables a strategy acts on.

    The candidate tables are ``only`` when given, otherwise every table of the database. Tables named in
    ``except``, views and migration bookkeeping tables are then removed, comparing unqualified names so
    that ``public.users`` and ``users`` match.

    Table and view lists are remembered per engine when ``cache_tables`` is enabled: the schema is
    assumed not to change while tests run.

    Args:
        adapter: Dialect adapter used for metadata and row probes.
        options: Options of the owning strategy.
        bookkeeping_tables: Tables that are never cleaned.
    """

    def __init__(
        self,
        adapter: DialectAdapter,
        options: StrategyOptions,
        bookkeeping_tables: Collection[str] = DEFAULT_BOOKKEEPING_TABLES,
    ) -> None:
        self.adapter = adapter
        self.options = options
        self.bookkeeping_tables = frozenset(bookkeeping_tables)
        self._table_cache: dict[Engine, list[str]] = {}
        self._view_cache: dict[Engine, list[str]] = {}
        self._row_probe_cache: dict[Engine, tuple[tuple[str, ...], tuple[TextClause, dict[str, Any]] | None]] = {}

    def database_tables(self, connection: Connection) -> list[str]:
        if not self.options.cache_tables:
            return self.adapter.list_tables(connection)
        if connection.engine not in self._table_cache:
            self._table_cache[connection.engine] = self.adapter.list_tables(connection)
        return self._table_cache[connection.engine]

    def database_views(self, connection: Connection) -> list[str]:
        if not self.options.cache_tables:
            return self.adapter.list_views(connection)
        if connection.engine not in self._view_cache:
            self._view_cache[connection.engine] = self.adapter.list_views(connection)
        return self._view_cache[connection.engine]

    def excluded(self, connection: Connection) -> frozenset[str]:
        """Unqualified names that are never cleaned."""
        return frozenset(
            unqualified(name)
            for name in (*self.options.except_, *self.database_views(connection), *self.bookkeeping_tables)
        )

    def tables(self, connection: Connection, pre_count: bool = False) -> list[str]:
        """Return the tables to clean.

        Args:
            connection: Live connection to the database.
            pre_count: Keep only the tables that were written to since they were last reset.

        Returns:
            Table names in database order, or sorted by name when ``only`` is given.
        """
        candidates = sorted(self.options.only) if self.options.only else self.database_tables(connection)
        to_reject = self.excluded(connection)
        tables = [name for name in candidates if unqualified(name) not in to_reject]
        if pre_count and tables:
            tables = self.adapter.written_tables(connection, tables)
        if not tables:
            logger.debug("No tables to clean")
        return tables

    def non_empty_tables(self, connection: Connection, tables: Sequence[str]) -> list[str]:
        """Narrow ``tables`` to those holding rows, when the adapter offers a batched row probe.

        When ``cache_tables`` is enabled, the last probe query built for each engine is reused while the
        table list stays the same.
        """
        if not tables:
            return []
        key = tuple(tables)
        cached = self._row_probe_cache.get(connection.engine) if self.options.cache_tables else None
        if cached is not None and cached[0] == key:
            probe = cached[1]
        else:
            probe = self.adapter.row_probe(connection, tables)
            if self.options.cache_tables:
                self._row_probe_cache[connection.engine] = (key, probe)
        if probe is None:
            return list(tables)
        statement, params = probe
        with wrap_clean_failure(action="find tables with rows"):
            with_rows = set(connection.execute(statement, params).scalars())
        return [name for name in tables if name in with_rows]
