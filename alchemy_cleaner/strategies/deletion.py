"""Clean by deleting rows."""

from __future__ import annotations

import logging
from typing import ClassVar

from alchemy_cleaner.strategies.base import Strategy

__all__ = ("DeletionStrategy",)

logger = logging.getLogger("alchemy_cleaner")


class DeletionStrategy(Strategy):
    """Delete every row of the tables, leaving auto-increment counters where they are.

    Only tables holding rows are touched when the database can tell them apart in a single query.
    Foreign keys are suspended while deleting, so tables are emptied in any order.
    """

    name: ClassVar[str] = "deletion"
    option_names: ClassVar[tuple[str, ...]] = ("only", "except", "pre_count", "cache_tables")

    def clean(self) -> None:
        with self.unit_of_work() as connection:
            tables = self.resolver.tables(connection, pre_count=self.options.pre_count)
            tables = self.resolver.non_empty_tables(connection, tables)
            if not tables:
                return
            logger.debug("Deleting rows of %d table(s): %s", len(tables), ", ".join(tables))
            with self.adapter.disable_referential_integrity(connection):
                for table_name in tables:
                    self.adapter.delete_table(connection, table_name)
