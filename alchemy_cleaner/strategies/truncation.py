"""Clean by truncating tables."""

from __future__ import annotations

import logging
from typing import ClassVar

from alchemy_cleaner.strategies.base import Strategy

__all__ = ("TruncationStrategy",)

logger = logging.getLogger("alchemy_cleaner")


class TruncationStrategy(Strategy):
    """Empty the tables and reset their auto-increment counters.

    With ``reset_ids=False`` counters are kept, which on most databases means deleting instead of
    truncating. With ``pre_count=True`` only the tables written to since their last reset are truncated.
    """

    name: ClassVar[str] = "truncation"
    option_names: ClassVar[tuple[str, ...]] = ("only", "except", "pre_count", "reset_ids", "cache_tables")

    def clean(self) -> None:
        with self.unit_of_work() as connection:
            tables = self.resolver.tables(connection, pre_count=self.options.pre_count)
            if not tables:
                return
            logger.debug("Truncating %d table(s): %s", len(tables), ", ".join(tables))
            with self.adapter.disable_referential_integrity(connection):
                self.adapter.truncate_tables(connection, tables, reset_ids=self.options.reset_ids)
