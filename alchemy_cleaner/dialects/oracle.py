"""Oracle."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from alchemy_cleaner.dialects.base import Dialect, DialectAdapter
from alchemy_cleaner.exceptions import wrap_clean_failure

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlalchemy import Connection

__all__ = ("OracleAdapter",)

logger = logging.getLogger("alchemy_cleaner")


class OracleAdapter(DialectAdapter):
    """Oracle: ``TRUNCATE TABLE`` with foreign key constraints disabled one by one."""

    dialect = Dialect.ORACLE

    def truncate_table(self, connection: Connection, table_name: str) -> None:
        with wrap_clean_failure(table_name, action="truncate"):
            self.execute(connection, f"TRUNCATE TABLE {self.quote(connection, table_name)}")

    def enabled_foreign_keys(self, connection: Connection) -> list[tuple[str, str]]:
        """Return ``(table_name, constraint_name)`` for every enabled foreign key of the current user."""
        with wrap_clean_failure(action="list foreign key constraints"):
            result = self.execute(
                connection,
                "SELECT table_name, constraint_name FROM user_constraints "
                "WHERE constraint_type = 'R' AND status = 'ENABLED'",
            )
            return [(row[0], row[1]) for row in result]

    @contextmanager
    def disable_referential_integrity(self, connection: Connection) -> Generator[None, None, None]:
        constraints = self.enabled_foreign_keys(connection)
        logger.debug("Disabling %d foreign key constraint(s)", len(constraints))
        disabled: list[tuple[str, str]] = []

        def _enable() -> None:
            for table_name, constraint in reversed(disabled):
                with wrap_clean_failure(table_name, action="enable constraints of"):
                    self.execute(connection, f'ALTER TABLE "{table_name}" ENABLE CONSTRAINT "{constraint}"')

        with self.restoring("enable foreign key constraints", _enable):
            for table_name, constraint in constraints:
                # Names come from the data dictionary in their stored case and must be quoted verbatim.
                with wrap_clean_failure(table_name, action="disable constraints of"):
                    self.execute(connection, f'ALTER TABLE "{table_name}" DISABLE CONSTRAINT "{constraint}"')
                disabled.append((table_name, constraint))
            yield
