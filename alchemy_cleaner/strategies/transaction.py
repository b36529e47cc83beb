"""Clean by rolling back a transaction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

import sqlalchemy
from sqlalchemy import Engine

from alchemy_cleaner._listeners import EngineConnectNotifier
from alchemy_cleaner.exceptions import CleanFailure, UnsupportedDialectError, wrap_clean_failure
from alchemy_cleaner.strategies.base import Strategy

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from alchemy_cleaner._listeners import ConnectionNotifier
    from alchemy_cleaner.config.database import CleanerConfig
    from alchemy_cleaner.connection import Bind, DatabaseKey

__all__ = ("TransactionStrategy",)

logger = logging.getLogger("alchemy_cleaner")

_MINIMUM_SQLALCHEMY_VERSION = (2, 0)


def _sqlalchemy_version() -> tuple[int, ...]:
    return tuple(int(part) for part in sqlalchemy.__version__.split(".")[:2] if part.isdigit())


def _is_autocommit(bind: Bind) -> bool:
    isolation_level = bind.get_execution_options().get("isolation_level") or getattr(
        bind.dialect, "isolation_level", None
    )
    return str(isolation_level or "").upper() == "AUTOCOMMIT"


def check_supported(bind: Bind | None = None) -> None:
    """Raise :class:`UnsupportedDialectError` if transactions cannot be rolled back for ``bind``.

    Raises:
        UnsupportedDialectError: On SQLAlchemy releases older than 2.0, or when ``bind`` runs in
            ``AUTOCOMMIT`` isolation.
    """
    version = _sqlalchemy_version()
    if version < _MINIMUM_SQLALCHEMY_VERSION:
        msg = f"The transaction strategy requires SQLAlchemy 2.0 or later, found {sqlalchemy.__version__}"
        raise UnsupportedDialectError(msg)
    if bind is not None and _is_autocommit(bind):
        msg = f"The transaction strategy cannot roll back {bind!r}: it runs in AUTOCOMMIT isolation"
        raise UnsupportedDialectError(msg)


class TransactionStrategy(Strategy):
    """Wrap each test in a transaction that is rolled back by :meth:`clean`.

    :meth:`start` commits whatever the fixture connection has pending, so fixtures loaded before it
    survive, then begins a transaction. Data written through :attr:`connection` is discarded by
    :meth:`clean`. Connections established on the same engine between :meth:`start` and :meth:`clean`
    are tracked too, and their open transactions are rolled back.

    ORM sessions should be bound to :attr:`connection`::

        strategy.start()
        session = Session(bind=strategy.connection, join_transaction_mode="create_savepoint")

    Calls to :meth:`start` and :meth:`clean` must be paired.

    Args:
        db: Engine, connection or logical database name.
        config: Where database names are resolved.
        notifier: Source of new-connection events. Defaults to the ``engine_connect`` event of the engine.

    Raises:
        ConfigurationError: If any option is given, this strategy has none.
        UnsupportedDialectError: If SQLAlchemy or the database configuration cannot support rollbacks.
    """

    name: ClassVar[str] = "transaction"
    option_names: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        db: DatabaseKey = "default",
        *,
        config: CleanerConfig | None = None,
        notifier: ConnectionNotifier | None = None,
        **options: Any,
    ) -> None:
        super().__init__(db, config=config, **options)
        check_supported(db if not isinstance(db, str) else None)
        self.notifier = notifier
        self.connection: Connection | None = None
        """Connection holding the transaction opened by :meth:`start`."""
        self._owns_connection = False
        self._fixture_connections: list[Connection] = []
        self._subscribed: ConnectionNotifier | None = None

    @property
    def started(self) -> bool:
        return self.connection is not None

    def start(self) -> None:
        if self.started:
            logger.warning("%r was started twice without being cleaned, keeping the open transaction", self)
            return
        bind = self.bind
        check_supported(bind)

        if isinstance(bind, Engine):
            connection = bind.connect()
            self._owns_connection = True
        else:
            connection = bind
            self._owns_connection = False
            if connection.in_transaction():
                connection.commit()
        connection.begin()
        self.connection = connection
        self._fixture_connections.append(connection)

        engine = bind if isinstance(bind, Engine) else bind.engine
        notifier = self.notifier if self.notifier is not None else EngineConnectNotifier(engine)
        notifier.subscribe(self._track_connection)
        self._subscribed = notifier
        logger.debug("Started a transaction on %r", connection)

    def _track_connection(self, connection: Connection) -> None:
        logger.debug("Tracking connection %r opened during the test", connection)
        self._fixture_connections.append(connection)

    def clean(self) -> None:
        if not self.started:
            return
        if self._subscribed is not None:
            self._subscribed.unsubscribe(self._track_connection)
            self._subscribed = None
        failures: list[CleanFailure] = []
        try:
            for connection in self._fixture_connections:
                if connection.closed or not connection.in_transaction():
                    continue
                try:
                    with wrap_clean_failure(action="roll back the test transaction"):
                        connection.rollback()
                except CleanFailure as exc:
                    logger.warning("Could not roll back %r: %s", connection, exc)
                    failures.append(exc)
        finally:
            if self._owns_connection and self.connection is not None:
                self.connection.close()
            self._fixture_connections.clear()
            self.connection = None
            self._owns_connection = False
        if failures:
            raise failures[0]
