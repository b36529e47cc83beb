"""Strategy interface shared by the cleaning strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ClassVar

from sqlalchemy import Engine

from alchemy_cleaner.config.database import CleanerConfig
from alchemy_cleaner.config.options import StrategyOptions
from alchemy_cleaner.connection import resolve_bind
from alchemy_cleaner.dialects import get_adapter
from alchemy_cleaner.resolver import TableResolver

if TYPE_CHECKING:
    from collections.abc import Generator

    from sqlalchemy import Connection

    from alchemy_cleaner.connection import Bind, DatabaseKey
    from alchemy_cleaner.dialects.base import DialectAdapter

__all__ = ("Strategy",)


class Strategy(ABC):
    """Base class of the cleaning strategies.

    A strategy cleans one database, named by ``db``. The engine or connection behind it is resolved on
    first use and kept for the lifetime of the strategy.

    Args:
        db: Engine, connection or logical database name.
        config: Where database names are resolved. A default :class:`CleanerConfig` is used when omitted.
        **options: Strategy options, validated against :attr:`option_names`.

    Raises:
        ConfigurationError: If an option is not accepted by the strategy.
    """

    name: ClassVar[str]
    """Name the strategy is registered under."""
    option_names: ClassVar[tuple[str, ...]] = ()
    """Options accepted by the strategy."""

    def __init__(self, db: DatabaseKey = "default", *, config: CleanerConfig | None = None, **options: Any) -> None:
        self.db = db
        self.config = config if config is not None else CleanerConfig()
        self.options = StrategyOptions.from_kwargs(self.option_names, strategy_name=self.name, **options)
        self._bind: Bind | None = None
        self._adapter: DialectAdapter | None = None
        self._resolver: TableResolver | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(db={self.db!r})"

    @property
    def bind(self) -> Bind:
        """The engine or connection being cleaned."""
        if self._bind is None:
            self._bind = resolve_bind(self.db, self.config)
        return self._bind

    @property
    def adapter(self) -> DialectAdapter:
        if self._adapter is None:
            self._adapter = get_adapter(self.bind, self.config.bookkeeping_tables)
        return self._adapter

    @property
    def resolver(self) -> TableResolver:
        if self._resolver is None:
            self._resolver = TableResolver(self.adapter, self.options, self.config.bookkeeping_tables)
        return self._resolver

    def start(self) -> None:
        """Prepare the database before a test runs. Most strategies have nothing to do."""

    @abstractmethod
    def clean(self) -> None:
        """Return the database to a clean state."""

    @contextmanager
    def cleaning(self) -> Generator[None, None, None]:
        """Run the enclosed block between :meth:`start` and :meth:`clean`.

        :meth:`clean` runs even if the block raises, and the exception is propagated.
        """
        self.start()
        try:
            yield
        finally:
            self.clean()

    @contextmanager
    def unit_of_work(self) -> Generator[Connection, None, None]:
        """Provide a connection whose statements are committed together.

        With an engine, a connection is checked out and its transaction committed on success or rolled
        back on error. A connection given directly is used as is: an open transaction on it belongs to the
        caller and is left open, otherwise a transaction is begun and committed.
        """
        bind = self.bind
        if isinstance(bind, Engine):
            with bind.begin() as connection:
                yield connection
        elif bind.in_transaction():
            yield bind
        else:
            with bind.begin():
                yield bind
