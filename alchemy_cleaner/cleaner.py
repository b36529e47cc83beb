"""Entry points used by test suites."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from alchemy_cleaner.config.database import CleanerConfig
from alchemy_cleaner.exceptions import ConfigurationError
from alchemy_cleaner.strategies import Strategy, get_strategy_class

if TYPE_CHECKING:
    from collections.abc import Generator, Iterator

    from alchemy_cleaner.connection import DatabaseKey

__all__ = (
    "CleanerRegistry",
    "DatabaseCleaner",
)

logger = logging.getLogger("alchemy_cleaner")

DEFAULT_STRATEGY = "transaction"


class DatabaseCleaner:
    """Clean one database with a selectable strategy.

    Example:
        Truncating everything but the reference data after each test::

            cleaner = DatabaseCleaner(engine, strategy="truncation", except_=["countries"])

            with cleaner.cleaning():
                run_test()

    Args:
        db: Engine, connection or logical database name.
        config: Where database names are resolved.
        strategy: Strategy name or instance.
        **options: Options of the strategy named by ``strategy``.
    """

    def __init__(
        self,
        db: DatabaseKey = "default",
        *,
        config: CleanerConfig | None = None,
        strategy: str | Strategy = DEFAULT_STRATEGY,
        **options: Any,
    ) -> None:
        self.db = db
        self.config = config if config is not None else CleanerConfig()
        self._strategy: Strategy
        self.set_strategy(strategy, **options)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(db={self.db!r}, strategy={self._strategy.name!r})"

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    @strategy.setter
    def strategy(self, value: str | Strategy) -> None:
        self.set_strategy(value)

    def set_strategy(self, strategy: str | Strategy, **options: Any) -> Strategy:
        """Select the strategy used by :meth:`start` and :meth:`clean`.

        Args:
            strategy: Strategy name or instance.
            **options: Options of the named strategy. Not accepted together with an instance.

        Raises:
            ConfigurationError: If the strategy is unknown or the options are invalid.

        Returns:
            The selected strategy.
        """
        if isinstance(strategy, Strategy):
            if options:
                msg = "Options cannot be given together with a strategy instance, pass them to the strategy instead"
                raise ConfigurationError(msg)
            self._strategy = strategy
        else:
            self._strategy = get_strategy_class(strategy)(self.db, config=self.config, **options)
        logger.debug("Cleaning %r with %r", self.db, self._strategy)
        return self._strategy

    def start(self) -> None:
        self._strategy.start()

    def clean(self) -> None:
        self._strategy.clean()

    @contextmanager
    def cleaning(self) -> Generator[None, None, None]:
        with self._strategy.cleaning():
            yield


class CleanerRegistry:
    """Cleaners of every database used by a test suite.

    Cleaners are created on first access with the default strategy::

        registry = CleanerRegistry(config)
        registry["default"].strategy = "truncation"
        registry["reporting"].set_strategy("deletion", only=["events"])

        with registry.cleaning():
            run_test()

    :meth:`start` starts every cleaner in the order they were registered, :meth:`clean` cleans them in
    reverse order. An empty registry acts on the ``"default"`` database.
    """

    def __init__(self, config: CleanerConfig | None = None) -> None:
        self.config = config if config is not None else CleanerConfig()
        self._cleaners: dict[DatabaseKey, DatabaseCleaner] = {}

    def __getitem__(self, db: DatabaseKey) -> DatabaseCleaner:
        if db not in self._cleaners:
            self._cleaners[db] = DatabaseCleaner(db, config=self.config)
        return self._cleaners[db]

    def __contains__(self, db: object) -> bool:
        return db in self._cleaners

    def __iter__(self) -> Iterator[DatabaseCleaner]:
        return iter(self._cleaners.values())

    def __len__(self) -> int:
        return len(self._cleaners)

    def _all(self) -> list[DatabaseCleaner]:
        if not self._cleaners:
            return [self["default"]]
        return list(self._cleaners.values())

    def set_strategy(self, strategy: str, **options: Any) -> None:
        """Select ``strategy`` for every registered cleaner."""
        for cleaner in self._all():
            cleaner.set_strategy(strategy, **options)

    def start(self) -> None:
        for cleaner in self._all():
            cleaner.start()

    def clean(self) -> None:
        for cleaner in reversed(self._all()):
            cleaner.clean()

    @contextmanager
    def cleaning(self) -> Generator[None, None, None]:
        self.start()
        try:
            yield
        finally:
            self.clean()
