from __future__ import annotations

from alchemy_cleaner.exceptions import ConfigurationError
from alchemy_cleaner.strategies.base import Strategy
from alchemy_cleaner.strategies.deletion import DeletionStrategy
from alchemy_cleaner.strategies.transaction import TransactionStrategy
from alchemy_cleaner.strategies.truncation import TruncationStrategy

__all__ = (
    "STRATEGIES",
    "DeletionStrategy",
    "Strategy",
    "TransactionStrategy",
    "TruncationStrategy",
    "get_strategy_class",
)

STRATEGIES: dict[str, type[Strategy]] = {
    strategy.name: strategy for strategy in (TransactionStrategy, DeletionStrategy, TruncationStrategy)
}
"""Cleaning strategies by name."""


def get_strategy_class(name: str) -> type[Strategy]:
    """Return the strategy registered under ``name``.

    Raises:
        ConfigurationError: If no strategy has that name.
    """
    try:
        return STRATEGIES[name.lower()]
    except KeyError:
        valid = ", ".join(repr(known) for known in STRATEGIES)
        msg = f"The {name!r} strategy does not exist. Available strategies: {valid}"
        raise ConfigurationError(msg) from None
