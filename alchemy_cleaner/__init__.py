from alchemy_cleaner import (
    cli,
    config,
    dialects,
    exceptions,
    strategies,
)
from alchemy_cleaner.cleaner import CleanerRegistry, DatabaseCleaner
from alchemy_cleaner.config import CleanerConfig, StrategyOptions
from alchemy_cleaner.strategies import DeletionStrategy, TransactionStrategy, TruncationStrategy

__all__ = (
    "CleanerConfig",
    "CleanerRegistry",
    "DatabaseCleaner",
    "DeletionStrategy",
    "StrategyOptions",
    "TransactionStrategy",
    "TruncationStrategy",
    "cli",
    "config",
    "dialects",
    "exceptions",
    "strategies",
)
