from __future__ import annotations

from alchemy_cleaner.config.database import DEFAULT_BOOKKEEPING_TABLES, CleanerConfig, load_config_file
from alchemy_cleaner.config.options import StrategyOptions

__all__ = (
    "DEFAULT_BOOKKEEPING_TABLES",
    "CleanerConfig",
    "StrategyOptions",
    "load_config_file",
)
