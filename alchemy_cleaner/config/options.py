"""Strategy options."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from alchemy_cleaner.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

__all__ = ("StrategyOptions",)


def _table_set(value: Iterable[str] | str | None) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset((value,))
    return frozenset(value)


@dataclass(frozen=True)
class StrategyOptions:
    """Immutable options shared by the cleaning strategies.

    Note:
        ``except`` is a reserved word, so the exclusion list is stored as ``except_``. The keyword
        arguments ``except_``, ``exclude`` and the literal key ``"except"`` are all accepted by
        :meth:`from_kwargs`.
    """

    only: frozenset[str] = field(default_factory=frozenset)
    """Tables to clean. When empty, every table of the database is a candidate."""
    except_: frozenset[str] = field(default_factory=frozenset)
    """Tables that are never cleaned, in addition to views and bookkeeping tables."""
    pre_count: bool = False
    """Skip tables that were not written to since they were last reset."""
    reset_ids: bool = True
    """Reset auto-increment counters when truncating."""
    cache_tables: bool = True
    """Remember the table and view lists for the lifetime of the strategy."""

    OPTION_NAMES: ClassVar[tuple[str, ...]] = ("only", "except", "pre_count", "reset_ids", "cache_tables")
    ALIASES: ClassVar[dict[str, str]] = {"except_": "except", "exclude": "except"}

    def __post_init__(self) -> None:
        if self.only and self.except_:
            msg = "You may only specify either 'only' or 'except'. Doing both doesn't really make sense."
            raise ConfigurationError(msg)

    @classmethod
    def from_kwargs(
        cls,
        allowed: Collection[str] = OPTION_NAMES,
        strategy_name: str = "this",
        **kwargs: Any,
    ) -> StrategyOptions:
        """Validate keyword options and build a ``StrategyOptions`` instance.

        Args:
            allowed: Canonical option names accepted by the calling strategy.
            strategy_name: Used in error messages.
            **kwargs: The options given by the caller.

        Raises:
            ConfigurationError: If an option is not recognized or both ``only`` and ``except`` are given.

        Returns:
            The validated options.
        """
        canonical: dict[str, Any] = {}
        for key, value in kwargs.items():
            name = cls.ALIASES.get(key, key)
            if name not in allowed:
                if allowed:
                    valid = ", ".join(repr(option) for option in allowed)
                    msg = f"The only valid options for the {strategy_name} strategy are {valid}. You specified {key!r}."
                else:
                    msg = f"No options are available for the {strategy_name} strategy. You specified {key!r}."
                raise ConfigurationError(msg)
            if name in canonical:
                msg = f"Option {name!r} was given more than once."
                raise ConfigurationError(msg)
            canonical[name] = value

        return cls(
            only=_table_set(canonical.get("only")),
            except_=_table_set(canonical.get("except")),
            pre_count=bool(canonical.get("pre_count", False)),
            reset_ids=bool(canonical.get("reset_ids", True)),
            cache_tables=bool(canonical.get("cache_tables", True)),
        )
