"""Database connection configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import TYPE_CHECKING, Any, Callable

from sqlalchemy import create_engine

from alchemy_cleaner.exceptions import ConfigurationError, MissingDependencyError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import Engine

__all__ = (
    "DEFAULT_BOOKKEEPING_TABLES",
    "CleanerConfig",
    "load_config_file",
)

logger = logging.getLogger("alchemy_cleaner")

DEFAULT_BOOKKEEPING_TABLES: frozenset[str] = frozenset(
    {"alembic_version", "alembic_versions", "schema_migrations", "ar_internal_metadata"},
)
"""Migration bookkeeping tables that are never cleaned."""


def _default_config_file_location() -> Path:
    return Path.cwd() / "config" / "database.yml"


def load_config_file(path: Path, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Load a YAML database configuration file.

    ``${NAME}`` placeholders are substituted from ``environ`` (defaults to :data:`os.environ`) before the
    document is parsed. Unknown placeholders are left untouched.

    Args:
        path: The file to read.
        environ: Mapping used for placeholder substitution.

    Raises:
        MissingDependencyError: If PyYAML is not installed.
        ConfigurationError: If the document is not a mapping.

    Returns:
        The parsed mapping of database name to connection parameters.
    """
    try:
        import yaml
    except ImportError as e:
        raise MissingDependencyError(package="yaml", install_package="yaml") from e

    source = Template(path.read_text(encoding="utf-8")).safe_substitute(os.environ if environ is None else environ)
    document = yaml.safe_load(source) or {}
    if not isinstance(document, dict):
        msg = f"Database configuration file {path} must contain a mapping, got {type(document).__name__}"
        raise ConfigurationError(msg)
    return document


@dataclass
class CleanerConfig:
    """Where strategies find their database connections.

    Example:
        Reusing the engines of an application::

            config = CleanerConfig(
                default_engine=engine,
                engines=[engine, reporting_engine],
                configurations={"reporting": {"url": "postgresql://localhost/reporting"}},
            )
    """

    config_file_location: Path = field(default_factory=_default_config_file_location)
    """YAML file mapping database names to connection parameters. Defaults to ``./config/database.yml``."""
    configurations: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    """Connection parameters already established by the host application, keyed by database name."""
    engines: Sequence[Engine] = field(default_factory=list)
    """Engines already created by the host application. They are reused when their database matches."""
    default_engine: Engine | None = None
    """Engine used when a database name cannot be resolved to anything more specific."""
    create_engine_callable: Callable[..., Engine] = create_engine
    """Callable that creates an :class:`Engine <sqlalchemy.Engine>` from a URL."""
    bookkeeping_tables: frozenset[str] = DEFAULT_BOOKKEEPING_TABLES
    """Migration bookkeeping tables that are never cleaned."""

    def __post_init__(self) -> None:
        self.config_file_location = Path(self.config_file_location)
        self.bookkeeping_tables = frozenset(self.bookkeeping_tables)

    def resolve_connection_params(self, name: str) -> dict[str, Any] | None:
        """Return the connection parameters configured for the database ``name``.

        The ``"default"`` database never reads configuration. When the configuration file exists, its
        contents are used unless the host application's :attr:`configurations` are non-empty and differ
        from it.

        Args:
            name: Logical database name.

        Returns:
            The connection parameters, or ``None`` when nothing is configured for ``name``.
        """
        if name == "default":
            return None

        configurations: Mapping[str, Mapping[str, Any]] = self.configurations
        if self.config_file_location.is_file():
            from_file = load_config_file(self.config_file_location)
            if not self.configurations or dict(self.configurations) == from_file:
                configurations = from_file
            else:
                logger.debug(
                    "Configuration file %s differs from the application's configurations, using the latter",
                    self.config_file_location,
                )

        params = configurations.get(name)
        return dict(params) if params is not None else None
