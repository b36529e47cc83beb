"""Resolve a logical database name to an engine or connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Union

from sqlalchemy import URL, Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError
from typing_extensions import TypeAlias

from alchemy_cleaner.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from alchemy_cleaner.config.database import CleanerConfig

__all__ = (
    "Bind",
    "DatabaseKey",
    "resolve_bind",
    "url_from_params",
)

logger = logging.getLogger("alchemy_cleaner")

Bind: TypeAlias = Union[Engine, Connection]
DatabaseKey: TypeAlias = Union[str, Engine, Connection]

_URL_PARTS = ("username", "password", "host", "port", "database")


def url_from_params(params: Mapping[str, Any]) -> URL:
    """Build a SQLAlchemy URL from connection parameters.

    ``params`` either holds a complete ``url``, or URL parts: ``drivername`` (or ``adapter``),
    ``username``, ``password``, ``host``, ``port``, ``database`` and ``query``.

    Raises:
        ConfigurationError: If neither a URL nor a driver name is given, or the URL is invalid.
    """
    if params.get("url"):
        try:
            return make_url(str(params["url"]))
        except ArgumentError as e:
            msg = f"Invalid database URL {params['url']!r}: {e}"
            raise ConfigurationError(msg) from e

    drivername = params.get("drivername") or params.get("adapter")
    if not drivername:
        msg = "Connection parameters need either a 'url' or a 'drivername'"
        raise ConfigurationError(msg)
    parts = {name: params[name] for name in _URL_PARTS if params.get(name) is not None}
    if "port" in parts:
        parts["port"] = int(parts["port"])
    return URL.create(str(drivername), query=params.get("query") or {}, **parts)


def resolve_bind(db: DatabaseKey, config: CleanerConfig) -> Bind:
    """Find the engine or connection a strategy cleans.

    Resolution order:

    1. ``db`` itself when it is an :class:`Engine <sqlalchemy.Engine>` or a
       :class:`Connection <sqlalchemy.Connection>`.
    2. An engine of :attr:`CleanerConfig.engines` connected to the configured database.
    3. A new engine created from the configured connection parameters.
    4. :attr:`CleanerConfig.default_engine`.

    Args:
        db: Engine, connection or logical database name.
        config: Where to find connection parameters and existing engines.

    Raises:
        ConfigurationError: If nothing can be resolved.

    Returns:
        The engine or connection to clean.
    """
    if isinstance(db, (Engine, Connection)):
        return db

    params = config.resolve_connection_params(db)
    if params is not None:
        url = url_from_params(params)
        for engine in config.engines:
            if url.database is not None and engine.url.database == url.database:
                logger.debug("Reusing engine %r for database %r", engine, db)
                return engine
        logger.debug("Creating an engine for database %r", db)
        return config.create_engine_callable(url)

    if config.default_engine is not None:
        return config.default_engine

    msg = f"Cannot resolve a connection for database {db!r}: no configuration found and no default engine set"
    raise ConfigurationError(msg)
