"""Notifications about connections established while a test runs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from sqlalchemy import event
from typing_extensions import TypeAlias

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

__all__ = (
    "ConnectCallback",
    "ConnectionNotifier",
    "EngineConnectNotifier",
)

logger = logging.getLogger("alchemy_cleaner")

ConnectCallback: TypeAlias = Callable[["Connection"], None]


@runtime_checkable
class ConnectionNotifier(Protocol):
    """Source of new-connection events."""

    def subscribe(self, callback: ConnectCallback) -> None:
        """Call ``callback`` with every connection established from now on."""
        ...

    def unsubscribe(self, callback: ConnectCallback) -> None:
        """Stop calling ``callback``. Unknown callbacks are ignored."""
        ...


class EngineConnectNotifier:
    """:class:`ConnectionNotifier` backed by the ``engine_connect`` event of an engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._callbacks: list[ConnectCallback] = []

    def subscribe(self, callback: ConnectCallback) -> None:
        if callback in self._callbacks:
            return
        event.listen(self.engine, "engine_connect", callback)
        self._callbacks.append(callback)
        logger.debug("Listening for connections on %r", self.engine)

    def unsubscribe(self, callback: ConnectCallback) -> None:
        if callback not in self._callbacks:
            return
        self._callbacks.remove(callback)
        if event.contains(self.engine, "engine_connect", callback):
            event.remove(self.engine, "engine_connect", callback)
