from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event

from alchemy_cleaner._listeners import ConnectionNotifier, EngineConnectNotifier

if TYPE_CHECKING:
    from sqlalchemy import Connection


def test_engine_connect_notifier() -> None:
    engine = create_engine("sqlite://")
    notifier = EngineConnectNotifier(engine)
    seen: list[Connection] = []

    def callback(connection: Connection) -> None:
        seen.append(connection)

    assert isinstance(notifier, ConnectionNotifier)

    notifier.subscribe(callback)
    notifier.subscribe(callback)
    with engine.connect() as connection:
        assert seen == [connection]

    notifier.unsubscribe(callback)
    assert not event.contains(engine, "engine_connect", callback)
    with engine.connect():
        pass
    assert len(seen) == 1


def test_unsubscribe_unknown_callback() -> None:
    engine = create_engine("sqlite://")
    notifier = EngineConnectNotifier(engine)

    def callback(connection: Connection) -> None:
        pass

    notifier.unsubscribe(callback)
    assert not event.contains(engine, "engine_connect", callback)
