from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import sqlalchemy
from sqlalchemy import create_engine

from alchemy_cleaner._listeners import ConnectionNotifier
from alchemy_cleaner.config import CleanerConfig
from alchemy_cleaner.dialects import SQLiteAdapter
from alchemy_cleaner.exceptions import ConfigurationError, UnsupportedDialectError
from alchemy_cleaner.strategies import (
    STRATEGIES,
    DeletionStrategy,
    TransactionStrategy,
    TruncationStrategy,
    get_strategy_class,
)

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture


@pytest.mark.parametrize(
    ("name", "strategy_class"),
    [
        ("transaction", TransactionStrategy),
        ("deletion", DeletionStrategy),
        ("truncation", TruncationStrategy),
        ("Truncation", TruncationStrategy),
    ],
)
def test_get_strategy_class(name: str, strategy_class: type) -> None:
    assert get_strategy_class(name) is strategy_class


def test_unknown_strategy() -> None:
    with pytest.raises(ConfigurationError, match="'copy' strategy does not exist"):
        get_strategy_class("copy")


def test_registered_names() -> None:
    assert set(STRATEGIES) == {"transaction", "deletion", "truncation"}


def test_transaction_accepts_no_options() -> None:
    with pytest.raises(ConfigurationError, match="No options are available for the transaction strategy"):
        TransactionStrategy(create_engine("sqlite://"), only=["users"])


def test_deletion_does_not_reset_ids() -> None:
    with pytest.raises(ConfigurationError, match="deletion strategy"):
        DeletionStrategy(create_engine("sqlite://"), reset_ids=False)


def test_only_and_except_fail_at_construction() -> None:
    with pytest.raises(ConfigurationError):
        TruncationStrategy(create_engine("sqlite://"), only=["users"], except_=["agents"])


def test_bind_is_resolved_once(mocker: MockerFixture, tmp_path: Path) -> None:
    engine = create_engine("sqlite://")
    resolve_bind = mocker.patch("alchemy_cleaner.strategies.base.resolve_bind", return_value=engine)
    strategy = DeletionStrategy("reporting", config=CleanerConfig(config_file_location=tmp_path / "missing.yml"))

    assert strategy.bind is engine
    assert strategy.bind is engine
    resolve_bind.assert_called_once_with("reporting", strategy.config)


def test_adapter_matches_dialect() -> None:
    strategy = TruncationStrategy(create_engine("sqlite://"))

    assert isinstance(strategy.adapter, SQLiteAdapter)
    assert strategy.resolver.adapter is strategy.adapter


def test_named_database_is_not_resolved_at_construction(mocker: MockerFixture) -> None:
    resolve_bind = mocker.patch("alchemy_cleaner.strategies.base.resolve_bind")

    TransactionStrategy("reporting")

    resolve_bind.assert_not_called()


class TestTransactionLifecycle:
    def test_notifier_is_subscribed_until_clean(self) -> None:
        notifier = MagicMock(spec=ConnectionNotifier)
        strategy = TransactionStrategy(create_engine("sqlite://"), notifier=notifier)

        strategy.start()
        notifier.subscribe.assert_called_once()
        callback = notifier.subscribe.call_args.args[0]
        notifier.unsubscribe.assert_not_called()

        strategy.clean()
        notifier.unsubscribe.assert_called_once_with(callback)
        assert not strategy.started

    def test_second_start_keeps_the_transaction(self, caplog: pytest.LogCaptureFixture) -> None:
        notifier = MagicMock(spec=ConnectionNotifier)
        strategy = TransactionStrategy(create_engine("sqlite://"), notifier=notifier)

        strategy.start()
        connection = strategy.connection
        strategy.start()

        assert strategy.connection is connection
        assert notifier.subscribe.call_count == 1
        assert "started twice" in caplog.text
        strategy.clean()

    def test_old_sqlalchemy_is_unsupported(self, mocker: MockerFixture) -> None:
        mocker.patch.object(sqlalchemy, "__version__", "1.4.52")

        with pytest.raises(UnsupportedDialectError, match="SQLAlchemy 2.0 or later"):
            TransactionStrategy(create_engine("sqlite://"))

    def test_resolved_autocommit_engine_is_unsupported(self, mocker: MockerFixture) -> None:
        engine = create_engine("sqlite://").execution_options(isolation_level="AUTOCOMMIT")
        mocker.patch("alchemy_cleaner.strategies.base.resolve_bind", return_value=engine)
        strategy = TransactionStrategy("reporting")

        with pytest.raises(UnsupportedDialectError, match="AUTOCOMMIT"):
            strategy.start()
        assert not strategy.started
