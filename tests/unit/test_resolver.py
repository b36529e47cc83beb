from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy import text

from alchemy_cleaner.config import StrategyOptions
from alchemy_cleaner.dialects import DialectAdapter
from alchemy_cleaner.resolver import TableResolver


@pytest.fixture
def adapter() -> MagicMock:
    adapter = MagicMock(spec=DialectAdapter)
    adapter.list_tables.return_value = ["public.users", "public.agents", "audit.events"]
    adapter.list_views.return_value = ["active_users"]
    adapter.row_probe.return_value = None
    return adapter


@pytest.fixture
def connection() -> MagicMock:
    return MagicMock()


def _resolver(adapter: MagicMock, **options: object) -> TableResolver:
    return TableResolver(adapter, StrategyOptions.from_kwargs(**options))


def test_all_tables(adapter: MagicMock, connection: MagicMock) -> None:
    assert _resolver(adapter).tables(connection) == ["public.users", "public.agents", "audit.events"]


def test_except_matches_unqualified_names(adapter: MagicMock, connection: MagicMock) -> None:
    resolver = _resolver(adapter, except_=["users", "audit.events"])

    assert resolver.tables(connection) == ["public.agents"]


def test_only_skips_table_listing(adapter: MagicMock, connection: MagicMock) -> None:
    resolver = _resolver(adapter, only=["agents"])

    assert resolver.tables(connection) == ["agents"]
    adapter.list_tables.assert_not_called()


def test_views_are_excluded_from_only(adapter: MagicMock, connection: MagicMock) -> None:
    assert _resolver(adapter, only=["active_users"]).tables(connection) == []


def test_bookkeeping_tables_are_excluded_from_only(adapter: MagicMock, connection: MagicMock) -> None:
    assert _resolver(adapter, only=["alembic_version", "users"]).tables(connection) == ["users"]


def test_pre_count_filters_written_tables(adapter: MagicMock, connection: MagicMock) -> None:
    adapter.written_tables.return_value = ["public.users"]
    resolver = _resolver(adapter, pre_count=True)

    assert resolver.tables(connection, pre_count=True) == ["public.users"]
    adapter.written_tables.assert_called_once_with(connection, ["public.users", "public.agents", "audit.events"])


def test_pre_count_with_nothing_to_clean(adapter: MagicMock, connection: MagicMock) -> None:
    adapter.list_tables.return_value = []

    assert _resolver(adapter).tables(connection, pre_count=True) == []
    adapter.written_tables.assert_not_called()


def test_tables_and_views_are_cached_per_engine(adapter: MagicMock, connection: MagicMock) -> None:
    resolver = _resolver(adapter)

    resolver.tables(connection)
    resolver.tables(connection)

    assert adapter.list_tables.call_count == 1
    assert adapter.list_views.call_count == 1

    other = MagicMock()
    resolver.tables(other)
    assert adapter.list_tables.call_count == 2


def test_cache_disabled(adapter: MagicMock, connection: MagicMock) -> None:
    resolver = _resolver(adapter, cache_tables=False)

    resolver.tables(connection)
    resolver.tables(connection)

    assert adapter.list_tables.call_count == 2
    assert adapter.list_views.call_count == 2


def test_non_empty_tables_without_probe(adapter: MagicMock, connection: MagicMock) -> None:
    assert _resolver(adapter).non_empty_tables(connection, ["users", "agents"]) == ["users", "agents"]


def test_non_empty_tables_with_probe(adapter: MagicMock, connection: MagicMock) -> None:
    adapter.row_probe.return_value = (text("probe"), {})
    connection.execute.return_value.scalars.return_value = ["agents"]
    resolver = _resolver(adapter)

    assert resolver.non_empty_tables(connection, ["users", "agents"]) == ["agents"]
    assert resolver.non_empty_tables(connection, ["users", "agents"]) == ["agents"]
    assert adapter.row_probe.call_count == 1


def test_non_empty_tables_probe_is_rebuilt_for_a_new_table_list(adapter: MagicMock, connection: MagicMock) -> None:
    adapter.row_probe.return_value = (text("probe"), {})
    resolver = _resolver(adapter)

    resolver.non_empty_tables(connection, ["users"])
    resolver.non_empty_tables(connection, ["users", "agents"])
    resolver.non_empty_tables(connection, ["users", "agents"])
    resolver.non_empty_tables(connection, ["users"])

    assert adapter.row_probe.call_count == 3
    assert len(resolver._row_probe_cache) == 1


def test_non_empty_tables_probe_not_cached(adapter: MagicMock, connection: MagicMock) -> None:
    resolver = _resolver(adapter, cache_tables=False)

    resolver.non_empty_tables(connection, ["users"])
    resolver.non_empty_tables(connection, ["users"])

    assert adapter.row_probe.call_count == 2


def test_non_empty_tables_with_nothing(adapter: MagicMock, connection: MagicMock) -> None:
    assert _resolver(adapter).non_empty_tables(connection, []) == []
    adapter.row_probe.assert_not_called()
