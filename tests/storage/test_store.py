"""Tests for the SwapAlertStore facade."""

from pathlib import Path

import pytest

from whale_swap_tracker.filters.models import FilterRow
from whale_swap_tracker.storage.database import DatabaseManager
from whale_swap_tracker.storage.store import SwapAlertStore

BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


@pytest.fixture
async def db(tmp_path: Path):
    """File-backed SQLite database so every session sees the same data."""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await manager.init_schema_async()
    yield manager
    await manager.dispose_async()


@pytest.fixture
def store(db: DatabaseManager) -> SwapAlertStore:
    return SwapAlertStore(db)


class TestUsers:
    """Tests for user registration."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, store: SwapAlertStore) -> None:
        await store.add_user("1", "alice")
        await store.add_user("2")
        await store.add_user("1")

        assert sorted(await store.list_users()) == ["1", "2"]

    @pytest.mark.asyncio
    async def test_add_filter_registers_user(self, store: SwapAlertStore) -> None:
        await store.add_filter("3", "token_whitelist", "BONK")
        assert await store.list_users() == ["3"]


class TestFilters:
    """Tests for filter row persistence."""

    @pytest.mark.asyncio
    async def test_rows_round_trip_in_order(self, store: SwapAlertStore) -> None:
        await store.add_filter("1", "min_purchase", "1000")
        await store.add_filter("1", "token_whitelist", "BONK")

        assert await store.get_filters("1") == [
            FilterRow("min_purchase", "1000"),
            FilterRow("token_whitelist", "BONK"),
        ]

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, store: SwapAlertStore) -> None:
        await store.add_filter("1", "token_whitelist", "BONK")
        await store.add_filter("1", "token_whitelist", "WIF")
        await store.add_filter("1", "min_purchase", "10")

        assert await store.remove_filter("1", "token_whitelist", "bonk") == 1
        assert await store.clear_filters("1", "token_whitelist") == 1
        assert await store.get_filters("1") == [FilterRow("min_purchase", "10")]
        assert await store.clear_filters("1") == 1
        assert await store.get_filters("1") == []

    @pytest.mark.asyncio
    async def test_unknown_user_has_no_rows(self, store: SwapAlertStore) -> None:
        assert await store.get_filters("nobody") == []


class TestKnownTokens:
    """Tests for the durable known-token set."""

    @pytest.mark.asyncio
    async def test_commit_first_mention_once(self, store: SwapAlertStore) -> None:
        assert await store.is_token_known(BONK) is False

        assert await store.commit_first_mention(BONK, "BONK") is True
        assert await store.commit_first_mention(BONK, "BONK") is False

        assert await store.is_token_known(BONK) is True

    @pytest.mark.asyncio
    async def test_known_tokens_survive_reconnect(self, db: DatabaseManager) -> None:
        await SwapAlertStore(db).commit_first_mention(BONK, None)
        await db.dispose_async()

        assert await SwapAlertStore(db).is_token_known(BONK) is True


class TestDatabaseManager:
    """Tests for engine lifecycle helpers."""

    @pytest.mark.asyncio
    async def test_ping(self, db: DatabaseManager) -> None:
        assert await db.ping() is True

    @pytest.mark.asyncio
    async def test_ping_unreachable(self, tmp_path: Path) -> None:
        manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}")

        assert await manager.ping() is False
        await manager.dispose_async()
