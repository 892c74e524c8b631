"""Tests for delivery history backends."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from whale_swap_tracker.detector.history import (
    DEFAULT_KEY_PREFIX,
    InMemoryDeliveryHistory,
    RedisDeliveryHistory,
)


class TestInMemoryDeliveryHistory:
    """Tests for the process-local history."""

    @pytest.mark.asyncio
    async def test_record_and_contains(self) -> None:
        history = InMemoryDeliveryHistory()

        await history.record("u1", "sig1")

        assert await history.contains("u1", "sig1")
        assert not await history.contains("u2", "sig1")
        assert not await history.contains("u1", "sig2")

    @pytest.mark.asyncio
    async def test_overflow_evicts_oldest_batch(self) -> None:
        """Test exceeding capacity drops the oldest evict_count ids at once."""
        history = InMemoryDeliveryHistory(capacity=100, evict_count=50)

        for i in range(101):
            await history.record("u1", f"sig{i}")

        assert history.size("u1") == 51
        assert not await history.contains("u1", "sig0")
        assert not await history.contains("u1", "sig49")
        assert await history.contains("u1", "sig50")
        assert await history.contains("u1", "sig100")

    @pytest.mark.asyncio
    async def test_at_capacity_nothing_evicted(self) -> None:
        history = InMemoryDeliveryHistory(capacity=3, evict_count=2)

        for i in range(3):
            await history.record("u1", f"sig{i}")

        assert history.size("u1") == 3

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        history = InMemoryDeliveryHistory()
        await history.record("u1", "a")
        await history.record("u2", "b")

        history.clear("u1")
        assert history.size("u1") == 0
        assert history.size("u2") == 1

        history.clear()
        assert history.size("u2") == 0

    @pytest.mark.parametrize(("capacity", "evict"), [(0, 1), (10, 0), (10, 11)])
    def test_invalid_bounds(self, capacity: int, evict: int) -> None:
        with pytest.raises(ValueError):
            InMemoryDeliveryHistory(capacity=capacity, evict_count=evict)


class TestRedisDeliveryHistory:
    """Tests for the Redis-backed history."""

    @pytest.fixture
    def redis(self) -> MagicMock:
        client = MagicMock()
        client.zscore = AsyncMock(return_value=None)
        client.zadd = AsyncMock(return_value=1)
        client.zcard = AsyncMock(return_value=1)
        client.zremrangebyrank = AsyncMock(return_value=0)
        return client

    @pytest.mark.asyncio
    async def test_contains(self, redis: MagicMock) -> None:
        history = RedisDeliveryHistory(redis)

        assert await history.contains("u1", "sig") is False
        redis.zscore.return_value = 1.7e18
        assert await history.contains("u1", "sig") is True
        redis.zscore.assert_awaited_with(f"{DEFAULT_KEY_PREFIX}u1", "sig")

    @pytest.mark.asyncio
    async def test_record_within_capacity(self, redis: MagicMock) -> None:
        history = RedisDeliveryHistory(redis, capacity=100, evict_count=50)

        await history.record("u1", "sig")

        key, mapping = redis.zadd.await_args.args
        assert key == f"{DEFAULT_KEY_PREFIX}u1"
        assert list(mapping) == ["sig"]
        redis.zremrangebyrank.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_over_capacity_trims_oldest(self, redis: MagicMock) -> None:
        redis.zcard.return_value = 101
        history = RedisDeliveryHistory(redis, capacity=100, evict_count=50, key_prefix="t:")

        await history.record("u1", "sig")

        redis.zremrangebyrank.assert_awaited_once_with("t:u1", 0, 49)
