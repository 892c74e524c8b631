"""Per-user delivery history for duplicate suppression.

Each user keeps a bounded set of swap ids that were already delivered. When
the set grows past its capacity the oldest entries are evicted in one step.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_EVICT_COUNT = 50
DEFAULT_KEY_PREFIX = "whale_swap_tracker:delivered:"


class DeliveryHistory(Protocol):
    async def contains(self, user_id: str, swap_id: str) -> bool: ...

    async def record(self, user_id: str, swap_id: str) -> None: ...


def _check_bounds(capacity: int, evict_count: int) -> None:
    if capacity < 1:
        raise ValueError("capacity must be at least 1")
    if not 1 <= evict_count <= capacity:
        raise ValueError("evict_count must be between 1 and capacity")


class InMemoryDeliveryHistory:
    """Process-local history. Lost on restart."""

    def __init__(
        self,
        *,
        capacity: int = DEFAULT_CAPACITY,
        evict_count: int = DEFAULT_EVICT_COUNT,
    ) -> None:
        _check_bounds(capacity, evict_count)
        self._capacity = capacity
        self._evict_count = evict_count
        # dicts keep insertion order, so the first keys are the oldest.
        self._delivered: dict[str, dict[str, None]] = {}

    async def contains(self, user_id: str, swap_id: str) -> bool:
        return swap_id in self._delivered.get(user_id, {})

    async def record(self, user_id: str, swap_id: str) -> None:
        delivered = self._delivered.setdefault(user_id, {})
        delivered[swap_id] = None
        if len(delivered) > self._capacity:
            for old_id in list(delivered)[: self._evict_count]:
                del delivered[old_id]
            logger.debug("Evicted %d delivery ids for user %s", self._evict_count, user_id)

    def size(self, user_id: str) -> int:
        return len(self._delivered.get(user_id, {}))

    def clear(self, user_id: str | None = None) -> None:
        if user_id is None:
            self._delivered.clear()
        else:
            self._delivered.pop(user_id, None)


class RedisDeliveryHistory:
    """Redis-backed history that survives restarts.

    Uses one sorted set per user, scored by insertion time.

    Example:
        ```python
        redis = Redis.from_url("redis://localhost:6379")
        history = RedisDeliveryHistory(redis)
        await history.record("42", "5xSig...")
        ```
    """

    def __init__(
        self,
        redis: Redis,
        *,
        capacity: int = DEFAULT_CAPACITY,
        evict_count: int = DEFAULT_EVICT_COUNT,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        _check_bounds(capacity, evict_count)
        self._redis = redis
        self._capacity = capacity
        self._evict_count = evict_count
        self._key_prefix = key_prefix

    def _key(self, user_id: str) -> str:
        return f"{self._key_prefix}{user_id}"

    async def contains(self, user_id: str, swap_id: str) -> bool:
        score = await self._redis.zscore(self._key(user_id), swap_id)
        return score is not None

    async def record(self, user_id: str, swap_id: str) -> None:
        key = self._key(user_id)
        await self._redis.zadd(key, {swap_id: time.time_ns()})
        size = await self._redis.zcard(key)
        if int(size) > self._capacity:
            await self._redis.zremrangebyrank(key, 0, self._evict_count - 1)
            logger.debug("Evicted %d delivery ids for user %s", self._evict_count, user_id)
