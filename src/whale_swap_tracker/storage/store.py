"""Async facade over the repositories used by the pipeline and filter editor.

Every call runs in its own session and commits on success, so a failure in
one call never leaves a half-applied change behind.
"""

from __future__ import annotations

import logging

from whale_swap_tracker.filters.models import FilterRow
from whale_swap_tracker.storage.database import DatabaseManager
from whale_swap_tracker.storage.repos import (
    FilterDTO,
    FilterRepository,
    KnownTokenRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class SwapAlertStore:
    """Durable store for users, filter rows and known tokens.

    Example:
        ```python
        store = SwapAlertStore(DatabaseManager(settings.database.url))
        await store.add_user("123456", "whale_fan")
        rows = await store.get_filters("123456")
        ```
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def add_user(self, user_id: str, username: str | None = None) -> None:
        async with self._db.get_async_session() as session:
            await UserRepository(session).upsert(user_id, username)

    async def list_users(self) -> list[str]:
        async with self._db.get_async_session() as session:
            users = await UserRepository(session).list_all()
        return [user.user_id for user in users]

    async def get_filters(self, user_id: str) -> list[FilterRow]:
        """Filter rows of a user, oldest first."""
        async with self._db.get_async_session() as session:
            rows = await FilterRepository(session).list_for_user(user_id)
        return [FilterRow(row.filter_type, row.filter_value) for row in rows]

    async def add_filter(self, user_id: str, filter_type: str, filter_value: str) -> None:
        async with self._db.get_async_session() as session:
            await UserRepository(session).upsert(user_id)
            await FilterRepository(session).insert(
                FilterDTO(user_id=user_id, filter_type=filter_type, filter_value=filter_value)
            )

    async def remove_filter(self, user_id: str, filter_type: str, filter_value: str) -> int:
        async with self._db.get_async_session() as session:
            return await FilterRepository(session).delete_value(user_id, filter_type, filter_value)

    async def clear_filters(self, user_id: str, filter_type: str | None = None) -> int:
        async with self._db.get_async_session() as session:
            return await FilterRepository(session).delete_for_user(user_id, filter_type)

    async def is_token_known(self, mint: str) -> bool:
        async with self._db.get_async_session() as session:
            return await KnownTokenRepository(session).exists(mint)

    async def commit_first_mention(self, mint: str, symbol: str | None) -> bool:
        """Record a mint as known. Duplicate commits succeed and return False."""
        async with self._db.get_async_session() as session:
            inserted = await KnownTokenRepository(session).insert_if_absent(mint, symbol)
        if not inserted:
            logger.debug("Token %s already known", mint[:8] + "...")
        return inserted
