"""Repository pattern implementations for data access.

This module provides data access abstractions for users, filter rows and
known tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from whale_swap_tracker.storage.models import UniqueTokenModel, UserFilterModel, UserModel

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _insert_for(session: AsyncSession) -> Any:
    """Dialect-specific insert construct supporting ON CONFLICT."""
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


@dataclass
class UserDTO:
    """Data transfer object for users."""

    user_id: str
    username: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: UserModel) -> UserDTO:
        return cls(
            user_id=model.user_id,
            username=model.username,
            created_at=model.created_at,
        )


@dataclass
class FilterDTO:
    """Data transfer object for filter rows."""

    user_id: str
    filter_type: str
    filter_value: str
    id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: UserFilterModel) -> FilterDTO:
        return cls(
            id=model.id,
            user_id=model.user_id,
            filter_type=model.filter_type,
            filter_value=model.filter_value,
            created_at=model.created_at,
        )


@dataclass
class KnownTokenDTO:
    """Data transfer object for known tokens."""

    token_mint: str
    token_symbol: str | None = None
    first_seen_at: datetime | None = None

    @classmethod
    def from_model(cls, model: UniqueTokenModel) -> KnownTokenDTO:
        return cls(
            token_mint=model.token_mint,
            token_symbol=model.token_symbol,
            first_seen_at=model.first_seen_at,
        )


class UserRepository:
    """Repository for registered users."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str) -> UserDTO | None:
        result = await self.session.execute(select(UserModel).where(UserModel.user_id == user_id))
        model = result.scalar_one_or_none()
        return UserDTO.from_model(model) if model else None

    async def list_all(self) -> list[UserDTO]:
        result = await self.session.execute(
            select(UserModel).order_by(UserModel.created_at, UserModel.user_id)
        )
        return [UserDTO.from_model(m) for m in result.scalars().all()]

    async def upsert(self, user_id: str, username: str | None = None) -> None:
        """Insert a user, refreshing the username if one is given."""
        insert = _insert_for(self.session)
        stmt = insert(UserModel).values(
            user_id=user_id,
            username=username,
            created_at=datetime.now(UTC),
        )
        if username is None:
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id"],
                set_={"username": stmt.excluded.username},
            )
        await self.session.execute(stmt)
        await self.session.flush()


class FilterRepository:
    """Repository for per-user filter rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_for_user(self, user_id: str) -> list[FilterDTO]:
        """All rows of a user in insertion order."""
        result = await self.session.execute(
            select(UserFilterModel)
            .where(UserFilterModel.user_id == user_id)
            .order_by(UserFilterModel.id)
        )
        return [FilterDTO.from_model(m) for m in result.scalars().all()]

    async def insert(self, dto: FilterDTO) -> FilterDTO:
        model = UserFilterModel(
            user_id=dto.user_id,
            filter_type=dto.filter_type,
            filter_value=dto.filter_value,
        )
        self.session.add(model)
        await self.session.flush()
        return FilterDTO.from_model(model)

    async def delete_value(self, user_id: str, filter_type: str, filter_value: str) -> int:
        """Delete rows matching a value case-insensitively.

        Returns:
            Number of rows deleted.
        """
        rows = await self.list_for_user(user_id)
        ids = [
            row.id
            for row in rows
            if row.filter_type == filter_type
            and row.filter_value.strip().lower() == filter_value.strip().lower()
        ]
        if not ids:
            return 0
        result = await self.session.execute(
            delete(UserFilterModel).where(UserFilterModel.id.in_(ids))
        )
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def delete_for_user(self, user_id: str, filter_type: str | None = None) -> int:
        stmt = delete(UserFilterModel).where(UserFilterModel.user_id == user_id)
        if filter_type is not None:
            stmt = stmt.where(UserFilterModel.filter_type == filter_type)
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]


class KnownTokenRepository:
    """Repository for the set of already-seen token mints."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, token_mint: str) -> KnownTokenDTO | None:
        result = await self.session.execute(
            select(UniqueTokenModel).where(UniqueTokenModel.token_mint == token_mint)
        )
        model = result.scalar_one_or_none()
        return KnownTokenDTO.from_model(model) if model else None

    async def exists(self, token_mint: str) -> bool:
        result = await self.session.execute(
            select(UniqueTokenModel.token_mint).where(UniqueTokenModel.token_mint == token_mint)
        )
        return result.scalar_one_or_none() is not None

    async def insert_if_absent(self, token_mint: str, token_symbol: str | None) -> bool:
        """Insert a mint unless already present.

        Returns:
            True if a row was inserted, False if the mint was already known.
        """
        insert = _insert_for(self.session)
        stmt = (
            insert(UniqueTokenModel)
            .values(
                token_mint=token_mint,
                token_symbol=token_symbol,
                first_seen_at=datetime.now(UTC),
            )
            .on_conflict_do_nothing(index_elements=["token_mint"])
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return (result.rowcount or 0) > 0  # type: ignore[attr-defined]
