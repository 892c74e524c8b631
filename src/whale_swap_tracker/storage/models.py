"""SQLAlchemy models for persistent storage.

This module defines the database schema for registered users, their filter
rows and the set of token mints that have already been seen.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class UserModel(Base):
    """A user who receives alerts. The id is the Telegram chat id."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )


class UserFilterModel(Base):
    """One (filter_type, filter_value) row of a user's profile.

    Rows are append-only per change; the newest threshold or switch row wins
    when the profile is rebuilt.
    """

    __tablename__ = "user_filters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    filter_type: Mapped[str] = mapped_column(String(32), nullable=False)
    filter_value: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (
        Index("idx_user_filters_user_id", "user_id"),
        Index("idx_user_filters_user_type", "user_id", "filter_type"),
    )


class UniqueTokenModel(Base):
    """A token mint that has been observed at least once."""

    __tablename__ = "unique_tokens"

    token_mint: Mapped[str] = mapped_column(String(64), primary_key=True)
    token_symbol: Mapped[str | None] = mapped_column(String(64), nullable=True)
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("idx_unique_tokens_first_seen_at", "first_seen_at"),)
