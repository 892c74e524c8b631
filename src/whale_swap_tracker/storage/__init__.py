"""Storage layer - Database schemas and repositories."""

from whale_swap_tracker.storage.database import (
    DatabaseManager,
    create_async_db_engine,
    init_async_db,
    to_async_url,
)
from whale_swap_tracker.storage.models import (
    Base,
    UniqueTokenModel,
    UserFilterModel,
    UserModel,
)
from whale_swap_tracker.storage.repos import (
    FilterDTO,
    FilterRepository,
    KnownTokenDTO,
    KnownTokenRepository,
    UserDTO,
    UserRepository,
)
from whale_swap_tracker.storage.store import SwapAlertStore

__all__ = [
    "Base",
    "DatabaseManager",
    "FilterDTO",
    "FilterRepository",
    "KnownTokenDTO",
    "KnownTokenRepository",
    "SwapAlertStore",
    "UniqueTokenModel",
    "UserDTO",
    "UserFilterModel",
    "UserModel",
    "UserRepository",
    "create_async_db_engine",
    "init_async_db",
    "to_async_url",
]
