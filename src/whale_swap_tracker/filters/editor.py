"""Write-side operations on user filter rows.

Every change to a filter or to the monitoring mode switches notifications
back off, so users must confirm a changed profile before alerts resume.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from whale_swap_tracker.filters.models import (
    MAX_LIST_ENTRIES,
    FilterMode,
    FilterProfile,
    FilterRow,
    FilterType,
)
from whale_swap_tracker.filters.profile import (
    FilterLimitError,
    FilterRowLike,
    parse_filter_type,
    process_filters,
    switches_for_mode,
    validate_filter_value,
)

logger = logging.getLogger(__name__)


class FilterStore(Protocol):
    async def add_user(self, user_id: str, username: str | None = None) -> None: ...

    async def get_filters(self, user_id: str) -> Sequence[FilterRowLike]: ...

    async def add_filter(self, user_id: str, filter_type: str, filter_value: str) -> None: ...

    async def remove_filter(self, user_id: str, filter_type: str, filter_value: str) -> int: ...

    async def clear_filters(self, user_id: str, filter_type: str | None = None) -> int: ...


class FilterEditor:
    """Validated mutations of a user's filter profile.

    Args:
        store: Persistence backend for filter rows.
    """

    def __init__(self, store: FilterStore) -> None:
        self._store = store

    async def register_user(self, user_id: str, username: str | None = None) -> None:
        await self._store.add_user(user_id, username)

    async def get_profile(self, user_id: str) -> FilterProfile:
        return process_filters(await self._store.get_filters(user_id))

    async def add_filter(self, user_id: str, filter_type: str | FilterType, value: str) -> str:
        """Validate and persist one filter value.

        Thresholds and switches replace the previous row. List values are
        appended unless already present.

        Returns:
            The stored (normalized) value.

        Raises:
            InvalidFilterValueError: If the value is malformed.
            FilterLimitError: If the list already holds MAX_LIST_ENTRIES values.
        """
        ftype = parse_filter_type(filter_type)
        normalized = validate_filter_value(ftype, value)

        if ftype.is_list:
            existing = [
                row.filter_value.strip().lower()
                for row in await self._store.get_filters(user_id)
                if row.filter_type == ftype.value
            ]
            if normalized.lower() in existing:
                return normalized
            if len(set(existing)) >= MAX_LIST_ENTRIES:
                raise FilterLimitError(
                    f"{ftype.value} already holds {MAX_LIST_ENTRIES} entries"
                )
        else:
            await self._store.clear_filters(user_id, ftype.value)

        await self._store.add_filter(user_id, ftype.value, normalized)
        logger.info("User %s set %s=%s", user_id, ftype.value, normalized)

        if ftype is not FilterType.NOTIFICATIONS_ENABLED:
            await self._reset_notifications(user_id)
        return normalized

    async def remove_filter(self, user_id: str, filter_type: str | FilterType, value: str) -> bool:
        ftype = parse_filter_type(filter_type)
        removed = await self._store.remove_filter(user_id, ftype.value, value.strip())
        if removed and ftype is not FilterType.NOTIFICATIONS_ENABLED:
            await self._reset_notifications(user_id)
        return removed > 0

    async def clear_filters(self, user_id: str, filter_type: str | FilterType | None = None) -> int:
        """Delete all rows of one type, or every row when no type is given."""
        if filter_type is None:
            removed = await self._store.clear_filters(user_id)
        else:
            ftype = parse_filter_type(filter_type)
            removed = await self._store.clear_filters(user_id, ftype.value)
            if ftype is FilterType.NOTIFICATIONS_ENABLED:
                return removed
        await self._reset_notifications(user_id)
        return removed

    async def set_mode(self, user_id: str, mode: FilterMode) -> FilterMode:
        for ftype, value in switches_for_mode(mode).items():
            await self._store.clear_filters(user_id, ftype.value)
            await self._store.add_filter(user_id, ftype.value, value)
        await self._reset_notifications(user_id)
        logger.info("User %s switched to %s mode", user_id, mode.value)
        return mode

    async def cycle_mode(self, user_id: str) -> FilterMode:
        """Advance to the next mode in the fixed cycle order."""
        profile = await self.get_profile(user_id)
        return await self.set_mode(user_id, profile.mode.next())

    async def set_notifications(self, user_id: str, enabled: bool) -> bool:
        await self._write_switch(user_id, FilterType.NOTIFICATIONS_ENABLED, enabled)
        return enabled

    async def toggle_notifications(self, user_id: str) -> bool:
        profile = await self.get_profile(user_id)
        return await self.set_notifications(user_id, not profile.notifications_enabled)

    async def _reset_notifications(self, user_id: str) -> None:
        await self._write_switch(user_id, FilterType.NOTIFICATIONS_ENABLED, False)

    async def _write_switch(self, user_id: str, ftype: FilterType, enabled: bool) -> None:
        row = FilterRow(ftype.value, "true" if enabled else "false")
        await self._store.clear_filters(user_id, row.filter_type)
        await self._store.add_filter(user_id, row.filter_type, row.filter_value)
