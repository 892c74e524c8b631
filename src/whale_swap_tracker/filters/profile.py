"""Filter row normalization and validation.

Raw filter rows are stored as (filter_type, filter_value) strings. This
module turns them into a FilterProfile for evaluation and validates values
before they are written.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Protocol

from whale_swap_tracker.filters.models import (
    MAX_LIST_ENTRIES,
    FilterMode,
    FilterProfile,
    FilterType,
)

logger = logging.getLogger(__name__)

_WHOLE_NUMBER_RE = re.compile(r"^\d+$")
MAX_VALUE_LENGTH = 100


class FilterError(ValueError):
    """Base exception for filter configuration errors."""


class InvalidFilterValueError(FilterError):
    """Raised when a filter value cannot be parsed for its type."""


class FilterLimitError(FilterError):
    """Raised when a list filter already holds the maximum number of entries."""


class FilterRowLike(Protocol):
    filter_type: str
    filter_value: str


def parse_filter_type(raw: str | FilterType) -> FilterType:
    try:
        return FilterType(raw)
    except ValueError as e:
        raise InvalidFilterValueError(f"Unknown filter type: {raw!r}") from e


def parse_threshold(raw: str) -> int:
    """Parse a positive whole-number USD threshold."""
    text = raw.strip().replace(",", "").replace("_", "")
    if not _WHOLE_NUMBER_RE.match(text):
        raise InvalidFilterValueError(f"Expected a positive whole number, got {raw!r}")
    value = int(text)
    if value <= 0:
        raise InvalidFilterValueError(f"Expected a positive whole number, got {raw!r}")
    return value


def parse_switch(raw: str) -> bool:
    return raw.strip().lower() == "true"


def validate_filter_value(filter_type: str | FilterType, raw: str) -> str:
    """Validate and normalize a value before it is persisted.

    Returns:
        The value as it should be stored.

    Raises:
        InvalidFilterValueError: If the value is malformed for the type.
    """
    ftype = parse_filter_type(filter_type)
    if raw is None:
        raise InvalidFilterValueError("Filter value is required")
    text = str(raw).strip()

    if ftype.is_threshold:
        return str(parse_threshold(text))
    if ftype.is_switch:
        if text.lower() not in ("true", "false"):
            raise InvalidFilterValueError(f"Expected 'true' or 'false', got {raw!r}")
        return text.lower()

    if not text:
        raise InvalidFilterValueError("Filter value must not be empty")
    if len(text) > MAX_VALUE_LENGTH or any(c.isspace() for c in text):
        raise InvalidFilterValueError(f"Not a token symbol or address: {raw!r}")
    return text


def process_filters(rows: Iterable[FilterRowLike] | None) -> FilterProfile:
    """Build a FilterProfile from persisted rows.

    Rows are applied in order, so the latest threshold or switch row wins.
    Unknown types and unparseable values are skipped with a warning.
    """
    whitelist: list[str] = []
    blacklist: list[str] = []
    whale_blacklist: list[str] = []
    min_purchase: int | None = None
    max_market_cap: int | None = None
    monitor_all = True
    first_mention_only = False
    notifications_enabled = False

    for row in rows or ():
        try:
            ftype = FilterType(row.filter_type)
        except ValueError:
            logger.warning("Ignoring unknown filter type %r", row.filter_type)
            continue
        value = (row.filter_value or "").strip()

        if ftype == FilterType.TOKEN_WHITELIST:
            whitelist.append(value.lower())
        elif ftype == FilterType.TOKEN_BLACKLIST:
            blacklist.append(value.lower())
        elif ftype == FilterType.WHALE_BLACKLIST:
            whale_blacklist.append(value.lower())
        elif ftype.is_threshold:
            try:
                threshold = parse_threshold(value)
            except InvalidFilterValueError:
                logger.warning("Ignoring malformed %s value %r", ftype.value, value)
                continue
            if ftype == FilterType.MIN_PURCHASE:
                min_purchase = threshold
            else:
                max_market_cap = threshold
        elif ftype == FilterType.MONITOR_ALL:
            monitor_all = parse_switch(value)
        elif ftype == FilterType.FIRST_MENTION_ONLY:
            first_mention_only = parse_switch(value)
        elif ftype == FilterType.NOTIFICATIONS_ENABLED:
            notifications_enabled = parse_switch(value)

    return FilterProfile(
        token_whitelist=_bounded(whitelist, FilterType.TOKEN_WHITELIST),
        token_blacklist=_bounded(blacklist, FilterType.TOKEN_BLACKLIST),
        whale_blacklist=_bounded(whale_blacklist, FilterType.WHALE_BLACKLIST),
        min_purchase_usd=min_purchase,
        max_market_cap_usd=max_market_cap,
        mode=mode_from_switches(monitor_all=monitor_all, first_mention_only=first_mention_only),
        notifications_enabled=notifications_enabled,
    )


def mode_from_switches(*, monitor_all: bool, first_mention_only: bool) -> FilterMode:
    if first_mention_only:
        return FilterMode.FIRST_MENTION_ONLY
    if monitor_all:
        return FilterMode.ALL_TOKENS
    return FilterMode.TOKEN_FILTER


def switches_for_mode(mode: FilterMode) -> dict[FilterType, str]:
    """Row values that encode `mode`."""
    return {
        FilterType.MONITOR_ALL: "false" if mode == FilterMode.TOKEN_FILTER else "true",
        FilterType.FIRST_MENTION_ONLY: "true" if mode == FilterMode.FIRST_MENTION_ONLY else "false",
    }


def _bounded(values: list[str], ftype: FilterType) -> frozenset[str]:
    unique = list(dict.fromkeys(v for v in values if v))
    if len(unique) > MAX_LIST_ENTRIES:
        logger.warning(
            "%s has %d entries, keeping the first %d",
            ftype.value,
            len(unique),
            MAX_LIST_ENTRIES,
        )
        unique = unique[:MAX_LIST_ENTRIES]
    return frozenset(unique)
