"""Data models for user filter profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

MAX_LIST_ENTRIES = 20


class FilterType(str, Enum):
    """Persisted filter row types."""

    TOKEN_WHITELIST = "token_whitelist"
    TOKEN_BLACKLIST = "token_blacklist"
    WHALE_BLACKLIST = "whale_blacklist"
    MIN_PURCHASE = "min_purchase"
    MAX_MARKET_CAP = "max_market_cap"
    MONITOR_ALL = "monitor_all"
    FIRST_MENTION_ONLY = "first_mention_only"
    NOTIFICATIONS_ENABLED = "notifications_enabled"

    @property
    def is_list(self) -> bool:
        return self in LIST_FILTER_TYPES

    @property
    def is_threshold(self) -> bool:
        return self in THRESHOLD_FILTER_TYPES

    @property
    def is_switch(self) -> bool:
        return self in SWITCH_FILTER_TYPES


LIST_FILTER_TYPES = frozenset(
    {FilterType.TOKEN_WHITELIST, FilterType.TOKEN_BLACKLIST, FilterType.WHALE_BLACKLIST}
)
THRESHOLD_FILTER_TYPES = frozenset({FilterType.MIN_PURCHASE, FilterType.MAX_MARKET_CAP})
SWITCH_FILTER_TYPES = frozenset(
    {FilterType.MONITOR_ALL, FilterType.FIRST_MENTION_ONLY, FilterType.NOTIFICATIONS_ENABLED}
)


class FilterMode(str, Enum):
    """Monitoring mode. Exactly one is active per user."""

    ALL_TOKENS = "all_tokens"
    TOKEN_FILTER = "token_filter"
    FIRST_MENTION_ONLY = "first_mention"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]

    def next(self) -> FilterMode:
        """Mode cycle order: all tokens -> token filter -> first mention -> all tokens."""
        order = list(FilterMode)
        return order[(order.index(self) + 1) % len(order)]


_MODE_LABELS = {
    FilterMode.ALL_TOKENS: "All Tokens",
    FilterMode.TOKEN_FILTER: "Token Filter",
    FilterMode.FIRST_MENTION_ONLY: "First Mention Only",
}


@dataclass(frozen=True)
class FilterRow:
    """One persisted (filter_type, filter_value) pair."""

    filter_type: str
    filter_value: str


@dataclass(frozen=True)
class FilterProfile:
    """Normalized per-user filter configuration.

    List entries are stored case-folded for case-insensitive matching.
    Notifications are off unless explicitly enabled.
    """

    token_whitelist: frozenset[str] = field(default_factory=frozenset)
    token_blacklist: frozenset[str] = field(default_factory=frozenset)
    whale_blacklist: frozenset[str] = field(default_factory=frozenset)
    min_purchase_usd: int | None = None
    max_market_cap_usd: int | None = None
    mode: FilterMode = FilterMode.ALL_TOKENS
    notifications_enabled: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "token_whitelist": sorted(self.token_whitelist),
            "token_blacklist": sorted(self.token_blacklist),
            "whale_blacklist": sorted(self.whale_blacklist),
            "min_purchase_usd": self.min_purchase_usd,
            "max_market_cap_usd": self.max_market_cap_usd,
            "mode": self.mode.value,
            "notifications_enabled": self.notifications_enabled,
        }
