"""Data models for the pricing module."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal

ZERO = Decimal("0")

SOURCE_PRIMARY_HARDCODED = "jupiter+hardcoded"
SOURCE_PRIMARY_SECONDARY = "jupiter+dexscreener"
SOURCE_SECONDARY_HARDCODED = "dexscreener+hardcoded"
SOURCE_SECONDARY = "dexscreener"
SOURCE_NONE = "none"
SOURCE_ERROR = "error"


@dataclass(frozen=True)
class PriceQuote:
    """Raw answer from a single price source."""

    price: Decimal = ZERO
    market_cap: Decimal = ZERO
    price_change_24h: Decimal = ZERO
    symbol: str | None = None

    @property
    def has_price(self) -> bool:
        return self.price > 0


EMPTY_QUOTE = PriceQuote()


@dataclass(frozen=True)
class EnrichedToken:
    """Reconciled price data for one mint, valid for a single cycle."""

    mint: str
    price: Decimal = ZERO
    market_cap: Decimal = ZERO
    price_change_24h: Decimal = ZERO
    symbol: str | None = None
    source: str = SOURCE_NONE
    is_known_supply: bool = False

    @classmethod
    def empty(cls, mint: str, *, symbol: str | None = None, source: str = SOURCE_NONE) -> EnrichedToken:
        return cls(mint=mint, symbol=symbol, source=source)

    def to_dict(self) -> dict[str, object]:
        return {
            "mint": self.mint,
            "price": str(self.price),
            "market_cap": str(self.market_cap),
            "price_change_24h": str(self.price_change_24h),
            "symbol": self.symbol,
            "source": self.source,
            "is_known_supply": self.is_known_supply,
        }


class PriceCache(Mapping[str, EnrichedToken]):
    """Cycle-scoped enrichment results keyed by mint.

    Each mint is written once per cycle. Lookups for mints that were never
    resolved return a zero-value token through `get_or_empty`.
    """

    def __init__(self, entries: Mapping[str, EnrichedToken] | None = None) -> None:
        self._entries: dict[str, EnrichedToken] = dict(entries or {})

    def __getitem__(self, mint: str) -> EnrichedToken:
        return self._entries[mint]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def put(self, token: EnrichedToken) -> None:
        if token.mint in self._entries:
            return
        self._entries[token.mint] = token

    def get_or_empty(self, mint: str | None) -> EnrichedToken:
        if not mint:
            return EnrichedToken.empty("")
        return self._entries.get(mint) or EnrichedToken.empty(mint)

    def price_of(self, mint: str | None) -> Decimal:
        return self.get_or_empty(mint).price

    def symbol_of(self, mint: str | None) -> str | None:
        return self.get_or_empty(mint).symbol
