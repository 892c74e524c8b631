"""Static token reference tables.

The tables are bundled into a TokenRegistry that is injected into the
classifier, evaluator and price resolver, so they can be swapped without
touching the code that consumes them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

NATIVE_MINT = "So11111111111111111111111111111111111111112"
NATIVE_SYMBOL = "SOL"
NATIVE_FALLBACK_PRICE_USD = Decimal("220")

STABLECOIN_SYMBOLS = frozenset({"USDC", "USDT", "BUSD", "USD1", "DAI", "FRAX"})

# Mints that ship without usable metadata on the feed.
KNOWN_SYMBOLS: Mapping[str, str] = MappingProxyType(
    {
        "Ey59PH7Z4BFU4HjyKnyMdWt5GGN76KazTAwQihoUXRnk": "LAUNCHCOIN",
        "pumpCmXqMfrsAkQ5r49WcJnRayYRqmXz6ae8H7H9Dfn": "PUMP",
        "HeLp6NuQkmYB4pYWo2zYs22mESHXPQYzXbB8n4V98jwC": "ai16z",
        "HUMA1821qVDKta3u2ovmfDQeW2fSQouSKE8fkF44wvGw": "HUMA",
        "bioJ9JTqW62MLz7UKHU69gtKhPpGi1BQhccj2kmSvUJ": "BIO",
        NATIVE_MINT: NATIVE_SYMBOL,
        "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
        "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
        "USD1ttGY1N17NEEHLmELoaybftRBUSErhqYiQzvEmuB": "USD1",
        "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "mSOL",
        "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1": "bSOL",
        "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "BONK",
        "2FPyTwcZLUg1MDrwsyoP4D6s1tM7hAkHYRjkNb5w6Pxk": "ETH",
        "9n4nbM75f5Ui33ZbPYXn59EwSgE8CGsHtAeTH5YFeJ9E": "BTC",
        "5oVNBeEEQvYi1cX3ir8Dx5n1P7pdxydbGF2X4TxVusJm": "INF",
        "A9mUU4qviSctJVPJdBJWkb28deg915LYJKrzQ19ji3FM": "USDCet",
        "3NZ9JMVBmGAqocybic2c7LQCJScmgsAZ6vQqTDzcqmJh": "WBTC",
    }
)

# Circulating supplies used to derive market cap from price.
KNOWN_SUPPLIES: Mapping[str, int] = MappingProxyType(
    {
        "SOL": 542_300_000,
        "USDC": 72_400_000_000,
        "USDT": 169_100_000_000,
        "GUN": 1_121_166_667,
        "CPOOL": 808_900_000,
        "PUMP": 1_000_000_000_000,
        "BIO": 1_900_000_000,
    }
)

# Launchpad mints carry a fixed 1B supply and a recognizable suffix.
SUPPLY_SUFFIXES: Mapping[str, int] = MappingProxyType(
    {
        "pump": 1_000_000_000,
        "bonk": 1_000_000_000,
    }
)

SPAM_MINT_PREFIXES: tuple[str, ...] = ("Xs",)
BLOCKED_MINTS = frozenset({"EJhqXKJEncSx1HJjS5ZpKdiKGGgLiRgNPvo8JZvw5Guj"})
BLOCKED_WHALES = frozenset({"MfDuWeqSHEqTFVYZ7LoexgAK9dxk7cy4DFJWjWMGVWa"})


@dataclass(frozen=True)
class TokenRegistry:
    """Lookup tables shared by classification, filtering and pricing."""

    known_symbols: Mapping[str, str] = field(default_factory=lambda: KNOWN_SYMBOLS)
    known_supplies: Mapping[str, int] = field(default_factory=lambda: KNOWN_SUPPLIES)
    supply_suffixes: Mapping[str, int] = field(default_factory=lambda: SUPPLY_SUFFIXES)
    stablecoins: frozenset[str] = STABLECOIN_SYMBOLS
    native_symbol: str = NATIVE_SYMBOL
    native_mint: str = NATIVE_MINT
    native_fallback_price: Decimal = NATIVE_FALLBACK_PRICE_USD
    spam_prefixes: tuple[str, ...] = SPAM_MINT_PREFIXES
    blocked_mints: frozenset[str] = BLOCKED_MINTS
    blocked_whales: frozenset[str] = BLOCKED_WHALES

    def symbol_for_mint(self, mint: str | None) -> str | None:
        if not mint:
            return None
        return self.known_symbols.get(mint)

    def is_stablecoin(self, symbol: str | None) -> bool:
        return symbol is not None and symbol in self.stablecoins

    def is_native(self, symbol: str | None) -> bool:
        return symbol == self.native_symbol

    def known_supply(self, mint: str | None, symbol: str | None) -> int | None:
        """Return a hardcoded circulating supply, or None when unknown.

        The symbol table wins over mint suffix rules.
        """
        if symbol and symbol in self.known_supplies:
            return self.known_supplies[symbol]
        if mint:
            for suffix, supply in self.supply_suffixes.items():
                if mint.endswith(suffix):
                    return supply
        return None

    def is_blocked_mint(self, mint: str | None) -> bool:
        if not mint:
            return False
        if mint in self.blocked_mints:
            return True
        return any(mint.startswith(prefix) for prefix in self.spam_prefixes)

    def is_blocked_whale(self, address: str | None) -> bool:
        return address is not None and address in self.blocked_whales


DEFAULT_REGISTRY = TokenRegistry()
