"""Swap direction, symbol resolution and USD valuation."""

from __future__ import annotations

from decimal import Decimal

from whale_swap_tracker.ingestor.models import Swap, TokenRef
from whale_swap_tracker.pricing.models import ZERO, PriceCache
from whale_swap_tracker.tokens import DEFAULT_REGISTRY, TokenRegistry

UNKNOWN_SYMBOL = "Unknown"


class SwapClassifier:
    """Classifies swaps using the token registry and cycle prices.

    A swap is a BUY when the whale receives something other than a
    stablecoin or the native asset. Anything else is a SELL.
    """

    def __init__(self, registry: TokenRegistry = DEFAULT_REGISTRY) -> None:
        self._registry = registry

    @property
    def registry(self) -> TokenRegistry:
        return self._registry

    def symbol_for(self, token: TokenRef, prices: PriceCache | None = None) -> str:
        """Best display symbol for a token.

        Order: feed metadata symbol, registry alias, feed metadata name,
        enrichment symbol, then "Unknown".
        """
        if token.symbol:
            return token.symbol
        alias = self._registry.symbol_for_mint(token.mint)
        if alias:
            return alias
        if token.name:
            return token.name
        if prices is not None:
            enriched = prices.symbol_of(token.mint)
            if enriched:
                return enriched
        return UNKNOWN_SYMBOL

    def is_buy(self, swap: Swap, prices: PriceCache | None = None) -> bool:
        symbol = self.symbol_for(swap.output_token, prices)
        return not (self._registry.is_stablecoin(symbol) or self._registry.is_native(symbol))

    def relevant_token(self, swap: Swap, prices: PriceCache | None = None) -> TokenRef:
        """The token a user filters on: bought token for buys, sold token for sells."""
        return swap.output_token if self.is_buy(swap, prices) else swap.input_token

    def is_conversion(self, swap: Swap, prices: PriceCache | None = None) -> bool:
        """True for native <-> stablecoin swaps in either direction."""
        registry = self._registry
        in_symbol = self.symbol_for(swap.input_token, prices)
        out_symbol = self.symbol_for(swap.output_token, prices)
        return (registry.is_native(in_symbol) and registry.is_stablecoin(out_symbol)) or (
            registry.is_stablecoin(in_symbol) and registry.is_native(out_symbol)
        )

    def native_price(self, prices: PriceCache | None = None) -> Decimal:
        if prices is not None:
            price = prices.price_of(self._registry.native_mint)
            if price > 0:
                return price
        return self._registry.native_fallback_price

    def value_usd(self, swap: Swap, prices: PriceCache | None = None) -> Decimal:
        """USD value of a swap, preferring the input side.

        Returns zero when neither side can be priced.
        """
        for token in (swap.input_token, swap.output_token):
            value = self._token_value(token, prices)
            if value is not None:
                return value
        return ZERO

    def _token_value(self, token: TokenRef, prices: PriceCache | None) -> Decimal | None:
        symbol = self.symbol_for(token, prices)
        if self._registry.is_stablecoin(symbol):
            return token.amount
        if self._registry.is_native(symbol):
            return token.amount * self.native_price(prices)
        if prices is not None:
            price = prices.price_of(token.mint)
            if price > 0:
                return token.amount * price
        return None
