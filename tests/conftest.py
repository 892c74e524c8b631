"""Pytest configuration and fixtures."""

from collections.abc import Callable
from decimal import Decimal

import pytest

from whale_swap_tracker.ingestor.models import Swap, TokenRef
from whale_swap_tracker.pricing.models import EnrichedToken, PriceCache

WHALE = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
WIF = "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm"


@pytest.fixture
def whale_address() -> str:
    """Sample whale (fee payer) address."""
    return WHALE


@pytest.fixture
def mints() -> dict[str, str]:
    """Well-known mints keyed by symbol."""
    return {"SOL": SOL, "USDC": USDC, "BONK": BONK, "WIF": WIF}


@pytest.fixture
def make_swap() -> Callable[..., Swap]:
    """Factory for swaps. Defaults to a whale buying BONK with 100 USDC."""

    def _make(
        *,
        signature: str = "5VfYmGC3sig1",
        timestamp: int = 1_700_000_000,
        fee_payer: str = WHALE,
        in_mint: str = USDC,
        in_amount: str = "100",
        in_symbol: str | None = "USDC",
        out_mint: str = BONK,
        out_amount: str = "5000000",
        out_symbol: str | None = "BONK",
    ) -> Swap:
        return Swap(
            signature=signature,
            timestamp=timestamp,
            fee_payer=fee_payer,
            input_token=TokenRef(mint=in_mint, amount=Decimal(in_amount), symbol=in_symbol),
            output_token=TokenRef(mint=out_mint, amount=Decimal(out_amount), symbol=out_symbol),
        )

    return _make


@pytest.fixture
def make_prices() -> Callable[..., PriceCache]:
    """Factory for price caches from (mint, price, market_cap) tuples."""

    def _make(*entries: tuple[str, str, str]) -> PriceCache:
        cache = PriceCache()
        for mint, price, market_cap in entries:
            cache.put(
                EnrichedToken(
                    mint=mint,
                    price=Decimal(price),
                    market_cap=Decimal(market_cap),
                    source="jupiter+dexscreener",
                )
            )
        return cache

    return _make
