"""Price resolution across the primary and secondary sources.

Resolution order for each mint:

1. One bulk primary request per chunk of up to 50 mints.
2. Mints with a positive primary price fetch the secondary source for market
   cap and symbol. Market cap is price x hardcoded supply when the registry
   knows the supply, otherwise the secondary market cap, otherwise 0.
3. Mints without a primary price fall back to a full per-mint lookup on both
   sources.

Failures are isolated per mint: a failing mint resolves to a zero-value
EnrichedToken and never aborts the batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from whale_swap_tracker.pricing.models import (
    EMPTY_QUOTE,
    SOURCE_ERROR,
    SOURCE_NONE,
    SOURCE_PRIMARY_HARDCODED,
    SOURCE_PRIMARY_SECONDARY,
    SOURCE_SECONDARY,
    SOURCE_SECONDARY_HARDCODED,
    ZERO,
    EnrichedToken,
    PriceCache,
    PriceQuote,
)
from whale_swap_tracker.pricing.sources import MAX_BATCH_SIZE, PriceSourceError
from whale_swap_tracker.tokens import DEFAULT_REGISTRY, TokenRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


class PrimarySource(Protocol):
    async def get_prices(self, mints: Sequence[str]) -> dict[str, PriceQuote]: ...

    async def get_price(self, mint: str) -> PriceQuote: ...


class SecondarySource(Protocol):
    async def get_token(self, mint: str) -> PriceQuote: ...


def chunked(items: Sequence[str], size: int) -> list[list[str]]:
    """Split items into consecutive chunks of at most `size` elements."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class PriceResolver:
    """Batch-enriches mints with price and market cap data.

    Example:
        ```python
        resolver = PriceResolver(JupiterPriceSource(session), DexScreenerSource(session))
        cache = PriceCache()
        await resolver.resolve({"So111...", "DezX..."}, cache=cache)
        cache.price_of("So111...")
        ```
    """

    def __init__(
        self,
        primary: PrimarySource,
        secondary: SecondarySource,
        *,
        registry: TokenRegistry = DEFAULT_REGISTRY,
        batch_size: int = MAX_BATCH_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._primary = primary
        self._secondary = secondary
        self._registry = registry
        self._batch_size = batch_size
        self._max_concurrency = max_concurrency

    async def resolve(
        self,
        mints: Iterable[str],
        *,
        symbols: Mapping[str, str | None] | None = None,
        cache: PriceCache | None = None,
    ) -> dict[str, EnrichedToken]:
        """Resolve every mint, filling `cache` with the results.

        Args:
            mints: Mints to resolve. Duplicates and empty values are ignored.
            symbols: Best known symbol per mint, used for supply lookups.
            cache: Cycle cache. Mints already present are not refetched.

        Returns:
            Mapping of every requested mint to its EnrichedToken.
        """
        cache = cache if cache is not None else PriceCache()
        symbols = symbols or {}
        requested = sorted({m for m in mints if m})
        pending = [m for m in requested if m not in cache]

        if pending:
            semaphore = asyncio.Semaphore(self._max_concurrency)
            primary_quotes = await self._fetch_primary_bulk(pending, semaphore)

            async def resolve_bounded(mint: str) -> EnrichedToken:
                async with semaphore:
                    return await self._resolve_one(mint, primary_quotes.get(mint), symbols.get(mint))

            results = await asyncio.gather(
                *(resolve_bounded(mint) for mint in pending),
                return_exceptions=True,
            )
            for mint, result in zip(pending, results, strict=True):
                if isinstance(result, BaseException):
                    logger.warning("Enrichment failed for %s: %s", mint[:8] + "...", result)
                    result = EnrichedToken.empty(mint, symbol=symbols.get(mint), source=SOURCE_ERROR)
                cache.put(result)

            logger.debug(
                "Resolved %d mints (%d with primary price)",
                len(pending),
                sum(1 for q in primary_quotes.values() if q.has_price),
            )

        return {mint: cache.get_or_empty(mint) for mint in requested}

    async def _fetch_primary_bulk(
        self,
        mints: Sequence[str],
        semaphore: asyncio.Semaphore,
    ) -> dict[str, PriceQuote]:
        chunks = chunked(mints, self._batch_size)

        async def fetch_chunk(chunk: list[str]) -> dict[str, PriceQuote]:
            async with semaphore:
                return await self._primary.get_prices(chunk)

        results = await asyncio.gather(*(fetch_chunk(c) for c in chunks), return_exceptions=True)

        quotes: dict[str, PriceQuote] = {}
        for chunk, result in zip(chunks, results, strict=True):
            if isinstance(result, BaseException):
                # Mints of a failed chunk go through the per-mint fallback.
                logger.warning("Bulk price request for %d mints failed: %s", len(chunk), result)
                continue
            quotes.update(result)
        return quotes

    async def _resolve_one(
        self,
        mint: str,
        primary_quote: PriceQuote | None,
        symbol_hint: str | None,
    ) -> EnrichedToken:
        if primary_quote is not None and primary_quote.has_price:
            try:
                secondary_quote = await self._secondary.get_token(mint)
            except PriceSourceError as e:
                logger.debug("Secondary lookup failed for %s: %s", mint[:8] + "...", e)
                secondary_quote = EMPTY_QUOTE
            return self.combine(mint, primary_quote, secondary_quote, symbol_hint)

        return await self._full_lookup(mint, symbol_hint)

    async def _full_lookup(self, mint: str, symbol_hint: str | None) -> EnrichedToken:
        primary_result, secondary_result = await asyncio.gather(
            self._primary.get_price(mint),
            self._secondary.get_token(mint),
            return_exceptions=True,
        )
        primary_failed = isinstance(primary_result, BaseException)
        secondary_failed = isinstance(secondary_result, BaseException)
        if primary_failed and secondary_failed:
            logger.debug("Both price sources failed for %s", mint[:8] + "...")
            return EnrichedToken.empty(mint, symbol=symbol_hint, source=SOURCE_ERROR)

        primary_quote = EMPTY_QUOTE if primary_failed else primary_result
        secondary_quote = EMPTY_QUOTE if secondary_failed else secondary_result
        return self.combine(mint, primary_quote, secondary_quote, symbol_hint)

    def combine(
        self,
        mint: str,
        primary: PriceQuote,
        secondary: PriceQuote,
        symbol_hint: str | None,
    ) -> EnrichedToken:
        """Reconcile two quotes into one EnrichedToken."""
        primary_used = primary.has_price
        price = primary.price if primary_used else max(secondary.price, ZERO)
        price_change = primary.price_change_24h or secondary.price_change_24h
        symbol = secondary.symbol or symbol_hint

        supply = self._registry.known_supply(mint, symbol_hint or secondary.symbol)
        if supply:
            market_cap = price * supply if price > 0 else ZERO
            source = SOURCE_PRIMARY_HARDCODED if primary_used else SOURCE_SECONDARY_HARDCODED
        else:
            market_cap = secondary.market_cap
            if primary_used:
                source = SOURCE_PRIMARY_SECONDARY
            elif secondary.has_price or secondary.market_cap > 0:
                source = SOURCE_SECONDARY
            else:
                source = SOURCE_NONE

        return EnrichedToken(
            mint=mint,
            price=price,
            market_cap=market_cap,
            price_change_24h=price_change,
            symbol=symbol,
            source=source,
            is_known_supply=supply is not None,
        )
