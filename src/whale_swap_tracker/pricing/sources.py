"""HTTP price sources.

Two independent upstreams are used:

- Jupiter price v3 (primary): batched, up to 50 ids per request, price and
  24h change only.
- DexScreener token endpoint (secondary): one mint per request, adds market
  cap (FDV) and the base token symbol.

Both raise PriceSourceError on any transport or payload failure; the
resolver decides how to degrade.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

import aiohttp

from whale_swap_tracker.pricing.models import EMPTY_QUOTE, ZERO, PriceQuote

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_URL = "https://lite-api.jup.ag/price/v3"
DEFAULT_SECONDARY_URL = "https://api.dexscreener.com/latest/dex/tokens"
MAX_BATCH_SIZE = 50
DEFAULT_BULK_TIMEOUT_SECONDS = 5.0
DEFAULT_ITEM_TIMEOUT_SECONDS = 3.0


class PriceSourceError(Exception):
    """Raised when a price source request fails."""


def _decimal(value: Any) -> Decimal:
    """Parse a loosely-typed numeric field, mapping junk to zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    if not parsed.is_finite():
        return ZERO
    return parsed


async def _get_json(
    session: aiohttp.ClientSession,
    url: str,
    *,
    timeout: aiohttp.ClientTimeout,
    params: dict[str, str] | None = None,
) -> Any:
    try:
        async with session.get(url, params=params, timeout=timeout) as response:
            if response.status != 200:
                raise PriceSourceError(f"HTTP {response.status} from {url}")
            return await response.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise PriceSourceError(f"Request to {url} failed: {e}") from e


class JupiterPriceSource:
    """Primary price source with bulk lookups."""

    name = "jupiter"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        url: str = DEFAULT_PRIMARY_URL,
        bulk_timeout_seconds: float = DEFAULT_BULK_TIMEOUT_SECONDS,
        item_timeout_seconds: float = DEFAULT_ITEM_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._url = url
        self._bulk_timeout = aiohttp.ClientTimeout(total=bulk_timeout_seconds)
        self._item_timeout = aiohttp.ClientTimeout(total=item_timeout_seconds)

    async def get_prices(self, mints: Sequence[str]) -> dict[str, PriceQuote]:
        """Fetch prices for one chunk of at most MAX_BATCH_SIZE mints.

        Mints missing from the response are absent from the result.
        """
        if not mints:
            return {}
        if len(mints) > MAX_BATCH_SIZE:
            raise ValueError(f"At most {MAX_BATCH_SIZE} mints per request, got {len(mints)}")
        payload = await _get_json(
            self._session,
            self._url,
            timeout=self._bulk_timeout,
            params={"ids": ",".join(mints)},
        )
        return self._parse(payload)

    async def get_price(self, mint: str) -> PriceQuote:
        payload = await _get_json(
            self._session,
            self._url,
            timeout=self._item_timeout,
            params={"ids": mint},
        )
        return self._parse(payload).get(mint, EMPTY_QUOTE)

    @staticmethod
    def _parse(payload: Any) -> dict[str, PriceQuote]:
        if not isinstance(payload, dict):
            raise PriceSourceError("Unexpected Jupiter payload")
        quotes: dict[str, PriceQuote] = {}
        for mint, data in payload.items():
            if not isinstance(data, dict):
                continue
            quotes[mint] = PriceQuote(
                price=_decimal(data.get("usdPrice")),
                price_change_24h=_decimal(data.get("priceChange24h")),
            )
        return quotes


class DexScreenerSource:
    """Secondary source for market cap, symbol and backup pricing."""

    name = "dexscreener"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        url: str = DEFAULT_SECONDARY_URL,
        timeout_seconds: float = DEFAULT_BULK_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._url = url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def get_token(self, mint: str) -> PriceQuote:
        payload = await _get_json(self._session, f"{self._url}/{mint}", timeout=self._timeout)
        if not isinstance(payload, dict):
            raise PriceSourceError("Unexpected DexScreener payload")

        pairs = payload.get("pairs") or []
        if not isinstance(pairs, list) or not pairs or not isinstance(pairs[0], dict):
            return EMPTY_QUOTE

        # The first pair is the most liquid one.
        pair = pairs[0]
        price_change = pair.get("priceChange") or {}
        base_token = pair.get("baseToken") or {}
        market_cap = _decimal(pair.get("fdv")) or _decimal(pair.get("marketCap"))
        symbol = base_token.get("symbol") if isinstance(base_token, dict) else None

        return PriceQuote(
            price=_decimal(pair.get("priceUsd")),
            market_cap=max(market_cap, ZERO),
            price_change_24h=_decimal(price_change.get("h24")) if isinstance(price_change, dict) else ZERO,
            symbol=str(symbol) if symbol else None,
        )
