"""Pricing layer - Token price and market cap enrichment."""

from whale_swap_tracker.pricing.models import EnrichedToken, PriceCache, PriceQuote
from whale_swap_tracker.pricing.resolver import PriceResolver
from whale_swap_tracker.pricing.sources import (
    DexScreenerSource,
    JupiterPriceSource,
    PriceSourceError,
)

__all__ = [
    "DexScreenerSource",
    "EnrichedToken",
    "JupiterPriceSource",
    "PriceCache",
    "PriceQuote",
    "PriceResolver",
    "PriceSourceError",
]
