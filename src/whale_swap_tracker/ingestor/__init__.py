"""Data ingestion layer - Whale swap feed polling."""

from whale_swap_tracker.ingestor.feed import SwapFeedClient, SwapFeedError
from whale_swap_tracker.ingestor.models import Swap, SwapParseError, TokenRef

__all__ = [
    "Swap",
    "SwapFeedClient",
    "SwapFeedError",
    "SwapParseError",
    "TokenRef",
]
