"""HTTP client for the whale swap feed."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from whale_swap_tracker.ingestor.models import Swap, SwapParseError

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "http://localhost:3000/api/swaps"
DEFAULT_TIMEOUT_SECONDS = 10.0


class SwapFeedError(Exception):
    """Raised when the feed cannot produce a usable batch this cycle."""


class SwapFeedClient:
    """Polls the swap feed endpoint.

    The feed returns a JSON array of swaps. Anything else (transport error,
    non-200 status, non-array body) is reported as SwapFeedError so the
    caller can abort the cycle without side effects. Individual malformed
    entries are skipped.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        url: str = DEFAULT_FEED_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def url(self) -> str:
        return self._url

    async def fetch_swaps(self) -> list[Swap]:
        """Fetch the latest swap batch.

        Returns:
            Parsed swaps in feed order. Empty if the feed returned an empty array.

        Raises:
            SwapFeedError: On transport failure or an unusable response.
        """
        try:
            async with self._session.get(self._url, timeout=self._timeout) as response:
                if response.status != 200:
                    raise SwapFeedError(f"Feed returned HTTP {response.status}")
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SwapFeedError(f"Feed request failed: {e}") from e

        if not isinstance(payload, list):
            raise SwapFeedError("Feed payload is not an array")

        return self.parse_swaps(payload)

    @staticmethod
    def parse_swaps(payload: list[Any]) -> list[Swap]:
        swaps: list[Swap] = []
        for index, raw in enumerate(payload):
            try:
                swaps.append(Swap.from_dict(raw))
            except SwapParseError as e:
                logger.warning("Skipping malformed swap at index %d: %s", index, e)
        return swaps
