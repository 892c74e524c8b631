"""First-mention detection against the durable known-token set."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol

from whale_swap_tracker.ingestor.models import Swap

logger = logging.getLogger(__name__)

# Matches the default database pool size.
DEFAULT_MAX_CONCURRENCY = 5


class KnownTokenStore(Protocol):
    async def is_token_known(self, mint: str) -> bool: ...

    async def commit_first_mention(self, mint: str, symbol: str | None) -> bool: ...


class FirstMentionDetector:
    """Finds mints that have never been seen before.

    `detect` is read-only. Mints are only marked as known through `commit`,
    which the pipeline calls after every user has been evaluated so that all
    users see the same first-mention set in a cycle.
    """

    def __init__(
        self,
        store: KnownTokenStore,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._store = store
        self._max_concurrency = max_concurrency

    async def detect(self, swaps: Iterable[Swap]) -> frozenset[str]:
        mints = sorted({mint for swap in swaps for mint in swap.mints if mint})
        if not mints:
            return frozenset()

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def lookup_bounded(mint: str) -> bool:
            async with semaphore:
                return await self._store.is_token_known(mint)

        results = await asyncio.gather(
            *(lookup_bounded(mint) for mint in mints),
            return_exceptions=True,
        )

        first_mentions: set[str] = set()
        for mint, known in zip(mints, results, strict=True):
            if isinstance(known, BaseException):
                # Treat lookup errors as known so no false first mentions go out.
                logger.warning("Known-token lookup failed for %s: %s", mint[:8] + "...", known)
                continue
            if not known:
                first_mentions.add(mint)

        if first_mentions:
            logger.info("Detected %d first-mention tokens", len(first_mentions))
        return frozenset(first_mentions)

    async def commit(self, mint: str, symbol: str | None = None) -> bool:
        """Mark a mint as known. Returns False if it already was."""
        inserted = await self._store.commit_first_mention(mint, symbol)
        if inserted:
            logger.info("Marked %s (%s) as first mentioned", mint[:8] + "...", symbol or "Unknown")
        return inserted
