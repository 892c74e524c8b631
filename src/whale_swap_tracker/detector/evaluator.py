"""Per-user swap matching.

This module provides the MatchEvaluator that decides whether a swap should
be delivered to a user. Rules run in a fixed order and stop at the first
rejection:

1. Notifications enabled
2. Not already delivered to this user
3. Not a native <-> stablecoin conversion
4. Neither mint is blocked or spam
5. Whale not globally blocked
6. First-mention flag computed
7. First-mention mode requires a first mention
8. Relevant token passes the mode's whitelist/blacklist
9. Whale not in the user's blacklist
10. Value meets the minimum purchase
11. Market cap known and within the maximum

A matching swap is recorded in the user's delivery history before the
result is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Set

from whale_swap_tracker.detector.classifier import SwapClassifier
from whale_swap_tracker.detector.history import DeliveryHistory
from whale_swap_tracker.detector.models import (
    REASON_ABOVE_MAX_MARKET_CAP,
    REASON_BELOW_MIN_PURCHASE,
    REASON_BLOCKED_TOKEN,
    REASON_BLOCKED_WHALE,
    REASON_CONVERSION,
    REASON_DUPLICATE,
    REASON_MARKET_CAP_UNKNOWN,
    REASON_NOT_FIRST_MENTION,
    REASON_NOTIFICATIONS_OFF,
    REASON_TOKEN_BLACKLISTED,
    REASON_TOKEN_NOT_WHITELISTED,
    REASON_WHALE_BLACKLISTED,
    MatchResult,
)
from whale_swap_tracker.filters.models import FilterMode, FilterProfile
from whale_swap_tracker.ingestor.models import Swap, TokenRef
from whale_swap_tracker.pricing.models import ZERO, PriceCache

logger = logging.getLogger(__name__)


class MatchEvaluator:
    """Evaluates swaps against user filter profiles.

    Example:
        ```python
        evaluator = MatchEvaluator(SwapClassifier(), InMemoryDeliveryHistory())
        result = await evaluator.evaluate("42", swap, profile, first_mentions, prices=cache)
        if result.matches:
            await channel.send("42", formatter.format(swap, result.is_first_mention, cache))
        ```
    """

    def __init__(self, classifier: SwapClassifier, history: DeliveryHistory) -> None:
        self._classifier = classifier
        self._history = history
        self._registry = classifier.registry

    async def evaluate(
        self,
        user_id: str,
        swap: Swap,
        profile: FilterProfile,
        first_mentions: Set[str],
        *,
        prices: PriceCache | None = None,
    ) -> MatchResult:
        """Run every rule for one (user, swap) pair.

        Args:
            user_id: Recipient whose history is checked and updated.
            swap: Swap under evaluation.
            profile: The user's normalized filters.
            first_mentions: Mints first observed this cycle.
            prices: Cycle price cache.

        Returns:
            MatchResult describing the outcome.
        """
        prices = prices if prices is not None else PriceCache()
        result = await self._apply_rules(user_id, swap, profile, first_mentions, prices)
        if result.matches:
            await self._history.record(user_id, swap.swap_id)
        else:
            logger.debug(
                "Swap %s rejected for user %s: %s",
                swap.swap_id[:12],
                user_id,
                result.reason,
            )
        return result

    async def _apply_rules(
        self,
        user_id: str,
        swap: Swap,
        profile: FilterProfile,
        first_mentions: Set[str],
        prices: PriceCache,
    ) -> MatchResult:
        registry = self._registry

        if not profile.notifications_enabled:
            return MatchResult.rejected(REASON_NOTIFICATIONS_OFF)
        if await self._history.contains(user_id, swap.swap_id):
            return MatchResult.rejected(REASON_DUPLICATE)
        if self._classifier.is_conversion(swap, prices):
            return MatchResult.rejected(REASON_CONVERSION)
        if any(registry.is_blocked_mint(mint) for mint in swap.mints):
            return MatchResult.rejected(REASON_BLOCKED_TOKEN)
        if registry.is_blocked_whale(swap.fee_payer):
            return MatchResult.rejected(REASON_BLOCKED_WHALE)

        is_first_mention = any(mint in first_mentions for mint in swap.mints)
        if profile.mode == FilterMode.FIRST_MENTION_ONLY and not is_first_mention:
            return MatchResult.rejected(REASON_NOT_FIRST_MENTION)

        token = self._classifier.relevant_token(swap, prices)
        token_keys = self._token_keys(token, prices)
        if profile.mode == FilterMode.TOKEN_FILTER:
            if not token_keys & profile.token_whitelist:
                return MatchResult.rejected(
                    REASON_TOKEN_NOT_WHITELISTED, is_first_mention=is_first_mention
                )
        elif token_keys & profile.token_blacklist:
            return MatchResult.rejected(REASON_TOKEN_BLACKLISTED, is_first_mention=is_first_mention)

        if swap.fee_payer.lower() in profile.whale_blacklist:
            return MatchResult.rejected(REASON_WHALE_BLACKLISTED, is_first_mention=is_first_mention)

        value = self._classifier.value_usd(swap, prices)
        if profile.min_purchase_usd is not None and value < profile.min_purchase_usd:
            return MatchResult.rejected(
                REASON_BELOW_MIN_PURCHASE,
                is_first_mention=is_first_mention,
                value_usd=value,
            )

        if profile.max_market_cap_usd is not None:
            market_cap = prices.get_or_empty(token.mint).market_cap
            if market_cap <= ZERO:
                return MatchResult.rejected(
                    REASON_MARKET_CAP_UNKNOWN,
                    is_first_mention=is_first_mention,
                    value_usd=value,
                )
            if market_cap > profile.max_market_cap_usd:
                return MatchResult.rejected(
                    REASON_ABOVE_MAX_MARKET_CAP,
                    is_first_mention=is_first_mention,
                    value_usd=value,
                )

        return MatchResult(matches=True, is_first_mention=is_first_mention, value_usd=value)

    def _token_keys(self, token: TokenRef, prices: PriceCache) -> frozenset[str]:
        """Case-folded symbol and mint, the two ways a list entry can name a token."""
        symbol = self._classifier.symbol_for(token, prices)
        return frozenset({symbol.lower(), token.mint.lower()})
