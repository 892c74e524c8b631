"""Data models for the detector module."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from whale_swap_tracker.pricing.models import ZERO

# Rejection reasons, in evaluation order.
REASON_MATCHED = "matched"
REASON_NOTIFICATIONS_OFF = "notifications_disabled"
REASON_DUPLICATE = "already_delivered"
REASON_CONVERSION = "native_stable_conversion"
REASON_BLOCKED_TOKEN = "blocked_token"
REASON_BLOCKED_WHALE = "blocked_whale"
REASON_NOT_FIRST_MENTION = "not_first_mention"
REASON_TOKEN_BLACKLISTED = "token_blacklisted"
REASON_TOKEN_NOT_WHITELISTED = "token_not_whitelisted"
REASON_WHALE_BLACKLISTED = "whale_blacklisted"
REASON_BELOW_MIN_PURCHASE = "below_min_purchase"
REASON_MARKET_CAP_UNKNOWN = "market_cap_unknown"
REASON_ABOVE_MAX_MARKET_CAP = "above_max_market_cap"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating one swap against one user's profile.

    Attributes:
        matches: True if the user should be alerted.
        is_first_mention: True if either mint was first seen this cycle.
        reason: Short tag naming the rule that decided the outcome.
        value_usd: Swap value computed for the minimum purchase check.
    """

    matches: bool
    is_first_mention: bool = False
    reason: str = REASON_MATCHED
    value_usd: Decimal = ZERO

    @classmethod
    def rejected(
        cls,
        reason: str,
        *,
        is_first_mention: bool = False,
        value_usd: Decimal = ZERO,
    ) -> MatchResult:
        return cls(
            matches=False,
            is_first_mention=is_first_mention,
            reason=reason,
            value_usd=value_usd,
        )
