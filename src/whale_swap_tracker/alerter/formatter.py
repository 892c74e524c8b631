"""Alert message formatter for Telegram delivery.

This module turns a matched swap and the cycle's price data into the
Markdown message sent to users.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from whale_swap_tracker.detector.classifier import UNKNOWN_SYMBOL, SwapClassifier
from whale_swap_tracker.ingestor.models import Swap
from whale_swap_tracker.pricing.models import ZERO, PriceCache

SOLSCAN_ACCOUNT_URL = "https://solscan.io/account/{address}"
SOLSCAN_TX_URL = "https://solscan.io/tx/{signature}"
DEXSCREENER_TOKEN_URL = "https://dexscreener.com/solana/{mint}"

FIRST_MENTION_TAG = "🆕 NEW MENTION "
BUY_TAG = "🟢 BUY"
SELL_TAG = "🔴 SELL"

BILLION = Decimal("1000000000")
MILLION = Decimal("1000000")
THOUSAND = Decimal("1000")


def truncate_address(address: str | None, chars: int = 8) -> str:
    """Shorten an address to its first `chars` characters followed by '...'."""
    if not address:
        return UNKNOWN_SYMBOL
    if len(address) <= chars:
        return address
    return f"{address[:chars]}..."


def format_market_cap(market_cap: Decimal | None) -> str:
    """Bucket a market cap as $x.xB, $x.xM or $xK. Non-positive is 'Unknown'."""
    if market_cap is None or market_cap <= ZERO:
        return "Unknown"
    if market_cap >= BILLION:
        return f"${market_cap / BILLION:.1f}B"
    if market_cap >= MILLION:
        return f"${market_cap / MILLION:.1f}M"
    thousands = (market_cap / THOUSAND).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"${thousands}K"


def format_usd(value: Decimal | None) -> str:
    """Whole dollars with thousands separators."""
    if value is None:
        value = ZERO
    rounded = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"${rounded:,}"


def format_amount(amount: Decimal | None) -> str:
    """Token amount with thousands separators and at most 3 decimals."""
    if amount is None:
        return "Unknown"
    text = f"{amount.quantize(Decimal('0.001'), rounding=ROUND_HALF_UP):,}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def escape_markdown(text: str) -> str:
    """Escape the characters Telegram's legacy Markdown treats as markup."""
    for char in ("\\", "_", "*", "`", "["):
        text = text.replace(char, f"\\{char}")
    return text


class AlertFormatter:
    """Formats matched swaps into Telegram Markdown alerts.

    Missing fields render as 'Unknown'; formatting never raises for a
    parsed Swap.
    """

    def __init__(self, classifier: SwapClassifier | None = None) -> None:
        self._classifier = classifier or SwapClassifier()

    def format(
        self,
        swap: Swap,
        is_first_mention: bool = False,
        prices: PriceCache | None = None,
    ) -> str:
        """Format a swap into an alert message.

        Args:
            swap: The matched swap.
            is_first_mention: Whether either mint was first seen this cycle.
            prices: Cycle price cache for symbol, value and market cap.

        Returns:
            Telegram Markdown text.
        """
        prices = prices if prices is not None else PriceCache()
        is_buy = self._classifier.is_buy(swap, prices)
        token = swap.output_token if is_buy else swap.input_token
        symbol = escape_markdown(self._classifier.symbol_for(token, prices))
        value = self._classifier.value_usd(swap, prices)
        market_cap = prices.get_or_empty(token.mint).market_cap

        links = self._build_links(swap, token.mint)
        prefix = FIRST_MENTION_TAG if is_first_mention else ""
        first_seen = " 🆕 FIRST TIME SEEN" if is_first_mention else ""

        lines = [
            f"{prefix}{BUY_TAG if is_buy else SELL_TAG} Alert!",
            "",
            f"🐋 Whale: [{escape_markdown(truncate_address(swap.fee_payer))}]({links['whale']})",
            f"💰 Token: [{symbol}]({links['token']}){first_seen}",
            f"📋 CA: `{token.mint}`",
            f"📊 Amount: {format_amount(token.amount)}",
            f"💵 Value: {format_usd(value)}",
            f"🏦 Market Cap: {format_market_cap(market_cap)}",
        ]
        if "transaction" in links:
            lines.append(f"🔗 [View Transaction]({links['transaction']})")
        lines.extend(["", f"#WhaleAlert #{symbol}"])
        return "\n".join(lines)

    def _build_links(self, swap: Swap, mint: str) -> dict[str, str]:
        links = {
            "whale": SOLSCAN_ACCOUNT_URL.format(address=swap.fee_payer),
            "token": DEXSCREENER_TOKEN_URL.format(mint=mint),
        }
        if swap.signature:
            links["transaction"] = SOLSCAN_TX_URL.format(signature=swap.signature)
        return links
