"""Data models for the ingestor module."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


class SwapParseError(ValueError):
    """Raised when a feed item cannot be turned into a Swap."""


def _to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise SwapParseError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise SwapParseError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise SwapParseError(f"Invalid amount: {value!r}")
    return amount


@dataclass(frozen=True)
class TokenRef:
    """One side of a swap: the token mint, optional metadata and traded amount."""

    mint: str
    amount: Decimal
    symbol: str | None = None
    name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenRef":
        """Create a TokenRef from a feed payload.

        Raises:
            SwapParseError: If the mint or amount is missing or invalid.
        """
        if not isinstance(data, dict):
            raise SwapParseError("Token entry must be an object")
        mint = data.get("mint")
        if not mint or not isinstance(mint, str):
            raise SwapParseError("Token entry has no mint")

        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            metadata = {}
        symbol = metadata.get("symbol") or data.get("symbol")
        name = metadata.get("name") or data.get("name")

        return cls(
            mint=mint,
            amount=_to_decimal(data.get("amount")),
            symbol=str(symbol) if symbol else None,
            name=str(name) if name else None,
        )


@dataclass(frozen=True)
class Swap:
    """A whale swap as returned by the feed.

    Swaps are validated upstream and never mutated here.
    """

    signature: str
    timestamp: int | float | str
    fee_payer: str
    input_token: TokenRef
    output_token: TokenRef

    @property
    def swap_id(self) -> str:
        """Identifier used for per-user duplicate suppression."""
        if self.signature:
            return self.signature
        return f"{self.timestamp}-{self.fee_payer}"

    @property
    def mints(self) -> tuple[str, str]:
        return (self.input_token.mint, self.output_token.mint)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Swap":
        """Create a Swap from a feed payload.

        Raises:
            SwapParseError: If required fields are missing.
        """
        if not isinstance(data, dict):
            raise SwapParseError("Swap entry must be an object")
        fee_payer = data.get("feePayer")
        if not fee_payer:
            raise SwapParseError("Swap entry has no feePayer")
        # Opaque: only feeds the fallback swap_id.
        timestamp = data.get("timestamp")
        if not isinstance(timestamp, (int, float, str)) or isinstance(timestamp, bool):
            timestamp = 0

        return cls(
            signature=str(data.get("signature") or ""),
            timestamp=timestamp,
            fee_payer=str(fee_payer),
            input_token=TokenRef.from_dict(data.get("inputToken")),
            output_token=TokenRef.from_dict(data.get("outputToken")),
        )
