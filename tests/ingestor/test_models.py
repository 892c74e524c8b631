"""Tests for ingestor data models."""

from decimal import Decimal

import pytest

from whale_swap_tracker.ingestor.models import Swap, SwapParseError, TokenRef


def _feed_item(**overrides: object) -> dict:
    item = {
        "signature": "4nXf8wC1sig",
        "timestamp": 1_700_000_000,
        "feePayer": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "inputToken": {
            "mint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
            "amount": 2500.5,
            "metadata": {"symbol": "USDC", "name": "USD Coin"},
        },
        "outputToken": {
            "mint": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
            "amount": "125000000",
        },
    }
    item.update(overrides)
    return item


class TestTokenRef:
    """Tests for TokenRef model."""

    def test_from_dict_with_metadata(self) -> None:
        """Test symbol and name are read from metadata."""
        token = TokenRef.from_dict(
            {"mint": "abc", "amount": "1.5", "metadata": {"symbol": "WIF", "name": "dogwifhat"}}
        )

        assert token.mint == "abc"
        assert token.amount == Decimal("1.5")
        assert token.symbol == "WIF"
        assert token.name == "dogwifhat"

    def test_from_dict_without_metadata(self) -> None:
        """Test metadata is optional."""
        token = TokenRef.from_dict({"mint": "abc", "amount": 3})

        assert token.symbol is None
        assert token.name is None
        assert token.amount == Decimal("3")

    def test_float_amount_keeps_decimal_text(self) -> None:
        """Test float amounts go through str() and keep their printed value."""
        token = TokenRef.from_dict({"mint": "abc", "amount": 0.1})
        assert token.amount == Decimal("0.1")

    @pytest.mark.parametrize("amount", [None, "abc", True, "NaN", "Infinity"])
    def test_invalid_amount(self, amount: object) -> None:
        """Test unusable amounts are rejected."""
        with pytest.raises(SwapParseError):
            TokenRef.from_dict({"mint": "abc", "amount": amount})

    def test_missing_mint(self) -> None:
        """Test a token without mint is rejected."""
        with pytest.raises(SwapParseError, match="no mint"):
            TokenRef.from_dict({"amount": 1})

    def test_frozen(self) -> None:
        """Test that TokenRef is immutable."""
        token = TokenRef(mint="abc", amount=Decimal("1"))
        with pytest.raises(AttributeError):
            token.mint = "def"  # type: ignore[misc]


class TestSwap:
    """Tests for Swap model."""

    def test_from_dict_full(self) -> None:
        """Test creating Swap from a complete feed item."""
        swap = Swap.from_dict(_feed_item())

        assert swap.signature == "4nXf8wC1sig"
        assert swap.timestamp == 1_700_000_000
        assert swap.fee_payer == "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
        assert swap.input_token.symbol == "USDC"
        assert swap.input_token.amount == Decimal("2500.5")
        assert swap.output_token.symbol is None
        assert swap.output_token.amount == Decimal("125000000")

    def test_mints(self) -> None:
        """Test mints returns (input, output)."""
        swap = Swap.from_dict(_feed_item())
        assert swap.mints == (
            "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
            "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
        )

    def test_swap_id_prefers_signature(self) -> None:
        """Test swap_id is the signature when present."""
        swap = Swap.from_dict(_feed_item())
        assert swap.swap_id == "4nXf8wC1sig"

    def test_swap_id_without_signature(self) -> None:
        """Test swap_id falls back to timestamp and fee payer."""
        swap = Swap.from_dict(_feed_item(signature=None))

        assert swap.signature == ""
        assert swap.swap_id == "1700000000-7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"

    def test_missing_fee_payer(self) -> None:
        """Test a swap without fee payer is rejected."""
        with pytest.raises(SwapParseError, match="feePayer"):
            Swap.from_dict(_feed_item(feePayer=""))

    def test_missing_token(self) -> None:
        """Test a swap without output token is rejected."""
        with pytest.raises(SwapParseError):
            Swap.from_dict(_feed_item(outputToken=None))

    @pytest.mark.parametrize("timestamp", ["2024-06-01T12:00:00Z", "1717243200.5"])
    def test_timestamp_kept_as_sent(self, timestamp: str) -> None:
        """Test non-integer timestamps parse and build the fallback swap_id."""
        swap = Swap.from_dict(_feed_item(signature=None, timestamp=timestamp))

        assert swap.timestamp == timestamp
        assert swap.swap_id == f"{timestamp}-7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"

    def test_missing_timestamp(self) -> None:
        """Test a swap without timestamp still parses."""
        swap = Swap.from_dict(_feed_item(timestamp=None))

        assert swap.timestamp == 0

    def test_not_an_object(self) -> None:
        """Test non-dict items are rejected."""
        with pytest.raises(SwapParseError):
            Swap.from_dict(["not", "a", "swap"])  # type: ignore[arg-type]
