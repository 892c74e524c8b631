"""Tests for the Telegram delivery channel."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from whale_swap_tracker.alerter.channels import DeliveryError
from whale_swap_tracker.alerter.channels.telegram import TelegramChannel

TOKEN = "123456:ABC-DEF"


def _mock_session(
    *,
    status: int = 200,
    body: str = "",
    result: object = None,
    exc: Exception | None = None,
):
    """Build a session whose post() yields one canned response."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=body)
    response.json = AsyncMock(return_value={"ok": True} if result is None else result)

    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.close = AsyncMock()
    if exc is not None:
        session.post = MagicMock(side_effect=exc)
    else:
        session.post = MagicMock(return_value=ctx)
    return session


class TestTelegramChannel:
    """Tests for TelegramChannel.send."""

    def test_requires_token(self) -> None:
        with pytest.raises(ValueError):
            TelegramChannel("")

    @pytest.mark.asyncio
    async def test_send_posts_markdown_message(self) -> None:
        session = _mock_session()
        channel = TelegramChannel(TOKEN, session=session, api_url="https://tg.local/")

        await channel.send("987654", "*hello*")

        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == f"https://tg.local/bot{TOKEN}/sendMessage"
        assert payload == {
            "chat_id": "987654",
            "text": "*hello*",
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }

    @pytest.mark.asyncio
    async def test_ok_false_raises(self) -> None:
        """Test a 200 response with ok=false is a failed delivery."""
        session = _mock_session(result={"ok": False, "description": "Bad Request: chat not found"})
        channel = TelegramChannel(TOKEN, session=session)

        with pytest.raises(DeliveryError, match="chat not found"):
            await channel.send("987654", "hi")

    @pytest.mark.asyncio
    async def test_unparseable_body_raises(self) -> None:
        session = _mock_session()
        session.post.return_value.__aenter__.return_value.json.side_effect = ValueError("bad json")
        channel = TelegramChannel(TOKEN, session=session)

        with pytest.raises(DeliveryError):
            await channel.send("987654", "hi")

    @pytest.mark.asyncio
    async def test_api_error_raises(self) -> None:
        session = _mock_session(status=403, body='{"description":"bot was blocked by the user"}')
        channel = TelegramChannel(TOKEN, session=session)

        with pytest.raises(DeliveryError, match="403"):
            await channel.send("987654", "hi")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc", [aiohttp.ClientConnectionError("reset"), asyncio.TimeoutError()]
    )
    async def test_transport_error_raises(self, exc: Exception) -> None:
        channel = TelegramChannel(TOKEN, session=_mock_session(exc=exc))

        with pytest.raises(DeliveryError):
            await channel.send("987654", "hi")

    @pytest.mark.asyncio
    async def test_close_leaves_shared_session_open(self) -> None:
        session = _mock_session()
        channel = TelegramChannel(TOKEN, session=session)

        await channel.close()

        session.close.assert_not_awaited()
