"""Telegram Bot API delivery channel."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from whale_swap_tracker.alerter.channels import DeliveryError

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT_SECONDS = 10.0


class TelegramChannel:
    """Sends Markdown messages through a Telegram bot.

    The user id is the chat id of the user's private chat with the bot.

    Example:
        ```python
        async with aiohttp.ClientSession() as session:
            channel = TelegramChannel(token, session=session)
            await channel.send("123456", "*hello*")
        ```
    """

    name = "telegram"

    def __init__(
        self,
        bot_token: str,
        *,
        session: aiohttp.ClientSession | None = None,
        api_url: str = TELEGRAM_API_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not bot_token:
            raise ValueError("bot_token is required")
        self._endpoint = f"{api_url.rstrip('/')}/bot{bot_token}/sendMessage"
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def send(self, user_id: str, text: str) -> None:
        """Deliver one message.

        Raises:
            DeliveryError: On transport errors or a non-OK API response.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession()

        payload = {
            "chat_id": user_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        try:
            async with self._session.post(
                self._endpoint, json=payload, timeout=self._timeout
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise DeliveryError(
                        f"Telegram returned HTTP {response.status} for chat {user_id}: {body[:200]}"
                    )
                result = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DeliveryError(f"Telegram request for chat {user_id} failed: {e}") from e

        if not isinstance(result, dict) or not result.get("ok"):
            description = result.get("description") if isinstance(result, dict) else result
            raise DeliveryError(f"Telegram rejected message for chat {user_id}: {description}")

        logger.debug("Delivered Telegram alert to %s", user_id)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
