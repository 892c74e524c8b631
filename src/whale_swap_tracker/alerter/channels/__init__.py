"""Alert delivery channels."""

from __future__ import annotations

from typing import Protocol


class DeliveryError(Exception):
    """Raised when a channel fails to deliver a message."""


class AlertChannel(Protocol):
    """A destination that can deliver a formatted alert to one user."""

    name: str

    async def send(self, user_id: str, text: str) -> None: ...


__all__ = ["AlertChannel", "DeliveryError"]
