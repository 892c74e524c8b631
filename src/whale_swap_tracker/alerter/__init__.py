"""Alerting layer - Notification formatting and delivery."""

from whale_swap_tracker.alerter.channels import AlertChannel, DeliveryError
from whale_swap_tracker.alerter.channels.telegram import TelegramChannel
from whale_swap_tracker.alerter.formatter import AlertFormatter, format_market_cap

__all__ = [
    "AlertChannel",
    "AlertFormatter",
    "DeliveryError",
    "TelegramChannel",
    "format_market_cap",
]
