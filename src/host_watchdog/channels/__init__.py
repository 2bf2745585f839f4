"""Notification channels for alert delivery."""

from host_watchdog.channels.base import NotificationChannel, format_alert_text
from host_watchdog.channels.email import EmailChannel, EmailDeliveryError
from host_watchdog.channels.webhook import WebhookChannel, WebhookDeliveryError

__all__ = [
    "EmailChannel",
    "EmailDeliveryError",
    "NotificationChannel",
    "WebhookChannel",
    "WebhookDeliveryError",
    "format_alert_text",
]
