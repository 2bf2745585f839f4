"""Chat-ops webhook channel (Slack-compatible incoming webhook)."""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
import structlog

from host_watchdog.exceptions import ChannelConfigError, DeliveryError
from host_watchdog.models import Alert
from host_watchdog.utils.timestamps import format_timestamp

from .base import severity_label

log = structlog.get_logger()


class WebhookDeliveryError(DeliveryError):
    """Raised when the webhook endpoint rejects or never receives an alert."""

    pass


class WebhookChannel:
    """Post each alert as JSON to a fixed webhook URL.

    The payload carries a markdown "text" field for chat display and the
    structured alert under "alert" for machine consumers.
    """

    name = "webhook"

    def __init__(
        self,
        webhook_url: str,
        channel: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize and validate the webhook channel.

        Args:
            webhook_url: Incoming webhook URL (http or https)
            channel: Optional chat channel override (e.g. "#monitoring")
            timeout: Request timeout in seconds

        Raises:
            ChannelConfigError: If the URL is not an absolute http(s) URL
        """
        parsed = urlparse(webhook_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ChannelConfigError(
                f"Invalid webhook URL: {webhook_url!r}",
                hint="Use the full incoming webhook URL, e.g. https://hooks.slack.com/services/...",
            )
        self.webhook_url = webhook_url
        self.channel = channel
        self.timeout = timeout
        self._http_client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def http_client(self) -> httpx.Client:
        """Lazy-initialize HTTP client.

        Both watchdog branches may send through the same channel from
        different worker threads; only one client is ever created.
        """
        with self._client_lock:
            if self._http_client is None:
                self._http_client = httpx.Client(timeout=self.timeout)
            return self._http_client

    def close(self) -> None:
        """Close HTTP client and release resources."""
        with self._client_lock:
            if self._http_client is not None:
                self._http_client.close()
                self._http_client = None

    def __enter__(self) -> "WebhookChannel":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def build_text(self, alert: Alert) -> str:
        return (
            f"*[{severity_label(alert)}] {alert.source} Alert*\n"
            f">Message: {alert.message}\n"
            f">Details: {alert.details}\n"
            f">Timestamp: {format_timestamp(alert.timestamp)}"
        )

    def build_payload(self, alert: Alert) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": self.build_text(alert),
            "alert": alert.model_dump(mode="json"),
        }
        if self.channel:
            payload["channel"] = self.channel
        return payload

    def send(self, alert: Alert) -> None:
        """Post the alert to the webhook.

        Raises:
            WebhookDeliveryError: On transport errors or a non-2xx response
        """
        try:
            response = self.http_client.post(self.webhook_url, json=self.build_payload(alert))
        except httpx.RequestError as e:
            raise WebhookDeliveryError(f"Webhook request failed: {e}") from e

        if response.status_code >= 300:
            raise WebhookDeliveryError(
                f"Webhook returned HTTP {response.status_code}: {response.text[:200]}"
            )
        log.info("webhook_sent", status_code=response.status_code)
