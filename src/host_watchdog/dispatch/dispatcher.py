"""Fan-out of alerts to every notification channel.

Each channel is an independent attempt:
- Runs in a worker thread, concurrently with the other channels
- Is bounded by a per-channel timeout
- Fails in isolation (one failure never blocks or fails the others)

Example usage::

    dispatcher = AlertDispatcher([email_channel, webhook_channel])
    result = await dispatcher.dispatch(alert)
    for failure in result.failed:
        print(failure.channel, failure.error)
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from host_watchdog.channels.base import NotificationChannel
from host_watchdog.exceptions import DeliveryError
from host_watchdog.models import Alert, Severity

from .results import DeliveryResult, DispatchResult

log = structlog.get_logger()

DEFAULT_CHANNEL_TIMEOUT = 30.0  # seconds per send attempt


def channel_name(channel: Any) -> str:
    """Name used for a channel in logs and results."""
    return getattr(channel, "name", None) or type(channel).__name__


class AlertDispatcher:
    """Deliver alerts to a fixed list of channels with per-channel isolation.

    The channel list is captured at construction and never changes. With
    max_attempts=1 (the default) a failed channel is not retried; larger
    values enable bounded exponential backoff per channel.
    """

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        timeout: float = DEFAULT_CHANNEL_TIMEOUT,
        max_attempts: int = 1,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 30.0,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            channels: Channels in the order they should be invoked.
            timeout: Seconds allowed for each send attempt.
            max_attempts: Send attempts per channel per alert (1 = no retry).
            retry_min_wait: Minimum backoff between attempts in seconds.
            retry_max_wait: Maximum backoff between attempts in seconds.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {max_attempts}")
        self._channels = tuple(channels)
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

    @property
    def channels(self) -> tuple:
        return self._channels

    async def dispatch(self, alert: Alert) -> DispatchResult:
        """Deliver an alert to every channel, gathering all outcomes.

        Never raises for channel failures; they are logged and reported in
        the returned DispatchResult.
        """
        _log_alert(alert, channels=len(self._channels))

        if not self._channels:
            log.warning("alert_not_dispatched", reason="no channels configured", alert=alert.summary)
            return DispatchResult(alert=alert)

        outcomes = await asyncio.gather(
            *[self._deliver_one(channel, alert) for channel in self._channels],
            return_exceptions=True,
        )

        results = []
        for channel, outcome in zip(self._channels, outcomes):
            if isinstance(outcome, BaseException):
                # _deliver_one handles its own errors; this is a last resort
                log.error(
                    "alert_delivery_unexpected_error",
                    channel=channel_name(channel),
                    alert=alert.summary,
                    error=str(outcome),
                )
                results.append(
                    DeliveryResult(channel=channel_name(channel), success=False, error=str(outcome))
                )
            else:
                results.append(outcome)

        result = DispatchResult(alert=alert, results=results)
        log.info(
            "alert_dispatched",
            alert=alert.summary,
            delivered=len(result.delivered),
            failed=len(result.failed),
        )
        return result

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.retry_min_wait, max=self.retry_max_wait),
            retry=retry_if_exception_type((DeliveryError, asyncio.TimeoutError)),
            reraise=True,
        )

    async def _deliver_one(self, channel: NotificationChannel, alert: Alert) -> DeliveryResult:
        """Send to a single channel, converting every failure into a result."""
        name = channel_name(channel)
        attempts = 0

        try:
            async for attempt in self._retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        log.info("alert_delivery_retry", channel=name, attempt=attempts)
                    await asyncio.wait_for(
                        asyncio.to_thread(channel.send, alert),
                        timeout=self.timeout,
                    )
            return DeliveryResult(channel=name, success=True, attempts=attempts)

        except asyncio.TimeoutError:
            error = f"timeout after {self.timeout}s"
            log.error(
                "alert_delivery_failed",
                channel=name,
                alert=alert.summary,
                error=error,
                attempts=attempts,
            )
            return DeliveryResult(channel=name, success=False, error=error, attempts=attempts)
        except Exception as e:
            log.error(
                "alert_delivery_failed",
                channel=name,
                alert=alert.summary,
                error=str(e),
                error_type=type(e).__name__,
                attempts=attempts,
            )
            return DeliveryResult(channel=name, success=False, error=str(e), attempts=attempts)


def _log_alert(alert: Alert, **kw: Any) -> None:
    """Record every alert before fan-out so none is dropped without a log line."""
    fields = dict(
        source=alert.source,
        severity=alert.severity.value,
        message=alert.message,
        details=alert.details,
        timestamp=alert.timestamp.isoformat(),
        **kw,
    )
    if alert.severity >= Severity.CRITICAL:
        log.error("alert_raised", **fields)
    elif alert.severity >= Severity.WARNING:
        log.warning("alert_raised", **fields)
    else:
        log.info("alert_raised", **fields)
