"""Notification channel contract and shared alert formatting."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from host_watchdog.models import Alert
from host_watchdog.utils.timestamps import format_timestamp


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol for notification channels.

    A channel delivers one Alert to one external destination. All of its
    connection and credential settings are supplied at construction and
    validated there; send() makes exactly one network call and never
    retries on its own.
    """

    @property
    def name(self) -> str:
        """Channel identifier used in logs and delivery results."""
        ...

    def send(self, alert: Alert) -> None:
        """Deliver the alert.

        Raises:
            DeliveryError: If the destination did not accept the alert.
        """
        ...


def severity_label(alert: Alert) -> str:
    """Upper-case severity label, e.g. 'WARNING'."""
    return alert.severity.value.upper()


def format_alert_text(alert: Alert) -> str:
    """Render an alert as a plain-text block.

    Example output::

        Alert Details:

        Source: CPU
        Severity: WARNING
        Message: High CPU usage: 85.0%
        Details: Threshold: 80.0%
        Timestamp: 2026-01-24 14:30:00 UTC
    """
    return (
        "Alert Details:\n\n"
        f"Source: {alert.source}\n"
        f"Severity: {severity_label(alert)}\n"
        f"Message: {alert.message}\n"
        f"Details: {alert.details}\n"
        f"Timestamp: {format_timestamp(alert.timestamp)}\n"
    )
