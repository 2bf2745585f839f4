"""Construction of sources, channels and the watchdog from settings.

Everything here runs once at startup. Construction failures propagate:
an unreachable container runtime or a malformed channel setting stops
the process before the first tick.
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from host_watchdog.channels import EmailChannel, NotificationChannel, WebhookChannel
from host_watchdog.config import WatchdogSettings
from host_watchdog.dispatch import AlertDispatcher
from host_watchdog.rules import ContainerLivenessRule, ResourceThresholdRule
from host_watchdog.sources import DockerInventorySource, PsutilMetricsSource
from host_watchdog.watchdog import Watchdog

log = structlog.get_logger()


def build_channels(settings: WatchdogSettings) -> List[NotificationChannel]:
    """Create enabled channels in registration order (email, then webhook).

    Raises:
        ChannelConfigError: If an enabled channel is misconfigured
    """
    channels: List[NotificationChannel] = []

    if settings.email_enabled:
        channels.append(
            EmailChannel(
                smtp_host=settings.smtp_host or "",
                to_addr=settings.email_to or "",
                smtp_port=settings.smtp_port,
                smtp_user=settings.smtp_user,
                smtp_password=settings.smtp_password,
                use_tls=settings.smtp_use_tls,
                from_addr=settings.email_from,
                timeout=settings.channel_timeout,
            )
        )

    if settings.webhook_enabled:
        channels.append(
            WebhookChannel(
                webhook_url=settings.webhook_url or "",
                channel=settings.webhook_channel,
                timeout=settings.channel_timeout,
            )
        )

    if not channels:
        log.warning(
            "no_channels_configured",
            message="Alerts will only be written to the log",
        )
    return channels


def build_inventory_source(settings: WatchdogSettings) -> Optional[DockerInventorySource]:
    """Connect to Docker if container monitoring is enabled.

    Raises:
        SourceUnavailableError: If the daemon cannot be reached
    """
    if not settings.docker_enabled:
        log.info("docker_disabled", message="Container monitoring disabled via configuration")
        return None
    return DockerInventorySource(
        base_url=settings.docker_base_url,
        timeout=settings.source_timeout,
    )


def build_dispatcher(
    settings: WatchdogSettings,
    channels: List[NotificationChannel],
) -> AlertDispatcher:
    return AlertDispatcher(
        channels,
        timeout=settings.channel_timeout,
        max_attempts=settings.channel_max_attempts,
    )


def build_watchdog(settings: WatchdogSettings) -> Watchdog:
    """Wire the full pipeline from settings.

    Raises:
        SourceUnavailableError: If a source cannot be constructed
        ChannelConfigError: If a channel cannot be constructed
    """
    channels = build_channels(settings)
    metrics_source = PsutilMetricsSource(
        cpu_interval=settings.cpu_sample_interval,
        disk_paths=settings.get_disk_paths(),
    )
    inventory_source = build_inventory_source(settings)

    return Watchdog(
        metrics_source=metrics_source,
        inventory_source=inventory_source,
        resource_rule=ResourceThresholdRule(settings.get_thresholds()),
        container_rule=ContainerLivenessRule(),
        dispatcher=build_dispatcher(settings, channels),
        source_timeout=settings.source_timeout,
    )
