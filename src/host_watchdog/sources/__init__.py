"""Snapshot sources for host metrics and container inventory."""

from host_watchdog.sources.base import InventorySource, MetricsSource
from host_watchdog.sources.containers import DockerInventorySource
from host_watchdog.sources.system import PsutilMetricsSource

__all__ = [
    "DockerInventorySource",
    "InventorySource",
    "MetricsSource",
    "PsutilMetricsSource",
]
