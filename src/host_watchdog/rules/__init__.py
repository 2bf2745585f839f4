"""Alert rules.

Two rule variants exist: ResourceThresholdRule for host utilization and
ContainerLivenessRule for individual containers.
"""

from host_watchdog.rules.base import AlertRule
from host_watchdog.rules.container import ContainerLivenessRule
from host_watchdog.rules.resource import ResourceThresholdRule

__all__ = [
    "AlertRule",
    "ContainerLivenessRule",
    "ResourceThresholdRule",
]
