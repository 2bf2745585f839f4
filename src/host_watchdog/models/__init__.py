"""Data models for Host Watchdog."""

from .alert import Alert
from .enums import Severity
from .snapshots import ContainerSnapshot, ResourceSnapshot
from .thresholds import DEFAULT_THRESHOLDS, ThresholdConfig

__all__ = [
    "Alert",
    "ContainerSnapshot",
    "DEFAULT_THRESHOLDS",
    "ResourceSnapshot",
    "Severity",
    "ThresholdConfig",
]
