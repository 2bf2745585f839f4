"""Configuration management for Host Watchdog."""

from host_watchdog.config.loader import ConfigurationError, load_config
from host_watchdog.config.settings import WatchdogSettings

__all__ = [
    "ConfigurationError",
    "WatchdogSettings",
    "load_config",
]
