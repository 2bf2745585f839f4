"""
Host Watchdog - Periodic host and container health alerts.

This package samples host resource utilization and container runtime state
on a fixed interval, evaluates each sample against configured thresholds,
and fans resulting alerts out to every configured notification channel.

Features:
- Configuration via YAML with environment variable overrides
- Docker secrets support for sensitive credentials
- Structured logging (JSON for production, text for development)
- Per-channel failure isolation with bounded I/O timeouts
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
