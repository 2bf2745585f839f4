"""Health status file for the watchdog's own container.

The watchdog records the outcome of every tick in a small JSON file.
`host-watchdog --healthcheck` reads it back, so the image can declare:

    HEALTHCHECK --interval=60s --timeout=5s --retries=3 \\
        CMD host-watchdog --healthcheck

A tick that could sample nothing at all marks the process unhealthy, and
so does a file that has not been refreshed for several tick intervals
(the scheduler is wedged).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from host_watchdog.watchdog import TickSummary

HEALTH_FILE = Path("/tmp/host-watchdog-health")

# Missed ticks tolerated before the status file counts as stale
STALE_AFTER_TICKS = 3


class HealthStatus(Enum):
    """Health status values for the watchdog process.

    Values:
        STARTING: Process is initializing, no tick has completed yet
        HEALTHY: Last tick evaluated at least one branch
        UNHEALTHY: Last tick could not sample anything, or startup failed
    """

    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def update_health_status(
    status: HealthStatus,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Write health status to the status file."""
    health_data = {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": details or {},
    }
    HEALTH_FILE.write_text(json.dumps(health_data))


def record_tick(summary: "TickSummary") -> HealthStatus:
    """Record the outcome of one tick.

    Details carry one entry per branch ("ok", "skipped" or the sampling
    error) alongside the alert and delivery counts.
    """
    branches = {
        b.name: (b.error or "skipped") if b.skipped else "ok" for b in summary.branches
    }
    if summary.branches and len(summary.skipped) == len(summary.branches):
        status = HealthStatus.UNHEALTHY
    else:
        status = HealthStatus.HEALTHY

    update_health_status(
        status,
        {
            "last_tick": summary.started_at.isoformat(),
            "branches": branches,
            "alerts": len(summary.alerts),
            "failed_deliveries": summary.failed_deliveries,
            "evaluation_errors": summary.evaluation_errors,
        },
    )
    return status


def get_health_status() -> Optional[Dict[str, Any]]:
    """Read current health status from file.

    Returns:
        Dictionary with health status data, or None if file doesn't exist.
    """
    if not HEALTH_FILE.exists():
        return None
    try:
        return json.loads(HEALTH_FILE.read_text())
    except (json.JSONDecodeError, OSError):
        return None


def check_health(poll_interval: int, now: Optional[datetime] = None) -> bool:
    """Return True if the last recorded status is current and not unhealthy."""
    data = get_health_status()
    if data is None or data.get("status") == HealthStatus.UNHEALTHY.value:
        return False
    try:
        written = datetime.fromisoformat(data["timestamp"])
    except (KeyError, TypeError, ValueError):
        return False
    age = ((now or datetime.now(timezone.utc)) - written).total_seconds()
    return age <= poll_interval * STALE_AFTER_TICKS


def clear_health_status() -> None:
    """Remove health file on shutdown."""
    HEALTH_FILE.unlink(missing_ok=True)
