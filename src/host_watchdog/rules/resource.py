"""Resource threshold rule for CPU, memory and disk utilization."""

from typing import Any, List, Optional, Tuple

from host_watchdog.models import Alert, ResourceSnapshot, Severity, ThresholdConfig
from host_watchdog.utils.timestamps import Clock, utc_now

from .base import require_finite, require_instance

RULE_NAME = "resource_threshold"


class ResourceThresholdRule:
    """Fire a WARNING alert when host utilization crosses a threshold.

    Conditions are checked in fixed priority order (CPU, then Memory,
    then Disk) and only the first exceeded condition is reported, so one
    tick emits at most one resource alert even when several resources
    are hot at once.

    A zero memory or disk total means the reading is unavailable; that
    comparison is skipped instead of failing.
    """

    def __init__(self, thresholds: ThresholdConfig, clock: Clock = utc_now) -> None:
        self.thresholds = thresholds
        self.clock = clock

    def evaluate(self, snapshot: Any) -> Optional[Alert]:
        """Return an alert for the first exceeded threshold, or None.

        Raises:
            EvaluationError: If snapshot is not a well-formed ResourceSnapshot
        """
        require_instance(snapshot, ResourceSnapshot, RULE_NAME)
        cpu = require_finite(snapshot.cpu_usage_percent, "cpu_usage_percent", RULE_NAME)
        memory_used = require_finite(snapshot.memory_used, "memory_used", RULE_NAME)
        memory_total = require_finite(snapshot.memory_total, "memory_total", RULE_NAME)
        disk_used = require_finite(snapshot.disk_used, "disk_used", RULE_NAME)
        disk_total = require_finite(snapshot.disk_total, "disk_total", RULE_NAME)

        # (source, label, value, threshold) in priority order
        checks: List[Tuple[str, str, float, float]] = [
            ("CPU", "CPU", cpu, self.thresholds.cpu_threshold_percent),
        ]
        if memory_total > 0:
            checks.append((
                "Memory",
                "memory",
                memory_used / memory_total * 100.0,
                self.thresholds.memory_threshold_percent,
            ))
        if disk_total > 0:
            checks.append((
                "Disk",
                "disk",
                disk_used / disk_total * 100.0,
                self.thresholds.disk_threshold_percent,
            ))

        for source, label, value, threshold in checks:
            if value > threshold:
                return Alert(
                    timestamp=self.clock(),
                    severity=Severity.WARNING,
                    source=source,
                    message=f"High {label} usage: {value:.1f}%",
                    details=f"Threshold: {threshold:.1f}%",
                )
        return None
