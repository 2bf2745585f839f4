"""Container liveness rule."""

from typing import Any, Optional

from host_watchdog.models import Alert, ContainerSnapshot, Severity
from host_watchdog.utils.timestamps import Clock, utc_now

from .base import require_instance

RULE_NAME = "container_liveness"


class ContainerLivenessRule:
    """Fire a CRITICAL alert for a container that is not running.

    Evaluates one container at a time; the watchdog invokes it once per
    entry in the inventory listing.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock

    def evaluate(self, snapshot: Any) -> Optional[Alert]:
        require_instance(snapshot, ContainerSnapshot, RULE_NAME)
        if snapshot.running:
            return None
        return Alert(
            timestamp=self.clock(),
            severity=Severity.CRITICAL,
            source="Container",
            message=f"Container {snapshot.name} is not running",
            details=f"Container ID: {snapshot.id}, Status: {snapshot.status_text}",
        )
