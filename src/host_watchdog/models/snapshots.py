"""Point-in-time readings produced by the metrics and inventory sources."""

from dataclasses import dataclass


def _percent(used: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return used / total * 100.0


@dataclass(frozen=True)
class ResourceSnapshot:
    """Host resource utilization at one instant.

    Byte counts are raw values from the host; percentages are derived
    on access and never stored.

    Attributes:
        cpu_usage_percent: Average CPU utilization across all cores
        memory_used: Used memory in bytes
        memory_total: Total memory in bytes
        disk_used: Used disk space in bytes
        disk_total: Total disk space in bytes
    """

    cpu_usage_percent: float
    memory_used: int
    memory_total: int
    disk_used: int
    disk_total: int

    @property
    def memory_percent(self) -> float:
        """Memory utilization percentage (0.0 when total is unknown)."""
        return _percent(self.memory_used, self.memory_total)

    @property
    def disk_percent(self) -> float:
        """Disk utilization percentage (0.0 when total is unknown)."""
        return _percent(self.disk_used, self.disk_total)


@dataclass(frozen=True)
class ContainerSnapshot:
    """State of one container at one instant.

    Attributes:
        id: Container ID as reported by the runtime
        name: Container name without the leading slash
        status_text: Raw runtime status string (e.g. "Exited (1) 2 hours ago")
        running: Whether the runtime considers the container running
    """

    id: str
    name: str
    status_text: str
    running: bool
