"""Host resource sampling with psutil."""

from typing import Iterable, List, Optional, Set, Tuple

import psutil
import structlog

from host_watchdog.exceptions import SamplingError, SourceUnavailableError
from host_watchdog.models import ResourceSnapshot

log = structlog.get_logger()


class PsutilMetricsSource:
    """Sample CPU, memory and disk utilization of the local host.

    CPU is averaged across all cores over cpu_interval seconds. Disk
    usage is summed over the given mount paths, or over every physical
    partition when none are given. Partitions backed by the same device
    are counted once.
    """

    def __init__(
        self,
        cpu_interval: float = 1.0,
        disk_paths: Optional[Iterable[str]] = None,
    ) -> None:
        """Initialize the metrics source.

        Args:
            cpu_interval: Seconds to measure CPU utilization over
            disk_paths: Mount points to include in disk totals (None = all)

        Raises:
            SourceUnavailableError: If psutil cannot read host memory
        """
        self.cpu_interval = cpu_interval
        self.disk_paths: List[str] = list(disk_paths or [])
        try:
            psutil.virtual_memory()
        except Exception as e:
            raise SourceUnavailableError(
                f"Cannot read host metrics: {e}",
                hint="psutil needs access to /proc; check the container mounts.",
            ) from e

    def _mountpoints(self) -> List[Tuple[str, str]]:
        """Return (device, mountpoint) pairs to measure."""
        if self.disk_paths:
            return [(path, path) for path in self.disk_paths]
        return [(p.device, p.mountpoint) for p in psutil.disk_partitions(all=False)]

    def _disk_usage(self) -> Tuple[int, int]:
        used = 0
        total = 0
        seen: Set[str] = set()
        for device, mountpoint in self._mountpoints():
            if device in seen:
                continue
            seen.add(device)
            try:
                usage = psutil.disk_usage(mountpoint)
            except OSError as e:
                log.debug("disk_usage_unavailable", mountpoint=mountpoint, error=str(e))
                continue
            used += usage.used
            total += usage.total
        return used, total

    def sample(self) -> ResourceSnapshot:
        """Take one resource snapshot.

        Raises:
            SamplingError: If psutil fails to read CPU or memory
        """
        try:
            cpu = psutil.cpu_percent(interval=self.cpu_interval)
            memory = psutil.virtual_memory()
        except Exception as e:
            raise SamplingError(f"Failed to collect system metrics: {e}") from e

        disk_used, disk_total = self._disk_usage()

        snapshot = ResourceSnapshot(
            cpu_usage_percent=float(cpu),
            memory_used=int(memory.used),
            memory_total=int(memory.total),
            disk_used=disk_used,
            disk_total=disk_total,
        )
        log.debug(
            "resources_sampled",
            cpu=snapshot.cpu_usage_percent,
            memory_percent=round(snapshot.memory_percent, 1),
            disk_percent=round(snapshot.disk_percent, 1),
        )
        return snapshot
