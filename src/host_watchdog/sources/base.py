"""Source protocols for host metrics and container inventory."""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from host_watchdog.models import ContainerSnapshot, ResourceSnapshot


@runtime_checkable
class MetricsSource(Protocol):
    """Produces a ResourceSnapshot on demand.

    Called once per tick. Implementations raise SamplingError when the
    host cannot be read.
    """

    def sample(self) -> ResourceSnapshot:
        ...


@runtime_checkable
class InventorySource(Protocol):
    """Produces the current container listing on demand.

    Implementations raise SamplingError when the runtime cannot be
    queried for this tick.
    """

    def list(self) -> List[ContainerSnapshot]:
        ...

    def inspect(self, container_id: str) -> ContainerSnapshot:
        ...
