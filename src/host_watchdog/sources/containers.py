"""Container inventory from the Docker Engine API."""

from typing import Any, Dict, List, Optional

import docker
import requests
import structlog
from docker.errors import DockerException

from host_watchdog.exceptions import SamplingError, SourceUnavailableError
from host_watchdog.models import ContainerSnapshot

log = structlog.get_logger()


def _strip_name(name: str) -> str:
    return name.lstrip("/")


def _is_running(state: Optional[str], status_text: str) -> bool:
    """Decide liveness from the runtime state, falling back to status text.

    Older engines omit State in listings; their status text starts with
    "Up" for live containers.
    """
    if state:
        return state.lower() == "running"
    return status_text.lower().startswith("up")


class DockerInventorySource:
    """List and inspect containers managed by the local Docker daemon.

    The daemon is pinged at construction so an unreachable runtime fails
    the process at startup rather than on the first tick.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0) -> None:
        """Connect to the Docker daemon.

        Args:
            base_url: Engine URL (e.g. unix:///var/run/docker.sock); None uses
                DOCKER_HOST and the platform defaults
            timeout: Per-request timeout in seconds (fractions allowed)

        Raises:
            SourceUnavailableError: If the daemon cannot be reached
        """
        self.base_url = base_url
        self.timeout = timeout
        try:
            if base_url:
                self._client = docker.DockerClient(base_url=base_url, timeout=timeout)
            else:
                self._client = docker.from_env(timeout=timeout)
            self._client.ping()
        except (DockerException, requests.RequestException) as e:
            raise SourceUnavailableError(f"Docker connection error: {e}") from e
        log.info("docker_connected", base_url=base_url or "environment")

    @staticmethod
    def _from_listing(entry: Dict[str, Any]) -> ContainerSnapshot:
        names = entry.get("Names") or [""]
        status_text = entry.get("Status") or ""
        return ContainerSnapshot(
            id=entry.get("Id", ""),
            name=_strip_name(names[0]),
            status_text=status_text,
            running=_is_running(entry.get("State"), status_text),
        )

    def list(self) -> List[ContainerSnapshot]:
        """List every container, including stopped ones.

        Raises:
            SamplingError: If the daemon request fails
        """
        try:
            entries = self._client.api.containers(all=True)
        except (DockerException, requests.RequestException) as e:
            raise SamplingError(f"Container monitoring error: {e}") from e

        containers = [self._from_listing(entry) for entry in entries]
        log.debug(
            "containers_listed",
            total=len(containers),
            stopped=sum(1 for c in containers if not c.running),
        )
        return containers

    def inspect(self, container_id: str) -> ContainerSnapshot:
        """Inspect a single container by ID or name.

        Raises:
            SamplingError: If the container is unknown or the request fails
        """
        try:
            data = self._client.api.inspect_container(container_id)
        except (DockerException, requests.RequestException) as e:
            raise SamplingError(f"Cannot inspect container {container_id}: {e}") from e

        state = data.get("State") or {}
        return ContainerSnapshot(
            id=data.get("Id", container_id),
            name=_strip_name(data.get("Name", "")),
            status_text=state.get("Status", ""),
            running=bool(state.get("Running", False)),
        )

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._client.close()
