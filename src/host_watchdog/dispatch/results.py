"""Result types for alert fan-out."""

from dataclasses import dataclass, field
from typing import List, Optional

from host_watchdog.models import Alert


@dataclass
class DeliveryResult:
    """Outcome of delivering one alert to one channel."""

    channel: str
    """Channel name (e.g. 'email', 'webhook')."""

    success: bool
    """Whether the channel accepted the alert."""

    error: Optional[str] = None
    """Error message if delivery failed."""

    attempts: int = 1
    """Number of send attempts made."""


@dataclass
class DispatchResult:
    """Outcome of fanning one alert out to every channel.

    Results are kept in channel registration order.
    """

    alert: Alert
    results: List[DeliveryResult] = field(default_factory=list)

    @property
    def delivered(self) -> List[DeliveryResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[DeliveryResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_delivered(self) -> bool:
        """True when every channel accepted the alert (vacuously true with none)."""
        return not self.failed
