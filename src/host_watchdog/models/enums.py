"""Shared enumerations for the Host Watchdog models."""

from enum import Enum


class Severity(str, Enum):
    """Severity level for alerts.

    Totally ordered: INFO < WARNING < CRITICAL. The str mixin keeps the
    serialized form ("warning") stable in JSON payloads.
    """

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position of this severity in the INFO < WARNING < CRITICAL order."""
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER = [Severity.INFO, Severity.WARNING, Severity.CRITICAL]
