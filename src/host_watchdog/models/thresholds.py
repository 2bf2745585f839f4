"""Resource threshold configuration.

All thresholds use > comparison (value > threshold triggers an alert).
"""

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class ThresholdConfig:
    """Process-wide resource thresholds, fixed at startup.

    Attributes:
        cpu_threshold_percent: CPU usage threshold (percent)
        memory_threshold_percent: Memory usage threshold (percent)
        disk_threshold_percent: Disk usage threshold (percent)
    """

    cpu_threshold_percent: float = 80.0
    memory_threshold_percent: float = 90.0
    disk_threshold_percent: float = 85.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{f.name} must be between 0 and 100, got: {value}")


DEFAULT_THRESHOLDS = ThresholdConfig()
