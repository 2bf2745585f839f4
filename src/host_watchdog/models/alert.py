"""Alert model: the only value that leaves the evaluation core."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from host_watchdog.utils.timestamps import ensure_utc

from .enums import Severity


class Alert(BaseModel):
    """A single alert produced by a rule and consumed by every channel.

    Alerts are immutable value objects. The timestamp is the instant the
    rule was evaluated, not when the underlying condition started.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Instant of evaluation (UTC)")
    severity: Severity = Field(..., description="Severity level (info, warning, critical)")
    source: str = Field(..., description="Origin tag such as 'CPU' or 'Container'")
    message: str = Field(..., description="Short human summary")
    details: str = Field(default="", description="Supplementary context")

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store every timestamp as aware UTC."""
        return ensure_utc(v)

    @property
    def summary(self) -> str:
        """One-line summary used in log records."""
        return f"[{self.severity.value.upper()}] {self.source}: {self.message}"
