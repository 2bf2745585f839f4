"""Exceptions raised across the watchdog pipeline.

All exceptions inherit from WatchdogError so the CLI can map any of them
to an exit code. Only SourceUnavailableError and ChannelConfigError are
fatal; everything else is caught and logged inside a tick.
"""

from typing import Optional


class WatchdogError(Exception):
    """Base exception for all watchdog errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint.
        exit_code: Suggested exit code for the CLI.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.hint = hint
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class SourceUnavailableError(WatchdogError):
    """A metrics or inventory source could not be constructed at startup.

    This typically occurs when:
    - The Docker daemon is not running
    - The watchdog has no permission on the Docker socket
    - DOCKER_HOST points at an unreachable address
    """

    exit_code: int = 2

    def __init__(
        self,
        message: str = "Cannot reach the container runtime",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "Is the Docker daemon running? Mount /var/run/docker.sock into the "
                "watchdog container or set WATCHDOG_DOCKER_BASE_URL."
            )
        super().__init__(message=message, hint=hint, exit_code=2)


class SamplingError(WatchdogError):
    """A source failed to produce a snapshot for the current tick."""


class EvaluationError(WatchdogError):
    """A rule could not attempt its comparisons (malformed input).

    Never used for "condition not met"; that is represented by no alert.
    """


class DeliveryError(WatchdogError):
    """A notification channel failed to deliver an alert."""


class ChannelConfigError(WatchdogError):
    """A notification channel was constructed with malformed configuration."""

    exit_code: int = 1
