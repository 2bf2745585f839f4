"""Scheduler subsystem driving the watchdog tick."""

from host_watchdog.scheduler.runner import ScheduledRunner, SchedulerError

__all__ = [
    "ScheduledRunner",
    "SchedulerError",
]
