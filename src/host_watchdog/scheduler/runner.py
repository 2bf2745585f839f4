"""Fixed-interval runner using APScheduler."""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

log = structlog.get_logger()

JOB_ID = "watchdog_tick"


class SchedulerError(Exception):
    """Raised when scheduler configuration fails."""

    pass


class ScheduledRunner:
    """APScheduler-based service loop with a fixed tick interval.

    Ticks never overlap and never accumulate: max_instances=1 keeps a
    second tick from starting while one is running, and missed runs are
    coalesced into one. A tick that runs past its interval delays the next
    one instead of dropping it: the next tick starts as soon as the slow
    one returns, then the regular cadence resumes. The first tick fires
    immediately.
    """

    def __init__(
        self,
        interval_seconds: int = 60,
        misfire_grace_time: Optional[int] = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            interval_seconds: Seconds between tick boundaries
            misfire_grace_time: Seconds after a boundary a late tick may still
                start (defaults to the interval)

        Raises:
            SchedulerError: If the interval is not positive
        """
        if interval_seconds <= 0:
            raise SchedulerError(f"Tick interval must be positive, got: {interval_seconds}")
        self.interval_seconds = interval_seconds
        self.misfire_grace_time = misfire_grace_time or interval_seconds
        self._scheduler: Optional[BlockingScheduler] = None

    def _create_scheduler(self) -> BlockingScheduler:
        """Create configured BlockingScheduler."""
        job_defaults = {
            "coalesce": True,  # Combine missed runs into one
            "misfire_grace_time": self.misfire_grace_time,
            "max_instances": 1,  # Prevent overlapping ticks
        }
        return BlockingScheduler(timezone="UTC", job_defaults=job_defaults)

    def run_once(self, func: Callable[[], Any]) -> None:
        """Execute one tick immediately in the calling thread.

        Args:
            func: Tick function to execute
        """
        log.info("one_shot_mode", message="Running a single tick and exiting")
        func()

    def _on_tick_finished(self, event: Any) -> None:
        """Start the next tick right away if this one overran its interval.

        The boundary the slow tick overlapped was already dropped by
        max_instances=1, so the tick is rescheduled for now.
        """
        if self._scheduler is None or not self._scheduler.running:
            return
        elapsed = (datetime.now(timezone.utc) - event.scheduled_run_time).total_seconds()
        if elapsed < self.interval_seconds:
            return
        log.warning("tick_overran", elapsed=round(elapsed, 1), interval=self.interval_seconds)
        self._scheduler.modify_job(JOB_ID, next_run_time=datetime.now(timezone.utc))

    def run(self, func: Callable[[], Any]) -> None:
        """Start the scheduler and block until shutdown.

        Args:
            func: Tick function to execute on every boundary
        """
        self._scheduler = self._create_scheduler()
        self._scheduler.add_job(
            func,
            IntervalTrigger(seconds=self.interval_seconds, timezone="UTC"),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
        )

        def on_job_error(event: Any) -> None:
            log.error("tick_failed", error=str(event.exception))

        def on_max_instances(event: Any) -> None:
            log.warning(
                "tick_skipped",
                reason="previous tick still running",
                interval=self.interval_seconds,
            )

        self._scheduler.add_listener(on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(on_max_instances, EVENT_JOB_MAX_INSTANCES)
        self._scheduler.add_listener(
            self._on_tick_finished, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR
        )

        log.info("scheduler_starting", interval=self.interval_seconds)
        try:
            self._scheduler.start()
        except KeyboardInterrupt:
            log.info("scheduler_shutdown", reason="keyboard interrupt")

    def shutdown(self, wait: bool = True) -> None:
        """Gracefully shutdown the scheduler.

        Args:
            wait: Wait for a running tick to finish before returning
        """
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            log.info("scheduler_shutdown", reason="explicit shutdown")
