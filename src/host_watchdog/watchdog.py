"""One watchdog tick: sample, evaluate, dispatch.

The resource branch and the container branch share nothing and run
concurrently. A failure in one stage is logged and confined to that
stage: a failed sample skips only its own branch, a failed evaluation
counts as no alert, and channel failures stay inside the dispatcher.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional, TypeVar

import structlog

from host_watchdog.dispatch import AlertDispatcher, DispatchResult
from host_watchdog.exceptions import EvaluationError
from host_watchdog.health import record_tick
from host_watchdog.logging import tick_context
from host_watchdog.models import Alert
from host_watchdog.rules import AlertRule
from host_watchdog.sources import InventorySource, MetricsSource
from host_watchdog.utils.timestamps import Clock, utc_now

log = structlog.get_logger()

DEFAULT_SOURCE_TIMEOUT = 30.0  # seconds per sample/list call

RESOURCES = "resources"
CONTAINERS = "containers"

T = TypeVar("T")


@dataclass
class BranchOutcome:
    """What one evaluation branch did during a tick."""

    name: str
    skipped: bool = False
    error: Optional[str] = None
    evaluation_errors: int = 0
    dispatches: List[DispatchResult] = field(default_factory=list)


@dataclass
class TickSummary:
    """Aggregated outcome of one tick."""

    started_at: datetime
    branches: List[BranchOutcome] = field(default_factory=list)

    @property
    def alerts(self) -> List[Alert]:
        return [d.alert for b in self.branches for d in b.dispatches]

    @property
    def failed_deliveries(self) -> int:
        return sum(len(d.failed) for b in self.branches for d in b.dispatches)

    @property
    def evaluation_errors(self) -> int:
        return sum(b.evaluation_errors for b in self.branches)

    @property
    def skipped(self) -> List[str]:
        return [b.name for b in self.branches if b.skipped]


class Watchdog:
    """Runs the sample, evaluate and dispatch pipeline for one tick.

    Either source may be None, in which case its branch is skipped every
    tick (e.g. container monitoring disabled).
    """

    def __init__(
        self,
        metrics_source: Optional[MetricsSource],
        inventory_source: Optional[InventorySource],
        resource_rule: AlertRule,
        container_rule: AlertRule,
        dispatcher: AlertDispatcher,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
        clock: Clock = utc_now,
    ) -> None:
        self.metrics_source = metrics_source
        self.inventory_source = inventory_source
        self.resource_rule = resource_rule
        self.container_rule = container_rule
        self.dispatcher = dispatcher
        self.source_timeout = source_timeout
        self.clock = clock

    async def tick(self) -> TickSummary:
        """Execute one tick and return what happened.

        Never raises for sampling, evaluation or delivery failures.
        """
        summary = TickSummary(started_at=self.clock())
        branches = (
            (RESOURCES, self._resource_branch),
            (CONTAINERS, self._container_branch),
        )

        with tick_context(summary.started_at):
            log.debug("tick_starting")
            outcomes = await asyncio.gather(
                *[run() for _, run in branches],
                return_exceptions=True,
            )

        for (name, _), outcome in zip(branches, outcomes):
            if isinstance(outcome, BaseException):
                log.error(
                    "branch_unexpected_error",
                    branch=name,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                summary.branches.append(
                    BranchOutcome(name=name, skipped=True, error=str(outcome))
                )
            else:
                summary.branches.append(outcome)

        log.info(
            "tick_complete",
            tick=summary.started_at.isoformat(),
            alerts=len(summary.alerts),
            failed_deliveries=summary.failed_deliveries,
            evaluation_errors=summary.evaluation_errors,
            skipped=summary.skipped,
        )
        return summary

    def run_tick(self) -> TickSummary:
        """Synchronous entry point for the scheduler.

        Runs one tick on a fresh event loop and records the result in the
        health status file. The I/O executor is not joined on exit, so a
        source or channel call that outlived its timeout cannot hold up
        the next tick.
        """
        loop = asyncio.new_event_loop()
        loop.set_default_executor(ThreadPoolExecutor(thread_name_prefix="watchdog-io"))
        try:
            summary = loop.run_until_complete(self.tick())
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()

        record_tick(summary)
        return summary

    def close(self) -> None:
        """Release the inventory source and every channel that holds a connection.

        A resource that fails to close is logged and the rest are still closed.
        """
        resources = [("source", self.inventory_source)]
        resources.extend(("channel", c) for c in self.dispatcher.channels)
        for kind, resource in resources:
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                log.warning(
                    "close_failed",
                    kind=kind,
                    resource=type(resource).__name__,
                    error=str(e),
                )

    async def _call_source(self, func: Callable[[], T]) -> T:
        return await asyncio.wait_for(asyncio.to_thread(func), timeout=self.source_timeout)

    def _evaluate(self, rule: AlertRule, snapshot: Any, outcome: BranchOutcome) -> Optional[Alert]:
        """Evaluate a rule, treating any failure as no alert."""
        try:
            return rule.evaluate(snapshot)
        except EvaluationError as e:
            log.warning("rule_evaluation_failed", branch=outcome.name, error=str(e))
        except Exception as e:
            log.error(
                "rule_evaluation_failed",
                branch=outcome.name,
                error=str(e),
                error_type=type(e).__name__,
            )
        outcome.evaluation_errors += 1
        return None

    async def _resource_branch(self) -> BranchOutcome:
        outcome = BranchOutcome(name=RESOURCES)
        if self.metrics_source is None:
            outcome.skipped = True
            return outcome

        try:
            snapshot = await self._call_source(self.metrics_source.sample)
        except asyncio.TimeoutError:
            outcome.skipped = True
            outcome.error = f"timeout after {self.source_timeout}s"
            log.warning("resource_sampling_failed", error=outcome.error)
            return outcome
        except Exception as e:
            outcome.skipped = True
            outcome.error = str(e)
            log.warning("resource_sampling_failed", error=str(e), error_type=type(e).__name__)
            return outcome

        alert = self._evaluate(self.resource_rule, snapshot, outcome)
        if alert is not None:
            outcome.dispatches.append(await self.dispatcher.dispatch(alert))
        return outcome

    async def _container_branch(self) -> BranchOutcome:
        outcome = BranchOutcome(name=CONTAINERS)
        if self.inventory_source is None:
            outcome.skipped = True
            return outcome

        try:
            containers = await self._call_source(self.inventory_source.list)
        except asyncio.TimeoutError:
            outcome.skipped = True
            outcome.error = f"timeout after {self.source_timeout}s"
            log.warning("container_inventory_failed", error=outcome.error)
            return outcome
        except Exception as e:
            outcome.skipped = True
            outcome.error = str(e)
            log.warning("container_inventory_failed", error=str(e), error_type=type(e).__name__)
            return outcome

        for container in containers:
            alert = self._evaluate(self.container_rule, container, outcome)
            if alert is not None:
                outcome.dispatches.append(await self.dispatcher.dispatch(alert))
        return outcome
