"""Tests for the watchdog tick pipeline."""

import json
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest
from structlog.testing import capture_logs

from host_watchdog.dispatch import AlertDispatcher
from host_watchdog.exceptions import DeliveryError, SamplingError
from host_watchdog.models import (
    Alert,
    ContainerSnapshot,
    ResourceSnapshot,
    Severity,
    ThresholdConfig,
)
from host_watchdog.rules import ContainerLivenessRule, ResourceThresholdRule
from host_watchdog.utils.timestamps import fixed_clock
from host_watchdog.watchdog import CONTAINERS, RESOURCES, Watchdog

NOW = datetime(2026, 1, 24, 14, 30, tzinfo=timezone.utc)

CALM = ResourceSnapshot(
    cpu_usage_percent=10.0,
    memory_used=100,
    memory_total=1000,
    disk_used=100,
    disk_total=1000,
)
HOT_CPU = ResourceSnapshot(
    cpu_usage_percent=85.0,
    memory_used=100,
    memory_total=1000,
    disk_used=100,
    disk_total=1000,
)
WEB_DOWN = ContainerSnapshot(id="abc123", name="web", status_text="Exited (1)", running=False)
DB_UP = ContainerSnapshot(id="def456", name="db", status_text="Up 2 hours", running=True)
CACHE_DOWN = ContainerSnapshot(id="0ff1ce", name="cache", status_text="Exited (137)", running=False)


# =============================================================================
# Fakes
# =============================================================================


class FakeMetrics:
    def __init__(self, snapshot=CALM, error: Optional[Exception] = None, delay: float = 0.0):
        self.snapshot = snapshot
        self.error = error
        self.delay = delay
        self.calls = 0

    def sample(self):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.snapshot


class FakeInventory:
    def __init__(self, containers=(), error: Optional[Exception] = None):
        self.containers = list(containers)
        self.error = error
        self.calls = 0

    def list(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.containers

    def inspect(self, container_id: str):
        return next(c for c in self.containers if c.id == container_id)


class RecordingChannel:
    def __init__(self, name: str = "recorder", fail: bool = False) -> None:
        self.name = name
        self.fail = fail
        self.received: List[Alert] = []

    def send(self, alert: Alert) -> None:
        self.received.append(alert)
        if self.fail:
            raise DeliveryError("endpoint down")


def make_watchdog(
    metrics=None,
    inventory=None,
    channels=None,
    source_timeout: float = 5.0,
) -> Watchdog:
    clock = fixed_clock(NOW)
    return Watchdog(
        metrics_source=metrics,
        inventory_source=inventory,
        resource_rule=ResourceThresholdRule(ThresholdConfig(), clock=clock),
        container_rule=ContainerLivenessRule(clock=clock),
        dispatcher=AlertDispatcher(channels if channels is not None else [RecordingChannel()]),
        source_timeout=source_timeout,
        clock=clock,
    )


# =============================================================================
# Tick behaviour
# =============================================================================


class TestWatchdogTick:
    @pytest.mark.asyncio
    async def test_quiet_tick(self) -> None:
        channel = RecordingChannel()
        watchdog = make_watchdog(FakeMetrics(), FakeInventory([DB_UP]), [channel])

        summary = await watchdog.tick()

        assert summary.alerts == []
        assert summary.skipped == []
        assert summary.started_at == NOW
        assert channel.received == []

    @pytest.mark.asyncio
    async def test_resource_alert_dispatched(self) -> None:
        channel = RecordingChannel()
        watchdog = make_watchdog(FakeMetrics(HOT_CPU), FakeInventory([DB_UP]), [channel])

        summary = await watchdog.tick()

        assert len(channel.received) == 1
        alert = channel.received[0]
        assert alert.severity == Severity.WARNING
        assert alert.source == "CPU"
        assert alert.message == "High CPU usage: 85.0%"
        assert alert.timestamp == NOW
        assert summary.alerts == [alert]

    @pytest.mark.asyncio
    async def test_one_alert_per_stopped_container(self) -> None:
        channel = RecordingChannel()
        watchdog = make_watchdog(
            FakeMetrics(), FakeInventory([WEB_DOWN, DB_UP, CACHE_DOWN]), [channel]
        )

        await watchdog.tick()

        assert [a.message for a in channel.received] == [
            "Container web is not running",
            "Container cache is not running",
        ]
        assert all(a.severity == Severity.CRITICAL for a in channel.received)

    @pytest.mark.asyncio
    async def test_sampling_failure_does_not_block_containers(self) -> None:
        channel = RecordingChannel()
        metrics = FakeMetrics(error=SamplingError("psutil exploded"))
        inventory = FakeInventory([WEB_DOWN])
        watchdog = make_watchdog(metrics, inventory, [channel])

        with capture_logs() as logs:
            summary = await watchdog.tick()

        assert summary.skipped == [RESOURCES]
        assert inventory.calls == 1
        assert [a.source for a in channel.received] == ["Container"]
        assert any(e["event"] == "resource_sampling_failed" for e in logs)

    @pytest.mark.asyncio
    async def test_inventory_failure_does_not_block_resources(self) -> None:
        channel = RecordingChannel()
        watchdog = make_watchdog(
            FakeMetrics(HOT_CPU),
            FakeInventory(error=SamplingError("daemon gone")),
            [channel],
        )

        with capture_logs() as logs:
            summary = await watchdog.tick()

        assert summary.skipped == [CONTAINERS]
        assert [a.source for a in channel.received] == ["CPU"]
        assert any(e["event"] == "container_inventory_failed" for e in logs)

    @pytest.mark.asyncio
    async def test_source_timeout(self) -> None:
        channel = RecordingChannel()
        watchdog = make_watchdog(
            FakeMetrics(HOT_CPU, delay=0.5),
            FakeInventory([WEB_DOWN]),
            [channel],
            source_timeout=0.05,
        )

        summary = await watchdog.tick()

        resources = next(b for b in summary.branches if b.name == RESOURCES)
        assert resources.skipped is True
        assert "timeout" in resources.error
        assert [a.source for a in channel.received] == ["Container"]

    @pytest.mark.asyncio
    async def test_malformed_snapshot_counts_as_no_alert(self) -> None:
        channel = RecordingChannel()
        bad = ResourceSnapshot(
            cpu_usage_percent=float("nan"),
            memory_used=100,
            memory_total=1000,
            disk_used=100,
            disk_total=1000,
        )
        watchdog = make_watchdog(FakeMetrics(bad), FakeInventory([WEB_DOWN]), [channel])

        with capture_logs() as logs:
            summary = await watchdog.tick()

        assert summary.evaluation_errors == 1
        assert summary.skipped == []
        assert [a.source for a in channel.received] == ["Container"]
        assert any(e["event"] == "rule_evaluation_failed" for e in logs)

    @pytest.mark.asyncio
    async def test_malformed_container_does_not_stop_others(self) -> None:
        channel = RecordingChannel()
        watchdog = make_watchdog(
            FakeMetrics(), FakeInventory([{"id": "x"}, WEB_DOWN]), [channel]
        )

        summary = await watchdog.tick()

        assert summary.evaluation_errors == 1
        assert [a.message for a in channel.received] == ["Container web is not running"]

    @pytest.mark.asyncio
    async def test_delivery_failure_stays_in_dispatcher(self) -> None:
        failing = RecordingChannel("email", fail=True)
        healthy = RecordingChannel("webhook")
        watchdog = make_watchdog(FakeMetrics(HOT_CPU), FakeInventory(), [failing, healthy])

        summary = await watchdog.tick()

        assert summary.failed_deliveries == 1
        assert len(failing.received) == 1
        assert len(healthy.received) == 1

    @pytest.mark.asyncio
    async def test_disabled_inventory_skipped(self) -> None:
        watchdog = make_watchdog(FakeMetrics(), None)

        summary = await watchdog.tick()

        assert summary.skipped == [CONTAINERS]

    @pytest.mark.asyncio
    async def test_tick_complete_logged(self) -> None:
        watchdog = make_watchdog(FakeMetrics(HOT_CPU), FakeInventory([WEB_DOWN]))

        with capture_logs() as logs:
            await watchdog.tick()

        complete = [e for e in logs if e["event"] == "tick_complete"]
        assert len(complete) == 1
        assert complete[0]["alerts"] == 2
        assert complete[0]["skipped"] == []


# =============================================================================
# run_tick and health reporting
# =============================================================================


@pytest.fixture
def health_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "health"
    monkeypatch.setattr("host_watchdog.health.HEALTH_FILE", path)
    return path


class TestRunTick:
    def test_healthy_after_tick(self, health_file: Path) -> None:
        watchdog = make_watchdog(FakeMetrics(HOT_CPU), FakeInventory([DB_UP]))

        summary = watchdog.run_tick()

        assert len(summary.alerts) == 1
        data = json.loads(health_file.read_text())
        assert data["status"] == "healthy"
        assert data["details"]["alerts"] == 1
        assert data["details"]["last_tick"] == NOW.isoformat()

    def test_unhealthy_when_nothing_sampled(self, health_file: Path) -> None:
        watchdog = make_watchdog(
            FakeMetrics(error=SamplingError("x")),
            FakeInventory(error=SamplingError("y")),
        )

        summary = watchdog.run_tick()

        assert sorted(summary.skipped) == [CONTAINERS, RESOURCES]
        data = json.loads(health_file.read_text())
        assert data["status"] == "unhealthy"

    def test_consecutive_ticks_realert(self, health_file: Path) -> None:
        """No deduplication: a persisting condition alerts on every tick."""
        channel = RecordingChannel()
        watchdog = make_watchdog(FakeMetrics(), FakeInventory([WEB_DOWN]), [channel])

        watchdog.run_tick()
        watchdog.run_tick()

        assert len(channel.received) == 2
        assert channel.received[0] == channel.received[1]


class TestHealthFile:
    def test_roundtrip_and_clear(self, health_file: Path) -> None:
        from host_watchdog.health import (
            HealthStatus,
            clear_health_status,
            get_health_status,
            update_health_status,
        )

        assert get_health_status() is None
        update_health_status(HealthStatus.STARTING)
        assert get_health_status()["status"] == "starting"

        clear_health_status()
        assert not health_file.exists()
        clear_health_status()

    def test_corrupt_file_reads_as_none(self, health_file: Path) -> None:
        from host_watchdog.health import get_health_status

        health_file.write_text("{not json")
        assert get_health_status() is None


class TestTickHealth:
    def test_branch_states_recorded(self, health_file: Path) -> None:
        watchdog = make_watchdog(
            FakeMetrics(error=SamplingError("psutil exploded")),
            FakeInventory([WEB_DOWN]),
        )

        watchdog.run_tick()

        data = json.loads(health_file.read_text())
        assert data["status"] == "healthy"
        assert data["details"]["branches"] == {
            RESOURCES: "psutil exploded",
            CONTAINERS: "ok",
        }
        assert data["details"]["evaluation_errors"] == 0

    def test_check_health_fresh(self, health_file: Path) -> None:
        from host_watchdog.health import check_health

        make_watchdog(FakeMetrics(), FakeInventory()).run_tick()

        assert check_health(poll_interval=60) is True

    def test_check_health_stale(self, health_file: Path) -> None:
        from host_watchdog.health import check_health

        make_watchdog(FakeMetrics(), FakeInventory()).run_tick()

        later = datetime.now(timezone.utc) + timedelta(seconds=181)
        assert check_health(poll_interval=60, now=later) is False

    def test_check_health_unhealthy_or_missing(self, health_file: Path) -> None:
        from host_watchdog.health import check_health

        assert check_health(poll_interval=60) is False
        make_watchdog(
            FakeMetrics(error=SamplingError("x")), FakeInventory(error=SamplingError("y"))
        ).run_tick()
        assert check_health(poll_interval=60) is False


class TestTickLogContext:
    def test_tick_bound_inside_context(self) -> None:
        import structlog

        from host_watchdog.logging import tick_context

        with tick_context(NOW):
            assert structlog.contextvars.get_contextvars()["tick"] == NOW.isoformat()
        assert "tick" not in structlog.contextvars.get_contextvars()


class ClosableChannel(RecordingChannel):
    def __init__(self, name: str, fail_close: bool = False) -> None:
        super().__init__(name)
        self.fail_close = fail_close
        self.closed = False

    def close(self) -> None:
        self.closed = True
        if self.fail_close:
            raise OSError("already closed")


class ClosableInventory(FakeInventory):
    closed = False

    def close(self) -> None:
        self.closed = True


class TestWatchdogClose:
    def test_closes_source_and_channels(self) -> None:
        inventory = ClosableInventory()
        webhook = ClosableChannel("webhook")
        email = RecordingChannel("email")
        watchdog = make_watchdog(FakeMetrics(), inventory, [email, webhook])

        watchdog.close()

        assert inventory.closed is True
        assert webhook.closed is True

    def test_close_failure_does_not_stop_others(self) -> None:
        first = ClosableChannel("a", fail_close=True)
        second = ClosableChannel("b")
        watchdog = make_watchdog(FakeMetrics(), None, [first, second])

        with capture_logs() as logs:
            watchdog.close()

        assert second.closed is True
        assert any(e["event"] == "close_failed" for e in logs)
