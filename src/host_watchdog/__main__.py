"""
Entry point for the host-watchdog CLI.

Usage:
    host-watchdog                    Run the watchdog loop (fixed interval)
    host-watchdog --run-once         Run a single tick and exit
    host-watchdog --test             Validate configuration, sources and channels, then exit
    host-watchdog --send-test-alert  Send an INFO alert to every channel and exit
    host-watchdog --healthcheck      Exit 0 if the running watchdog reports healthy (Docker HEALTHCHECK)
    host-watchdog --help             Show help message
    host-watchdog --version          Show version and exit

Exit Codes:
    0 - Success
    1 - Configuration error (invalid settings, malformed channel credentials)
    2 - Source unavailable (cannot reach the container runtime or host metrics)
    4 - Test alert delivery failed on at least one channel

    With --healthcheck: 0 - healthy, 1 - unhealthy, stale or not running
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from types import FrameType
    from host_watchdog.config import WatchdogSettings
    from host_watchdog.watchdog import Watchdog

from host_watchdog import __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_SOURCE_ERROR = 2
EXIT_DELIVERY_ERROR = 4
EXIT_UNHEALTHY = 1  # --healthcheck only


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="host-watchdog",
        description="Periodic host and container health alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Success
  1   Configuration error
  2   Source unavailable (container runtime or host metrics)
  4   Test alert delivery failed
  (--healthcheck exits 1 when the watchdog is unhealthy or not running)

Environment Variables:
  CONFIG_PATH                 Path to YAML configuration file
  WATCHDOG_POLL_INTERVAL      Seconds between ticks (default: 60)
  WATCHDOG_CPU_THRESHOLD      CPU alert threshold percent (default: 80)
  WATCHDOG_MEMORY_THRESHOLD   Memory alert threshold percent (default: 90)
  WATCHDOG_DISK_THRESHOLD     Disk alert threshold percent (default: 85)
  WATCHDOG_DOCKER_ENABLED     Monitor containers (default: true)
  WATCHDOG_EMAIL_ENABLED      Enable email alerts
  WATCHDOG_SMTP_PASSWORD_FILE Path to file containing SMTP password (Docker secrets)
  WATCHDOG_WEBHOOK_URL        Incoming webhook URL
  WATCHDOG_LOG_LEVEL          Logging level: DEBUG, INFO, WARNING, ERROR
  WATCHDOG_LOG_FORMAT         Log format: json or text

Examples:
  # Run with config file
  CONFIG_PATH=/etc/host-watchdog/config.yaml host-watchdog

  # Check that Docker and every channel are reachable
  host-watchdog --test --send-test-alert
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Validate configuration, sources and channels, then exit",
    )
    parser.add_argument(
        "--run-once",
        action="store_true",
        help="Run a single tick immediately and exit",
    )
    parser.add_argument(
        "--send-test-alert",
        action="store_true",
        help="Send an INFO test alert to every configured channel and exit",
    )
    parser.add_argument(
        "--healthcheck",
        action="store_true",
        help="Check the status file written by a running watchdog and exit (0=healthy)",
    )
    return parser.parse_args(argv)


def print_banner(config: "WatchdogSettings", watchdog: Optional["Watchdog"] = None) -> None:
    """Print startup banner with version and configuration summary."""
    lines = [
        "",
        f"Host Watchdog v{__version__}",
        "=" * 40,
        f"Poll Interval: {config.poll_interval}s",
        f"Thresholds:    cpu>{config.cpu_threshold:.1f}% "
        f"mem>{config.memory_threshold:.1f}% disk>{config.disk_threshold:.1f}%",
        f"Containers:    {'enabled' if config.docker_enabled else 'disabled'}",
    ]

    if watchdog is not None:
        names = [getattr(c, "name", type(c).__name__) for c in watchdog.dispatcher.channels]
        lines.append(f"Channels:      {', '.join(names) or 'none (log only)'}")

    lines.extend([
        f"Log Level:     {config.log_level}",
        f"Log Format:    {config.log_format}",
        "=" * 40,
        "",
    ])

    for line in lines:
        print(line)


def send_test_alert(watchdog: "Watchdog", log: Any) -> int:
    """Dispatch one INFO alert to every channel.

    Returns:
        EXIT_SUCCESS if every channel delivered, EXIT_DELIVERY_ERROR otherwise.
    """
    from host_watchdog.models import Alert, Severity
    from host_watchdog.utils.timestamps import utc_now

    alert = Alert(
        timestamp=utc_now(),
        severity=Severity.INFO,
        source="Watchdog",
        message="Test alert",
        details=f"Sent by host-watchdog v{__version__} --send-test-alert",
    )
    result = asyncio.run(watchdog.dispatcher.dispatch(alert))
    for failure in result.failed:
        print(f"Channel {failure.channel}: FAILED ({failure.error})", file=sys.stderr)
    for success in result.delivered:
        print(f"Channel {success.channel}: OK")

    if not result.all_delivered:
        log.error("test_alert_failed", failed=[r.channel for r in result.failed])
        return EXIT_DELIVERY_ERROR
    return EXIT_SUCCESS


def main(argv: Optional[list] = None) -> int:
    """Main entry point for host-watchdog.

    Returns:
        Exit code (0=success, 1=config error, 2=source unavailable, 4=delivery failed)
    """
    args = parse_args(argv)

    # Import here so --help and --version work without a configured environment
    from host_watchdog.bootstrap import build_watchdog
    from host_watchdog.config import ConfigurationError, load_config
    from host_watchdog.exceptions import (
        ChannelConfigError,
        SourceUnavailableError,
    )
    from host_watchdog.health import (
        HealthStatus,
        check_health,
        clear_health_status,
        update_health_status,
    )
    from host_watchdog.logging import configure_logging, get_logger
    from host_watchdog.scheduler import ScheduledRunner, SchedulerError

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except SystemExit as e:
        # Validation errors cause sys.exit(1) in loader
        return e.code if isinstance(e.code, int) else EXIT_CONFIG_ERROR

    configure_logging(log_format=config.log_format, log_level=config.log_level)
    log = get_logger()

    if args.healthcheck:
        # Read-only: the status file belongs to the running watchdog
        healthy = check_health(config.poll_interval)
        print("healthy" if healthy else "unhealthy")
        return EXIT_SUCCESS if healthy else EXIT_UNHEALTHY

    update_health_status(HealthStatus.STARTING)

    # Startup construction is the only fatal failure class
    try:
        watchdog = build_watchdog(config)
    except SourceUnavailableError as e:
        log.error("source_unavailable", error=e.message, hint=e.hint)
        print(f"\nSource unavailable: {e}", file=sys.stderr)
        update_health_status(HealthStatus.UNHEALTHY, {"error": e.message})
        return EXIT_SOURCE_ERROR
    except ChannelConfigError as e:
        log.error("channel_config_invalid", error=e.message, hint=e.hint)
        print(f"\nChannel configuration error: {e}", file=sys.stderr)
        update_health_status(HealthStatus.UNHEALTHY, {"error": e.message})
        return EXIT_CONFIG_ERROR

    if args.test or args.send_test_alert:
        print_banner(config, watchdog)
        try:
            if args.send_test_alert:
                return send_test_alert(watchdog, log)
            print("Configuration, sources and channels: OK")
            return EXIT_SUCCESS
        finally:
            watchdog.close()
            clear_health_status()

    try:
        runner = ScheduledRunner(interval_seconds=config.poll_interval)
    except SchedulerError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        watchdog.close()
        return EXIT_CONFIG_ERROR

    if args.run_once:
        print_banner(config, watchdog)
        try:
            runner.run_once(watchdog.run_tick)
        finally:
            watchdog.close()
            clear_health_status()
        return EXIT_SUCCESS

    print_banner(config, watchdog)
    log.info("starting", version=__version__, interval=config.poll_interval)

    def handle_sigterm(signum: int, frame: Optional["FrameType"]) -> None:
        log.info("shutdown", reason="SIGTERM")
        runner.shutdown(wait=False)

    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, handle_sigterm)

    try:
        runner.run(watchdog.run_tick)
    except KeyboardInterrupt:
        log.info("shutdown", reason="keyboard interrupt")
        print("\nShutdown requested, exiting...")
        runner.shutdown(wait=False)
    finally:
        watchdog.close()
        clear_health_status()
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
