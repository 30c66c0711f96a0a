"""
Standalone entrypoint for running the build monitor poller.

Usage:
    python -m monitor_poller [OPTIONS]
    build-monitor [OPTIONS]  (after pip install)

Environment Variables:
    MONITOR_DB_PATH: Cache database path (default: build_monitor.db)
    MONITOR_MASTERS: Masters to poll as "name=url,name=url"
    MONITOR_POLL_INTERVAL: Seconds between polls (default: 60)
    MONITOR_ECHO_URL: Echo endpoint receiving build events
    MONITOR_DISCOVERY_URL: Instance status URL gating polling
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from monitor_poller.config import ConfigError, build_scheduler, load_config

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Build Monitor - detect new and changed builds on CI masters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  MONITOR_DB_PATH          Cache database path (default: build_monitor.db)
  MONITOR_MASTERS          Masters as "name=url,name=url"
  MONITOR_JENKINS_USER     Jenkins user for basic auth
  MONITOR_JENKINS_TOKEN    Jenkins API token for basic auth
  MONITOR_POLL_INTERVAL    Seconds between polls (default: 60)
  MONITOR_MASTER_TIMEOUT   Seconds allowed for one master's poll
  MONITOR_HTTP_TIMEOUT     HTTP request timeout in seconds (default: 30)
  MONITOR_ECHO_URL         Echo endpoint receiving build events
  MONITOR_DISCOVERY_URL    Instance status URL (absent: always in service)

Note: Command-line arguments override environment variables.

Examples:
  # Poll two masters every 30 seconds
  build-monitor --master main=https://ci.example.com --master ios=https://ios-ci.example.com --interval 30

  # Publish build events and gate on discovery status
  build-monitor --echo-url http://echo:8089 --discovery-url http://localhost:8077/status
        """,
    )

    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="Path to SQLite cache database (default: MONITOR_DB_PATH env or build_monitor.db)",
    )

    parser.add_argument(
        "--master",
        action="append",
        default=None,
        metavar="NAME=URL",
        help="Master to poll; repeat for several (default: MONITOR_MASTERS env)",
    )

    parser.add_argument(
        "--jenkins-user",
        type=str,
        default=None,
        help="Jenkins user for basic auth (token from MONITOR_JENKINS_TOKEN)",
    )

    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between polls (default: MONITOR_POLL_INTERVAL env or 60)",
    )

    parser.add_argument(
        "--master-timeout",
        type=float,
        default=None,
        help="Seconds allowed for one master's poll (default: MONITOR_MASTER_TIMEOUT env or none)",
    )

    parser.add_argument(
        "--http-timeout",
        type=float,
        default=None,
        help="HTTP request timeout in seconds (default: MONITOR_HTTP_TIMEOUT env or 30)",
    )

    parser.add_argument(
        "--echo-url",
        type=str,
        default=None,
        help="Echo endpoint receiving build events (default: MONITOR_ECHO_URL env)",
    )

    parser.add_argument(
        "--discovery-url",
        type=str,
        default=None,
        help="Instance status URL (default: MONITOR_DISCOVERY_URL env)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


async def run_monitor(args: argparse.Namespace) -> None:
    """
    Initialize and run the poll scheduler until SIGINT or SIGTERM.

    Args:
        args: Parsed command-line arguments
    """
    config = load_config(args)

    logger.info("Starting Build Monitor")
    logger.info(f"  Cache database: {config.db_path}")
    logger.info(f"  Masters: {', '.join(config.masters) or '(none)'}")
    logger.info(f"  Poll interval: {config.poll_interval}s")
    logger.info(f"  Echo URL: {config.echo_url or '(none)'}")
    logger.info(f"  Discovery URL: {config.discovery_url or '(none)'}")

    if not config.masters:
        logger.warning("No masters configured, nothing will be polled")

    scheduler, cache = build_scheduler(config)
    await cache.initialize()
    logger.info("Cache initialized")

    shutdown_event = asyncio.Event()

    def signal_handler(sig: Any, _frame: Any) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received signal {sig}, initiating graceful shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await scheduler.start()
        await shutdown_event.wait()

    except Exception as e:
        logger.error(f"Monitor error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Stopping poll scheduler...")
        await scheduler.stop()
        logger.info("Closing cache...")
        await cache.close()
        logger.info("Build monitor stopped cleanly")


def main(argv: list[str] | None = None) -> int:
    """
    Main entrypoint for the poller.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        asyncio.run(run_monitor(args))
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
