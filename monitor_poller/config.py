"""
Configuration for the build monitor.

Settings are resolved from command-line arguments first, then environment
variables, then defaults:

    MONITOR_DB_PATH: Cache database path (default: build_monitor.db)
    MONITOR_MASTERS: Masters as "name=url,name=url"
    MONITOR_JENKINS_USER: Jenkins user for basic auth
    MONITOR_JENKINS_TOKEN: Jenkins API token for basic auth
    MONITOR_POLL_INTERVAL: Seconds between polls (default: 60)
    MONITOR_MASTER_TIMEOUT: Seconds allowed for one master's poll (default: none)
    MONITOR_HTTP_TIMEOUT: HTTP request timeout in seconds (default: 30)
    MONITOR_ECHO_URL: Echo endpoint receiving build events (default: none)
    MONITOR_DISCOVERY_URL: Instance status URL (default: none, always in service)
"""

import argparse
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from monitor_clients.discovery import DiscoveryHealthOracle
from monitor_clients.echo import EchoEventSink
from monitor_clients.jenkins import JenkinsMasters, MasterConfig
from monitor_persistence.sqlite_cache import SQLiteBuildCache

from .detector import ChangeDetector
from .scheduler import PollScheduler

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "build_monitor.db"
DEFAULT_POLL_INTERVAL = 60.0
DEFAULT_HTTP_TIMEOUT = 30.0


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""


@dataclass
class MonitorConfig:
    """Resolved build monitor settings."""

    db_path: str = DEFAULT_DB_PATH
    masters: dict[str, str] = field(default_factory=dict)  # name -> url
    jenkins_user: str | None = None
    jenkins_token: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    master_timeout: float | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    echo_url: str | None = None
    discovery_url: str | None = None


def parse_masters(value: str | list[str] | None) -> dict[str, str]:
    """
    Parse master definitions of the form "name=url".

    Args:
        value: Comma-separated string or list of "name=url" items

    Returns:
        Mapping of master name to base URL, in definition order

    Raises:
        ConfigError: If an item is not of the form name=url
    """
    if not value:
        return {}

    items = value.split(",") if isinstance(value, str) else value
    masters: dict[str, str] = {}
    for item in items:
        item = item.strip()
        if not item:
            continue
        name, sep, url = item.partition("=")
        if not sep or not name.strip() or not url.strip():
            raise ConfigError(f"Invalid master definition: {item!r} (expected name=url)")
        masters[name.strip()] = url.strip()
    return masters


def _positive_float(
    arg_value: float | None,
    env: Mapping[str, str],
    env_name: str,
    default: float | None,
) -> float | None:
    """
    Resolve a positive number from a CLI arg or environment variable.

    Invalid or non-positive values fall back to the default with a warning.
    """
    if arg_value is not None:
        if arg_value <= 0:
            logger.warning(f"Invalid value {arg_value} for {env_name}, using default {default}")
            return default
        return arg_value

    raw = env.get(env_name)
    if raw is None or raw == "":
        return default

    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid {env_name}={raw}, using default {default}")
        return default

    if value <= 0:
        logger.warning(f"Invalid {env_name}={value}, using default {default}")
        return default
    return value


def load_config(
    args: argparse.Namespace | None = None, env: Mapping[str, str] | None = None
) -> MonitorConfig:
    """
    Build the monitor configuration.

    Args:
        args: Parsed command-line arguments (attributes may be missing or None)
        env: Environment mapping (default: os.environ)

    Returns:
        Resolved MonitorConfig

    Raises:
        ConfigError: If the masters definition is malformed
    """
    env = os.environ if env is None else env

    def arg(name: str):
        return getattr(args, name, None) if args is not None else None

    masters = parse_masters(arg("master")) or parse_masters(env.get("MONITOR_MASTERS"))

    return MonitorConfig(
        db_path=arg("db_path") or env.get("MONITOR_DB_PATH", DEFAULT_DB_PATH),
        masters=masters,
        jenkins_user=arg("jenkins_user") or env.get("MONITOR_JENKINS_USER"),
        jenkins_token=env.get("MONITOR_JENKINS_TOKEN"),
        poll_interval=_positive_float(
            arg("interval"), env, "MONITOR_POLL_INTERVAL", DEFAULT_POLL_INTERVAL
        ),
        master_timeout=_positive_float(
            arg("master_timeout"), env, "MONITOR_MASTER_TIMEOUT", None
        ),
        http_timeout=_positive_float(
            arg("http_timeout"), env, "MONITOR_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT
        ),
        echo_url=arg("echo_url") or env.get("MONITOR_ECHO_URL") or None,
        discovery_url=arg("discovery_url") or env.get("MONITOR_DISCOVERY_URL") or None,
    )


def build_data_source(config: MonitorConfig) -> JenkinsMasters:
    """Create the Jenkins client for the configured masters."""
    return JenkinsMasters(
        {
            name: MasterConfig(
                name=name,
                url=url,
                username=config.jenkins_user,
                api_token=config.jenkins_token,
            )
            for name, url in config.masters.items()
        },
        timeout=config.http_timeout,
    )


def build_scheduler(config: MonitorConfig) -> tuple[PollScheduler, SQLiteBuildCache]:
    """
    Wire the poller and its collaborators from configuration.

    The returned cache is not initialized; callers own its lifecycle.

    Args:
        config: Resolved configuration

    Returns:
        (scheduler, cache)
    """
    cache = SQLiteBuildCache(config.db_path)
    data_source = build_data_source(config)

    event_sink = None
    if config.echo_url:
        event_sink = EchoEventSink(config.echo_url, timeout=config.http_timeout)
    else:
        logger.info("No echo URL configured, build events will not be published")

    health_oracle = None
    if config.discovery_url:
        health_oracle = DiscoveryHealthOracle(
            config.discovery_url, timeout=config.http_timeout
        )

    detector = ChangeDetector(cache, data_source, event_sink)
    scheduler = PollScheduler(
        detector,
        data_source,
        health_oracle=health_oracle,
        poll_interval=config.poll_interval,
        master_timeout=config.master_timeout,
    )
    return scheduler, cache
