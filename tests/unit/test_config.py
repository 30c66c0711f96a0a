"""
Unit tests for monitor_poller.config.

Tests precedence of command-line arguments over environment variables,
fallback for invalid values and the wiring of collaborators.
"""

import argparse

import pytest

from monitor_clients.discovery import DiscoveryHealthOracle
from monitor_clients.echo import EchoEventSink
from monitor_poller.config import (
    DEFAULT_DB_PATH,
    DEFAULT_POLL_INTERVAL,
    ConfigError,
    MonitorConfig,
    build_scheduler,
    load_config,
    parse_masters,
)


class TestParseMasters:
    """Test suite for master definitions."""

    def test_comma_separated(self):
        masters = parse_masters("main=https://ci.example.com, ios=https://ios.example.com")

        assert masters == {
            "main": "https://ci.example.com",
            "ios": "https://ios.example.com",
        }

    def test_list_keeps_url_equals_signs(self):
        masters = parse_masters(["main=https://ci.example.com/?a=b"])

        assert masters == {"main": "https://ci.example.com/?a=b"}

    def test_empty(self):
        assert parse_masters(None) == {}
        assert parse_masters("") == {}

    def test_invalid_definition(self):
        with pytest.raises(ConfigError):
            parse_masters("main")


class TestLoadConfig:
    """Test suite for load_config."""

    def test_defaults(self):
        config = load_config(env={})

        assert config == MonitorConfig()
        assert config.db_path == DEFAULT_DB_PATH
        assert config.poll_interval == DEFAULT_POLL_INTERVAL
        assert config.master_timeout is None
        assert config.echo_url is None

    def test_environment(self):
        config = load_config(
            env={
                "MONITOR_DB_PATH": "/tmp/cache.db",
                "MONITOR_MASTERS": "main=https://ci.example.com",
                "MONITOR_JENKINS_USER": "bot",
                "MONITOR_JENKINS_TOKEN": "secret",
                "MONITOR_POLL_INTERVAL": "15",
                "MONITOR_MASTER_TIMEOUT": "45",
                "MONITOR_ECHO_URL": "http://echo:8089",
                "MONITOR_DISCOVERY_URL": "http://localhost:8077/status",
            }
        )

        assert config.db_path == "/tmp/cache.db"
        assert config.masters == {"main": "https://ci.example.com"}
        assert config.jenkins_user == "bot"
        assert config.jenkins_token == "secret"
        assert config.poll_interval == 15.0
        assert config.master_timeout == 45.0
        assert config.echo_url == "http://echo:8089"
        assert config.discovery_url == "http://localhost:8077/status"

    def test_arguments_override_environment(self):
        args = argparse.Namespace(
            db_path="/tmp/args.db",
            master=["ios=https://ios.example.com"],
            interval=5.0,
            master_timeout=None,
            http_timeout=None,
            echo_url=None,
            discovery_url=None,
            jenkins_user=None,
        )

        config = load_config(
            args,
            env={
                "MONITOR_DB_PATH": "/tmp/env.db",
                "MONITOR_MASTERS": "main=https://ci.example.com",
                "MONITOR_POLL_INTERVAL": "30",
            },
        )

        assert config.db_path == "/tmp/args.db"
        assert config.masters == {"ios": "https://ios.example.com"}
        assert config.poll_interval == 5.0

    @pytest.mark.parametrize("raw", ["abc", "0", "-10"])
    def test_invalid_interval_uses_default(self, raw):
        config = load_config(env={"MONITOR_POLL_INTERVAL": raw})

        assert config.poll_interval == DEFAULT_POLL_INTERVAL

    def test_invalid_interval_argument_uses_default(self):
        config = load_config(argparse.Namespace(interval=-1.0), env={})

        assert config.poll_interval == DEFAULT_POLL_INTERVAL


class TestBuildScheduler:
    """Test suite for collaborator wiring."""

    def test_minimal_wiring(self, tmp_path):
        config = MonitorConfig(
            db_path=str(tmp_path / "cache.db"),
            masters={"main": "https://ci.example.com"},
            poll_interval=30.0,
        )

        scheduler, cache = build_scheduler(config)

        assert cache.db_path == str(tmp_path / "cache.db")
        assert scheduler.poll_interval == 30.0
        assert scheduler.health_oracle is None
        assert scheduler.detector.event_sink is None
        assert scheduler.data_source.list_masters() == ["main"]

    def test_full_wiring(self, tmp_path):
        config = MonitorConfig(
            db_path=str(tmp_path / "cache.db"),
            masters={"main": "https://ci.example.com"},
            jenkins_user="bot",
            jenkins_token="secret",
            echo_url="http://echo:8089",
            discovery_url="http://localhost:8077/status",
            master_timeout=20.0,
            http_timeout=7.0,
        )

        scheduler, _ = build_scheduler(config)

        assert isinstance(scheduler.detector.event_sink, EchoEventSink)
        assert isinstance(scheduler.health_oracle, DiscoveryHealthOracle)
        assert scheduler.health_oracle.timeout == 7.0
        assert scheduler.detector.event_sink.timeout == 7.0
        assert scheduler.master_timeout == 20.0
        assert scheduler.data_source.masters["main"].auth == ("bot", "secret")
