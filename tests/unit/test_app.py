"""
Unit tests for the FastAPI monitor endpoints.

The app's dependencies are overridden with a scheduler built on in-memory
collaborators; the lifespan (which would contact real masters) is not run.
"""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from monitor_common.models import CacheEntry
from monitor_poller.detector import ChangeDetector
from monitor_poller.scheduler import PollScheduler
from monitor_server.app import app, get_cache, get_scheduler


@pytest.fixture
def scheduler(memory_cache, masters, sink):
    detector = ChangeDetector(memory_cache, masters, sink)
    return PollScheduler(detector, masters, poll_interval=60.0)


@pytest.fixture
def client(scheduler, memory_cache):
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_cache] = lambda: memory_cache
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Test suite for /health."""

    def test_unknown_before_first_poll(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "UNKNOWN"
        assert response.json()["last_poll"] is None

    def test_up_after_recent_poll(self, client, scheduler):
        scheduler._last_poll = datetime.now(UTC)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "UP"

    def test_down_when_stale(self, client, scheduler):
        scheduler._last_poll = datetime.now(UTC) - timedelta(hours=1)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "DOWN"


class TestMasters:
    """Test suite for master endpoints."""

    def test_list_masters(self, client, masters):
        masters.jobs["main"] = []
        masters.jobs["ios"] = []

        response = client.get("/masters")

        assert response.status_code == 200
        assert response.json() == {"masters": ["main", "ios"]}

    def test_list_cached_jobs(self, client, masters, memory_cache):
        masters.jobs["main"] = []
        memory_cache.entries[("main", "app")] = CacheEntry(4, True)

        response = client.get("/masters/main/jobs")

        assert response.status_code == 200
        assert response.json()["jobs"] == {
            "app": {"last_build_number": 4, "building": True}
        }

    def test_unknown_master_returns_404(self, client):
        assert client.get("/masters/nope/jobs").status_code == 404
        assert client.post("/masters/nope/poll").status_code == 404

    def test_poll_master(self, client, masters, sink, make_job):
        masters.jobs["main"] = [make_job("app", 1, False, "SUCCESS")]

        response = client.post("/masters/main/poll")

        assert response.status_code == 200
        changes = response.json()["changes"]
        assert len(changes) == 1
        assert changes[0]["previous"] is None
        assert changes[0]["current"]["name"] == "app"
        assert sink.numbers == [1]

        # Nothing changed since the previous poll
        assert client.post("/masters/main/poll").json()["changes"] == []

    def test_poll_failure_returns_502(self, client, masters):
        masters.jobs["main"] = ConnectionError("master unreachable")

        response = client.post("/masters/main/poll")

        assert response.status_code == 502
        assert "master unreachable" in response.json()["detail"]
