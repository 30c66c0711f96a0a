"""
Shared test doubles for the build monitor.

In-memory implementations of the collaborator interfaces, so that change
detection and scheduling can be tested without a CI server or database.
"""

import pytest

from monitor_common.interfaces import BuildCache, EventSink, MasterDataSource
from monitor_common.models import Build, BuildEvent, CacheEntry, Job


class MemoryBuildCache(BuildCache):
    """Dict-backed cache that records every mutation."""

    def __init__(self):
        self.entries: dict[tuple[str, str], CacheEntry] = {}
        self.operations: list[tuple[str, str, str]] = []  # (op, master, job)

    async def list_tracked_job_names(self, master: str) -> list[str]:
        return [job for (m, job) in self.entries if m == master]

    async def get_entry(self, master: str, job_name: str) -> CacheEntry | None:
        return self.entries.get((master, job_name))

    async def set_entry(
        self, master: str, job_name: str, build_number: int, building: bool
    ) -> None:
        self.operations.append(("set", master, job_name))
        self.entries[(master, job_name)] = CacheEntry(build_number, building)

    async def remove_entry(self, master: str, job_name: str) -> None:
        self.operations.append(("remove", master, job_name))
        self.entries.pop((master, job_name), None)

    async def list_entries(self, master: str) -> dict[str, CacheEntry]:
        return {job: e for (m, job), e in self.entries.items() if m == master}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass


class FakeMasters(MasterDataSource):
    """
    Data source serving canned jobs and build histories.

    Setting a master's jobs to an Exception instance makes list_jobs raise it.
    """

    def __init__(self):
        self.jobs: dict[str, list[Job] | Exception] = {}
        self.builds: dict[tuple[str, str], list[Build] | Exception] = {}
        self.build_requests: list[tuple[str, str]] = []

    def list_masters(self) -> list[str]:
        return list(self.jobs)

    async def list_jobs(self, master: str) -> list[Job]:
        jobs = self.jobs[master]
        if isinstance(jobs, Exception):
            raise jobs
        return list(jobs)

    async def list_builds(self, master: str, job_name: str) -> list[Build]:
        self.build_requests.append((master, job_name))
        builds = self.builds.get((master, job_name), [])
        if isinstance(builds, Exception):
            raise builds
        return list(builds)


class RecordingSink(EventSink):
    """Event sink that keeps published events; fail_on builds numbers raise."""

    def __init__(self, fail_on: set[int] | None = None):
        self.events: list[BuildEvent] = []
        self.fail_on = fail_on or set()

    async def publish(self, event: BuildEvent) -> None:
        if event.build.number in self.fail_on:
            raise ConnectionError(f"echo unavailable for #{event.build.number}")
        self.events.append(event)

    @property
    def numbers(self) -> list[int]:
        return [event.build.number for event in self.events]


def job(name: str, number: int | None, building: bool = False, result=None) -> Job:
    """Build a live Job; number None means the job has no builds yet."""
    if number is None:
        return Job(name=name)
    return Job(name=name, last_build=Build(number, building, result))


@pytest.fixture
def memory_cache():
    return MemoryBuildCache()


@pytest.fixture
def masters():
    return FakeMasters()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_job():
    return job
