"""
Data models for build monitoring.

These models represent the domain objects used throughout the monitor,
independent of the CI server API and of the cache storage mechanism.
"""

from dataclasses import dataclass, replace
from typing import Any

# Result reported for a build that is still running and has no result yet
BUILD_IN_PROGRESS = "BUILDING"

EVENT_SOURCE = "build-monitor"


class InstanceStatus:
    """Instance status values reported by a discovery service."""

    UP = "UP"
    DOWN = "DOWN"
    STARTING = "STARTING"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    UNKNOWN = "UNKNOWN"


@dataclass
class Build:
    """
    A single numbered execution of a job.

    Numbers increase per job in creation order but are not necessarily
    contiguous.
    """

    number: int
    building: bool = False
    result: str | None = None  # "SUCCESS", "FAILURE", ... or None while unknown

    def to_dict(self) -> dict[str, Any]:
        """Convert build to dictionary format (for JSON serialization)."""
        return {
            "number": self.number,
            "building": self.building,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Build":
        """Create build from a CI server API dictionary."""
        return cls(
            number=int(data["number"]),
            building=bool(data.get("building", False)),
            result=data.get("result"),
        )


def normalized_result(build: Build) -> str:
    """
    Return the result to announce for a build.

    A missing result becomes BUILD_IN_PROGRESS while the build is running,
    and an empty string once it is not.
    """
    if build.result:
        return build.result
    return BUILD_IN_PROGRESS if build.building else ""


@dataclass
class Job:
    """
    One entry of a master's live job listing.

    Jobs without any build yet have no last_build and are ignored by
    change detection.
    """

    name: str
    last_build: Build | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert job to dictionary format (for API responses)."""
        return {
            "name": self.name,
            "lastBuild": self.last_build.to_dict() if self.last_build else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        """Create job from a CI server API dictionary."""
        last_build = data.get("lastBuild")
        return cls(
            name=data["name"],
            last_build=Build.from_dict(last_build) if last_build else None,
        )


@dataclass
class CacheEntry:
    """Last known build number and building flag for a (master, job) pair."""

    last_build_number: int
    building: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to dictionary format (for API responses)."""
        return {
            "last_build_number": self.last_build_number,
            "building": self.building,
        }


@dataclass
class ChangeRecord:
    """
    Detected before/after state of one job in one poll cycle.

    previous is None for a job seen for the first time.
    """

    master: str
    previous: CacheEntry | None
    current: Job

    def to_dict(self) -> dict[str, Any]:
        """Convert change record to dictionary format (for API responses)."""
        return {
            "master": self.master,
            "previous": self.previous.to_dict() if self.previous else None,
            "current": self.current.to_dict(),
        }


@dataclass
class BuildEvent:
    """Outbound notification describing one build's state at a point in time."""

    master: str
    job_name: str
    build: Build

    @classmethod
    def for_snapshot(cls, master: str, job_name: str, build: Build) -> "BuildEvent":
        """Create an event for a job's current build, normalizing its result."""
        return cls(
            master=master,
            job_name=job_name,
            build=replace(build, result=normalized_result(build)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert event to the payload published to the event sink."""
        return {
            "details": {"type": "build", "source": EVENT_SOURCE},
            "content": {
                "master": self.master,
                "project": {
                    "name": self.job_name,
                    "lastBuild": self.build.to_dict(),
                },
            },
        }
