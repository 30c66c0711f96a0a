"""
Abstract interfaces for the collaborators of the build monitor.

This module defines the contracts the poller depends on: the build cache,
the CI master data source, the event sink and the instance health oracle.
Implementations can be swapped (SQLite vs. another store, Jenkins vs.
another CI server) without touching change detection.
"""

from abc import ABC, abstractmethod

from .models import Build, BuildEvent, CacheEntry, Job


class BuildCache(ABC):
    """
    Abstract base class for the per-(master, job) build cache.

    Implementations must provide async-safe access. Each (master, job) key is
    independent; a single set_entry call must be atomic for its key.
    """

    @abstractmethod
    async def list_tracked_job_names(self, master: str) -> list[str]:
        """
        List the names of all jobs cached for a master.

        Args:
            master: Master identifier

        Returns:
            Job names with a cache entry (possibly empty)
        """
        pass

    @abstractmethod
    async def get_entry(self, master: str, job_name: str) -> CacheEntry | None:
        """
        Retrieve the cache entry for a job.

        Args:
            master: Master identifier
            job_name: Name of the job

        Returns:
            CacheEntry if the job is tracked, None otherwise
        """
        pass

    @abstractmethod
    async def set_entry(
        self, master: str, job_name: str, build_number: int, building: bool
    ) -> None:
        """
        Create or overwrite the cache entry for a job.

        Args:
            master: Master identifier
            job_name: Name of the job
            build_number: Last observed build number
            building: Whether that build was still running
        """
        pass

    @abstractmethod
    async def remove_entry(self, master: str, job_name: str) -> None:
        """
        Remove the cache entry for a job. Removing a missing entry is a no-op.

        Args:
            master: Master identifier
            job_name: Name of the job
        """
        pass

    @abstractmethod
    async def list_entries(self, master: str) -> dict[str, CacheEntry]:
        """
        List all cache entries of a master, keyed by job name.

        Args:
            master: Master identifier

        Returns:
            Mapping of job name to CacheEntry
        """
        pass

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the storage (create tables, etc.).

        Called once at application startup.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close connections and cleanup resources.

        Called at application shutdown.
        """
        pass


class MasterDataSource(ABC):
    """Read-only view of the jobs and builds hosted on each CI master."""

    @abstractmethod
    def list_masters(self) -> list[str]:
        """Return the identifiers of all configured masters."""
        pass

    @abstractmethod
    async def list_jobs(self, master: str) -> list[Job]:
        """
        List the jobs of a master with their latest build, if any.

        Args:
            master: Master identifier

        Returns:
            Jobs in any order

        Raises:
            Exception: If the master cannot be queried
        """
        pass

    @abstractmethod
    async def list_builds(self, master: str, job_name: str) -> list[Build]:
        """
        List the build history of one job.

        Args:
            master: Master identifier
            job_name: Name of the job

        Returns:
            Builds in any order

        Raises:
            Exception: If the history cannot be fetched
        """
        pass


class EventSink(ABC):
    """Fire-and-forget publisher of build events."""

    @abstractmethod
    async def publish(self, event: BuildEvent) -> None:
        """
        Publish a build event.

        Raises:
            Exception: If delivery failed (callers log and discard)
        """
        pass


class HealthOracle(ABC):
    """Reports whether this process instance should currently poll."""

    @abstractmethod
    async def is_in_service(self) -> bool:
        """Return True if this instance is in service."""
        pass
