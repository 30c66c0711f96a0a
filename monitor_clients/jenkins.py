"""
Jenkins JSON API client implementing the master data source.

Requests are made with the requests library and run in a worker thread so
that a slow master never blocks the event loop.
"""

import asyncio
from dataclasses import dataclass
from urllib.parse import quote

import requests

from monitor_common.interfaces import MasterDataSource
from monitor_common.models import Build, Job

JOBS_TREE = "jobs[name,lastBuild[number,building,result]]"
BUILDS_TREE = "builds[number,building,result]"


class UnknownMasterError(KeyError):
    """Raised when a master name is not configured."""


@dataclass
class MasterConfig:
    """Connection settings for one Jenkins master."""

    name: str
    url: str
    username: str | None = None
    api_token: str | None = None

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username and self.api_token:
            return (self.username, self.api_token)
        return None


class JenkinsMasters(MasterDataSource):
    """Data source backed by the JSON API of one or more Jenkins masters."""

    def __init__(self, masters: dict[str, MasterConfig], timeout: float = 30.0):
        """
        Initialize the client.

        Args:
            masters: Master name -> connection settings
            timeout: HTTP request timeout in seconds
        """
        self.masters = masters
        self.timeout = timeout

    def list_masters(self) -> list[str]:
        return list(self.masters)

    def _get_master(self, master: str) -> MasterConfig:
        try:
            return self.masters[master]
        except KeyError:
            raise UnknownMasterError(master) from None

    def _get_json(self, config: MasterConfig, path: str, tree: str) -> dict:
        """GET a Jenkins API document, raising on HTTP errors."""
        response = requests.get(
            f"{config.url.rstrip('/')}{path}",
            params={"tree": tree},
            auth=config.auth,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def list_jobs(self, master: str) -> list[Job]:
        """
        List the jobs of a master with their last build.

        Args:
            master: Master name

        Returns:
            Jobs as listed by Jenkins

        Raises:
            UnknownMasterError: If the master is not configured
            requests.exceptions.RequestException: On network or HTTP errors
        """
        config = self._get_master(master)
        data = await asyncio.to_thread(self._get_json, config, "/api/json", JOBS_TREE)
        return [Job.from_dict(job) for job in data.get("jobs", [])]

    async def list_builds(self, master: str, job_name: str) -> list[Build]:
        """
        List the build history of a job.

        Args:
            master: Master name
            job_name: Name of the job

        Returns:
            Builds as listed by Jenkins (newest first)

        Raises:
            UnknownMasterError: If the master is not configured
            requests.exceptions.RequestException: On network or HTTP errors
        """
        config = self._get_master(master)
        data = await asyncio.to_thread(
            self._get_json,
            config,
            f"/job/{quote(job_name, safe='')}/api/json",
            BUILDS_TREE,
        )
        return [Build.from_dict(build) for build in data.get("builds", [])]
