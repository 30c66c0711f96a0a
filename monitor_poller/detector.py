"""
Change detection for the jobs of one CI master.

Compares a master's live job listing with the cached snapshot, replays the
builds that completed between two polls, keeps the cache in step and
publishes one build event per detected build-state change.
"""

import logging

from monitor_common.interfaces import BuildCache, EventSink, MasterDataSource
from monitor_common.models import Build, BuildEvent, CacheEntry, ChangeRecord, Job

logger = logging.getLogger(__name__)


class ChangeDetector:
    """
    Detects new, changed and removed jobs on a master.

    For every poll of a master the detector:
    1. Removes cache entries of jobs no longer listed (no events)
    2. Announces jobs seen for the first time
    3. For jobs whose (number, building) pair moved, replays the builds
       missed since the cached one, then announces the current build
    4. Writes each job's new state to the cache as it goes
    """

    def __init__(
        self,
        cache: BuildCache,
        data_source: MasterDataSource,
        event_sink: EventSink | None = None,
    ):
        """
        Initialize the change detector.

        Args:
            cache: Build cache holding the last known state per job
            data_source: Source of live jobs and build history
            event_sink: Publisher for build events; when None no events are
                published and build history is not fetched
        """
        self.cache = cache
        self.data_source = data_source
        self.event_sink = event_sink

    async def detect(self, master: str) -> list[ChangeRecord]:
        """
        Run one detection pass for a master.

        Args:
            master: Master identifier

        Returns:
            One ChangeRecord per new or changed job, in listing order

        Raises:
            Exception: If the tracked jobs or the live listing cannot be read
        """
        logger.info(f"Checking for new builds for {master}")
        results: list[ChangeRecord] = []

        cached_names = await self.cache.list_tracked_job_names(master)
        jobs = await self.data_source.list_jobs(master)

        live_names = {job.name for job in jobs}
        for job_name in cached_names:
            if job_name not in live_names:
                logger.info(f"Removing {master}:{job_name}")
                await self.cache.remove_entry(master, job_name)

        tracked = set(cached_names) & live_names
        for job in jobs:
            try:
                record = await self._process_job(master, job, job.name in tracked)
            except Exception as e:
                logger.error(
                    f"Error processing {master}:{job.name}: {e}", exc_info=True
                )
                continue
            if record is not None:
                results.append(record)

        return results

    async def _process_job(
        self, master: str, job: Job, tracked: bool
    ) -> ChangeRecord | None:
        """
        Detect and record the change of a single job, if any.

        Args:
            master: Master identifier
            job: Job from the live listing
            tracked: Whether the job had a cache entry before this poll

        Returns:
            ChangeRecord if the job is new or changed, None otherwise
        """
        current = job.last_build
        logger.debug(
            f"processing build : {job.name} : building? "
            f"{current.building if current else None}"
        )
        if current is None:
            logger.debug(f"no builds found for {job.name}, skipping")
            return None

        previous: CacheEntry | None = None
        if tracked:
            previous = await self.cache.get_entry(master, job.name)

        if previous is None:
            logger.info(
                f"New Build: {master}: {job.name} : {current.number} : "
                f"{current.result}"
            )
        elif (
            current.number == previous.last_build_number
            and current.building == previous.building
        ):
            return None
        else:
            logger.info(
                f"Build changed: {master}: {job.name} : {current.number} : "
                f"{current.building}"
            )
            await self._replay_missed_builds(master, job.name, previous, current)

        event = BuildEvent.for_snapshot(master, job.name, current)
        await self._publish(event)
        await self.cache.set_entry(master, job.name, current.number, current.building)

        # Records report the same normalized build as the published event
        return ChangeRecord(
            master=master, previous=previous, current=Job(job.name, event.build)
        )

    async def _replay_missed_builds(
        self, master: str, job_name: str, previous: CacheEntry, current: Build
    ) -> None:
        """
        Publish the builds between the cached build and the current one.

        The cached build itself is only re-announced when its building flag
        changed since it was cached. The current build is not replayed here.

        Args:
            master: Master identifier
            job_name: Name of the job
            previous: Cache entry before this poll
            current: Current last build of the job
        """
        if self.event_sink is None:
            return

        last_build = previous.last_build_number
        logger.info(
            f"sending build events for builds between {last_build} and {current.number}"
        )

        try:
            builds = await self.data_source.list_builds(master, job_name)
        except Exception as e:
            logger.error(
                f"failed getting builds for {master}:{job_name}: {e}", exc_info=True
            )
            return

        for build in sorted(builds, key=lambda b: int(b.number)):
            if not last_build <= build.number < current.number:
                continue
            if build.number == last_build and build.building == previous.building:
                continue
            try:
                await self.event_sink.publish(BuildEvent(master, job_name, build))
            except Exception as e:
                logger.error(
                    f"An error occurred sending {master}:{job_name}:{build.number}: {e}",
                    exc_info=True,
                )

    async def _publish(self, event: BuildEvent) -> None:
        """Publish an event, logging and discarding any delivery failure."""
        if self.event_sink is None:
            return

        logger.debug(f"setting result to {event.build.result}")
        try:
            await self.event_sink.publish(event)
        except Exception as e:
            logger.error(
                f"Failed to publish build event for {event.master}:"
                f"{event.job_name}:{event.build.number}: {e}",
                exc_info=True,
            )
