"""
Periodic poll scheduler for a fleet of CI masters.

This module drives the change detector on a fixed interval, gated by an
instance health oracle so that only in-service instances of a horizontally
scaled deployment poll the masters.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from monitor_common.interfaces import HealthOracle, MasterDataSource
from monitor_common.models import ChangeRecord, InstanceStatus

from .detector import ChangeDetector

logger = logging.getLogger(__name__)

# Polls older than this many intervals make the monitor report DOWN
STALE_POLL_INTERVALS = 2


@dataclass
class MonitorHealth:
    """Snapshot of the scheduler state for external health checks."""

    name: str
    status: str  # InstanceStatus.UP, DOWN or UNKNOWN
    last_poll: datetime | None
    poll_interval: float

    def to_dict(self) -> dict[str, Any]:
        """Convert health to dictionary format (for API responses)."""
        return {
            "name": self.name,
            "status": self.status,
            "last_poll": self.last_poll.isoformat() if self.last_poll else None,
            "poll_interval": self.poll_interval,
        }


class PollScheduler:
    """
    Scheduler that polls every known master on a fixed interval.

    Each tick:
    1. Asks the health oracle whether this instance is in service
    2. If not, clears the last poll timestamp and skips the tick
    3. Otherwise records the tick start and runs change detection for every
       master concurrently, isolating each master's failures
    """

    def __init__(
        self,
        detector: ChangeDetector,
        data_source: MasterDataSource,
        health_oracle: HealthOracle | None = None,
        poll_interval: float = 60.0,
        master_timeout: float | None = None,
        name: str = "jenkinsBuildMonitor",
    ):
        """
        Initialize the poll scheduler.

        Args:
            detector: Change detector run for each master
            data_source: Source of the known masters
            health_oracle: Instance status provider; None means always in service
            poll_interval: Seconds between ticks
            master_timeout: Optional bound in seconds on one master's poll
            name: Monitor name reported in health checks
        """
        self.detector = detector
        self.data_source = data_source
        self.health_oracle = health_oracle
        self.poll_interval = poll_interval
        self.master_timeout = master_timeout
        self.name = name

        self._last_poll: datetime | None = None
        self._running = False
        self._task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

    @property
    def last_poll(self) -> datetime | None:
        """Start time of the last in-service tick, or None when unknown."""
        return self._last_poll

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the polling loop. The first tick runs immediately."""
        if self._running:
            logger.warning("Poll scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Started {self.name} (interval: {self.poll_interval}s)")

    async def stop(self) -> None:
        """
        Stop scheduling ticks.

        Safe to call when never started. In-flight ticks are left to finish
        on their own and are not awaited.
        """
        if not self._running:
            return

        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(f"Stopped {self.name}")

    async def _run_loop(self) -> None:
        """Main polling loop. A slow tick does not delay the next one."""
        while self._running:
            try:
                tick = asyncio.create_task(self.tick())
                self._ticks.add(tick)
                tick.add_done_callback(self._ticks.discard)
            except Exception as e:
                logger.error(f"Error scheduling poll: {e}", exc_info=True)
            await asyncio.sleep(self.poll_interval)

    async def is_in_service(self) -> bool:
        """
        Ask the health oracle whether this instance should poll.

        Fails open: without an oracle, or when the oracle itself errors, the
        instance is considered in service.
        """
        if self.health_oracle is None:
            logger.debug("no health oracle, assuming in service")
            return True

        try:
            in_service = await self.health_oracle.is_in_service()
        except Exception as e:
            logger.error(
                f"Health oracle failed, assuming in service: {e}", exc_info=True
            )
            return True

        logger.debug(f"current in-service status: {in_service}")
        return in_service

    def _mark_out_of_service(self) -> None:
        """Log the out-of-service state and clear the last poll timestamp."""
        last_poll = self._last_poll.isoformat() if self._last_poll else "n/a"
        logger.info(f"not in service (lastPoll: {last_poll})")
        self._last_poll = None

    async def tick(self) -> dict[str, list[ChangeRecord]]:
        """
        Perform one poll cycle across all masters.

        Returns:
            ChangeRecords per master that was polled successfully; empty when
            the instance is not in service
        """
        try:
            if not await self.is_in_service():
                self._mark_out_of_service()
                return {}

            self._last_poll = datetime.now(UTC)
            masters = self.data_source.list_masters()

            outcomes = await asyncio.gather(
                *(self._poll_master(master) for master in masters)
            )
            return {
                master: records
                for master, records in zip(masters, outcomes)
                if records is not None
            }

        except Exception as e:
            logger.error(f"Error in poll cycle: {e}", exc_info=True)
            return {}

    async def _poll_master(self, master: str) -> list[ChangeRecord] | None:
        """Poll one master inside its own error boundary."""
        try:
            if self.master_timeout is not None:
                return await asyncio.wait_for(
                    self._detect(master), timeout=self.master_timeout
                )
            return await self._detect(master)
        except asyncio.TimeoutError:
            logger.error(
                f"failed to update master {master}: "
                f"timed out after {self.master_timeout}s"
            )
        except Exception as e:
            logger.error(f"failed to update master {master}: {e}", exc_info=True)
        return None

    async def _detect(self, master: str) -> list[ChangeRecord]:
        """Run the detector for one master and log how long it took."""
        start_time = time.monotonic()
        try:
            return await self.detector.detect(master)
        finally:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.info(f"Last poll took {elapsed_ms:.0f}ms (master: {master})")

    async def poll_once(self, master: str) -> list[ChangeRecord]:
        """
        Run change detection for a single master on demand.

        The in-service gate applies as for a scheduled tick: an instance that
        is not in service touches no master and returns no changes. Errors
        from the master propagate to the caller.

        Args:
            master: Master identifier

        Returns:
            ChangeRecords of the jobs that changed on the master
        """
        if not await self.is_in_service():
            self._mark_out_of_service()
            return []

        return await self._detect(master)

    def health(self) -> MonitorHealth:
        """
        Report the monitor health derived from the last poll timestamp.

        Returns:
            UNKNOWN before the first tick and while out of service, DOWN when
            the last poll is older than STALE_POLL_INTERVALS intervals, UP
            otherwise
        """
        last_poll = self._last_poll
        if last_poll is None:
            status = InstanceStatus.UNKNOWN
        else:
            age = (datetime.now(UTC) - last_poll).total_seconds()
            if age > STALE_POLL_INTERVALS * self.poll_interval:
                status = InstanceStatus.DOWN
            else:
                status = InstanceStatus.UP

        return MonitorHealth(
            name=self.name,
            status=status,
            last_poll=last_poll,
            poll_interval=self.poll_interval,
        )
