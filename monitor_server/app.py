import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse

from monitor_common.interfaces import BuildCache
from monitor_common.models import InstanceStatus
from monitor_poller.config import build_scheduler, load_config
from monitor_poller.scheduler import PollScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Global instances (initialized at startup)
scheduler: PollScheduler | None = None
cache: BuildCache | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI app.

    Handles startup and shutdown events:
    - Startup: Initialize the build cache and start the poll scheduler
    - Shutdown: Stop the scheduler and close the cache
    """
    global scheduler, cache

    config = load_config()
    scheduler, cache = build_scheduler(config)
    await cache.initialize()
    await scheduler.start()

    yield

    await scheduler.stop()
    await cache.close()


app = FastAPI(lifespan=lifespan)


def get_scheduler() -> PollScheduler:
    """
    Get the global scheduler instance.

    Raises:
        RuntimeError: If the scheduler is not initialized
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized")
    return scheduler


def get_cache() -> BuildCache:
    """
    Get the global cache instance.

    Raises:
        RuntimeError: If the cache is not initialized
    """
    if cache is None:
        raise RuntimeError("Cache not initialized")
    return cache


def require_master(master: str, sched: PollScheduler) -> None:
    """Raise 404 if the master is not configured."""
    if master not in sched.data_source.list_masters():
        raise HTTPException(status_code=404, detail=f"Unknown master: {master}")


@app.get("/health")
async def health(sched: PollScheduler = Depends(get_scheduler)) -> JSONResponse:
    """
    Report the poller health.

    Returns 503 when the last poll is stale. UNKNOWN (never polled, or out of
    service) is reported with 200 so that idle instances are not restarted.
    """
    report = sched.health()
    status_code = 503 if report.status == InstanceStatus.DOWN else 200
    return JSONResponse(report.to_dict(), status_code=status_code)


@app.get("/masters")
async def list_masters(sched: PollScheduler = Depends(get_scheduler)) -> dict[str, Any]:
    """List the configured masters."""
    return {"masters": sched.data_source.list_masters()}


@app.get("/masters/{master}/jobs")
async def list_cached_jobs(
    master: str,
    sched: PollScheduler = Depends(get_scheduler),
    build_cache: BuildCache = Depends(get_cache),
) -> dict[str, Any]:
    """List the cached build state of every tracked job on a master."""
    require_master(master, sched)
    entries = await build_cache.list_entries(master)
    return {
        "master": master,
        "jobs": {name: entry.to_dict() for name, entry in entries.items()},
    }


@app.post("/masters/{master}/poll")
async def poll_master(
    master: str, sched: PollScheduler = Depends(get_scheduler)
) -> dict[str, Any]:
    """
    Poll one master immediately.

    Returns the jobs that changed. The cache is updated and events are
    published exactly as in a scheduled tick.
    """
    require_master(master, sched)
    try:
        records = await sched.poll_once(master)
    except Exception as e:
        logger.error(f"On-demand poll of {master} failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Failed to poll {master}: {e}")

    return {"master": master, "changes": [record.to_dict() for record in records]}
