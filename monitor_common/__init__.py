"""
Monitor Common module.

This module contains shared domain models and collaborator interfaces used
across the build monitor components (poller, persistence, clients, server).

The common module has no dependencies on other monitor_* modules, making it
a pure domain layer that can be imported by any component.
"""

from .interfaces import BuildCache, EventSink, HealthOracle, MasterDataSource
from .models import (
    BUILD_IN_PROGRESS,
    Build,
    BuildEvent,
    CacheEntry,
    ChangeRecord,
    InstanceStatus,
    Job,
    normalized_result,
)

__all__ = [
    "BUILD_IN_PROGRESS",
    "Build",
    "BuildCache",
    "BuildEvent",
    "CacheEntry",
    "ChangeRecord",
    "EventSink",
    "HealthOracle",
    "InstanceStatus",
    "Job",
    "MasterDataSource",
    "normalized_result",
]
