"""
Monitor Persistence module.

This module contains the database implementation of the build cache.
Currently supports SQLite, but can be extended to other stores.

The persistence layer depends on monitor_common for domain models and
interfaces, and is used by the poller, the server and the admin CLI.
"""

from .sqlite_cache import SQLiteBuildCache

__all__ = ["SQLiteBuildCache"]
