"""
SQLite implementation of the build cache.

Uses aiosqlite for async operations. Each (master, job) pair is one row,
written with a single upsert statement so that concurrent writers of the
same key never observe a half-written entry.
"""

from datetime import UTC, datetime

import aiosqlite

from monitor_common.interfaces import BuildCache
from monitor_common.models import CacheEntry


class SQLiteBuildCache(BuildCache):
    """
    SQLite-based build cache implementation.

    Uses a single table:
    - builds: last known build number and building flag per (master, job)
    """

    def __init__(self, db_path: str = "build_monitor.db"):
        """
        Initialize the SQLite cache.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
        return self._connection

    async def initialize(self) -> None:
        """
        Create database tables if they don't exist.

        Schema:
        - builds table: (master, job_name) primary key, last_build_number,
          building flag and the time the row was last written
        """
        conn = await self._get_connection()

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS builds (
                master TEXT NOT NULL,
                job_name TEXT NOT NULL,
                last_build_number INTEGER NOT NULL,
                building INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (master, job_name)
            )
        """)

        await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def list_tracked_job_names(self, master: str) -> list[str]:
        """
        List the names of all jobs cached for a master.

        Args:
            master: Master identifier

        Returns:
            Job names ordered by name
        """
        conn = await self._get_connection()

        cursor = await conn.execute(
            "SELECT job_name FROM builds WHERE master = ? ORDER BY job_name",
            (master,),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def get_entry(self, master: str, job_name: str) -> CacheEntry | None:
        """
        Retrieve the cache entry for a job.

        Args:
            master: Master identifier
            job_name: Name of the job

        Returns:
            CacheEntry if found, None otherwise
        """
        conn = await self._get_connection()

        cursor = await conn.execute(
            "SELECT last_build_number, building FROM builds "
            "WHERE master = ? AND job_name = ?",
            (master, job_name),
        )
        row = await cursor.fetchone()

        if row is None:
            return None

        return CacheEntry(last_build_number=row[0], building=bool(row[1]))

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
        conn = await self._get_connection()

        await conn.execute(
            """
            INSERT INTO builds (master, job_name, last_build_number, building, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (master, job_name) DO UPDATE SET
                last_build_number = excluded.last_build_number,
                building = excluded.building,
                updated_at = excluded.updated_at
            """,
            (
                master,
                job_name,
                int(build_number),
                1 if building else 0,
                datetime.now(UTC).isoformat(),
            ),
        )
        await conn.commit()

    async def remove_entry(self, master: str, job_name: str) -> None:
        """
        Remove the cache entry for a job.

        Args:
            master: Master identifier
            job_name: Name of the job
        """
        conn = await self._get_connection()

        await conn.execute(
            "DELETE FROM builds WHERE master = ? AND job_name = ?",
            (master, job_name),
        )
        await conn.commit()

    async def list_entries(self, master: str) -> dict[str, CacheEntry]:
        """
        List all cache entries of a master.

        Args:
            master: Master identifier

        Returns:
            Mapping of job name to CacheEntry, ordered by job name
        """
        conn = await self._get_connection()

        cursor = await conn.execute(
            "SELECT job_name, last_build_number, building FROM builds "
            "WHERE master = ? ORDER BY job_name",
            (master,),
        )
        rows = await cursor.fetchall()

        return {
            row[0]: CacheEntry(last_build_number=row[1], building=bool(row[2]))
            for row in rows
        }
