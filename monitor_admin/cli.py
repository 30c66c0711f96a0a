"""
Admin CLI for inspecting and editing the build monitor cache.

Provides commands to list, show, set and remove cached job entries and to
run a single on-demand poll of a master.
"""

import asyncio
import json
import os
import sys

import click

from monitor_persistence.sqlite_cache import SQLiteBuildCache
from monitor_poller.config import DEFAULT_DB_PATH, ConfigError, build_scheduler, load_config


def get_db_path() -> str:
    """Get the database path from environment variable or default."""
    return os.environ.get("MONITOR_DB_PATH", DEFAULT_DB_PATH)


def get_cache() -> SQLiteBuildCache:
    """Get the cache instance."""
    return SQLiteBuildCache(get_db_path())


def run_async(coro):
    """Helper to run async functions in CLI commands."""
    return asyncio.run(coro)


@click.group()
def cli():
    """Monitor Admin - Inspect the build cache and poll masters on demand."""
    pass


@cli.group()
def cache():
    """Manage cached build state."""
    pass


# ============================================================================
# Cache Commands
# ============================================================================


@cache.command("list")
@click.option("--master", required=True, help="Master name")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def cache_list(master: str, json_output: bool):
    """List cached jobs of a master."""

    async def list_entries():
        build_cache = get_cache()
        await build_cache.initialize()

        try:
            entries = await build_cache.list_entries(master)

            if json_output:
                click.echo(
                    json.dumps(
                        {name: entry.to_dict() for name, entry in entries.items()},
                        indent=2,
                    )
                )
                return

            if not entries:
                click.echo(f"No cached jobs for {master}.")
                return

            click.echo(f"\n{'Job':<40} {'Last Build':<12} {'Building':<10}")
            click.echo("-" * 64)
            for name, entry in entries.items():
                building = "yes" if entry.building else "no"
                click.echo(f"{name:<40} {entry.last_build_number:<12} {building:<10}")
            click.echo()

        finally:
            await build_cache.close()

    run_async(list_entries())


@cache.command("show")
@click.option("--master", required=True, help="Master name")
@click.option("--job", "job_name", required=True, help="Job name")
def cache_show(master: str, job_name: str):
    """Show the cached entry of one job."""

    async def show():
        build_cache = get_cache()
        await build_cache.initialize()

        try:
            entry = await build_cache.get_entry(master, job_name)
            if entry is None:
                click.echo(f"Error: No cache entry for {master}:{job_name}", err=True)
                sys.exit(1)

            click.echo(f"\nCache Entry {master}:{job_name}:")
            click.echo(f"  Last build: {entry.last_build_number}")
            click.echo(f"  Building:   {'yes' if entry.building else 'no'}")
            click.echo()

        finally:
            await build_cache.close()

    run_async(show())


@cache.command("set")
@click.option("--master", required=True, help="Master name")
@click.option("--job", "job_name", required=True, help="Job name")
@click.option("--number", required=True, type=int, help="Last build number")
@click.option("--building", is_flag=True, help="Mark the build as still running")
def cache_set(master: str, job_name: str, number: int, building: bool):
    """Overwrite the cached entry of one job (e.g. to force a replay)."""
    if number < 0:
        click.echo(f"Error: Invalid build number: {number}", err=True)
        sys.exit(1)

    async def set_entry():
        build_cache = get_cache()
        await build_cache.initialize()

        try:
            await build_cache.set_entry(master, job_name, number, building)
            click.echo(f"✓ Cache entry set: {master}:{job_name} -> #{number}")

        finally:
            await build_cache.close()

    run_async(set_entry())


@cache.command("remove")
@click.option("--master", required=True, help="Master name")
@click.option("--job", "job_name", required=True, help="Job name")
def cache_remove(master: str, job_name: str):
    """Remove the cached entry of one job."""

    async def remove():
        build_cache = get_cache()
        await build_cache.initialize()

        try:
            entry = await build_cache.get_entry(master, job_name)
            if entry is None:
                click.echo(f"Error: No cache entry for {master}:{job_name}", err=True)
                sys.exit(1)

            await build_cache.remove_entry(master, job_name)
            click.echo(f"✓ Cache entry removed: {master}:{job_name}")

        finally:
            await build_cache.close()

    run_async(remove())


# ============================================================================
# Poll Commands
# ============================================================================


@cli.command("poll")
@click.option("--master", required=True, help="Master name")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def poll(master: str, json_output: bool):
    """Poll one master now and print the jobs that changed."""
    try:
        config = load_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    async def poll_master():
        scheduler, build_cache = build_scheduler(config)
        await build_cache.initialize()

        try:
            if master not in scheduler.data_source.list_masters():
                click.echo(f"Error: Unknown master: {master}", err=True)
                sys.exit(1)

            try:
                records = await scheduler.poll_once(master)
            except Exception as e:
                click.echo(f"Error: Failed to poll {master}: {e}", err=True)
                sys.exit(1)

            if json_output:
                click.echo(json.dumps([r.to_dict() for r in records], indent=2))
                return

            if not records:
                click.echo(f"No changes on {master}.")
                return

            for record in records:
                build = record.current.last_build
                previous = (
                    f"#{record.previous.last_build_number}" if record.previous else "new"
                )
                state = "building" if build.building else (build.result or "")
                click.echo(
                    f"{record.current.name}: {previous} -> #{build.number} {state}".rstrip()
                )

        finally:
            await build_cache.close()

    run_async(poll_master())
