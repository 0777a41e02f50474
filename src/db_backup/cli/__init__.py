"""CLI for unattended database backups.

Usage:
    db-backup run
    db-backup --env-prefix APP_ run
    db-backup --config backup.toml list
    db-backup prune --dry-run
    db-backup check

Commands:
    run    - Probe, dump, upload, and apply retention (one cycle)
    list   - List stored backups under the configured prefix
    prune  - Apply retention only
    check  - Wait until the database is reachable

Exit status is 0 on success and 1 on any fatal failure, configuration
error, timeout or interruption.  Retention failures during ``run`` are
logged but do not change the exit status.
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from db_backup.adapters.postgres import PostgresProbe
from db_backup.adapters.s3 import S3ObjectStore
from db_backup.backup.errors import BackupError
from db_backup.backup.keys import BACKUP_SUFFIX
from db_backup.backup.orchestrator import run_backup
from db_backup.backup.probe import wait_until_reachable
from db_backup.backup.retention import cleanup_old_backups, plan_retention
from db_backup.config.loader import ConfigError, load_backup_config
from db_backup.config.models import BackupConfig

console = Console()
logger = logging.getLogger(__name__)

LOG_FORMAT = "[backup] %(asctime)s %(levelname)s %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    # botocore logs every request at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)


def _load_config(args: argparse.Namespace) -> BackupConfig | None:
    """Load config for a command; log and return None when invalid."""
    config_path = Path(args.config) if getattr(args, "config", None) else None
    try:
        return load_backup_config(
            config_path=config_path,
            env_prefix=getattr(args, "env_prefix", ""),
        )
    except ConfigError as e:
        logger.error(str(e))
        return None


async def _cancel_on_signals(coro: Coroutine[Any, Any, int]) -> int:
    """Await ``coro`` in a task that SIGINT/SIGTERM cancel.

    Returns 1 if the task was cancelled by a signal.
    """
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(coro)
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows and off the main thread
            pass
    try:
        return await task
    except asyncio.CancelledError:
        if not task.cancelled():
            raise
        logger.error("Backup interrupted")
        return 1
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_run(config: BackupConfig) -> int:
    """Async implementation for run command.

    Returns:
        0 on success (including non-fatal cleanup failures), 1 on failure.
    """
    try:
        if config.backup_timeout is not None:
            result = await asyncio.wait_for(run_backup(config), timeout=config.backup_timeout)
        else:
            result = await run_backup(config)
    except asyncio.TimeoutError:
        logger.error(f"Backup failed: run exceeded {config.backup_timeout:g}s")
        return 1
    except BackupError as e:
        logger.error(f"Backup failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Backup failed: {e}")
        return 1

    if result.cleanup.error or result.cleanup.failed:
        logger.warning("Backup stored; retention cleanup did not fully succeed")
    return 0


async def _async_list(config: BackupConfig) -> int:
    """Async implementation for list command."""
    store = S3ObjectStore.from_config(config)
    try:
        listing = await store.list(config.backup_prefix, max_results=config.backup_list_limit)
    except BackupError as e:
        logger.error(f"Listing failed: {e}")
        return 1

    backups = sorted(
        (obj for obj in listing.objects if obj.key.endswith(BACKUP_SUFFIX)),
        key=lambda obj: obj.key,
        reverse=True,
    )

    table = Table(
        title=f"Backups in s3://{config.s3_bucket}/{config.backup_prefix}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Key")
    table.add_column("Size (MB)", justify="right")
    table.add_column("Last modified", style="dim")

    for obj in backups:
        table.add_row(
            obj.key,
            f"{obj.size / 1024 / 1024:.2f}",
            obj.last_modified.isoformat() if obj.last_modified else "",
        )

    console.print(table)
    console.print(f"{len(backups)} backup(s), retention {config.backup_max_count}")
    if listing.truncated:
        console.print(
            f"[yellow]Listing truncated at {config.backup_list_limit} objects.[/yellow]"
        )
    return 0


async def _async_prune(config: BackupConfig, dry_run: bool) -> int:
    """Async implementation for prune command."""
    store = S3ObjectStore.from_config(config)

    if dry_run:
        try:
            listing = await store.list(
                config.backup_prefix, max_results=config.backup_list_limit
            )
        except BackupError as e:
            logger.error(f"Listing failed: {e}")
            return 1
        if listing.truncated:
            console.print("[yellow]Listing truncated; retention would be skipped.[/yellow]")
            return 0
        decision = plan_retention(listing.objects, config.backup_max_count)
        console.print(
            f"{decision.total} backup(s), keeping {len(decision.keep)}, "
            f"deleting {len(decision.delete)}"
        )
        for obj in decision.delete:
            console.print(f"  [red]delete[/red] {obj.key}")
        console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
        return 0

    try:
        outcome = await cleanup_old_backups(
            store,
            config.backup_prefix,
            config.backup_max_count,
            list_limit=config.backup_list_limit,
        )
    except BackupError as e:
        logger.error(f"Prune failed: {e}")
        return 1
    return 0 if outcome.success else 1


async def _async_check(config: BackupConfig) -> int:
    """Async implementation for check command."""
    try:
        await wait_until_reachable(PostgresProbe(config.database_url), config.pg_connect_timeout)
    except BackupError as e:
        logger.error(str(e))
        return 1
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_run(args: argparse.Namespace) -> int:
    """Run one backup cycle.

    Wraps the async implementation with ``asyncio.run()``.
    """
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_cancel_on_signals(_async_run(config)))


def cmd_list(args: argparse.Namespace) -> int:
    """List stored backups.

    Wraps the async implementation with ``asyncio.run()``.
    """
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_cancel_on_signals(_async_list(config)))


def cmd_prune(args: argparse.Namespace) -> int:
    """Apply retention without taking a backup.

    Wraps the async implementation with ``asyncio.run()``.
    """
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_cancel_on_signals(_async_prune(config, args.dry_run)))


def cmd_check(args: argparse.Namespace) -> int:
    """Wait until the database is reachable.

    Wraps the async implementation with ``asyncio.run()``.
    """
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(_cancel_on_signals(_async_check(config)))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-backup",
        description="Back up a PostgreSQL database to S3-compatible storage",
    )

    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DATABASE_URL)"
        ),
    )
    parser.add_argument(
        "--config",
        "-c",
        help="TOML file with a [backup] table (environment overrides it)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_run = subparsers.add_parser("run", help="Run one backup cycle")
    p_run.set_defaults(func=cmd_run)

    p_list = subparsers.add_parser("list", help="List stored backups")
    p_list.set_defaults(func=cmd_list)

    p_prune = subparsers.add_parser("prune", help="Apply retention only")
    p_prune.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without deleting",
    )
    p_prune.set_defaults(func=cmd_prune)

    p_check = subparsers.add_parser("check", help="Wait until the database is reachable")
    p_check.set_defaults(func=cmd_check)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
