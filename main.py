"""Application entry point — wires services and runs backup commands."""

from __future__ import annotations

import argparse
import sys
import threading
from datetime import timedelta
from pathlib import Path

from loguru import logger

from journey_wallet.config import Config
from journey_wallet.context import AppContext
from journey_wallet.core.backup import BackupService, describe_error
from journey_wallet.core.codec import SnapshotCodec
from journey_wallet.core.network import NetworkMonitor
from journey_wallet.core.remote_store import RemoteBackupStore
from journey_wallet.core.restore import RestoreResult, SafetyNetRestorer
from journey_wallet.core.retention import RetentionPolicy
from journey_wallet.core.scheduler import BackupScheduler, TaskScheduler, TimerTaskScheduler
from journey_wallet.data.scheduler_state import SchedulerStateStore
from journey_wallet.data.sqlite_store import SqliteDataStore
from journey_wallet.errors import BackupError, RollbackFailed
from journey_wallet.logger import setup_logger
from journey_wallet.models.backup_record import BackupRecord
from journey_wallet.models.snapshot import SnapshotMetadata


def create_context(config: Config, task_scheduler: TaskScheduler | None = None) -> AppContext:
    """Wire all services and return an AppContext."""
    store = SqliteDataStore(config.database_path)
    codec = SnapshotCodec()
    network_monitor = NetworkMonitor(config.network_probe_url, config.network_timeout)

    restorer = SafetyNetRestorer(
        store,
        codec,
        config.safety_backup_dir,
        app_version=config.app_version,
        device_name=config.device_name,
        max_safety_backups=config.max_safety_backups,
    )
    remote_store = RemoteBackupStore(
        config.sync_folder,
        codec,
        network_monitor,
        app_name=config.app_name,
        dev_mode=config.dev_mode,
    )
    retention = RetentionPolicy(
        max_age=timedelta(days=config.max_backup_age_days),
        max_count=config.max_remote_backups,
    )
    backup_service = BackupService(config, store, codec, restorer, remote_store, retention)
    scheduler = BackupScheduler(
        backup_service,
        SchedulerStateStore(config.scheduler_state_path),
        task_scheduler or TimerTaskScheduler(),
    )

    return AppContext(
        config=config,
        store=store,
        codec=codec,
        network_monitor=network_monitor,
        restorer=restorer,
        remote_store=remote_store,
        retention=retention,
        backup_service=backup_service,
        scheduler=scheduler,
    )


# ── Commands ──


def _confirm(metadata: SnapshotMetadata, assume_yes: bool) -> bool:
    """Show snapshot metadata and ask before replacing all local data."""
    print(f"  Source device:  {metadata.device_name}")
    print(f"  Exported at:    {metadata.created_at.isoformat()}")
    print(f"  App version:    {metadata.app_version}")
    print(f"  Schema version: {metadata.schema_version}")
    if assume_yes:
        return True
    answer = input("This replaces ALL local data. Continue? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def _print_result(result: RestoreResult) -> None:
    print(f"Restored {result.total_inserted} records ({result.total_skipped} skipped).")
    if result.safety_backup:
        print(f"Previous data kept in {result.safety_backup}")


def _cmd_export(ctx: AppContext, args: argparse.Namespace) -> int:
    print(ctx.backup_service.export_to_file())
    return 0


def _cmd_preview(ctx: AppContext, args: argparse.Namespace) -> int:
    _confirm(ctx.backup_service.preview_file(Path(args.file)), assume_yes=True)
    return 0


def _cmd_import(ctx: AppContext, args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not _confirm(ctx.backup_service.preview_file(path), args.yes):
        print("Cancelled.")
        return 1
    _print_result(ctx.backup_service.import_from_file(path))
    return 0


def _cmd_backup(ctx: AppContext, args: argparse.Namespace) -> int:
    record = ctx.backup_service.create_remote_backup()
    print(f"Created {record.file_name} ({record.formatted_size})")
    return 0


def _cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    records = ctx.backup_service.list_remote_backups()
    if not records:
        print("No remote backups.")
    for record in records:
        tag = " [dev]" if record.is_dev_backup else ""
        print(
            f"{record.file_name}{tag}  {record.created_at.isoformat()}  "
            f"{record.formatted_size}  {record.device_name}  v{record.app_version}  "
            f"schema {record.schema_version}"
        )
    return 0


def _find(ctx: AppContext, name: str) -> BackupRecord | None:
    record = ctx.backup_service.find_remote_backup(name)
    if record is None:
        print(f"No remote backup named {name}", file=sys.stderr)
    return record


def _cmd_restore(ctx: AppContext, args: argparse.Namespace) -> int:
    record = _find(ctx, args.name)
    if record is None:
        return 1
    metadata = SnapshotMetadata(
        created_at=record.created_at,
        app_version=record.app_version,
        device_name=record.device_name,
        schema_version=record.schema_version,
    )
    if not _confirm(metadata, args.yes):
        print("Cancelled.")
        return 1
    _print_result(ctx.backup_service.restore_remote_backup(record))
    return 0


def _cmd_delete(ctx: AppContext, args: argparse.Namespace) -> int:
    record = _find(ctx, args.name)
    if record is None:
        return 1
    ctx.backup_service.delete_remote_backup(record)
    return 0


def _cmd_delete_all(ctx: AppContext, args: argparse.Namespace) -> int:
    print(f"Deleted {ctx.backup_service.delete_all_remote_backups()} backup(s).")
    return 0


def _cmd_auto(ctx: AppContext, args: argparse.Namespace) -> int:
    scheduler = ctx.scheduler
    if args.action in ("on", "off"):
        scheduler.register()
        scheduler.enabled = args.action == "on"
    state = scheduler.state
    print(f"Automatic backup: {'on' if state.automatic_backup_enabled else 'off'}")
    print(f"Last automatic backup: {state.last_automatic_backup_date or '-'}")
    print(f"Last attempt: {state.last_backup_attempt_date or '-'}")
    print(f"Pending retry: {'yes' if state.pending_retry else 'no'}")
    return 0


def _cmd_retry(ctx: AppContext, args: argparse.Namespace) -> int:
    ctx.scheduler.retry_if_needed()
    return 0


def _cmd_daemon(ctx: AppContext, args: argparse.Namespace) -> int:
    """Keep the process alive so the daily trigger can fire."""
    scheduler = ctx.scheduler
    scheduler.register()
    scheduler.retry_if_needed()
    scheduler.schedule_next_backup()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        scheduler.cancel_all_backup_tasks()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="journey-wallet", description="Journey Wallet backup tool")
    parser.add_argument("--data-dir", type=Path, default=None, help="Data directory (config, database, logs)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("export", help="Export all data to a JSON file").set_defaults(func=_cmd_export)

    p = sub.add_parser("preview", help="Show the metadata of an export file")
    p.add_argument("file")
    p.set_defaults(func=_cmd_preview)

    p = sub.add_parser("import", help="Replace all data with an export file")
    p.add_argument("file")
    p.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    p.set_defaults(func=_cmd_import)

    sub.add_parser("backup", help="Create a remote backup").set_defaults(func=_cmd_backup)
    sub.add_parser("list", help="List remote backups").set_defaults(func=_cmd_list)

    p = sub.add_parser("restore", help="Replace all data with a remote backup")
    p.add_argument("name")
    p.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    p.set_defaults(func=_cmd_restore)

    p = sub.add_parser("delete", help="Delete one remote backup")
    p.add_argument("name")
    p.set_defaults(func=_cmd_delete)

    sub.add_parser("delete-all", help="Delete every remote backup").set_defaults(func=_cmd_delete_all)

    p = sub.add_parser("auto", help="Automatic daily backup")
    p.add_argument("action", choices=["on", "off", "status"])
    p.set_defaults(func=_cmd_auto)

    sub.add_parser("retry", help="Retry a failed automatic backup").set_defaults(func=_cmd_retry)
    sub.add_parser("daemon", help="Run the daily backup scheduler").set_defaults(func=_cmd_daemon)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)
    config = Config(args.data_dir)
    setup_logger(config.log_dir, verbose=args.verbose)
    ctx = create_context(config)

    try:
        return args.func(ctx, args)
    except RollbackFailed as e:
        logger.critical(str(e))
        print(f"DATA LOSS RISK: {e}", file=sys.stderr)
        return 3
    except BackupError as e:
        print(describe_error(e), file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    finally:
        ctx.store.close()


if __name__ == "__main__":
    sys.exit(main())
