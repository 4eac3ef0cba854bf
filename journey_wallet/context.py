"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from journey_wallet.config import Config
    from journey_wallet.core.backup import BackupService
    from journey_wallet.core.codec import SnapshotCodec
    from journey_wallet.core.network import NetworkMonitor
    from journey_wallet.core.remote_store import RemoteBackupStore
    from journey_wallet.core.restore import SafetyNetRestorer
    from journey_wallet.core.retention import RetentionPolicy
    from journey_wallet.core.scheduler import BackupScheduler
    from journey_wallet.data.sqlite_store import SqliteDataStore


@dataclass
class AppContext:
    """
    Central service container.

    Built once at process start by ``main.create_context()``; every service
    receives its collaborators explicitly instead of looking up globals.
    """

    config: Config
    store: SqliteDataStore
    codec: SnapshotCodec
    network_monitor: NetworkMonitor

    # Backup services
    restorer: SafetyNetRestorer
    remote_store: RemoteBackupStore
    retention: RetentionPolicy
    backup_service: BackupService
    scheduler: BackupScheduler
