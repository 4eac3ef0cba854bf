"""Backup service — export, import and remote backup/restore of the whole store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from journey_wallet.core.codec import SnapshotCodec
from journey_wallet.core.restore import RestoreResult, SafetyNetRestorer
from journey_wallet.core.retention import RetentionPolicy
from journey_wallet.errors import BackupError, DevBackupOnProdBuild, NetworkUnavailable, RemoteUnavailable
from journey_wallet.models.backup_record import BackupRecord
from journey_wallet.models.snapshot import Snapshot, SnapshotMetadata
from journey_wallet.utils import file_timestamp

if TYPE_CHECKING:
    from journey_wallet.config import Config
    from journey_wallet.core.remote_store import RemoteBackupStore
    from journey_wallet.data.store import DataStore


class SilentBackupProtocol(Protocol):
    """What the scheduler needs from the backup service."""

    def is_remote_available(self) -> bool: ...

    def create_remote_backup(self) -> BackupRecord: ...


class BackupService:
    """Whole-store backup engine. Also implements SilentBackupProtocol."""

    def __init__(
        self,
        config: Config,
        store: DataStore,
        codec: SnapshotCodec,
        restorer: SafetyNetRestorer,
        remote_store: RemoteBackupStore,
        retention: RetentionPolicy,
    ) -> None:
        self._config = config
        self._store = store
        self._codec = codec
        self._restorer = restorer
        self._remote = remote_store
        self._retention = retention

    # ── Export / import ──

    def export_snapshot(self) -> bytes:
        return self._codec.encode(self._store, self._config.app_version, self._config.device_name)

    def export_to_file(self) -> Path:
        """Write a full export to the export directory; the caller shares or moves it."""
        export_dir = self._config.export_dir
        export_dir.mkdir(parents=True, exist_ok=True)
        path = export_dir / f"{self._config.app_name}_export_{file_timestamp()}.json"
        path.write_bytes(self.export_snapshot())
        logger.info(f"Exported data to {path}")
        return path

    def preview_file(self, path: Path) -> SnapshotMetadata:
        """Metadata to show in the confirmation step before an import."""
        return self._codec.read_metadata(path.read_bytes())

    def load_file(self, path: Path) -> Snapshot:
        return self._codec.decode(path.read_bytes())

    def import_from_file(self, path: Path) -> RestoreResult:
        """Replace all local data with the contents of an export file."""
        snapshot = self.load_file(path)
        result = self._restorer.restore(snapshot)
        logger.info(f"Imported data from {path.name}")
        return result

    # ── Remote backups ──

    def is_remote_available(self) -> bool:
        try:
            self._remote.check_status()
        except (RemoteUnavailable, NetworkUnavailable):
            return False
        return True

    def create_remote_backup(self) -> BackupRecord:
        """Encode the store into a new remote backup, then apply retention."""
        self._remote.check_status()
        record = self._remote.create(self.export_snapshot())
        self._retention.apply(self._remote)
        return record

    def list_remote_backups(self) -> list[BackupRecord]:
        return self._remote.list()

    def find_remote_backup(self, file_name: str) -> BackupRecord | None:
        for record in self._remote.list():
            if record.file_name == file_name:
                return record
        return None

    def delete_remote_backup(self, record: BackupRecord) -> None:
        self._remote.delete(record)

    def delete_all_remote_backups(self) -> int:
        return self._remote.delete_all()

    def restore_remote_backup(self, record: BackupRecord) -> RestoreResult:
        """Replace all local data with a remote backup."""
        self._remote.check_status()
        if record.is_dev_backup and not self._config.dev_mode:
            raise DevBackupOnProdBuild(record.file_name)

        result = self._restorer.restore_from(lambda: self._codec.decode(self._remote.read(record)))
        logger.info(f"Successfully restored from remote backup: {record.file_name}")
        return result


def describe_error(error: BaseException) -> str:
    """One-line user-facing description of a backup engine error."""
    if isinstance(error, BackupError):
        return str(error)
    return f"Unexpected error: {error}"
