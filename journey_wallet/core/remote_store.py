"""Remote backup store — dated snapshot files in a shared sync folder."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from loguru import logger

from journey_wallet.core.codec import SnapshotCodec
from journey_wallet.core.coordination import FileCoordinator
from journey_wallet.errors import MalformedSnapshot, NetworkUnavailable, RemoteUnavailable
from journey_wallet.models.backup_record import DEV_MARKER, BackupRecord
from journey_wallet.utils import file_timestamp, utcnow

if TYPE_CHECKING:
    from journey_wallet.core.network import NetworkMonitor


class RemoteBackupStore:
    """
    Backups in a folder shared between devices (iCloud Drive, Dropbox, NAS...).

    Directory structure:
      {sync_folder}/{app_name}/backups/
        ├── {app_name}_backup_{yyyy-MM-dd_HH-mm-ss}.json
        └── {app_name}_backup_dev_{yyyy-MM-dd_HH-mm-ss}.json

    Every operation first checks that the folder is reachable and the network
    is up, and fails with ``RemoteUnavailable`` / ``NetworkUnavailable``
    before touching any file.
    """

    def __init__(
        self,
        sync_folder: Path | None,
        codec: SnapshotCodec,
        network_monitor: NetworkMonitor,
        app_name: str,
        dev_mode: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sync_folder = sync_folder
        self._codec = codec
        self._network = network_monitor
        self._app_name = app_name
        self._dev_mode = dev_mode
        self._clock = clock

    @property
    def backup_dir(self) -> Path | None:
        sf = self._sync_folder
        if sf is None or not sf.exists():
            return None
        return sf / self._app_name / "backups"

    @property
    def is_available(self) -> bool:
        return self.backup_dir is not None

    def check_status(self) -> Path:
        """Return the backup directory or raise if it cannot be used right now."""
        backup_dir = self.backup_dir
        if backup_dir is None:
            logger.warning("Remote backup folder is not configured or not reachable")
            raise RemoteUnavailable(f"Sync folder not available: {self._sync_folder}")
        if not self._network.check_connectivity():
            logger.warning("Network unavailable for remote backup operation")
            raise NetworkUnavailable("Network unavailable for remote backup operation")
        return backup_dir

    def _coordinator(self) -> FileCoordinator:
        return FileCoordinator(self.check_status())

    def backup_file_name(self, moment: datetime) -> str:
        marker = DEV_MARKER if self._dev_mode else "_"
        return f"{self._app_name}_backup{marker}{file_timestamp(moment)}.json"

    # ── Operations ──

    def create(self, data: bytes) -> BackupRecord:
        """Write snapshot bytes as a new dated backup file; never overwrites an existing backup."""
        coordinator = self._coordinator()
        backup_dir = coordinator.directory
        if not backup_dir.exists():
            backup_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created remote backup directory: {backup_dir}")

        name = self.backup_file_name(self._clock())
        path = coordinator.write_new(name, data)
        logger.info(f"Remote backup created: {path.name}")
        return self._record_from_bytes(path, data)

    def list(self) -> list[BackupRecord]:
        """All decodable backups, newest first."""
        coordinator = self._coordinator()
        backup_dir = coordinator.directory
        if not backup_dir.exists():
            backup_dir.mkdir(parents=True, exist_ok=True)
            return []

        records: list[BackupRecord] = []
        with coordinator.reading():
            for path in backup_dir.glob("*.json"):
                if path.name.startswith("."):
                    continue
                try:
                    records.append(self._record_from_bytes(path, path.read_bytes()))
                except (MalformedSnapshot, OSError) as e:
                    logger.warning(f"Skipping unreadable backup {path.name}: {e}")

        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def read(self, record: BackupRecord) -> bytes:
        return self._coordinator().read(record.file_name)

    def delete(self, record: BackupRecord) -> None:
        """Delete one backup; a file that is already gone is not an error."""
        if self._coordinator().delete(record.file_name):
            logger.info(f"Deleted remote backup: {record.file_name}")
        else:
            logger.debug(f"Remote backup already gone: {record.file_name}")

    def delete_all(self) -> int:
        records = self.list()
        if not records:
            return 0
        for record in records:
            self.delete(record)
        logger.info(f"Deleted all remote backups: {len(records)} files")
        return len(records)

    def _record_from_bytes(self, path: Path, data: bytes) -> BackupRecord:
        metadata = self._codec.read_metadata(data)
        return BackupRecord(
            path=path,
            created_at=metadata.created_at,
            size=len(data),
            device_name=metadata.device_name,
            app_version=metadata.app_version,
            schema_version=metadata.schema_version,
        )
