"""Retention policy for remote backups — bounded by age and by count."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from loguru import logger

from journey_wallet.models.backup_record import BackupRecord
from journey_wallet.utils import utcnow

if TYPE_CHECKING:
    from journey_wallet.core.remote_store import RemoteBackupStore

MAX_BACKUP_AGE = timedelta(days=30)
MAX_BACKUP_COUNT = 5


@dataclass(frozen=True)
class RetentionPolicy:
    max_age: timedelta = MAX_BACKUP_AGE
    max_count: int = MAX_BACKUP_COUNT

    def select_expired(self, records: Iterable[BackupRecord], now: datetime | None = None) -> list[BackupRecord]:
        """
        Records to evict: older than ``max_age`` or beyond the ``max_count``
        newest. A record matching both rules is returned once.
        """
        now = now or utcnow()
        newest_first = sorted(records, key=lambda r: r.created_at, reverse=True)

        expired: dict[Path, BackupRecord] = {}
        for record in newest_first:
            if now - record.created_at > self.max_age:
                expired[record.path] = record
        for record in newest_first[self.max_count:]:
            expired.setdefault(record.path, record)
        return list(expired.values())

    def apply(self, remote_store: RemoteBackupStore, now: datetime | None = None) -> list[BackupRecord]:
        """Delete expired backups. Best effort: failures are logged, never raised."""
        try:
            records = remote_store.list()
        except Exception as e:
            logger.error(f"Retention skipped, could not list remote backups: {e}")
            return []

        deleted: list[BackupRecord] = []
        for record in self.select_expired(records, now):
            try:
                remote_store.delete(record)
                deleted.append(record)
            except Exception as e:
                logger.error(f"Failed to delete expired backup {record.file_name}: {e}")

        if deleted:
            logger.info(f"Cleaned up {len(deleted)} old remote backup(s)")
        return deleted
