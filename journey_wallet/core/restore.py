"""Safety-net restore — replace the whole store, rolling back on failure."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Callable

from loguru import logger

from journey_wallet.core.codec import SnapshotCodec
from journey_wallet.data.store import DataStore
from journey_wallet.errors import IncompatibleSchema, RestoreFailed, RollbackFailed
from journey_wallet.models.entities import LOAD_ORDER, EntityType
from journey_wallet.models.snapshot import Snapshot
from journey_wallet.utils import utcnow

SAFETY_BACKUP_PREFIX = "safety_backup_before_import_"


class RestorePhase(StrEnum):
    IDLE = "idle"
    SNAPSHOT_TAKEN = "snapshot_taken"
    WIPED = "wiped"
    RELOADING = "reloading"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class RestoreResult:
    """Result of a committed restore."""

    phase: RestorePhase = RestorePhase.IDLE
    safety_backup: Path | None = None
    inserted: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())


class SafetyNetRestorer:
    """
    Replaces all local data with a snapshot.

    Phases: IDLE -> SNAPSHOT_TAKEN -> WIPED -> RELOADING -> COMMITTED | ROLLED_BACK.
    The current store is written to a private safety file before anything is
    wiped; if the wipe or reload raises, the store is rebuilt from that file
    and ``RestoreFailed`` is raised. A failing rollback raises ``RollbackFailed``.

    A record the store rejects (``insert`` returns False) is skipped and
    counted; only raised exceptions abort the restore.

    Process death between WIPED and COMMITTED is not recovered.
    """

    def __init__(
        self,
        store: DataStore,
        codec: SnapshotCodec,
        safety_dir: Path,
        app_version: str,
        device_name: str,
        max_safety_backups: int = 3,
    ) -> None:
        self._store = store
        self._codec = codec
        self._safety_dir = safety_dir
        self._app_version = app_version
        self._device_name = device_name
        self._max_safety_backups = max_safety_backups
        self.phase = RestorePhase.IDLE

    def _enter(self, phase: RestorePhase) -> None:
        logger.debug(f"Restore phase: {self.phase} -> {phase}")
        self.phase = phase

    # ── Public API ──

    def validate(self, snapshot: Snapshot) -> None:
        """Schema gate. Runs before any mutation."""
        current = self._store.current_schema_version()
        found = snapshot.metadata.schema_version
        if found > current:
            raise IncompatibleSchema(current=current, found=found)

    def restore(self, snapshot: Snapshot) -> RestoreResult:
        """Restore from an already decoded snapshot."""
        self.validate(snapshot)
        return self.restore_from(lambda: snapshot)

    def restore_from(self, read_snapshot: Callable[[], Snapshot]) -> RestoreResult:
        """
        Restore from a snapshot produced by *read_snapshot*.

        The reader runs after the safety snapshot is written. If reading or the
        schema gate fails, nothing has been touched yet and the safety snapshot
        is discarded again.
        """
        self.phase = RestorePhase.IDLE
        result = RestoreResult()

        try:
            safety_path = self._create_safety_backup()
        except Exception as e:
            logger.error(f"Could not create safety backup, aborting restore: {e}")
            raise RestoreFailed(e) from e
        result.safety_backup = safety_path
        self._enter(RestorePhase.SNAPSHOT_TAKEN)

        try:
            snapshot = read_snapshot()
        except Exception as e:
            logger.error(f"Could not read snapshot to restore, local data untouched: {e}")
            self._discard(safety_path)
            raise RestoreFailed(e) from e
        try:
            self.validate(snapshot)
        except IncompatibleSchema:
            self._discard(safety_path)
            raise

        try:
            self._store.wipe_all()
            self._enter(RestorePhase.WIPED)
            logger.info("All data wiped from store")
            self._enter(RestorePhase.RELOADING)
            self._load(snapshot, result)
        except Exception as e:
            logger.error(f"Restore failed: {e}. Restoring from safety backup.")
            self._rollback(safety_path, e)
            raise RestoreFailed(e) from e

        self._enter(RestorePhase.COMMITTED)
        result.phase = self.phase
        logger.info(
            f"Restored {result.total_inserted} records "
            f"({result.total_skipped} skipped) from snapshot of "
            f"{snapshot.metadata.device_name} at {snapshot.metadata.created_at.isoformat()}"
        )
        self.cleanup_old_safety_backups()
        return result

    def list_safety_backups(self) -> list[Path]:
        """Safety snapshot files, newest first."""
        if not self._safety_dir.exists():
            return []
        return sorted(self._safety_dir.glob(f"{SAFETY_BACKUP_PREFIX}*.json"), reverse=True)

    def cleanup_old_safety_backups(self) -> None:
        """Remove safety snapshots beyond the retention cap. Never raises."""
        for old in self.list_safety_backups()[self._max_safety_backups:]:
            try:
                old.unlink(missing_ok=True)
                logger.info(f"Deleted old safety backup: {old.name}")
            except OSError as e:
                logger.error(f"Failed to delete old safety backup {old.name}: {e}")

    # ── Internals ──

    def _create_safety_backup(self) -> Path:
        self._safety_dir.mkdir(parents=True, exist_ok=True)
        now = utcnow()
        data = self._codec.encode(self._store, self._app_version, self._device_name, now=now)
        path = self._safety_dir / f"{SAFETY_BACKUP_PREFIX}{now.strftime('%Y-%m-%d_%H-%M-%S_%f')}.json"
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)
        logger.info(f"Safety backup created at: {path}")
        return path

    def _discard(self, safety_path: Path) -> None:
        try:
            safety_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove unused safety backup {safety_path.name}: {e}")

    def _load(self, snapshot: Snapshot, result: RestoreResult) -> None:
        """Insert every record, parents before children, then preferences."""
        for entity_type in LOAD_ORDER:
            inserted, skipped = self._load_collection(entity_type, snapshot)
            result.inserted[entity_type.value] = inserted
            if skipped:
                result.skipped[entity_type.value] = skipped
                logger.warning(f"Skipped {skipped} {entity_type.value} record(s) rejected by the store")
        self._store.save_preferences(snapshot.user_settings)

    def _load_collection(self, entity_type: EntityType, snapshot: Snapshot) -> tuple[int, int]:
        inserted = skipped = 0
        for record in snapshot.records(entity_type):
            if self._store.insert(entity_type, record):
                inserted += 1
            else:
                skipped += 1
        return inserted, skipped

    def _rollback(self, safety_path: Path, original: Exception) -> None:
        logger.info(f"Restoring from safety backup: {safety_path}")
        try:
            safety = self._codec.decode(safety_path.read_bytes())
            self._store.wipe_all()
            self._load(safety, RestoreResult())
        except Exception as e:
            logger.critical(f"Rollback from {safety_path} failed, local data may be lost: {e}")
            raise RollbackFailed(e, original) from e
        self._enter(RestorePhase.ROLLED_BACK)
        logger.info("Successfully restored from safety backup")
