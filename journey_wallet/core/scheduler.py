"""Automatic daily backups — scheduling, silent backup and retry."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Protocol

from loguru import logger

from journey_wallet.errors import SchedulingError

if TYPE_CHECKING:
    from journey_wallet.core.backup import SilentBackupProtocol
    from journey_wallet.data.scheduler_state import SchedulerState, SchedulerStateStore

DAILY_BACKUP_TASK_ID = "journey_wallet.daily-backup"


def _local_now() -> datetime:
    return datetime.now().astimezone()


def next_midnight(now: datetime) -> datetime:
    """Start of the day after *now*, in *now*'s timezone."""
    tomorrow = (now + timedelta(days=1)).date()
    return datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=now.tzinfo)


class TaskScheduler(Protocol):
    """Platform task scheduler: one pending request per identifier."""

    def register(self, identifier: str, handler: Callable[[], None]) -> None: ...

    def submit(self, identifier: str, earliest_begin: datetime) -> None:
        """Arm *identifier*; raises ``SchedulingError`` if the request is rejected."""
        ...

    def cancel(self, identifier: str) -> None: ...


class TimerTaskScheduler:
    """In-process TaskScheduler backed by daemon ``threading.Timer`` objects."""

    def __init__(self, clock: Callable[[], datetime] = _local_now) -> None:
        self._clock = clock
        self._handlers: dict[str, Callable[[], None]] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def register(self, identifier: str, handler: Callable[[], None]) -> None:
        with self._lock:
            self._handlers[identifier] = handler

    def submit(self, identifier: str, earliest_begin: datetime) -> None:
        with self._lock:
            handler = self._handlers.get(identifier)
            if handler is None:
                raise SchedulingError(f"No handler registered for task '{identifier}'")
            previous = self._timers.pop(identifier, None)
            if previous is not None:
                previous.cancel()
            delay = max(0.0, (earliest_begin - self._clock()).total_seconds())
            timer = threading.Timer(delay, self._fire, args=(identifier,))
            timer.daemon = True
            self._timers[identifier] = timer
            timer.start()

    def cancel(self, identifier: str) -> None:
        with self._lock:
            timer = self._timers.pop(identifier, None)
        if timer is not None:
            timer.cancel()

    def is_pending(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._timers

    def _fire(self, identifier: str) -> None:
        with self._lock:
            self._timers.pop(identifier, None)
            handler = self._handlers.get(identifier)
        if handler is not None:
            handler()


class BackupScheduler:
    """
    Runs a silent remote backup once a day at local midnight.

    Disabled <-> Enabled. Failures never escape: an unavailable remote or a
    failed backup sets ``pending_retry`` so ``retry_if_needed()`` tries again
    on the next process start.
    """

    def __init__(
        self,
        backup_service: SilentBackupProtocol,
        state_store: SchedulerStateStore,
        task_scheduler: TaskScheduler,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self._backup = backup_service
        self._state_store = state_store
        self._tasks = task_scheduler
        self._clock = clock
        self._state: SchedulerState = state_store.load()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state.automatic_backup_enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._state.automatic_backup_enabled = value
        self._save()
        if value:
            self.schedule_next_backup()
        else:
            self.cancel_all_backup_tasks()

    @property
    def pending_retry(self) -> bool:
        return self._state.pending_retry

    def _save(self) -> None:
        self._state_store.save(self._state)

    def _set_pending_retry(self, value: bool) -> None:
        self._state.pending_retry = value
        self._save()

    # ── Registration / scheduling ──

    def register(self) -> None:
        """Register the periodic handler. Call once at process start."""
        self._tasks.register(DAILY_BACKUP_TASK_ID, self.handle_scheduled_backup)
        logger.info("Background backup handler registered")

    def schedule_next_backup(self) -> datetime | None:
        if not self.enabled:
            logger.info("Automatic backup is disabled, not scheduling")
            return None
        at = next_midnight(self._clock())
        try:
            self._tasks.submit(DAILY_BACKUP_TASK_ID, at)
        except Exception as e:
            logger.error(f"Failed to schedule automatic backup: {e}")
            self._set_pending_retry(True)
            return None
        logger.info(f"Scheduled next backup for: {at.isoformat()}")
        return at

    def cancel_all_backup_tasks(self) -> None:
        self._tasks.cancel(DAILY_BACKUP_TASK_ID)
        logger.info("Cancelled all scheduled backup tasks")

    # ── Triggers ──

    def handle_scheduled_backup(self) -> bool:
        """Periodic handler: back up, then re-arm the next trigger whatever happened."""
        logger.info("Scheduled backup task started")
        try:
            return self.perform_silent_backup()
        finally:
            self.schedule_next_backup()

    def trigger_immediate_backup(self) -> bool:
        if not self.enabled:
            logger.info("Automatic backup is disabled, skipping immediate backup")
            return False
        return self.perform_silent_backup()

    def retry_if_needed(self) -> bool:
        if not (self.enabled and self.pending_retry):
            return False
        logger.info("Retrying failed automatic backup")
        return self.perform_silent_backup()

    def perform_silent_backup(self) -> bool:
        """Back up without raising. Returns True on success."""
        self._state.last_backup_attempt_date = self._clock()
        self._save()

        try:
            if not self._backup.is_remote_available():
                logger.warning("Remote backup unavailable, skipping automatic backup")
                self._set_pending_retry(True)
                return False
            record = self._backup.create_remote_backup()
        except Exception as e:
            logger.error(f"Automatic backup failed: {e}")
            self._set_pending_retry(True)
            return False

        self._state.last_automatic_backup_date = record.created_at
        self._state.pending_retry = False
        self._save()
        logger.info(f"Automatic backup completed successfully: {record.file_name}")
        return True
