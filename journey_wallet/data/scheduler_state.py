"""Persisted automatic-backup state."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger


@dataclass
class SchedulerState:
    automatic_backup_enabled: bool = False
    last_automatic_backup_date: datetime | None = None
    last_backup_attempt_date: datetime | None = None
    pending_retry: bool = False


def _parse_date(raw: Any) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid date in scheduler state: {raw!r}")
        return None


class SchedulerStateStore:
    """Reads/writes scheduler_state.json next to the config file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> SchedulerState:
        if not self._path.exists():
            return SchedulerState()
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load scheduler state, using defaults: {e}")
            return SchedulerState()
        if not isinstance(data, dict):
            return SchedulerState()
        return SchedulerState(
            automatic_backup_enabled=bool(data.get("automatic_backup_enabled", False)),
            last_automatic_backup_date=_parse_date(data.get("last_automatic_backup_date")),
            last_backup_attempt_date=_parse_date(data.get("last_backup_attempt_date")),
            pending_retry=bool(data.get("pending_retry", False)),
        )

    def save(self, state: SchedulerState) -> None:
        data = {
            "automatic_backup_enabled": state.automatic_backup_enabled,
            "last_automatic_backup_date": (
                state.last_automatic_backup_date.isoformat() if state.last_automatic_backup_date else None
            ),
            "last_backup_attempt_date": (
                state.last_backup_attempt_date.isoformat() if state.last_backup_attempt_date else None
            ),
            "pending_retry": state.pending_retry,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp.replace(self._path)
        except OSError as e:
            logger.error(f"Failed to save scheduler state: {e}")
            tmp.unlink(missing_ok=True)
