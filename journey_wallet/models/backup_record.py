"""Backup record models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from journey_wallet.utils import format_size

DEV_MARKER = "_dev_"


@dataclass(frozen=True)
class BackupRecord:
    """In-memory representation of a discovered remote backup file."""

    path: Path
    created_at: datetime
    size: int = 0
    device_name: str = ""
    app_version: str = ""
    schema_version: int = 0

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def is_dev_backup(self) -> bool:
        """Dev builds tag their files so they are never restored into production."""
        return DEV_MARKER in self.file_name

    @property
    def formatted_size(self) -> str:
        return format_size(self.size)
