"""Shared utility functions."""

from __future__ import annotations

from datetime import datetime, timezone

FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def format_size(size_bytes: int) -> str:
    """Format byte count to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def file_timestamp(moment: datetime | None = None) -> str:
    """Timestamp fragment used in backup file names: yyyy-MM-dd_HH-mm-ss."""
    return (moment or utcnow()).strftime(FILE_TIMESTAMP_FORMAT)
