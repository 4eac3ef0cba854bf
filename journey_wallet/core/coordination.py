"""Coordinated file access for a directory shared between processes and devices."""

from __future__ import annotations

import os
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import filelock

LOCK_FILE_NAME = ".coordination.lock"


class FileCoordinator:
    """
    Serialized access to the files in one directory.

    Every read, write and delete holds the directory's lock file. The lock is
    reentrant within a thread, so ``read()`` can be called inside
    ``reading()``. Writes land in a hidden temp file that is fsynced and then
    renamed over the target, so a reader sees either the old file or the
    complete new one.
    """

    def __init__(self, directory: Path) -> None:
        self._dir = directory
        self._lock = filelock.FileLock(str(directory / LOCK_FILE_NAME))

    @property
    def directory(self) -> Path:
        return self._dir

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self._dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            yield

    @contextmanager
    def reading(self) -> Iterator[None]:
        """Hold the lock, e.g. while listing and reading several files."""
        with self._locked():
            yield

    def _replace(self, target: Path, data: bytes) -> None:
        tmp = self._dir / f".{target.name}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            with open(tmp, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        finally:
            tmp.unlink(missing_ok=True)

    def write(self, name: str, data: bytes) -> Path:
        """Write *name*, replacing any existing file of that name."""
        target = self._dir / name
        with self._locked():
            self._replace(target, data)
        return target

    def write_new(self, name: str, data: bytes) -> Path:
        """
        Write *data* under *name*, or ``<stem>_<n><suffix>`` if *name* is taken.

        The free name is picked while the lock is held, so two writers never
        end up on the same file.
        """
        base = Path(name)
        with self._locked():
            target = self._dir / name
            n = 1
            while target.exists():
                target = self._dir / f"{base.stem}_{n}{base.suffix}"
                n += 1
            self._replace(target, data)
        return target

    def read(self, name: str) -> bytes:
        with self._locked():
            return (self._dir / name).read_bytes()

    def delete(self, name: str) -> bool:
        """Remove *name*. Returns False if it was already gone."""
        target = self._dir / name
        with self._locked():
            if not target.exists():
                return False
            target.unlink(missing_ok=True)
            return True
