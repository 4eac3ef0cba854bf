"""Application configuration — JSON-based, with file locking and batch update support."""

from __future__ import annotations

import json
import platform
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

APP_NAME = "journey_wallet"
APP_VERSION = "1.4.0"

# Default data directory
_DEFAULT_DATA_DIR = Path.home() / ".journey_wallet"


class Config:
    """JSON-based application configuration with file locking."""

    _DEFAULTS: dict[str, Any] = {
        "device_name": "",
        "dev_mode": False,
        "database_path": "",
        "export_dir": "",
        # Remote backups
        "sync_folder": "",
        "network_probe_url": "",
        "network_timeout": 10.0,
        # Retention
        "max_remote_backups": 5,
        "max_backup_age_days": 30,
        "max_safety_backups": 3,
    }

    def __init__(self, data_dir: Path | None = None) -> None:
        self._data: dict[str, Any] = {}
        self._dir = data_dir or _DEFAULT_DATA_DIR
        self._path = self._dir / "config.json"
        self._lock = threading.Lock()
        self._defer_save = False
        self._load()

    def _load(self) -> None:
        """Load config from disk, merging with defaults."""
        self._data = json.loads(json.dumps(self._DEFAULTS))  # deep copy defaults
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    user_data = json.load(f)
                self._deep_merge(self._data, user_data)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config, using defaults: {e}")

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save(self) -> None:
        """Persist config to disk with file locking."""
        if self._defer_save:
            return
        with self._lock:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(self._data, f, ensure_ascii=False, indent=2)
                tmp_path.replace(self._path)
            except OSError as e:
                logger.error(f"Failed to save config: {e}")
                if tmp_path.exists():
                    tmp_path.unlink(missing_ok=True)

    @contextmanager
    def batch_update(self) -> Iterator[None]:
        """Context manager for batching multiple config changes into a single write."""
        self._defer_save = True
        try:
            yield
        finally:
            self._defer_save = False
            self._save()

    # ── Generic access ──

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    # ── Identity ──

    @property
    def app_name(self) -> str:
        return APP_NAME

    @property
    def app_version(self) -> str:
        return APP_VERSION

    @property
    def device_name(self) -> str:
        return self._data.get("device_name") or platform.node() or "unknown"

    @device_name.setter
    def device_name(self, value: str) -> None:
        self.set("device_name", value)

    @property
    def dev_mode(self) -> bool:
        return bool(self._data.get("dev_mode", False))

    @dev_mode.setter
    def dev_mode(self, value: bool) -> None:
        self.set("dev_mode", value)

    # ── Paths ──

    @property
    def data_dir(self) -> Path:
        return self._dir

    @property
    def database_path(self) -> Path:
        raw = self._data.get("database_path", "")
        return Path(raw) if raw else self._dir / "journey_wallet.sqlite3"

    @property
    def export_dir(self) -> Path:
        raw = self._data.get("export_dir", "")
        return Path(raw) if raw else Path(tempfile.gettempdir())

    @property
    def safety_backup_dir(self) -> Path:
        return self._dir / "safety_backups"

    @property
    def scheduler_state_path(self) -> Path:
        return self._dir / "scheduler_state.json"

    @property
    def log_dir(self) -> Path:
        return self._dir / "logs"

    @property
    def sync_folder(self) -> Path | None:
        raw = self._data.get("sync_folder", "")
        return Path(raw) if raw else None

    @sync_folder.setter
    def sync_folder(self, value: Path | None) -> None:
        self.set("sync_folder", str(value) if value else "")

    # ── Network ──

    @property
    def network_probe_url(self) -> str:
        return self._data.get("network_probe_url", "")

    @property
    def network_timeout(self) -> float:
        return float(self._data.get("network_timeout", 10.0))

    # ── Retention ──

    @property
    def max_remote_backups(self) -> int:
        return int(self._data.get("max_remote_backups", 5))

    @max_remote_backups.setter
    def max_remote_backups(self, value: int) -> None:
        self.set("max_remote_backups", value)

    @property
    def max_backup_age_days(self) -> int:
        return int(self._data.get("max_backup_age_days", 30))

    @property
    def max_safety_backups(self) -> int:
        return int(self._data.get("max_safety_backups", 3))
