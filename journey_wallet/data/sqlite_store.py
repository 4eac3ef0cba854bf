"""SQLite data store — one table per entity collection, JSON payload per row."""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any

from loguru import logger

from journey_wallet.errors import StoreUnavailable
from journey_wallet.models.entities import LOAD_ORDER, EntityType, record_from_dict, record_to_dict
from journey_wallet.models.snapshot import UserPreferences

_CURRENCY_KEY = "currency"
_LANGUAGE_KEY = "language"


def _journey_tables() -> list[str]:
    statements = [
        "CREATE TABLE IF NOT EXISTS journeys ("
        " id TEXT PRIMARY KEY,"
        " journey_id TEXT,"
        " payload TEXT NOT NULL)"
    ]
    for entity_type in LOAD_ORDER:
        if entity_type is EntityType.JOURNEYS:
            continue
        statements.append(
            f"CREATE TABLE IF NOT EXISTS {entity_type.table_name} ("
            " id TEXT PRIMARY KEY,"
            " journey_id TEXT NOT NULL REFERENCES journeys(id) ON DELETE CASCADE,"
            " payload TEXT NOT NULL)"
        )
    return statements


# version -> DDL; applied in order, each recorded in the migrations table
MIGRATIONS: dict[int, list[str]] = {
    1: ["CREATE TABLE IF NOT EXISTS user_settings (key TEXT PRIMARY KEY, value TEXT NOT NULL)"],
    2: _journey_tables(),
}
LATEST_SCHEMA_VERSION = max(MIGRATIONS)


class SqliteDataStore:
    """
    Relational store backing the travel organizer.

    Child rows reference ``journeys.id`` through a foreign key, so an orphan
    record is rejected on insert rather than stored dangling.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.execute("PRAGMA foreign_keys = ON")
            self._conn = conn
            self._migrate_if_needed()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Unable to open database at {path}: {e}")
            self.close()

    @property
    def path(self) -> Path:
        return self._path

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailable(f"Database is not available: {self._path}")
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ── Migrations ──

    def _migrate_if_needed(self) -> None:
        conn = self._connection()
        with conn:
            conn.execute("CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)")
        row = conn.execute("SELECT MAX(version) FROM migrations").fetchone()
        current = row[0] or 0
        if current == LATEST_SCHEMA_VERSION:
            return

        for version in range(current + 1, LATEST_SCHEMA_VERSION + 1):
            with conn:
                for statement in MIGRATIONS[version]:
                    conn.execute(statement)
                conn.execute("INSERT INTO migrations (version) VALUES (?)", (version,))
            logger.info(f"Applied database migration {version}")

    def current_schema_version(self) -> int:
        self._connection()
        return LATEST_SCHEMA_VERSION

    # ── Records ──

    def fetch_all(self, entity_type: EntityType) -> list[Any]:
        with self._lock:
            try:
                rows = self._connection().execute(
                    f"SELECT payload FROM {entity_type.table_name} ORDER BY rowid"
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to read {entity_type}: {e}") from e
        try:
            return [record_from_dict(entity_type.record_class, json.loads(payload)) for (payload,) in rows]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailable(f"Corrupt row in {entity_type.table_name}: {e}") from e

    def insert(self, entity_type: EntityType, record: Any) -> bool:
        if not isinstance(record, entity_type.record_class):
            logger.warning(f"Rejecting {type(record).__name__} for collection {entity_type}")
            return False
        payload = json.dumps(record_to_dict(record), ensure_ascii=False)
        journey_id = getattr(record, "journey_id", None)
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    conn.execute(
                        f"INSERT INTO {entity_type.table_name} (id, journey_id, payload) VALUES (?, ?, ?)",
                        (record.id, journey_id, payload),
                    )
                return True
            except sqlite3.IntegrityError as e:
                logger.warning(f"Rejected {entity_type} record {record.id}: {e}")
                return False
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to insert into {entity_type.table_name}: {e}") from e

    def wipe_all(self) -> None:
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    for entity_type in reversed(LOAD_ORDER):
                        conn.execute(f"DELETE FROM {entity_type.table_name}")
                    conn.execute("DELETE FROM user_settings")
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to wipe database: {e}") from e

    def count(self, entity_type: EntityType) -> int:
        with self._lock:
            try:
                row = self._connection().execute(
                    f"SELECT COUNT(*) FROM {entity_type.table_name}"
                ).fetchone()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to count {entity_type}: {e}") from e
        return int(row[0])

    # ── User settings ──

    def fetch_preferences(self) -> UserPreferences:
        with self._lock:
            try:
                rows = dict(
                    self._connection().execute("SELECT key, value FROM user_settings").fetchall()
                )
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to read user settings: {e}") from e
        defaults = UserPreferences()
        return UserPreferences(
            preferred_currency=rows.get(_CURRENCY_KEY, defaults.preferred_currency),
            preferred_language=rows.get(_LANGUAGE_KEY, defaults.preferred_language),
        )

    def save_preferences(self, preferences: UserPreferences) -> None:
        with self._lock:
            conn = self._connection()
            try:
                with conn:
                    conn.executemany(
                        "INSERT INTO user_settings (key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        [
                            (_CURRENCY_KEY, preferences.preferred_currency),
                            (_LANGUAGE_KEY, preferences.preferred_language),
                        ],
                    )
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Failed to save user settings: {e}") from e
