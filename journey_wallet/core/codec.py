"""Snapshot codec — whole-store JSON documents with a metadata header."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from journey_wallet.data.store import DataStore
from journey_wallet.errors import MalformedSnapshot
from journey_wallet.models.entities import LOAD_ORDER, record_from_dict, record_to_dict
from journey_wallet.models.snapshot import Snapshot, SnapshotMetadata, UserPreferences
from journey_wallet.utils import utcnow

METADATA_KEY = "metadata"
USER_SETTINGS_KEY = "userSettings"


class SnapshotCodec:
    """
    Encodes the full data store as one UTF-8 JSON document and back.

    Document layout::

        {
          "metadata": {"createdAt", "appVersion", "deviceName", "databaseSchemaVersion"},
          "userSettings": {"preferredCurrency", "preferredLanguage"},
          "journeys": [...], "transports": [...], ... one array per collection
        }

    Output is deterministic for a given snapshot: keys sorted, 2-space indent.
    """

    # ── Encoding ──

    def build(
        self,
        store: DataStore,
        app_version: str,
        device_name: str,
        now: datetime | None = None,
    ) -> Snapshot:
        """Read every collection of *store* into a new snapshot."""
        collections = {et: tuple(store.fetch_all(et) or ()) for et in LOAD_ORDER}
        metadata = SnapshotMetadata(
            created_at=now or utcnow(),
            app_version=app_version,
            device_name=device_name,
            schema_version=store.current_schema_version(),
        )
        return Snapshot(
            metadata=metadata,
            user_settings=store.fetch_preferences(),
            collections=collections,
        )

    def dumps(self, snapshot: Snapshot) -> bytes:
        meta = snapshot.metadata
        document: dict[str, Any] = {
            METADATA_KEY: {
                "createdAt": meta.created_at.isoformat(),
                "appVersion": meta.app_version,
                "deviceName": meta.device_name,
                "databaseSchemaVersion": meta.schema_version,
            },
            USER_SETTINGS_KEY: {
                "preferredCurrency": snapshot.user_settings.preferred_currency,
                "preferredLanguage": snapshot.user_settings.preferred_language,
            },
        }
        for entity_type in LOAD_ORDER:
            document[entity_type.value] = [record_to_dict(r) for r in snapshot.records(entity_type)]
        return json.dumps(document, ensure_ascii=False, indent=2, sort_keys=True).encode("utf-8")

    def encode(
        self,
        store: DataStore,
        app_version: str,
        device_name: str,
        now: datetime | None = None,
    ) -> bytes:
        return self.dumps(self.build(store, app_version, device_name, now))

    # ── Decoding ──

    def _load_document(self, data: bytes) -> dict[str, Any]:
        try:
            document = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedSnapshot(f"Snapshot is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise MalformedSnapshot("Snapshot document must be a JSON object")
        return document

    def _parse_metadata(self, document: dict[str, Any]) -> SnapshotMetadata:
        raw = document.get(METADATA_KEY)
        if not isinstance(raw, dict):
            raise MalformedSnapshot("Snapshot is missing its metadata block")
        try:
            created_at = datetime.fromisoformat(raw["createdAt"])
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)
            schema_version = raw["databaseSchemaVersion"]
            if isinstance(schema_version, bool) or not isinstance(schema_version, int):
                raise ValueError("databaseSchemaVersion must be an integer")
            return SnapshotMetadata(
                created_at=created_at,
                app_version=str(raw.get("appVersion", "")),
                device_name=str(raw.get("deviceName", "")),
                schema_version=schema_version,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedSnapshot(f"Invalid snapshot metadata: {e}") from e

    def read_metadata(self, data: bytes) -> SnapshotMetadata:
        """Metadata only; no entity records are built."""
        return self._parse_metadata(self._load_document(data))

    def decode(self, data: bytes) -> Snapshot:
        """Parse a full snapshot. Either everything decodes or ``MalformedSnapshot`` is raised."""
        document = self._load_document(data)
        metadata = self._parse_metadata(document)

        settings = document.get(USER_SETTINGS_KEY)
        if settings is None:
            settings = {}
        if not isinstance(settings, dict):
            raise MalformedSnapshot("userSettings must be an object")
        defaults = UserPreferences()
        user_settings = UserPreferences(
            preferred_currency=str(settings.get("preferredCurrency", defaults.preferred_currency)),
            preferred_language=str(settings.get("preferredLanguage", defaults.preferred_language)),
        )

        collections = {}
        for entity_type in LOAD_ORDER:
            raw_records = document.get(entity_type.value)
            if raw_records is None:
                raw_records = []
            if not isinstance(raw_records, list):
                raise MalformedSnapshot(f"'{entity_type.value}' must be an array")
            try:
                collections[entity_type] = tuple(
                    record_from_dict(entity_type.record_class, raw) for raw in raw_records
                )
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedSnapshot(f"Invalid record in '{entity_type.value}': {e}") from e

        return Snapshot(metadata=metadata, user_settings=user_settings, collections=collections)
