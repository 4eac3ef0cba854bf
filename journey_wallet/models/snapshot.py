"""Snapshot models — the portable unit of backup."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from journey_wallet.models.entities import AppLanguage, Currency, EntityType


@dataclass(frozen=True)
class SnapshotMetadata:
    """Metadata block written at the top of every snapshot document."""

    created_at: datetime
    app_version: str
    device_name: str
    schema_version: int


@dataclass(frozen=True)
class UserPreferences:
    preferred_currency: str = Currency.USD.value
    preferred_language: str = AppLanguage.EN.value


@dataclass(frozen=True)
class Snapshot:
    """Full copy of the data store plus metadata. Never mutated once built."""

    metadata: SnapshotMetadata
    user_settings: UserPreferences = field(default_factory=UserPreferences)
    collections: Mapping[EntityType, tuple[Any, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {et: tuple(self.collections.get(et, ())) for et in EntityType}
        object.__setattr__(self, "collections", MappingProxyType(frozen))

    def records(self, entity_type: EntityType) -> tuple[Any, ...]:
        return self.collections[entity_type]

    @property
    def total_records(self) -> int:
        return sum(len(records) for records in self.collections.values())

    def same_content(self, other: Snapshot) -> bool:
        """Compare payloads, ignoring metadata."""
        return (
            self.user_settings == other.user_settings
            and dict(self.collections) == dict(other.collections)
        )
