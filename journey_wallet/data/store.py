"""Data store facade — the boundary the backup engine reads from and writes to."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from journey_wallet.models.entities import EntityType
from journey_wallet.models.snapshot import UserPreferences


class DataStore(Protocol):
    """
    Whole-store access used by the snapshot codec and the restore protocol.

    Implementations fail closed: when the backing store cannot be reached,
    every method raises ``StoreUnavailable`` instead of returning nothing.
    """

    def fetch_all(self, entity_type: EntityType) -> Sequence[Any]:
        """All records of one collection, in insertion order."""
        ...

    def insert(self, entity_type: EntityType, record: Any) -> bool:
        """Insert one record. ``False`` means this record was rejected."""
        ...

    def wipe_all(self) -> None:
        """Remove every collection and the user preferences in one operation."""
        ...

    def current_schema_version(self) -> int: ...

    def fetch_preferences(self) -> UserPreferences: ...

    def save_preferences(self, preferences: UserPreferences) -> None: ...
