"""Shared fixtures: a SQLite store on tmp_path and a fully populated sample data set."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from journey_wallet.data.sqlite_store import SqliteDataStore
from journey_wallet.models.entities import (
    CarRental,
    Currency,
    Document,
    DocumentType,
    EntityType,
    Expense,
    ExpenseCategory,
    Hotel,
    Journey,
    Note,
    PlaceCategory,
    PlaceToVisit,
    Reminder,
    ReminderEntityType,
    Transport,
    TransportType,
)
from journey_wallet.models.snapshot import UserPreferences

CREATED_AT = datetime(2026, 1, 18, 9, 30, tzinfo=timezone.utc)


def _make_journey(journey_id: str = "J1", name: str = "Lisbon") -> Journey:
    return Journey(
        id=journey_id,
        name=name,
        destination="Portugal",
        start_date=datetime(2026, 3, 1, tzinfo=timezone.utc),
        end_date=datetime(2026, 3, 8, tzinfo=timezone.utc),
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )


def _sample_records() -> dict[EntityType, list[Any]]:
    """One record per collection with every optional field set, plus a bare one."""
    return {
        EntityType.JOURNEYS: [
            _make_journey("J1"),
            Journey(
                id="J2",
                name="Almaty",
                destination="Kazakhstan",
                start_date=datetime(2026, 5, 1, tzinfo=timezone.utc),
                end_date=datetime(2026, 5, 4, tzinfo=timezone.utc),
                created_at=CREATED_AT,
                updated_at=CREATED_AT,
                notes="Mountains",
            ),
        ],
        EntityType.TRANSPORTS: [
            Transport(
                id="T1",
                journey_id="J1",
                type=TransportType.FLIGHT,
                departure_location="BER",
                arrival_location="LIS",
                departure_date=datetime(2026, 3, 1, 7, tzinfo=timezone.utc),
                arrival_date=datetime(2026, 3, 1, 10, tzinfo=timezone.utc),
                created_at=CREATED_AT,
                updated_at=CREATED_AT,
                carrier="TAP",
                transport_number="TP 555",
                booking_reference="ABC123",
                seat_number="12A",
                platform=None,
                cost=189.5,
                currency=Currency.EUR,
                notes="Window seat",
                for_whom="Anna",
            ),
            Transport(
                id="T2",
                journey_id="J2",
                type=TransportType.TRAIN,
                departure_location="Astana",
                arrival_location="Almaty",
                departure_date=datetime(2026, 5, 1, 20, tzinfo=timezone.utc),
                arrival_date=datetime(2026, 5, 2, 9, tzinfo=timezone.utc),
                created_at=CREATED_AT,
                updated_at=CREATED_AT,
            ),
        ],
        EntityType.HOTELS: [
            Hotel(
                id="H1",
                journey_id="J1",
                name="Casa Alfama",
                address="Rua 1",
                check_in_date=datetime(2026, 3, 1, 15, tzinfo=timezone.utc),
                check_out_date=datetime(2026, 3, 8, 11, tzinfo=timezone.utc),
                created_at=CREATED_AT,
                updated_at=CREATED_AT,
                booking_reference="HX9",
                room_type="Double",
                cost=700.0,
                currency=Currency.EUR,
                contact_phone="+351 000",
            ),
        ],
        EntityType.CAR_RENTALS: [
            CarRental(
                id="C1",
                journey_id="J1",
                company="Sixt",
                pickup_location="LIS",
                dropoff_location="LIS",
                pickup_date=datetime(2026, 3, 2, tzinfo=timezone.utc),
                dropoff_date=datetime(2026, 3, 5, tzinfo=timezone.utc),
                created_at=CREATED_AT,
                updated_at=CREATED_AT,
            ),
        ],
        EntityType.DOCUMENTS: [
            Document(
                id="D1",
                journey_id="J1",
                name="Boarding pass",
                file_type=DocumentType.PDF,
                file_name="bp.pdf",
                file_size=20480,
                created_at=CREATED_AT,
                file_path="documents/J1/bp.pdf",
            ),
        ],
        EntityType.NOTES: [
            Note(id="N1", journey_id="J2", title="Packing", content="Boots", created_at=CREATED_AT, updated_at=CREATED_AT),
        ],
        EntityType.PLACES_TO_VISIT: [
            PlaceToVisit(
                id="P1",
                journey_id="J1",
                name="Belém Tower",
                category=PlaceCategory.ATTRACTION,
                is_visited=False,
                created_at=CREATED_AT,
                planned_date=datetime(2026, 3, 3, tzinfo=timezone.utc),
                url="https://example.org/belem",
            ),
        ],
        EntityType.REMINDERS: [
            Reminder(
                id="R1",
                journey_id="J1",
                title="Check in online",
                reminder_date=datetime(2026, 2, 28, 7, tzinfo=timezone.utc),
                is_completed=False,
                created_at=CREATED_AT,
                related_entity_type=ReminderEntityType.TRANSPORT,
                related_entity_id="T1",
                notification_id="notif-1",
            ),
        ],
        EntityType.EXPENSES: [
            Expense(
                id="E1",
                journey_id="J1",
                title="Pastéis",
                amount=12.4,
                currency=Currency.EUR,
                category=ExpenseCategory.FOOD,
                date=datetime(2026, 3, 2, tzinfo=timezone.utc),
                created_at=CREATED_AT,
            ),
        ],
    }


def _fill(store: SqliteDataStore, records: dict[EntityType, list[Any]]) -> None:
    for entity_type, items in records.items():
        for record in items:
            assert store.insert(entity_type, record)


def _dump_store(store: SqliteDataStore) -> dict[Any, Any]:
    """Full store content, for before/after comparisons."""
    content: dict[Any, Any] = {et: store.fetch_all(et) for et in EntityType}
    content["preferences"] = store.fetch_preferences()
    return content


@pytest.fixture
def store(tmp_path: Path) -> SqliteDataStore:
    s = SqliteDataStore(tmp_path / "db" / "journey_wallet.sqlite3")
    yield s
    s.close()


@pytest.fixture
def populated_store(store: SqliteDataStore) -> SqliteDataStore:
    _fill(store, _sample_records())
    store.save_preferences(UserPreferences(preferred_currency=Currency.EUR.value, preferred_language="de"))
    return store


@pytest.fixture
def make_journey() -> Callable[..., Journey]:
    return _make_journey


@pytest.fixture
def sample_records() -> dict[EntityType, list[Any]]:
    return _sample_records()


@pytest.fixture
def fill() -> Callable[[SqliteDataStore, dict[EntityType, list[Any]]], None]:
    return _fill


@pytest.fixture
def dump_store() -> Callable[[SqliteDataStore], dict[Any, Any]]:
    return _dump_store
