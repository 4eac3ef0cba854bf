"""Travel organizer entity records and their portable dict form."""

from __future__ import annotations

import types
import typing
from dataclasses import MISSING, dataclass, fields
from datetime import datetime
from enum import Enum, StrEnum
from functools import cache
from typing import Any, TypeVar


class TransportType(StrEnum):
    FLIGHT = "flight"
    TRAIN = "train"
    BUS = "bus"
    FERRY = "ferry"
    TAXI = "taxi"
    OTHER = "other"


class DocumentType(StrEnum):
    PDF = "pdf"
    JPEG = "jpeg"
    PNG = "png"
    HEIC = "heic"
    OTHER = "other"


class PlaceCategory(StrEnum):
    RESTAURANT = "restaurant"
    ATTRACTION = "attraction"
    MUSEUM = "museum"
    SHOPPING = "shopping"
    NATURE = "nature"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class ReminderEntityType(StrEnum):
    TRANSPORT = "transport"
    HOTEL = "hotel"
    CAR_RENTAL = "carRental"
    PLACE = "place"
    CUSTOM = "custom"


class ExpenseCategory(StrEnum):
    TRANSPORT = "transport"
    ACCOMMODATION = "accommodation"
    FOOD = "food"
    ACTIVITIES = "activities"
    SHOPPING = "shopping"
    OTHER = "other"


class Currency(StrEnum):
    """Currency, keyed by its display symbol (the value stored on disk)."""

    USD = "$"
    KZT = "₸"
    EUR = "€"
    BYN = "Br"
    UAH = "₴"
    RUB = "₽"
    TRY = "₺"
    AED = "Dh"
    SAR = "SR"
    GBP = "£"
    JPY = "¥"


class AppLanguage(StrEnum):
    EN = "en"
    DE = "de"
    RU = "ru"
    KK = "kk"
    TR = "tr"
    UK = "uk"


@dataclass(frozen=True)
class Journey:
    id: str
    name: str
    destination: str
    start_date: datetime
    end_date: datetime
    created_at: datetime
    updated_at: datetime
    notes: str | None = None


@dataclass(frozen=True)
class Transport:
    id: str
    journey_id: str
    type: TransportType
    departure_location: str
    arrival_location: str
    departure_date: datetime
    arrival_date: datetime
    created_at: datetime
    updated_at: datetime
    carrier: str | None = None
    transport_number: str | None = None
    booking_reference: str | None = None
    seat_number: str | None = None
    platform: str | None = None
    cost: float | None = None
    currency: Currency | None = None
    notes: str | None = None
    for_whom: str | None = None


@dataclass(frozen=True)
class Hotel:
    id: str
    journey_id: str
    name: str
    address: str
    check_in_date: datetime
    check_out_date: datetime
    created_at: datetime
    updated_at: datetime
    booking_reference: str | None = None
    room_type: str | None = None
    cost: float | None = None
    currency: Currency | None = None
    contact_phone: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class CarRental:
    id: str
    journey_id: str
    company: str
    pickup_location: str
    dropoff_location: str
    pickup_date: datetime
    dropoff_date: datetime
    created_at: datetime
    updated_at: datetime
    booking_reference: str | None = None
    car_type: str | None = None
    cost: float | None = None
    currency: Currency | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Document:
    """Document metadata only — the file content itself is not part of a backup."""

    id: str
    journey_id: str
    name: str
    file_type: DocumentType
    file_name: str
    file_size: int
    created_at: datetime
    file_path: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Note:
    id: str
    journey_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class PlaceToVisit:
    id: str
    journey_id: str
    name: str
    category: PlaceCategory
    is_visited: bool
    created_at: datetime
    address: str | None = None
    planned_date: datetime | None = None
    notes: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class Reminder:
    id: str
    journey_id: str
    title: str
    reminder_date: datetime
    is_completed: bool
    created_at: datetime
    related_entity_type: ReminderEntityType | None = None
    related_entity_id: str | None = None
    notification_id: str | None = None


@dataclass(frozen=True)
class Expense:
    id: str
    journey_id: str
    title: str
    amount: float
    currency: Currency
    category: ExpenseCategory
    date: datetime
    created_at: datetime
    notes: str | None = None


R = TypeVar("R")


class EntityType(StrEnum):
    """Entity collections, valued by their key in the snapshot document."""

    JOURNEYS = "journeys"
    TRANSPORTS = "transports"
    HOTELS = "hotels"
    CAR_RENTALS = "carRentals"
    DOCUMENTS = "documents"
    NOTES = "notes"
    PLACES_TO_VISIT = "placesToVisit"
    REMINDERS = "reminders"
    EXPENSES = "expenses"

    @property
    def record_class(self) -> type:
        return _RECORD_CLASSES[self]

    @property
    def table_name(self) -> str:
        return _TABLE_NAMES[self]


_RECORD_CLASSES: dict[EntityType, type] = {
    EntityType.JOURNEYS: Journey,
    EntityType.TRANSPORTS: Transport,
    EntityType.HOTELS: Hotel,
    EntityType.CAR_RENTALS: CarRental,
    EntityType.DOCUMENTS: Document,
    EntityType.NOTES: Note,
    EntityType.PLACES_TO_VISIT: PlaceToVisit,
    EntityType.REMINDERS: Reminder,
    EntityType.EXPENSES: Expense,
}

_TABLE_NAMES: dict[EntityType, str] = {
    EntityType.JOURNEYS: "journeys",
    EntityType.TRANSPORTS: "transports",
    EntityType.HOTELS: "hotels",
    EntityType.CAR_RENTALS: "car_rentals",
    EntityType.DOCUMENTS: "documents",
    EntityType.NOTES: "notes",
    EntityType.PLACES_TO_VISIT: "places_to_visit",
    EntityType.REMINDERS: "reminders",
    EntityType.EXPENSES: "expenses",
}

# Parents first: every child collection references journeys by id.
LOAD_ORDER: tuple[EntityType, ...] = tuple(EntityType)


# ── Portable dict form ──


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@cache
def _field_specs(cls: type) -> list[tuple[str, str, Any, bool]]:
    """(attribute, json key, resolved type, required) for each dataclass field."""
    hints = typing.get_type_hints(cls)
    specs = []
    for f in fields(cls):
        required = f.default is MISSING and f.default_factory is MISSING
        specs.append((f.name, _camel(f.name), hints[f.name], required))
    return specs


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    if isinstance(hint, types.UnionType) or typing.get_origin(hint) is typing.Union:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return hint, False


def _dump_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _load_value(key: str, hint: Any, raw: Any) -> Any:
    base, optional = _unwrap_optional(hint)
    if raw is None:
        if optional:
            return None
        raise ValueError(f"'{key}' must not be null")
    if base is datetime:
        if not isinstance(raw, str):
            raise ValueError(f"'{key}' must be an ISO-8601 string")
        return datetime.fromisoformat(raw)
    if isinstance(base, type) and issubclass(base, Enum):
        return base(raw)
    if base is bool:
        if not isinstance(raw, bool):
            raise ValueError(f"'{key}' must be a boolean")
        return raw
    if base is int:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"'{key}' must be an integer")
        return raw
    if base is float:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValueError(f"'{key}' must be a number")
        return float(raw)
    if base is str:
        if not isinstance(raw, str):
            raise ValueError(f"'{key}' must be a string")
        return raw
    return raw


def record_to_dict(record: Any) -> dict[str, Any]:
    """Convert an entity record to its camelCase JSON-ready dict."""
    return {
        key: _dump_value(getattr(record, attr))
        for attr, key, _hint, _required in _field_specs(type(record))
    }


def record_from_dict(cls: type[R], data: dict[str, Any]) -> R:
    """Rebuild an entity record from its dict form.

    Raises ``ValueError`` / ``KeyError`` on missing required keys or values of
    the wrong shape. Unknown keys are ignored.
    """
    if not isinstance(data, dict):
        raise ValueError(f"{cls.__name__} record must be an object")
    kwargs: dict[str, Any] = {}
    for attr, key, hint, required in _field_specs(cls):
        if key not in data:
            if required:
                raise KeyError(f"{cls.__name__} record is missing '{key}'")
            continue
        kwargs[attr] = _load_value(key, hint, data[key])
    return cls(**kwargs)
