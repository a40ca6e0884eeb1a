"""Domain models for sales manager availability."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


SLOT_DURATION = timedelta(hours=1)


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Render a UTC instant as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    utc_value = as_utc(value)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class SalesManager:
    id: int
    name: str
    languages: frozenset[str]
    products: frozenset[str]
    customer_ratings: frozenset[str]


@dataclass(frozen=True)
class Slot:
    id: int
    sales_manager_id: int
    start_date: datetime
    end_date: datetime
    booked: bool


@dataclass(frozen=True)
class AvailabilityRequest:
    date: str
    products: tuple[str, ...]
    language: str
    rating: str


@dataclass(frozen=True)
class AvailabilityEntry:
    start_date: str
    available_count: int

    def to_dict(self) -> dict[str, str | int]:
        return {
            "start_date": self.start_date,
            "available_count": self.available_count,
        }
