"""Tests for eligibility and slot overlap rules.

Covers product containment, half-open interval semantics and the
booked-slot-wins behavior of is_free().
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from backend.domain.constraints import filter_eligible, intervals_overlap, is_eligible, is_free
from backend.domain.models import AvailabilityRequest, SalesManager, Slot


def _at(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


def _slot(start: str, booked: bool, manager_id: int = 1, minutes: int = 60) -> Slot:
    start_date = _at(start)
    return Slot(
        id=0,
        sales_manager_id=manager_id,
        start_date=start_date,
        end_date=start_date + timedelta(minutes=minutes),
        booked=booked,
    )


def _manager(**overrides) -> SalesManager:
    defaults = {
        "id": 1,
        "name": "Seller 1",
        "languages": frozenset({"German", "English"}),
        "products": frozenset({"SolarPanels", "Heatpumps"}),
        "customer_ratings": frozenset({"Gold", "Silver"}),
    }
    defaults.update(overrides)
    return SalesManager(**defaults)


def _request(**overrides) -> AvailabilityRequest:
    defaults = {
        "date": "2024-05-03",
        "products": ("SolarPanels", "Heatpumps"),
        "language": "German",
        "rating": "Gold",
    }
    defaults.update(overrides)
    return AvailabilityRequest(**defaults)


# --- eligibility ---

def test_manager_matching_all_predicates_is_eligible() -> None:
    assert is_eligible(_manager(), _request())


def test_missing_language_is_not_eligible() -> None:
    assert not is_eligible(_manager(languages=frozenset({"English"})), _request())


def test_missing_rating_is_not_eligible() -> None:
    assert not is_eligible(_manager(customer_ratings=frozenset({"Bronze"})), _request())


def test_partial_product_match_is_not_eligible() -> None:
    manager = _manager(products=frozenset({"SolarPanels"}))
    assert not is_eligible(manager, _request())


def test_filter_eligible_keeps_only_full_product_matches() -> None:
    full = _manager(id=1)
    partial = _manager(id=2, products=frozenset({"Heatpumps"}))
    assert filter_eligible([full, partial], _request()) == [full]


# --- interval overlap ---

def test_touching_intervals_do_not_overlap() -> None:
    assert not intervals_overlap(
        _at("2024-05-03T10:00:00"),
        _at("2024-05-03T11:00:00"),
        _at("2024-05-03T11:00:00"),
        _at("2024-05-03T12:00:00"),
    )


def test_offset_intervals_overlap() -> None:
    assert intervals_overlap(
        _at("2024-05-03T10:30:00"),
        _at("2024-05-03T11:30:00"),
        _at("2024-05-03T11:00:00"),
        _at("2024-05-03T12:00:00"),
    )


# --- is_free ---

def test_exact_free_slot_is_free() -> None:
    slots = [_slot("2024-05-03T11:00:00", booked=False)]
    assert is_free(slots, _at("2024-05-03T11:00:00"))


def test_no_slot_at_instant_is_not_free() -> None:
    slots = [_slot("2024-05-03T11:00:00", booked=False)]
    assert not is_free(slots, _at("2024-05-03T12:00:00"))


def test_free_slot_with_wrong_length_does_not_match() -> None:
    slots = [_slot("2024-05-03T11:00:00", booked=False, minutes=30)]
    assert not is_free(slots, _at("2024-05-03T11:00:00"))


def test_overlapping_booked_slot_wins() -> None:
    slots = [
        _slot("2024-05-03T11:00:00", booked=False),
        _slot("2024-05-03T10:30:00", booked=True),
    ]
    assert not is_free(slots, _at("2024-05-03T11:00:00"))


def test_booked_slot_ending_at_candidate_start_does_not_block() -> None:
    slots = [
        _slot("2024-05-03T10:00:00", booked=True),
        _slot("2024-05-03T11:00:00", booked=False),
        _slot("2024-05-03T12:00:00", booked=True),
    ]
    assert is_free(slots, _at("2024-05-03T11:00:00"))


def test_booked_slot_at_same_instant_blocks_duplicate_free_record() -> None:
    slots = [
        _slot("2024-05-03T11:00:00", booked=False),
        _slot("2024-05-03T11:00:00", booked=True),
    ]
    assert not is_free(slots, _at("2024-05-03T11:00:00"))
