"""Domain-level rules for manager eligibility and slot overlap."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Sequence

from backend.domain.models import SLOT_DURATION, AvailabilityRequest, SalesManager, Slot


def is_eligible(manager: SalesManager, request: AvailabilityRequest) -> bool:
    """Language and rating membership plus containment of every product."""
    if request.language not in manager.languages:
        return False
    if request.rating not in manager.customer_ratings:
        return False
    return set(request.products).issubset(manager.products)


def filter_eligible(
    candidates: Iterable[SalesManager],
    request: AvailabilityRequest,
) -> list[SalesManager]:
    """Second-pass filter over directory results that may match any product."""
    return [manager for manager in candidates if is_eligible(manager, request)]


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return start_a < end_b and start_b < end_a


def is_free(manager_slots: Sequence[Slot], candidate_start: datetime) -> bool:
    """Return True when the manager can take the hour starting at `candidate_start`.

    Requires an unbooked slot covering exactly that hour and no booked slot
    intersecting it. A booked slot always wins over a free one it touches.
    """
    candidate_end = candidate_start + SLOT_DURATION

    has_exact_free_slot = any(
        not slot.booked
        and slot.start_date == candidate_start
        and slot.end_date == candidate_end
        for slot in manager_slots
    )
    if not has_exact_free_slot:
        return False

    return not any(
        slot.booked
        and intervals_overlap(slot.start_date, slot.end_date, candidate_start, candidate_end)
        for slot in manager_slots
    )
