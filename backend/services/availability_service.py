"""Sales manager availability computation with runtime and database strategies."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional, Sequence

from backend.domain.constraints import filter_eligible, is_free
from backend.domain.models import (
    AvailabilityEntry,
    AvailabilityRequest,
    SalesManager,
    Slot,
    format_instant,
)
from backend.repository.data_repository import DataRepository
from backend.utils.config import SUPPORTED_STRATEGIES, Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AvailabilityError(Exception):
    """Base exception for availability workflow failures."""


class AvailabilityValidationError(AvailabilityError):
    """Raised when an availability request is malformed."""


class UnknownStrategyError(AvailabilityError):
    """Raised when the requested computation strategy does not exist."""


def compute_availability(
    eligible_managers: Sequence[SalesManager],
    slots: Iterable[Slot],
) -> list[AvailabilityEntry]:
    """Count, per distinct slot start, the eligible managers free at that hour.

    Every start instant in `slots` is a candidate regardless of owner or
    booked flag. Instants where nobody is free are omitted.
    """
    if not eligible_managers:
        return []

    slots_by_manager: dict[int, list[Slot]] = defaultdict(list)
    candidate_starts: set[datetime] = set()
    for slot in slots:
        slots_by_manager[slot.sales_manager_id].append(slot)
        candidate_starts.add(slot.start_date)

    entries: list[AvailabilityEntry] = []
    for candidate_start in sorted(candidate_starts):
        free_manager_ids = {
            manager.id
            for manager in eligible_managers
            if is_free(slots_by_manager.get(manager.id, ()), candidate_start)
        }
        if free_manager_ids:
            entries.append(
                AvailabilityEntry(
                    start_date=format_instant(candidate_start),
                    available_count=len(free_manager_ids),
                )
            )
    return entries


def _validate_request(request: AvailabilityRequest) -> None:
    try:
        datetime.strptime(request.date, "%Y-%m-%d")
    except ValueError as exc:
        raise AvailabilityValidationError("date must follow YYYY-MM-DD format") from exc
    if not request.products:
        raise AvailabilityValidationError("products must contain at least one entry")


class ManagerAvailabilityService:
    """Answers how many sales managers are free per slot for a customer request."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def get_availability_in_runtime(
        self,
        request: AvailabilityRequest,
    ) -> list[AvailabilityEntry]:
        """Fetch candidates and slots, then reconcile overlaps in memory."""
        candidates = self._repository.find_by_criteria(
            request.language,
            request.products,
            request.rating,
        )
        eligible_managers = filter_eligible(candidates, request)
        if not eligible_managers:
            logger.debug(
                "No eligible managers for %s (%s candidates before product filter)",
                request,
                len(candidates),
            )
            return []

        slots = self._repository.find_all_slots(
            request.date,
            [manager.id for manager in eligible_managers],
        )
        entries = compute_availability(eligible_managers, slots)
        logger.info(
            "Runtime availability for %s: %s eligible managers, %s slots, %s entries",
            request.date,
            len(eligible_managers),
            len(slots),
            len(entries),
        )
        return entries

    def get_availability_from_db(
        self,
        request: AvailabilityRequest,
    ) -> list[AvailabilityEntry]:
        """Delegate the whole computation to a single storage query."""
        entries = self._repository.find_availability_from_db(
            request.date,
            request.language,
            request.products,
            request.rating,
        )
        logger.info(
            "Database availability for %s: %s entries",
            request.date,
            len(entries),
        )
        return entries

    def get_availability(
        self,
        date: str,
        products: Sequence[str],
        language: str,
        rating: str,
        strategy: Optional[str] = None,
    ) -> list[AvailabilityEntry]:
        resolved_strategy = (strategy or self._settings.default_strategy).lower()
        if resolved_strategy not in SUPPORTED_STRATEGIES:
            raise UnknownStrategyError(
                f"strategy must be one of {', '.join(SUPPORTED_STRATEGIES)}"
            )

        request = AvailabilityRequest(
            date=date,
            products=tuple(products),
            language=language,
            rating=rating,
        )
        _validate_request(request)

        if resolved_strategy == "database":
            return self.get_availability_from_db(request)
        return self.get_availability_in_runtime(request)
