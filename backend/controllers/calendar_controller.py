"""HTTP controller layer for calendar availability queries."""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from backend.controllers.dependencies import get_availability_service
from backend.services.availability_service import (
    AvailabilityValidationError,
    ManagerAvailabilityService,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])


class CalendarQueryRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    model_config = ConfigDict(extra="forbid")

    date: date
    products: list[Literal["SolarPanels", "Heatpumps"]] = Field(min_length=1)
    language: Literal["German", "English"]
    rating: Literal["Gold", "Silver", "Bronze"]


class AvailabilityEntryResponse(BaseModel):
    start_date: str
    available_count: int = Field(gt=0)


@router.post(
    "/query",
    response_model=list[AvailabilityEntryResponse],
    status_code=status.HTTP_200_OK,
)
async def query_availability(
    payload: CalendarQueryRequest,
    strategy: Literal["runtime", "database"] | None = Query(default=None),
    service: ManagerAvailabilityService = Depends(get_availability_service),
) -> list[AvailabilityEntryResponse]:
    """Return per-slot counts of sales managers free for the customer."""
    try:
        entries = service.get_availability(
            date=payload.date.isoformat(),
            products=payload.products,
            language=payload.language,
            rating=payload.rating,
            strategy=strategy,
        )
        return [AvailabilityEntryResponse(**entry.to_dict()) for entry in entries]
    except AvailabilityValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute availability",
        ) from exc
