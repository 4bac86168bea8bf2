from datetime import date, time, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_availability_service
from app.core.config import settings
from app.models.table import TableLocationType
from app.schemas.availability import AvailableTable, AvailableTimeSlot, CalendarDay
from app.services.availability_service import AvailabilityService

router = APIRouter(prefix="/branches", tags=["Availability"])


# ---------------------------------------------------------------------------
# GET /branches/{branch_id}/availability/time-slots?date=&party_size=
# ---------------------------------------------------------------------------


@router.get("/{branch_id}/availability/time-slots", response_model=List[AvailableTimeSlot])
def get_available_time_slots(
    branch_id: int,
    date: date = Query(..., description="Date to check availability (YYYY-MM-DD)"),
    party_size: int = Query(..., ge=1),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Time slots of the branch with at least one free table for the party."""
    return availability.list_available_time_slots(branch_id, date, party_size)


# ---------------------------------------------------------------------------
# GET /branches/{branch_id}/availability/tables?date=&time=&party_size=
# ---------------------------------------------------------------------------


@router.get("/{branch_id}/availability/tables", response_model=List[AvailableTable])
def get_available_tables(
    branch_id: int,
    date: date = Query(...),
    time: time = Query(..., description="Start time (HH:MM)"),
    party_size: int = Query(..., ge=1),
    location_type: Optional[TableLocationType] = Query(None),
    availability: AvailabilityService = Depends(get_availability_service),
):
    return availability.list_available_tables(branch_id, date, time, party_size, location_type)


# ---------------------------------------------------------------------------
# GET /branches/{branch_id}/availability/calendar?start_date=&end_date=&party_size=
# ---------------------------------------------------------------------------


@router.get("/{branch_id}/availability/calendar", response_model=List[CalendarDay])
def get_availability_calendar(
    branch_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    party_size: int = Query(..., ge=1),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """
    Available-slot count per day in [start_date, end_date].
    The range is capped at MAX_CALENDAR_DAYS days.
    """
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")
    if end_date - start_date >= timedelta(days=settings.MAX_CALENDAR_DAYS):
        raise HTTPException(
            status_code=400,
            detail=f"Date range may span at most {settings.MAX_CALENDAR_DAYS} days",
        )

    calendar = availability.availability_calendar(branch_id, start_date, end_date, party_size)
    return [CalendarDay(date=day, available_slots=count) for day, count in calendar.items()]
