from typing import Optional
from datetime import date, time

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_availability_service, get_booking_service, unwrap
from app.models.booking import BookingStatus
from app.schemas.availability import SlotBookingCount
from app.schemas.booking import Booking as BookingSchema, BookingList
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService

router = APIRouter(prefix="/admin", tags=["Admin - Bookings"])


@router.get("/branches/{branch_id}/bookings", response_model=BookingList)
def list_branch_bookings(
    branch_id: int,
    date: Optional[date] = Query(None, description="Filter by booking date"),
    status: Optional[BookingStatus] = Query(None, description="Filter by status"),
    service: BookingService = Depends(get_booking_service),
):
    bookings = service.get_bookings_for_branch(branch_id, date, status)
    return BookingList(
        data=[BookingSchema.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/branches/{branch_id}/slot-count", response_model=SlotBookingCount)
def slot_booking_count(
    branch_id: int,
    date: date = Query(...),
    time: time = Query(...),
    availability: AvailabilityService = Depends(get_availability_service),
):
    """Live bookings starting exactly at date + time. Reporting only."""
    return SlotBookingCount(
        branch_id=branch_id,
        date=date,
        time=time,
        bookings=availability.count_bookings_for_slot(branch_id, date, time),
    )


@router.patch("/bookings/{booking_id}/confirm", response_model=BookingSchema)
def confirm_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return unwrap(service.confirm_booking(booking_id))


@router.patch("/bookings/{booking_id}/complete", response_model=BookingSchema)
def complete_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return unwrap(service.complete_booking(booking_id))


@router.patch("/bookings/{booking_id}/no-show", response_model=BookingSchema)
def mark_no_show(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return unwrap(service.mark_no_show(booking_id))
