from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.api.deps import get_booking_service, unwrap
from app.schemas.booking import (
    Booking as BookingSchema,
    BookingCancelRequest,
    BookingCancelResponse,
    BookingCreateResponse,
    BookingList,
    BookingRequest,
    DepositPaymentEvent,
)
from app.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["Bookings"])
user_router = APIRouter(prefix="/users", tags=["Bookings"])
payment_router = APIRouter(prefix="/payments", tags=["Payments"])


# ---------------------------------------------------------------------------
# POST /bookings: reserve a table
# ---------------------------------------------------------------------------


@router.post("/", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingRequest,
    service: BookingService = Depends(get_booking_service),
):
    """
    Reserve a table. Availability is re-checked at commit time, so a slot
    shown as free earlier can still come back 409.

    When the branch requires a deposit, `payment_client_secret` is returned
    for the client-side checkout; the booking stays Pending until paid.
    """
    result = service.create_booking(data)
    booking = unwrap(result)
    return BookingCreateResponse(
        booking=BookingSchema.model_validate(booking),
        payment_client_secret=result.payment_client_secret,
    )


# ---------------------------------------------------------------------------
# GET /bookings/reference/{reference}
# ---------------------------------------------------------------------------


@router.get("/reference/{reference}", response_model=BookingSchema)
def get_booking_by_reference(
    reference: str,
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking_by_reference(reference)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


# ---------------------------------------------------------------------------
# GET /bookings/{id}
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking_by_id(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


# ---------------------------------------------------------------------------
# PUT /bookings/{id}: modify within the cancellation window
# ---------------------------------------------------------------------------


@router.put("/{booking_id}", response_model=BookingSchema)
def update_booking(
    booking_id: int,
    data: BookingRequest,
    service: BookingService = Depends(get_booking_service),
):
    return unwrap(service.update_booking(booking_id, data))


# ---------------------------------------------------------------------------
# PATCH /bookings/{id}/cancel
# ---------------------------------------------------------------------------


@router.patch("/{booking_id}/cancel", response_model=BookingCancelResponse)
def cancel_booking(
    booking_id: int,
    data: Optional[BookingCancelRequest] = Body(None),
    service: BookingService = Depends(get_booking_service),
):
    """
    Cancel a booking. Allowed only until the branch's cancellation policy
    deadline. A paid deposit is refunded on a best-effort basis.
    """
    booking = unwrap(service.cancel_booking(booking_id, data.reason if data else None))
    return BookingCancelResponse(
        id=booking.id,
        booking_reference=booking.booking_reference,
        status=booking.status,
        cancelled_at=booking.cancelled_at,
    )


# ---------------------------------------------------------------------------
# GET /users/{user_id}/bookings
# ---------------------------------------------------------------------------


@user_router.get("/{user_id}/bookings", response_model=BookingList)
def list_user_bookings(
    user_id: int,
    service: BookingService = Depends(get_booking_service),
):
    """A user's bookings, latest date first."""
    bookings = service.get_bookings_for_user(user_id)
    return BookingList(
        data=[BookingSchema.model_validate(b) for b in bookings],
        total=len(bookings),
    )


# ---------------------------------------------------------------------------
# POST /payments/deposit-succeeded
# ---------------------------------------------------------------------------


@payment_router.post("/deposit-succeeded", response_model=BookingSchema)
def deposit_succeeded(
    data: DepositPaymentEvent,
    service: BookingService = Depends(get_booking_service),
):
    """Called once the deposit PaymentIntent succeeds; confirms the booking."""
    return unwrap(service.record_deposit_payment(data.payment_intent_id))
