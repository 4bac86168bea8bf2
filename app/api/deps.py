from fastapi import BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.common import ErrorResponse
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingErrorKind, BookingResult, BookingService
from app.services.factory import build_booking_service, run_booking_followup

ERROR_STATUS = {
    BookingErrorKind.NOT_FOUND: 404,
    BookingErrorKind.INVALID_INPUT: 400,
    BookingErrorKind.UNAVAILABLE: 409,
    BookingErrorKind.POLICY_VIOLATION: 409,
    BookingErrorKind.PAYMENT_FAILED: 402,
    BookingErrorKind.CONCURRENCY_CONFLICT: 409,
    BookingErrorKind.UNEXPECTED: 500,
}


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_booking_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> BookingService:
    """Follow-ups run after the response is sent, each in its own session."""
    def dispatch(followup: str, booking_id: int) -> None:
        background_tasks.add_task(run_booking_followup, followup, booking_id)

    return build_booking_service(db, dispatch=dispatch)


def unwrap(result: BookingResult):
    """Return the booking of a successful result, or raise the matching HTTP error."""
    if result.success:
        return result.booking
    raise HTTPException(
        status_code=ERROR_STATUS[result.error_kind],
        detail=ErrorResponse(error=result.error_kind.value, message=result.error_message).model_dump(),
    )
