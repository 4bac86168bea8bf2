from app.schemas.common import ErrorResponse
from app.schemas.booking import (
    Booking, BookingRequest, BookingCancelRequest, BookingCancelResponse,
    BookingCreateResponse, BookingList, DepositPaymentEvent,
)
from app.schemas.availability import AvailableTimeSlot, AvailableTable, CalendarDay, SlotBookingCount
