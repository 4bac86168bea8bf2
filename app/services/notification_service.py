import logging

from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """
    In-app booking notifications.

    Each send writes a Notification row in its own commit. Email/SMS delivery
    hangs off these rows and is not handled here.
    """

    def __init__(self, db: Session):
        self.db = db

    def _notify(self, booking: Booking, title: str, message: str, type_: str) -> None:
        self.db.add(Notification(
            user_id=booking.user_id,
            booking_id=booking.id,
            recipient=booking.guest_email,
            title=title,
            message=message,
            type=type_,
        ))
        self.db.commit()
        logger.info("Notification '%s' queued for booking %s", type_, booking.booking_reference)

    def send_booking_confirmation(self, booking: Booking) -> None:
        self._notify(
            booking,
            "Booking Received",
            (
                f"Your table for {booking.party_size} on {booking.booking_date:%Y-%m-%d} "
                f"at {booking.booking_time:%H:%M} is booked. Ref: {booking.booking_reference}"
            ),
            "booking_confirmed",
        )

    def send_booking_modification(self, booking: Booking) -> None:
        self._notify(
            booking,
            "Booking Updated",
            (
                f"Booking #{booking.booking_reference} now starts {booking.booking_date:%Y-%m-%d} "
                f"at {booking.booking_time:%H:%M} for {booking.party_size}."
            ),
            "booking_modified",
        )

    def send_booking_cancellation(self, booking: Booking) -> None:
        self._notify(
            booking,
            "Booking Cancelled",
            f"Your booking #{booking.booking_reference} has been cancelled.",
            "booking_cancelled",
        )
