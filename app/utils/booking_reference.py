import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.booking import Booking


def generate_booking_reference(prefix: str = "BR") -> str:
    """PREFIX + UTC yymmddHHMMSS + 6 uppercase hex chars, e.g. BR2410191830A1B2C3."""
    timestamp = datetime.now(timezone.utc).strftime("%y%m%d%H%M%S")
    return f"{prefix}{timestamp}{uuid.uuid4().hex[:6].upper()}"


def make_unique_booking_reference(db: Session, prefix: str = "BR") -> str:
    """Generate a reference not yet used by any booking, re-rolling on collision."""
    while True:
        reference = generate_booking_reference(prefix)
        if db.query(Booking.id).filter(Booking.booking_reference == reference).first() is None:
            return reference
