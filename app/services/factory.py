import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.booking_service import BookingService, Dispatcher
from app.services.payment_service import StripePaymentService
from app.services.qr_code_service import QrCodeService

logger = logging.getLogger(__name__)


def build_booking_service(db: Session, dispatch: Optional[Dispatcher] = None) -> BookingService:
    return BookingService(
        db,
        payment=StripePaymentService(settings.payment),
        qr_codes=QrCodeService(settings.QR_CODE_DIR, settings.QR_CODE_URL_PREFIX),
        dispatch=dispatch,
    )


def run_booking_followup(followup: str, booking_id: int) -> None:
    """Background entry point: runs a post-commit follow-up in a fresh session."""
    db = SessionLocal()
    try:
        build_booking_service(db).run_followup(followup, booking_id)
    except Exception:
        logger.exception("Booking follow-up %s failed for booking %s", followup, booking_id)
    finally:
        db.close()
