import logging
import os
from datetime import date, time

import qrcode

logger = logging.getLogger(__name__)


def booking_qr_payload(reference: str, guest_name: str, day: date, at: time) -> str:
    return f"BOOKING:{reference}|{guest_name}|{day:%Y-%m-%d}|{at:%H:%M}"


class QrCodeService:
    """Writes a scannable PNG per booking and returns its public URL."""

    def __init__(self, output_dir: str, url_prefix: str):
        self.output_dir = output_dir
        self.url_prefix = url_prefix.rstrip("/")

    def generate(self, reference: str, guest_name: str, day: date, at: time) -> str:
        """Returns "" when the image cannot be produced."""
        file_name = f"qr_{reference}.png"
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            image = qrcode.make(booking_qr_payload(reference, guest_name, day, at))
            image.save(os.path.join(self.output_dir, file_name))
        except (OSError, ValueError):
            logger.exception("Error generating QR code for booking %s", reference)
            return ""
        return f"{self.url_prefix}/{file_name}"
