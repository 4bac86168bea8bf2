import enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, func, Integer, Numeric, ForeignKey, Text, Date, Time,
    CheckConstraint, Index, Enum as SAEnum,
)
from app.db.session import Base

class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"
    NO_SHOW = "NoShow"

TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW})

class OccasionType(str, enum.Enum):
    NONE = "None"
    BIRTHDAY = "Birthday"
    ANNIVERSARY = "Anniversary"
    DATE_NIGHT = "DateNight"
    BUSINESS_MEETING = "BusinessMeeting"
    CELEBRATION = "Celebration"
    OTHER = "Other"

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    booking_reference = Column(String(50), unique=True, nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("restaurant_tables.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    guest_name = Column(String(100), nullable=False)
    guest_email = Column(String(100), nullable=False)
    guest_phone = Column(String(20), nullable=True)
    party_size = Column(Integer, nullable=False)

    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=90)

    status = Column(
        SAEnum(BookingStatus, native_enum=False),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    occasion = Column(SAEnum(OccasionType, native_enum=False), nullable=False, default=OccasionType.NONE)
    special_requests = Column(Text, nullable=True)
    qr_code_url = Column(String(500), nullable=True)

    # Payment
    deposit_amount = Column(Numeric(10, 2), nullable=True)
    deposit_paid = Column(Boolean, nullable=False, default=False)
    payment_intent_id = Column(String(100), nullable=True, index=True)

    # Coupon
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=True)

    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Row version; concurrent writers of the same booking get StaleDataError
    version = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_bookings_branch_date_status", "branch_id", "booking_date", "status"),
        Index("ix_bookings_table_date", "table_id", "booking_date"),
        CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        CheckConstraint("duration_minutes > 0", name="check_booking_duration_positive"),
    )
    __mapper_args__ = {"version_id_col": version}
