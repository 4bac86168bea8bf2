from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from datetime import date, time, datetime

from app.core.config import settings
from app.models.booking import BookingStatus, OccasionType


# Booking: Create / Update (POST /bookings, PUT /bookings/{id})
class BookingRequest(BaseModel):
    branch_id: int
    table_id: int
    user_id: Optional[int] = None
    guest_name: str = Field(min_length=1, max_length=100)
    guest_email: str = Field(min_length=3, max_length=100)
    guest_phone: Optional[str] = Field(default=None, max_length=20)
    party_size: int = Field(ge=1)
    booking_date: date
    booking_time: time
    duration_minutes: int = Field(default=settings.DEFAULT_BOOKING_DURATION_MINUTES, gt=0, le=24 * 60)
    occasion: OccasionType = OccasionType.NONE
    special_requests: Optional[str] = Field(default=None, max_length=1000)
    coupon_code: Optional[str] = None

    @field_validator("coupon_code", "guest_phone", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class DepositPaymentEvent(BaseModel):
    payment_intent_id: str


# Booking: Full response
class Booking(BaseModel):
    id: int
    booking_reference: str
    branch_id: int
    table_id: int
    user_id: Optional[int] = None
    guest_name: str
    guest_email: str
    guest_phone: Optional[str] = None
    party_size: int
    booking_date: date
    booking_time: time
    duration_minutes: int
    status: BookingStatus
    occasion: OccasionType
    special_requests: Optional[str] = None
    qr_code_url: Optional[str] = None
    deposit_amount: Optional[Decimal] = None
    deposit_paid: bool = False
    discount_amount: Optional[Decimal] = None
    is_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    class Config:
        from_attributes = True


# POST /bookings: booking plus the client secret for deposit checkout
class BookingCreateResponse(BaseModel):
    booking: Booking
    payment_client_secret: Optional[str] = None


# Booking: Cancel response (PATCH /bookings/{id}/cancel)
class BookingCancelResponse(BaseModel):
    id: int
    booking_reference: str
    status: BookingStatus
    cancelled_at: datetime


class BookingList(BaseModel):
    data: List[Booking]
    total: int
