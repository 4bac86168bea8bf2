import enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, func, Integer, Numeric, ForeignKey, Enum as SAEnum,
)
from app.db.session import Base

class OfferType(str, enum.Enum):
    PERCENTAGE = "Percentage"
    FIXED_AMOUNT = "FixedAmount"
    FREE_ITEM = "FreeItem"
    LOYALTY_BONUS = "LoyaltyBonus"

class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    # Both NULL = valid everywhere
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    description = Column(String(200), nullable=True)
    type = Column(SAEnum(OfferType, native_enum=False), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    max_usages = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
