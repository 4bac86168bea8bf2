from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, Numeric, ForeignKey, Text
from app.db.session import Base

class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True, index=True)
    capacity = Column(Integer, nullable=False, default=0)

    # Booking policy, read at decision time
    booking_interval_minutes = Column(Integer, nullable=False, default=30)
    cancellation_policy_hours = Column(Integer, nullable=False, default=24)
    minimum_charge = Column(Numeric(10, 2), nullable=True)
    require_deposit = Column(Boolean, nullable=False, default=False)
    deposit_amount = Column(Numeric(10, 2), nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
