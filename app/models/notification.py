from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, ForeignKey, Text
from app.db.session import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # NULL for guest bookings
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    recipient = Column(String(100), nullable=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False) # booking_confirmed, booking_modified, booking_cancelled
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
