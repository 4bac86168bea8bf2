import enum
from sqlalchemy import Column, Boolean, DateTime, func, Time, Integer, ForeignKey, Enum as SAEnum
from app.db.session import Base

class MealType(str, enum.Enum):
    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    BRUNCH = "Brunch"
    ALL_DAY = "AllDay"

class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    meal_type = Column(SAEnum(MealType, native_enum=False), nullable=False, default=MealType.ALL_DAY)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    day_of_week = Column(Integer, nullable=True)  # 0 = Sunday .. 6 = Saturday, NULL = every day
    max_bookings = Column(Integer, nullable=False, default=10)  # advisory only
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
