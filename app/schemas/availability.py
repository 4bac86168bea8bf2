from typing import Optional
from pydantic import BaseModel
from datetime import date, time

from app.models.table import TableLocationType
from app.models.time_slot import MealType


class AvailableTimeSlot(BaseModel):
    id: int
    meal_type: MealType
    start_time: time
    end_time: time
    day_of_week: Optional[int] = None

    class Config:
        from_attributes = True


class AvailableTable(BaseModel):
    id: int
    table_number: str
    min_capacity: int
    max_capacity: int
    location_type: TableLocationType
    description: Optional[str] = None

    class Config:
        from_attributes = True


class CalendarDay(BaseModel):
    date: date
    available_slots: int


class SlotBookingCount(BaseModel):
    branch_id: int
    date: date
    time: time
    bookings: int
