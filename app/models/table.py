import enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, func, Integer, ForeignKey, Text,
    CheckConstraint, UniqueConstraint, Enum as SAEnum,
)
from app.db.session import Base

class TableLocationType(str, enum.Enum):
    INDOOR = "Indoor"
    OUTDOOR = "Outdoor"
    TERRACE = "Terrace"
    STANDARD = "Standard"
    PRIVATE_ROOM = "PrivateRoom"
    BAR = "Bar"

class RestaurantTable(Base):
    __tablename__ = "restaurant_tables"

    id = Column(Integer, primary_key=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=False, index=True)
    table_number = Column(String(50), nullable=False)
    min_capacity = Column(Integer, nullable=False, default=1)
    max_capacity = Column(Integer, nullable=False, default=4)
    location_type = Column(
        SAEnum(TableLocationType, native_enum=False),
        nullable=False,
        default=TableLocationType.STANDARD,
    )
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)  # soft-disable; never hard-deleted with live bookings
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("branch_id", "table_number", name="uq_branch_table_number"),
        CheckConstraint("min_capacity >= 1", name="check_table_min_capacity_positive"),
        CheckConstraint("min_capacity <= max_capacity", name="check_table_capacity_range"),
    )

    def fits(self, party_size: int) -> bool:
        return self.min_capacity <= party_size <= self.max_capacity
