import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.booking import Booking, BookingStatus
from app.models.table import RestaurantTable, TableLocationType
from app.models.time_slot import TimeSlot

logger = logging.getLogger(__name__)


def sunday_based_weekday(day: date) -> int:
    """0 = Sunday .. 6 = Saturday, the convention stored in TimeSlot.day_of_week."""
    return day.isoweekday() % 7


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open overlap test: touching intervals do not overlap."""
    return start < other_end and end > other_start


def _is_free(day: date, at: time, duration_minutes: int, bookings: Iterable[Booking]) -> bool:
    start = datetime.combine(day, at)
    end = start + timedelta(minutes=duration_minutes)
    for booking in bookings:
        existing_start = datetime.combine(booking.booking_date, booking.booking_time)
        existing_end = existing_start + timedelta(minutes=booking.duration_minutes)
        if intervals_overlap(start, end, existing_start, existing_end):
            return False
    return True


class AvailabilityService:
    """
    Read-only availability computations over tables and bookings.

    Nothing here writes; admission (and the locking around it) lives in
    BookingService, which calls is_table_available as its commit-time check.
    Storage errors propagate to the caller.
    """

    def __init__(self, db: Session, window_minutes: Optional[int] = None):
        self.db = db
        self.window_minutes = window_minutes or settings.AVAILABILITY_WINDOW_MINUTES

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _eligible_tables(
        self,
        branch_id: int,
        party_size: int,
        location_type: Optional[TableLocationType] = None,
    ) -> list[RestaurantTable]:
        query = self.db.query(RestaurantTable).filter(
            RestaurantTable.branch_id == branch_id,
            RestaurantTable.is_active == True,  # noqa: E712
            RestaurantTable.min_capacity <= party_size,
            RestaurantTable.max_capacity >= party_size,
        )
        if location_type is not None:
            query = query.filter(RestaurantTable.location_type == location_type)
        return query.order_by(RestaurantTable.id).all()

    def _live_bookings_by_table(self, table_ids: list[int], day: date) -> dict[int, list[Booking]]:
        """Non-cancelled bookings on `day` for the given tables, grouped by table id."""
        grouped: dict[int, list[Booking]] = defaultdict(list)
        if not table_ids:
            return grouped
        bookings = (
            self.db.query(Booking)
            .filter(
                Booking.table_id.in_(table_ids),
                Booking.booking_date == day,
                Booking.status != BookingStatus.CANCELLED,
            )
            .all()
        )
        for booking in bookings:
            grouped[booking.table_id].append(booking)
        return grouped

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def list_available_time_slots(self, branch_id: int, day: date, party_size: int) -> list[TimeSlot]:
        """
        Active slots of the branch for `day` at which at least one
        capacity-eligible table is free for the availability window.

        Returns [] straight away when no active table can seat the party.
        """
        tables = self._eligible_tables(branch_id, party_size)
        if not tables:
            return []

        weekday = sunday_based_weekday(day)
        slots = (
            self.db.query(TimeSlot)
            .filter(
                TimeSlot.branch_id == branch_id,
                TimeSlot.is_active == True,  # noqa: E712
            )
            .filter((TimeSlot.day_of_week == None) | (TimeSlot.day_of_week == weekday))  # noqa: E711
            .order_by(TimeSlot.start_time, TimeSlot.id)
            .all()
        )

        bookings = self._live_bookings_by_table([t.id for t in tables], day)
        available = []
        for slot in slots:
            for table in tables:
                if _is_free(day, slot.start_time, self.window_minutes, bookings[table.id]):
                    available.append(slot)
                    break
        return available

    def list_available_tables(
        self,
        branch_id: int,
        day: date,
        at: time,
        party_size: int,
        location_type: Optional[TableLocationType] = None,
    ) -> list[RestaurantTable]:
        """Capacity-eligible tables free at (day, at), ordered by table id."""
        tables = self._eligible_tables(branch_id, party_size, location_type)
        bookings = self._live_bookings_by_table([t.id for t in tables], day)
        return [
            table for table in tables
            if _is_free(day, at, self.window_minutes, bookings[table.id])
        ]

    def is_table_available(
        self,
        table_id: int,
        day: date,
        at: time,
        duration_minutes: int,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        query = self.db.query(Booking).filter(
            Booking.table_id == table_id,
            Booking.booking_date == day,
            Booking.status != BookingStatus.CANCELLED,
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return _is_free(day, at, duration_minutes, query.all())

    def count_bookings_for_slot(self, branch_id: int, day: date, at: time) -> int:
        """Non-cancelled bookings starting exactly at (day, at). Reporting only."""
        return (
            self.db.query(func.count(Booking.id))
            .filter(
                Booking.branch_id == branch_id,
                Booking.booking_date == day,
                Booking.booking_time == at,
                Booking.status != BookingStatus.CANCELLED,
            )
            .scalar()
            or 0
        )

    def availability_calendar(
        self, branch_id: int, start_date: date, end_date: date, party_size: int
    ) -> dict[date, int]:
        """Available-slot count per day, both endpoints included. Callers bound the range."""
        result: dict[date, int] = {}
        current = start_date
        while current <= end_date:
            result[current] = len(self.list_available_time_slots(branch_id, current, party_size))
            current += timedelta(days=1)
        logger.debug(
            "Calendar for branch %s %s..%s (party %s): %d day(s)",
            branch_id, start_date, end_date, party_size, len(result),
        )
        return result
