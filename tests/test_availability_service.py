from datetime import date, datetime, time, timedelta

from app.models import Booking, BookingStatus, TableLocationType, TimeSlot
from app.services.availability_service import (
    AvailabilityService,
    intervals_overlap,
    sunday_based_weekday,
)


def future_day(days=3):
    return date.today() + timedelta(days=days)


def _book(db, branch, table, at, day=None, duration=90, status=BookingStatus.CONFIRMED, ref=None):
    booking = Booking(
        booking_reference=ref or f"BR-{table.id}-{at:%H%M}-{status.value}",
        branch_id=branch.id,
        table_id=table.id,
        guest_name="Existing Guest",
        guest_email="guest@example.com",
        party_size=table.min_capacity,
        booking_date=day or future_day(),
        booking_time=at,
        duration_minutes=duration,
        status=status,
    )
    db.add(booking)
    db.commit()
    return booking


def test_sunday_based_weekday():
    # 2024-01-07 was a Sunday
    assert sunday_based_weekday(date(2024, 1, 7)) == 0
    assert sunday_based_weekday(date(2024, 1, 8)) == 1
    assert sunday_based_weekday(date(2024, 1, 13)) == 6


def test_intervals_touching_do_not_overlap():
    start = datetime(2024, 1, 1, 18, 0)
    assert not intervals_overlap(start, start + timedelta(minutes=90), start + timedelta(minutes=90), start + timedelta(minutes=180))
    assert intervals_overlap(start, start + timedelta(minutes=90), start + timedelta(minutes=60), start + timedelta(minutes=150))


class TestListAvailableTables:
    def test_capacity_filter_and_inactive_tables(self, db, branch, tables):
        service = AvailabilityService(db)
        result = service.list_available_tables(branch.id, future_day(), time(18, 0), 4)
        numbers = [t.table_number for t in result]
        # T01 seats 2 only, T04 needs 6+, T05 is inactive
        assert numbers == ["T02", "T03"]

    def test_party_too_big_for_any_table(self, db, branch, tables):
        service = AvailabilityService(db)
        assert service.list_available_tables(branch.id, future_day(), time(18, 0), 15) == []

    def test_overlapping_booking_removes_table(self, db, branch, tables):
        _book(db, branch, tables["T02"], time(18, 0))
        service = AvailabilityService(db)

        result = service.list_available_tables(branch.id, future_day(), time(19, 0), 4)
        assert [t.table_number for t in result] == ["T03"]

    def test_back_to_back_is_allowed(self, db, branch, tables):
        _book(db, branch, tables["T02"], time(18, 0))
        service = AvailabilityService(db)

        result = service.list_available_tables(branch.id, future_day(), time(19, 30), 4)
        assert [t.table_number for t in result] == ["T02", "T03"]

    def test_cancelled_booking_frees_table(self, db, branch, tables):
        _book(db, branch, tables["T02"], time(18, 0), status=BookingStatus.CANCELLED)
        service = AvailabilityService(db)

        result = service.list_available_tables(branch.id, future_day(), time(18, 0), 4)
        assert "T02" in [t.table_number for t in result]

    def test_location_filter(self, db, branch, tables):
        service = AvailabilityService(db)
        result = service.list_available_tables(
            branch.id, future_day(), time(18, 0), 4, TableLocationType.OUTDOOR
        )
        assert [t.table_number for t in result] == ["T03"]

    def test_other_day_does_not_block(self, db, branch, tables):
        _book(db, branch, tables["T02"], time(18, 0), day=future_day(4))
        service = AvailabilityService(db)

        result = service.list_available_tables(branch.id, future_day(3), time(18, 0), 4)
        assert "T02" in [t.table_number for t in result]


class TestIsTableAvailable:
    def test_free_table(self, db, branch, tables):
        service = AvailabilityService(db)
        assert service.is_table_available(tables["T02"].id, future_day(), time(18, 0), 90)

    def test_overlap_with_longer_request(self, db, branch, tables):
        _book(db, branch, tables["T02"], time(20, 0))
        service = AvailabilityService(db)

        # 18:30 + 120 min runs into 20:00
        assert not service.is_table_available(tables["T02"].id, future_day(), time(18, 30), 120)
        assert service.is_table_available(tables["T02"].id, future_day(), time(18, 30), 90)

    def test_exclude_own_booking(self, db, branch, tables):
        booking = _book(db, branch, tables["T02"], time(18, 0))
        service = AvailabilityService(db)

        assert not service.is_table_available(tables["T02"].id, future_day(), time(18, 30), 90)
        assert service.is_table_available(
            tables["T02"].id, future_day(), time(18, 30), 90, exclude_booking_id=booking.id
        )


class TestListAvailableTimeSlots:
    def test_all_slots_when_empty(self, db, branch, tables):
        service = AvailabilityService(db)
        slots = service.list_available_time_slots(branch.id, future_day(), 2)
        assert [s.start_time for s in slots] == [time(12, 0), time(12, 30), time(18, 0), time(19, 0)]

    def test_no_eligible_table_means_no_slots(self, db, branch, tables):
        service = AvailabilityService(db)
        assert service.list_available_time_slots(branch.id, future_day(), 15) == []

    def test_slot_drops_out_when_only_table_is_taken(self, db, branch, tables):
        # Party of 8 fits T04 only
        _book(db, branch, tables["T04"], time(18, 0))
        service = AvailabilityService(db)

        slots = service.list_available_time_slots(branch.id, future_day(), 8)
        assert [s.start_time for s in slots] == [time(12, 0), time(12, 30)]

    def test_slot_survives_while_another_table_is_free(self, db, branch, tables):
        _book(db, branch, tables["T02"], time(18, 0))
        service = AvailabilityService(db)

        # T03 still seats 4 at 18:00
        slots = service.list_available_time_slots(branch.id, future_day(), 4)
        assert time(18, 0) in [s.start_time for s in slots]

    def test_day_of_week_filter(self, db, branch, tables):
        day = future_day()
        other_weekday = (sunday_based_weekday(day) + 1) % 7
        db.add_all([
            TimeSlot(branch_id=branch.id, start_time=time(21, 0), end_time=time(21, 30),
                     day_of_week=sunday_based_weekday(day), is_active=True),
            TimeSlot(branch_id=branch.id, start_time=time(22, 0), end_time=time(22, 30),
                     day_of_week=other_weekday, is_active=True),
            TimeSlot(branch_id=branch.id, start_time=time(11, 0), end_time=time(11, 30), is_active=False),
        ])
        db.commit()
        service = AvailabilityService(db)

        starts = [s.start_time for s in service.list_available_time_slots(branch.id, day, 2)]
        assert time(21, 0) in starts
        assert time(22, 0) not in starts
        assert time(11, 0) not in starts


class TestCountsAndCalendar:
    def test_count_bookings_for_slot(self, db, branch, tables):
        _book(db, branch, tables["T01"], time(18, 0))
        _book(db, branch, tables["T02"], time(18, 0))
        _book(db, branch, tables["T03"], time(18, 0), status=BookingStatus.CANCELLED)
        _book(db, branch, tables["T04"], time(18, 30))
        service = AvailabilityService(db)

        assert service.count_bookings_for_slot(branch.id, future_day(), time(18, 0)) == 2
        assert service.count_bookings_for_slot(branch.id, future_day(), time(19, 0)) == 0

    def test_calendar_covers_inclusive_range(self, db, branch, tables):
        _book(db, branch, tables["T04"], time(18, 0), day=future_day(4))
        service = AvailabilityService(db)

        calendar = service.availability_calendar(branch.id, future_day(3), future_day(5), 8)
        assert list(calendar) == [future_day(3), future_day(4), future_day(5)]
        assert calendar[future_day(3)] == 4
        assert calendar[future_day(4)] == 2
        assert calendar[future_day(5)] == 4

    def test_calendar_single_day(self, db, branch, tables):
        service = AvailabilityService(db)
        calendar = service.availability_calendar(branch.id, future_day(), future_day(), 2)
        assert calendar == {future_day(): 4}
