"""
Pytest fixtures for the reservation core.

The app reads its settings from the environment at import time, so the
test database (a throwaway SQLite file) is configured before `app` is imported.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="reservations-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["QR_CODE_DIR"] = os.path.join(_TMP_DIR, "qrcodes")
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["STRIPE_SECRET_KEY"] = ""

from datetime import date, datetime, time, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.db.base import Base  # noqa: E402
from app.db.session import engine, SessionLocal  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Branch, Coupon, MealType, OfferType, Restaurant, RestaurantTable, TableLocationType, TimeSlot,
)
from app.schemas.booking import BookingRequest  # noqa: E402
from app.services.booking_service import BookingService  # noqa: E402
from app.services.payment_service import PaymentResult  # noqa: E402


# ============ COLLABORATOR FAKES ============

class FakePayment:
    """Records calls; `fail_intents` / `fail_refunds` switch it to declining."""

    def __init__(self, fail_intents=False, fail_refunds=False):
        self.fail_intents = fail_intents
        self.fail_refunds = fail_refunds
        self.intents = []
        self.refunds = []
        self.cancelled = []

    def create_payment_intent(self, amount, currency, description, metadata=None):
        self.intents.append((amount, currency, description, metadata))
        if self.fail_intents:
            return PaymentResult(success=False, error_message="card_declined")
        n = len(self.intents)
        return PaymentResult(success=True, payment_intent_id=f"pi_test_{n}", client_secret=f"pi_test_{n}_secret")

    def refund_payment(self, payment_intent_id, amount=None):
        self.refunds.append((payment_intent_id, amount))
        if self.fail_refunds:
            return PaymentResult(success=False, error_message="refund_failed")
        return PaymentResult(success=True, payment_intent_id=payment_intent_id)

    def cancel_payment_intent(self, payment_intent_id):
        self.cancelled.append(payment_intent_id)
        return PaymentResult(success=True, payment_intent_id=payment_intent_id)


class FakeQrCodes:
    def __init__(self, fail=False):
        self.fail = fail
        self.generated = []

    def generate(self, reference, guest_name, day, at):
        if self.fail:
            raise RuntimeError("printer on fire")
        self.generated.append(reference)
        return f"/uploads/qrcodes/qr_{reference}.png"


# ============ DATABASE SETUP ============

@pytest.fixture(scope="function")
def db():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    with TestClient(app) as test_client:
        yield test_client


# ============ MASTER DATA ============

@pytest.fixture
def branch(db):
    """
    One branch with five tables:

    T01 2-2 Indoor, T02 2-4 Indoor, T03 4-6 Outdoor, T04 6-10 PrivateRoom,
    T05 2-4 Terrace (inactive); slots at 12:00, 12:30, 18:00, 19:00.
    """
    restaurant = Restaurant(name="Test Restaurant", is_active=True)
    db.add(restaurant)
    db.flush()

    branch = Branch(
        restaurant_id=restaurant.id,
        name="Test Branch",
        address="123 Test St",
        capacity=50,
        booking_interval_minutes=30,
        cancellation_policy_hours=24,
        minimum_charge=Decimal("100.00"),
        is_active=True,
    )
    db.add(branch)
    db.flush()

    db.add_all([
        RestaurantTable(branch_id=branch.id, table_number="T01", min_capacity=2, max_capacity=2,
                        location_type=TableLocationType.INDOOR, is_active=True),
        RestaurantTable(branch_id=branch.id, table_number="T02", min_capacity=2, max_capacity=4,
                        location_type=TableLocationType.INDOOR, is_active=True),
        RestaurantTable(branch_id=branch.id, table_number="T03", min_capacity=4, max_capacity=6,
                        location_type=TableLocationType.OUTDOOR, is_active=True),
        RestaurantTable(branch_id=branch.id, table_number="T04", min_capacity=6, max_capacity=10,
                        location_type=TableLocationType.PRIVATE_ROOM, is_active=True),
        RestaurantTable(branch_id=branch.id, table_number="T05", min_capacity=2, max_capacity=4,
                        location_type=TableLocationType.TERRACE, is_active=False),
    ])
    db.add_all([
        TimeSlot(branch_id=branch.id, meal_type=MealType.LUNCH, start_time=time(12, 0), end_time=time(12, 30),
                 max_bookings=5, is_active=True),
        TimeSlot(branch_id=branch.id, meal_type=MealType.LUNCH, start_time=time(12, 30), end_time=time(13, 0),
                 max_bookings=5, is_active=True),
        TimeSlot(branch_id=branch.id, meal_type=MealType.DINNER, start_time=time(18, 0), end_time=time(18, 30),
                 max_bookings=8, is_active=True),
        TimeSlot(branch_id=branch.id, meal_type=MealType.DINNER, start_time=time(19, 0), end_time=time(19, 30),
                 max_bookings=8, is_active=True),
    ])
    db.commit()
    db.refresh(branch)
    return branch


@pytest.fixture
def tables(db, branch):
    """Tables of `branch` keyed by table number."""
    rows = db.query(RestaurantTable).filter(RestaurantTable.branch_id == branch.id).all()
    return {t.table_number: t for t in rows}


@pytest.fixture
def deposit_branch(db, branch):
    branch.require_deposit = True
    branch.deposit_amount = Decimal("50.00")
    db.commit()
    return branch


@pytest.fixture
def coupon_factory(db):
    def make(code="SAVE10", type_=OfferType.PERCENTAGE, value="10", **overrides):
        now = datetime.now(timezone.utc)
        fields = dict(
            code=code,
            type=type_,
            discount_value=Decimal(value),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=30),
            usage_count=0,
            is_active=True,
        )
        fields.update(overrides)
        coupon = Coupon(**fields)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon
    return make


# ============ SERVICES ============

@pytest.fixture
def payment():
    return FakePayment()


@pytest.fixture
def qr_codes():
    return FakeQrCodes()


@pytest.fixture
def booking_service(db, payment, qr_codes):
    return BookingService(db, payment=payment, qr_codes=qr_codes)


# ============ HELPERS ============

@pytest.fixture
def future_day():
    """`future_day(n)`: the date n days from today (default 3)."""
    def make(days: int = 3) -> date:
        return date.today() + timedelta(days=days)
    return make


@pytest.fixture
def make_request(future_day):
    """Factory for a valid BookingRequest on the given branch and table."""
    def make(branch, table, **overrides) -> BookingRequest:
        fields = dict(
            branch_id=branch.id,
            table_id=table.id,
            guest_name="Ada Lovelace",
            guest_email="ada@example.com",
            guest_phone="555-0100",
            party_size=2,
            booking_date=future_day(),
            booking_time=time(18, 0),
            duration_minutes=90,
        )
        fields.update(overrides)
        return BookingRequest(**fields)
    return make
