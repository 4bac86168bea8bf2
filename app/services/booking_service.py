import enum
import functools
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional, Protocol

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.models.booking import Booking, BookingStatus, TERMINAL_STATUSES
from app.models.coupon import Coupon, OfferType
from app.models.restaurant import Branch
from app.models.table import RestaurantTable
from app.schemas.booking import BookingRequest
from app.services.availability_service import AvailabilityService
from app.services.notification_service import NotificationService
from app.services.payment_service import PaymentGateway
from app.services.table_locks import TableLockRegistry, table_locks
from app.utils.booking_reference import make_unique_booking_reference

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Storage errors that mean "someone else got there first"
CONCURRENCY_ERRORS = (StaleDataError, IntegrityError, OperationalError)


class BookingErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    UNAVAILABLE = "unavailable"
    POLICY_VIOLATION = "policy_violation"
    PAYMENT_FAILED = "payment_failed"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    UNEXPECTED = "unexpected"


@dataclass
class BookingResult:
    success: bool
    booking: Optional[Booking] = None
    error_kind: Optional[BookingErrorKind] = None
    error_message: Optional[str] = None
    payment_client_secret: Optional[str] = None

    @classmethod
    def ok(cls, booking: Booking, payment_client_secret: Optional[str] = None) -> "BookingResult":
        return cls(success=True, booking=booking, payment_client_secret=payment_client_secret)

    @classmethod
    def fail(cls, kind: BookingErrorKind, message: str) -> "BookingResult":
        return cls(success=False, error_kind=kind, error_message=message)


class CodeGenerator(Protocol):
    def generate(self, reference: str, guest_name: str, day: date, at: time) -> str: ...


# (follow-up method name, booking id) -> None
Dispatcher = Callable[[str, int], None]

FOLLOWUPS = frozenset({"finalize_new_booking", "notify_booking_modified", "notify_booking_cancelled"})


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def admission_errors(conflict_message: str, failure_message: str):
    """
    Turn storage exceptions raised inside a BookingService operation into
    typed results: lost races become CONCURRENCY_CONFLICT, anything else is
    logged with its traceback and reported as UNEXPECTED.
    """
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs) -> BookingResult:
            try:
                return method(self, *args, **kwargs)
            except CONCURRENCY_ERRORS as e:
                self.db.rollback()
                logger.warning("Concurrency conflict in %s: %s", method.__name__, e)
                return BookingResult.fail(BookingErrorKind.CONCURRENCY_CONFLICT, conflict_message)
            except Exception:
                self.db.rollback()
                logger.exception("Error in %s (args=%r)", method.__name__, args)
                return BookingResult.fail(BookingErrorKind.UNEXPECTED, failure_message)
        return wrapper
    return decorator


class BookingService:
    """
    Booking admission and lifecycle.

    Every write goes through one session transaction. The availability
    re-check and the insert run while the per-table lock (in-process mutex
    plus a FOR UPDATE row lock on the table) is held, so a table can never
    hold two overlapping live bookings. Post-commit work (QR code,
    notifications) is handed to `dispatch` and can never fail a booking.
    """

    def __init__(
        self,
        db: Session,
        payment: PaymentGateway,
        qr_codes: CodeGenerator,
        availability: Optional[AvailabilityService] = None,
        notifications: Optional[NotificationService] = None,
        locks: TableLockRegistry = table_locks,
        dispatch: Optional[Dispatcher] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.payment = payment
        self.qr_codes = qr_codes
        self.availability = availability or AvailabilityService(db)
        self.notifications = notifications or NotificationService(db)
        self.locks = locks
        self.dispatch = dispatch or self.run_followup
        # Naive local time; booking_date + booking_time are stored naive
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_table_with_branch(
        self, branch_id: int, table_id: int
    ) -> tuple[Optional[RestaurantTable], Optional[Branch]]:
        row = (
            self.db.query(RestaurantTable, Branch)
            .join(Branch, Branch.id == RestaurantTable.branch_id)
            .filter(
                RestaurantTable.id == table_id,
                RestaurantTable.branch_id == branch_id,
                RestaurantTable.is_active == True,  # noqa: E712
            )
            .first()
        )
        if row is None:
            return None, None
        return row[0], row[1]

    def _lock_table_row(self, table_id: int) -> None:
        # Row lock for multi-process deployments; SQLite ignores FOR UPDATE
        self.db.query(RestaurantTable.id).filter(RestaurantTable.id == table_id).with_for_update().one()

    def _starts_at(self, day: date, at: time) -> datetime:
        return datetime.combine(day, at)

    def _within_change_window(self, booking: Booking, branch: Branch) -> bool:
        if booking.status in TERMINAL_STATUSES:
            return False
        deadline = self._starts_at(booking.booking_date, booking.booking_time) - timedelta(
            hours=branch.cancellation_policy_hours
        )
        return self.clock() < deadline

    def _resolve_coupon(self, code: Optional[str], branch: Branch) -> tuple[Optional[Coupon], Decimal]:
        """
        Coupon and discount for `code`, or (None, 0). Unknown, expired,
        exhausted or out-of-scope codes are ignored rather than rejected.
        """
        if not code:
            return None, Decimal("0")
        try:
            coupon = (
                self.db.query(Coupon)
                .filter(Coupon.code == code.strip(), Coupon.is_active == True)  # noqa: E712
                .with_for_update()
                .first()
            )
        except SQLAlchemyError:
            logger.warning("Coupon lookup failed for code %r; booking without discount", code, exc_info=True)
            return None, Decimal("0")

        if coupon is None:
            return None, Decimal("0")

        now = _utcnow()
        if not (_as_utc(coupon.start_date) <= now <= _as_utc(coupon.end_date)):
            return None, Decimal("0")
        if coupon.max_usages is not None and coupon.usage_count >= coupon.max_usages:
            return None, Decimal("0")
        if coupon.branch_id is not None and coupon.branch_id != branch.id:
            return None, Decimal("0")
        if coupon.restaurant_id is not None and coupon.restaurant_id != branch.restaurant_id:
            return None, Decimal("0")

        value = Decimal(coupon.discount_value or 0)
        if coupon.type == OfferType.PERCENTAGE:
            discount = Decimal(branch.minimum_charge or 0) * value / 100
        elif coupon.type == OfferType.FIXED_AMOUNT:
            discount = value
        else:
            discount = Decimal("0")
        return coupon, discount.quantize(CENT)

    def _consume_coupon(self, coupon: Coupon) -> bool:
        """
        Take one use of `coupon` with a single conditional UPDATE, so the cap
        holds across concurrent bookings on any table. The claim is part of
        the booking transaction and is undone by its rollback.
        """
        claimed = (
            self.db.query(Coupon)
            .filter(
                Coupon.id == coupon.id,
                or_(Coupon.max_usages == None, Coupon.usage_count < Coupon.max_usages),  # noqa: E711
            )
            .update({Coupon.usage_count: Coupon.usage_count + 1}, synchronize_session=False)
        )
        return claimed == 1

    def _net_deposit(self, branch: Branch, discount: Decimal) -> Decimal:
        if not branch.require_deposit or branch.deposit_amount is None:
            return Decimal("0")
        return (Decimal(branch.deposit_amount) - discount).quantize(CENT)

    def _get_with_branch(self, booking_id: int) -> tuple[Optional[Booking], Optional[Branch]]:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            return None, None
        return booking, self.db.get(Branch, booking.branch_id)

    def _schedule(self, followup: str, booking_id: int) -> None:
        try:
            self.dispatch(followup, booking_id)
        except Exception:
            logger.exception("Could not schedule %s for booking %s", followup, booking_id)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    @admission_errors(
        "The selected time slot is no longer available. Please try again.",
        "An error occurred while creating your booking.",
    )
    def create_booking(self, request: BookingRequest) -> BookingResult:
        table, branch = self._load_table_with_branch(request.branch_id, request.table_id)
        if table is None:
            return BookingResult.fail(BookingErrorKind.NOT_FOUND, "Table not found or inactive.")

        if not table.fits(request.party_size):
            return BookingResult.fail(
                BookingErrorKind.INVALID_INPUT,
                f"Party size must be between {table.min_capacity} and {table.max_capacity} for this table.",
            )

        if self._starts_at(request.booking_date, request.booking_time) <= self.clock():
            return BookingResult.fail(BookingErrorKind.INVALID_INPUT, "Bookings must start in the future.")

        with self.locks.hold(table.id):
            self._lock_table_row(table.id)

            # Authoritative check; whatever the caller saw earlier was advisory
            if not self.availability.is_table_available(
                table.id, request.booking_date, request.booking_time, request.duration_minutes
            ):
                self.db.rollback()
                return BookingResult.fail(
                    BookingErrorKind.UNAVAILABLE, "Table is not available at the selected time."
                )

            coupon, discount = self._resolve_coupon(request.coupon_code, branch)
            if coupon is not None and not self._consume_coupon(coupon):
                logger.info("Coupon %s reached its usage cap; booking without discount", coupon.code)
                coupon, discount = None, Decimal("0")

            booking = Booking(
                booking_reference=make_unique_booking_reference(self.db, settings.BOOKING_REFERENCE_PREFIX),
                branch_id=branch.id,
                table_id=table.id,
                user_id=request.user_id,
                guest_name=request.guest_name,
                guest_email=request.guest_email,
                guest_phone=request.guest_phone,
                party_size=request.party_size,
                booking_date=request.booking_date,
                booking_time=request.booking_time,
                duration_minutes=request.duration_minutes,
                status=BookingStatus.PENDING,
                occasion=request.occasion,
                special_requests=request.special_requests,
                coupon_id=coupon.id if coupon else None,
                discount_amount=discount,
            )

            client_secret = intent_id = None
            deposit = self._net_deposit(branch, discount)
            if deposit > 0:
                payment = self.payment.create_payment_intent(
                    deposit,
                    settings.PAYMENT_CURRENCY,
                    f"Deposit for booking at {branch.name}",
                    {"booking_reference": booking.booking_reference},
                )
                if not payment.success:
                    self.db.rollback()
                    return BookingResult.fail(
                        BookingErrorKind.PAYMENT_FAILED,
                        f"Payment processing failed: {payment.error_message}",
                    )
                booking.deposit_amount = deposit
                booking.payment_intent_id = intent_id = payment.payment_intent_id
                client_secret = payment.client_secret

            self.db.add(booking)
            try:
                self.db.commit()
            except Exception:
                # The deposit intent would otherwise stay open with no booking behind it
                if intent_id:
                    self._void_payment_intent(intent_id)
                raise

        logger.info("Booking created successfully: %s", booking.booking_reference)
        self._schedule("finalize_new_booking", booking.id)
        return BookingResult.ok(booking, payment_client_secret=client_secret)

    @admission_errors(
        "The booking was modified by someone else. Please refresh and try again.",
        "An error occurred while updating your booking.",
    )
    def update_booking(self, booking_id: int, request: BookingRequest) -> BookingResult:
        booking, branch = self._get_with_branch(booking_id)
        if booking is None:
            return BookingResult.fail(BookingErrorKind.NOT_FOUND, "Booking not found.")
        if not self._within_change_window(booking, branch):
            return BookingResult.fail(
                BookingErrorKind.POLICY_VIOLATION, "This booking can no longer be modified."
            )

        table, _ = self._load_table_with_branch(booking.branch_id, request.table_id)
        if table is None:
            return BookingResult.fail(BookingErrorKind.NOT_FOUND, "Table not found or inactive.")
        if not table.fits(request.party_size):
            return BookingResult.fail(
                BookingErrorKind.INVALID_INPUT,
                f"Party size must be between {table.min_capacity} and {table.max_capacity} for this table.",
            )

        slot_changed = (
            booking.table_id != request.table_id
            or booking.booking_date != request.booking_date
            or booking.booking_time != request.booking_time
            or booking.duration_minutes != request.duration_minutes
        )
        if slot_changed and self._starts_at(request.booking_date, request.booking_time) <= self.clock():
            return BookingResult.fail(BookingErrorKind.INVALID_INPUT, "Bookings must start in the future.")

        with self.locks.hold(booking.table_id, table.id):
            if slot_changed:
                self._lock_table_row(table.id)
                if not self.availability.is_table_available(
                    table.id,
                    request.booking_date,
                    request.booking_time,
                    request.duration_minutes,
                    exclude_booking_id=booking.id,
                ):
                    self.db.rollback()
                    return BookingResult.fail(BookingErrorKind.UNAVAILABLE, "New time slot is not available.")

            booking.table_id = table.id
            booking.guest_name = request.guest_name
            booking.guest_email = request.guest_email
            booking.guest_phone = request.guest_phone
            booking.party_size = request.party_size
            booking.booking_date = request.booking_date
            booking.booking_time = request.booking_time
            booking.duration_minutes = request.duration_minutes
            booking.occasion = request.occasion
            booking.special_requests = request.special_requests
            booking.updated_at = _utcnow()
            self.db.commit()

        logger.info("Booking updated: %s", booking.booking_reference)
        self._schedule("notify_booking_modified", booking.id)
        return BookingResult.ok(booking)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    @admission_errors(
        "The booking was modified by someone else. Please refresh and try again.",
        "An error occurred while cancelling your booking.",
    )
    def cancel_booking(self, booking_id: int, reason: Optional[str] = None) -> BookingResult:
        booking, branch = self._get_with_branch(booking_id)
        if booking is None:
            return BookingResult.fail(BookingErrorKind.NOT_FOUND, "Booking not found.")
        if booking.status in TERMINAL_STATUSES:
            return BookingResult.fail(
                BookingErrorKind.POLICY_VIOLATION,
                f"Booking is already {booking.status.value} and cannot be cancelled.",
            )
        if not self._within_change_window(booking, branch):
            return BookingResult.fail(
                BookingErrorKind.POLICY_VIOLATION,
                f"Bookings must be cancelled at least {branch.cancellation_policy_hours} "
                "hours before the reservation time.",
            )

        now = _utcnow()
        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = now
        booking.cancellation_reason = reason
        booking.updated_at = now
        self.db.commit()
        logger.info("Booking cancelled: %s", booking.booking_reference)

        # Refund is eventual: the cancellation stands whatever Stripe says
        if booking.deposit_paid and booking.payment_intent_id:
            self._refund_deposit(booking)

        self._schedule("notify_booking_cancelled", booking.id)
        return BookingResult.ok(booking)

    def _void_payment_intent(self, payment_intent_id: str) -> None:
        try:
            result = self.payment.cancel_payment_intent(payment_intent_id)
        except Exception:
            logger.exception("Could not cancel PaymentIntent %s", payment_intent_id)
            return
        if not result.success:
            logger.warning("Failed to cancel PaymentIntent %s: %s", payment_intent_id, result.error_message)

    def _refund_deposit(self, booking: Booking) -> None:
        try:
            refund = self.payment.refund_payment(booking.payment_intent_id)
        except Exception:
            logger.exception("Refund call failed for booking %s", booking.id)
            return
        if not refund.success:
            logger.warning(
                "Failed to refund deposit for booking %s: %s", booking.id, refund.error_message
            )

    def _transition(
        self,
        booking_id: int,
        allowed_from: Iterable[BookingStatus],
        target: BookingStatus,
        **changes,
    ) -> BookingResult:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            return BookingResult.fail(BookingErrorKind.NOT_FOUND, "Booking not found.")
        if booking.status not in allowed_from:
            return BookingResult.fail(
                BookingErrorKind.POLICY_VIOLATION,
                f"Cannot move a {booking.status.value} booking to {target.value}.",
            )
        booking.status = target
        for field, value in changes.items():
            setattr(booking, field, value)
        booking.updated_at = _utcnow()
        self.db.commit()
        logger.info("Booking %s -> %s", booking.booking_reference, target.value)
        return BookingResult.ok(booking)

    @admission_errors(
        "The booking was modified by someone else. Please refresh and try again.",
        "An error occurred while confirming your booking.",
    )
    def confirm_booking(self, booking_id: int) -> BookingResult:
        # Staff override: any live booking may be (re)confirmed
        return self._transition(
            booking_id,
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            BookingStatus.CONFIRMED,
            is_verified=True,
        )

    @admission_errors(
        "The booking was modified by someone else. Please refresh and try again.",
        "An error occurred while completing the booking.",
    )
    def complete_booking(self, booking_id: int) -> BookingResult:
        return self._transition(booking_id, (BookingStatus.CONFIRMED,), BookingStatus.COMPLETED)

    @admission_errors(
        "The booking was modified by someone else. Please refresh and try again.",
        "An error occurred while marking the booking as a no-show.",
    )
    def mark_no_show(self, booking_id: int) -> BookingResult:
        return self._transition(
            booking_id,
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            BookingStatus.NO_SHOW,
        )

    @admission_errors(
        "The booking was modified by someone else. Please try again.",
        "An error occurred while recording the deposit payment.",
    )
    def record_deposit_payment(self, payment_intent_id: str) -> BookingResult:
        """Payment-success hook: marks the deposit paid and confirms a pending booking."""
        booking = (
            self.db.query(Booking)
            .filter(Booking.payment_intent_id == payment_intent_id)
            .first()
        )
        if booking is None:
            return BookingResult.fail(BookingErrorKind.NOT_FOUND, "Booking not found.")
        if booking.deposit_paid:
            return BookingResult.ok(booking)

        booking.deposit_paid = True
        if booking.status == BookingStatus.PENDING:
            booking.status = BookingStatus.CONFIRMED
        booking.updated_at = _utcnow()
        self.db.commit()
        logger.info("Deposit paid for booking %s", booking.booking_reference)

        # Paid after the guest already cancelled: hand the money back
        if booking.status == BookingStatus.CANCELLED:
            self._refund_deposit(booking)
        return BookingResult.ok(booking)

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def can_cancel_booking(self, booking_id: int) -> bool:
        booking, branch = self._get_with_branch(booking_id)
        if booking is None:
            return False
        return self._within_change_window(booking, branch)

    def can_modify_booking(self, booking_id: int) -> bool:
        return self.can_cancel_booking(booking_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_booking_by_id(self, booking_id: int) -> Optional[Booking]:
        return self.db.get(Booking, booking_id)

    def get_booking_by_reference(self, reference: str) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.booking_reference == reference).first()

    def get_bookings_for_branch(
        self,
        branch_id: int,
        day: Optional[date] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        query = self.db.query(Booking).filter(Booking.branch_id == branch_id)
        if day is not None:
            query = query.filter(Booking.booking_date == day)
        if status is not None:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.booking_date.desc(), Booking.booking_time).all()

    def get_bookings_for_user(self, user_id: int) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.booking_date.desc(), Booking.booking_time)
            .all()
        )

    # ------------------------------------------------------------------
    # Post-commit follow-ups
    # ------------------------------------------------------------------

    def run_followup(self, followup: str, booking_id: int) -> None:
        if followup not in FOLLOWUPS:
            raise ValueError(f"Unknown booking follow-up: {followup}")
        getattr(self, followup)(booking_id)

    def finalize_new_booking(self, booking_id: int) -> None:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            logger.error("Booking %s vanished before its follow-up ran", booking_id)
            return

        try:
            booking.qr_code_url = self.qr_codes.generate(
                booking.booking_reference, booking.guest_name, booking.booking_date, booking.booking_time
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to store QR code for booking %s", booking.booking_reference)

        self._notify(self.notifications.send_booking_confirmation, booking)

    def notify_booking_modified(self, booking_id: int) -> None:
        booking = self.db.get(Booking, booking_id)
        if booking is not None:
            self._notify(self.notifications.send_booking_modification, booking)

    def notify_booking_cancelled(self, booking_id: int) -> None:
        booking = self.db.get(Booking, booking_id)
        if booking is not None:
            self._notify(self.notifications.send_booking_cancellation, booking)

    def _notify(self, send: Callable[[Booking], None], booking: Booking) -> None:
        try:
            send(booking)
        except Exception:
            self.db.rollback()
            logger.exception("Failed to send %s for booking %s", send.__name__, booking.booking_reference)
