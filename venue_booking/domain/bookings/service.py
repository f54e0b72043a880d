"""
Booking service - admission control for table bookings.

A request is seated first (a combination for large parties, single tables
otherwise), then checked against the customer's nightly quota for the
tables it would hold, then written in one transaction whose conditional
quota update and unique table keys are the commit point. The reference is
minted once the booking row exists, and the check-in code once the booking
is confirmed.
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import REFERENCE_WRITE_RETRIES, VENUE_TIMEZONE
from ...exceptions import (
    AlreadyCheckedInError,
    ConflictError,
    GenerationExhausted,
    InvalidStatusTransition,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)
from ...models import Booking, CheckInCode, Customer
from ..combinations.repository import CombinationRepository
from ..combinations.service import CombinationService
from ..limits.identity import ContactInfo
from ..limits.repository import LimitRepository
from ..limits.service import LimitService, get_quota, is_vip
from ..references import ReferenceGenerator, build_reference_generator
from ..references.generator import (
    is_valid_check_in_code,
    sign_check_in_payload,
    verify_check_in_signature,
)
from .repository import BookingRepository
from .schemas import BookingCreate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingService:
    """Service layer for booking admission, confirmation and check-in"""

    def __init__(
        self,
        db: Session,
        limits: Optional[LimitService] = None,
        combinations: Optional[CombinationService] = None,
        generator: Optional[ReferenceGenerator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.limit_repo = LimitRepository()
        self.table_repo = CombinationRepository()
        self.limits = limits or LimitService(db)
        self.combinations = combinations or CombinationService(db)
        self.generator = generator or build_reference_generator(db)
        self.clock = clock

    def _venue_today(self) -> date:
        return self.clock().astimezone(ZoneInfo(VENUE_TIMEZONE)).date()

    def get_booking(self, reference: str) -> Booking:
        booking = self.repo.get_by_reference(self.db, reference)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_or_create_customer(self, data: BookingCreate) -> Customer:
        contact = ContactInfo(email=data.email, phone=data.phone, name=data.customerName)
        customer = self.limits.find_customer(contact)
        if customer is not None:
            return customer

        logger.info(f"👤 New customer {data.email or data.phone}")
        return self.repo.create_customer(
            self.db,
            email=data.email,
            phone=data.phone,
            name=data.customerName,
            loyalty_tier="standard",
        )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def create_booking(self, data: BookingCreate) -> Booking:
        """Admit a booking, retrying the whole sequence once if a concurrent write wins"""
        if data.bookingDate < self._venue_today():
            raise ValidationError("Booking date is in the past")

        customer = self.get_or_create_customer(data)

        additional_tables = 0
        if data.override:
            grant = self.limits.admin_booking_override(
                customer,
                reason=data.override.reason,
                additional_tables=data.override.additionalTables,
                authorized_by=data.override.authorizedBy,
                booking_date=data.bookingDate,
            )
            additional_tables = grant["additional_tables"]

        try:
            booking = self._admit(customer, data, additional_tables)
        except ConflictError:
            logger.warning(
                f"⚠️ Admission conflict for customer {customer.id} on {data.bookingDate}, retrying once"
            )
            booking = self._admit(customer, data, additional_tables)

        self._mint_reference(booking)
        return booking

    def _admit(self, customer: Customer, data: BookingCreate, additional_tables: int) -> Booking:
        night = data.bookingDate

        # The precheck counts the tables actually chosen
        tables, combination_id = self.combinations.resolve_assignment(
            night, data.partySize, data.tableNumbers
        )

        check = self.limits.validate_booking_limit(customer, night, len(tables), additional_tables)
        if not check["allowed"]:
            self.limits.record_rejected_attempt(customer, night)
            raise LimitExceededError(
                check["reason"], extra={"remaining_tables": check["remaining_tables"]}
            )

        quota = get_quota(customer.loyalty_tier) + additional_tables

        # Single transaction: quota, booking row, table claims
        self.limit_repo.reserve_tables(self.db, customer.id, night, len(tables), quota)
        booking = self.repo.create_booking(
            self.db,
            customer_id=customer.id,
            table_numbers=tables,
            combination_id=combination_id,
            booking_date=night,
            arrival_time=data.arrivalTime,
            party_size=data.partySize,
            status="pending",
            is_vip=is_vip(customer),
            deposit_amount=data.depositAmount,
            special_requests=data.specialRequests,
        )
        self.table_repo.assign_tables(self.db, booking.id, tables, night, combination_id)

        customer.total_bookings = (customer.total_bookings or 0) + 1
        if customer.last_booking_date is None or night > customer.last_booking_date:
            customer.last_booking_date = night

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Booking lost a concurrent write")

        self.db.refresh(booking)
        logger.info(
            f"✅ Booking {booking.id} admitted: customer {customer.id}, {night}, "
            f"tables {tables}{' (' + combination_id + ')' if combination_id else ''}"
        )
        return booking

    def _mint_reference(self, booking: Booking) -> str:
        try:
            for attempt in range(1, REFERENCE_WRITE_RETRIES + 1):
                if booking.is_vip:
                    reference = self.generator.generate_vip_booking_reference()
                else:
                    reference = self.generator.generate_booking_reference()
                try:
                    self.repo.set_reference(self.db, booking, reference)
                    return reference
                except IntegrityError:
                    self.db.rollback()
                    logger.warning(f"⚠️ Reference {reference} collided on write (attempt {attempt})")
            raise GenerationExhausted("Failed to generate unique booking reference")
        except GenerationExhausted:
            logger.error(f"🚨 Giving up on a reference for booking {booking.id}; releasing its tables")
            self._release(booking, "Reference generation failed")
            self.db.commit()
            raise

    def _release(self, booking: Booking, reason: str) -> None:
        """Free tables and quota held by a booking. Does not commit."""
        self.repo.transition(
            self.db,
            booking.id,
            ("pending", "confirmed"),
            status="cancelled",
            cancellation_reason=reason,
            cancelled_at=self.clock(),
        )
        self.table_repo.release_booking(self.db, booking.id)
        self.limit_repo.release_tables(
            self.db, booking.customer_id, booking.booking_date, booking.table_count
        )

    # ------------------------------------------------------------------
    # Confirmation, check-in, no-show
    # ------------------------------------------------------------------

    def confirm_booking(self, reference: str, payment_reference: Optional[str] = None) -> dict:
        """Deposit taken: confirm and issue the door check-in code"""
        booking = self.get_booking(reference)
        if booking.status != "pending":
            raise InvalidStatusTransition(f"Cannot confirm booking with status: {booking.status}")

        if not self.repo.transition(
            self.db,
            booking.id,
            ("pending",),
            status="confirmed",
            confirmed_at=self.clock(),
            payment_reference=payment_reference,
        ):
            self.db.rollback()
            raise ConflictError("Booking changed while confirming")
        self.db.commit()
        self.db.refresh(booking)

        check_in = self._issue_check_in_code(booking)
        payload = {
            "bookingRef": booking.reference,
            "checkInCode": check_in.code,
            "partySize": booking.party_size,
            "bookingDate": booking.booking_date.isoformat(),
        }
        logger.info(f"🎟️ Booking {booking.reference} confirmed")
        return {
            "booking": booking,
            "check_in_code": check_in.code,
            "qr_signature": sign_check_in_payload(payload),
        }

    def _issue_check_in_code(self, booking: Booking) -> CheckInCode:
        for attempt in range(1, REFERENCE_WRITE_RETRIES + 1):
            code = self.generator.generate_check_in_code()
            try:
                return self.repo.create_check_in_code(self.db, booking, code)
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"⚠️ Check-in code collided on write (attempt {attempt})")

        logger.error(f"🚨 Could not issue a check-in code for booking {booking.reference}")
        raise GenerationExhausted("Failed to generate unique check-in code")

    def check_in(self, code: str, staff_member: str) -> Booking:
        """Door staff check-in; a code works once"""
        if not is_valid_check_in_code(code):
            raise ValidationError("Invalid check-in code format")

        check_in = self.repo.get_check_in_code(self.db, code)
        if check_in is None:
            raise NotFoundError("Check-in code not found")

        booking = check_in.booking
        if booking.status == "arrived" or check_in.used_at is not None:
            raise AlreadyCheckedInError(
                "Customer already checked in", extra={"checked_in_at": str(booking.checked_in_at)}
            )
        if booking.status != "confirmed":
            raise InvalidStatusTransition(f"Cannot check in booking with status: {booking.status}")
        if booking.booking_date != self._venue_today():
            raise ValidationError("Booking is not for today")

        now = self.clock()
        consumed = self.repo.consume_check_in_code(self.db, check_in.id, staff_member, now)
        moved = consumed and self.repo.transition(
            self.db, booking.id, ("confirmed",), status="arrived", checked_in_at=now
        )
        if not moved:
            self.db.rollback()
            raise AlreadyCheckedInError("Customer already checked in")

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🚪 {booking.reference} checked in by {staff_member}")
        return booking

    def check_in_by_qr(self, payload: dict, signature: str, staff_member: str) -> Booking:
        """Scanned QR code: the signature must match before the code is used"""
        if not verify_check_in_signature(payload, signature):
            logger.warning(f"⚠️ QR code with a bad signature scanned by {staff_member}")
            raise ValidationError("Invalid QR code signature")

        booking = self.get_booking(payload["bookingRef"])
        check_in = booking.check_in_code
        if check_in is None or check_in.code != str(payload["checkInCode"]).upper():
            raise ValidationError("QR code does not match booking")

        return self.check_in(check_in.code, staff_member)

    def search_tonight(self, query: str) -> list[Booking]:
        """Door-list search by reference, name or phone for tonight's confirmed and arrived bookings"""
        query = query.strip()
        if not query:
            raise ValidationError("Search query is required")
        return self.repo.search_for_night(self.db, self._venue_today(), query)

    def mark_no_show(self, reference: str) -> Booking:
        booking = self.get_booking(reference)
        if not self.repo.transition(self.db, booking.id, ("confirmed",), status="no_show"):
            self.db.rollback()
            raise InvalidStatusTransition(f"Cannot mark booking with status {booking.status} as no-show")

        customer = booking.customer
        customer.total_no_shows = (customer.total_no_shows or 0) + 1
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"🚫 {booking.reference} marked as no-show")
        return booking

    def list_tonight(self, status: Optional[str] = None) -> list[Booking]:
        return self.repo.list_for_night(self.db, self._venue_today(), status)
