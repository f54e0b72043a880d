"""Booking repository - Database operations for bookings, customers and check-in codes"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from ...models import Booking, CheckInCode, Customer, RefundAttempt


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_reference(db: Session, reference: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.reference == reference.strip().upper()).first()

    @staticmethod
    def get_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def list_for_night(db: Session, booking_date: date, status: Optional[str] = None) -> list[Booking]:
        query = db.query(Booking).filter(Booking.booking_date == booking_date)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.arrival_time).all()

    @staticmethod
    def search_for_night(db: Session, booking_date: date, query: str, limit: int = 50) -> list[Booking]:
        pattern = f"%{query}%"
        return (
            db.query(Booking)
            .join(Customer, Booking.customer_id == Customer.id)
            .filter(
                Booking.booking_date == booking_date,
                Booking.status.in_(("confirmed", "arrived")),
                or_(
                    Booking.reference.ilike(pattern),
                    Customer.name.ilike(pattern),
                    Customer.phone.ilike(pattern),
                ),
            )
            .order_by(Booking.arrival_time)
            .limit(limit)
            .all()
        )

    @staticmethod
    def create_customer(db: Session, **customer_data) -> Customer:
        customer = Customer(**customer_data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        """Add a booking to the open transaction. Does not commit."""
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def set_reference(db: Session, booking: Booking, reference: str) -> None:
        """Commit a reference; the unique index raises IntegrityError on a collision"""
        booking.reference = reference
        db.commit()

    @staticmethod
    def create_check_in_code(db: Session, booking: Booking, code: str) -> CheckInCode:
        check_in = CheckInCode(booking_id=booking.id, code=code)
        db.add(check_in)
        db.commit()
        db.refresh(check_in)
        return check_in

    @staticmethod
    def get_check_in_code(db: Session, code: str) -> Optional[CheckInCode]:
        return db.query(CheckInCode).filter(CheckInCode.code == code.strip().upper()).first()

    @staticmethod
    def transition(db: Session, booking_id: int, allowed_from: tuple, **values) -> bool:
        """
        Conditional status change: only applies while the booking is still in
        one of allowed_from. Returns False when another request got there
        first. Does not commit.
        """
        result = db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(allowed_from))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def consume_check_in_code(db: Session, code_id: int, used_by: str, used_at: datetime) -> bool:
        """Mark a code used exactly once. Does not commit."""
        result = db.execute(
            update(CheckInCode)
            .where(CheckInCode.id == code_id, CheckInCode.used_at.is_(None))
            .values(used_at=used_at, used_by=used_by)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def create_refund_attempt(db: Session, **attempt_data) -> RefundAttempt:
        attempt = RefundAttempt(**attempt_data)
        db.add(attempt)
        db.commit()
        db.refresh(attempt)
        return attempt

    @staticmethod
    def get_retryable_refunds(db: Session, max_attempts: int) -> list[RefundAttempt]:
        return (
            db.query(RefundAttempt)
            .filter(
                RefundAttempt.status.in_(("pending", "failed")),
                RefundAttempt.attempts < max_attempts,
            )
            .order_by(RefundAttempt.created_at)
            .all()
        )
