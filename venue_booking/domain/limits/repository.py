"""Limit repository - Database operations for per-night table quotas"""

from datetime import date
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...exceptions import ConflictError, LimitExceededError
from ...models import Booking, BookingLimitRecord, LimitOverride

# A no-show still held its tables that night, so it keeps counting
ACTIVE_STATUSES = ("pending", "confirmed", "arrived", "no_show")


class LimitRepository:
    """Repository for booking limit records and booking history"""

    @staticmethod
    def get_booking_history(
        db: Session, customer_id: int, start: date, end: date
    ) -> list[dict]:
        """Tables held per booking between start and end (inclusive), cancelled excluded"""
        bookings = (
            db.query(Booking)
            .filter(
                Booking.customer_id == customer_id,
                Booking.booking_date >= start,
                Booking.booking_date <= end,
                Booking.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Booking.booking_date)
            .all()
        )
        return [{"date": b.booking_date, "table_count": b.table_count} for b in bookings]

    @staticmethod
    def tables_reserved_on(db: Session, customer_id: int, booking_date: date) -> int:
        history = LimitRepository.get_booking_history(db, customer_id, booking_date, booking_date)
        return sum(entry["table_count"] for entry in history)

    @staticmethod
    def get_limit_record(
        db: Session, customer_id: int, booking_date: date
    ) -> Optional[BookingLimitRecord]:
        return (
            db.query(BookingLimitRecord)
            .filter(
                BookingLimitRecord.customer_id == customer_id,
                BookingLimitRecord.booking_date == booking_date,
            )
            .first()
        )

    @staticmethod
    def reserve_tables(
        db: Session, customer_id: int, booking_date: date, tables: int, quota: int
    ) -> None:
        """
        Add tables to the customer's nightly total in one conditional write.

        The quota check lives in the UPDATE's WHERE clause, so two concurrent
        requests cannot both pass it. Does not commit; the caller commits the
        whole admission transaction. Raises ConflictError when the write loses.
        """
        result = db.execute(
            update(BookingLimitRecord)
            .where(
                BookingLimitRecord.customer_id == customer_id,
                BookingLimitRecord.booking_date == booking_date,
                BookingLimitRecord.tables_reserved + tables <= quota,
            )
            .values(
                tables_reserved=BookingLimitRecord.tables_reserved + tables,
                bookings_count=BookingLimitRecord.bookings_count + 1,
                version=BookingLimitRecord.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        if LimitRepository.get_limit_record(db, customer_id, booking_date) is not None:
            db.rollback()
            raise ConflictError("Table quota was taken by a concurrent booking")

        # First booking of the night: seed from history so the record never drifts
        already = LimitRepository.tables_reserved_on(db, customer_id, booking_date)
        if already + tables > quota:
            db.rollback()
            raise LimitExceededError("Maximum tables reached")

        try:
            db.add(
                BookingLimitRecord(
                    customer_id=customer_id,
                    booking_date=booking_date,
                    tables_reserved=already + tables,
                    bookings_count=1,
                )
            )
            db.flush()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Table quota was taken by a concurrent booking")

    @staticmethod
    def release_tables(db: Session, customer_id: int, booking_date: date, tables: int) -> None:
        """Give tables back after a cancellation. Does not commit."""
        db.execute(
            update(BookingLimitRecord)
            .where(
                BookingLimitRecord.customer_id == customer_id,
                BookingLimitRecord.booking_date == booking_date,
            )
            .values(
                tables_reserved=case(
                    (
                        BookingLimitRecord.tables_reserved >= tables,
                        BookingLimitRecord.tables_reserved - tables,
                    ),
                    else_=0,
                ),
                bookings_count=case(
                    (BookingLimitRecord.bookings_count > 0, BookingLimitRecord.bookings_count - 1),
                    else_=0,
                ),
                version=BookingLimitRecord.version + 1,
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def recompute_limit_record(db: Session, customer_id: int, booking_date: date) -> int:
        """
        Rebuild the aggregate from bookings; returns the recomputed table count.

        The record row is locked before bookings are read, so an admission's
        conditional UPDATE waits for this commit and then applies on top of
        the rebuilt value.
        """
        record = (
            db.query(BookingLimitRecord)
            .filter(
                BookingLimitRecord.customer_id == customer_id,
                BookingLimitRecord.booking_date == booking_date,
            )
            .with_for_update()
            .populate_existing()
            .first()
        )
        history = LimitRepository.get_booking_history(db, customer_id, booking_date, booking_date)
        tables = sum(entry["table_count"] for entry in history)
        bookings = len(history)
        if record is None:
            record = BookingLimitRecord(customer_id=customer_id, booking_date=booking_date)
            db.add(record)
        record.tables_reserved = tables
        record.bookings_count = bookings
        db.commit()
        return tables

    @staticmethod
    def record_excess_attempt(db: Session, customer_id: int, booking_date: date) -> None:
        record = LimitRepository.get_limit_record(db, customer_id, booking_date)
        if record is None:
            return
        record.attempted_excess_bookings += 1
        db.commit()

    @staticmethod
    def create_override(db: Session, **override_data) -> LimitOverride:
        override = LimitOverride(**override_data)
        db.add(override)
        db.commit()
        db.refresh(override)
        return override
