import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


BOOKING_STATUSES = ("pending", "confirmed", "arrived", "cancelled", "no_show")
LOYALTY_TIERS = ("standard", "gold", "platinum")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(20), index=True, nullable=True)  # E.164
    name = Column(String(255), nullable=True)
    loyalty_tier = Column(String(20), default="standard", nullable=False)
    total_bookings = Column(Integer, default=0, nullable=False)
    total_cancellations = Column(Integer, default=0, nullable=False)
    total_no_shows = Column(Integer, default=0, nullable=False)
    last_booking_date = Column(Date, nullable=True)
    anonymized = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    bookings = relationship("Booking", back_populates="customer")
    limit_records = relationship("BookingLimitRecord", back_populates="customer")


class BookingLimitRecord(Base):
    """Tables reserved per customer per night; kept in step with bookings"""

    __tablename__ = "booking_limit_records"
    __table_args__ = (
        UniqueConstraint("customer_id", "booking_date", name="uq_limit_customer_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    tables_reserved = Column(Integer, default=0, nullable=False)
    bookings_count = Column(Integer, default=0, nullable=False)
    attempted_excess_bookings = Column(Integer, default=0, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("Customer", back_populates="limit_records")


class LimitOverride(Base):
    """Audit trail for staff raising a customer's quota"""

    __tablename__ = "limit_overrides"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=True)
    additional_tables = Column(Integer, nullable=False)
    modified_limit = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    authorized_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class VenueTable(Base):
    __tablename__ = "venue_tables"

    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(Integer, unique=True, nullable=False, index=True)
    floor = Column(String(20), nullable=False, default="downstairs")  # upstairs, downstairs
    capacity_max = Column(Integer, nullable=False, default=6)
    is_premium = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    # Minted after the row exists; the unique index is the real uniqueness guarantee
    reference = Column(String(20), unique=True, index=True, nullable=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    table_numbers = Column(JSON, default=list, nullable=False)
    combination_id = Column(String(64), nullable=True)
    booking_date = Column(Date, nullable=False, index=True)
    arrival_time = Column(Time, nullable=False)
    party_size = Column(Integer, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    is_vip = Column(Boolean, default=False, nullable=False)
    deposit_amount = Column(Float, default=0.0, nullable=False)
    payment_reference = Column(String(255), nullable=True)  # Stripe payment intent id
    refund_eligible = Column(Boolean, nullable=True)
    refund_amount = Column(Float, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_reference = Column(String(32), nullable=True)
    special_requests = Column(Text, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    customer = relationship("Customer", back_populates="bookings")
    check_in_code = relationship(
        "CheckInCode", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )
    table_reservations = relationship(
        "TableReservation", back_populates="booking", cascade="all, delete-orphan"
    )

    @property
    def table_count(self) -> int:
        return len(self.table_numbers or [])


class CheckInCode(Base):
    __tablename__ = "check_in_codes"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    code = Column(String(6), unique=True, index=True, nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    used_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="check_in_code")


class TableReservation(Base):
    """One row per table per night; the unique key stops double booking"""

    __tablename__ = "table_reservations"
    __table_args__ = (
        UniqueConstraint("table_number", "booking_date", name="uq_table_night"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    table_number = Column(Integer, nullable=False)
    booking_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="table_reservations")


class ActiveCombination(Base):
    """A configured combination in use for a night"""

    __tablename__ = "active_combinations"
    __table_args__ = (
        UniqueConstraint("combination_id", "booking_date", name="uq_combination_night"),
    )

    id = Column(Integer, primary_key=True, index=True)
    combination_id = Column(String(64), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), default="reserved", nullable=False)  # reserved, occupied
    combined_at = Column(DateTime(timezone=True), server_default=func.now())


class RefundAttempt(Base):
    """Refunds are best-effort; failures stay here until the worker settles them"""

    __tablename__ = "refund_attempts"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    payment_reference = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, succeeded, failed
    attempts = Column(Integer, default=0, nullable=False)
    gateway_refund_id = Column(String(255), nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
