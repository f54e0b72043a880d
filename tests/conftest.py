"""Shared fixtures: an in-memory database per test, seeded tables and customers."""
import os
import random
from datetime import date, datetime, time, timezone

# Configuration is read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CHECKIN_SIGNING_SECRET", "test-checkin-secret")
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from venue_booking import models
from venue_booking.database import Base
from venue_booking.domain.references import build_reference_generator

# 12:00 UTC on a Monday in British Summer Time
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 6, 1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def venue_tables(db):
    """Tables 1-16; 13-16 are premium and 15-16 form the bar-side combination"""
    for number in range(1, 17):
        db.add(
            models.VenueTable(
                table_number=number,
                floor="upstairs" if number <= 8 else "downstairs",
                capacity_max=4 if number <= 4 else 6,
                is_premium=number >= 13,
            )
        )
    db.commit()
    return db.query(models.VenueTable).all()


@pytest.fixture
def make_customer(db):
    counter = {"n": 0}

    def _make(tier="standard", **overrides):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "email": f"guest{n}@example.com",
            "phone": f"+4477009001{n:02d}",
            "name": f"Guest {n}",
            "loyalty_tier": tier,
        }
        data.update(overrides)
        customer = models.Customer(**data)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return _make


@pytest.fixture
def make_booking(db):
    """Insert a booking row directly, bypassing admission"""

    def _make(customer, booking_date=TODAY, tables=(1,), status="confirmed", **overrides):
        data = {
            "customer_id": customer.id,
            "table_numbers": list(tables),
            "booking_date": booking_date,
            "arrival_time": time(20, 0),
            "party_size": 4,
            "status": status,
            "deposit_amount": 50.0,
        }
        data.update(overrides)
        booking = models.Booking(**data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def generator(db):
    return build_reference_generator(db, rng=random.Random(2026))


class FakeRefundGateway:
    """Stands in for Stripe; records each call"""

    def __init__(self, success=True, error="card_declined"):
        self.success = success
        self.error = error
        self.calls = []

    async def refund(self, payment_reference, amount):
        self.calls.append((payment_reference, amount))
        if self.success:
            return {"success": True, "refund_id": f"re_{len(self.calls)}", "error": None}
        return {"success": False, "refund_id": None, "error": self.error}


@pytest.fixture
def refund_gateway():
    return FakeRefundGateway()


@pytest.fixture
def failing_gateway():
    return FakeRefundGateway(success=False)
