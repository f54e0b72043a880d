"""
Cancellation refund schedule.

    48h or more before the event   full deposit
    24h to 48h                     half the deposit, rounded down to whole pounds
    under 24h                      nothing
    event started or passed        cancellation refused (PastEventError)
"""

import math
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from ...config import (
    FULL_REFUND_HOURS,
    PARTIAL_REFUND_HOURS,
    PARTIAL_REFUND_RATIO,
    VENUE_TIMEZONE,
)
from ...exceptions import PastEventError, ValidationError


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def event_start(booking_date: date, arrival_time: time) -> datetime:
    """When the booking starts, in the venue's time zone"""
    return datetime.combine(booking_date, arrival_time, tzinfo=ZoneInfo(VENUE_TIMEZONE))


def hours_until_event(event_dt: datetime, cancellation_dt: datetime) -> float:
    return (_as_utc(event_dt) - _as_utc(cancellation_dt)).total_seconds() / 3600


def compute_refund_eligibility(
    event_dt: datetime, cancellation_dt: datetime, deposit_amount: float
) -> dict:
    """Pure: no store access, no money movement"""
    if deposit_amount is None or deposit_amount < 0:
        raise ValidationError("Deposit amount must be zero or more")

    hours = hours_until_event(event_dt, cancellation_dt)
    if hours <= 0:
        raise PastEventError("Cannot cancel booking for past events")

    if hours >= FULL_REFUND_HOURS:
        return {"eligible": True, "amount": deposit_amount, "hours_until_event": hours}
    if hours >= PARTIAL_REFUND_HOURS:
        return {
            "eligible": True,
            "amount": math.floor(deposit_amount * PARTIAL_REFUND_RATIO),
            "hours_until_event": hours,
        }
    return {"eligible": False, "amount": 0, "hours_until_event": hours}
