"""
Unit tests for the refund schedule.
"""
from datetime import date, datetime, time, timedelta, timezone

import pytest

from venue_booking.domain.cancellations.policy import (
    compute_refund_eligibility,
    event_start,
    hours_until_event,
)
from venue_booking.exceptions import PastEventError, ValidationError

EVENT = datetime(2026, 6, 5, 20, 0, tzinfo=timezone.utc)


def before(hours):
    return EVENT - timedelta(hours=hours)


class TestRefundSchedule:
    """Tests for compute_refund_eligibility."""

    def test_full_refund_72_hours_out(self):
        result = compute_refund_eligibility(EVENT, before(72), 50)

        assert result["eligible"] is True
        assert result["amount"] == 50

    def test_half_refund_30_hours_out(self):
        result = compute_refund_eligibility(EVENT, before(30), 50)

        assert result["eligible"] is True
        assert result["amount"] == 25

    def test_no_refund_10_hours_out(self):
        result = compute_refund_eligibility(EVENT, before(10), 50)

        assert result["eligible"] is False
        assert result["amount"] == 0

    def test_past_event_refused(self):
        with pytest.raises(PastEventError):
            compute_refund_eligibility(EVENT, EVENT + timedelta(minutes=1), 50)

    def test_event_start_refused(self):
        with pytest.raises(PastEventError):
            compute_refund_eligibility(EVENT, EVENT, 50)

    def test_boundaries(self):
        assert compute_refund_eligibility(EVENT, before(48), 50)["amount"] == 50
        assert compute_refund_eligibility(EVENT, before(24), 50)["amount"] == 25
        assert compute_refund_eligibility(EVENT, before(23.99), 50)["amount"] == 0

    def test_partial_refund_rounds_down(self):
        assert compute_refund_eligibility(EVENT, before(30), 45)["amount"] == 22

    def test_negative_deposit_is_invalid(self):
        with pytest.raises(ValidationError):
            compute_refund_eligibility(EVENT, before(72), -1)

    def test_naive_cancellation_time_is_utc(self):
        naive = before(30).replace(tzinfo=None)

        assert compute_refund_eligibility(EVENT, naive, 50)["amount"] == 25


class TestEventStart:
    """Tests for converting a booking's night and arrival into an instant."""

    def test_summer_arrival_is_bst(self):
        start = event_start(date(2026, 6, 5), time(20, 0))

        assert start.astimezone(timezone.utc) == datetime(2026, 6, 5, 19, 0, tzinfo=timezone.utc)

    def test_winter_arrival_is_gmt(self):
        start = event_start(date(2026, 12, 5), time(20, 0))

        assert start.astimezone(timezone.utc) == datetime(2026, 12, 5, 20, 0, tzinfo=timezone.utc)

    def test_hours_until_event(self):
        start = event_start(date(2026, 6, 5), time(20, 0))

        assert hours_until_event(start, datetime(2026, 6, 4, 19, 0, tzinfo=timezone.utc)) == 24
