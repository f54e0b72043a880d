"""Limit service - per-customer nightly table quotas, VIP overrides and risk scoring"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import (
    MAX_OVERRIDE_TABLES,
    RISK_RECENCY_FULL_DAYS,
    RISK_WEIGHT_CANCELLATIONS,
    RISK_WEIGHT_NO_SHOWS,
    RISK_WEIGHT_RECENCY,
    TIER_TABLE_QUOTAS,
    VIP_TIERS,
)
from ...exceptions import ValidationError
from ...models import Customer
from .identity import ContactInfo, CustomerIdentityResolver
from .repository import LimitRepository

logger = logging.getLogger(__name__)

MAX_TABLES_REACHED = "Maximum tables reached"


def get_quota(tier: Optional[str]) -> int:
    """Tables per night for a loyalty tier. Unknown tiers get the standard quota."""
    if not tier:
        return TIER_TABLE_QUOTAS["standard"]
    return TIER_TABLE_QUOTAS.get(tier.lower(), TIER_TABLE_QUOTAS["standard"])


def is_vip(customer: Customer) -> bool:
    return (customer.loyalty_tier or "").lower() in VIP_TIERS


class LimitService:
    """Service layer for booking limit business logic"""

    def __init__(
        self,
        db: Session,
        resolver: Optional[CustomerIdentityResolver] = None,
        today: Callable[[], date] = lambda: datetime.now(timezone.utc).date(),
    ):
        self.db = db
        self.repo = LimitRepository()
        self.resolver = resolver or CustomerIdentityResolver()
        self.today = today

    def identify_customer_across_platforms(self, contact: ContactInfo) -> dict:
        """Which contact channels point at an existing customer. No writes."""
        return self.resolver.resolve(self.db, contact).as_dict()

    def find_customer(self, contact: ContactInfo) -> Optional[Customer]:
        return self.resolver.resolve(self.db, contact).customer

    def validate_booking_limit(
        self,
        customer: Customer,
        booking_date: date,
        requested_tables: int = 1,
        additional_tables: int = 0,
    ) -> dict:
        """
        Check a request against the customer's nightly quota.

        remaining_tables is reported before this request is applied. The
        count is of tables, not bookings.
        """
        if requested_tables < 1:
            raise ValidationError("At least one table must be requested")

        quota = get_quota(customer.loyalty_tier) + additional_tables
        reserved = self.repo.tables_reserved_on(self.db, customer.id, booking_date)
        remaining = max(quota - reserved, 0)

        if reserved + requested_tables > quota:
            logger.warning(
                f"⚠️ Customer {customer.id} over quota on {booking_date}: "
                f"{reserved} reserved, {requested_tables} requested, quota {quota}"
            )
            return {
                "allowed": False,
                "remaining_tables": remaining,
                "quota": quota,
                "reason": MAX_TABLES_REACHED,
            }

        return {"allowed": True, "remaining_tables": remaining, "quota": quota}

    def record_rejected_attempt(self, customer: Customer, booking_date: date) -> None:
        self.repo.record_excess_attempt(self.db, customer.id, booking_date)

    def calculate_risk_score(self, customer: Customer) -> int:
        """
        Weighted 0-100 score from no-show rate, cancellation rate and how long
        since the customer last booked. Never decreases as no-shows grow.
        """
        total = max(customer.total_bookings or 0, 0)
        if total:
            no_show_rate = min((customer.total_no_shows or 0) / total, 1.0)
            cancellation_rate = min((customer.total_cancellations or 0) / total, 1.0)
        else:
            no_show_rate = cancellation_rate = 0.0

        if customer.last_booking_date is None:
            recency = 1.0
        else:
            days = (self.today() - customer.last_booking_date).days
            recency = min(max(days, 0) / RISK_RECENCY_FULL_DAYS, 1.0)

        score = (
            RISK_WEIGHT_NO_SHOWS * no_show_rate
            + RISK_WEIGHT_CANCELLATIONS * cancellation_rate
            + RISK_WEIGHT_RECENCY * recency
        )
        return int(min(100, max(0, round(score))))

    def admin_booking_override(
        self,
        customer: Customer,
        reason: str,
        additional_tables: int,
        authorized_by: str,
        booking_date: Optional[date] = None,
    ) -> dict:
        """
        Raise the customer's quota for the current transaction only.

        Nothing about the customer's tier changes; the grant is written to the
        audit trail and the caller passes additional_tables into the admission
        that triggered it.
        """
        if not reason or not reason.strip():
            raise ValidationError("Override reason is required")
        if not authorized_by or not authorized_by.strip():
            raise ValidationError("Override must be attributed to a staff member")
        if additional_tables < 1 or additional_tables > MAX_OVERRIDE_TABLES:
            raise ValidationError(
                f"Additional tables must be between 1 and {MAX_OVERRIDE_TABLES}"
            )

        modified_limit = get_quota(customer.loyalty_tier) + additional_tables
        override = self.repo.create_override(
            self.db,
            customer_id=customer.id,
            booking_date=booking_date,
            additional_tables=additional_tables,
            modified_limit=modified_limit,
            reason=reason.strip(),
            authorized_by=authorized_by.strip(),
        )
        logger.info(
            f"🔓 Limit override {override.id} for customer {customer.id} by {authorized_by}: "
            f"+{additional_tables} tables ({reason.strip()})"
        )
        return {
            "approved": True,
            "modified_limit": modified_limit,
            "additional_tables": additional_tables,
            "override_id": override.id,
        }

    def get_usage(self, customer: Customer, booking_date: date) -> dict:
        quota = get_quota(customer.loyalty_tier)
        reserved = self.repo.tables_reserved_on(self.db, customer.id, booking_date)
        return {
            "tier": customer.loyalty_tier,
            "quota": quota,
            "reserved": reserved,
            "remaining": max(quota - reserved, 0),
            "is_vip": is_vip(customer),
        }
