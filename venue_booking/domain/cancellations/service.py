"""
Cancellation service - applies the refund schedule to a stored booking.

The cancellation itself (status, refund fields, released tables and quota) is
one commit. Money only moves after that commit, and a failed refund is
recorded for the worker to retry; it never undoes the cancellation.
"""

import logging
import string
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...exceptions import AlreadyCancelledError, InvalidStatusTransition, NotFoundError, ValidationError
from ...models import Booking, RefundAttempt
from ...services.payment_gateway import StripeRefundGateway
from ..bookings.repository import BookingRepository
from ..combinations.repository import CombinationRepository
from ..limits.repository import LimitRepository
from .policy import compute_refund_eligibility, event_start

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def cancellation_reference(when: datetime) -> str:
    """CXL- plus the cancellation time in base36 milliseconds"""
    return f"CXL-{_base36(int(when.timestamp() * 1000))}"


class CancellationService:
    """Service layer for booking cancellations and refunds"""

    def __init__(
        self,
        db: Session,
        gateway: Optional[StripeRefundGateway] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.limit_repo = LimitRepository()
        self.table_repo = CombinationRepository()
        self.gateway = gateway or StripeRefundGateway()
        self.clock = clock

    async def cancel_booking(
        self, reference: str, reason: str, cancelled_by: Optional[str] = None
    ) -> dict:
        if not reason or not reason.strip():
            raise ValidationError("Cancellation reason is required")

        booking = self.repo.get_by_reference(self.db, reference)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.status == "cancelled":
            raise AlreadyCancelledError(
                "Booking already cancelled",
                extra={"cancellation_ref": booking.cancellation_reference},
            )
        if booking.status in ("arrived", "no_show"):
            raise InvalidStatusTransition(f"Cannot cancel booking with status: {booking.status}")

        now = self.clock()
        refund = compute_refund_eligibility(
            event_start(booking.booking_date, booking.arrival_time),
            now,
            booking.deposit_amount or 0.0,
        )
        cancellation_ref = cancellation_reference(now)

        cancelled = self.repo.transition(
            self.db,
            booking.id,
            ("pending", "confirmed"),
            status="cancelled",
            cancelled_at=now,
            cancellation_reason=reason.strip(),
            cancellation_reference=cancellation_ref,
            refund_eligible=refund["eligible"],
            refund_amount=refund["amount"],
        )
        if not cancelled:
            self.db.rollback()
            raise AlreadyCancelledError("Booking already cancelled")

        self.table_repo.release_booking(self.db, booking.id)
        self.limit_repo.release_tables(
            self.db, booking.customer_id, booking.booking_date, booking.table_count
        )
        customer = booking.customer
        customer.total_cancellations = (customer.total_cancellations or 0) + 1
        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"❌ {booking.reference} cancelled{' by ' + cancelled_by if cancelled_by else ''}: "
            f"{refund['hours_until_event']:.1f}h before event, refund £{refund['amount']}"
        )

        processed, refund_id = False, None
        if refund["eligible"] and refund["amount"] > 0 and booking.payment_reference:
            attempt = await self.process_refund(booking, refund["amount"])
            processed = attempt.status == "succeeded"
            refund_id = attempt.gateway_refund_id

        return {
            "booking": booking,
            "cancellation_ref": cancellation_ref,
            "refund": {
                "eligible": refund["eligible"],
                "amount": refund["amount"],
                "processed": processed,
                "refund_id": refund_id,
            },
        }

    async def process_refund(self, booking: Booking, amount: float) -> RefundAttempt:
        """Best-effort refund; the outcome is recorded either way"""
        result = await self.gateway.refund(booking.payment_reference, amount)
        attempt = self.repo.create_refund_attempt(
            self.db,
            booking_id=booking.id,
            payment_reference=booking.payment_reference,
            amount=amount,
            status="succeeded" if result["success"] else "failed",
            attempts=1,
            gateway_refund_id=result["refund_id"],
            last_error=result["error"],
        )
        if not result["success"]:
            logger.warning(
                f"⚠️ Refund of £{amount} for {booking.reference} failed, queued for retry: {result['error']}"
            )
        return attempt


async def retry_refund(db: Session, attempt: RefundAttempt, gateway: StripeRefundGateway) -> bool:
    """One more try at a recorded refund. Commits the outcome."""
    result = await gateway.refund(attempt.payment_reference, attempt.amount)
    attempt.attempts = (attempt.attempts or 0) + 1
    if result["success"]:
        attempt.status = "succeeded"
        attempt.gateway_refund_id = result["refund_id"]
        attempt.last_error = None
    else:
        attempt.status = "failed"
        attempt.last_error = result["error"]
    db.commit()
    return result["success"]
